import django_filters

from escrow.models import Escrow
from escrow.transitions import EscrowStatus


class DisputeFilter(django_filters.FilterSet):
    STATUS_CHOICES = (
        ('OPEN', 'Open'),
        ('RESOLVED_REFUND', 'Resolved by refund'),
        ('RESOLVED_RELEASE', 'Resolved by release'),
    )
    ESCROW_STATUS_BY_DISPUTE_STATUS = {
        'OPEN': EscrowStatus.DISPUTED,
        'RESOLVED_REFUND': EscrowStatus.REFUNDED,
        'RESOLVED_RELEASE': EscrowStatus.RELEASED,
    }

    status = django_filters.ChoiceFilter(choices=STATUS_CHOICES, method='filter_status')
    raised_by = django_filters.NumberFilter(field_name='disputed_by')

    class Meta:
        model = Escrow
        fields = ['status', 'project', 'raised_by']

    def filter_status(self, queryset, name, value):
        return queryset.filter(status=self.ESCROW_STATUS_BY_DISPUTE_STATUS[value])
