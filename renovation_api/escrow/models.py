from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from projects.models import Bid, Project
from .transitions import EscrowStatus


class Escrow(models.Model):
    """
    Custodial hold of a homeowner's deposit against a matched bid.

    ``amount`` is fixed at creation. ``released_amount`` only grows and never
    exceeds ``amount``. ``status`` is not editable from forms or serializers;
    the functions in ``escrow.ledger`` and ``disputes.handlers`` are the only
    code that assigns it, always through the transition table.
    """
    code = models.CharField(max_length=16, unique=True, editable=False)
    project = models.ForeignKey(Project, on_delete=models.PROTECT, related_name='escrows')
    bid = models.OneToOneField(Bid, on_delete=models.PROTECT, related_name='escrow')
    homeowner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='escrows'
    )

    amount = models.PositiveBigIntegerField(validators=[MinValueValidator(1)], editable=False)
    released_amount = models.PositiveBigIntegerField(default=0, editable=False)
    currency = models.CharField(max_length=8, editable=False)
    status = models.CharField(
        max_length=20,
        choices=EscrowStatus.choices,
        default=EscrowStatus.PENDING,
        editable=False,
        db_index=True,
    )
    version = models.PositiveIntegerField(default=0, editable=False)

    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='confirmed_escrows', editable=False,
    )
    confirmed_at = models.DateTimeField(null=True, blank=True, editable=False)
    released_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='released_escrows', editable=False,
    )
    released_at = models.DateTimeField(null=True, blank=True, editable=False)

    dispute_reason = models.TextField(null=True, blank=True, editable=False)
    disputed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='disputed_escrows', editable=False,
    )
    dispute_resolution = models.TextField(null=True, blank=True, editable=False)
    dispute_resolved_at = models.DateTimeField(null=True, blank=True, editable=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(released_amount__lte=models.F('amount')),
                name='escrow_released_within_amount',
            ),
        ]

    @property
    def remaining_amount(self) -> int:
        return self.amount - self.released_amount

    def __str__(self):
        return f"{self.code} ({self.status}) {self.released_amount}/{self.amount} {self.currency}"


class EscrowTransaction(models.Model):
    """Append-only log of every escrow mutation."""

    class Type(models.TextChoices):
        CREATED = 'CREATED', 'Created'
        DEPOSIT_CONFIRMED = 'DEPOSIT_CONFIRMED', 'Deposit Confirmed'
        PARTIAL_RELEASE = 'PARTIAL_RELEASE', 'Partial Release'
        FULL_RELEASE = 'FULL_RELEASE', 'Full Release'
        REFUND = 'REFUND', 'Refund'
        DISPUTED = 'DISPUTED', 'Disputed'
        DISPUTE_RESOLVED = 'DISPUTE_RESOLVED', 'Dispute Resolved'
        CANCELLED = 'CANCELLED', 'Cancelled'

    escrow = models.ForeignKey(Escrow, on_delete=models.PROTECT, related_name='transactions')
    type = models.CharField(max_length=20, choices=Type.choices)
    amount = models.PositiveBigIntegerField(null=True, blank=True)
    note = models.TextField(blank=True)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='escrow_transactions',
    )
    evidence = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.type} {self.amount or ''} on {self.escrow.code}"
