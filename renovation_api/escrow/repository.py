from django.utils import timezone

from .codes import MAX_SEQUENCE, format_code, parse_code
from .exceptions import ConcurrentEscrowUpdate, EscrowCodeExhausted, EscrowNotFound
from .models import Escrow, EscrowTransaction
from .transitions import TERMINAL_STATUSES

# The only columns a persisted escrow may change. Amount, currency, code and
# the project/bid/homeowner references are written once, at creation.
MUTABLE_FIELDS = (
    'status',
    'released_amount',
    'confirmed_by',
    'confirmed_at',
    'released_by',
    'released_at',
    'dispute_reason',
    'disputed_by',
    'dispute_resolution',
    'dispute_resolved_at',
)


class EscrowRepository:
    """
    Django ORM persistence for escrows.

    Writes go through ``save`` which is a conditional UPDATE on the row's
    ``version``; a stale instance raises ConcurrentEscrowUpdate instead of
    overwriting a newer state.
    """

    def _queryset(self):
        return Escrow.objects.select_related('project', 'bid', 'bid__contractor', 'homeowner')

    def get(self, escrow_id) -> Escrow:
        try:
            return self._queryset().get(pk=escrow_id)
        except (Escrow.DoesNotExist, ValueError, TypeError):
            raise EscrowNotFound()

    def get_for_update(self, escrow_id) -> Escrow:
        """Fresh read with a row lock; must be called inside ``transaction.atomic``."""
        try:
            return Escrow.objects.select_for_update().get(pk=escrow_id)
        except (Escrow.DoesNotExist, ValueError, TypeError):
            raise EscrowNotFound()

    def get_by_code(self, code) -> Escrow:
        try:
            return self._queryset().get(code=code)
        except Escrow.DoesNotExist:
            raise EscrowNotFound()

    def get_by_project(self, project_id) -> Escrow:
        escrow = self._queryset().filter(project_id=project_id).order_by('-created_at').first()
        if escrow is None:
            raise EscrowNotFound()
        return escrow

    def exists_for_bid(self, bid_id) -> bool:
        return Escrow.objects.filter(bid_id=bid_id).exists()

    def has_open_escrow(self, project_id) -> bool:
        return (
            Escrow.objects.filter(project_id=project_id)
            .exclude(status__in=TERMINAL_STATUSES)
            .exists()
        )

    def next_code(self, year: int) -> str:
        prefix = format_code(year, 0)[:-3]
        codes = Escrow.objects.filter(code__startswith=prefix).values_list('code', flat=True)
        # Malformed codes are skipped.
        sequences = [parsed[1] for parsed in map(parse_code, codes) if parsed and parsed[0] == year]
        sequence = max(sequences, default=0) + 1
        if sequence > MAX_SEQUENCE:
            raise EscrowCodeExhausted()
        return format_code(year, sequence)

    def create(self, **fields) -> Escrow:
        return Escrow.objects.create(**fields)

    def save(self, escrow: Escrow) -> Escrow:
        now = timezone.now()
        values = {}
        for name in MUTABLE_FIELDS:
            attname = Escrow._meta.get_field(name).attname
            values[attname] = getattr(escrow, attname)

        updated = Escrow.objects.filter(pk=escrow.pk, version=escrow.version).update(
            version=escrow.version + 1,
            updated_at=now,
            **values,
        )
        if not updated:
            raise ConcurrentEscrowUpdate()

        escrow.version += 1
        escrow.updated_at = now
        return escrow

    def log(self, escrow, entry_type, actor=None, amount=None, note='', evidence=None) -> EscrowTransaction:
        return EscrowTransaction.objects.create(
            escrow=escrow,
            type=entry_type,
            amount=amount,
            note=note or '',
            actor=actor,
            evidence=list(evidence or []),
        )
