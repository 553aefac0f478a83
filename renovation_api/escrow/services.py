import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from disputes import handlers as dispute_handlers
from projects.models import Bid
from . import ledger
from .calculator import quote_deposit
from .exceptions import BidNotSelected, ConcurrentEscrowUpdate, EscrowAlreadyExists, ProjectEscrowOpen
from .models import Escrow, EscrowTransaction
from .notifications import EscrowNotificationDispatcher
from .policy import BiddingSettingsProvider
from .repository import EscrowRepository
from .signals import REFUND, RELEASE, funds_movement_requested
from .transitions import EscrowStatus

logger = logging.getLogger(__name__)


class EscrowService:
    """
    Sequences escrow operations against persistence.

    Every mutation is one read-validate-write in a single transaction: the row
    is re-read under ``select_for_update``, the ledger or dispute function
    validates and mutates it, and the repository writes it back guarded by
    the row version. A version conflict re-runs the whole sequence on fresh
    state, up to ``ESCROW_MAX_RETRIES`` attempts. Validation errors propagate
    immediately and nothing is written.
    """

    def __init__(self, repository=None, settings_provider=None, notifier=None):
        self.repository = repository or EscrowRepository()
        self.settings_provider = settings_provider or BiddingSettingsProvider()
        self.notifier = notifier or EscrowNotificationDispatcher()

    @property
    def max_attempts(self):
        return max(1, settings.ESCROW_MAX_RETRIES)

    # Queries

    def get(self, escrow_id) -> Escrow:
        return self.repository.get(escrow_id)

    def get_by_code(self, code) -> Escrow:
        return self.repository.get_by_code(code)

    def get_by_project(self, project_id) -> Escrow:
        return self.repository.get_by_project(project_id)

    def calculate_amount(self, bid_price: int):
        policy = self.settings_provider.get_escrow_policy()
        return quote_deposit(bid_price, policy.percentage, policy.min_amount, policy.max_amount)

    # Creation

    def create_escrow(self, project, bid, homeowner, bid_price: int) -> Escrow:
        """
        Open the escrow for the project's selected bid.

        A project holds at most one escrow outside RELEASED, REFUNDED and
        CANCELLED, so a new one can only follow a settled or cancelled one.
        """
        if bid.status != Bid.SELECTED or bid.project_id != project.pk:
            raise BidNotSelected()

        quote = self.calculate_amount(bid_price)

        for attempt in range(1, self.max_attempts + 1):
            if self.repository.exists_for_bid(bid.pk):
                raise EscrowAlreadyExists()
            if self.repository.has_open_escrow(project.pk):
                raise ProjectEscrowOpen()
            try:
                with transaction.atomic():
                    escrow = self.repository.create(
                        code=self.repository.next_code(timezone.localdate().year),
                        project=project,
                        bid=bid,
                        homeowner=homeowner,
                        amount=quote.amount,
                        currency=settings.ESCROW_CURRENCY,
                    )
                    self.repository.log(
                        escrow, EscrowTransaction.Type.CREATED, amount=quote.amount, note="Escrow created"
                    )
                    self.notifier.schedule_pending_reminder(escrow)
                    self.notifier.dispatch(escrow, 'created', quote.amount)
            except IntegrityError:
                # Another request took the same code (or the same bid) first.
                logger.warning(f"Escrow creation collided for bid {bid.pk} (attempt {attempt})")
                continue

            logger.info(
                "Escrow created",
                extra={
                    'escrow_id': escrow.pk,
                    'escrow_code': escrow.code,
                    'bid_id': bid.pk,
                    'amount': escrow.amount,
                    'min_applied': quote.min_applied,
                    'max_applied': quote.max_applied,
                },
            )
            return escrow

        if self.repository.exists_for_bid(bid.pk):
            raise EscrowAlreadyExists()
        raise ConcurrentEscrowUpdate()

    # Mutations

    def confirm_held(self, escrow_id, actor, note=None) -> Escrow:
        def apply(escrow):
            ledger.confirm(escrow, actor)
            self._commit(
                escrow, EscrowTransaction.Type.DEPOSIT_CONFIRMED, actor,
                amount=escrow.amount, note=note or "Deposit confirmed by admin",
            )
            self.notifier.dispatch(escrow, 'held', escrow.amount)
            return escrow

        return self._mutate(escrow_id, actor, "Escrow deposit confirmed", apply)

    def release_partial(self, escrow_id, amount, actor, note=None) -> Escrow:
        def apply(escrow):
            ledger.release(escrow, amount, actor)
            self._record_release(escrow, amount, actor, note)
            return escrow

        return self._mutate(escrow_id, actor, "Escrow released", apply)

    def release_full(self, escrow_id, actor, note=None) -> Escrow:
        def apply(escrow):
            amount = escrow.remaining_amount
            ledger.release_remaining(escrow, actor)
            self._record_release(escrow, amount, actor, note)
            return escrow

        return self._mutate(escrow_id, actor, "Escrow released", apply)

    def refund(self, escrow_id, actor, reason=None) -> Escrow:
        def apply(escrow):
            amount = escrow.remaining_amount
            ledger.refund(escrow)
            self._commit(
                escrow, EscrowTransaction.Type.REFUND, actor,
                amount=amount, note=reason or "Refunded to homeowner",
            )
            self.notifier.dispatch(escrow, 'refunded', amount)
            self._request_funds_movement(escrow, REFUND, amount)
            return escrow

        return self._mutate(escrow_id, actor, "Escrow refunded", apply)

    def cancel(self, escrow_id, actor, reason=None) -> Escrow:
        def apply(escrow):
            ledger.cancel(escrow)
            self._commit(escrow, EscrowTransaction.Type.CANCELLED, actor, note=reason or "Escrow cancelled")
            self.notifier.dispatch(escrow, 'cancelled')
            return escrow

        return self._mutate(escrow_id, actor, "Escrow cancelled", apply)

    def open_dispute(self, escrow_id, reason, actor, evidence=()) -> Escrow:
        def apply(escrow):
            dispute_handlers.open_dispute(escrow, reason, actor)
            self._commit(
                escrow, EscrowTransaction.Type.DISPUTED, actor,
                note=escrow.dispute_reason, evidence=evidence,
            )
            self.notifier.dispatch(escrow, 'disputed')
            return escrow

        return self._mutate(escrow_id, actor, "Escrow dispute opened", apply)

    def resolve_dispute(self, escrow_id, outcome, actor, note=None) -> Escrow:
        def apply(escrow):
            amount = escrow.remaining_amount
            dispute_handlers.resolve_dispute(escrow, outcome, actor, note)
            self._commit(escrow, EscrowTransaction.Type.DISPUTE_RESOLVED, actor, amount=amount, note=note)
            self.notifier.dispatch(escrow, 'dispute_resolved', amount)
            if amount:
                movement = RELEASE if escrow.status == EscrowStatus.RELEASED else REFUND
                self._request_funds_movement(escrow, movement, amount)
            return escrow

        return self._mutate(escrow_id, actor, "Escrow dispute resolved", apply)

    # Helpers

    def _mutate(self, escrow_id, actor, message, apply):
        for attempt in range(1, self.max_attempts + 1):
            try:
                with transaction.atomic():
                    escrow = apply(self.repository.get_for_update(escrow_id))
            except ConcurrentEscrowUpdate:
                if attempt == self.max_attempts:
                    logger.warning(f"Escrow {escrow_id} update conflicted {attempt} times, giving up")
                    raise
                logger.info(f"Escrow {escrow_id} changed concurrently, retrying (attempt {attempt})")
                continue

            logger.info(
                message,
                extra={
                    'escrow_id': escrow.pk,
                    'escrow_code': escrow.code,
                    'status': escrow.status,
                    'released_amount': escrow.released_amount,
                    'actor_id': getattr(actor, 'pk', None),
                },
            )
            return escrow

    def _commit(self, escrow, entry_type, actor, amount=None, note='', evidence=None):
        self.repository.save(escrow)
        self.repository.log(escrow, entry_type, actor=actor, amount=amount, note=note, evidence=evidence)

    def _record_release(self, escrow, amount, actor, note):
        if escrow.status == EscrowStatus.RELEASED:
            entry_type, event = EscrowTransaction.Type.FULL_RELEASE, 'released'
            default_note = "Escrow fully released"
        else:
            entry_type, event = EscrowTransaction.Type.PARTIAL_RELEASE, 'partially_released'
            default_note = "Partial escrow release"
        self._commit(escrow, entry_type, actor, amount=amount, note=note or default_note)
        self.notifier.dispatch(escrow, event, amount)
        self._request_funds_movement(escrow, RELEASE, amount)

    def _request_funds_movement(self, escrow, movement, amount):
        def _send():
            responses = funds_movement_requested.send_robust(
                sender=Escrow, escrow=escrow, movement=movement, amount=amount
            )
            for receiver, response in responses:
                if isinstance(response, Exception):
                    logger.error(
                        f"Funds movement receiver {receiver} failed: {response}",
                        extra={'escrow_id': escrow.pk, 'movement': movement, 'amount': amount},
                    )

        transaction.on_commit(_send)
