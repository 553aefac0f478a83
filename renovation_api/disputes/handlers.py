"""
Dispute lifecycle on an escrow.

A dispute freezes an active escrow (HELD or PARTIAL_RELEASED) until an
arbitrator settles it by releasing the remaining balance to the contractor
or refunding it to the homeowner.
"""
from django.utils import timezone

from escrow.exceptions import InvalidDisputeReason, InvalidStatusTransition
from escrow.transitions import EscrowStatus, validate_transition

RESOLUTION_OUTCOMES = (EscrowStatus.RELEASED, EscrowStatus.REFUNDED)


def open_dispute(escrow, reason, actor):
    validate_transition(escrow.status, EscrowStatus.DISPUTED)

    reason = (reason or '').strip()
    if not reason:
        raise InvalidDisputeReason()

    escrow.status = EscrowStatus.DISPUTED
    escrow.dispute_reason = reason
    escrow.disputed_by = actor
    return escrow


def resolve_dispute(escrow, outcome, actor, note=None):
    """
    Settle a disputed escrow.

    ``outcome`` must be RELEASED or REFUNDED. Releasing pays out the whole
    remaining balance, so ``released_amount`` ends equal to ``amount``; a
    refund leaves earlier partial releases where they are.
    """
    if escrow.status != EscrowStatus.DISPUTED:
        raise InvalidStatusTransition(escrow.status, outcome, "Escrow is not under dispute")
    validate_transition(escrow.status, outcome)

    now = timezone.now()
    if outcome == EscrowStatus.RELEASED:
        escrow.released_amount = escrow.amount
        escrow.released_by = actor
        escrow.released_at = now

    escrow.status = EscrowStatus(outcome)
    escrow.dispute_resolution = note or ''
    escrow.dispute_resolved_at = now
    return escrow
