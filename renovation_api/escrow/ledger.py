"""
In-memory escrow mutations.

Each function validates against the escrow's current state, then changes the
instance in place and returns it. Nothing here touches the database;
``escrow.services.EscrowService`` loads the row, calls one of these and
persists the result. A failed validation leaves the instance untouched.
"""
from django.utils import timezone

from .exceptions import InvalidReleaseAmount, InvalidStatusTransition
from .transitions import ACTIVE_STATUSES, EscrowStatus, validate_transition


def _set_status(escrow, target):
    validate_transition(escrow.status, target)
    escrow.status = target


def confirm(escrow, actor):
    """PENDING -> HELD once the deposit has been received."""
    _set_status(escrow, EscrowStatus.HELD)
    escrow.confirmed_by = actor
    escrow.confirmed_at = timezone.now()
    return escrow


def release(escrow, amount, actor):
    """
    Pay ``amount`` out of the held balance.

    The resulting status is derived from the balance: RELEASED when nothing
    remains, PARTIAL_RELEASED otherwise. A further partial release from
    PARTIAL_RELEASED keeps the status and is not a transition.
    """
    if escrow.status not in ACTIVE_STATUSES:
        raise InvalidStatusTransition(
            escrow.status,
            EscrowStatus.RELEASED,
            f"Cannot release escrow in {escrow.status} status",
        )

    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidReleaseAmount("Release amount must be a positive integer.")

    remaining = escrow.remaining_amount
    if amount > remaining:
        raise InvalidReleaseAmount(f"Cannot release {amount}. Only {remaining} remaining")

    released = escrow.released_amount + amount
    target = EscrowStatus.RELEASED if released == escrow.amount else EscrowStatus.PARTIAL_RELEASED
    if target != escrow.status:
        _set_status(escrow, target)

    escrow.released_amount = released
    if target == EscrowStatus.RELEASED:
        escrow.released_by = actor
        escrow.released_at = timezone.now()
    return escrow


def release_remaining(escrow, actor):
    return release(escrow, escrow.remaining_amount, actor)


def refund(escrow):
    """Return the unreleased balance to the homeowner; released funds stay released."""
    if escrow.status not in ACTIVE_STATUSES:
        raise InvalidStatusTransition(
            escrow.status,
            EscrowStatus.REFUNDED,
            f"Cannot refund escrow in {escrow.status} status",
        )
    _set_status(escrow, EscrowStatus.REFUNDED)
    return escrow


def cancel(escrow):
    _set_status(escrow, EscrowStatus.CANCELLED)
    return escrow
