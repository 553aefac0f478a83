"""
Escrow status graph.

``TRANSITIONS`` is the only place allowed moves are defined. Every member of
``EscrowStatus`` must have an entry, terminal states map to an empty set, and
the module refuses to import if a status is left out.
"""
from django.db import models

from .exceptions import InvalidStatusTransition


class EscrowStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    HELD = 'HELD', 'Held'
    PARTIAL_RELEASED = 'PARTIAL_RELEASED', 'Partially Released'
    RELEASED = 'RELEASED', 'Released'
    REFUNDED = 'REFUNDED', 'Refunded'
    DISPUTED = 'DISPUTED', 'Disputed'
    CANCELLED = 'CANCELLED', 'Cancelled'


TRANSITIONS = {
    EscrowStatus.PENDING: frozenset({EscrowStatus.HELD, EscrowStatus.CANCELLED}),
    EscrowStatus.HELD: frozenset({
        EscrowStatus.PARTIAL_RELEASED,
        EscrowStatus.RELEASED,
        EscrowStatus.REFUNDED,
        EscrowStatus.DISPUTED,
    }),
    EscrowStatus.PARTIAL_RELEASED: frozenset({
        EscrowStatus.RELEASED,
        EscrowStatus.REFUNDED,
        EscrowStatus.DISPUTED,
    }),
    EscrowStatus.DISPUTED: frozenset({EscrowStatus.RELEASED, EscrowStatus.REFUNDED}),
    EscrowStatus.RELEASED: frozenset(),
    EscrowStatus.REFUNDED: frozenset(),
    EscrowStatus.CANCELLED: frozenset(),
}

_missing = set(EscrowStatus) - set(TRANSITIONS)
if _missing:
    raise RuntimeError(f"Escrow transition table has no entry for: {sorted(_missing)}")

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

# Statuses from which funds can be paid out, refunded or put under dispute.
ACTIVE_STATUSES = frozenset({EscrowStatus.HELD, EscrowStatus.PARTIAL_RELEASED})


def _coerce(value):
    try:
        return EscrowStatus(value)
    except ValueError:
        return None


def can_transition(current, target) -> bool:
    current, target = _coerce(current), _coerce(target)
    if current is None or target is None:
        return False
    return target in TRANSITIONS[current]


def validate_transition(current, target) -> None:
    """Raise InvalidStatusTransition unless ``current -> target`` is in the table."""
    if not can_transition(current, target):
        raise InvalidStatusTransition(current, target)


def is_terminal(value) -> bool:
    return _coerce(value) in TERMINAL_STATUSES
