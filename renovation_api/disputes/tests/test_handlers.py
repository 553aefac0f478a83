import pytest

from accounts.models import CustomUser
from disputes import handlers
from escrow.exceptions import InvalidDisputeReason, InvalidStatusTransition
from escrow.models import Escrow
from escrow.transitions import EscrowStatus

HOMEOWNER = CustomUser(email="homeowner@example.com")
MODERATOR = CustomUser(email="moderator@example.com", is_staff=True)


def make_escrow(**overrides):
    fields = {
        'code': 'ESC-2026-001',
        'amount': 40_000_000,
        'released_amount': 0,
        'currency': 'VND',
        'status': EscrowStatus.HELD,
    }
    fields.update(overrides)
    return Escrow(**fields)


class TestOpenDispute:

    @pytest.mark.parametrize("status", [EscrowStatus.HELD, EscrowStatus.PARTIAL_RELEASED])
    def test_active_escrow_can_be_disputed(self, status):
        escrow = handlers.open_dispute(make_escrow(status=status), "  Wrong tiles installed ", HOMEOWNER)

        assert escrow.status == EscrowStatus.DISPUTED
        assert escrow.dispute_reason == "Wrong tiles installed"
        assert escrow.disputed_by is HOMEOWNER

    @pytest.mark.parametrize("status", [
        EscrowStatus.PENDING,
        EscrowStatus.DISPUTED,
        EscrowStatus.RELEASED,
        EscrowStatus.REFUNDED,
        EscrowStatus.CANCELLED,
    ])
    def test_other_statuses_are_rejected(self, status):
        escrow = make_escrow(status=status)

        with pytest.raises(InvalidStatusTransition):
            handlers.open_dispute(escrow, "Late", HOMEOWNER)

        assert escrow.status == status
        assert escrow.dispute_reason is None

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_blank_reason_is_rejected(self, reason):
        escrow = make_escrow()

        with pytest.raises(InvalidDisputeReason):
            handlers.open_dispute(escrow, reason, HOMEOWNER)

        assert escrow.status == EscrowStatus.HELD


class TestResolveDispute:

    def test_release_pays_out_remaining(self):
        escrow = make_escrow(status=EscrowStatus.DISPUTED, released_amount=10_000_000)

        handlers.resolve_dispute(escrow, EscrowStatus.RELEASED, MODERATOR, note="Work verified")

        assert escrow.status == EscrowStatus.RELEASED
        assert escrow.released_amount == escrow.amount
        assert escrow.released_by is MODERATOR
        assert escrow.dispute_resolution == "Work verified"
        assert escrow.dispute_resolved_at is not None

    def test_refund_keeps_earlier_releases(self):
        escrow = make_escrow(status=EscrowStatus.DISPUTED, released_amount=10_000_000)

        handlers.resolve_dispute(escrow, 'REFUNDED', MODERATOR)

        assert escrow.status == EscrowStatus.REFUNDED
        assert escrow.released_amount == 10_000_000
        assert escrow.dispute_resolution == ''

    def test_not_under_dispute(self):
        escrow = make_escrow()

        with pytest.raises(InvalidStatusTransition) as exc_info:
            handlers.resolve_dispute(escrow, EscrowStatus.RELEASED, MODERATOR)

        assert str(exc_info.value.detail) == "Escrow is not under dispute"
        assert escrow.released_amount == 0

    @pytest.mark.parametrize("outcome", [EscrowStatus.HELD, EscrowStatus.CANCELLED, EscrowStatus.PARTIAL_RELEASED])
    def test_outcome_must_be_release_or_refund(self, outcome):
        escrow = make_escrow(status=EscrowStatus.DISPUTED)

        with pytest.raises(InvalidStatusTransition):
            handlers.resolve_dispute(escrow, outcome, MODERATOR)

        assert escrow.status == EscrowStatus.DISPUTED
