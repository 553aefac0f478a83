"""
Tests for the in-memory escrow ledger.

Tests cover:
- Deposit confirmation
- Partial and full release, with status derived from the balance
- Refund and cancellation
- Rejected operations leaving the escrow untouched
- Conservation of the released amount under arbitrary release sequences
"""
import pytest
from hypothesis import given, strategies as st

from accounts.models import CustomUser
from escrow import ledger
from escrow.exceptions import InvalidReleaseAmount, InvalidStatusTransition
from escrow.models import Escrow
from escrow.transitions import EscrowStatus

ADMIN = CustomUser(email="admin@example.com", is_staff=True)


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


def snapshot(escrow):
    return (escrow.status, escrow.released_amount, escrow.released_by, escrow.released_at)


class TestConfirm:

    def test_pending_becomes_held(self):
        escrow = ledger.confirm(make_escrow(status=EscrowStatus.PENDING), ADMIN)

        assert escrow.status == EscrowStatus.HELD
        assert escrow.confirmed_by is ADMIN
        assert escrow.confirmed_at is not None

    def test_held_cannot_be_confirmed_again(self):
        with pytest.raises(InvalidStatusTransition):
            ledger.confirm(make_escrow(), ADMIN)


class TestRelease:

    def test_staged_release_of_forty_million(self):
        escrow = make_escrow()

        ledger.release(escrow, 10_000_000, ADMIN)
        assert escrow.status == EscrowStatus.PARTIAL_RELEASED
        assert escrow.released_amount == 10_000_000
        assert escrow.released_at is None

        ledger.release(escrow, 20_000_000, ADMIN)
        assert escrow.status == EscrowStatus.PARTIAL_RELEASED
        assert escrow.remaining_amount == 10_000_000

        ledger.release(escrow, 10_000_000, ADMIN)
        assert escrow.status == EscrowStatus.RELEASED
        assert escrow.released_amount == escrow.amount
        assert escrow.released_by is ADMIN
        assert escrow.released_at is not None

    def test_single_full_release_goes_straight_to_released(self):
        escrow = ledger.release(make_escrow(), 40_000_000, ADMIN)
        assert escrow.status == EscrowStatus.RELEASED

    def test_release_remaining(self):
        escrow = make_escrow(status=EscrowStatus.PARTIAL_RELEASED, released_amount=15_000_000)

        ledger.release_remaining(escrow, ADMIN)

        assert escrow.status == EscrowStatus.RELEASED
        assert escrow.released_amount == 40_000_000

    def test_more_than_remaining_is_rejected_and_changes_nothing(self):
        escrow = make_escrow(status=EscrowStatus.PARTIAL_RELEASED, released_amount=30_000_000)
        before = snapshot(escrow)

        with pytest.raises(InvalidReleaseAmount) as exc_info:
            ledger.release(escrow, 10_000_001, ADMIN)

        assert str(exc_info.value.detail) == "Cannot release 10000001. Only 10000000 remaining"
        assert snapshot(escrow) == before

    @pytest.mark.parametrize("amount", [0, -5, 1.5, "100", True])
    def test_non_positive_or_non_integer_amount_is_rejected(self, amount):
        escrow = make_escrow()
        with pytest.raises(InvalidReleaseAmount):
            ledger.release(escrow, amount, ADMIN)
        assert escrow.released_amount == 0

    @pytest.mark.parametrize("status", [
        EscrowStatus.PENDING,
        EscrowStatus.DISPUTED,
        EscrowStatus.RELEASED,
        EscrowStatus.REFUNDED,
        EscrowStatus.CANCELLED,
    ])
    def test_release_outside_active_statuses_is_rejected(self, status):
        escrow = make_escrow(status=status)
        with pytest.raises(InvalidStatusTransition):
            ledger.release(escrow, 1, ADMIN)
        assert escrow.status == status
        assert escrow.released_amount == 0


class TestRefundAndCancel:

    @pytest.mark.parametrize("status", [EscrowStatus.HELD, EscrowStatus.PARTIAL_RELEASED])
    def test_refund_from_active_status(self, status):
        escrow = make_escrow(status=status, released_amount=5_000_000)

        ledger.refund(escrow)

        assert escrow.status == EscrowStatus.REFUNDED
        assert escrow.released_amount == 5_000_000

    @pytest.mark.parametrize("status", [EscrowStatus.PENDING, EscrowStatus.DISPUTED, EscrowStatus.RELEASED])
    def test_refund_from_other_status_is_rejected(self, status):
        with pytest.raises(InvalidStatusTransition):
            ledger.refund(make_escrow(status=status))

    def test_cancel_pending(self):
        escrow = ledger.cancel(make_escrow(status=EscrowStatus.PENDING))
        assert escrow.status == EscrowStatus.CANCELLED

    def test_cannot_cancel_held(self):
        with pytest.raises(InvalidStatusTransition):
            ledger.cancel(make_escrow())


class TestReleaseConservation:

    @given(
        amount=st.integers(min_value=1, max_value=10**12),
        requests=st.lists(st.integers(min_value=-10, max_value=10**12), max_size=20),
    )
    def test_released_never_exceeds_amount_and_status_follows_balance(self, amount, requests):
        escrow = make_escrow(amount=amount)
        expected = 0

        for request in requests:
            try:
                ledger.release(escrow, request, ADMIN)
            except (InvalidReleaseAmount, InvalidStatusTransition):
                pass
            else:
                expected += request

            assert escrow.released_amount == expected
            assert 0 <= escrow.released_amount <= escrow.amount
            if escrow.released_amount == escrow.amount:
                assert escrow.status == EscrowStatus.RELEASED
            elif escrow.released_amount > 0:
                assert escrow.status == EscrowStatus.PARTIAL_RELEASED
            else:
                assert escrow.status == EscrowStatus.HELD
