import itertools

import pytest

from escrow.exceptions import InvalidStatusTransition
from escrow.transitions import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    TRANSITIONS,
    EscrowStatus,
    can_transition,
    is_terminal,
    validate_transition,
)

S = EscrowStatus

ALLOWED = {
    (S.PENDING, S.HELD),
    (S.PENDING, S.CANCELLED),
    (S.HELD, S.PARTIAL_RELEASED),
    (S.HELD, S.RELEASED),
    (S.HELD, S.REFUNDED),
    (S.HELD, S.DISPUTED),
    (S.PARTIAL_RELEASED, S.RELEASED),
    (S.PARTIAL_RELEASED, S.REFUNDED),
    (S.PARTIAL_RELEASED, S.DISPUTED),
    (S.DISPUTED, S.RELEASED),
    (S.DISPUTED, S.REFUNDED),
}


class TestTransitionTable:

    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(EscrowStatus)

    @pytest.mark.parametrize("current,target", list(itertools.product(EscrowStatus, repeat=2)))
    def test_pair_matches_table(self, current, target):
        assert can_transition(current, target) == ((current, target) in ALLOWED)

    @pytest.mark.parametrize("status", list(EscrowStatus))
    def test_no_self_loops(self, status):
        assert not can_transition(status, status)

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {S.RELEASED, S.REFUNDED, S.CANCELLED}
        for status in TERMINAL_STATUSES:
            assert is_terminal(status)
            assert not any(can_transition(status, target) for target in EscrowStatus)

    def test_active_statuses(self):
        assert ACTIVE_STATUSES == {S.HELD, S.PARTIAL_RELEASED}

    def test_accepts_plain_strings(self):
        assert can_transition('PENDING', 'HELD')
        assert is_terminal('RELEASED')
        assert not is_terminal('HELD')

    @pytest.mark.parametrize("current,target", [('BOGUS', 'HELD'), ('PENDING', 'BOGUS'), (None, 'HELD')])
    def test_unknown_values_never_transition(self, current, target):
        assert not can_transition(current, target)


class TestValidateTransition:

    def test_allowed_move_passes(self):
        validate_transition(S.HELD, S.DISPUTED)

    def test_disallowed_move_raises_with_both_ends(self):
        with pytest.raises(InvalidStatusTransition) as exc_info:
            validate_transition(S.RELEASED, S.HELD)

        error = exc_info.value
        assert error.current == S.RELEASED
        assert error.target == S.HELD
        assert error.status_code == 400
        assert "RELEASED" in str(error.detail) and "HELD" in str(error.detail)

    def test_pending_cannot_skip_to_released(self):
        with pytest.raises(InvalidStatusTransition):
            validate_transition(S.PENDING, S.RELEASED)
