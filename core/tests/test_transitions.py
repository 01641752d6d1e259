import pytest

from core.exceptions import TransitionError
from core.services.transitions import (
    APPOINTMENT_TRANSITIONS, REFERRAL_TRANSITIONS, allowed_next, can_transition, ensure_transition, is_terminal,
)


@pytest.mark.parametrize('current,new', [
    ('pending', 'accepted'),
    ('pending', 'rejected'),
    ('accepted', 'in_transit'),
    ('accepted', 'in_progress'),
    ('in_transit', 'arrived'),
    ('in_progress', 'completed'),
])
def test_referral_forward_moves_allowed(current, new):
    assert can_transition('referral', current, new)


@pytest.mark.parametrize('current,new', [
    ('completed', 'accepted'),
    ('rejected', 'accepted'),
    ('cancelled', 'pending'),
    ('pending', 'completed'),
    ('in_progress', 'pending'),
])
def test_referral_illegal_moves_refused(current, new):
    assert not can_transition('referral', current, new)
    with pytest.raises(TransitionError) as exc:
        ensure_transition('referral', current, new)
    assert exc.value.status_code == 409


def test_terminal_states_have_no_exits():
    for table, kind in ((REFERRAL_TRANSITIONS, 'referral'), (APPOINTMENT_TRANSITIONS, 'appointment')):
        for status, targets in table.items():
            assert is_terminal(kind, status) == (not targets)
    assert is_terminal('referral', 'completed')
    assert not is_terminal('referral', 'pending')


def test_every_target_is_a_known_status():
    for table in (REFERRAL_TRANSITIONS, APPOINTMENT_TRANSITIONS):
        for targets in table.values():
            assert set(targets) <= set(table)


def test_allowed_next_returns_copy():
    nxt = allowed_next('appointment', 'scheduled')
    nxt.append('completed')
    assert 'completed' not in APPOINTMENT_TRANSITIONS['scheduled']
