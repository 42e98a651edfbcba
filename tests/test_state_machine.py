import pytest

from studiodesk.domain.appointments.state_machine import (
    InvalidTransitionError,
    can_transition,
    ensure_transition,
    is_terminal,
)
from studiodesk.models_appointments import AppointmentStatus as S


@pytest.mark.parametrize(
    "current,target",
    [
        (S.DRAFT, S.INVITE_SENT),
        (S.INVITE_SENT, S.BOOKED),
        (S.INVITE_SENT, S.EXPIRED),
        (S.INVITE_SENT, S.CANCELLED),
        (S.BOOKED, S.BOOKED),
        (S.BOOKED, S.COMPLETED),
        (S.BOOKED, S.NO_SHOW),
        (S.BOOKED, S.CANCELLED),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    assert ensure_transition(current.value, target.value) == target


@pytest.mark.parametrize(
    "current,target",
    [
        (S.DRAFT, S.BOOKED),
        (S.DRAFT, S.COMPLETED),
        (S.INVITE_SENT, S.COMPLETED),
        (S.BOOKED, S.EXPIRED),
    ],
)
def test_rejected_transitions(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidTransitionError) as exc:
        ensure_transition(current, target)
    assert f"from {current.value} to {target.value}" in str(exc.value)


@pytest.mark.parametrize("status", [S.COMPLETED, S.NO_SHOW, S.CANCELLED, S.EXPIRED])
def test_terminal_statuses_are_final(status):
    assert is_terminal(status)
    for target in S:
        assert not can_transition(status, target)
    with pytest.raises(InvalidTransitionError) as exc:
        ensure_transition(status, S.BOOKED)
    assert "cannot be changed" in str(exc.value)


def test_draft_cannot_be_cancelled():
    assert not can_transition(S.DRAFT, S.CANCELLED)
