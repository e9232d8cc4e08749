"""Pure transition-table tests: routing, targets, and the derived approver."""

from __future__ import annotations

import pytest

from app.exceptions import InvalidTransition
from app.models.enums import TERMINAL_STATUSES, Approver, LeaveStatus, Trigger
from app.services.workflow import ALLOWED_TRIGGERS, derive_current_approver, initial_status, next_status

DECISION_TRIGGERS = [t for t in Trigger if t != Trigger.SUBMIT]


# ---------------------------------------------------------------------------
# Routing at submission
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("requires_hr", [True, False])
def test_initial_status_with_manager(requires_hr: bool) -> None:
    assert initial_status(has_manager=True, requires_hr_approval=requires_hr) == LeaveStatus.PENDING_MANAGER


def test_initial_status_without_manager_goes_to_hr() -> None:
    assert initial_status(has_manager=False, requires_hr_approval=True) == LeaveStatus.PENDING_HR


def test_initial_status_without_any_approver_is_approved() -> None:
    assert initial_status(has_manager=False, requires_hr_approval=False) == LeaveStatus.APPROVED


# ---------------------------------------------------------------------------
# Transition targets
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("current", "trigger", "requires_hr", "expected"),
    [
        (LeaveStatus.PENDING_MANAGER, Trigger.MANAGER_APPROVE, True, LeaveStatus.PENDING_HR),
        (LeaveStatus.PENDING_MANAGER, Trigger.MANAGER_APPROVE, False, LeaveStatus.APPROVED),
        (LeaveStatus.PENDING_MANAGER, Trigger.MANAGER_REJECT, True, LeaveStatus.REJECTED),
        (LeaveStatus.PENDING_MANAGER, Trigger.CANCEL, False, LeaveStatus.CANCELLED),
        (LeaveStatus.PENDING_HR, Trigger.HR_APPROVE, True, LeaveStatus.HR_APPROVED),
        (LeaveStatus.PENDING_HR, Trigger.HR_REJECT, True, LeaveStatus.REJECTED),
        (LeaveStatus.PENDING_HR, Trigger.CANCEL, True, LeaveStatus.CANCELLED),
    ],
)
def test_next_status(current: LeaveStatus, trigger: Trigger, requires_hr: bool, expected: LeaveStatus) -> None:
    assert next_status(current, trigger, requires_hr) == expected


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES))
@pytest.mark.parametrize("trigger", DECISION_TRIGGERS)
def test_terminal_states_admit_nothing(status: LeaveStatus, trigger: Trigger) -> None:
    with pytest.raises(InvalidTransition):
        next_status(status, trigger, True)


@pytest.mark.parametrize("trigger", [Trigger.HR_APPROVE, Trigger.HR_REJECT])
def test_pending_manager_rejects_hr_triggers(trigger: Trigger) -> None:
    with pytest.raises(InvalidTransition):
        next_status(LeaveStatus.PENDING_MANAGER, trigger, True)


@pytest.mark.parametrize("trigger", [Trigger.MANAGER_APPROVE, Trigger.MANAGER_REJECT])
def test_pending_hr_rejects_manager_triggers(trigger: Trigger) -> None:
    with pytest.raises(InvalidTransition):
        next_status(LeaveStatus.PENDING_HR, trigger, True)


def test_submit_is_never_a_transition() -> None:
    for status in LeaveStatus:
        assert Trigger.SUBMIT not in ALLOWED_TRIGGERS.get(status, frozenset())


# ---------------------------------------------------------------------------
# Current approver
# ---------------------------------------------------------------------------


def test_current_approver_is_derived_from_status() -> None:
    assert derive_current_approver(LeaveStatus.PENDING_MANAGER) == Approver.MANAGER
    assert derive_current_approver(LeaveStatus.PENDING_HR) == Approver.HR
    for status in TERMINAL_STATUSES:
        assert derive_current_approver(status) == Approver.SYSTEM
