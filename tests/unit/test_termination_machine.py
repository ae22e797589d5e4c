"""Tests for the termination state machine guard."""

from uuid import uuid4

import pytest

from rentflow.core.errors import InvalidState, Unauthorized, ValidationError
from rentflow.core.rbac.roles import get_role_permissions
from rentflow.core.termination.machine import (
    PermissionDeniedError,
    TerminationStateMachine,
    TransitionError,
)
from rentflow.core.termination.states import TerminationAction, TerminationState
from rentflow.db.models import UserRole


def machine(state, role=UserRole.SYSTEM_ADMIN):
    return TerminationStateMachine(uuid4(), state, user_permissions=get_role_permissions(role))


class TestTerminationStateMachine:

    def test_full_approval_path(self):
        sm = machine(TerminationState.PENDING)
        user_id = uuid4()

        sm.transition(TerminationAction.ACCOUNTANT_APPROVE, user_id=user_id)
        sm.transition(TerminationAction.OWNER_APPROVE, user_id=user_id)
        new_state = sm.transition(TerminationAction.COMPLETE, user_id=user_id)

        assert new_state == TerminationState.COMPLETED
        assert sm.is_terminal
        assert [h["transition"] for h in sm.get_history()] == [
            "accountant_approve", "owner_approve", "complete",
        ]

    def test_invalid_transition_raises_invalid_state(self):
        sm = machine(TerminationState.PENDING)

        with pytest.raises(TransitionError) as exc_info:
            sm.transition(TerminationAction.COMPLETE)

        assert isinstance(exc_info.value, InvalidState)
        assert exc_info.value.from_state == TerminationState.PENDING
        assert "PENDING" in str(exc_info.value)
        assert sm.state == TerminationState.PENDING

    def test_accountant_cannot_owner_approve(self):
        sm = machine(TerminationState.ACCOUNTANT_APPROVED, UserRole.ACCOUNTANT)

        with pytest.raises(PermissionDeniedError) as exc_info:
            sm.transition(TerminationAction.OWNER_APPROVE)

        assert isinstance(exc_info.value, Unauthorized)
        assert exc_info.value.required_permission == "terminations:owner_approve"

    def test_property_admin_cannot_reject(self):
        sm = machine(TerminationState.PENDING, UserRole.PROPERTY_ADMIN)
        with pytest.raises(PermissionDeniedError):
            sm.transition(TerminationAction.REJECT, comment="no")

    def test_reject_requires_comment(self):
        sm = machine(TerminationState.OWNER_APPROVED)

        with pytest.raises(ValidationError):
            sm.transition(TerminationAction.REJECT, comment="   ")

        assert sm.state == TerminationState.OWNER_APPROVED
        assert sm.get_history() == []

    def test_reject_from_open_state(self):
        sm = machine(TerminationState.ACCOUNTANT_APPROVED, UserRole.ACCOUNTANT)
        assert sm.transition(TerminationAction.REJECT, comment="Unpaid rent") == TerminationState.REJECTED

    def test_available_transitions_follow_role(self):
        accountant = machine(TerminationState.PENDING, UserRole.ACCOUNTANT)
        assert set(accountant.get_available_transitions()) == {
            TerminationAction.ACCOUNTANT_APPROVE,
            TerminationAction.REJECT,
        }

        tenant = machine(TerminationState.PENDING, UserRole.TENANT)
        assert tenant.get_available_transitions() == []

    def test_no_transitions_from_terminal_state(self):
        sm = machine(TerminationState.REJECTED)
        assert sm.is_terminal
        assert sm.get_available_transitions() == []
