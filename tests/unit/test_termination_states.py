"""Tests for termination workflow states and transition tables."""

import pytest

from rentflow.core.termination.states import (
    ACTION_PERMISSIONS,
    OPEN_STATES,
    TERMINAL_STATES,
    TRANSITION_RULES,
    TerminationAction,
    TerminationState,
    can_transition,
    get_target_state,
    get_transition_rule,
)


class TestTerminationStates:
    """Test state definitions."""

    def test_all_states_defined(self):
        expected = ["PENDING", "ACCOUNTANT_APPROVED", "OWNER_APPROVED", "COMPLETED", "REJECTED"]
        assert [s.value for s in TerminationState] == expected

    def test_terminal_states(self):
        assert TERMINAL_STATES == {TerminationState.COMPLETED, TerminationState.REJECTED}

    def test_open_and_terminal_states_partition_all_states(self):
        assert OPEN_STATES | TERMINAL_STATES == set(TerminationState)
        assert not OPEN_STATES & TERMINAL_STATES


class TestTerminationTransitions:
    """Test the transition table."""

    @pytest.mark.parametrize("from_state,action,to_state", [
        (TerminationState.PENDING, TerminationAction.ACCOUNTANT_APPROVE, TerminationState.ACCOUNTANT_APPROVED),
        (TerminationState.ACCOUNTANT_APPROVED, TerminationAction.OWNER_APPROVE, TerminationState.OWNER_APPROVED),
        (TerminationState.OWNER_APPROVED, TerminationAction.COMPLETE, TerminationState.COMPLETED),
    ])
    def test_forward_path(self, from_state, action, to_state):
        assert can_transition(from_state, action)
        assert get_target_state(from_state, action) == to_state

    @pytest.mark.parametrize("state", sorted(OPEN_STATES, key=lambda s: s.value))
    def test_reject_allowed_from_every_open_state(self, state):
        rule = get_transition_rule(state, TerminationAction.REJECT)
        assert rule is not None
        assert rule.to_state == TerminationState.REJECTED
        assert rule.requires_comment

    @pytest.mark.parametrize("state", [TerminationState.COMPLETED, TerminationState.REJECTED])
    def test_terminal_states_have_no_transitions(self, state):
        for action in TerminationAction:
            assert not can_transition(state, action)

    def test_steps_cannot_be_skipped(self):
        assert not can_transition(TerminationState.PENDING, TerminationAction.OWNER_APPROVE)
        assert not can_transition(TerminationState.PENDING, TerminationAction.COMPLETE)
        assert not can_transition(TerminationState.ACCOUNTANT_APPROVED, TerminationAction.COMPLETE)

    def test_create_is_not_a_state_transition(self):
        for state in TerminationState:
            assert not can_transition(state, TerminationAction.CREATE)

    def test_every_rule_names_its_action_permission(self):
        for rule in TRANSITION_RULES:
            assert rule.requires_permission == ACTION_PERMISSIONS[rule.transition]
