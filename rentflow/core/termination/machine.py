"""Termination state machine.

Pure transition guard: validates the move from the current state, the
actor's permission and the required comment, and records what happened.
Persistence and side effects live in ``service``.
"""

from datetime import datetime
from typing import Optional, Dict, Any, Iterable
from uuid import UUID

from rentflow.core.errors import InvalidState, Unauthorized, ValidationError
from rentflow.core.rbac.checker import PermissionChecker
from .states import (
    TerminationState,
    TerminationAction,
    can_transition,
    get_transition_rule,
    TERMINAL_STATES,
)


class TransitionError(InvalidState):
    """Raised when a transition is not allowed from the current state."""

    def __init__(self, message: str, from_state: TerminationState, transition: TerminationAction):
        super().__init__(message)
        self.from_state = from_state
        self.transition = transition


class PermissionDeniedError(Unauthorized):
    """Raised when the actor lacks the permission a transition needs."""

    def __init__(self, required_permission: str):
        super().__init__("Insufficient permissions", detail=f"Required: {required_permission}")
        self.required_permission = required_permission


class TerminationStateMachine:
    """
    State machine for one termination request.

    Manages transitions between termination states with:
    - Validation of valid transitions
    - Permission checking for every transition
    - A record of each transition performed
    """

    def __init__(
        self,
        request_id: UUID,
        current_state: TerminationState,
        *,
        user_permissions: Optional[Iterable[str]] = None,
    ):
        self.request_id = request_id
        self._state = TerminationState(current_state)
        self._checker = PermissionChecker(user_permissions or [])
        self._transition_history: list[Dict[str, Any]] = []

    @property
    def state(self) -> TerminationState:
        """Current state of the request."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal (no further transitions)."""
        return self._state in TERMINAL_STATES

    def can_perform(self, transition: TerminationAction) -> bool:
        """Check if a transition can be performed from current state."""
        rule = get_transition_rule(self._state, transition)
        if rule is None:
            return False
        if rule.requires_permission and not self._checker.has_permission(rule.requires_permission):
            return False
        return True

    def get_available_transitions(self) -> list[TerminationAction]:
        """Get list of transitions available from current state."""
        return [t for t in TerminationAction if self.can_perform(t)]

    def transition(
        self,
        transition: TerminationAction,
        *,
        comment: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> TerminationState:
        """
        Perform a state transition.

        Args:
            transition: The transition to perform
            comment: Comment, required for rejections
            user_id: ID of user performing the transition

        Returns:
            The new state after transition

        Raises:
            TransitionError: If the transition is invalid from the current state
            PermissionDeniedError: If the actor lacks the required permission
            ValidationError: If a required comment is missing
        """
        if not can_transition(self._state, transition):
            raise TransitionError(
                f"Cannot {transition.value.replace('_', ' ')} a request in status {self._state.value}",
                self._state,
                transition,
            )

        rule = get_transition_rule(self._state, transition)

        if rule.requires_permission and not self._checker.has_permission(rule.requires_permission):
            raise PermissionDeniedError(rule.requires_permission)

        if rule.requires_comment and not (comment and comment.strip()):
            raise ValidationError(f"A reason is required to {transition.value}")

        from_state = self._state
        self._transition_history.append({
            "request_id": self.request_id,
            "from_state": from_state.value,
            "to_state": rule.to_state.value,
            "transition": transition.value,
            "user_id": user_id,
            "comment": comment,
            "timestamp": datetime.utcnow(),
        })
        self._state = rule.to_state

        return self._state

    def get_history(self) -> list[Dict[str, Any]]:
        """Get the transitions performed through this machine."""
        return self._transition_history.copy()
