"""Contract termination approval workflow."""

from .states import (
    TerminationState,
    TerminationAction,
    TransitionRule,
    TRANSITION_RULES,
    VALID_TRANSITIONS,
    TERMINAL_STATES,
    OPEN_STATES,
    can_transition,
    get_transition_rule,
    get_target_state,
)
from .machine import TerminationStateMachine, TransitionError, PermissionDeniedError
from .service import TerminationService, BankDetails

__all__ = [
    "TerminationState",
    "TerminationAction",
    "TransitionRule",
    "TRANSITION_RULES",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "OPEN_STATES",
    "can_transition",
    "get_transition_rule",
    "get_target_state",
    "TerminationStateMachine",
    "TransitionError",
    "PermissionDeniedError",
    "TerminationService",
    "BankDetails",
]
