"""Termination workflow states and transitions.

State Machine Diagram:

    ┌──────────┐
    │ PENDING  │ ← Initial state (contract moves to PENDING_TERMINATION)
    └────┬─────┘
         │ accountant_approve
    ┌────▼────────────────┐
    │ ACCOUNTANT_APPROVED │
    └────┬────────────────┘
         │ owner_approve
    ┌────▼───────────┐
    │ OWNER_APPROVED │
    └────┬───────────┘
         │ complete (contract TERMINATED, units released)
    ┌────▼──────┐
    │ COMPLETED │
    └───────────┘

    reject is allowed from any of the three open states
    (contract returns to ACTIVE):

    PENDING / ACCOUNTANT_APPROVED / OWNER_APPROVED ──reject──► REJECTED
"""

from enum import Enum
from typing import Set, Dict, Optional, NamedTuple


class TerminationState(str, Enum):
    """States of a contract termination request."""

    PENDING = "PENDING"
    ACCOUNTANT_APPROVED = "ACCOUNTANT_APPROVED"
    OWNER_APPROVED = "OWNER_APPROVED"

    # Terminal states
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class TerminationAction(str, Enum):
    """Actions that create a request or move it between states."""

    CREATE = "create"                          # (none) → PENDING
    ACCOUNTANT_APPROVE = "accountant_approve"  # PENDING → ACCOUNTANT_APPROVED
    OWNER_APPROVE = "owner_approve"            # ACCOUNTANT_APPROVED → OWNER_APPROVED
    COMPLETE = "complete"                      # OWNER_APPROVED → COMPLETED
    REJECT = "reject"                          # any open state → REJECTED


# Permission each action requires, independent of the current state
ACTION_PERMISSIONS: Dict[TerminationAction, str] = {
    TerminationAction.CREATE: "terminations:create",
    TerminationAction.ACCOUNTANT_APPROVE: "terminations:accountant_approve",
    TerminationAction.OWNER_APPROVE: "terminations:owner_approve",
    TerminationAction.COMPLETE: "terminations:complete",
    TerminationAction.REJECT: "terminations:reject",
}


class TransitionRule(NamedTuple):
    """Defines a valid state transition."""
    from_state: TerminationState
    to_state: TerminationState
    transition: TerminationAction
    requires_permission: Optional[str] = None
    requires_comment: bool = False


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(TerminationState.PENDING, TerminationState.ACCOUNTANT_APPROVED,
                   TerminationAction.ACCOUNTANT_APPROVE,
                   ACTION_PERMISSIONS[TerminationAction.ACCOUNTANT_APPROVE]),
    TransitionRule(TerminationState.ACCOUNTANT_APPROVED, TerminationState.OWNER_APPROVED,
                   TerminationAction.OWNER_APPROVE,
                   ACTION_PERMISSIONS[TerminationAction.OWNER_APPROVE]),
    TransitionRule(TerminationState.OWNER_APPROVED, TerminationState.COMPLETED,
                   TerminationAction.COMPLETE,
                   ACTION_PERMISSIONS[TerminationAction.COMPLETE]),
]

# Rejection is possible from every open state and always needs a reason
for _state in (
    TerminationState.PENDING,
    TerminationState.ACCOUNTANT_APPROVED,
    TerminationState.OWNER_APPROVED,
):
    TRANSITION_RULES.append(
        TransitionRule(_state, TerminationState.REJECTED, TerminationAction.REJECT,
                       ACTION_PERMISSIONS[TerminationAction.REJECT], requires_comment=True)
    )

# Build lookup tables for efficient access
VALID_TRANSITIONS: Dict[TerminationState, Set[TerminationAction]] = {}
TRANSITION_TARGETS: Dict[tuple[TerminationState, TerminationAction], TransitionRule] = {}

for rule in TRANSITION_RULES:
    VALID_TRANSITIONS.setdefault(rule.from_state, set()).add(rule.transition)
    TRANSITION_TARGETS[(rule.from_state, rule.transition)] = rule


# No outgoing transitions; the request is immutable from here
TERMINAL_STATES: Set[TerminationState] = {
    TerminationState.COMPLETED,
    TerminationState.REJECTED,
}

# At most one request per contract may sit in one of these
OPEN_STATES: Set[TerminationState] = {
    TerminationState.PENDING,
    TerminationState.ACCOUNTANT_APPROVED,
    TerminationState.OWNER_APPROVED,
}


def can_transition(from_state: TerminationState, transition: TerminationAction) -> bool:
    """Check if a transition is valid from the given state."""
    valid = VALID_TRANSITIONS.get(from_state, set())
    return transition in valid


def get_transition_rule(
    from_state: TerminationState, transition: TerminationAction
) -> Optional[TransitionRule]:
    """Get the transition rule for a state/action combination."""
    return TRANSITION_TARGETS.get((from_state, transition))


def get_target_state(
    from_state: TerminationState, transition: TerminationAction
) -> Optional[TerminationState]:
    """Get the target state for a transition."""
    rule = get_transition_rule(from_state, transition)
    return rule.to_state if rule else None
