"""Challenge and submission lifecycle state machines.

Challenge: draft → active → judging → completed; any non-completed
state can also → cancelled. ``completed`` is reached only through
winner selection.

Submission: draft → submitted → under_review → reviewed →
{approved | needs_revision | rejected}; needs_revision → submitted.
``winner`` and ``completed`` are system targets set when a challenge
concludes and cannot be requested manually.
"""

from .exceptions import InvalidTransitionError

CHALLENGE_TRANSITIONS: dict[str, list[str]] = {
    "draft": ["active", "cancelled"],
    "active": ["judging", "completed", "cancelled"],
    "judging": ["completed", "cancelled"],
    "completed": [],    # terminal
    "cancelled": [],    # terminal
}

# Targets only winner selection may set.
CHALLENGE_SYSTEM_TARGETS = frozenset({"completed"})


SUBMISSION_TRANSITIONS: dict[str, list[str]] = {
    "draft": ["submitted"],
    "submitted": ["under_review", "reviewed", "rejected"],
    "under_review": ["reviewed", "approved", "needs_revision", "rejected"],
    # reviewed → reviewed covers a reviewer re-submitting their review
    "reviewed": ["reviewed", "approved", "needs_revision", "rejected", "winner"],
    "needs_revision": ["submitted"],
    "approved": ["winner"],
    "rejected": [],
    "winner": [],       # terminal
    "completed": [],    # terminal
}

SUBMISSION_SYSTEM_TARGETS = frozenset({"winner", "completed"})
SUBMISSION_TERMINAL_STATES = frozenset({"winner", "completed"})


def can_transition_challenge(current: str, target: str, *, system: bool = False) -> bool:
    """Check if a challenge state transition is valid."""
    if target in CHALLENGE_SYSTEM_TARGETS and not system:
        return False
    return target in CHALLENGE_TRANSITIONS.get(current, [])


def validate_challenge_transition(current: str, target: str, *, system: bool = False) -> None:
    """Validate a challenge transition, raising InvalidTransitionError if invalid."""
    if not can_transition_challenge(current, target, system=system):
        allowed = [
            state
            for state in CHALLENGE_TRANSITIONS.get(current, [])
            if system or state not in CHALLENGE_SYSTEM_TARGETS
        ]
        raise InvalidTransitionError("challenge", current, target, allowed)


def can_transition_submission(current: str, target: str, *, system: bool = False) -> bool:
    """Check if a submission state transition is valid.

    ``completed`` is reachable from every non-terminal state, but only for
    the system when a challenge concludes.
    """
    if target in SUBMISSION_SYSTEM_TARGETS and not system:
        return False
    if target == "completed":
        return current not in SUBMISSION_TERMINAL_STATES
    return target in SUBMISSION_TRANSITIONS.get(current, [])


def validate_submission_transition(current: str, target: str, *, system: bool = False) -> None:
    """Validate a submission transition, raising InvalidTransitionError if invalid."""
    if not can_transition_submission(current, target, system=system):
        allowed = [
            state
            for state in SUBMISSION_TRANSITIONS.get(current, [])
            if system or state not in SUBMISSION_SYSTEM_TARGETS
        ]
        raise InvalidTransitionError("submission", current, target, allowed)
