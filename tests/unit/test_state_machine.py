"""Unit tests for challenge and submission state machines."""

import pytest

from portal.challenges.exceptions import InvalidTransitionError
from portal.challenges.state_machine import (
    can_transition_challenge,
    can_transition_submission,
    validate_challenge_transition,
    validate_submission_transition,
)


class TestChallengeCanTransition:
    def test_draft_to_active(self):
        assert can_transition_challenge("draft", "active") is True

    def test_active_to_judging(self):
        assert can_transition_challenge("active", "judging") is True

    def test_any_open_state_to_cancelled(self):
        for state in ["draft", "active", "judging"]:
            assert can_transition_challenge(state, "cancelled") is True

    def test_completed_only_for_system(self):
        assert can_transition_challenge("judging", "completed") is False
        assert can_transition_challenge("judging", "completed", system=True) is True
        assert can_transition_challenge("active", "completed", system=True) is True

    def test_draft_cannot_complete(self):
        assert can_transition_challenge("draft", "completed", system=True) is False

    def test_terminal_states(self):
        for target in ["draft", "active", "judging", "completed", "cancelled"]:
            assert can_transition_challenge("completed", target, system=True) is False
            assert can_transition_challenge("cancelled", target, system=True) is False

    def test_no_backward_transitions(self):
        assert can_transition_challenge("active", "draft") is False
        assert can_transition_challenge("judging", "active") is False


class TestSubmissionCanTransition:
    def test_happy_path(self):
        states = ["draft", "submitted", "under_review", "reviewed", "approved"]
        for i in range(len(states) - 1):
            assert can_transition_submission(states[i], states[i + 1]) is True

    def test_review_can_be_resubmitted(self):
        assert can_transition_submission("reviewed", "reviewed") is True

    def test_needs_revision_returns_to_submitted(self):
        assert can_transition_submission("needs_revision", "submitted") is True

    def test_winner_is_system_only(self):
        assert can_transition_submission("approved", "winner") is False
        assert can_transition_submission("approved", "winner", system=True) is True
        assert can_transition_submission("reviewed", "winner", system=True) is True

    def test_completed_from_any_open_state(self):
        for state in ["submitted", "under_review", "reviewed", "approved", "rejected", "needs_revision"]:
            assert can_transition_submission(state, "completed", system=True) is True
            assert can_transition_submission(state, "completed") is False

    def test_terminal_states(self):
        for state in ["winner", "completed"]:
            for target in ["submitted", "reviewed", "approved", "winner", "completed"]:
                assert can_transition_submission(state, target, system=True) is False

    def test_rejected_cannot_be_approved(self):
        assert can_transition_submission("rejected", "approved") is False


class TestValidateTransition:
    def test_valid_passes(self):
        validate_challenge_transition("draft", "active")
        validate_submission_transition("submitted", "under_review")

    def test_invalid_raises(self):
        with pytest.raises(InvalidTransitionError, match="Cannot transition"):
            validate_challenge_transition("draft", "judging")

    def test_error_lists_allowed_without_system_targets(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_submission_transition("approved", "winner")
        assert exc_info.value.error_type == "invalid_transition"
        assert "[]" in exc_info.value.message
        assert exc_info.value.target_status == "winner"
