"""Tests for workflow errors and their HTTP mapping."""

from uuid import uuid4

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from portal.challenges.exceptions import (
    AlreadyAssignedError,
    AlreadyCompletedError,
    ChallengeValidationError,
    ForbiddenError,
    InvalidAnnouncementError,
    InvalidTransitionError,
    NoSelectionError,
    NotFoundError,
    StateConflictError,
    TooManyWinnersError,
    UnavailableError,
    raise_http_exception,
)


def _status_for(error):
    with pytest.raises(HTTPException) as exc_info:
        raise_http_exception(error)
    return exc_info.value


class TestErrorKinds:
    def test_state_conflicts_share_a_base(self):
        for error in (
            InvalidTransitionError("submission", "rejected", "approved", []),
            AlreadyAssignedError(uuid4(), uuid4()),
            AlreadyCompletedError(uuid4(), "completed"),
        ):
            assert isinstance(error, StateConflictError)

    def test_selection_errors_are_validation_errors(self):
        assert isinstance(NoSelectionError(), ChallengeValidationError)
        assert isinstance(InvalidAnnouncementError(3, 50, 1000), ChallengeValidationError)

    def test_from_pydantic_collects_every_field(self):
        from portal.challenges.schemas import ReviewInput

        with pytest.raises(ValidationError) as exc_info:
            ReviewInput(score=-5, feedback="", recommendation="approve")
        error = ChallengeValidationError.from_pydantic(exc_info.value)

        assert set(error.field_errors) == {"score", "feedback"}
        assert error.error_type == "validation_error"


class TestHttpMapping:
    def test_validation_is_422_with_field_errors(self):
        exc = _status_for(ChallengeValidationError({"feedback": ["Too short"]}))
        assert exc.status_code == 422
        assert exc.detail["errors"] == {"feedback": ["Too short"]}
        assert exc.detail["type"].endswith("/validation_error")

    def test_conflicts_are_409(self):
        assert _status_for(AlreadyAssignedError(uuid4(), uuid4())).status_code == 409
        assert _status_for(AlreadyCompletedError(uuid4(), "completed")).status_code == 409

    def test_lookup_and_access(self):
        assert _status_for(NotFoundError("challenge", uuid4())).status_code == 404
        assert _status_for(ForbiddenError(uuid4(), "select_winners")).status_code == 403

    def test_limits_are_400(self):
        exc = _status_for(TooManyWinnersError(11, 10))
        assert exc.status_code == 400
        assert "errors" not in exc.detail

    def test_unavailable_is_503(self):
        exc = _status_for(UnavailableError("select_winners"))
        assert exc.status_code == 503
        assert "no changes were saved" in exc.detail["detail"]
