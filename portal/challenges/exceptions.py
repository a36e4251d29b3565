"""Custom exceptions for the challenge review workflows."""

from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from pydantic import ValidationError as PydanticValidationError


class ChallengeServiceError(Exception):
    """Base exception for challenge workflow errors."""

    def __init__(self, message: str, error_type: str = "challenge_service_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(message)


# ===========================================
# VALIDATION
# ===========================================


class ChallengeValidationError(ChallengeServiceError):
    """Raised when user-supplied input fails field-level validation."""

    def __init__(
        self,
        field_errors: dict[str, list[str]],
        message: str | None = None,
        error_type: str = "validation_error",
    ):
        fields = ", ".join(sorted(field_errors))
        super().__init__(message or f"Invalid input for: {fields}", error_type)
        self.field_errors = field_errors

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ChallengeValidationError":
        """Collect every failing field of a pydantic error into one exception."""
        field_errors: dict[str, list[str]] = {}
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"]) or "__root__"
            field_errors.setdefault(location, []).append(error["msg"])
        return cls(field_errors)


class NoSelectionError(ChallengeValidationError):
    """Raised when winner selection is attempted with no submissions."""

    def __init__(self):
        super().__init__(
            {"submission_ids": ["Select at least one winning submission"]},
            "No submissions were selected as winners",
            "no_selection",
        )


class InvalidAnnouncementError(ChallengeValidationError):
    """Raised when the winner announcement message has the wrong length."""

    def __init__(self, length: int, min_length: int, max_length: int):
        super().__init__(
            {
                "announcement_message": [
                    f"Announcement must be between {min_length} and {max_length} characters "
                    f"(got {length})"
                ]
            },
            "Announcement message is invalid",
            "invalid_announcement",
        )
        self.length = length


# ===========================================
# STATE CONFLICTS
# ===========================================


class StateConflictError(ChallengeServiceError):
    """Raised when the requested change is invalid for the current state."""

    def __init__(self, message: str, error_type: str = "state_conflict"):
        super().__init__(message, error_type)


class InvalidTransitionError(StateConflictError):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, entity: str, current_status: str, target_status: str, allowed: list[str]):
        super().__init__(
            f"Cannot transition {entity} from '{current_status}' to '{target_status}'. "
            f"Allowed from '{current_status}': {allowed}",
            "invalid_transition",
        )
        self.entity = entity
        self.current_status = current_status
        self.target_status = target_status


class AlreadyAssignedError(StateConflictError):
    """Raised when a submission is already held by a different reviewer."""

    def __init__(self, submission_id: UUID, reviewer_id: UUID):
        super().__init__(
            f"Submission {submission_id} is already assigned to another reviewer",
            "already_assigned",
        )
        self.submission_id = submission_id
        self.reviewer_id = reviewer_id


class AlreadyCompletedError(StateConflictError):
    """Raised when a challenge is no longer open for winner selection."""

    def __init__(self, challenge_id: UUID, current_status: str):
        super().__init__(
            f"Challenge {challenge_id} is '{current_status}' and cannot accept winners",
            "already_completed",
        )
        self.challenge_id = challenge_id
        self.current_status = current_status


class ChallengeClosedError(StateConflictError):
    """Raised when a challenge can no longer be edited or reviewed."""

    def __init__(self, challenge_id: UUID, current_status: str):
        super().__init__(
            f"Challenge {challenge_id} is '{current_status}' and cannot be changed",
            "challenge_closed",
        )
        self.challenge_id = challenge_id


# ===========================================
# LOOKUP / ACCESS / LIMITS
# ===========================================


class NotFoundError(ChallengeServiceError):
    """Raised when a referenced challenge or submission does not exist."""

    def __init__(self, entity: str, identifier: Any):
        super().__init__(f"{entity.capitalize()} '{identifier}' not found", "not_found")
        self.entity = entity
        self.identifier = identifier


class ForbiddenError(ChallengeServiceError):
    """Raised when the authorizer denies an action."""

    def __init__(self, actor_id: Any, action: str):
        super().__init__(f"User {actor_id} is not allowed to {action}", "forbidden")
        self.actor_id = actor_id
        self.action = action


class LimitExceededError(ChallengeServiceError):
    """Raised when a request exceeds a configured limit."""

    def __init__(self, message: str, limit: int, error_type: str = "limit_exceeded"):
        super().__init__(message, error_type)
        self.limit = limit


class TooManyWinnersError(LimitExceededError):
    """Raised when more winners are selected than allowed."""

    def __init__(self, selected: int, limit: int):
        super().__init__(
            f"Selected {selected} winners but at most {limit} are allowed",
            limit,
            "too_many_winners",
        )
        self.selected = selected


class UnavailableError(ChallengeServiceError):
    """Raised when persistence fails and the transaction was rolled back."""

    def __init__(self, operation: str):
        super().__init__(
            f"Could not complete '{operation}'; no changes were saved. Please retry.",
            "unavailable",
        )
        self.operation = operation


def raise_http_exception(error: ChallengeServiceError) -> None:
    """Convert ChallengeServiceError to HTTPException."""
    status_map = {
        "validation_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "no_selection": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "invalid_announcement": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "state_conflict": status.HTTP_409_CONFLICT,
        "invalid_transition": status.HTTP_409_CONFLICT,
        "already_assigned": status.HTTP_409_CONFLICT,
        "already_completed": status.HTTP_409_CONFLICT,
        "challenge_closed": status.HTTP_409_CONFLICT,
        "not_found": status.HTTP_404_NOT_FOUND,
        "forbidden": status.HTTP_403_FORBIDDEN,
        "limit_exceeded": status.HTTP_400_BAD_REQUEST,
        "too_many_winners": status.HTTP_400_BAD_REQUEST,
        "unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
        "challenge_service_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    status_code = status_map.get(error.error_type, status.HTTP_500_INTERNAL_SERVER_ERROR)

    detail: dict[str, Any] = {
        "type": f"https://portal.example.com/errors/{error.error_type}",
        "title": error.error_type.replace("_", " ").title(),
        "status": status_code,
        "detail": error.message,
    }
    if isinstance(error, ChallengeValidationError):
        detail["errors"] = error.field_errors

    raise HTTPException(status_code=status_code, detail=detail)
