"""Base schemas and common types used across the portal."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ===========================================
# ENUMS
# ===========================================


class ChallengeCategory(str, Enum):
    """Topic area a challenge belongs to."""

    TECHNOLOGY = "technology"
    SUSTAINABILITY = "sustainability"
    SAFETY = "safety"
    INNOVATION = "innovation"
    INFRASTRUCTURE = "infrastructure"
    OPERATIONS = "operations"
    OTHER = "other"


class ChallengeStatus(str, Enum):
    """Lifecycle status of a challenge."""

    DRAFT = "draft"
    ACTIVE = "active"
    JUDGING = "judging"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SubmissionStatus(str, Enum):
    """Lifecycle status of a challenge submission."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    REVIEWED = "reviewed"
    NEEDS_REVISION = "needs_revision"
    APPROVED = "approved"
    REJECTED = "rejected"
    WINNER = "winner"
    COMPLETED = "completed"


class Recommendation(str, Enum):
    """Reviewer recommendation attached to a review."""

    APPROVE = "approve"
    REJECT = "reject"
    NEEDS_REVISION = "needs_revision"


class PriorityTier(str, Enum):
    """Review urgency derived from time left until a challenge deadline."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class BulkAction(str, Enum):
    """Actions a reviewer can apply to many submissions at once."""

    APPROVE = "approve"
    REJECT = "reject"
    REVIEW = "review"


# ===========================================
# BASE MODELS
# ===========================================


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )


# ===========================================
# ERROR RESPONSES
# ===========================================


class ErrorDetail(BaseSchema):
    """RFC 7807 Problem Details format."""

    type: str = Field(description="URI reference identifying the problem type")
    title: str = Field(description="Short, human-readable summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(description="Human-readable explanation")
    errors: dict[str, list[str]] | None = Field(
        default=None,
        description="Field-level validation errors",
    )
    extra: dict[str, Any] | None = None
