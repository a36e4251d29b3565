"""Shared schemas."""

from portal.shared.schemas.base import (
    BaseSchema,
    BulkAction,
    ChallengeCategory,
    ChallengeStatus,
    ErrorDetail,
    PriorityTier,
    Recommendation,
    SubmissionStatus,
)

__all__ = [
    "BaseSchema",
    "BulkAction",
    "ChallengeCategory",
    "ChallengeStatus",
    "ErrorDetail",
    "PriorityTier",
    "Recommendation",
    "SubmissionStatus",
]
