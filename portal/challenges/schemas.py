"""Pydantic v2 schemas for challenge review and winner selection."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from portal.shared.schemas.base import (
    BaseSchema,
    BulkAction,
    ChallengeCategory,
    ChallengeStatus,
    Recommendation,
    SubmissionStatus,
)

from .config import get_challenge_settings


def check_score_range(v: float | None) -> float | None:
    """Reject scores outside the configured scale (0 to 100 by default)."""
    if v is None:
        return None
    settings = get_challenge_settings()
    if not settings.score_min <= v <= settings.score_max:
        raise ValueError(f"Score must be between {settings.score_min} and {settings.score_max}")
    return v


# ===========================================
# CHALLENGES
# ===========================================


class WeightedCriterion(BaseSchema):
    """One judging criterion and its relative weight."""

    name: str = Field(min_length=1, max_length=100)
    weight: float = Field(default=1, ge=0)


def _unique_criteria(criteria: list[WeightedCriterion] | None) -> list[WeightedCriterion] | None:
    if criteria is None:
        return None
    names = [criterion.name for criterion in criteria]
    if len(names) != len(set(names)):
        raise ValueError("Criterion names must be unique")
    return criteria


class CreateChallengeRequest(BaseSchema):
    """Request to create a new challenge."""

    title: str = Field(min_length=5, max_length=255)
    description: str = Field(min_length=20)
    category: ChallengeCategory = ChallengeCategory.OTHER
    prize_description: str | None = None
    deadline: datetime | None = None
    judging_criteria: str | None = None
    criteria: list[WeightedCriterion] = Field(default_factory=list)
    status: Literal["draft", "active"] = "draft"

    check_criteria = field_validator("criteria")(_unique_criteria)


class UpdateChallengeRequest(BaseSchema):
    """Partial update of an existing challenge."""

    title: str | None = Field(default=None, min_length=5, max_length=255)
    description: str | None = Field(default=None, min_length=20)
    category: ChallengeCategory | None = None
    prize_description: str | None = None
    deadline: datetime | None = None
    judging_criteria: str | None = None
    criteria: list[WeightedCriterion] | None = None

    check_criteria = field_validator("criteria")(_unique_criteria)


class ChallengeStatusRequest(BaseSchema):
    """Manual challenge status change."""

    status: ChallengeStatus


class ChallengeResponse(BaseSchema):
    """Challenge details."""

    id: UUID
    title: str
    description: str
    category: str
    prize_description: str | None
    deadline: datetime | None
    judging_criteria: str | None
    criteria: list[WeightedCriterion]
    status: str
    author_id: UUID
    winners_announced_at: datetime | None
    created_at: datetime | None = None


# ===========================================
# REVIEWS
# ===========================================


class CriterionScore(BaseSchema):
    """A reviewer's score for one judging criterion."""

    name: str = Field(min_length=1, max_length=100)
    score: float

    @field_validator("score")
    @classmethod
    def validate_score(cls, v):
        return check_score_range(v)


class ReviewInput(BaseSchema):
    """A reviewer's evaluation of a submission.

    Either a flat ``score`` or per-criterion ``criterion_scores`` must be
    supplied; when criterion scores are present the overall score is derived
    from them.
    """

    score: float | None = None
    feedback: str
    recommendation: Recommendation
    criterion_scores: list[CriterionScore] = Field(default_factory=list)
    strengths: str | None = None
    weaknesses: str | None = None
    suggestions: str | None = None
    time_spent_minutes: int | None = Field(default=None, ge=0)

    @field_validator("score")
    @classmethod
    def validate_score(cls, v):
        return check_score_range(v)

    @field_validator("feedback")
    @classmethod
    def validate_feedback(cls, v: str) -> str:
        settings = get_challenge_settings()
        v = v.strip()
        if len(v) < settings.feedback_min_length:
            raise ValueError(
                f"Feedback must be at least {settings.feedback_min_length} characters"
            )
        if len(v) > settings.feedback_max_length:
            raise ValueError(
                f"Feedback must be at most {settings.feedback_max_length} characters"
            )
        return v

    @field_validator("strengths", "weaknesses", "suggestions")
    @classmethod
    def validate_notes(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        limit = get_challenge_settings().notes_max_length
        if len(v) > limit:
            raise ValueError(f"Must be at most {limit} characters")
        return v or None

    @field_validator("criterion_scores")
    @classmethod
    def validate_criterion_names(cls, v: list[CriterionScore]) -> list[CriterionScore]:
        names = [item.name for item in v]
        if len(names) != len(set(names)):
            raise ValueError("Each criterion may be scored only once")
        return v

    @model_validator(mode="after")
    def require_some_score(self) -> "ReviewInput":
        if self.score is None and not self.criterion_scores:
            raise ValueError("Provide either a score or per-criterion scores")
        return self

    def criterion_map(self) -> dict[str, float]:
        return {item.name: item.score for item in self.criterion_scores}


class ReviewResponse(BaseSchema):
    """Stored review."""

    id: UUID
    submission_id: UUID
    reviewer_id: UUID
    score: float
    feedback: str
    recommendation: str
    criteria_scores: dict[str, float]
    strengths: str | None
    weaknesses: str | None
    suggestions: str | None
    reviewed_at: datetime | None


# ===========================================
# SUBMISSIONS
# ===========================================


class StatusUpdateRequest(BaseSchema):
    """Manual submission status change."""

    status: SubmissionStatus
    comments: str | None = Field(default=None, max_length=1000)


class SubmissionResponse(BaseSchema):
    """Submission summary."""

    id: UUID
    challenge_id: UUID
    author_id: UUID
    title: str
    status: str
    is_team_submission: bool
    assigned_reviewer_id: UUID | None
    score: float | None
    ranking: int | None
    submitted_at: datetime | None
    winner_announced_at: datetime | None


class ReviewQueueItem(BaseSchema):
    """One entry of a reviewer's work queue."""

    submission_id: UUID
    challenge_id: UUID
    title: str
    challenge_title: str
    status: str
    priority: str
    deadline: datetime | None
    submitted_at: datetime | None
    assigned_to_me: bool = False


class ReviewerStats(BaseSchema):
    """A reviewer's own workload and scoring history."""

    reviewer_id: UUID
    total_reviews: int
    reviews_this_month: int
    reviews_this_week: int
    average_score: float
    pending_reviews: int


# ===========================================
# BULK ACTIONS
# ===========================================


class BulkReviewParams(BaseSchema):
    """Score and feedback applied to every submission in a bulk review."""

    score: float
    feedback: str
    recommendation: Recommendation = Recommendation.APPROVE

    @field_validator("score")
    @classmethod
    def validate_score(cls, v):
        return check_score_range(v)


class BulkApplyRequest(BaseSchema):
    """Apply one action to many submissions."""

    submission_ids: list[UUID] = Field(min_length=1)
    action: BulkAction
    review: BulkReviewParams | None = None

    @model_validator(mode="after")
    def require_review_params(self) -> "BulkApplyRequest":
        if self.action == BulkAction.REVIEW.value and self.review is None:
            raise ValueError("Bulk review requires a score and feedback")
        return self


class BulkFailure(BaseSchema):
    """Why one item of a bulk action failed."""

    submission_id: UUID
    error_type: str
    message: str


class BulkResult(BaseSchema):
    """Outcome of a bulk action; failures never abort the rest of the batch."""

    action: str
    succeeded: list[UUID] = Field(default_factory=list)
    failed: list[BulkFailure] = Field(default_factory=list)


# ===========================================
# WINNER SELECTION
# ===========================================


class WinnerSelectionRequest(BaseSchema):
    """Ranked winners (first id is 1st place) and the announcement."""

    submission_ids: list[UUID] = Field(default_factory=list)
    announcement_message: str = ""
    notify_winners: bool = True
    notify_participants: bool = True


class WinnerEntry(BaseSchema):
    """A submission marked as winner."""

    submission_id: UUID
    ranking: int
    title: str
    author_id: UUID


class WinnerSelectionResult(BaseSchema):
    """Result of completing a challenge with winners."""

    challenge_id: UUID
    winners: list[WinnerEntry]
    completed_count: int
    winners_announced_at: datetime


# ===========================================
# LEADERBOARDS & STATISTICS
# ===========================================


class LeaderboardEntry(BaseSchema):
    """Ranked submission by average review score."""

    rank: int
    submission_id: UUID
    title: str
    author_id: UUID
    author_name: str | None = None
    average_score: float
    review_count: int
    is_team_submission: bool = False


class ParticipantStanding(BaseSchema):
    """Ranked participant across all of their submissions."""

    rank: int
    user_id: UUID
    display_name: str | None = None
    submission_count: int
    reviewed_count: int
    average_score: float
    best_score: float


class TeamStanding(BaseSchema):
    """Ranked team submission."""

    rank: int
    submission_id: UUID
    title: str
    author_id: UUID
    team_size: int
    average_score: float
    review_count: int


class ChallengeStatistics(BaseSchema):
    """Aggregate numbers for one challenge."""

    total_submissions: int
    participant_count: int
    team_submissions: int
    individual_submissions: int
    reviewed_count: int
    average_score: float
    highest_score: float
    review_completion_rate: float
