"""Challenge, submission, review and user test data factories."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any
from uuid import UUID, uuid4


def _utcnow() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


@dataclass
class UserFactory:
    """Factory for portal users."""

    _counter: int = field(default=0, repr=False)

    @classmethod
    def create(cls, user_id: UUID | None = None, display_name: str | None = None, **kwargs: Any):
        cls._counter = getattr(cls, "_counter", 0) + 1
        return SimpleNamespace(
            id=user_id or uuid4(),
            email=f"user_{cls._counter}@example.com",
            display_name=display_name or f"User {cls._counter}",
            roles=kwargs.pop("roles", ["employee"]),
            **kwargs,
        )


@dataclass
class ChallengeFactory:
    """Factory for challenges."""

    _counter: int = field(default=0, repr=False)

    @classmethod
    def create(
        cls,
        status: str = "active",
        deadline: datetime | None = None,
        criteria: list[dict[str, Any]] | None = None,
        author_id: UUID | None = None,
        **kwargs: Any,
    ):
        cls._counter = getattr(cls, "_counter", 0) + 1
        now = _utcnow()
        values = {
            "id": uuid4(),
            "title": f"Test Challenge {cls._counter}",
            "description": "Reduce energy use across the plant floor.",
            "category": "sustainability",
            "prize_description": None,
            "deadline": deadline if deadline is not None else now + timedelta(days=14),
            "judging_criteria": None,
            "criteria": criteria if criteria is not None else [],
            "status": status,
            "author_id": author_id or uuid4(),
            "winners_announced_at": None,
            "created_at": now,
            "updated_at": now,
        }
        values.update(kwargs)
        return SimpleNamespace(**values)


@dataclass
class ReviewFactory:
    """Factory for reviews."""

    @classmethod
    def create(cls, score: float = 80.0, submission_id: UUID | None = None, **kwargs: Any):
        values = {
            "id": uuid4(),
            "submission_id": submission_id or uuid4(),
            "reviewer_id": uuid4(),
            "score": score,
            "feedback": "Clear problem statement and a realistic rollout plan.",
            "recommendation": "approve",
            "criteria_scores": {},
            "strengths": None,
            "weaknesses": None,
            "suggestions": None,
            "time_spent_minutes": None,
            "reviewed_at": _utcnow(),
        }
        values.update(kwargs)
        return SimpleNamespace(**values)


@dataclass
class SubmissionFactory:
    """Factory for submissions."""

    _counter: int = field(default=0, repr=False)

    @classmethod
    def create(
        cls,
        challenge=None,
        status: str = "submitted",
        scores: list[float] | None = None,
        author=None,
        team_members: list | None = None,
        **kwargs: Any,
    ):
        cls._counter = getattr(cls, "_counter", 0) + 1
        challenge = challenge or ChallengeFactory.create()
        author = author or UserFactory.create()
        submission_id = kwargs.pop("id", None) or uuid4()
        reviews = [ReviewFactory.create(score=s, submission_id=submission_id) for s in scores or []]
        members = team_members or []
        values = {
            "id": submission_id,
            "challenge_id": challenge.id,
            "challenge": challenge,
            "author_id": author.id,
            "author": author,
            "title": f"Submission {cls._counter}",
            "description": "Install motion sensors on conveyor lighting.",
            "is_team_submission": bool(members),
            "team_members": members,
            "status": status,
            "assigned_reviewer_id": None,
            "score": None,
            "ranking": None,
            "reviews": reviews,
            "submitted_at": _utcnow(),
            "winner_announced_at": None,
        }
        values.update(kwargs)
        return SimpleNamespace(**values)
