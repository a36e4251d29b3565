"""Repository layer for challenge, submission and review persistence."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portal.infrastructure.database.models import (
    Challenge,
    ChallengeReview,
    ChallengeSubmission,
    submission_team_members,
)
from portal.shared.utils.logging import get_logger

from .eligibility import (
    ASSIGNABLE_SUBMISSION_STATUSES,
    reviewable_challenge_clause,
    winner_eligible_clause,
)

logger = get_logger(__name__)


class ChallengeRepository:
    """Repository for challenge rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs: Any) -> Challenge:
        challenge = Challenge(**kwargs)
        self.session.add(challenge)
        await self.session.flush()
        return challenge

    async def get(self, challenge_id: UUID, for_update: bool = False) -> Challenge | None:
        """Load a challenge; ``for_update`` takes a row lock until commit."""
        query = select(Challenge).where(Challenge.id == challenge_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_expired_active(self, now: datetime) -> list[Challenge]:
        query = (
            select(Challenge)
            .where(
                Challenge.status == "active",
                Challenge.deadline.is_not(None),
                Challenge.deadline <= now,
            )
            .with_for_update(skip_locked=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_submissions(self, challenge_id: UUID) -> int:
        query = select(func.count()).select_from(ChallengeSubmission).where(
            ChallengeSubmission.challenge_id == challenge_id,
            ChallengeSubmission.status != "draft",
        )
        result = await self.session.execute(query)
        return result.scalar_one()


class SubmissionRepository:
    """Repository for submission rows and the multi-row winner updates."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, submission_id: UUID, for_update: bool = False) -> ChallengeSubmission | None:
        """Load a submission with its challenge and reviews.

        With ``for_update`` the submission row is locked, which serializes
        concurrent assignment and review of the same submission.
        """
        query = (
            select(ChallengeSubmission)
            .where(ChallengeSubmission.id == submission_id)
            .options(
                selectinload(ChallengeSubmission.challenge),
                selectinload(ChallengeSubmission.reviews),
            )
        )
        if for_update:
            query = query.with_for_update(of=ChallengeSubmission).execution_options(
                populate_existing=True
            )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_for_challenge(self, challenge_id: UUID) -> list[ChallengeSubmission]:
        query = (
            select(ChallengeSubmission)
            .where(ChallengeSubmission.challenge_id == challenge_id)
            .options(
                selectinload(ChallengeSubmission.reviews),
                selectinload(ChallengeSubmission.team_members),
                selectinload(ChallengeSubmission.author),
            )
            .order_by(ChallengeSubmission.submitted_at.asc(), ChallengeSubmission.id.asc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_winner_eligible(self, challenge_id: UUID) -> list[ChallengeSubmission]:
        query = (
            select(ChallengeSubmission)
            .where(ChallengeSubmission.challenge_id == challenge_id, winner_eligible_clause())
            .options(selectinload(ChallengeSubmission.team_members))
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def participant_ids(self, challenge_id: UUID) -> set[UUID]:
        """Authors and team members of every submission to the challenge."""
        authors = await self.session.execute(
            select(ChallengeSubmission.author_id).where(
                ChallengeSubmission.challenge_id == challenge_id
            )
        )
        members = await self.session.execute(
            select(submission_team_members.c.user_id)
            .join(
                ChallengeSubmission,
                ChallengeSubmission.id == submission_team_members.c.submission_id,
            )
            .where(ChallengeSubmission.challenge_id == challenge_id)
        )
        return set(authors.scalars().all()) | set(members.scalars().all())

    async def mark_winner(
        self,
        challenge_id: UUID,
        submission_id: UUID,
        ranking: int,
        announced_at: datetime,
    ) -> None:
        await self.session.execute(
            update(ChallengeSubmission)
            .where(
                ChallengeSubmission.id == submission_id,
                ChallengeSubmission.challenge_id == challenge_id,
            )
            .values(status="winner", ranking=ranking, winner_announced_at=announced_at)
            .execution_options(synchronize_session="fetch")
        )

    async def complete_others(self, challenge_id: UUID, winner_ids: list[UUID]) -> int:
        """Move every non-winning submission of the challenge to ``completed``."""
        result = await self.session.execute(
            update(ChallengeSubmission)
            .where(
                ChallengeSubmission.challenge_id == challenge_id,
                ChallengeSubmission.status != "winner",
                ChallengeSubmission.id.not_in(winner_ids),
            )
            .values(status="completed", ranking=None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    @staticmethod
    def _open_for_reviewer(reviewer_id: UUID) -> list[ColumnElement[bool]]:
        """Open submissions in reviewable challenges the reviewer may still review."""
        return [
            reviewable_challenge_clause(),
            ChallengeSubmission.status.in_(sorted(ASSIGNABLE_SUBMISSION_STATUSES)),
            ChallengeSubmission.author_id != reviewer_id,
            Challenge.author_id != reviewer_id,
            or_(
                ChallengeSubmission.assigned_reviewer_id.is_(None),
                ChallengeSubmission.assigned_reviewer_id == reviewer_id,
            ),
            ~ChallengeSubmission.reviews.any(ChallengeReview.reviewer_id == reviewer_id),
        ]

    async def review_queue(self, reviewer_id: UUID, limit: int) -> list[ChallengeSubmission]:
        """Open submissions the reviewer may pick up, earliest deadline first."""
        query = (
            select(ChallengeSubmission)
            .join(Challenge, Challenge.id == ChallengeSubmission.challenge_id)
            .where(*self._open_for_reviewer(reviewer_id))
            .options(selectinload(ChallengeSubmission.challenge))
            .order_by(
                Challenge.deadline.asc().nulls_last(),
                ChallengeSubmission.submitted_at.asc(),
            )
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_review_queue(self, reviewer_id: UUID) -> int:
        query = (
            select(func.count())
            .select_from(ChallengeSubmission)
            .join(Challenge, Challenge.id == ChallengeSubmission.challenge_id)
            .where(*self._open_for_reviewer(reviewer_id))
        )
        result = await self.session.execute(query)
        return int(result.scalar_one())


class ReviewRepository:
    """Find-or-create-then-update access to reviews keyed by (submission, reviewer)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_reviewer(self, submission_id: UUID, reviewer_id: UUID) -> ChallengeReview | None:
        result = await self.session.execute(
            select(ChallengeReview).where(
                ChallengeReview.submission_id == submission_id,
                ChallengeReview.reviewer_id == reviewer_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        submission_id: UUID,
        reviewer_id: UUID,
        **fields: Any,
    ) -> tuple[ChallengeReview, bool]:
        """Create the reviewer's review or update it in place.

        Returns:
            ``(review, created)``
        """
        review = await self.get_for_reviewer(submission_id, reviewer_id)
        created = review is None
        if review is None:
            review = ChallengeReview(submission_id=submission_id, reviewer_id=reviewer_id, **fields)
            self.session.add(review)
        else:
            for key, value in fields.items():
                setattr(review, key, value)
        await self.session.flush()
        return review, created

    async def scores_for_submission(self, submission_id: UUID) -> list[float]:
        result = await self.session.execute(
            select(ChallengeReview.score).where(ChallengeReview.submission_id == submission_id)
        )
        return [float(score) for score in result.scalars().all()]

    async def stats_for_reviewer(
        self,
        reviewer_id: UUID,
        month_start: datetime,
        week_start: datetime,
    ) -> dict[str, Any]:
        """Review counts since each cut-off and the mean score given, in one query."""
        query = select(
            func.count(ChallengeReview.id).label("total_reviews"),
            func.count(ChallengeReview.id)
            .filter(ChallengeReview.created_at >= month_start)
            .label("reviews_this_month"),
            func.count(ChallengeReview.id)
            .filter(ChallengeReview.created_at >= week_start)
            .label("reviews_this_week"),
            func.avg(ChallengeReview.score).label("average_score"),
        ).where(ChallengeReview.reviewer_id == reviewer_id)
        row = (await self.session.execute(query)).one()
        return dict(row._mapping)
