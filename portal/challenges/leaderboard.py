"""Leaderboards and statistics derived from reviewed submissions.

The ranking functions are pure and take loaded submissions (with
``reviews``, ``team_members`` and ``author``). Ranks are 1-based positions
in the filtered result; equal scores keep their input order.
"""

from collections.abc import Iterable, Sequence
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portal.shared.utils.logging import get_logger

from .config import get_challenge_settings
from .eligibility import is_leaderboard_eligible
from .exceptions import ChallengeValidationError, NotFoundError
from .repository import ChallengeRepository, SubmissionRepository
from .schemas import ChallengeStatistics, LeaderboardEntry, ParticipantStanding, TeamStanding
from .scoring import participant_aggregate, submission_average

logger = get_logger(__name__)

PARTICIPANT_SORT_KEYS = ("average_score", "best_score")


def _author_name(submission: Any) -> str | None:
    author = getattr(submission, "author", None)
    return getattr(author, "display_name", None) if author is not None else None


def _scored(submissions: Iterable[Any]) -> list[tuple[Any, float]]:
    """Leaderboard-eligible submissions with their average, best first."""
    scored = [
        (submission, submission_average(submission))
        for submission in submissions
        if is_leaderboard_eligible(submission)
    ]
    # sorted() stays stable with reverse=True
    return sorted(scored, key=lambda pair: pair[1], reverse=True)


def top_submissions(submissions: Iterable[Any], limit: int | None = None) -> list[LeaderboardEntry]:
    """Submissions ranked by average review score."""
    scored = _scored(submissions)
    if limit is not None:
        scored = scored[:limit]
    return [
        LeaderboardEntry(
            rank=rank,
            submission_id=submission.id,
            title=submission.title,
            author_id=submission.author_id,
            author_name=_author_name(submission),
            average_score=average,
            review_count=len(submission.reviews),
            is_team_submission=bool(submission.is_team_submission),
        )
        for rank, (submission, average) in enumerate(scored, start=1)
    ]


def top_participants(
    submissions: Iterable[Any],
    sort_by: str = "average_score",
    limit: int | None = None,
) -> list[ParticipantStanding]:
    """Participants ranked by the mean or the best of their submission averages.

    Every author is listed; one with no reviewed submission scores 0 on both.
    """
    if sort_by not in PARTICIPANT_SORT_KEYS:
        raise ChallengeValidationError(
            {"sort_by": [f"Must be one of {', '.join(PARTICIPANT_SORT_KEYS)}"]}
        )

    by_author: dict[UUID, list[Any]] = {}
    for submission in submissions:
        by_author.setdefault(submission.author_id, []).append(submission)

    standings = []
    for author_id, authored in by_author.items():
        averages = [submission_average(submission) for submission in authored]
        reviewed_count = sum(1 for average in averages if average is not None)
        average, best = participant_aggregate(averages)
        standings.append(
            {
                "user_id": author_id,
                "display_name": _author_name(authored[0]),
                "submission_count": len(authored),
                "reviewed_count": reviewed_count,
                "average_score": average,
                "best_score": best,
            }
        )

    standings.sort(key=lambda standing: standing[sort_by], reverse=True)
    if limit is not None:
        standings = standings[:limit]
    return [
        ParticipantStanding(rank=rank, **standing)
        for rank, standing in enumerate(standings, start=1)
    ]


def top_teams(submissions: Iterable[Any], limit: int | None = None) -> list[TeamStanding]:
    """Team submissions ranked by average review score; the author counts toward team size."""
    scored = _scored(submission for submission in submissions if submission.is_team_submission)
    if limit is not None:
        scored = scored[:limit]
    return [
        TeamStanding(
            rank=rank,
            submission_id=submission.id,
            title=submission.title,
            author_id=submission.author_id,
            team_size=len(submission.team_members) + 1,
            average_score=average,
            review_count=len(submission.reviews),
        )
        for rank, (submission, average) in enumerate(scored, start=1)
    ]


def challenge_statistics(submissions: Sequence[Any]) -> ChallengeStatistics:
    """Totals, participation and review progress of one challenge."""
    total = len(submissions)
    authors = {submission.author_id for submission in submissions}

    team_count = sum(1 for submission in submissions if submission.is_team_submission)
    averages = [
        average
        for average in (submission_average(submission) for submission in submissions)
        if average is not None
    ]
    reviewed_count = len(averages)

    return ChallengeStatistics(
        total_submissions=total,
        participant_count=len(authors),
        team_submissions=team_count,
        individual_submissions=total - team_count,
        reviewed_count=reviewed_count,
        average_score=sum(averages) / reviewed_count if averages else 0.0,
        highest_score=max(averages) if averages else 0.0,
        review_completion_rate=reviewed_count / total * 100 if total else 0.0,
    )


class ChallengeLeaderboard:
    """Loads a challenge's submissions and ranks them."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.challenges = ChallengeRepository(session)
        self.submissions = SubmissionRepository(session)
        self.settings = get_challenge_settings()

    async def _load(self, challenge_id: UUID) -> list[Any]:
        challenge = await self.challenges.get(challenge_id)
        if challenge is None:
            raise NotFoundError("challenge", challenge_id)
        return await self.submissions.list_for_challenge(challenge_id)

    async def get_top_submissions(
        self, challenge_id: UUID, limit: int | None = None
    ) -> list[LeaderboardEntry]:
        submissions = await self._load(challenge_id)
        return top_submissions(submissions, limit or self.settings.leaderboard_limit)

    async def get_top_participants(
        self,
        challenge_id: UUID,
        sort_by: str = "average_score",
        limit: int | None = None,
    ) -> list[ParticipantStanding]:
        submissions = await self._load(challenge_id)
        return top_participants(submissions, sort_by, limit or self.settings.leaderboard_limit)

    async def get_top_teams(self, challenge_id: UUID, limit: int | None = None) -> list[TeamStanding]:
        submissions = await self._load(challenge_id)
        return top_teams(submissions, limit or self.settings.leaderboard_limit)

    async def get_statistics(self, challenge_id: UUID) -> ChallengeStatistics:
        submissions = await self._load(challenge_id)
        stats = challenge_statistics(submissions)
        logger.debug(
            "challenge_statistics_computed",
            challenge_id=str(challenge_id),
            total=stats.total_submissions,
            reviewed=stats.reviewed_count,
        )
        return stats
