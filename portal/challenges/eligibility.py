"""Eligibility predicates for review, leaderboards and winner selection.

Each rule exists twice: as a plain predicate over loaded objects and as a
SQLAlchemy clause for building queries. Neither form mutates anything.
"""

from typing import Any

from sqlalchemy import ColumnElement, and_

from portal.infrastructure.database.models import Challenge, ChallengeSubmission

REVIEWABLE_CHALLENGE_STATUSES = frozenset({"active", "judging"})
WINNER_ELIGIBLE_STATUSES = frozenset({"reviewed", "approved"})
ASSIGNABLE_SUBMISSION_STATUSES = frozenset({"submitted", "under_review"})


def is_reviewable(challenge: Any) -> bool:
    """Submissions of this challenge may be assigned and reviewed."""
    return challenge.status in REVIEWABLE_CHALLENGE_STATUSES


def is_winner_eligible(submission: Any) -> bool:
    """Reviewed or approved, with at least one review."""
    return submission.status in WINNER_ELIGIBLE_STATUSES and len(submission.reviews) > 0


def is_leaderboard_eligible(submission: Any) -> bool:
    """At least one review, whatever the status."""
    return len(submission.reviews) > 0


def reviewable_challenge_clause() -> ColumnElement[bool]:
    return Challenge.status.in_(sorted(REVIEWABLE_CHALLENGE_STATUSES))


def winner_eligible_clause() -> ColumnElement[bool]:
    return and_(
        ChallengeSubmission.status.in_(sorted(WINNER_ELIGIBLE_STATUSES)),
        ChallengeSubmission.reviews.any(),
    )


def leaderboard_eligible_clause() -> ColumnElement[bool]:
    return ChallengeSubmission.reviews.any()
