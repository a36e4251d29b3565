"""Review urgency tiers derived from challenge deadlines."""

from datetime import datetime, timedelta

from portal.shared.schemas.base import PriorityTier
from portal.shared.utils.datetime_utils import ensure_utc, utcnow

from .config import ChallengeSettings, get_challenge_settings

PRIORITY_ORDER: dict[str, int] = {
    PriorityTier.URGENT.value: 0,
    PriorityTier.HIGH.value: 1,
    PriorityTier.MEDIUM.value: 2,
    PriorityTier.LOW.value: 3,
}


def classify_priority(
    deadline: datetime | None,
    now: datetime | None = None,
    settings: ChallengeSettings | None = None,
) -> str:
    """Classify how urgently submissions to a challenge need reviewing.

    ``urgent`` when the deadline is at most a day away (or already past),
    ``high`` within three days, ``medium`` within a week, ``low`` otherwise.
    A challenge without a deadline is ``low``.
    """
    if deadline is None:
        return PriorityTier.LOW.value

    settings = settings or get_challenge_settings()
    remaining = ensure_utc(deadline) - ensure_utc(now or utcnow())

    if remaining <= timedelta(days=settings.urgent_within_days):
        return PriorityTier.URGENT.value
    if remaining <= timedelta(days=settings.high_within_days):
        return PriorityTier.HIGH.value
    if remaining <= timedelta(days=settings.medium_within_days):
        return PriorityTier.MEDIUM.value
    return PriorityTier.LOW.value


def priority_rank(tier: str) -> int:
    """Sort key placing urgent first and low last."""
    return PRIORITY_ORDER.get(tier, len(PRIORITY_ORDER))
