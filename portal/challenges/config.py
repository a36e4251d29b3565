"""Configuration for the challenge review workflows."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class ChallengeSettings(BaseSettings):
    """Challenge review & winner selection settings."""

    # Winner selection
    max_winners: int = 10
    announcement_min_length: int = 50
    announcement_max_length: int = 1000

    # Review validation
    score_min: int = 0
    score_max: int = 100
    feedback_min_length: int = 20
    feedback_max_length: int = 2000
    notes_max_length: int = 500

    # Priority tiers, in days until the deadline
    urgent_within_days: int = 1
    high_within_days: int = 3
    medium_within_days: int = 7

    # Queries
    review_queue_limit: int = 50
    leaderboard_limit: int = 10
    bulk_max_items: int = 100

    model_config = {"env_prefix": "CHALLENGE_", "case_sensitive": False}


@lru_cache
def get_challenge_settings() -> ChallengeSettings:
    """Get cached challenge settings instance."""
    return ChallengeSettings()
