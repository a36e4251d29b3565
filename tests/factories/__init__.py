"""Test data factories for the challenge portal.

Factories build plain attribute objects shaped like the ORM rows, so pure
functions and workflows can be exercised without a database.
"""

from tests.factories.challenge_factory import (
    ChallengeFactory,
    ReviewFactory,
    SubmissionFactory,
    UserFactory,
)

__all__ = [
    "ChallengeFactory",
    "ReviewFactory",
    "SubmissionFactory",
    "UserFactory",
]
