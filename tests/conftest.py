"""Global pytest fixtures for the challenge portal.

This module provides shared fixtures for testing including:
- Mock database sessions for unit tests
- Actors with portal roles
- Mock notification and audit sinks
"""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio


# ===========================================
# DATABASE SESSION FIXTURES
# ===========================================


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncMock, None]:
    """Create a mock async database session for unit tests."""
    session = AsyncMock()
    session.add = MagicMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()

    # Mock context manager behavior
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)

    yield session


@pytest.fixture
def session_factory(db_session):
    """Callable returning the mock session, standing in for async_sessionmaker."""
    return MagicMock(return_value=db_session)


# ===========================================
# ACTOR FIXTURES
# ===========================================


@pytest.fixture
def manager():
    from portal.security.authorization import Actor

    return Actor(id=uuid4(), roles=frozenset({"manager"}), display_name="Morgan Manager")


@pytest.fixture
def reviewer():
    from portal.security.authorization import Actor

    return Actor(id=uuid4(), roles=frozenset({"challenge_reviewer"}), display_name="Riley Reviewer")


@pytest.fixture
def participant():
    from portal.security.authorization import Actor

    return Actor(id=uuid4(), roles=frozenset({"employee"}), display_name="Pat Participant")


# ===========================================
# SIDE-EFFECT SINKS
# ===========================================


@pytest.fixture
def notifier() -> AsyncMock:
    """Mock NotificationSink recording every notify() call."""
    sink = AsyncMock()
    sink.notify = AsyncMock(return_value=None)
    return sink


@pytest.fixture
def auditor() -> AsyncMock:
    """Mock AuditSink recording every record() call."""
    sink = AsyncMock()
    sink.record = AsyncMock(return_value=None)
    return sink


@pytest.fixture
def settings():
    """Default challenge settings, independent of the environment cache."""
    from portal.challenges.config import ChallengeSettings

    return ChallengeSettings()
