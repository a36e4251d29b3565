"""Tests for database session helpers and request log context."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import structlog


class TestDatabaseUrl:
    def test_plain_postgres_urls_use_asyncpg(self):
        from portal.infrastructure.database.session import to_async_url

        assert to_async_url("postgres://u:p@db/portal") == "postgresql+asyncpg://u:p@db/portal"
        assert to_async_url("postgresql://u:p@db/portal") == "postgresql+asyncpg://u:p@db/portal"

    def test_explicit_driver_untouched(self):
        from portal.infrastructure.database.session import to_async_url

        url = "postgresql+asyncpg://u:p@db/portal"
        assert to_async_url(url) == url

    def test_settings_read_database_env(self, monkeypatch):
        from portal.infrastructure.database.session import DatabaseSettings

        monkeypatch.setenv("DATABASE_URL", "postgresql://x@y/z")
        monkeypatch.setenv("DATABASE_POOL_SIZE", "3")

        settings = DatabaseSettings()
        assert settings.url == "postgresql://x@y/z"
        assert settings.pool_size == 3


class TestGetDbSession:
    @pytest.mark.asyncio
    async def test_rolls_back_and_closes_on_error(self):
        from portal.infrastructure.database import session as session_module

        db = AsyncMock()
        with patch.object(session_module, "get_session_factory", return_value=MagicMock(return_value=db)):
            with pytest.raises(RuntimeError):
                async with session_module.get_db_session():
                    raise RuntimeError("boom")

        db.rollback.assert_awaited_once()
        db.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_closes_without_commit(self):
        from portal.infrastructure.database import session as session_module

        db = AsyncMock()
        with patch.object(session_module, "get_session_factory", return_value=MagicMock(return_value=db)):
            async with session_module.get_db_session() as opened:
                assert opened is db

        db.commit.assert_not_awaited()
        db.close.assert_awaited_once()


class TestRequestContext:
    def test_binds_and_unbinds(self):
        from portal.shared.utils.logging import request_context

        structlog.contextvars.clear_contextvars()
        with request_context("req-1", "actor-9"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["request_id"] == "req-1"
            assert bound["actor_id"] == "actor-9"

        assert "request_id" not in structlog.contextvars.get_contextvars()

    def test_unknown_level_rejected(self):
        from portal.shared.utils.logging import configure_logging

        with pytest.raises(ValueError):
            configure_logging(level="LOUD", json_format=False)


class TestCalendarCutoffs:
    def test_start_of_week_is_monday_midnight(self):
        from datetime import datetime, timezone

        from portal.shared.utils.datetime_utils import start_of_week

        thursday = datetime(2026, 10, 22, 15, 30, tzinfo=timezone.utc)
        assert start_of_week(thursday) == datetime(2026, 10, 19, tzinfo=timezone.utc)
        monday = datetime(2026, 10, 19, 0, 0, tzinfo=timezone.utc)
        assert start_of_week(monday) == monday

    def test_start_of_month(self):
        from datetime import datetime, timezone

        from portal.shared.utils.datetime_utils import start_of_month

        assert start_of_month(datetime(2026, 10, 22, 9, tzinfo=timezone.utc)) == datetime(
            2026, 10, 1, tzinfo=timezone.utc
        )
