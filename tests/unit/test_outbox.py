"""Tests for the transaction boundary and post-commit side effects."""

from __future__ import annotations

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError


class TestAtomic:
    @pytest.mark.asyncio
    async def test_commits_on_success(self, db_session):
        from portal.challenges.outbox import atomic

        async with atomic(db_session, "noop"):
            pass

        db_session.commit.assert_awaited_once()
        db_session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_workflow_errors_propagate_unchanged(self, db_session):
        from portal.challenges.exceptions import NotFoundError
        from portal.challenges.outbox import atomic

        with pytest.raises(NotFoundError):
            async with atomic(db_session, "lookup"):
                raise NotFoundError("submission", uuid4())

        db_session.rollback.assert_awaited_once()
        db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persistence_errors_become_unavailable(self, db_session):
        from portal.challenges.exceptions import UnavailableError
        from portal.challenges.outbox import atomic

        db_session.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        with pytest.raises(UnavailableError) as exc_info:
            async with atomic(db_session, "submit_review"):
                pass

        assert exc_info.value.error_type == "unavailable"
        assert "submit_review" in exc_info.value.message
        db_session.rollback.assert_awaited_once()


class TestSideEffectOutbox:
    @pytest.mark.asyncio
    async def test_flush_dispatches_and_clears(self, notifier, auditor):
        from portal.challenges.outbox import SideEffectOutbox

        outbox = SideEffectOutbox(notifier=notifier, auditor=auditor)
        user_id = uuid4()
        outbox.notify([user_id], "submission.review_started", {"submission_title": "Solar roof"})
        outbox.audit(None, object(), "reviewer_assigned", {"status": "submitted"}, {"status": "under_review"})

        await outbox.flush()

        recipients, notification_type, payload = notifier.notify.await_args.args
        assert recipients == [user_id]
        assert notification_type == "review_assigned"
        assert "Solar roof" in payload["body"]
        auditor.record.assert_awaited_once()
        assert outbox.notifications == []
        assert outbox.audits == []

    def test_empty_recipients_skipped(self):
        from portal.challenges.outbox import SideEffectOutbox

        outbox = SideEffectOutbox()
        outbox.notify([], "challenge.results_announced", {})
        outbox.notify([None], "challenge.results_announced", {})
        assert outbox.notifications == []

    @pytest.mark.asyncio
    async def test_sink_failures_are_not_raised(self, auditor):
        from portal.challenges.outbox import SideEffectOutbox

        broken = AsyncMock()
        broken.notify.side_effect = RuntimeError("smtp down")
        outbox = SideEffectOutbox(notifier=broken, auditor=auditor)
        outbox.notify([uuid4()], "challenge.cancelled", {"challenge_title": "Wind"})
        outbox.notify([uuid4()], "challenge.cancelled", {"challenge_title": "Wind"})
        outbox.audit(None, object(), "challenge_status_updated")

        await outbox.flush()

        assert broken.notify.await_count == 2
        auditor.record.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_clear_discards_queue(self, notifier):
        from portal.challenges.outbox import SideEffectOutbox

        outbox = SideEffectOutbox(notifier=notifier)
        outbox.notify([uuid4()], "challenge.cancelled", {"challenge_title": "Wind"})
        outbox.clear()
        await outbox.flush()

        notifier.notify.assert_not_awaited()
