"""Transaction boundary and post-commit side effects.

Workflows stage notifications and audit records in a ``SideEffectOutbox``
while their transaction is open, and only flush it once ``atomic`` has
committed. A rolled-back operation therefore never notifies anybody, and
a failing notification or audit write never undoes a committed change.
"""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.notifications.producers import build_notification
from portal.notifications.service import NotificationSink
from portal.security.audit import AuditSink
from portal.security.authorization import Actor
from portal.shared.utils.logging import get_logger

from .exceptions import UnavailableError

logger = get_logger(__name__)


@asynccontextmanager
async def atomic(session: AsyncSession, operation: str) -> AsyncGenerator[AsyncSession, None]:
    """Commit on success, roll back on any error.

    Persistence errors surface as ``UnavailableError``; workflow errors
    raised inside the block propagate unchanged after the rollback.
    """
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("transaction_failed", operation=operation, error=str(exc))
        raise UnavailableError(operation) from exc
    except Exception:
        await session.rollback()
        raise


@dataclass
class _PendingNotification:
    recipients: list[UUID]
    notification_type: str
    payload: dict[str, Any]


@dataclass
class _PendingAudit:
    actor: Actor | None
    entity: Any
    action: str
    before: dict[str, Any] | None
    after: dict[str, Any] | None


@dataclass
class SideEffectOutbox:
    """In-memory queue of notifications and audit records."""

    notifier: NotificationSink | None = None
    auditor: AuditSink | None = None
    notifications: list[_PendingNotification] = field(default_factory=list)
    audits: list[_PendingAudit] = field(default_factory=list)

    def notify(self, recipients: Iterable[UUID], event_type: str, data: dict[str, Any]) -> None:
        recipients = [recipient for recipient in recipients if recipient is not None]
        if not recipients:
            return
        notification_type, payload = build_notification(event_type, data)
        self.notifications.append(_PendingNotification(recipients, notification_type, payload))

    def audit(
        self,
        actor: Actor | None,
        entity: Any,
        action: str,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
    ) -> None:
        self.audits.append(_PendingAudit(actor, entity, action, before, after))

    def clear(self) -> None:
        self.notifications.clear()
        self.audits.clear()

    async def flush(self) -> None:
        """Dispatch everything queued. Failures are logged, never raised."""
        if self.notifier is not None:
            for item in self.notifications:
                try:
                    await self.notifier.notify(item.recipients, item.notification_type, item.payload)
                except Exception:
                    logger.exception(
                        "notification_dispatch_failed",
                        notification_type=item.notification_type,
                        recipient_count=len(item.recipients),
                    )

        if self.auditor is not None:
            for record in self.audits:
                try:
                    await self.auditor.record(
                        record.actor, record.entity, record.action, record.before, record.after
                    )
                except Exception:
                    logger.exception("audit_record_failed", action=record.action)

        self.clear()
