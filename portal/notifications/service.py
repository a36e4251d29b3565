"""Notification storage and dispatch.

``NotificationService`` wraps the Notification ORM model inside a
caller-provided session. ``NotificationDispatcher`` is the sink workflows
talk to: it opens its own session per dispatch so delivery never shares a
transaction with the state change that triggered it.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Callable, Protocol
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal.infrastructure.database.models import Notification
from portal.shared.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationSink(Protocol):
    """Fire-and-forget delivery of one notification to many users."""

    async def notify(
        self,
        recipients: Iterable[UUID],
        notification_type: str,
        payload: dict[str, Any],
    ) -> None: ...


class NotificationService:
    """Writes notification rows inside a session the caller commits."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_notification(
        self,
        user_id: str | UUID,
        notification_type: str,
        priority: str,
        title: str,
        body: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        """Add one notification row and flush it so the id is assigned."""
        notification = Notification(
            id=uuid4(),
            user_id=user_id if isinstance(user_id, UUID) else UUID(str(user_id)),
            notification_type=notification_type,
            priority=priority,
            title=title,
            body=body,
            data=data,
        )
        self.session.add(notification)
        await self.session.flush()

        logger.info(
            "notification_created",
            notification_id=str(notification.id),
            user_id=str(user_id),
            notification_type=notification_type,
        )
        return notification


class NotificationDispatcher:
    """Database-backed ``NotificationSink``.

    ``payload`` carries ``title``, ``body``, ``priority`` and an optional
    ``data`` dict. One row is written per distinct recipient.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | Callable[[], AsyncSession],
    ) -> None:
        self._session_factory = session_factory

    async def notify(
        self,
        recipients: Iterable[UUID],
        notification_type: str,
        payload: dict[str, Any],
    ) -> None:
        unique_recipients = list(dict.fromkeys(recipients))
        if not unique_recipients:
            return

        async with self._session_factory() as session:
            service = NotificationService(session)
            for user_id in unique_recipients:
                await service.create_notification(
                    user_id=user_id,
                    notification_type=notification_type,
                    priority=payload.get("priority", "normal"),
                    title=payload["title"],
                    body=payload.get("body"),
                    data=payload.get("data"),
                )
            await session.commit()

        logger.info(
            "notifications_dispatched",
            notification_type=notification_type,
            recipient_count=len(unique_recipients),
        )
