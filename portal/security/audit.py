"""Audit trail for challenge workflow actions."""

from datetime import datetime
from typing import Any, Callable, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal.infrastructure.database.models import AuditLog
from portal.shared.utils.logging import get_logger

from .authorization import Actor

logger = get_logger(__name__)


class AuditSink(Protocol):
    """Best-effort recorder of before/after state for an action."""

    async def record(
        self,
        actor: Actor | None,
        entity: Any,
        action: str,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
    ) -> None: ...


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def resource_type_of(entity: Any) -> str:
    """Table name for ORM rows, class name otherwise."""
    return getattr(entity, "__tablename__", None) or type(entity).__name__


class AuditService:
    """Writes ``AuditLog`` rows in a dedicated session.

    The workflow transaction has already committed when records are written,
    so an audit failure can never undo a state change.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | Callable[[], AsyncSession],
    ) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        actor: Actor | None,
        entity: Any,
        action: str,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
    ) -> None:
        entry = AuditLog(
            actor_id=actor.id if actor else None,
            action=action,
            resource_type=resource_type_of(entity),
            resource_id=getattr(entity, "id", None),
            before=_jsonable(before) if before is not None else None,
            after=_jsonable(after) if after is not None else None,
        )
        async with self._session_factory() as session:
            session.add(entry)
            await session.commit()

        logger.info(
            "audit_recorded",
            action=action,
            resource_type=entry.resource_type,
            resource_id=str(entry.resource_id) if entry.resource_id else None,
            actor_id=str(actor.id) if actor else None,
        )
