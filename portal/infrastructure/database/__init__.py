"""Database infrastructure package."""

from portal.infrastructure.database.models import Base
from portal.infrastructure.database.session import (
    close_db,
    get_db,
    get_db_session,
    get_session_factory,
    init_db,
)

__all__ = [
    "Base",
    "close_db",
    "get_db",
    "get_db_session",
    "get_session_factory",
    "init_db",
]
