"""Shared utility functions."""

from portal.shared.utils.datetime_utils import ensure_utc, utcnow
from portal.shared.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "ensure_utc",
    "get_logger",
    "utcnow",
]
