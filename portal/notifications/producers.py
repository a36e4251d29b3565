"""Notification templates for challenge workflow events.

Each workflow event is mapped to a template producing the notification
title, body, type and priority. ``build_notification`` turns an event and its
data into the ``(notification_type, payload)`` pair a ``NotificationSink``
expects.
"""

from __future__ import annotations

from typing import Any

from portal.shared.utils.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Template registry
# ---------------------------------------------------------------------------
# Each entry is keyed by event_type and holds:
#   (title_template, body_template, notification_type, priority)
# Templates use str.format() with keys taken from the event data.

NOTIFICATION_TEMPLATES: dict[str, tuple[str, str, str, str]] = {
    # Review workflow
    "submission.review_started": (
        "Review Started",
        "Your submission '{submission_title}' is now under review.",
        "review_assigned",
        "normal",
    ),
    "submission.reviewed": (
        "Submission Reviewed",
        "Your submission '{submission_title}' for challenge '{challenge_title}' "
        "has been reviewed with a score of {score}/100.",
        "submission_reviewed",
        "normal",
    ),
    "submission.status_changed": (
        "Submission Status Updated",
        "Your submission '{submission_title}' status has been updated to: {status_label}",
        "status_change",
        "normal",
    ),
    # Winner selection
    "challenge.winner": (
        "🎉 Congratulations! You Won!",
        "Your submission '{submission_title}' has been selected as the {place} winner "
        "of the '{challenge_title}' challenge!",
        "challenge_winner",
        "high",
    ),
    "challenge.results_announced": (
        "Challenge Results Announced",
        "The winners of the '{challenge_title}' challenge have been announced. {announcement}",
        "challenge_completed",
        "normal",
    ),
    # Challenge lifecycle
    "challenge.judging_started": (
        "Challenge Closed for Submissions",
        "The '{challenge_title}' challenge has reached its deadline and is now being judged.",
        "challenge_phase",
        "normal",
    ),
    "challenge.cancelled": (
        "Challenge Cancelled",
        "The '{challenge_title}' challenge has been cancelled.",
        "challenge_phase",
        "normal",
    ),
}


def ordinal_place(rank: int) -> str:
    """``1st place``, ``2nd place``, ``3rd place``, then ``#N place``."""
    return {1: "1st place", 2: "2nd place", 3: "3rd place"}.get(rank, f"#{rank} place")


def status_label(status: str) -> str:
    """``needs_revision`` -> ``Needs Revision``."""
    return status.replace("_", " ").title()


def build_notification(event_type: str, data: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """Render the template for ``event_type`` with ``data``.

    Raises:
        KeyError: if no template is registered for ``event_type``.
    """
    title_template, body_template, notification_type, priority = NOTIFICATION_TEMPLATES[event_type]
    values = _SafeFormatDict(data)
    title = title_template.format_map(values)
    body = body_template.format_map(values).strip()

    payload = {
        "title": title,
        "body": body,
        "priority": priority,
        "data": {"event_type": event_type, **_stringify(data)},
    }
    logger.debug("notification_rendered", event_type=event_type, notification_type=notification_type)
    return notification_type, payload


def _stringify(data: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value if isinstance(value, (str, int, float, bool)) or value is None else str(value)
        for key, value in data.items()
    }


class _SafeFormatDict(dict):
    """Dict subclass that returns the key wrapped in braces when missing.

    This prevents ``KeyError`` when a template references a field that
    is not present in the event data.
    """

    def __missing__(self, key: str) -> str:
        return f"{{{key}}}"


__all__ = ["NOTIFICATION_TEMPLATES", "build_notification", "ordinal_place", "status_label"]
