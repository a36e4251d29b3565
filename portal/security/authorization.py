"""Role-based authorization for challenge workflow actions."""

from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID

from portal.shared.utils.logging import get_logger

logger = get_logger(__name__)


# ===========================================
# ROLES
# ===========================================

MANAGER_ROLES = frozenset({"manager", "administrator", "developer"})
REVIEWER_ROLES = MANAGER_ROLES | frozenset({"challenge_reviewer", "sme", "board_member"})


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing an operation."""

    id: UUID
    roles: frozenset[str] = field(default_factory=frozenset)
    display_name: str | None = None

    def has_any_role(self, roles: frozenset[str]) -> bool:
        return bool(self.roles & roles)

    @property
    def is_manager(self) -> bool:
        return self.has_any_role(MANAGER_ROLES)

    @property
    def is_reviewer(self) -> bool:
        return self.has_any_role(REVIEWER_ROLES)


class Authorizer(Protocol):
    """Capability check consulted before each mutating operation."""

    def can(self, actor: Actor, action: str, entity: Any = None) -> bool: ...


# ===========================================
# DEFAULT POLICY
# ===========================================


def _challenge_of(entity: Any) -> Any:
    return getattr(entity, "challenge", None)


def _is_own_work(actor: Actor, submission: Any) -> bool:
    """Reviewers never evaluate their own submission or one to their own challenge."""
    if getattr(submission, "author_id", None) == actor.id:
        return True
    challenge = _challenge_of(submission)
    return challenge is not None and getattr(challenge, "author_id", None) == actor.id


class RoleBasedAuthorizer:
    """Portal policies keyed by action name.

    Actions:
        ``assign_reviewer`` / ``review``: any reviewer role, never on own work.
        ``update_status`` / ``bulk_apply``: managers, never on own work.
        ``select_winners``: managers.
        ``create_challenge``: managers.
        ``manage_challenge``: managers or the challenge author.
    """

    def can(self, actor: Actor, action: str, entity: Any = None) -> bool:
        handler = getattr(self, f"_can_{action}", None)
        if handler is None:
            logger.warning("unknown_authorization_action", action=action, actor_id=str(actor.id))
            return False
        allowed = handler(actor, entity)
        if not allowed:
            logger.info("authorization_denied", action=action, actor_id=str(actor.id))
        return allowed

    def _can_assign_reviewer(self, actor: Actor, submission: Any) -> bool:
        return actor.is_reviewer and not _is_own_work(actor, submission)

    def _can_review(self, actor: Actor, submission: Any) -> bool:
        return actor.is_reviewer and not _is_own_work(actor, submission)

    def _can_update_status(self, actor: Actor, submission: Any) -> bool:
        return actor.is_manager and not _is_own_work(actor, submission)

    def _can_bulk_apply(self, actor: Actor, entity: Any) -> bool:
        return actor.is_manager

    def _can_select_winners(self, actor: Actor, challenge: Any) -> bool:
        return actor.is_manager

    def _can_create_challenge(self, actor: Actor, entity: Any) -> bool:
        return actor.is_manager

    def _can_manage_challenge(self, actor: Actor, challenge: Any) -> bool:
        return actor.is_manager or getattr(challenge, "author_id", None) == actor.id
