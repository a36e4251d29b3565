"""ChallengeService and the deadline-driven lifecycle tick."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portal.infrastructure.database.models import Challenge
from portal.notifications.service import NotificationSink
from portal.security.audit import AuditSink
from portal.security.authorization import Actor, Authorizer
from portal.shared.schemas.base import ChallengeStatus
from portal.shared.utils.datetime_utils import ensure_utc, utcnow
from portal.shared.utils.logging import get_logger

from .exceptions import (
    ChallengeClosedError,
    ChallengeValidationError,
    ForbiddenError,
    NotFoundError,
)
from .outbox import SideEffectOutbox, atomic
from .repository import ChallengeRepository, SubmissionRepository
from .schemas import CreateChallengeRequest, UpdateChallengeRequest
from .state_machine import validate_challenge_transition

logger = get_logger(__name__)

CLOSED_CHALLENGE_STATUSES = frozenset({"completed", "cancelled"})


def ensure_future_deadline(deadline: datetime | None, now: datetime | None = None) -> None:
    """A deadline, when given, must lie in the future at create/edit time."""
    if deadline is None:
        return
    if ensure_utc(deadline) <= ensure_utc(now or utcnow()):
        raise ChallengeValidationError({"deadline": ["Deadline must be in the future"]})


def _challenge_state(challenge: Challenge, fields: list[str]) -> dict[str, Any]:
    return {field: getattr(challenge, field) for field in fields}


class ChallengeService:
    """Creates, edits and moves challenges through their lifecycle.

    ``completed`` is refused here; only winner selection completes a
    challenge.
    """

    def __init__(
        self,
        session: AsyncSession,
        authorizer: Authorizer,
        notifier: NotificationSink | None = None,
        auditor: AuditSink | None = None,
    ):
        self.session = session
        self.authorizer = authorizer
        self.notifier = notifier
        self.auditor = auditor
        self.challenges = ChallengeRepository(session)
        self.submissions = SubmissionRepository(session)

    def _outbox(self) -> SideEffectOutbox:
        return SideEffectOutbox(notifier=self.notifier, auditor=self.auditor)

    def _authorize(self, actor: Actor, action: str, entity: Any = None) -> None:
        if not self.authorizer.can(actor, action, entity):
            raise ForbiddenError(actor.id, action)

    async def _load_locked(self, challenge_id: UUID) -> Challenge:
        challenge = await self.challenges.get(challenge_id, for_update=True)
        if challenge is None:
            raise NotFoundError("challenge", challenge_id)
        return challenge

    async def create_challenge(self, actor: Actor, data: CreateChallengeRequest) -> Challenge:
        """Create a challenge in ``draft`` or ``active`` status."""
        self._authorize(actor, "create_challenge")
        ensure_future_deadline(data.deadline)

        outbox = self._outbox()
        async with atomic(self.session, "create_challenge"):
            challenge = await self.challenges.create(
                title=data.title,
                description=data.description,
                category=data.category,
                prize_description=data.prize_description,
                deadline=data.deadline,
                judging_criteria=data.judging_criteria,
                criteria=[criterion.model_dump() for criterion in data.criteria],
                status=data.status,
                author_id=actor.id,
            )
            outbox.audit(
                actor,
                challenge,
                "challenge_created",
                None,
                {"title": challenge.title, "status": challenge.status, "deadline": challenge.deadline},
            )

        await outbox.flush()
        logger.info("challenge_created", challenge_id=str(challenge.id), status=challenge.status)
        return challenge

    async def update_challenge(
        self,
        actor: Actor,
        challenge_id: UUID,
        data: UpdateChallengeRequest,
    ) -> Challenge:
        """Apply a partial update; closed challenges cannot be edited."""
        changes = data.model_dump(exclude_unset=True)

        outbox = self._outbox()
        async with atomic(self.session, "update_challenge"):
            challenge = await self._load_locked(challenge_id)
            self._authorize(actor, "manage_challenge", challenge)
            if challenge.status in CLOSED_CHALLENGE_STATUSES:
                raise ChallengeClosedError(challenge.id, challenge.status)
            if "deadline" in changes and changes["deadline"] != challenge.deadline:
                ensure_future_deadline(changes["deadline"])

            before = _challenge_state(challenge, list(changes))
            for field, value in changes.items():
                setattr(challenge, field, value)
            challenge.updated_at = utcnow()
            await self.session.flush()

            outbox.audit(actor, challenge, "challenge_updated", before, _challenge_state(challenge, list(changes)))

        await outbox.flush()
        logger.info("challenge_updated", challenge_id=str(challenge.id), fields=sorted(changes))
        return challenge

    async def transition_status(self, actor: Actor, challenge_id: UUID, new_status: str) -> Challenge:
        """Manually move a challenge (e.g. open judging early, or cancel)."""
        try:
            new_status = ChallengeStatus(new_status).value
        except ValueError as exc:
            raise ChallengeValidationError({"status": [f"Unknown status '{new_status}'"]}) from exc

        outbox = self._outbox()
        async with atomic(self.session, "transition_challenge"):
            challenge = await self._load_locked(challenge_id)
            self._authorize(actor, "manage_challenge", challenge)

            previous = challenge.status
            validate_challenge_transition(previous, new_status)
            challenge.status = new_status
            challenge.updated_at = utcnow()
            await self.session.flush()

            await _queue_phase_notification(outbox, self.submissions, challenge)
            outbox.audit(actor, challenge, "challenge_status_updated", {"status": previous}, {"status": new_status})

        await outbox.flush()
        logger.info(
            "Challenge '%s' transitioned %s -> %s",
            challenge.title,
            previous,
            new_status,
        )
        return challenge

    async def cancel_challenge(self, actor: Actor, challenge_id: UUID) -> Challenge:
        return await self.transition_status(actor, challenge_id, "cancelled")


async def _queue_phase_notification(
    outbox: SideEffectOutbox,
    submissions: SubmissionRepository,
    challenge: Challenge,
) -> None:
    """Tell participants (or the author of an empty challenge) about a phase change."""
    if challenge.status == "judging":
        event_type = "challenge.judging_started"
    elif challenge.status == "cancelled":
        event_type = "challenge.cancelled"
    else:
        return

    recipients = await submissions.participant_ids(challenge.id) or {challenge.author_id}
    outbox.notify(
        sorted(recipients, key=str),
        event_type,
        {"challenge_id": challenge.id, "challenge_title": challenge.title},
    )


async def challenge_lifecycle_tick(
    session: AsyncSession,
    notifier: NotificationSink | None = None,
    now: datetime | None = None,
) -> dict:
    """Close active challenges whose deadline has passed.

    Designed to be called by an external scheduler. Challenges with
    submissions move to ``judging``; challenges nobody entered are
    ``cancelled``.

    Returns:
        ``{"transitioned": [...], "checked_at": iso timestamp}``.
    """
    now = now or utcnow()
    challenges = ChallengeRepository(session)
    submissions = SubmissionRepository(session)
    outbox = SideEffectOutbox(notifier=notifier)
    transitioned: list[dict] = []

    async with atomic(session, "challenge_lifecycle_tick"):
        for challenge in await challenges.list_expired_active(now):
            submission_count = await challenges.count_submissions(challenge.id)
            target = "judging" if submission_count else "cancelled"

            validate_challenge_transition(challenge.status, target)
            challenge.status = target
            challenge.updated_at = now
            await _queue_phase_notification(outbox, submissions, challenge)

            transitioned.append({
                "challenge_id": str(challenge.id),
                "from": "active",
                "to": target,
                "submissions": submission_count,
            })
            logger.info(
                "Lifecycle: challenge '%s' transitioned active -> %s",
                challenge.title,
                target,
            )

    await outbox.flush()
    return {"transitioned": transitioned, "checked_at": now.isoformat()}
