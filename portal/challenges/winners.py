"""Winner selection: ranks winners and completes a challenge.

The caller's selection order is the ranking: the first id becomes 1st
place. Scores are never used to re-sort the selection.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portal.notifications.producers import ordinal_place
from portal.notifications.service import NotificationSink
from portal.security.audit import AuditSink
from portal.security.authorization import Actor, Authorizer
from portal.shared.utils.datetime_utils import utcnow
from portal.shared.utils.logging import get_logger

from .config import ChallengeSettings, get_challenge_settings
from .eligibility import REVIEWABLE_CHALLENGE_STATUSES
from .exceptions import (
    AlreadyCompletedError,
    ChallengeValidationError,
    ForbiddenError,
    InvalidAnnouncementError,
    NoSelectionError,
    NotFoundError,
    TooManyWinnersError,
)
from .outbox import SideEffectOutbox, atomic
from .repository import ChallengeRepository, SubmissionRepository
from .schemas import WinnerEntry, WinnerSelectionResult
from .state_machine import validate_challenge_transition

logger = get_logger(__name__)


class WinnerSelectionWorkflow:
    """Completes a challenge with an ordered list of winning submissions."""

    def __init__(
        self,
        session: AsyncSession,
        authorizer: Authorizer,
        notifier: NotificationSink | None = None,
        auditor: AuditSink | None = None,
        settings: ChallengeSettings | None = None,
    ):
        self.session = session
        self.authorizer = authorizer
        self.notifier = notifier
        self.auditor = auditor
        self.settings = settings or get_challenge_settings()
        self.challenges = ChallengeRepository(session)
        self.submissions = SubmissionRepository(session)

    def _validate_selection(
        self,
        submission_ids: Sequence[UUID],
        announcement_message: str | None,
    ) -> tuple[list[UUID], str]:
        """Input checks that need no database access."""
        ids = list(submission_ids)
        if not ids:
            raise NoSelectionError()
        if len(ids) > self.settings.max_winners:
            raise TooManyWinnersError(len(ids), self.settings.max_winners)

        duplicates = [sid for sid, count in Counter(ids).items() if count > 1]
        if duplicates:
            raise ChallengeValidationError(
                {"submission_ids": [f"Submission {sid} was selected more than once" for sid in duplicates]}
            )

        message = (announcement_message or "").strip()
        min_length = self.settings.announcement_min_length
        max_length = self.settings.announcement_max_length
        if not min_length <= len(message) <= max_length:
            raise InvalidAnnouncementError(len(message), min_length, max_length)
        return ids, message

    async def select_winners(
        self,
        actor: Actor,
        challenge_id: UUID,
        submission_ids: Sequence[UUID],
        announcement_message: str,
        notify_winners: bool = True,
        notify_participants: bool = True,
    ) -> WinnerSelectionResult:
        """Mark winners in order, complete the challenge and everything else in it.

        All-or-nothing: the challenge row is locked for the whole transaction
        and any failure rolls back every change. Notifications go out only
        after commit.

        Raises:
            NoSelectionError, TooManyWinnersError, InvalidAnnouncementError,
            ChallengeValidationError, NotFoundError, ForbiddenError,
            AlreadyCompletedError, UnavailableError
        """
        ids, message = self._validate_selection(submission_ids, announcement_message)

        outbox = SideEffectOutbox(notifier=self.notifier, auditor=self.auditor)
        async with atomic(self.session, "select_winners"):
            challenge = await self.challenges.get(challenge_id, for_update=True)
            if challenge is None:
                raise NotFoundError("challenge", challenge_id)
            if not self.authorizer.can(actor, "select_winners", challenge):
                raise ForbiddenError(actor.id, "select_winners")
            if challenge.status not in REVIEWABLE_CHALLENGE_STATUSES:
                raise AlreadyCompletedError(challenge.id, challenge.status)

            eligible = {
                submission.id: submission
                for submission in await self.submissions.list_winner_eligible(challenge.id)
            }
            ineligible = [sid for sid in ids if sid not in eligible]
            if ineligible:
                raise ChallengeValidationError(
                    {
                        "submission_ids": [
                            f"Submission {sid} is not eligible to win this challenge"
                            for sid in ineligible
                        ]
                    }
                )

            participants = await self.submissions.participant_ids(challenge.id)
            previous_status = {sid: eligible[sid].status for sid in ids}
            challenge_before = {"status": challenge.status}
            now = utcnow()

            validate_challenge_transition(challenge.status, "completed", system=True)
            challenge.status = "completed"
            challenge.winners_announced_at = now

            winners: list[WinnerEntry] = []
            for ranking, submission_id in enumerate(ids, start=1):
                await self.submissions.mark_winner(challenge.id, submission_id, ranking, now)
                submission = eligible[submission_id]
                winners.append(
                    WinnerEntry(
                        submission_id=submission_id,
                        ranking=ranking,
                        title=submission.title,
                        author_id=submission.author_id,
                    )
                )

            completed_count = await self.submissions.complete_others(challenge.id, ids)
            await self.session.flush()

            winner_recipients = self._queue_winner_effects(
                outbox, actor, challenge, eligible, winners, previous_status, notify_winners
            )
            if notify_participants:
                others = sorted(participants - winner_recipients, key=str)
                outbox.notify(
                    others,
                    "challenge.results_announced",
                    {
                        "challenge_id": challenge.id,
                        "challenge_title": challenge.title,
                        "announcement": message,
                    },
                )
            outbox.audit(
                actor,
                challenge,
                "winners_announced",
                challenge_before,
                {
                    "status": challenge.status,
                    "winners_announced_at": now,
                    "winners": [entry.submission_id for entry in winners],
                    "completed_submissions": completed_count,
                    "announcement": message,
                },
            )

        await outbox.flush()
        logger.info(
            "winners_selected",
            challenge_id=str(challenge.id),
            winner_count=len(winners),
            completed_count=completed_count,
        )
        return WinnerSelectionResult(
            challenge_id=challenge.id,
            winners=winners,
            completed_count=completed_count,
            winners_announced_at=now,
        )

    @staticmethod
    def _queue_winner_effects(
        outbox: SideEffectOutbox,
        actor: Actor,
        challenge: Any,
        eligible: dict[UUID, Any],
        winners: list[WinnerEntry],
        previous_status: dict[UUID, str],
        notify_winners: bool,
    ) -> set[UUID]:
        """Queue per-winner notifications and audits; return everyone who won."""
        winner_recipients: set[UUID] = set()
        for entry in winners:
            submission = eligible[entry.submission_id]
            recipients = [submission.author_id, *(member.id for member in submission.team_members)]
            winner_recipients.update(recipients)

            if notify_winners:
                outbox.notify(
                    recipients,
                    "challenge.winner",
                    {
                        "challenge_id": challenge.id,
                        "challenge_title": challenge.title,
                        "submission_id": entry.submission_id,
                        "submission_title": entry.title,
                        "ranking": entry.ranking,
                        "place": ordinal_place(entry.ranking),
                    },
                )
            outbox.audit(
                actor,
                submission,
                "winner_selected",
                {"status": previous_status[entry.submission_id], "ranking": None},
                {"status": "winner", "ranking": entry.ranking},
            )
        return winner_recipients
