"""Reviewer assignment, reviews, status changes and bulk actions."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.infrastructure.database.models import ChallengeReview, ChallengeSubmission
from portal.notifications.producers import status_label
from portal.notifications.service import NotificationSink
from portal.security.audit import AuditSink
from portal.security.authorization import Actor, Authorizer
from portal.shared.schemas.base import BulkAction, SubmissionStatus
from portal.shared.utils.datetime_utils import start_of_month, start_of_week, utcnow
from portal.shared.utils.logging import get_logger

from .config import ChallengeSettings, get_challenge_settings
from .eligibility import is_reviewable
from .exceptions import (
    AlreadyAssignedError,
    ChallengeClosedError,
    ChallengeServiceError,
    ChallengeValidationError,
    ForbiddenError,
    LimitExceededError,
    NotFoundError,
)
from .outbox import SideEffectOutbox, atomic
from .priority import classify_priority, priority_rank
from .repository import ReviewRepository, SubmissionRepository
from .schemas import (
    BulkFailure,
    BulkResult,
    BulkReviewParams,
    ReviewerStats,
    ReviewInput,
    ReviewQueueItem,
)
from .scoring import average_score, weighted_overall
from .state_machine import validate_submission_transition

logger = get_logger(__name__)


def _submission_state(submission: ChallengeSubmission) -> dict[str, Any]:
    return {
        "status": submission.status,
        "assigned_reviewer_id": submission.assigned_reviewer_id,
        "score": submission.score,
    }


class ReviewWorkflow:
    """Per-submission review state machine.

    Every mutating method takes the acting user explicitly, checks the
    injected authorizer, runs in one transaction and only dispatches
    notifications and audit records after that transaction committed.
    """

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
        self.submissions = SubmissionRepository(session)
        self.reviews = ReviewRepository(session)

    # ===========================================
    # HELPERS
    # ===========================================

    def _outbox(self) -> SideEffectOutbox:
        return SideEffectOutbox(notifier=self.notifier, auditor=self.auditor)

    def _authorize(self, actor: Actor, action: str, entity: Any = None) -> None:
        if not self.authorizer.can(actor, action, entity):
            raise ForbiddenError(actor.id, action)

    async def _load_locked(self, submission_id: UUID) -> ChallengeSubmission:
        submission = await self.submissions.get(submission_id, for_update=True)
        if submission is None:
            raise NotFoundError("submission", submission_id)
        return submission

    @staticmethod
    def _validate_review(data: ReviewInput | Mapping[str, Any]) -> ReviewInput:
        if isinstance(data, ReviewInput):
            return data
        try:
            return ReviewInput.model_validate(dict(data))
        except PydanticValidationError as exc:
            raise ChallengeValidationError.from_pydantic(exc) from exc

    @staticmethod
    def _overall_score(challenge: Any, review_input: ReviewInput) -> float:
        """Weighted criterion score when a breakdown is given, else the flat score."""
        if not review_input.criterion_scores:
            return float(review_input.score)

        criteria = challenge.criteria or []
        known = {criterion["name"] for criterion in criteria}
        unknown = [name for name in review_input.criterion_map() if known and name not in known]
        if unknown:
            raise ChallengeValidationError(
                {"criterion_scores": [f"Unknown criterion '{name}'" for name in unknown]}
            )
        return weighted_overall(criteria, review_input.criterion_map())

    # ===========================================
    # ASSIGNMENT
    # ===========================================

    async def assign_reviewer(self, actor: Actor, submission_id: UUID) -> ChallengeSubmission:
        """Claim a submission for review (first assign wins).

        Re-assigning to the reviewer already holding it is a no-op.

        Raises:
            NotFoundError, ForbiddenError, ChallengeClosedError,
            AlreadyAssignedError, InvalidTransitionError
        """
        outbox = self._outbox()
        async with atomic(self.session, "assign_reviewer"):
            submission = await self._load_locked(submission_id)
            self._authorize(actor, "assign_reviewer", submission)

            challenge = submission.challenge
            if not is_reviewable(challenge):
                raise ChallengeClosedError(challenge.id, challenge.status)

            holder = submission.assigned_reviewer_id
            if holder is not None and holder != actor.id:
                raise AlreadyAssignedError(submission.id, holder)
            if holder == actor.id:
                logger.info(
                    "reviewer_already_assigned",
                    submission_id=str(submission.id),
                    reviewer_id=str(actor.id),
                )
                return submission

            before = _submission_state(submission)
            if submission.status != "under_review":
                validate_submission_transition(submission.status, "under_review")
            submission.assigned_reviewer_id = actor.id
            submission.status = "under_review"
            await self.session.flush()

            outbox.notify(
                [submission.author_id],
                "submission.review_started",
                {
                    "submission_id": submission.id,
                    "submission_title": submission.title,
                    "challenge_title": challenge.title,
                },
            )
            outbox.audit(actor, submission, "reviewer_assigned", before, _submission_state(submission))

        await outbox.flush()
        logger.info(
            "reviewer_assigned",
            submission_id=str(submission.id),
            reviewer_id=str(actor.id),
        )
        return submission

    # ===========================================
    # REVIEWS
    # ===========================================

    async def submit_review(
        self,
        actor: Actor,
        submission_id: UUID,
        review_input: ReviewInput | Mapping[str, Any],
    ) -> ChallengeReview:
        """Create or update the actor's review and mark the submission reviewed.

        The review upsert, the derived submission score and the status change
        commit together.

        Raises:
            ChallengeValidationError: listing every invalid field.
            NotFoundError, ForbiddenError, ChallengeClosedError,
            InvalidTransitionError, UnavailableError
        """
        review_input = self._validate_review(review_input)

        outbox = self._outbox()
        async with atomic(self.session, "submit_review"):
            submission = await self._load_locked(submission_id)
            self._authorize(actor, "review", submission)

            challenge = submission.challenge
            if not is_reviewable(challenge):
                raise ChallengeClosedError(challenge.id, challenge.status)
            validate_submission_transition(submission.status, "reviewed")

            overall = self._overall_score(challenge, review_input)
            before = _submission_state(submission)

            review, created = await self.reviews.upsert(
                submission.id,
                actor.id,
                score=overall,
                feedback=review_input.feedback,
                recommendation=review_input.recommendation,
                criteria_scores=review_input.criterion_map(),
                strengths=review_input.strengths,
                weaknesses=review_input.weaknesses,
                suggestions=review_input.suggestions,
                time_spent_minutes=review_input.time_spent_minutes,
                reviewed_at=utcnow(),
            )

            scores = await self.reviews.scores_for_submission(submission.id)
            submission.score = average_score(scores)
            submission.status = "reviewed"
            await self.session.flush()

            outbox.notify(
                [submission.author_id],
                "submission.reviewed",
                {
                    "submission_id": submission.id,
                    "submission_title": submission.title,
                    "challenge_title": challenge.title,
                    "score": f"{overall:g}",
                    "recommendation": review_input.recommendation,
                },
            )
            outbox.audit(
                actor,
                submission,
                "submission_reviewed",
                before,
                {
                    **_submission_state(submission),
                    "review_id": review.id,
                    "review_score": overall,
                    "review_created": created,
                },
            )

        await outbox.flush()
        logger.info(
            "review_submitted",
            submission_id=str(submission.id),
            reviewer_id=str(actor.id),
            score=overall,
            created=created,
        )
        return review

    # ===========================================
    # STATUS
    # ===========================================

    async def update_status(
        self,
        actor: Actor,
        submission_id: UUID,
        new_status: str,
        comments: str | None = None,
    ) -> ChallengeSubmission:
        """Manually move a submission to a new status.

        ``winner`` and ``completed`` are refused; they are set only when the
        challenge concludes.
        """
        try:
            new_status = SubmissionStatus(new_status).value
        except ValueError as exc:
            raise ChallengeValidationError({"status": [f"Unknown status '{new_status}'"]}) from exc

        outbox = self._outbox()
        async with atomic(self.session, "update_status"):
            submission = await self._load_locked(submission_id)
            self._authorize(actor, "update_status", submission)

            previous = submission.status
            validate_submission_transition(previous, new_status)
            before = _submission_state(submission)
            submission.status = new_status
            await self.session.flush()

            outbox.notify(
                [submission.author_id],
                "submission.status_changed",
                {
                    "submission_id": submission.id,
                    "submission_title": submission.title,
                    "status": new_status,
                    "status_label": status_label(new_status),
                    "comments": comments,
                },
            )
            outbox.audit(
                actor,
                submission,
                "submission_status_updated",
                before,
                {**_submission_state(submission), "comments": comments},
            )

        await outbox.flush()
        logger.info(
            "submission_status_updated",
            submission_id=str(submission.id),
            old_status=previous,
            new_status=new_status,
        )
        return submission

    # ===========================================
    # BULK
    # ===========================================

    async def bulk_apply(
        self,
        actor: Actor,
        submission_ids: Iterable[UUID],
        action: str,
        review: BulkReviewParams | Mapping[str, Any] | None = None,
    ) -> BulkResult:
        """Apply ``approve``, ``reject`` or ``review`` to each submission.

        Best-effort: every item runs in its own transaction, and a failing
        item is recorded in the result without affecting the others.
        """
        try:
            action = BulkAction(action).value
        except ValueError as exc:
            raise ChallengeValidationError({"action": [f"Unknown bulk action '{action}'"]}) from exc

        self._authorize(actor, "bulk_apply")

        ids = list(dict.fromkeys(submission_ids))
        if not ids:
            raise ChallengeValidationError({"submission_ids": ["Select at least one submission"]})
        if len(ids) > self.settings.bulk_max_items:
            raise LimitExceededError(
                f"At most {self.settings.bulk_max_items} submissions can be processed at once",
                self.settings.bulk_max_items,
            )

        review_input: ReviewInput | None = None
        if action == BulkAction.REVIEW.value:
            if review is None:
                raise ChallengeValidationError(
                    {"review": ["Bulk review requires a score and feedback"]}
                )
            if not isinstance(review, BulkReviewParams):
                try:
                    review = BulkReviewParams.model_validate(dict(review))
                except PydanticValidationError as exc:
                    raise ChallengeValidationError.from_pydantic(exc) from exc
            review_input = self._validate_review(review.model_dump())

        result = BulkResult(action=action)
        for submission_id in ids:
            try:
                if action == BulkAction.APPROVE.value:
                    await self.update_status(actor, submission_id, "approved")
                elif action == BulkAction.REJECT.value:
                    await self.update_status(actor, submission_id, "rejected")
                else:
                    await self.submit_review(actor, submission_id, review_input)
            except ChallengeServiceError as exc:
                logger.warning(
                    "bulk_item_failed",
                    action=action,
                    submission_id=str(submission_id),
                    error_type=exc.error_type,
                )
                result.failed.append(
                    BulkFailure(
                        submission_id=submission_id,
                        error_type=exc.error_type,
                        message=exc.message,
                    )
                )
            else:
                result.succeeded.append(submission_id)

        logger.info(
            "bulk_apply_completed",
            action=action,
            succeeded=len(result.succeeded),
            failed=len(result.failed),
        )
        return result

    # ===========================================
    # QUEUE
    # ===========================================

    async def review_queue(
        self,
        actor: Actor,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[ReviewQueueItem]:
        """Submissions awaiting the actor's review, most urgent first."""
        self._authorize(actor, "review")

        submissions = await self.submissions.review_queue(
            actor.id, limit or self.settings.review_queue_limit
        )
        items = [
            ReviewQueueItem(
                submission_id=submission.id,
                challenge_id=submission.challenge_id,
                title=submission.title,
                challenge_title=submission.challenge.title,
                status=submission.status,
                priority=classify_priority(submission.challenge.deadline, now, self.settings),
                deadline=submission.challenge.deadline,
                submitted_at=submission.submitted_at,
                assigned_to_me=submission.assigned_reviewer_id == actor.id,
            )
            for submission in submissions
        ]
        items.sort(key=lambda item: priority_rank(item.priority))
        return items

    async def review_stats(self, actor: Actor, now: datetime | None = None) -> ReviewerStats:
        """The actor's review totals, recent activity, mean score and open queue size.

        "This month" and "this week" start at midnight UTC on the first of the
        month and on Monday respectively.
        """
        self._authorize(actor, "review")

        now = now or utcnow()
        totals = await self.reviews.stats_for_reviewer(
            actor.id, start_of_month(now), start_of_week(now)
        )
        pending = await self.submissions.count_review_queue(actor.id)
        average = totals.get("average_score")
        return ReviewerStats(
            reviewer_id=actor.id,
            total_reviews=totals.get("total_reviews") or 0,
            reviews_this_month=totals.get("reviews_this_month") or 0,
            reviews_this_week=totals.get("reviews_this_week") or 0,
            average_score=float(average) if average is not None else 0.0,
            pending_reviews=pending,
        )
