"""REST API endpoints for challenge review and winner selection."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.infrastructure.database.session import get_db, get_session_factory
from portal.notifications.service import NotificationDispatcher, NotificationSink
from portal.security.audit import AuditService, AuditSink
from portal.security.authorization import Actor, Authorizer, RoleBasedAuthorizer
from portal.shared.utils.logging import get_logger

from .exceptions import ChallengeServiceError, raise_http_exception
from .leaderboard import ChallengeLeaderboard
from .lifecycle import ChallengeService
from .review_workflow import ReviewWorkflow
from .schemas import (
    BulkApplyRequest,
    BulkResult,
    ChallengeResponse,
    ChallengeStatistics,
    ChallengeStatusRequest,
    CreateChallengeRequest,
    LeaderboardEntry,
    ParticipantStanding,
    ReviewerStats,
    ReviewInput,
    ReviewQueueItem,
    ReviewResponse,
    StatusUpdateRequest,
    SubmissionResponse,
    TeamStanding,
    UpdateChallengeRequest,
    WinnerSelectionRequest,
    WinnerSelectionResult,
)
from .winners import WinnerSelectionWorkflow

logger = get_logger(__name__)

router = APIRouter(prefix="/challenges", tags=["challenges"])


# ===========================================
# DEPENDENCIES
# ===========================================


def get_current_actor(request: Request) -> Actor:
    """Extract the acting user from request state (set by auth middleware)."""
    actor = getattr(request.state, "actor", None)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


def get_authorizer() -> Authorizer:
    return RoleBasedAuthorizer()


def get_notifier() -> NotificationSink:
    return NotificationDispatcher(get_session_factory())


def get_auditor() -> AuditSink:
    return AuditService(get_session_factory())


def get_review_workflow(
    db: AsyncSession = Depends(get_db),
    authorizer: Authorizer = Depends(get_authorizer),
    notifier: NotificationSink = Depends(get_notifier),
    auditor: AuditSink = Depends(get_auditor),
) -> ReviewWorkflow:
    return ReviewWorkflow(db, authorizer, notifier, auditor)


def get_winner_workflow(
    db: AsyncSession = Depends(get_db),
    authorizer: Authorizer = Depends(get_authorizer),
    notifier: NotificationSink = Depends(get_notifier),
    auditor: AuditSink = Depends(get_auditor),
) -> WinnerSelectionWorkflow:
    return WinnerSelectionWorkflow(db, authorizer, notifier, auditor)


def get_challenge_service(
    db: AsyncSession = Depends(get_db),
    authorizer: Authorizer = Depends(get_authorizer),
    notifier: NotificationSink = Depends(get_notifier),
    auditor: AuditSink = Depends(get_auditor),
) -> ChallengeService:
    return ChallengeService(db, authorizer, notifier, auditor)


def get_leaderboard(db: AsyncSession = Depends(get_db)) -> ChallengeLeaderboard:
    return ChallengeLeaderboard(db)


# ===========================================
# REVIEW WORKFLOW
# ===========================================


@router.get("/reviews/queue", response_model=list[ReviewQueueItem])
async def get_review_queue(
    limit: int | None = Query(default=None, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    """Submissions waiting for the caller's review, most urgent first."""
    try:
        return await workflow.review_queue(actor, limit)
    except ChallengeServiceError as e:
        raise_http_exception(e)


@router.get("/reviews/stats", response_model=ReviewerStats)
async def get_review_stats(
    actor: Actor = Depends(get_current_actor),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    """The caller's review counts, average score and open queue size."""
    try:
        return await workflow.review_stats(actor)
    except ChallengeServiceError as e:
        raise_http_exception(e)


@router.post("/submissions/bulk", response_model=BulkResult)
async def bulk_apply(
    body: BulkApplyRequest,
    actor: Actor = Depends(get_current_actor),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    """Approve, reject or review many submissions; failures are reported per item."""
    try:
        return await workflow.bulk_apply(actor, body.submission_ids, body.action, body.review)
    except ChallengeServiceError as e:
        raise_http_exception(e)


@router.post("/submissions/{submission_id}/assign", response_model=SubmissionResponse)
async def assign_reviewer(
    submission_id: UUID,
    actor: Actor = Depends(get_current_actor),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    """Assign the submission to the calling reviewer."""
    try:
        return await workflow.assign_reviewer(actor, submission_id)
    except ChallengeServiceError as e:
        raise_http_exception(e)


@router.post(
    "/submissions/{submission_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_review(
    submission_id: UUID,
    body: ReviewInput,
    actor: Actor = Depends(get_current_actor),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    """Create or update the caller's review of a submission."""
    try:
        return await workflow.submit_review(actor, submission_id, body)
    except ChallengeServiceError as e:
        raise_http_exception(e)


@router.post("/submissions/{submission_id}/status", response_model=SubmissionResponse)
async def update_submission_status(
    submission_id: UUID,
    body: StatusUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    """Manually change a submission's status."""
    try:
        return await workflow.update_status(actor, submission_id, body.status, body.comments)
    except ChallengeServiceError as e:
        raise_http_exception(e)


# ===========================================
# CHALLENGE LIFECYCLE
# ===========================================


@router.post("", response_model=ChallengeResponse, status_code=status.HTTP_201_CREATED)
async def create_challenge(
    body: CreateChallengeRequest,
    actor: Actor = Depends(get_current_actor),
    service: ChallengeService = Depends(get_challenge_service),
):
    """Create a new challenge."""
    try:
        return await service.create_challenge(actor, body)
    except ChallengeServiceError as e:
        raise_http_exception(e)


@router.patch("/{challenge_id}", response_model=ChallengeResponse)
async def update_challenge(
    challenge_id: UUID,
    body: UpdateChallengeRequest,
    actor: Actor = Depends(get_current_actor),
    service: ChallengeService = Depends(get_challenge_service),
):
    """Edit a challenge that is not completed or cancelled."""
    try:
        return await service.update_challenge(actor, challenge_id, body)
    except ChallengeServiceError as e:
        raise_http_exception(e)


@router.post("/{challenge_id}/status", response_model=ChallengeResponse)
async def transition_challenge(
    challenge_id: UUID,
    body: ChallengeStatusRequest,
    actor: Actor = Depends(get_current_actor),
    service: ChallengeService = Depends(get_challenge_service),
):
    """Manually move a challenge to a new status."""
    try:
        return await service.transition_status(actor, challenge_id, body.status)
    except ChallengeServiceError as e:
        raise_http_exception(e)


# ===========================================
# WINNER SELECTION
# ===========================================


@router.post("/{challenge_id}/winners", response_model=WinnerSelectionResult)
async def select_winners(
    challenge_id: UUID,
    body: WinnerSelectionRequest,
    actor: Actor = Depends(get_current_actor),
    workflow: WinnerSelectionWorkflow = Depends(get_winner_workflow),
):
    """Rank winners in the given order and complete the challenge."""
    try:
        return await workflow.select_winners(
            actor,
            challenge_id,
            body.submission_ids,
            body.announcement_message,
            notify_winners=body.notify_winners,
            notify_participants=body.notify_participants,
        )
    except ChallengeServiceError as e:
        raise_http_exception(e)


# ===========================================
# LEADERBOARDS
# ===========================================


@router.get("/{challenge_id}/leaderboard/submissions", response_model=list[LeaderboardEntry])
async def get_submission_leaderboard(
    challenge_id: UUID,
    limit: int | None = Query(default=None, ge=1, le=100),
    leaderboard: ChallengeLeaderboard = Depends(get_leaderboard),
):
    """Top submissions by average review score."""
    try:
        return await leaderboard.get_top_submissions(challenge_id, limit)
    except ChallengeServiceError as e:
        raise_http_exception(e)


@router.get("/{challenge_id}/leaderboard/participants", response_model=list[ParticipantStanding])
async def get_participant_leaderboard(
    challenge_id: UUID,
    sort_by: str = Query(default="average_score"),
    limit: int | None = Query(default=None, ge=1, le=100),
    leaderboard: ChallengeLeaderboard = Depends(get_leaderboard),
):
    """Top participants by average or best submission score."""
    try:
        return await leaderboard.get_top_participants(challenge_id, sort_by, limit)
    except ChallengeServiceError as e:
        raise_http_exception(e)


@router.get("/{challenge_id}/leaderboard/teams", response_model=list[TeamStanding])
async def get_team_leaderboard(
    challenge_id: UUID,
    limit: int | None = Query(default=None, ge=1, le=100),
    leaderboard: ChallengeLeaderboard = Depends(get_leaderboard),
):
    """Top team submissions by average review score."""
    try:
        return await leaderboard.get_top_teams(challenge_id, limit)
    except ChallengeServiceError as e:
        raise_http_exception(e)


@router.get("/{challenge_id}/statistics", response_model=ChallengeStatistics)
async def get_challenge_statistics(
    challenge_id: UUID,
    leaderboard: ChallengeLeaderboard = Depends(get_leaderboard),
):
    """Submission, participation and review-progress totals."""
    try:
        return await leaderboard.get_statistics(challenge_id)
    except ChallengeServiceError as e:
        raise_http_exception(e)
