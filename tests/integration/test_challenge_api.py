"""Integration tests for the challenge review HTTP endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from portal.security.authorization import Actor
from tests.factories import ChallengeFactory, SubmissionFactory

ANNOUNCEMENT = "Thank you to everyone who took part in this year's energy challenge!"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def actor():
    return Actor(id=uuid4(), roles=frozenset({"manager"}))


@pytest.fixture
def review_workflow():
    workflow = MagicMock()
    workflow.assign_reviewer = AsyncMock()
    workflow.submit_review = AsyncMock()
    workflow.update_status = AsyncMock()
    workflow.bulk_apply = AsyncMock()
    workflow.review_queue = AsyncMock(return_value=[])
    workflow.review_stats = AsyncMock()
    return workflow


@pytest.fixture
def winner_workflow():
    workflow = MagicMock()
    workflow.select_winners = AsyncMock()
    return workflow


@pytest.fixture
def leaderboard():
    board = MagicMock()
    board.get_top_submissions = AsyncMock(return_value=[])
    board.get_top_participants = AsyncMock(return_value=[])
    board.get_top_teams = AsyncMock(return_value=[])
    board.get_statistics = AsyncMock()
    return board


@pytest.fixture
def challenge_service():
    service = MagicMock()
    service.create_challenge = AsyncMock()
    service.update_challenge = AsyncMock()
    service.transition_status = AsyncMock()
    return service


def _make_app(actor=None, **overrides):
    """App with the challenge router, an injected actor and overridden services."""
    from portal.challenges import api

    app = FastAPI()
    app.include_router(api.router, prefix="/api/v1")

    if actor is not None:

        @app.middleware("http")
        async def inject_actor(request, call_next):
            request.state.actor = actor
            return await call_next(request)

    dependency_map = {
        "review_workflow": api.get_review_workflow,
        "winner_workflow": api.get_winner_workflow,
        "leaderboard": api.get_leaderboard,
        "challenge_service": api.get_challenge_service,
    }
    for name, value in overrides.items():
        app.dependency_overrides[dependency_map[name]] = _provide(value)
    return app


def _provide(value):
    def _dependency():
        return value

    return _dependency


@pytest.fixture
def client(actor, review_workflow, winner_workflow, leaderboard, challenge_service):
    app = _make_app(
        actor,
        review_workflow=review_workflow,
        winner_workflow=winner_workflow,
        leaderboard=leaderboard,
        challenge_service=challenge_service,
    )
    return TestClient(app)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestAuthentication:
    def test_requires_actor(self, review_workflow):
        client = TestClient(_make_app(review_workflow=review_workflow))
        response = client.post(f"/api/v1/challenges/submissions/{uuid4()}/assign")
        assert response.status_code == 401


class TestReviewEndpoints:
    def test_assign(self, client, review_workflow, actor):
        submission = SubmissionFactory.create(status="under_review", assigned_reviewer_id=actor.id)
        review_workflow.assign_reviewer.return_value = submission

        response = client.post(f"/api/v1/challenges/submissions/{submission.id}/assign")

        assert response.status_code == 200
        assert response.json()["status"] == "under_review"
        assert response.json()["assigned_reviewer_id"] == str(actor.id)
        review_workflow.assign_reviewer.assert_awaited_once_with(actor, submission.id)

    def test_assign_conflict(self, client, review_workflow):
        from portal.challenges.exceptions import AlreadyAssignedError

        submission_id = uuid4()
        review_workflow.assign_reviewer.side_effect = AlreadyAssignedError(submission_id, uuid4())

        response = client.post(f"/api/v1/challenges/submissions/{submission_id}/assign")

        assert response.status_code == 409
        assert response.json()["detail"]["type"].endswith("/already_assigned")

    def test_submit_review_validates_body(self, client, review_workflow):
        response = client.post(
            f"/api/v1/challenges/submissions/{uuid4()}/reviews",
            json={"score": 140, "feedback": "short", "recommendation": "approve"},
        )
        assert response.status_code == 422
        review_workflow.submit_review.assert_not_awaited()

    def test_submit_review(self, client, review_workflow, actor):
        submission_id = uuid4()
        review_workflow.submit_review.return_value = SimpleNamespace(
            id=uuid4(),
            submission_id=submission_id,
            reviewer_id=actor.id,
            score=82.5,
            feedback="Solid plan with measurable savings.",
            recommendation="approve",
            criteria_scores={},
            strengths=None,
            weaknesses=None,
            suggestions=None,
            reviewed_at=datetime.now(timezone.utc),
        )

        response = client.post(
            f"/api/v1/challenges/submissions/{submission_id}/reviews",
            json={
                "score": 82.5,
                "feedback": "Solid plan with measurable savings.",
                "recommendation": "approve",
            },
        )

        assert response.status_code == 201
        assert response.json()["score"] == 82.5

    def test_status_update(self, client, review_workflow, actor):
        submission = SubmissionFactory.create(status="approved")
        review_workflow.update_status.return_value = submission

        response = client.post(
            f"/api/v1/challenges/submissions/{submission.id}/status",
            json={"status": "approved", "comments": "Great work"},
        )

        assert response.status_code == 200
        review_workflow.update_status.assert_awaited_once_with(
            actor, submission.id, "approved", "Great work"
        )

    def test_bulk_apply(self, client, review_workflow):
        from portal.challenges.schemas import BulkFailure, BulkResult

        ok, bad = uuid4(), uuid4()
        review_workflow.bulk_apply.return_value = BulkResult(
            action="reject",
            succeeded=[ok],
            failed=[BulkFailure(submission_id=bad, error_type="not_found", message="missing")],
        )

        response = client.post(
            "/api/v1/challenges/submissions/bulk",
            json={"submission_ids": [str(ok), str(bad)], "action": "reject"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["succeeded"] == [str(ok)]
        assert body["failed"][0]["error_type"] == "not_found"

    def test_review_queue(self, client, review_workflow, actor):
        response = client.get("/api/v1/challenges/reviews/queue?limit=5")
        assert response.status_code == 200
        assert response.json() == []
        review_workflow.review_queue.assert_awaited_once_with(actor, 5)

    def test_review_stats(self, client, review_workflow, actor):
        from portal.challenges.schemas import ReviewerStats

        review_workflow.review_stats.return_value = ReviewerStats(
            reviewer_id=actor.id,
            total_reviews=4,
            reviews_this_month=2,
            reviews_this_week=1,
            average_score=77.5,
            pending_reviews=6,
        )

        response = client.get("/api/v1/challenges/reviews/stats")

        assert response.status_code == 200
        assert response.json()["pending_reviews"] == 6
        assert response.json()["average_score"] == 77.5
        review_workflow.review_stats.assert_awaited_once_with(actor)


class TestWinnerEndpoint:
    def test_select_winners(self, client, winner_workflow, actor):
        from portal.challenges.schemas import WinnerEntry, WinnerSelectionResult

        challenge_id, first, second = uuid4(), uuid4(), uuid4()
        winner_workflow.select_winners.return_value = WinnerSelectionResult(
            challenge_id=challenge_id,
            winners=[
                WinnerEntry(submission_id=first, ranking=1, title="A", author_id=uuid4()),
                WinnerEntry(submission_id=second, ranking=2, title="B", author_id=uuid4()),
            ],
            completed_count=3,
            winners_announced_at=datetime.now(timezone.utc),
        )

        response = client.post(
            f"/api/v1/challenges/{challenge_id}/winners",
            json={"submission_ids": [str(first), str(second)], "announcement_message": ANNOUNCEMENT},
        )

        assert response.status_code == 200
        assert [w["ranking"] for w in response.json()["winners"]] == [1, 2]
        args = winner_workflow.select_winners.await_args
        assert args.args[2] == [first, second]
        assert args.kwargs["notify_winners"] is True

    def test_completed_challenge_conflict(self, client, winner_workflow):
        from portal.challenges.exceptions import AlreadyCompletedError

        challenge_id = uuid4()
        winner_workflow.select_winners.side_effect = AlreadyCompletedError(challenge_id, "completed")

        response = client.post(
            f"/api/v1/challenges/{challenge_id}/winners",
            json={"submission_ids": [str(uuid4())], "announcement_message": ANNOUNCEMENT},
        )
        assert response.status_code == 409

    def test_too_many_winners(self, client, winner_workflow):
        from portal.challenges.exceptions import TooManyWinnersError

        winner_workflow.select_winners.side_effect = TooManyWinnersError(11, 10)
        response = client.post(
            f"/api/v1/challenges/{uuid4()}/winners",
            json={"submission_ids": [str(uuid4())], "announcement_message": ANNOUNCEMENT},
        )
        assert response.status_code == 400


class TestChallengeEndpoints:
    def test_create(self, client, challenge_service, actor):
        challenge_service.create_challenge.return_value = ChallengeFactory.create(
            status="draft", author_id=actor.id
        )

        response = client.post(
            "/api/v1/challenges",
            json={
                "title": "Quieter forklifts",
                "description": "Propose ways to reduce forklift noise in the warehouse.",
            },
        )

        assert response.status_code == 201
        assert response.json()["status"] == "draft"

    def test_transition(self, client, challenge_service, actor):
        challenge = ChallengeFactory.create(status="judging")
        challenge_service.transition_status.return_value = challenge

        response = client.post(f"/api/v1/challenges/{challenge.id}/status", json={"status": "judging"})

        assert response.status_code == 200
        challenge_service.transition_status.assert_awaited_once_with(actor, challenge.id, "judging")


class TestLeaderboardEndpoints:
    def test_statistics(self, client, leaderboard):
        from portal.challenges.schemas import ChallengeStatistics

        leaderboard.get_statistics.return_value = ChallengeStatistics(
            total_submissions=5,
            participant_count=4,
            team_submissions=1,
            individual_submissions=4,
            reviewed_count=2,
            average_score=70.0,
            highest_score=80.0,
            review_completion_rate=40.0,
        )

        response = client.get(f"/api/v1/challenges/{uuid4()}/statistics")

        assert response.status_code == 200
        assert response.json()["review_completion_rate"] == 40.0

    def test_unknown_challenge(self, client, leaderboard):
        from portal.challenges.exceptions import NotFoundError

        challenge_id = uuid4()
        leaderboard.get_top_submissions.side_effect = NotFoundError("challenge", challenge_id)

        response = client.get(f"/api/v1/challenges/{challenge_id}/leaderboard/submissions")
        assert response.status_code == 404

    def test_participants_sort_key_forwarded(self, client, leaderboard):
        challenge_id = uuid4()
        response = client.get(
            f"/api/v1/challenges/{challenge_id}/leaderboard/participants?sort_by=best_score&limit=3"
        )
        assert response.status_code == 200
        leaderboard.get_top_participants.assert_awaited_once_with(challenge_id, "best_score", 3)
