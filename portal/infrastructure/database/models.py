"""SQLAlchemy ORM models for the challenge portal database."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    ARRAY,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from portal.shared.utils.datetime_utils import utcnow


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSONB,
        list[str]: ARRAY(String),
    }


# ===========================================
# USERS
# ===========================================


class User(Base):
    """Portal user. Authentication lives elsewhere; only identity and roles are kept."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    roles: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


submission_team_members = Table(
    "submission_team_members",
    Base.metadata,
    Column(
        "submission_id",
        PG_UUID(as_uuid=True),
        ForeignKey("challenge_submissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


# ===========================================
# CHALLENGE TABLES
# ===========================================


class Challenge(Base):
    """An innovation challenge open for submissions."""

    __tablename__ = "challenges"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False, default="other")
    prize_description: Mapped[str | None] = mapped_column(Text)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    judging_criteria: Mapped[str | None] = mapped_column(Text)
    # [{"name": "Feasibility", "weight": 40}, ...]
    criteria: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    author_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    winners_announced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    author: Mapped["User"] = relationship()
    submissions: Mapped[list["ChallengeSubmission"]] = relationship(
        back_populates="challenge",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'active', 'judging', 'completed', 'cancelled')",
            name="ck_challenge_status",
        ),
        CheckConstraint(
            "category IN ('technology', 'sustainability', 'safety', 'innovation', "
            "'infrastructure', 'operations', 'other')",
            name="ck_challenge_category",
        ),
        Index("idx_challenges_status", "status"),
        Index("idx_challenges_deadline", "deadline"),
        Index("idx_challenges_author", "author_id"),
    )


class ChallengeSubmission(Base):
    """A participant's (or team's) entry to a challenge."""

    __tablename__ = "challenge_submissions"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    challenge_id: Mapped[UUID] = mapped_column(
        ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    is_team_submission: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="submitted")
    assigned_reviewer_id: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"))
    score: Mapped[float | None] = mapped_column(Float)
    ranking: Mapped[int | None] = mapped_column(Integer)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=utcnow)
    winner_announced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    challenge: Mapped["Challenge"] = relationship(back_populates="submissions")
    author: Mapped["User"] = relationship(foreign_keys=[author_id])
    reviews: Mapped[list["ChallengeReview"]] = relationship(back_populates="submission")
    team_members: Mapped[list["User"]] = relationship(secondary=submission_team_members)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'submitted', 'under_review', 'reviewed', 'needs_revision', "
            "'approved', 'rejected', 'winner', 'completed')",
            name="ck_submission_status",
        ),
        CheckConstraint(
            "(status = 'winner') = (ranking IS NOT NULL)",
            name="ck_submission_ranking_iff_winner",
        ),
        CheckConstraint("ranking IS NULL OR ranking >= 1", name="ck_submission_ranking_positive"),
        Index("idx_submissions_challenge", "challenge_id"),
        Index("idx_submissions_author", "author_id"),
        Index("idx_submissions_status", "status"),
        Index("idx_submissions_reviewer", "assigned_reviewer_id"),
    )


class ChallengeReview(Base):
    """One reviewer's scored evaluation of a submission."""

    __tablename__ = "challenge_reviews"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    submission_id: Mapped[UUID] = mapped_column(
        ForeignKey("challenge_submissions.id", ondelete="CASCADE"), nullable=False
    )
    reviewer_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    feedback: Mapped[str] = mapped_column(Text, nullable=False)
    recommendation: Mapped[str] = mapped_column(String(20), nullable=False)
    criteria_scores: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    strengths: Mapped[str | None] = mapped_column(Text)
    weaknesses: Mapped[str | None] = mapped_column(Text)
    suggestions: Mapped[str | None] = mapped_column(Text)
    time_spent_minutes: Mapped[int | None] = mapped_column(Integer)
    reviewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    submission: Mapped["ChallengeSubmission"] = relationship(back_populates="reviews")
    reviewer: Mapped["User"] = relationship()

    __table_args__ = (
        UniqueConstraint("submission_id", "reviewer_id", name="uq_review_submission_reviewer"),
        CheckConstraint("score >= 0 AND score <= 100", name="ck_review_score_range"),
        CheckConstraint(
            "recommendation IN ('approve', 'reject', 'needs_revision')",
            name="ck_review_recommendation",
        ),
        Index("idx_reviews_reviewer", "reviewer_id"),
    )


# ===========================================
# NOTIFICATION & AUDIT TABLES
# ===========================================


class Notification(Base):
    """In-app notifications for portal users."""

    __tablename__ = "notifications"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="normal")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str | None] = mapped_column(Text)
    data: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_notifications_user", "user_id"),
        Index("idx_notifications_unread", "user_id", postgresql_where="read_at IS NULL"),
        Index("idx_notifications_type", "notification_type"),
    )


class AuditLog(Base):
    """Before/after audit trail of workflow actions."""

    __tablename__ = "audit_log"

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    actor_id: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"))
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True))
    before: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    after: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_audit_actor", "actor_id"),
        Index("idx_audit_action", "action"),
        Index("idx_audit_resource", "resource_type", "resource_id"),
    )
