"""Add challenge review and winner selection tables.

Revision ID: 20261019_001
Revises:
Create Date: 2026-10-19 00:00:01.000000

Creates: users, challenges, challenge_submissions, submission_team_members,
challenge_reviews, notifications, audit_log
"""

revision = "20261019_001"
down_revision = None

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID


def upgrade() -> None:
    # ── users ──
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("roles", ARRAY(sa.String), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )

    # ── challenges ──
    op.create_table(
        "challenges",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(30), nullable=False, server_default="other"),
        sa.Column("prize_description", sa.Text(), nullable=True),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("judging_criteria", sa.Text(), nullable=True),
        sa.Column("criteria", JSONB, nullable=False, server_default="[]"),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("author_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("winners_announced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint(
            "status IN ('draft','active','judging','completed','cancelled')",
            name="ck_challenge_status",
        ),
        sa.CheckConstraint(
            "category IN ('technology','sustainability','safety','innovation',"
            "'infrastructure','operations','other')",
            name="ck_challenge_category",
        ),
    )
    op.create_index("idx_challenges_status", "challenges", ["status"])
    op.create_index("idx_challenges_deadline", "challenges", ["deadline"])
    op.create_index("idx_challenges_author", "challenges", ["author_id"])

    # ── challenge_submissions ──
    op.create_table(
        "challenge_submissions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("challenge_id", UUID(as_uuid=True), sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("is_team_submission", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("status", sa.String(20), nullable=False, server_default="submitted"),
        sa.Column("assigned_reviewer_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("ranking", sa.Integer(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True, server_default=sa.text("NOW()")),
        sa.Column("winner_announced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint(
            "status IN ('draft','submitted','under_review','reviewed','needs_revision',"
            "'approved','rejected','winner','completed')",
            name="ck_submission_status",
        ),
        sa.CheckConstraint(
            "(status = 'winner') = (ranking IS NOT NULL)",
            name="ck_submission_ranking_iff_winner",
        ),
        sa.CheckConstraint("ranking IS NULL OR ranking >= 1", name="ck_submission_ranking_positive"),
    )
    op.create_index("idx_submissions_challenge", "challenge_submissions", ["challenge_id"])
    op.create_index("idx_submissions_author", "challenge_submissions", ["author_id"])
    op.create_index("idx_submissions_status", "challenge_submissions", ["status"])
    op.create_index("idx_submissions_reviewer", "challenge_submissions", ["assigned_reviewer_id"])

    # ── submission_team_members ──
    op.create_table(
        "submission_team_members",
        sa.Column(
            "submission_id",
            UUID(as_uuid=True),
            sa.ForeignKey("challenge_submissions.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )

    # ── challenge_reviews ──
    op.create_table(
        "challenge_reviews",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column(
            "submission_id",
            UUID(as_uuid=True),
            sa.ForeignKey("challenge_submissions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reviewer_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("feedback", sa.Text(), nullable=False),
        sa.Column("recommendation", sa.String(20), nullable=False),
        sa.Column("criteria_scores", JSONB, nullable=False, server_default="{}"),
        sa.Column("strengths", sa.Text(), nullable=True),
        sa.Column("weaknesses", sa.Text(), nullable=True),
        sa.Column("suggestions", sa.Text(), nullable=True),
        sa.Column("time_spent_minutes", sa.Integer(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.UniqueConstraint("submission_id", "reviewer_id", name="uq_review_submission_reviewer"),
        sa.CheckConstraint("score >= 0 AND score <= 100", name="ck_review_score_range"),
        sa.CheckConstraint(
            "recommendation IN ('approve','reject','needs_revision')",
            name="ck_review_recommendation",
        ),
    )
    op.create_index("idx_reviews_reviewer", "challenge_reviews", ["reviewer_id"])

    # ── notifications ──
    op.create_table(
        "notifications",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("notification_type", sa.String(50), nullable=False),
        sa.Column("priority", sa.String(10), nullable=False, server_default="normal"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("data", JSONB, nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("idx_notifications_user", "notifications", ["user_id"])
    op.create_index(
        "idx_notifications_unread",
        "notifications",
        ["user_id"],
        postgresql_where=sa.text("read_at IS NULL"),
    )
    op.create_index("idx_notifications_type", "notifications", ["notification_type"])

    # ── audit_log ──
    op.create_table(
        "audit_log",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("actor_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=False),
        sa.Column("resource_id", UUID(as_uuid=True), nullable=True),
        sa.Column("before", JSONB, nullable=True),
        sa.Column("after", JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("idx_audit_actor", "audit_log", ["actor_id"])
    op.create_index("idx_audit_action", "audit_log", ["action"])
    op.create_index("idx_audit_resource", "audit_log", ["resource_type", "resource_id"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("notifications")
    op.drop_table("challenge_reviews")
    op.drop_table("submission_team_members")
    op.drop_table("challenge_submissions")
    op.drop_table("challenges")
    op.drop_table("users")
