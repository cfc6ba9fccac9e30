"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for the evaluation request service:
users, guide_profiles, evaluation_requests, request_transitions,
notifications.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Statuses are stored by enum member name.
ACTIVE_PAIR_PREDICATE = sa.text("status IN ('pending', 'accepted')")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("username", sa.String(50), nullable=False, unique=True),
        sa.Column("primary_sport", sa.String(50), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("rank", sa.String(20), nullable=True),
        sa.Column("athlete_class", sa.String(20), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- guide_profiles ---
    op.create_table(
        "guide_profiles",
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("specialty", sa.String(100), nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- evaluation_requests ---
    op.create_table(
        "evaluation_requests",
        sa.Column("request_id", sa.String(36), primary_key=True),
        sa.Column("seeker_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("guide_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("message", sa.String(150), nullable=False),
        sa.Column("moderator_message", sa.String(500), nullable=True),
        sa.Column("scheduled_date", sa.Date, nullable=True),
        sa.Column("scheduled_time", sa.String(5), nullable=True),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("equipment", sa.JSON, nullable=True),
        sa.Column("verification_code", sa.Integer, nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_evaluation_requests_seeker_id", "evaluation_requests", ["seeker_id"])
    op.create_index("ix_evaluation_requests_guide_id", "evaluation_requests", ["guide_id"])
    op.create_index(
        "ix_evaluation_requests_code_guide", "evaluation_requests", ["verification_code", "guide_id"]
    )
    op.create_index(
        "uq_active_request_pair",
        "evaluation_requests",
        ["seeker_id", "guide_id"],
        unique=True,
        postgresql_where=ACTIVE_PAIR_PREDICATE,
        sqlite_where=ACTIVE_PAIR_PREDICATE,
    )

    # --- request_transitions ---
    op.create_table(
        "request_transitions",
        sa.Column("transition_id", sa.String(36), primary_key=True),
        sa.Column(
            "request_id", sa.String(36), sa.ForeignKey("evaluation_requests.request_id"), nullable=False
        ),
        sa.Column("actor_user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("from_status", sa.String(20), nullable=True),
        sa.Column("to_status", sa.String(20), nullable=False),
        sa.Column("before_snapshot", sa.JSON, nullable=True),
        sa.Column("after_snapshot", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_request_transitions_request_id", "request_transitions", ["request_id"])

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("notification_id", sa.String(36), primary_key=True),
        sa.Column("recipient_id", sa.String(36), nullable=False),
        sa.Column("actor_id", sa.String(36), nullable=True),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.String(1000), nullable=False),
        sa.Column("data", sa.JSON, nullable=True),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("request_transitions")
    op.drop_index("uq_active_request_pair", table_name="evaluation_requests")
    op.drop_table("evaluation_requests")
    op.drop_table("guide_profiles")
    op.drop_table("users")
