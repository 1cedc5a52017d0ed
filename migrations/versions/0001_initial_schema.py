"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

domains / activities taxonomy plus the append-only logs table.
The unique constraints back the resolver's ON CONFLICT DO NOTHING inserts.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


_FTS_DOCUMENT = (
    "coalesce(description, '') || ' ' || coalesce(user_input, '') || ' ' || coalesce(content, '')"
)


def upgrade() -> None:
    # --- domains ---
    op.create_table(
        "domains",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("color", sa.String(16), nullable=True),
        sa.Column("icon", sa.String(64), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_domain_name"),
    )
    op.create_index("ix_domains_id", "domains", ["id"])
    op.create_index("ix_domains_name", "domains", ["name"])

    # --- activities ---
    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("domain_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(16), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["domain_id"], ["domains.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("name", "domain_id", name="uq_activity_name_domain"),
    )
    op.create_index("ix_activities_id", "activities", ["id"])
    op.create_index("ix_activities_domain_id", "activities", ["domain_id"])

    # --- logs ---
    op.create_table(
        "logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("user_input", sa.Text(), nullable=False),
        sa.Column("domain_id", sa.Integer(), nullable=True),
        sa.Column("activity_id", sa.Integer(), nullable=True),
        sa.Column("mood_score", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("energy_level", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("productivity_score", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("stress_level", sa.Integer(), nullable=True),
        sa.Column("satisfaction_score", sa.Integer(), nullable=True),
        sa.Column("metadata", sa.Text(), nullable=True),
        sa.Column("related_log_ids", sa.Text(), nullable=True),
        sa.Column("goal_id", sa.Integer(), nullable=True),
        sa.Column("location", sa.String(256), nullable=True),
        sa.Column("time_of_day", sa.String(16), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("currency", sa.String(8), nullable=True),
        sa.Column("priority", sa.String(16), nullable=True),
        sa.Column("sentiment", sa.String(16), nullable=True),
        sa.Column("ai_action", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["domain_id"], ["domains.id"]),
        sa.ForeignKeyConstraint(["activity_id"], ["activities.id"]),
    )
    op.create_index("ix_logs_id", "logs", ["id"])
    op.create_index("ix_logs_domain_id", "logs", ["domain_id"])
    op.create_index("ix_logs_activity_id", "logs", ["activity_id"])
    op.create_index("ix_logs_goal_id", "logs", ["goal_id"])
    op.create_index("ix_logs_mood_score", "logs", ["mood_score"])
    op.create_index("ix_logs_created_at", "logs", ["created_at"])
    op.create_index(
        "logs_domain_activity_created_idx", "logs", ["domain_id", "activity_id", "created_at"]
    )

    # Full-text index matching the search predicate (PostgreSQL only)
    if op.get_bind().dialect.name == "postgresql":
        op.execute(
            f"CREATE INDEX logs_fts_idx ON logs USING GIN (to_tsvector('english', {_FTS_DOCUMENT}))"
        )


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP INDEX IF EXISTS logs_fts_idx")
    op.drop_table("logs")
    op.drop_table("activities")
    op.drop_table("domains")
