"""create api_usage table

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-12

Append-only usage log, one row per proxied lookup.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "api_usage",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("endpoint", sa.String(64), nullable=False),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column("timestamp", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "status IN ('success', 'error')", name="ck_api_usage_status_valid"
        ),
    )
    # Dashboard reads: one user's rows ordered by time
    op.create_index(
        "ix_api_usage_user_timestamp",
        "api_usage",
        ["user_id", "timestamp"],
    )


def downgrade() -> None:
    op.drop_index("ix_api_usage_user_timestamp", table_name="api_usage")
    op.drop_table("api_usage")
