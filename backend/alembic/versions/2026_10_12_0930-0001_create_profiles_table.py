"""create profiles table

Revision ID: 0001
Revises: 
Create Date: 2026-10-12
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        # id is the identity provider's user id, no server default
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("api_key_hash", sa.String(64), nullable=True),
        sa.Column("api_key_prefix", sa.String(12), nullable=True),
        sa.Column("key_generated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("rate_limit", sa.Integer(), nullable=False, server_default="1000"),
        sa.Column("request_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_request_time", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "allowed_domains",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_profiles_email"),
        sa.UniqueConstraint("api_key_hash", name="uq_profiles_api_key_hash"),
        sa.CheckConstraint("rate_limit >= 0", name="ck_profiles_rate_limit_non_neg"),
    )


def downgrade() -> None:
    op.drop_table("profiles")
