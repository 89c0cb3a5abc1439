"""create residential_addresses table

Revision ID: 0003
Revises: 0002
Create Date: 2026-10-14
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0003"
down_revision: Union[str, None] = "0002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "residential_addresses",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("postcode", sa.String(10), nullable=False),
        sa.Column("building_number", sa.String(50), nullable=False),
        sa.Column("street_address", sa.Text(), nullable=False),
        sa.Column("town", sa.Text(), nullable=False),
        sa.Column("full_address", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_residential_addresses_postcode",
        "residential_addresses",
        ["postcode"],
    )


def downgrade() -> None:
    op.drop_index("ix_residential_addresses_postcode", table_name="residential_addresses")
    op.drop_table("residential_addresses")
