"""
Residential address model — user-submitted address book entries.

These are merged into postcode search results as `residential`
summaries. full_address is always composed server-side.
"""

import datetime
import uuid

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from postcode_api.core.database import Base


def compose_full_address(building_number: str, street_address: str, postcode: str) -> str:
    """Single-line address in the form "12 High Street, SW1A 1AA"."""
    return f"{building_number} {street_address}, {postcode}".strip()


class ResidentialAddress(Base):
    """One stored residential address."""

    __tablename__ = "residential_addresses"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    postcode: Mapped[str] = mapped_column(String(10), nullable=False)
    building_number: Mapped[str] = mapped_column(String(50), nullable=False)
    street_address: Mapped[str] = mapped_column(Text, nullable=False)
    town: Mapped[str] = mapped_column(Text, nullable=False)
    full_address: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.datetime.now(datetime.timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_residential_addresses_postcode", "postcode"),
    )

    def __repr__(self) -> str:
        return f"<ResidentialAddress id={self.id!s:.8} address={self.full_address!r}>"
