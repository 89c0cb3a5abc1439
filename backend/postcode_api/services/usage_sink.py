"""
Usage accounting sink — append-only writer for the api_usage table.

Each call opens its OWN session from the factory, independent of the
request session, so a broken request transaction can't swallow the
audit row and a failed audit write can't poison the request.

Failures surface as StoreError. Whether that reaches the client is the
caller's policy; the lookup proxy swallows it and logs.
"""

from __future__ import annotations

import datetime
import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from postcode_api.core.errors import StoreError
from postcode_api.models.usage import UsageRecord

logger = logging.getLogger(__name__)


class UsageSink:
    """Inserts one UsageRecord per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        user_id: uuid.UUID,
        endpoint: str,
        status: str,
        timestamp: datetime.datetime,
    ) -> None:
        """
        Append one usage row and commit it.

        Raises:
            StoreError: the store rejected the insert or is unreachable.
        """
        try:
            async with self._session_factory() as session:
                try:
                    session.add(
                        UsageRecord(
                            user_id=user_id,
                            endpoint=endpoint,
                            status=status,
                            timestamp=timestamp,
                        )
                    )
                    await session.commit()
                except SQLAlchemyError:
                    await session.rollback()
                    raise
        except (SQLAlchemyError, OSError) as exc:
            raise StoreError() from exc

        logger.debug("Recorded %s %s for %s", endpoint, status, user_id)
