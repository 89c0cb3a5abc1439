"""
Address book router — user-submitted residential addresses.

Listing and adding need a session; editing and deleting are admin actions.
Stored entries show up in postcode search results as `residential`
summaries.
"""

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from postcode_api.auth.dependencies import AdminProfile, CurrentProfile
from postcode_api.core.database import get_db_session
from postcode_api.models.address import ResidentialAddress, compose_full_address
from postcode_api.schemas.account import AddressIn, AddressOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Addresses"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def _escape_like(text: str) -> str:
    """Make % and _ in user input match literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def _get_or_404(session: AsyncSession, address_id: uuid.UUID) -> ResidentialAddress:
    address = await session.get(ResidentialAddress, address_id)
    if address is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Address {address_id} not found",
        )
    return address


@router.get("", response_model=list[AddressOut], summary="List residential addresses")
async def list_addresses(
    _profile: CurrentProfile,
    session: DbSession,
    search: str | None = Query(default=None, max_length=100),
) -> list[ResidentialAddress]:
    """Newest first; `search` filters on full address, postcode and town."""
    stmt = select(ResidentialAddress).order_by(ResidentialAddress.created_at.desc())
    if search:
        pattern = f"%{_escape_like(search.lower())}%"
        stmt = stmt.where(
            or_(
                func.lower(ResidentialAddress.full_address).like(pattern, escape="\\"),
                func.lower(ResidentialAddress.postcode).like(pattern, escape="\\"),
                func.lower(ResidentialAddress.town).like(pattern, escape="\\"),
            )
        )
    result = await session.execute(stmt)
    return list(result.scalars().all())


@router.post(
    "",
    response_model=AddressOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add a residential address",
)
async def create_address(
    payload: AddressIn,
    profile: CurrentProfile,
    session: DbSession,
) -> ResidentialAddress:
    address = ResidentialAddress(
        postcode=payload.postcode.upper(),
        building_number=payload.building_number,
        street_address=payload.street_address,
        town=payload.town,
        full_address=compose_full_address(
            payload.building_number, payload.street_address, payload.postcode.upper(),
        ),
    )
    session.add(address)
    await session.commit()
    await session.refresh(address)
    logger.info("Profile %s added address %s", profile.id, address.id)
    return address


@router.put(
    "/{address_id}",
    response_model=AddressOut,
    summary="Edit a residential address (admin)",
)
async def update_address(
    address_id: uuid.UUID,
    payload: AddressIn,
    _admin: AdminProfile,
    session: DbSession,
) -> ResidentialAddress:
    address = await _get_or_404(session, address_id)

    address.postcode = payload.postcode.upper()
    address.building_number = payload.building_number
    address.street_address = payload.street_address
    address.town = payload.town
    address.full_address = compose_full_address(
        address.building_number, address.street_address, address.postcode,
    )
    await session.commit()
    return address


@router.delete(
    "/{address_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a residential address (admin)",
)
async def delete_address(
    address_id: uuid.UUID,
    _admin: AdminProfile,
    session: DbSession,
) -> Response:
    address = await _get_or_404(session, address_id)
    await session.delete(address)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
