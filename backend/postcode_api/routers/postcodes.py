"""
Postcode lookup router — API-key-gated proxy to the postcode provider.

GET /api/postcodes/{postcode}                 → SearchEnd summaries
GET /api/postcodes/{postcode}/geocode         → coordinates + admin areas
GET /api/postcodes/{partial}/autocomplete     → postcode suggestions

Only GET is routed, so any other method is answered 405 by the router
itself — before a key is read or anything is logged.
Failures are ApiError subclasses rendered by the handler in main.py.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from postcode_api.auth.api_key import extract_presented_key
from postcode_api.core.database import get_db_session
from postcode_api.schemas.postcodes import (
    AutocompleteResponse,
    ErrorBody,
    GeocodeResponse,
    SearchEndResponse,
)
from postcode_api.services.domains import request_domain
from postcode_api.services.lookup_proxy import LookupProxy

router = APIRouter(tags=["Postcodes"])

_ERROR_RESPONSES = {
    401: {"model": ErrorBody, "description": "Missing or invalid API key"},
    403: {"model": ErrorBody, "description": "Domain not allowed for this key"},
    404: {"model": ErrorBody, "description": "Postcode not found"},
    429: {"model": ErrorBody, "description": "Rate limited"},
    500: {"model": ErrorBody, "description": "Upstream or store failure"},
}


def get_lookup_proxy(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> LookupProxy:
    state = request.app.state
    return LookupProxy(
        session,
        state.postcode_provider,
        state.usage_sink,
        nearby_radius=state.settings.NEARBY_RADIUS_METRES,
    )


Proxy = Annotated[LookupProxy, Depends(get_lookup_proxy)]
ApiKeyHeader = Annotated[str | None, Header(alias="X-API-Key")]
AuthorizationHeader = Annotated[str | None, Header(alias="Authorization")]
OriginHeader = Annotated[str | None, Header(alias="Origin")]
RefererHeader = Annotated[str | None, Header(alias="Referer")]


@router.get(
    "/{postcode}",
    response_model=SearchEndResponse,
    responses=_ERROR_RESPONSES,
    summary="Look up addresses for a postcode",
)
async def search_postcode(
    postcode: str,
    proxy: Proxy,
    x_api_key: ApiKeyHeader = None,
    authorization: AuthorizationHeader = None,
    origin: OriginHeader = None,
    referer: RefererHeader = None,
) -> SearchEndResponse:
    summaries = await proxy.search(
        postcode,
        extract_presented_key(x_api_key, authorization),
        request_domain(origin, referer),
    )
    return SearchEndResponse.of(summaries)


@router.get(
    "/{postcode}/geocode",
    response_model=GeocodeResponse,
    responses=_ERROR_RESPONSES,
    summary="Geocoordinates for a postcode",
)
async def geocode_postcode(
    postcode: str,
    proxy: Proxy,
    x_api_key: ApiKeyHeader = None,
    authorization: AuthorizationHeader = None,
    origin: OriginHeader = None,
    referer: RefererHeader = None,
) -> GeocodeResponse:
    location = await proxy.geocode(
        postcode,
        extract_presented_key(x_api_key, authorization),
        request_domain(origin, referer),
    )
    return GeocodeResponse(result=location)


@router.get(
    "/{partial}/autocomplete",
    response_model=AutocompleteResponse,
    responses=_ERROR_RESPONSES,
    summary="Postcode suggestions for a partial input",
)
async def autocomplete_postcode(
    partial: str,
    proxy: Proxy,
    x_api_key: ApiKeyHeader = None,
    authorization: AuthorizationHeader = None,
    origin: OriginHeader = None,
    referer: RefererHeader = None,
) -> AutocompleteResponse:
    suggestions = await proxy.autocomplete(
        partial,
        extract_presented_key(x_api_key, authorization),
        request_domain(origin, referer),
    )
    return AutocompleteResponse(result=suggestions)
