"""
Pydantic v2 schemas for the postcode lookup routes.

Wire shapes:
  • Search   → {"SearchEnd": {"Summaries": [AddressSummary, …]}}
  • Geocode  → {"status": 200, "result": PostcodeLocation}
  • Suggest  → {"status": 200, "result": ["SW1A 1AA", …]}

AddressSummary serializes in PascalCase (Id, StreetAddress, …) to match
the SearchEnd contract; Python code uses the snake_case names.
"""

from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

SummaryType = Literal["google_place", "residential"]


class AddressSummary(BaseModel):
    """One normalized lookup result, provider-sourced or residential."""

    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    id: str
    type: SummaryType
    building_number: str = ""
    street_address: str
    town: str
    postcode: str
    address: str = Field(..., description="Composed single-line address.")
    created_at: datetime.datetime | None = None


class SearchEnd(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summaries: list[AddressSummary] = Field(default_factory=list, alias="Summaries")


class SearchEndResponse(BaseModel):
    """Body of a successful postcode search."""

    model_config = ConfigDict(populate_by_name=True)

    search_end: SearchEnd = Field(..., alias="SearchEnd")

    @classmethod
    def of(cls, summaries: list[AddressSummary]) -> SearchEndResponse:
        return cls(search_end=SearchEnd(summaries=summaries))


class PostcodeLocation(BaseModel):
    """Geocoordinates and admin areas for one postcode."""

    postcode: str
    latitude: float | None = None
    longitude: float | None = None
    town: str | None = None
    ward: str | None = None
    region: str | None = None
    country: str | None = None


class GeocodeResponse(BaseModel):
    status: int = 200
    result: PostcodeLocation


class AutocompleteResponse(BaseModel):
    status: int = 200
    result: list[str] = Field(default_factory=list)


class ErrorBody(BaseModel):
    """Failure body for every ApiError."""

    error: str
    kind: str
