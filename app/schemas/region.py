"""Region reference-data schemas."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RegionLevel(str, Enum):
    """Administrative hierarchy levels, outermost first."""

    PROVINCE = "province"
    REGENCY = "regency"
    DISTRICT = "district"
    VILLAGE = "village"

    @property
    def requires_parent(self) -> bool:
        return self is not RegionLevel.PROVINCE


class Region(BaseModel):
    """One administrative unit at a given hierarchy level."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Administrative code, e.g. '11.01'")
    name: str = Field(..., description="Display name")


class RegionEnvelope(BaseModel):
    """Response envelope shared by every region endpoint.

    ``data`` defaults to an empty list when the upstream omits it (or sends
    ``null``); unknown top-level fields are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    data: list[Region] | None = Field(default_factory=list)
    meta: dict[str, Any] | None = None

    @property
    def regions(self) -> list[Region]:
        return list(self.data or [])


class AddressChain(BaseModel):
    """All four option lists needed to prefill an address form."""

    provinces: list[Region] = Field(default_factory=list)
    regencies: list[Region] = Field(default_factory=list)
    districts: list[Region] = Field(default_factory=list)
    villages: list[Region] = Field(default_factory=list)
