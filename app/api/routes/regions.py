from fastapi import APIRouter, Depends, Query, Response, status

from app.core.dependencies import get_preloader, get_region_cache
from app.core.errors import ValidationAppError
from app.schemas.region import AddressChain, Region, RegionLevel
from app.services.address_preloader import ChainPreloader
from app.services.region_cache import RegionCache

router = APIRouter(prefix="/regions", tags=["Regions"])

_CHILD_LEVELS = [level.value for level in RegionLevel if level.requires_parent]


@router.get("/provinces", response_model=list[Region])
async def list_provinces(cache: RegionCache = Depends(get_region_cache)) -> list[Region]:
    """List every province.

    An upstream outage yields an empty list rather than an error, which the
    client renders as "no options available".
    """
    return await cache.fetch_provinces()


@router.get("/chain", response_model=AddressChain)
async def preload_chain(
    province_code: str = Query("", description="Selected province code"),
    regency_code: str = Query("", description="Selected regency code"),
    district_code: str = Query("", description="Selected district code"),
    preloader: ChainPreloader = Depends(get_preloader),
) -> AddressChain:
    """Load all option lists needed to edit a saved address in one call."""
    return await preloader.preload(province_code, regency_code, district_code)


@router.post("/cache/clear", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def clear_region_cache(cache: RegionCache = Depends(get_region_cache)) -> None:
    """Drop every cached region list, forcing the next lookups to refetch."""
    cache.clear()


@router.get("/{level}/{parent_code}", response_model=list[Region])
async def list_children(
    level: str,
    parent_code: str,
    cache: RegionCache = Depends(get_region_cache),
) -> list[Region]:
    """List the regencies, districts or villages under a parent code.

    Raises:
        ValidationAppError: If ``level`` is not a child level.
    """
    if level not in _CHILD_LEVELS:
        raise ValidationAppError(
            code="invalid_region_level",
            message=f"'{level}' is not a region level with a parent",
            details={"level": level, "allowed_values": _CHILD_LEVELS},
        )
    return await cache.get(RegionLevel(level), parent_code.strip())
