"""
Census API endpoints.

- /census/geocode and /census/census-data proxy the Census Bureau APIs as-is
- /census/lookup runs the geocode -> housing statistics chain server-side
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.core.exceptions import (
    CensusLookupError,
    CensusTransportError,
    NoMatchError,
)
from app.services.census import CensusService, HousingStatistics, census_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/census", tags=["census"])

MISSING_PARAMETERS = {"error": "Missing required parameters"}


def get_census_service() -> CensusService:
    """Dependency to get the census client."""
    return census_service


@router.get("/geocode")
async def geocode(
    street: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    service: CensusService = Depends(get_census_service)
):
    """Proxy the Census geocoder (block group geographies)."""
    if not street or not city or not state:
        return JSONResponse(status_code=400, content=MISSING_PARAMETERS)
    try:
        return await service.geocode_raw(street, city, state)
    except CensusLookupError as e:
        logger.error(f"Geocoding error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch geocoding data"})


@router.get("/census-data")
async def census_data(
    state: Optional[str] = None,
    county: Optional[str] = None,
    service: CensusService = Depends(get_census_service)
):
    """Proxy the ACS housing tenure table for one county."""
    if not state or not county:
        return JSONResponse(status_code=400, content=MISSING_PARAMETERS)
    try:
        return await service.census_data_raw(state, county)
    except CensusLookupError as e:
        logger.error(f"Census data error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch census data"})


@router.get("/lookup", response_model=HousingStatistics)
async def lookup(
    street: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    service: CensusService = Depends(get_census_service)
):
    """
    Housing statistics for the county containing an address.

    Returns one renderable error message on failure:
    404 when the address has no match, 502 for upstream problems.
    """
    if not street or not city or not state:
        return JSONResponse(status_code=400, content=MISSING_PARAMETERS)
    try:
        return await service.lookup(street, city, state)
    except NoMatchError as e:
        return JSONResponse(status_code=404, content={"error": e.message})
    except CensusTransportError as e:
        return JSONResponse(status_code=502, content={"error": e.message})
    except CensusLookupError as e:
        logger.warning(f"Census lookup failed for '{street}, {city}, {state}': {e}")
        return JSONResponse(status_code=502, content={"error": e.message})
