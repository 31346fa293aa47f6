"""
Census Bureau lookup for county housing statistics.

Two-step chain:
1. Census Geocoder: street/city/state -> block group geography (state + county FIPS)
2. ACS 1-Year API: county -> housing units by tenure (table C25004)

The geocoder's first match and its first "Census Block Groups" entry are
always used; there is no best-match scoring.
"""
import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from app.core.config import settings
from app.core.exceptions import (
    CensusTransportError,
    MalformedResponseError,
    NoMatchError,
)

logger = logging.getLogger(__name__)

BLOCK_GROUP_LAYER = "Census Block Groups"

# ACS variables, in the positional order the response row uses
HOUSING_VARIABLES = ["NAME", "C25004_001E", "C25004_002E", "C25004_003E"]


class GeographyIdentifier(BaseModel):
    """State and county FIPS codes resolved from an address."""
    state: str
    county: str


class HousingStatistics(BaseModel):
    """County housing units by tenure."""
    name: str
    total_housing_units: int
    owner_occupied: int
    renter_occupied: int


def parse_geography(payload: Any) -> GeographyIdentifier:
    """
    Pick the geography from a geocoder response.

    Response shape:
        {"result": {"addressMatches": [{"geographies": {"Census Block Groups": [{"STATE": "06", "COUNTY": "037", ...}]}}]}}

    Raises:
        NoMatchError: If there are no address matches
        MalformedResponseError: If the response doesn't have the expected shape
    """
    try:
        matches = payload["result"]["addressMatches"]
    except (KeyError, TypeError):
        raise MalformedResponseError("Malformed geocoding response")

    if not matches:
        raise NoMatchError()

    try:
        block_group = matches[0]["geographies"][BLOCK_GROUP_LAYER][0]
        return GeographyIdentifier(
            state=str(block_group["STATE"]),
            county=str(block_group["COUNTY"]),
        )
    except (KeyError, IndexError, TypeError):
        raise MalformedResponseError("Geocoding match has no census block group")


def parse_housing_statistics(payload: Any) -> HousingStatistics:
    """
    Coerce the ACS table response into HousingStatistics.

    Response format: [["NAME", "C25004_001E", ..., "state", "county"], ["Los Angeles County, California", "3600000", "1650000", "1810000", "06", "037"]]

    Raises:
        MalformedResponseError: If the data row is missing, short, or non-numeric
    """
    if not isinstance(payload, list) or len(payload) < 2:
        raise MalformedResponseError("Census response is missing its data row")

    row = payload[1]
    if not isinstance(row, list) or len(row) < len(HOUSING_VARIABLES):
        raise MalformedResponseError("Census data row is incomplete")

    try:
        stats = HousingStatistics(
            name=str(row[0]),
            total_housing_units=int(row[1]),
            owner_occupied=int(row[2]),
            renter_occupied=int(row[3]),
        )
    except (ValueError, TypeError):
        raise MalformedResponseError("Census data row has non-numeric values")

    if stats.owner_occupied + stats.renter_occupied > stats.total_housing_units:
        logger.debug(f"Tenure counts exceed total units for {stats.name}")
    return stats


class CensusService:
    """Client for the Census geocoder and ACS data APIs."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        geocoder_url: Optional[str] = None,
        data_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key if api_key is not None else settings.CENSUS_API_KEY
        self.geocoder_url = geocoder_url or settings.CENSUS_GEOCODER_URL
        self.data_url = data_url or settings.CENSUS_DATA_URL
        self.timeout = timeout or settings.CENSUS_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def _get_json(self, client: httpx.AsyncClient, url: str, params: dict) -> Any:
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Census request to {url} failed: {e}")
            raise CensusTransportError() from e
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError("Census service returned invalid JSON") from e

    def _geocode_params(self, street: str, city: str, state: str) -> dict:
        return {
            "street": street,
            "city": city,
            "state": state,
            "benchmark": "Public_AR_Current",
            "vintage": "Current_Current",
            "layers": 10,  # block groups
            "format": "json",
        }

    def _census_params(self, state: str, county: str) -> dict:
        params = {
            "get": ",".join(HOUSING_VARIABLES),
            "for": f"county:{county}",
            "in": f"state:{state}",
        }
        if self.api_key:
            params["key"] = self.api_key
        return params

    async def geocode_raw(self, street: str, city: str, state: str) -> Any:
        """Geocoder response, unparsed."""
        async with self._client() as client:
            return await self._get_json(
                client, self.geocoder_url, self._geocode_params(street, city, state)
            )

    async def census_data_raw(self, state: str, county: str) -> Any:
        """ACS table response, unparsed."""
        async with self._client() as client:
            return await self._get_json(
                client, self.data_url, self._census_params(state, county)
            )

    async def resolve_geography(
        self,
        street: str,
        city: str,
        state: str,
        client: Optional[httpx.AsyncClient] = None
    ) -> GeographyIdentifier:
        """Resolve an address to state + county FIPS codes."""
        if client is None:
            async with self._client() as own_client:
                return await self.resolve_geography(street, city, state, own_client)
        payload = await self._get_json(
            client, self.geocoder_url, self._geocode_params(street, city, state)
        )
        return parse_geography(payload)

    async def fetch_housing_statistics(
        self,
        geo: GeographyIdentifier,
        client: Optional[httpx.AsyncClient] = None
    ) -> HousingStatistics:
        """Fetch housing tenure counts for the county in geo."""
        if client is None:
            async with self._client() as own_client:
                return await self.fetch_housing_statistics(geo, own_client)
        payload = await self._get_json(
            client, self.data_url, self._census_params(geo.state, geo.county)
        )
        return parse_housing_statistics(payload)

    async def lookup(self, street: str, city: str, state: str) -> HousingStatistics:
        """
        Geocode an address, then fetch its county housing statistics.

        Stops at the first failure; nothing is retried.

        Raises:
            NoMatchError: The geocoder found no match (statistics are not requested)
            MalformedResponseError: Either response had an unexpected shape
            CensusTransportError: Network failure or non-2xx status
        """
        async with self._client() as client:
            geo = await self.resolve_geography(street, city, state, client)
            logger.info(f"Resolved '{street}, {city}, {state}' to state {geo.state} county {geo.county}")
            return await self.fetch_housing_statistics(geo, client)


# Singleton instance
census_service = CensusService()
