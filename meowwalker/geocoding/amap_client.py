"""
AMap (Gaode) web service adapter - geocoding, cycling routes, input tips
and reverse geocoding over the REST API.
"""

import asyncio
import logging
import math
from typing import Any, Dict, List, Optional

import httpx

from meowwalker.config import BotConfig, get_config
from meowwalker.errors import (
    GeocodingFailure,
    GeocodingTransportError,
    LocationUnavailable,
    NetworkTimeout,
    RoutingFailure,
)
from meowwalker.geocoding.base import GeocodingProvider
from meowwalker.geocoding.connection import SharedConnection
from meowwalker.models import DistanceResult, PlaceSuggestion

logger = logging.getLogger(__name__)

GEOCODE_ENDPOINT = "v3/geocode/geo"
REGEOCODE_ENDPOINT = "v3/geocode/regeo"
INPUT_TIPS_ENDPOINT = "v3/assistant/inputtips"
BICYCLING_ENDPOINT = "v4/direction/bicycling"
IP_ENDPOINT = "v3/ip"

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "MeowWalker-Bot/1.0",
}


def _text(value: Any) -> str:
    """AMap returns [] instead of an empty string for missing text fields"""
    if isinstance(value, str):
        return value
    return ""


class AMapProvider(GeocodingProvider):
    """GeocodingProvider backed by the AMap REST API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        city: Optional[str] = None,
        timeout: Optional[float] = None,
        verify_key: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        config: Optional[BotConfig] = None,
    ):
        """
        Args:
            api_key: AMap web service key
            base_url: REST API base URL
            city: City filter for input tips
            timeout: Hard timeout in seconds for a distance lookup
            verify_key: Probe the key when connecting
            transport: Custom httpx transport (tests)
        """
        if config is None and None in (api_key, base_url, city, timeout, verify_key):
            config = get_config()
        self.api_key = api_key if api_key is not None else config.amap_api_key
        self.base_url = (base_url or config.amap_base_url).rstrip("/")
        self.city = city or config.amap_city
        self.timeout = timeout if timeout is not None else config.geocoding_timeout
        self.verify_key = verify_key if verify_key is not None else config.amap_verify_key
        self._transport = transport
        self._connection: SharedConnection[httpx.AsyncClient] = SharedConnection(
            self._connect, timeout=self.timeout, closer=self._disconnect
        )

    async def _connect(self) -> httpx.AsyncClient:
        """Create the HTTP client and optionally check that the key is accepted"""
        client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=DEFAULT_HEADERS,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )
        if not self.verify_key:
            return client

        try:
            response = await client.get(IP_ENDPOINT, params={"key": self.api_key})
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            await client.aclose()
            raise NetworkTimeout() from e
        except (httpx.HTTPError, ValueError) as e:
            await client.aclose()
            logger.error(f"AMap connection failed: {e}")
            raise GeocodingTransportError("Map service is unreachable") from e

        if data.get("status") != "1":
            await client.aclose()
            logger.error(f"AMap rejected the API key: {data.get('info')}")
            raise GeocodingTransportError("Map service rejected the API key")

        logger.info("AMap connection established")
        return client

    @staticmethod
    async def _disconnect(client: httpx.AsyncClient) -> None:
        await client.aclose()

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Make GET request to AMap.

        Raises:
            NetworkTimeout: Request timed out
            GeocodingTransportError: HTTP or decoding error
        """
        client = await self._connection.acquire()
        query = {"key": self.api_key, **params}

        try:
            logger.debug(f"GET {endpoint} with params={params}")
            response = await client.get(endpoint, params=query)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout for GET {endpoint}")
            raise NetworkTimeout() from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"HTTP {e.response.status_code} error for GET {endpoint}")
            raise GeocodingTransportError() from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Unexpected error for GET {endpoint}: {e}")
            await self._connection.reset()
            raise GeocodingTransportError() from e

    async def geocode(self, address: str) -> str:
        """Resolve an address to an AMap "lng,lat" string"""
        data = await self._get(GEOCODE_ENDPOINT, {"address": address})
        geocodes = data.get("geocodes") or []
        if data.get("status") != "1" or not geocodes:
            logger.warning(f"Geocoding failed for: {address} ({data.get('info')})")
            raise GeocodingFailure(address)
        return geocodes[0]["location"]

    async def cycling_route(self, origin: str, destination: str) -> DistanceResult:
        """Cycling distance/duration between two "lng,lat" points"""
        data = await self._get(
            BICYCLING_ENDPOINT, {"origin": origin, "destination": destination}
        )
        if data.get("errcode", 0) != 0:
            logger.error(f"Cycling route search failed: {data.get('errmsg')}")
            raise RoutingFailure()

        paths = (data.get("data") or {}).get("paths") or []
        if not paths:
            raise RoutingFailure("No cycling route found")

        route = paths[0]
        return DistanceResult(
            distance_km=round(float(route["distance"]) / 1000, 2),
            duration_min=math.ceil(float(route["duration"]) / 60),
        )

    async def resolve_distance(self, origin: str, destination: str) -> DistanceResult:
        try:
            return await asyncio.wait_for(
                self._resolve_distance(origin, destination), self.timeout
            )
        except asyncio.TimeoutError as e:
            logger.warning(
                f"Distance lookup timed out after {self.timeout}s: {origin} -> {destination}"
            )
            raise NetworkTimeout() from e

    async def _resolve_distance(self, origin: str, destination: str) -> DistanceResult:
        start = await self.geocode(origin)
        end = await self.geocode(destination)
        result = await self.cycling_route(start, end)
        logger.info(
            f"Route {origin} -> {destination}: {result.distance_km}km, {result.duration_min}min"
        )
        return result

    async def search_addresses(self, query: str) -> List[PlaceSuggestion]:
        if not query or not query.strip():
            return []

        try:
            data = await self._get(
                INPUT_TIPS_ENDPOINT, {"keywords": query.strip(), "city": self.city}
            )
        except Exception as e:
            logger.error(f"AMap search error: {e}")
            return []

        if data.get("status") != "1":
            return []

        places = []
        for tip in data.get("tips") or []:
            # Tips without a location are bus lines or query suggestions
            if not _text(tip.get("id")) or not _text(tip.get("location")):
                continue
            places.append(
                PlaceSuggestion(
                    name=_text(tip.get("name")),
                    address=_text(tip.get("district")) + _text(tip.get("address")),
                )
            )
        return places

    async def address_for_location(self, latitude: float, longitude: float) -> str:
        try:
            data = await self._get(
                REGEOCODE_ENDPOINT, {"location": f"{longitude:.6f},{latitude:.6f}"}
            )
        except (NetworkTimeout, GeocodingTransportError) as e:
            raise LocationUnavailable() from e

        address = _text((data.get("regeocode") or {}).get("formatted_address"))
        if data.get("status") != "1" or not address:
            raise LocationUnavailable()
        return address

    async def close(self) -> None:
        await self._connection.close()
