"""
Geocoding/routing capability used by the quote builder and settings screens.
"""

from abc import ABC, abstractmethod
from typing import List

from meowwalker.models import DistanceResult, PlaceSuggestion


class GeocodingProvider(ABC):
    """Async address, route and reverse-geocoding lookups"""

    @abstractmethod
    async def resolve_distance(self, origin: str, destination: str) -> DistanceResult:
        """
        Travel distance and duration between two addresses.

        Raises:
            GeocodingFailure: An address could not be located
            RoutingFailure: No route between the two points
            NetworkTimeout: The lookup exceeded the hard timeout
            GeocodingTransportError: Any other provider failure
        """

    @abstractmethod
    async def search_addresses(self, query: str) -> List[PlaceSuggestion]:
        """Ranked suggestions for a partial address; never raises"""

    @abstractmethod
    async def address_for_location(self, latitude: float, longitude: float) -> str:
        """
        Reverse-geocode a coordinate.

        Raises:
            LocationUnavailable: The coordinate could not be resolved
        """

    async def close(self) -> None:
        """Release network resources"""
