"""
Pinboard Backend: Abstract Geocoding Service Interface
=======================================================

What:  Contract for turning a street address into coordinates.
How:   Concrete providers inherit from GeocodingService and implement
       get_coordinates() and health_check().
Who:   PositionService calls get_coordinates() when a position is created;
       the health route calls health_check().

Tests substitute a small in-memory implementation of this interface, and a
different provider (Mapbox, Nominatim) only needs a new subclass.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Coordinates:
    """A resolved latitude/longitude pair."""

    lat: float
    lng: float


class GeocodingService(ABC):
    """
    Abstract interface for address geocoding.

    Contract:
        - get_coordinates() returns Coordinates for a resolvable address
        - An address with no match raises AddressNotFoundError (422)
        - Provider failures are wrapped in GeocodingServiceError (500)
    """

    @abstractmethod
    async def get_coordinates(self, address: str) -> Coordinates:
        """
        Resolve an address to coordinates.

        Raises:
            AddressNotFoundError: The provider returned no results.
            GeocodingServiceError: The provider failed after all retries.
            CircuitBreakerOpenError: Too many recent provider failures.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability check. Returns True if the provider answers."""
        ...
