"""Device geolocation providers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from tourlens.common.errors import LocationUnavailable
from tourlens.common.logging import get_logger
from tourlens.config import Config


@dataclass(frozen=True)
class Coordinates:
    """Latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")


class LocationProvider:
    """Abstract location provider."""

    name = "abstract"

    async def _acquire(self, high_accuracy: bool) -> Coordinates:
        """Acquire coordinates without any time bound."""
        raise NotImplementedError

    async def locate(self, timeout: float, high_accuracy: bool = True) -> Coordinates:
        """Acquire the device position within ``timeout`` seconds.

        Raises:
            LocationUnavailable: Position denied, failed or timed out.
        """
        logger = get_logger("location", provider=self.name)
        try:
            coords = await asyncio.wait_for(self._acquire(high_accuracy), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.warning("location_timeout", timeout=timeout)
            raise LocationUnavailable(f"Location timed out after {timeout:g}s") from e
        except LocationUnavailable:
            raise
        except Exception as e:
            logger.warning("location_failed", error=str(e))
            raise LocationUnavailable(str(e)) from e

        logger.debug("location_acquired", latitude=coords.latitude, longitude=coords.longitude)
        return coords


class MockLocationProvider(LocationProvider):
    """Mock location provider for testing.

    ``coordinates=None`` behaves like a denied permission prompt.
    """

    name = "mock"

    def __init__(self, coordinates: Coordinates | None = None, delay: float = 0.0) -> None:
        self.coordinates = coordinates
        self.delay = delay
        self.calls: list[tuple[float, bool]] = []

    async def _acquire(self, high_accuracy: bool) -> Coordinates:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.coordinates is None:
            raise LocationUnavailable("Location permission denied")
        return self.coordinates

    async def locate(self, timeout: float, high_accuracy: bool = True) -> Coordinates:
        self.calls.append((timeout, high_accuracy))
        return await super().locate(timeout, high_accuracy)


class FixedLocationProvider(LocationProvider):
    """Always reports the configured coordinates."""

    name = "fixed"

    def __init__(self, coordinates: Coordinates) -> None:
        self.coordinates = coordinates

    async def _acquire(self, high_accuracy: bool) -> Coordinates:
        return self.coordinates


class IPLocationProvider(LocationProvider):
    """Approximate position from a JSON geo-IP endpoint.

    The endpoint must answer with ``latitude``/``longitude`` fields (``lat``/
    ``lon`` are accepted too). IP lookups have no accuracy knob, so
    ``high_accuracy`` is ignored.
    """

    name = "ip"

    def __init__(self, endpoint: str, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.endpoint = endpoint
        self._transport = transport

    async def _acquire(self, high_accuracy: bool) -> Coordinates:
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.get(self.endpoint, headers={"Accept": "application/json"})
            response.raise_for_status()
            data = response.json()

        latitude = data.get("latitude", data.get("lat"))
        longitude = data.get("longitude", data.get("lon"))
        if latitude is None or longitude is None:
            raise LocationUnavailable("Geo-IP response has no coordinates")

        return Coordinates(float(latitude), float(longitude))


def create_location_provider(config: Config, mock_mode: bool = False) -> LocationProvider:
    """Build the location provider selected by configuration."""
    loc = config.location
    configured = None
    if loc.latitude is not None and loc.longitude is not None:
        configured = Coordinates(loc.latitude, loc.longitude)

    if mock_mode:
        return MockLocationProvider(configured or Coordinates(40.7128, -74.0060))

    if loc.provider == "fixed":
        if configured is None:
            raise ValueError("location.provider is 'fixed' but latitude/longitude are not set")
        return FixedLocationProvider(configured)

    return IPLocationProvider(loc.ip_endpoint)
