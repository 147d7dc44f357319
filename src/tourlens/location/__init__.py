"""Device location."""

from tourlens.location.service import (
    Coordinates,
    FixedLocationProvider,
    IPLocationProvider,
    LocationProvider,
    MockLocationProvider,
    create_location_provider,
)

__all__ = [
    "Coordinates",
    "LocationProvider",
    "MockLocationProvider",
    "FixedLocationProvider",
    "IPLocationProvider",
    "create_location_provider",
]
