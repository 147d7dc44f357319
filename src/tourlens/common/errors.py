"""Error taxonomy for tourlens."""

from __future__ import annotations


class TourLensError(Exception):
    """Base class for all tourlens errors."""


class LocationUnavailable(TourLensError):
    """Geolocation was denied, failed or timed out."""


class EmptyResultError(TourLensError):
    """A discovery query produced no usable places."""


class ProviderError(TourLensError):
    """The generation provider failed (network, quota, malformed response)."""


class AudioDecodeError(TourLensError):
    """A narration payload could not be decoded into samples."""


class SessionBusyError(TourLensError):
    """A discovery query is already in flight for this session."""


class NoActiveSessionError(TourLensError):
    """The operation needs a discovery session and none exists."""
