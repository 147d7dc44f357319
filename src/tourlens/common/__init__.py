"""Common utilities for tourlens."""

from tourlens.common.errors import (
    AudioDecodeError,
    EmptyResultError,
    LocationUnavailable,
    NoActiveSessionError,
    ProviderError,
    SessionBusyError,
    TourLensError,
)
from tourlens.common.events import Event, EventBus
from tourlens.common.logging import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
    "Event",
    "EventBus",
    "TourLensError",
    "LocationUnavailable",
    "EmptyResultError",
    "ProviderError",
    "AudioDecodeError",
    "SessionBusyError",
    "NoActiveSessionError",
]
