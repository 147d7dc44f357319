"""Nearby place discovery: parsing and session management."""

from tourlens.discovery.parser import CandidatePlace, parse_places
from tourlens.discovery.session import DiscoverySession, DiscoverySessionManager

__all__ = [
    "CandidatePlace",
    "parse_places",
    "DiscoverySession",
    "DiscoverySessionManager",
]
