"""Discovery session: accumulated nearby places and paginated "load more"."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable

from tourlens.common.errors import EmptyResultError, NoActiveSessionError, SessionBusyError
from tourlens.common.logging import get_logger
from tourlens.discovery.parser import CandidatePlace, parse_places
from tourlens.location import Coordinates

# (coordinates, language, exclude_names) -> raw generated text
DiscoveryQuery = Callable[[Coordinates, str, list[str]], Awaitable[str]]
PlaceParser = Callable[[str], list[CandidatePlace]]


@dataclass
class DiscoverySession:
    """Places found around one origin, in display order."""

    origin: Coordinates
    language: str
    places: list[CandidatePlace] = field(default_factory=list)

    @property
    def exclusion_names(self) -> list[str]:
        return [place.name for place in self.places]

    def known_names(self) -> set[str]:
        return {place.normalized_name for place in self.places}

    def extend(self, candidates: Iterable[CandidatePlace]) -> list[CandidatePlace]:
        """Append candidates whose normalized name is not already present.

        Returns:
            The candidates actually appended, in arrival order.
        """
        seen = self.known_names()
        added = []
        for candidate in candidates:
            key = candidate.normalized_name
            if key in seen:
                continue
            seen.add(key)
            self.places.append(candidate)
            added.append(candidate)
        return added


class DiscoverySessionManager:
    """Owns the active discovery session.

    ``start_discovery`` and ``load_more`` are single flight: a call made while
    another one is pending raises :class:`SessionBusyError`. Selecting a place
    or resetting frees the slot at once; a response that resolves after its
    session was replaced, selected or reset is dropped.
    """

    def __init__(self, query: DiscoveryQuery, parser: PlaceParser = parse_places) -> None:
        self._query = query
        self._parser = parser
        self._session: DiscoverySession | None = None
        self._resolved_landmark: str | None = None
        # Bumped whenever the session is ended, so late responses can be spotted.
        self._epoch = 0
        # Epoch of the pending query; a claim from an ended epoch no longer counts.
        self._in_flight: int | None = None
        self.logger = get_logger("discovery_session")

    @property
    def session(self) -> DiscoverySession | None:
        return self._session

    @property
    def places(self) -> list[CandidatePlace]:
        if self._session is None:
            return []
        return list(self._session.places)

    @property
    def resolved_landmark(self) -> str | None:
        return self._resolved_landmark

    @property
    def busy(self) -> bool:
        return self._in_flight == self._epoch

    def _claim(self, operation: str) -> int:
        if self.busy:
            self.logger.warning("discovery_rejected_busy", operation=operation)
            raise SessionBusyError(f"{operation} rejected: a discovery query is already running")
        self._in_flight = self._epoch
        return self._epoch

    def _release(self, epoch: int) -> None:
        if self._in_flight == epoch:
            self._in_flight = None

    async def start_discovery(self, origin: Coordinates, language: str) -> list[CandidatePlace]:
        """Run a fresh discovery around ``origin`` and replace the session.

        Raises:
            SessionBusyError: Another discovery query is pending.
            EmptyResultError: The response contained no usable places.
        """
        epoch = self._claim("start_discovery")
        try:
            self.logger.info("discovery_started", latitude=origin.latitude, longitude=origin.longitude)
            raw_text = await self._query(origin, language, [])
        finally:
            self._release(epoch)

        if epoch != self._epoch:
            self.logger.info("stale_discovery_dropped")
            return []

        candidates = self._parser(raw_text)
        if not candidates:
            self.logger.info("discovery_empty")
            raise EmptyResultError("No places found around this location")

        session = DiscoverySession(origin=origin, language=language)
        session.extend(candidates)
        self._session = session
        self._resolved_landmark = None

        self.logger.info("discovery_completed", count=len(session.places))
        return list(session.places)

    async def load_more(self) -> list[CandidatePlace]:
        """Fetch another page, excluding places already listed.

        Returns:
            The newly appended places.

        Raises:
            NoActiveSessionError: No discovery has been started.
            SessionBusyError: Another discovery query is pending.
            EmptyResultError: Nothing new came back.
        """
        session = self._session
        if session is None:
            raise NoActiveSessionError("load_more needs an active discovery session")

        epoch = self._claim("load_more")
        try:
            exclude = session.exclusion_names
            self.logger.info("load_more_started", excluded=len(exclude))
            raw_text = await self._query(session.origin, session.language, exclude)
        finally:
            self._release(epoch)

        if self._session is not session:
            self.logger.info("stale_load_more_dropped")
            return []

        # The exclusion list is only a request; repeats are filtered here too.
        added = session.extend(self._parser(raw_text))
        if not added:
            self.logger.info("load_more_empty")
            raise EmptyResultError("No new places found around this location")

        self.logger.info("load_more_completed", added=len(added), total=len(session.places))
        return added

    def select_place(self, name: str) -> str:
        """Resolve ``name`` as the landmark and end the session."""
        self._session = None
        self._epoch += 1
        self._resolved_landmark = name
        self.logger.info("place_selected", name=name)
        return name

    def reset(self) -> None:
        self._session = None
        self._epoch += 1
        self._resolved_landmark = None
