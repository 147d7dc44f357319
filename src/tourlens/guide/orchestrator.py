"""Tour guide orchestrator.

Sequences location -> analysis -> details -> narration for the two entry
flows (nearby discovery and photo analysis) as a single state machine:

    IDLE -> LOCATING_DEVICE -> QUERYING -> RESOLVING -> READY

and any phase may end in ``ERROR``. Every phase catches its own failures.
A failure is recorded as :class:`GuideError` and moves the guide to
``ERROR`` without discarding results that were already obtained. Narration
never fails a flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tourlens.common.errors import (
    EmptyResultError,
    LocationUnavailable,
    NoActiveSessionError,
    ProviderError,
    SessionBusyError,
)
from tourlens.common.events import Event, EventBus
from tourlens.common.logging import get_logger
from tourlens.config import Config
from tourlens.discovery import CandidatePlace, DiscoverySessionManager
from tourlens.generation import GenerationProvider, GroundingCitation, photos_link
from tourlens.guide.output import OutputFormat
from tourlens.location import Coordinates, LocationProvider
from tourlens.narration import NarrationPipeline, PlaybackBackend, create_playback_backend

PHASE_TOPIC = "guide.phase"


class GuidePhase(Enum):
    """Guide state."""

    IDLE = "idle"
    LOCATING_DEVICE = "locating_device"
    QUERYING = "querying"
    RESOLVING = "resolving"
    READY = "ready"
    ERROR = "error"


@dataclass
class GuideError:
    """A phase failure, ready to show to the user."""

    kind: str  # "location", "empty", "provider", "busy"
    message: str


@dataclass
class GuideResult:
    """A resolved landmark with its history."""

    landmark_name: str
    history: str
    citations: list[GroundingCitation] = field(default_factory=list)
    confidence_score: float | None = None

    @property
    def photos_link(self) -> str | None:
        return photos_link(self.citations)


class TourGuide:
    """Runs the discovery and identification flows against injected collaborators.

    Every top-level action (discover, analyze, select, reset) starts a new
    request generation. Responses that resolve under an older generation are
    dropped instead of overwriting the newer state.
    """

    def __init__(
        self,
        config: Config,
        provider: GenerationProvider,
        locator: LocationProvider,
        playback: PlaybackBackend | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.config = config
        self.provider = provider
        self.locator = locator
        self.events = event_bus or EventBus()
        self.language = config.guide.language
        self.output_format = OutputFormat(config.guide.output_format)
        self.logger = get_logger("tour_guide")

        self.sessions = DiscoverySessionManager(provider.fetch_nearby_places)
        self.narration = NarrationPipeline(
            playback or create_playback_backend(config.narration.backend, config.mock_mode),
            sample_rate=config.narration.sample_rate,
            channels=config.narration.channels,
        )

        self._phase = GuidePhase.IDLE
        self._step = ""
        self._error: GuideError | None = None
        self._result: GuideResult | None = None
        self._location: Coordinates | None = None
        self._generation = 0

    @property
    def phase(self) -> GuidePhase:
        return self._phase

    @property
    def step(self) -> str:
        """Human readable description of the work in progress."""
        return self._step

    @property
    def error(self) -> GuideError | None:
        return self._error

    @property
    def result(self) -> GuideResult | None:
        return self._result

    @property
    def places(self) -> list[CandidatePlace]:
        return self.sessions.places

    @property
    def location(self) -> Coordinates | None:
        """Last known device position."""
        return self._location

    async def discover_nearby(self) -> list[CandidatePlace]:
        """Locate the device and list historical places around it."""
        token = await self._begin()

        await self._transition(GuidePhase.LOCATING_DEVICE, "Finding your location")
        try:
            coords = await self.locator.locate(
                timeout=self.config.location.discovery_timeout_seconds,
                high_accuracy=True,
            )
        except LocationUnavailable as e:
            await self._fail(token, "location", f"Could not determine your location ({e})")
            return []
        if not self._is_current(token):
            return []
        self._location = coords

        await self._transition(GuidePhase.QUERYING, "Searching for nearby historical places")
        try:
            places = await self.sessions.start_discovery(coords, self.language)
        except EmptyResultError:
            await self._fail(
                token, "empty", "No historical places found in this area. Try moving a little."
            )
            return []
        except SessionBusyError as e:
            await self._fail(token, "busy", str(e))
            return []
        except ProviderError as e:
            await self._fail(token, "provider", f"Could not search for places: {e}")
            return []
        if not self._is_current(token):
            return []

        await self._transition(GuidePhase.READY)
        return places

    async def load_more(self) -> list[CandidatePlace]:
        """Append another page of places to the current discovery."""
        if self.sessions.session is None:
            self.logger.debug("load_more_ignored", reason="no_session")
            return []
        if self.sessions.busy:
            self.logger.debug("load_more_ignored", reason="busy")
            return []

        token = self._generation
        await self._transition(GuidePhase.QUERYING, "Loading more places")
        try:
            added = await self.sessions.load_more()
        except EmptyResultError:
            await self._fail(token, "empty", "No other places found around here.")
            return []
        except (SessionBusyError, NoActiveSessionError) as e:
            await self._fail(token, "busy", str(e))
            return []
        except ProviderError as e:
            await self._fail(token, "provider", f"Could not load more places: {e}")
            return []
        if not self._is_current(token):
            return []

        await self._transition(GuidePhase.READY)
        return added

    async def select_place(self, name: str) -> GuideResult | None:
        """Resolve one of the discovered places."""
        token = await self._begin(reset_session=False)
        self.sessions.select_place(name)
        return await self._resolve(token, name, self._location)

    async def analyze_image(self, image_b64: str) -> GuideResult | None:
        """Identify the landmark in a base64 photo and resolve it.

        The device location only sharpens the identification, so failing to
        get it is not an error on this path.
        """
        token = await self._begin()

        await self._transition(GuidePhase.LOCATING_DEVICE, "Finding your location")
        coords: Coordinates | None = None
        try:
            coords = await self.locator.locate(
                timeout=self.config.location.image_timeout_seconds,
                high_accuracy=True,
            )
        except LocationUnavailable as e:
            self.logger.warning("location_skipped", error=str(e))
        if not self._is_current(token):
            return None
        if coords:
            self._location = coords

        await self._transition(GuidePhase.QUERYING, "Identifying landmark")
        try:
            identification = await self.provider.identify_landmark(image_b64, self.language, coords)
        except ProviderError as e:
            await self._fail(token, "provider", f"Could not analyze the image: {e}")
            return None
        if not self._is_current(token):
            return None

        self.logger.info(
            "landmark_identified",
            name=identification.landmark_name,
            confidence=identification.confidence_score,
        )
        return await self._resolve(
            token,
            identification.landmark_name,
            coords or self._location,
            identification.confidence_score,
        )

    async def reset(self) -> None:
        """Drop every result and return to ``IDLE``."""
        await self._begin()
        await self._transition(GuidePhase.IDLE)

    async def close(self) -> None:
        self._generation += 1
        self.narration.teardown()

    async def _resolve(
        self,
        token: int,
        name: str,
        coords: Coordinates | None,
        confidence: float | None = None,
    ) -> GuideResult | None:
        await self._transition(GuidePhase.RESOLVING, f"Fetching the history of {name}")
        try:
            details = await self.provider.fetch_landmark_details(name, self.language, coords)
        except ProviderError as e:
            await self._fail(token, "provider", f"Could not fetch details for {name}: {e}")
            return None
        if not self._is_current(token):
            return None

        result = GuideResult(
            landmark_name=name,
            history=details.text,
            citations=details.citations,
            confidence_score=confidence,
        )
        self._result = result

        if self.output_format.wants_audio:
            await self._transition(GuidePhase.RESOLVING, "Creating audio narration")
            await self._narrate(token, details.text)
            if not self._is_current(token):
                return None

        await self._transition(GuidePhase.READY)
        return result

    async def _narrate(self, token: int, text: str) -> None:
        try:
            audio = await self.provider.generate_narration(text, self.language)
        except ProviderError as e:
            self.logger.warning("narration_unavailable", error=str(e))
            return
        if not self._is_current(token):
            return
        await self.narration.submit(audio)

    async def _begin(self, reset_session: bool = True) -> int:
        self._generation += 1
        self.narration.teardown()
        if reset_session:
            self.sessions.reset()
        self._result = None
        self._error = None
        return self._generation

    def _is_current(self, token: int) -> bool:
        if token != self._generation:
            self.logger.info("stale_response_dropped", token=token, current=self._generation)
            return False
        return True

    async def _fail(self, token: int, kind: str, message: str) -> None:
        if not self._is_current(token):
            return
        self._error = GuideError(kind=kind, message=message)
        self.logger.warning("guide_phase_failed", kind=kind, message=message)
        await self._transition(GuidePhase.ERROR, "")

    async def _transition(self, phase: GuidePhase, step: str = "") -> None:
        self._phase = phase
        self._step = step
        data: dict[str, Any] = {"phase": phase.value, "step": step}
        if phase is GuidePhase.ERROR and self._error:
            data["error"] = self._error.message
        await self.events.publish(Event(topic=PHASE_TOPIC, data=data, source="guide"))

    async def __aenter__(self) -> TourGuide:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
