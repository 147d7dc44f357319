"""Generation providers: landmark identification, discovery, details and narration."""

from __future__ import annotations

import asyncio
import base64
import binascii
import time
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from pydantic import BaseModel, ValidationError, field_validator

from tourlens.common.errors import ProviderError
from tourlens.common.logging import get_logger
from tourlens.config import Config, DiscoveryConfig, GeminiConfig
from tourlens.generation import prompts
from tourlens.generation.citations import GroundingCitation, citations_from_chunks
from tourlens.location import Coordinates


class LandmarkIdentification(BaseModel):
    """Structured answer of the image analysis call."""

    landmark_name: str = "Unknown"
    confidence_score: float = 0.0

    @field_validator("confidence_score")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return min(max(value, 0.0), 1.0)


@dataclass
class LandmarkDetails:
    """Short history of a landmark plus its grounding sources."""

    text: str
    citations: list[GroundingCitation] = field(default_factory=list)


@dataclass
class ImagePayload:
    """Base64 image, optionally given as a ``data:`` URL."""

    data: bytes
    mime_type: str = "image/jpeg"

    @classmethod
    def from_base64(cls, encoded: str) -> ImagePayload:
        mime_type = "image/jpeg"
        if encoded.startswith("data:") and "," in encoded:
            header, encoded = encoded.split(",", 1)
            mime_type = header[5:].split(";", 1)[0] or mime_type
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ProviderError(f"Image is not valid base64: {e}") from e
        return cls(data=data, mime_type=mime_type)


def build_identify_prompt(language: str, coordinates: Coordinates | None) -> str:
    prompt = prompts.IDENTIFY_LANDMARK_PROMPT.format(language=language)
    if coordinates:
        prompt += prompts.IDENTIFY_LOCATION_HINT.format(
            latitude=coordinates.latitude, longitude=coordinates.longitude
        )
    return prompt + prompts.IDENTIFY_OUTPUT_FORMAT.format(language=language)


def build_nearby_prompt(
    coordinates: Coordinates,
    language: str,
    exclude_names: list[str],
    discovery: DiscoveryConfig,
) -> str:
    prompt = prompts.NEARBY_PLACES_PROMPT.format(
        latitude=coordinates.latitude,
        longitude=coordinates.longitude,
        radius=discovery.radius_meters,
        count=discovery.page_size,
        language=language,
    )
    if exclude_names:
        prompt += prompts.NEARBY_EXCLUSION.format(names=", ".join(exclude_names))
    return prompt


class GenerationProvider:
    """Abstract content-generation provider."""

    async def identify_landmark(
        self,
        image_b64: str,
        language: str,
        coordinates: Coordinates | None = None,
    ) -> LandmarkIdentification:
        """Identify the landmark in a photo."""
        raise NotImplementedError

    async def fetch_nearby_places(
        self,
        coordinates: Coordinates,
        language: str,
        exclude_names: list[str] | None = None,
    ) -> str:
        """Return raw text listing places near ``coordinates``."""
        raise NotImplementedError

    async def fetch_landmark_details(
        self,
        landmark_name: str,
        language: str,
        coordinates: Coordinates | None = None,
    ) -> LandmarkDetails:
        """Return a short grounded history of a landmark."""
        raise NotImplementedError

    async def generate_narration(self, text: str, language: str) -> str:
        """Return base64 PCM narration of ``text``, or "" when none was produced."""
        raise NotImplementedError


MOCK_NEARBY_PAGES = [
    "Statue | Monument | 50m\nPark | Green Space | 200m",
    "Old Library | Historical Building | 350m\nClock Tower | Monument | 600m",
]


class MockGenerationProvider(GenerationProvider):
    """Mock provider for testing and offline demos.

    ``nearby_pages`` are served in order, one per discovery call; once
    exhausted, the last page is repeated. Every call is recorded in
    ``calls`` as ``(method, kwargs)``.
    """

    def __init__(
        self,
        nearby_pages: list[str] | None = None,
        landmark_name: str = "Statue of Liberty, New York",
        details_text: str = "A copper statue gifted by France in 1886, welcoming arrivals to New York Harbor.",
        citations: list[GroundingCitation] | None = None,
        narration: str | None = None,
        sample_rate: int = 24000,
        fail_on: set[str] | None = None,
    ) -> None:
        self.nearby_pages = list(MOCK_NEARBY_PAGES if nearby_pages is None else nearby_pages)
        self.landmark_name = landmark_name
        self.details_text = details_text
        self.citations = citations if citations is not None else [
            GroundingCitation("web", "https://www.nps.gov/stli/index.htm", "Statue of Liberty National Monument"),
            GroundingCitation("maps", "https://maps.google.com/?cid=1", "Statue of Liberty"),
        ]
        self.narration = narration if narration is not None else mock_tone(sample_rate)
        self.fail_on = fail_on or set()
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._page = 0

    def _record(self, method: str, **kwargs: Any) -> None:
        self.calls.append((method, kwargs))
        if method in self.fail_on:
            raise ProviderError(f"mock failure in {method}")

    async def identify_landmark(
        self,
        image_b64: str,
        language: str,
        coordinates: Coordinates | None = None,
    ) -> LandmarkIdentification:
        self._record("identify_landmark", language=language, coordinates=coordinates)
        ImagePayload.from_base64(image_b64)
        await asyncio.sleep(0)
        return LandmarkIdentification(landmark_name=self.landmark_name, confidence_score=0.92)

    async def fetch_nearby_places(
        self,
        coordinates: Coordinates,
        language: str,
        exclude_names: list[str] | None = None,
    ) -> str:
        self._record(
            "fetch_nearby_places",
            coordinates=coordinates,
            language=language,
            exclude_names=list(exclude_names or []),
        )
        await asyncio.sleep(0)
        if not self.nearby_pages:
            return ""
        page = self.nearby_pages[min(self._page, len(self.nearby_pages) - 1)]
        self._page += 1
        return page

    async def fetch_landmark_details(
        self,
        landmark_name: str,
        language: str,
        coordinates: Coordinates | None = None,
    ) -> LandmarkDetails:
        self._record(
            "fetch_landmark_details",
            landmark_name=landmark_name,
            language=language,
            coordinates=coordinates,
        )
        await asyncio.sleep(0)
        return LandmarkDetails(text=self.details_text, citations=list(self.citations))

    async def generate_narration(self, text: str, language: str) -> str:
        self._record("generate_narration", text=text, language=language)
        await asyncio.sleep(0)
        return self.narration


def mock_tone(sample_rate: int = 24000, seconds: float = 0.5, frequency: float = 440.0) -> str:
    """Base64 of a short 16-bit mono sine tone."""
    t = np.arange(int(sample_rate * seconds)) / sample_rate
    pcm = (0.2 * np.sin(2 * np.pi * frequency * t) * 32767).astype("<i2")
    return base64.b64encode(pcm.tobytes()).decode("ascii")


class GeminiProvider(GenerationProvider):
    """Google Gemini provider using the ``google-genai`` SDK.

    Maps and Search grounding are enabled for discovery and details; the
    device coordinates, when known, are passed as retrieval context.
    """

    def __init__(self, config: GeminiConfig, discovery: DiscoveryConfig | None = None) -> None:
        self.config = config
        self.discovery = discovery or DiscoveryConfig()
        self._client = None
        self.logger = get_logger("gemini_provider")

    def _get_client(self):
        """Get or create the GenAI client."""
        if self._client is None:
            from google import genai
            from google.genai import types

            self._client = genai.Client(
                api_key=self.config.api_key,
                http_options=types.HttpOptions(timeout=self.config.timeout_seconds * 1000),
            )
        return self._client

    async def _generate(self, operation: str, **kwargs: Any) -> Any:
        start_time = time.time()
        try:
            client = self._get_client()
            response = await asyncio.to_thread(client.models.generate_content, **kwargs)
        except Exception as e:
            self.logger.exception("generation_failed", operation=operation, error=str(e))
            raise ProviderError(f"{operation} failed: {e}") from e

        self.logger.debug(
            "generation_completed",
            operation=operation,
            model=kwargs.get("model"),
            latency_ms=int((time.time() - start_time) * 1000),
        )
        return response

    def _grounding_config(self, coordinates: Coordinates | None):
        from google.genai import types

        tool_config = None
        if coordinates:
            tool_config = types.ToolConfig(
                retrieval_config=types.RetrievalConfig(
                    lat_lng=types.LatLng(
                        latitude=coordinates.latitude,
                        longitude=coordinates.longitude,
                    ),
                ),
            )
        return types.GenerateContentConfig(
            tools=[
                types.Tool(google_maps=types.GoogleMaps()),
                types.Tool(google_search=types.GoogleSearch()),
            ],
            tool_config=tool_config,
        )

    async def identify_landmark(
        self,
        image_b64: str,
        language: str,
        coordinates: Coordinates | None = None,
    ) -> LandmarkIdentification:
        from google.genai import types

        image = ImagePayload.from_base64(image_b64)
        response = await self._generate(
            "identify_landmark",
            model=self.config.vision_model,
            contents=[
                types.Content(
                    role="user",
                    parts=[
                        types.Part(text=build_identify_prompt(language, coordinates)),
                        types.Part(inline_data=types.Blob(mime_type=image.mime_type, data=image.data)),
                    ],
                )
            ],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=LandmarkIdentification,
            ),
        )

        if not response.text:
            return LandmarkIdentification()
        try:
            return LandmarkIdentification.model_validate_json(response.text)
        except ValidationError as e:
            raise ProviderError(f"identify_landmark returned malformed JSON: {e}") from e

    async def fetch_nearby_places(
        self,
        coordinates: Coordinates,
        language: str,
        exclude_names: list[str] | None = None,
    ) -> str:
        response = await self._generate(
            "fetch_nearby_places",
            model=self.config.search_model,
            contents=build_nearby_prompt(coordinates, language, exclude_names or [], self.discovery),
            config=self._grounding_config(coordinates),
        )
        text = response.text or ""
        self.logger.debug("nearby_raw_output", text=text)
        return text

    async def fetch_landmark_details(
        self,
        landmark_name: str,
        language: str,
        coordinates: Coordinates | None = None,
    ) -> LandmarkDetails:
        response = await self._generate(
            "fetch_landmark_details",
            model=self.config.search_model,
            contents=prompts.LANDMARK_DETAILS_PROMPT.format(landmark=landmark_name, language=language),
            config=self._grounding_config(coordinates),
        )

        chunks = None
        if response.candidates:
            metadata = response.candidates[0].grounding_metadata
            chunks = metadata.grounding_chunks if metadata else None

        return LandmarkDetails(
            text=response.text or prompts.DETAILS_FALLBACK_TEXT,
            citations=citations_from_chunks(chunks),
        )

    async def generate_narration(self, text: str, language: str) -> str:
        from google.genai import types

        response = await self._generate(
            "generate_narration",
            model=self.config.tts_model,
            contents=prompts.NARRATION_PROMPT.format(language=language, text=text),
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.config.voice),
                    ),
                ),
            ),
        )

        if not response.candidates or not response.candidates[0].content:
            return ""
        for part in response.candidates[0].content.parts or []:
            if part.inline_data and part.inline_data.data:
                data = part.inline_data.data
                if isinstance(data, str):
                    return data
                return base64.b64encode(data).decode("ascii")
        return ""


def create_generation_provider(config: Config, mock_mode: bool = False) -> GenerationProvider:
    """Build the generation provider for this configuration."""
    if mock_mode:
        return MockGenerationProvider(sample_rate=config.narration.sample_rate)
    if not config.gemini.api_key:
        raise ProviderError("No Gemini API key configured (set GEMINI_API_KEY or TOURLENS_GEMINI_API_KEY)")
    return GeminiProvider(config.gemini, config.discovery)
