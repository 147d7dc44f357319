"""Tests for generation providers, prompts and citations."""

import base64
from types import SimpleNamespace

import pytest

from tourlens.common.errors import ProviderError
from tourlens.config import Config, DiscoveryConfig
from tourlens.generation import (
    GeminiProvider,
    GroundingCitation,
    ImagePayload,
    LandmarkIdentification,
    MockGenerationProvider,
    citations_from_chunks,
    create_generation_provider,
    photos_link,
)
from tourlens.generation.service import build_identify_prompt, build_nearby_prompt
from tourlens.narration import decode_pcm


class TestCitations:
    """Tests for grounding citations."""

    def test_from_dict_chunks(self):
        chunks = [
            {"web": {"uri": "https://www.britannica.com/topic/x", "title": "Britannica"}},
            {"maps": {"uri": "https://maps.google.com/?cid=42", "title": "Old Bridge"}},
            {"web": {"title": "no uri"}},
            {},
        ]

        citations = citations_from_chunks(chunks)

        assert citations == [
            GroundingCitation("web", "https://www.britannica.com/topic/x", "Britannica"),
            GroundingCitation("maps", "https://maps.google.com/?cid=42", "Old Bridge"),
        ]

    def test_from_sdk_like_objects(self):
        """Test attribute access as exposed by the SDK response types."""
        chunks = [
            SimpleNamespace(web=None, maps=SimpleNamespace(uri="https://maps.google.com/?cid=7", title=None)),
            SimpleNamespace(web=SimpleNamespace(uri="https://example.org/a", title="Example"), maps=None),
        ]

        citations = citations_from_chunks(chunks)

        assert [c.kind for c in citations] == ["maps", "web"]
        assert citations[0].title == ""

    def test_none_chunks(self):
        assert citations_from_chunks(None) == []

    def test_host_and_label(self):
        citation = GroundingCitation("web", "https://www.nps.gov/stli/index.htm")

        assert citation.host == "nps.gov"
        assert citation.label == "nps.gov"
        assert GroundingCitation("web", "https://nps.gov", "NPS").label == "NPS"

    def test_photos_link_uses_first_maps_citation(self):
        citations = [
            GroundingCitation("web", "https://example.org"),
            GroundingCitation("maps", "https://maps.google.com/?cid=1"),
            GroundingCitation("maps", "https://maps.google.com/?cid=2"),
        ]

        assert photos_link(citations) == "https://maps.google.com/?cid=1"
        assert photos_link(citations[:1]) is None


class TestImagePayload:
    """Tests for ImagePayload."""

    def test_plain_base64(self):
        payload = ImagePayload.from_base64(base64.b64encode(b"jpeg").decode("ascii"))

        assert payload.data == b"jpeg"
        assert payload.mime_type == "image/jpeg"

    def test_data_url(self):
        encoded = "data:image/png;base64," + base64.b64encode(b"png").decode("ascii")

        payload = ImagePayload.from_base64(encoded)

        assert payload.data == b"png"
        assert payload.mime_type == "image/png"

    def test_invalid(self):
        with pytest.raises(ProviderError):
            ImagePayload.from_base64("%%%")


class TestPrompts:
    """Tests for prompt construction."""

    def test_nearby_prompt_without_exclusions(self, origin):
        prompt = build_nearby_prompt(origin, "French", [], DiscoveryConfig())

        assert "40.7128" in prompt
        assert "-74.006" in prompt
        assert "French" in prompt
        assert "Statue" not in prompt

    def test_nearby_prompt_lists_exclusions(self, origin):
        prompt = build_nearby_prompt(origin, "English", ["Statue", "Park"], DiscoveryConfig())

        assert "Statue, Park" in prompt

    def test_identify_prompt_location_hint(self, origin):
        assert "40.7128" in build_identify_prompt("English", origin)
        assert "40.7128" not in build_identify_prompt("English", None)


class TestLandmarkIdentification:
    """Tests for the structured identification answer."""

    def test_defaults(self):
        result = LandmarkIdentification()

        assert result.landmark_name == "Unknown"
        assert result.confidence_score == 0.0

    def test_confidence_clamped(self):
        assert LandmarkIdentification(confidence_score=1.7).confidence_score == 1.0
        assert LandmarkIdentification(confidence_score=-2).confidence_score == 0.0

    def test_from_json(self):
        result = LandmarkIdentification.model_validate_json(
            '{"landmark_name": "Eiffel Tower, Paris", "confidence_score": 0.8}'
        )

        assert result.landmark_name == "Eiffel Tower, Paris"


class TestMockGenerationProvider:
    """Tests for MockGenerationProvider."""

    @pytest.mark.asyncio
    async def test_pages_served_in_order(self, origin):
        provider = MockGenerationProvider(nearby_pages=["a | b | c", "d | e | f"])

        first = await provider.fetch_nearby_places(origin, "English")
        second = await provider.fetch_nearby_places(origin, "English", ["a"])
        third = await provider.fetch_nearby_places(origin, "English", ["a", "d"])

        assert (first, second, third) == ("a | b | c", "d | e | f", "d | e | f")
        assert [kw["exclude_names"] for _, kw in provider.calls] == [[], ["a"], ["a", "d"]]

    @pytest.mark.asyncio
    async def test_no_pages(self, origin):
        provider = MockGenerationProvider(nearby_pages=[])

        assert await provider.fetch_nearby_places(origin, "English") == ""

    @pytest.mark.asyncio
    async def test_identify(self, image_b64):
        provider = MockGenerationProvider(landmark_name="Old Bridge")

        result = await provider.identify_landmark(image_b64, "English")

        assert result.landmark_name == "Old Bridge"
        assert 0.0 <= result.confidence_score <= 1.0

    @pytest.mark.asyncio
    async def test_details_carry_citations(self):
        provider = MockGenerationProvider()

        details = await provider.fetch_landmark_details("Statue of Liberty", "English")

        assert details.text
        assert photos_link(details.citations) == "https://maps.google.com/?cid=1"

    @pytest.mark.asyncio
    async def test_narration_decodes(self):
        provider = MockGenerationProvider()

        audio = decode_pcm(await provider.generate_narration("hello", "English"))

        assert audio.duration == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_fail_on(self):
        provider = MockGenerationProvider(fail_on={"fetch_landmark_details"})

        with pytest.raises(ProviderError):
            await provider.fetch_landmark_details("Statue", "English")


class TestCreateGenerationProvider:
    """Tests for create_generation_provider."""

    def test_mock_mode(self):
        assert isinstance(create_generation_provider(Config(), mock_mode=True), MockGenerationProvider)

    def test_missing_api_key(self):
        config = Config()
        config.gemini.api_key = None

        with pytest.raises(ProviderError):
            create_generation_provider(config)

    def test_gemini_with_key(self):
        config = Config()
        config.gemini.api_key = "test-key"

        provider = create_generation_provider(config)

        assert isinstance(provider, GeminiProvider)
        assert provider.discovery.page_size == config.discovery.page_size


class FakeModels:
    def __init__(self, response=None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.requests: list[dict] = []

    def generate_content(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return self.response


def gemini_with(models: FakeModels) -> GeminiProvider:
    provider = GeminiProvider(Config().gemini)
    provider._client = SimpleNamespace(models=models)
    return provider


class TestGeminiProvider:
    """Tests for GeminiProvider response handling with a stubbed client."""

    @pytest.mark.asyncio
    async def test_nearby_returns_text(self, origin):
        models = FakeModels(SimpleNamespace(text="Statue | Monument | 50m"))

        text = await gemini_with(models).fetch_nearby_places(origin, "English", ["Park"])

        assert text == "Statue | Monument | 50m"
        assert "Park" in models.requests[0]["contents"]

    @pytest.mark.asyncio
    async def test_nearby_none_text(self, origin):
        text = await gemini_with(FakeModels(SimpleNamespace(text=None))).fetch_nearby_places(origin, "English")

        assert text == ""

    @pytest.mark.asyncio
    async def test_failure_becomes_provider_error(self, origin):
        models = FakeModels(error=RuntimeError("quota exceeded"))

        with pytest.raises(ProviderError, match="quota exceeded"):
            await gemini_with(models).fetch_nearby_places(origin, "English")

    @pytest.mark.asyncio
    async def test_details_with_grounding(self):
        metadata = SimpleNamespace(
            grounding_chunks=[
                SimpleNamespace(web=None, maps=SimpleNamespace(uri="https://maps.google.com/?cid=9", title="Bridge")),
            ]
        )
        response = SimpleNamespace(text="Built in 1420.", candidates=[SimpleNamespace(grounding_metadata=metadata)])

        details = await gemini_with(FakeModels(response)).fetch_landmark_details("Old Bridge", "English")

        assert details.text == "Built in 1420."
        assert photos_link(details.citations) == "https://maps.google.com/?cid=9"

    @pytest.mark.asyncio
    async def test_details_fallback_text(self):
        response = SimpleNamespace(text=None, candidates=[])

        details = await gemini_with(FakeModels(response)).fetch_landmark_details("Old Bridge", "English")

        assert details.text == "Historical information unavailable at the moment."
        assert details.citations == []

    @pytest.mark.asyncio
    async def test_identify_parses_json(self, image_b64):
        response = SimpleNamespace(text='{"landmark_name": "Big Ben, London", "confidence_score": 0.95}')

        result = await gemini_with(FakeModels(response)).identify_landmark(image_b64, "English")

        assert result.landmark_name == "Big Ben, London"
        assert result.confidence_score == pytest.approx(0.95)

    @pytest.mark.asyncio
    async def test_identify_malformed_json(self, image_b64):
        response = SimpleNamespace(text="not json")

        with pytest.raises(ProviderError):
            await gemini_with(FakeModels(response)).identify_landmark(image_b64, "English")

    @pytest.mark.asyncio
    async def test_narration_encodes_inline_bytes(self):
        part = SimpleNamespace(inline_data=SimpleNamespace(data=b"\x01\x00\x02\x00"))
        response = SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])

        audio = await gemini_with(FakeModels(response)).generate_narration("text", "English")

        assert base64.b64decode(audio) == b"\x01\x00\x02\x00"

    @pytest.mark.asyncio
    async def test_narration_without_audio(self):
        response = SimpleNamespace(candidates=[])

        assert await gemini_with(FakeModels(response)).generate_narration("text", "English") == ""
