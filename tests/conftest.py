"""Pytest configuration and fixtures for tourlens tests."""

from __future__ import annotations

import base64

import pytest

from tourlens.config import Config
from tourlens.generation import MockGenerationProvider
from tourlens.guide import TourGuide
from tourlens.location import Coordinates, MockLocationProvider
from tourlens.narration import MockPlaybackBackend, NarrationPipeline

NEW_YORK = Coordinates(40.7128, -74.0060)


def pytest_configure(config: pytest.Config) -> None:
    """Configure test markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


@pytest.fixture
def mock_config() -> Config:
    """Get mock configuration."""
    cfg = Config()
    cfg.mock_mode = True
    cfg.app.mode = "development"
    cfg.app.log_level = "DEBUG"
    cfg.narration.backend = "mock"
    return cfg


@pytest.fixture
def origin() -> Coordinates:
    return NEW_YORK


@pytest.fixture
def provider() -> MockGenerationProvider:
    return MockGenerationProvider()


@pytest.fixture
def locator(origin: Coordinates) -> MockLocationProvider:
    return MockLocationProvider(origin)


@pytest.fixture
def playback() -> MockPlaybackBackend:
    """Playback backend whose clips only end when a test finishes them."""
    return MockPlaybackBackend(auto_complete=False)


@pytest.fixture
def pipeline(playback: MockPlaybackBackend):
    """Narration pipeline on the mock backend, torn down after the test."""
    with NarrationPipeline(playback, sample_rate=24000, channels=1) as pipe:
        yield pipe


@pytest.fixture
async def guide(
    mock_config: Config,
    provider: MockGenerationProvider,
    locator: MockLocationProvider,
    playback: MockPlaybackBackend,
):
    """Tour guide wired to mock collaborators."""
    async with TourGuide(mock_config, provider, locator, playback=playback) as tour_guide:
        yield tour_guide


@pytest.fixture
def pcm_payload() -> str:
    """100ms of 24kHz mono 16-bit PCM: a ramp of known sample values."""
    samples = [0, 16384, -16384, 32767, -32768] * 480
    data = b"".join(s.to_bytes(2, "little", signed=True) for s in samples)
    return base64.b64encode(data).decode("ascii")


@pytest.fixture
def image_b64() -> str:
    """A tiny JPEG-looking payload; providers only need valid base64."""
    return base64.b64encode(b"\xff\xd8\xff\xe0fake-jpeg\xff\xd9").decode("ascii")
