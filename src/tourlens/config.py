"""Configuration management for tourlens."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseModel):
    """Application configuration."""

    name: str = "tourlens"
    mode: Literal["production", "development"] = "development"
    log_level: str = "INFO"


class GuideConfig(BaseModel):
    """Tour guide defaults."""

    language: str = "English"
    output_format: Literal["textOnly", "audioOnly", "textAndAudio"] = "textAndAudio"


class GeminiConfig(BaseModel):
    """Gemini generation provider configuration."""

    api_key: str | None = None
    vision_model: str = "gemini-3-flash-preview"
    search_model: str = "gemini-2.5-flash"
    tts_model: str = "gemini-2.5-flash-preview-tts"
    voice: str = "Zephyr"
    timeout_seconds: int = 60


class DiscoveryConfig(BaseModel):
    """Nearby discovery configuration."""

    radius_meters: int = 1000
    page_size: int = 5


class LocationConfig(BaseModel):
    """Geolocation configuration."""

    provider: Literal["ip", "fixed"] = "ip"
    latitude: float | None = None
    longitude: float | None = None
    ip_endpoint: str = "https://ipapi.co/json/"
    discovery_timeout_seconds: float = 10.0
    image_timeout_seconds: float = 4.0


class NarrationConfig(BaseModel):
    """Narration playback configuration."""

    sample_rate: int = 24000
    channels: int = 1
    backend: Literal["sounddevice", "mock"] = "sounddevice"


class Config(BaseSettings):
    """Main configuration for tourlens."""

    model_config = SettingsConfigDict(
        env_prefix="TOURLENS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app: AppConfig = Field(default_factory=AppConfig)
    guide: GuideConfig = Field(default_factory=GuideConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    location: LocationConfig = Field(default_factory=LocationConfig)
    narration: NarrationConfig = Field(default_factory=NarrationConfig)

    # Mock mode for development
    mock_mode: bool = False

    @classmethod
    def from_yaml(cls, path: Path | str) -> Config:
        """Load configuration from YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)


def load_config(
    config_path: Path | str | None = None,
    env_override: bool = True,
) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Path to config file. If None, searches standard locations.
        env_override: Whether to allow environment variables to override config.

    Returns:
        Loaded configuration.
    """
    search_paths = [
        Path("/etc/tourlens/config.yaml"),
        Path.home() / ".config" / "tourlens" / "config.yaml",
        Path("config.yaml"),
        Path("configs/tourlens.yaml"),
    ]

    if config_path:
        search_paths.insert(0, Path(config_path))

    config_file: Path | None = None
    for path in search_paths:
        if path.exists():
            config_file = path
            break

    if config_file:
        config = Config.from_yaml(config_file)
    else:
        config = Config()

    if env_override:
        # Gemini key: our own variable first, then the SDK's conventional one
        api_key = os.environ.get("TOURLENS_GEMINI_API_KEY") or os.environ.get("GEMINI_API_KEY")
        if api_key:
            config.gemini.api_key = api_key

        if os.environ.get("TOURLENS_MOCK_MODE", "").lower() in ("1", "true", "yes"):
            config.mock_mode = True

    return config


def get_default_config() -> dict[str, Any]:
    """Get default configuration as dictionary."""
    return Config().model_dump()
