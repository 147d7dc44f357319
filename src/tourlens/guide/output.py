"""Output format selection."""

from __future__ import annotations

from enum import Enum


class OutputFormat(str, Enum):
    """What the guide produces for a resolved landmark."""

    TEXT_ONLY = "textOnly"
    AUDIO_ONLY = "audioOnly"
    TEXT_AND_AUDIO = "textAndAudio"

    @property
    def wants_text(self) -> bool:
        return self is not OutputFormat.AUDIO_ONLY

    @property
    def wants_audio(self) -> bool:
        return self is not OutputFormat.TEXT_ONLY
