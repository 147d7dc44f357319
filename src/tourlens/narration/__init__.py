"""Narration audio: decoding and playback."""

from tourlens.narration.decoder import DecodedAudio, decode_pcm
from tourlens.narration.pipeline import NarrationPhase, NarrationPipeline
from tourlens.narration.playback import (
    MockPlaybackBackend,
    PlaybackBackend,
    PlaybackHandle,
    SoundDevicePlaybackBackend,
    create_playback_backend,
)

__all__ = [
    "DecodedAudio",
    "decode_pcm",
    "NarrationPhase",
    "NarrationPipeline",
    "PlaybackBackend",
    "PlaybackHandle",
    "MockPlaybackBackend",
    "SoundDevicePlaybackBackend",
    "create_playback_backend",
]
