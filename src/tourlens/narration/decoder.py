"""Decoding of base64 narration payloads into float samples."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

import numpy as np

from tourlens.common.errors import AudioDecodeError

BYTES_PER_SAMPLE = 2  # signed 16-bit little-endian PCM
PCM_SCALE = 32768.0


@dataclass
class DecodedAudio:
    """Decoded narration clip."""

    samples: np.ndarray  # float32, shape (frames, channels), range [-1.0, 1.0)
    sample_rate: int
    channels: int

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        """Clip length in seconds."""
        return self.frames / self.sample_rate


def decode_pcm(raw: str, sample_rate: int = 24000, channels: int = 1) -> DecodedAudio:
    """Decode base64 raw PCM into a float32 sample buffer.

    Args:
        raw: Base64 text of interleaved signed 16-bit little-endian PCM.
        sample_rate: Sample rate of the payload in Hz.
        channels: Interleaved channel count.

    Raises:
        AudioDecodeError: The text is not base64, or the bytes do not form
            a whole, non-zero number of frames.
    """
    try:
        data = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AudioDecodeError(f"Narration payload is not valid base64: {e}") from e

    frame_size = BYTES_PER_SAMPLE * channels
    if not data or len(data) % frame_size:
        raise AudioDecodeError(
            f"Narration payload has {len(data)} bytes, not a whole number of {frame_size}-byte frames"
        )

    pcm = np.frombuffer(data, dtype="<i2")
    samples = (pcm.astype(np.float32) / PCM_SCALE).reshape(-1, channels)
    return DecodedAudio(samples=samples, sample_rate=sample_rate, channels=channels)
