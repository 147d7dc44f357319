"""Narration pipeline: decode a payload once, play it any number of times."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any

from tourlens.common.errors import AudioDecodeError
from tourlens.common.logging import get_logger
from tourlens.narration.decoder import DecodedAudio, decode_pcm
from tourlens.narration.playback import PlaybackBackend, PlaybackHandle


class NarrationPhase(Enum):
    """Narration pipeline state."""

    EMPTY = "empty"
    DECODING = "decoding"
    READY = "ready"
    PLAYING = "playing"


class NarrationPipeline:
    """Owns one decoded narration clip and at most one playback handle.

    Lifecycle::

        EMPTY -> DECODING -> READY <-> PLAYING

    ``play`` always starts from the beginning of the clip; there is no pause.
    Any active handle is stopped before the clip is replaced or the pipeline
    is torn down, including when used as a context manager.
    """

    def __init__(
        self,
        backend: PlaybackBackend,
        sample_rate: int = 24000,
        channels: int = 1,
    ) -> None:
        self.backend = backend
        self.sample_rate = sample_rate
        self.channels = channels
        self._phase = NarrationPhase.EMPTY
        self._audio: DecodedAudio | None = None
        self._handle: PlaybackHandle | None = None
        self._submission = 0
        self.logger = get_logger("narration")

    @property
    def phase(self) -> NarrationPhase:
        return self._phase

    @property
    def audio(self) -> DecodedAudio | None:
        return self._audio

    @property
    def is_ready(self) -> bool:
        return self._phase in (NarrationPhase.READY, NarrationPhase.PLAYING)

    @property
    def is_playing(self) -> bool:
        return self._phase is NarrationPhase.PLAYING

    async def submit(self, raw: str | None) -> NarrationPhase:
        """Replace the clip with a new base64 PCM payload.

        An empty payload means no narration is available. Decode failures are
        logged and leave the pipeline ``EMPTY``; they are never raised.

        Returns:
            The phase after the submission settles.
        """
        self._release_handle()
        self._audio = None
        self._submission += 1
        submission = self._submission

        if not raw:
            self._phase = NarrationPhase.EMPTY
            return self._phase

        self._phase = NarrationPhase.DECODING
        try:
            audio = await asyncio.to_thread(decode_pcm, raw, self.sample_rate, self.channels)
        except AudioDecodeError as e:
            if submission == self._submission:
                self._phase = NarrationPhase.EMPTY
            self.logger.warning("narration_decode_failed", error=str(e))
            return self._phase

        if submission != self._submission:
            # A newer submit or a teardown happened while this one decoded.
            self.logger.debug("narration_decode_superseded")
            return self._phase

        self._audio = audio
        self._phase = NarrationPhase.READY
        self.logger.info("narration_ready", duration=round(audio.duration, 2), frames=audio.frames)
        return self._phase

    def play(self) -> bool:
        """Start the clip from offset zero.

        Returns:
            False (and does nothing) unless the pipeline is ``READY``; also
            False when the backend cannot start, e.g. no output device.
        """
        if self._phase is not NarrationPhase.READY or self._audio is None:
            self.logger.debug("narration_play_ignored", phase=self._phase.value)
            return False

        handle = self.backend.create_handle(self._audio)
        self._handle = handle
        self._phase = NarrationPhase.PLAYING
        try:
            handle.start(lambda: self._on_handle_ended(handle))
        except Exception as e:
            self.logger.warning("narration_play_failed", error=str(e))
            self._release_handle()
            self._phase = NarrationPhase.READY
            return False

        self.logger.debug("narration_playing")
        return True

    def stop(self) -> bool:
        """Halt playback and return to ``READY``.

        Returns:
            False when nothing was playing.
        """
        if self._phase is not NarrationPhase.PLAYING:
            return False

        self._release_handle()
        self._phase = NarrationPhase.READY
        self.logger.debug("narration_stopped")
        return True

    def toggle(self) -> bool:
        """Stop when playing, play when ready.

        Returns:
            True if the pipeline is playing afterwards.
        """
        if self._phase is NarrationPhase.PLAYING:
            self.stop()
            return False
        return self.play()

    def teardown(self) -> None:
        """Stop playback and drop the clip."""
        self._release_handle()
        self._audio = None
        self._submission += 1
        self._phase = NarrationPhase.EMPTY

    async def wait_finished(self, poll_interval: float = 0.05) -> None:
        """Wait until playback ends or is stopped."""
        while self._phase is NarrationPhase.PLAYING:
            await asyncio.sleep(poll_interval)

    def _on_handle_ended(self, handle: PlaybackHandle) -> None:
        if handle is not self._handle:
            # Late callback from a handle that was already stopped or replaced.
            return
        self._handle = None
        handle.release()
        self._phase = NarrationPhase.READY
        self.logger.debug("narration_finished")

    def _release_handle(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.stop()

    def __enter__(self) -> NarrationPipeline:
        return self

    def __exit__(self, *args: Any) -> None:
        self.teardown()
