"""Playback backends for narration clips."""

from __future__ import annotations

import asyncio
import threading
from typing import Callable

from tourlens.common.logging import get_logger
from tourlens.narration.decoder import DecodedAudio

OnEnded = Callable[[], None]


class PlaybackHandle:
    """One playback of a decoded clip.

    A handle is started once, always from sample offset zero, and is not
    reusable after it stops or ends.
    """

    def start(self, on_ended: OnEnded) -> None:
        """Start playback; ``on_ended`` fires when the clip ends by itself."""
        raise NotImplementedError

    def stop(self) -> None:
        """Halt playback immediately. ``on_ended`` is not called afterwards."""
        raise NotImplementedError

    def release(self) -> None:
        """Free backend resources once the clip has ended by itself."""


class PlaybackBackend:
    """Abstract playback backend."""

    def create_handle(self, audio: DecodedAudio) -> PlaybackHandle:
        raise NotImplementedError


class MockPlaybackHandle(PlaybackHandle):
    """Mock handle; ends on :meth:`finish` or after a short timer."""

    def __init__(self, audio: DecodedAudio, auto_complete: bool, max_duration: float) -> None:
        self.audio = audio
        self.auto_complete = auto_complete
        self.max_duration = max_duration
        self.start_offset: int | None = None
        self.started = False
        self.stopped = False
        self.ended = False
        self.released = False
        self._on_ended: OnEnded | None = None
        self._timer: asyncio.TimerHandle | None = None

    def start(self, on_ended: OnEnded) -> None:
        self.started = True
        self.start_offset = 0
        self._on_ended = on_ended
        if self.auto_complete:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(min(self.audio.duration, self.max_duration), self.finish)

    def stop(self) -> None:
        self.stopped = True
        if self._timer:
            self._timer.cancel()
            self._timer = None

    def finish(self) -> None:
        """Simulate the clip reaching its end."""
        if self.stopped or self.ended or not self.started:
            return
        self.ended = True
        if self._on_ended:
            self._on_ended()

    def release(self) -> None:
        self.released = True

    @property
    def active(self) -> bool:
        return self.started and not (self.stopped or self.ended)


class MockPlaybackBackend(PlaybackBackend):
    """Mock playback backend for testing."""

    def __init__(self, auto_complete: bool = False, max_duration: float = 0.1) -> None:
        self.auto_complete = auto_complete
        self.max_duration = max_duration
        self.handles: list[MockPlaybackHandle] = []

    def create_handle(self, audio: DecodedAudio) -> MockPlaybackHandle:
        handle = MockPlaybackHandle(audio, self.auto_complete, self.max_duration)
        self.handles.append(handle)
        return handle

    @property
    def active_handles(self) -> list[MockPlaybackHandle]:
        return [h for h in self.handles if h.active]


class SoundDevicePlaybackHandle(PlaybackHandle):
    """Plays a clip through a PortAudio output stream."""

    def __init__(self, audio: DecodedAudio) -> None:
        self.audio = audio
        self._stream = None
        self._position = 0
        self._stopped = threading.Event()
        self.logger = get_logger("sounddevice_playback")

    def start(self, on_ended: OnEnded) -> None:
        import sounddevice as sd

        loop = asyncio.get_running_loop()
        samples = self.audio.samples

        def callback(outdata, frames, time_info, status) -> None:
            if status:
                self.logger.debug("playback_status", status=str(status))
            chunk = samples[self._position:self._position + frames]
            outdata[:len(chunk)] = chunk
            outdata[len(chunk):] = 0
            self._position += len(chunk)
            if len(chunk) < frames:
                raise sd.CallbackStop()

        def finished() -> None:
            # Runs on the PortAudio thread; also fires after abort().
            if not self._stopped.is_set():
                loop.call_soon_threadsafe(on_ended)

        self._position = 0
        self._stream = sd.OutputStream(
            samplerate=self.audio.sample_rate,
            channels=self.audio.channels,
            dtype="float32",
            callback=callback,
            finished_callback=finished,
        )
        self._stream.start()

    def stop(self) -> None:
        self._stopped.set()
        if self._stream is not None:
            try:
                self._stream.abort()
                self._stream.close()
            finally:
                self._stream = None

    def release(self) -> None:
        if self._stream is not None:
            try:
                self._stream.close()
            finally:
                self._stream = None


class SoundDevicePlaybackBackend(PlaybackBackend):
    """Real audio output via ``sounddevice``."""

    def create_handle(self, audio: DecodedAudio) -> SoundDevicePlaybackHandle:
        return SoundDevicePlaybackHandle(audio)


def create_playback_backend(backend: str, mock_mode: bool = False) -> PlaybackBackend:
    """Build the playback backend selected by configuration."""
    if mock_mode or backend == "mock":
        return MockPlaybackBackend(auto_complete=True)
    return SoundDevicePlaybackBackend()
