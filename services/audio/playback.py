"""Audio output context and sinks for synthesized speech playback.

The output context mirrors a browser audio context: it stays
uninitialized until the first user gesture, is reused across plays, and
is disposed on teardown. At most one decoded buffer is scheduled at a
time; scheduling a new one stops the previously registered source.

`BufferedAudioSink` is the sink used by the web service. It keeps the
scheduled buffer so the browser can fetch it as a WAV file and report
back when playback has finished.
"""

from __future__ import annotations

import io
import logging
import wave
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Protocol

import numpy as np

LOGGER = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 24000


class AudioContextNotReadyError(RuntimeError):
    """Raised when playback is attempted before the audio context exists."""


@dataclass
class AudioBuffer:
    """Planar float32 samples, one array per channel."""

    sample_rate: int
    channel_data: List[np.ndarray] = field(default_factory=list)

    @property
    def number_of_channels(self) -> int:
        return len(self.channel_data)

    @property
    def length(self) -> int:
        return int(self.channel_data[0].shape[0]) if self.channel_data else 0

    @property
    def duration(self) -> float:
        return self.length / float(self.sample_rate)

    def get_channel_data(self, channel: int) -> np.ndarray:
        return self.channel_data[channel]


class PlaybackHandle(Protocol):
    def stop(self) -> None: ...


class AudioOutputSink(Protocol):
    """Platform backend that allocates buffers and schedules them for playback."""

    def create_buffer(self, num_channels: int, length: int, sample_rate: int) -> AudioBuffer: ...

    def start(self, buffer: AudioBuffer, on_ended: Callable[[], None]) -> PlaybackHandle: ...

    def close(self) -> None: ...


def allocate_buffer(num_channels: int, length: int, sample_rate: int) -> AudioBuffer:
    """Allocate a zeroed buffer, validating its shape."""
    if num_channels < 1:
        raise ValueError("An audio buffer needs at least one channel.")
    if length < 0:
        raise ValueError("Audio buffer length must be non-negative.")
    if sample_rate <= 0:
        raise ValueError("Sample rate must be positive.")
    return AudioBuffer(
        sample_rate=sample_rate,
        channel_data=[np.zeros(length, dtype=np.float32) for _ in range(num_channels)],
    )


def encode_wav(buffer: AudioBuffer) -> bytes:
    """Encode a float buffer as 16-bit PCM WAV bytes."""
    if buffer.number_of_channels:
        planar = np.stack(buffer.channel_data, axis=1)
    else:
        planar = np.zeros((0, 1), dtype=np.float32)
    pcm = np.clip(np.round(planar.astype(np.float64) * 32768.0), -32768, 32767).astype("<i2")

    out = io.BytesIO()
    with wave.open(out, "wb") as wf:
        wf.setnchannels(max(buffer.number_of_channels, 1))
        wf.setsampwidth(2)
        wf.setframerate(buffer.sample_rate)
        wf.writeframes(pcm.tobytes())
    return out.getvalue()


class ScheduledSource:
    """A buffer handed to the browser for playback."""

    def __init__(self, buffer: AudioBuffer, on_ended: Callable[[], None]) -> None:
        self.buffer = buffer
        self._on_ended = on_ended
        self.stopped = False
        self.ended = False

    def stop(self) -> None:
        self.stopped = True

    def finish(self) -> None:
        """Mark playback complete and fire the completion callback once."""
        if self.ended:
            return
        self.ended = True
        self._on_ended()


class BufferedAudioSink:
    """Sink that exposes the scheduled buffer to the browser."""

    def __init__(self) -> None:
        self.current: Optional[ScheduledSource] = None
        self.closed = False

    def create_buffer(self, num_channels: int, length: int, sample_rate: int) -> AudioBuffer:
        return allocate_buffer(num_channels, length, sample_rate)

    def start(self, buffer: AudioBuffer, on_ended: Callable[[], None]) -> ScheduledSource:
        if self.closed:
            raise RuntimeError("Audio sink is closed.")
        source = ScheduledSource(buffer, on_ended)
        self.current = source
        return source

    def active_source(self) -> Optional[ScheduledSource]:
        """Return the scheduled source if it is still playing."""
        source = self.current
        if source is None or source.stopped or source.ended:
            return None
        return source

    def notify_ended(self) -> bool:
        """Report that the browser finished playing the current source."""
        source = self.active_source()
        if source is None:
            return False
        source.finish()
        return True

    def close(self) -> None:
        if self.current is not None:
            self.current.stop()
        self.current = None
        self.closed = True


class AudioContextState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


class AudioOutput:
    """Lazily initialized, reusable audio output context.

    Args:
        sink_factory: Builds the sink when the context is first initialized.
        sample_rate: Sample rate of the context; synthesized speech is 24 kHz.
    """

    def __init__(
        self,
        sink_factory: Callable[[], AudioOutputSink] = BufferedAudioSink,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
    ) -> None:
        self._sink_factory = sink_factory
        self.sample_rate = sample_rate
        self.state = AudioContextState.UNINITIALIZED
        self._sink: Optional[AudioOutputSink] = None
        self._source: Optional[PlaybackHandle] = None

    @property
    def is_ready(self) -> bool:
        return self.state == AudioContextState.READY

    @property
    def sink(self) -> AudioOutputSink:
        self.require_ready()
        return self._sink

    def initialize(self) -> bool:
        """Create the sink on the first user gesture; later calls are no-ops."""
        if self.state == AudioContextState.CLOSED:
            raise RuntimeError("Audio context has been disposed.")
        if self.state == AudioContextState.READY:
            return False
        self._sink = self._sink_factory()
        self.state = AudioContextState.READY
        LOGGER.info("Audio context initialized at %s Hz", self.sample_rate)
        return True

    def require_ready(self) -> None:
        if self.state != AudioContextState.READY or self._sink is None:
            raise AudioContextNotReadyError(
                "Audio context not ready. Please click on the page first and try again."
            )

    def play(self, buffer: AudioBuffer, on_ended: Callable[[PlaybackHandle], None]) -> PlaybackHandle:
        """Schedule `buffer`, replacing any previously registered source.

        `on_ended` receives the handle that finished so callers can ignore
        completions from sources that were already replaced.
        """
        self.require_ready()
        self.stop()
        holder: List[PlaybackHandle] = []
        source = self._sink.start(buffer, lambda: on_ended(holder[0]))
        holder.append(source)
        self._source = source
        LOGGER.info("Scheduled %.2fs of audio on %s channel(s)", buffer.duration, buffer.number_of_channels)
        return source

    def is_current(self, source: PlaybackHandle) -> bool:
        return source is not None and source is self._source

    def release(self, source: PlaybackHandle) -> None:
        """Forget `source` if it is still the registered one."""
        if self.is_current(source):
            self._source = None

    def stop(self) -> None:
        """Hard-stop the registered source, if any."""
        source, self._source = self._source, None
        if source is None:
            return
        try:
            source.stop()
        except Exception as exc:
            LOGGER.warning("Could not stop audio source: %s", exc)

    def close(self) -> None:
        self.stop()
        if self._sink is not None:
            self._sink.close()
        self._sink = None
        self.state = AudioContextState.CLOSED
