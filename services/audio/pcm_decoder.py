"""Decode raw 16-bit PCM speech payloads into playable float buffers."""

import base64
import binascii

import numpy as np

from services.audio.playback import AudioBuffer, AudioOutputSink

PCM_SCALE = 32768.0


class AudioDecodeError(ValueError):
    """Raised when an audio payload cannot be turned into a buffer."""


def decode_base64_audio(payload: str) -> bytes:
    """Return the raw bytes of a base64-encoded audio payload."""
    if payload is None:
        raise AudioDecodeError("Audio payload is missing.")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise AudioDecodeError("Audio payload is not valid base64.") from exc


def decode_pcm16(
    data: bytes,
    sink: AudioOutputSink,
    sample_rate: int,
    num_channels: int,
) -> AudioBuffer:
    """Convert interleaved signed 16-bit little-endian PCM into a float buffer.

    Each sample is divided by 32768, so -32768 maps to -1.0 and 32767 maps
    to 32767/32768. The output buffer is allocated by `sink`.

    Raises:
        AudioDecodeError: If the byte length is odd, the sample count is not a
            multiple of `num_channels`, or the buffer cannot be allocated.
    """
    if num_channels < 1:
        raise AudioDecodeError(f"Channel count must be positive, got {num_channels}.")
    if len(data) % 2:
        raise AudioDecodeError(f"PCM payload has an odd byte length ({len(data)}).")

    samples = np.frombuffer(data, dtype="<i2")
    if samples.size % num_channels:
        raise AudioDecodeError(
            f"{samples.size} samples cannot be split evenly across {num_channels} channels."
        )
    frame_count = samples.size // num_channels

    try:
        buffer = sink.create_buffer(num_channels, frame_count, sample_rate)
    except ValueError as exc:
        raise AudioDecodeError(str(exc)) from exc

    frames = samples.reshape(frame_count, num_channels)
    for channel in range(num_channels):
        channel_data = buffer.get_channel_data(channel)
        channel_data[:] = frames[:, channel] / PCM_SCALE
    return buffer


def decode_speech_payload(
    payload: str,
    sink: AudioOutputSink,
    sample_rate: int = 24000,
    num_channels: int = 1,
) -> AudioBuffer:
    """Decode a base64 PCM payload straight into a playable buffer."""
    return decode_pcm16(decode_base64_audio(payload), sink, sample_rate, num_channels)
