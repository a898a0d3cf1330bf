import io
import wave

import numpy as np
import pytest

from services.audio.playback import (
    AudioContextNotReadyError,
    AudioOutput,
    BufferedAudioSink,
    allocate_buffer,
    encode_wav,
)


def _buffer(samples, sample_rate=24000):
    buffer = allocate_buffer(1, len(samples), sample_rate)
    buffer.channel_data[0][:] = samples
    return buffer


def test_allocate_buffer_validates_shape():
    with pytest.raises(ValueError):
        allocate_buffer(0, 10, 24000)
    with pytest.raises(ValueError):
        allocate_buffer(1, -1, 24000)
    with pytest.raises(ValueError):
        allocate_buffer(1, 10, 0)


def test_encode_wav_writes_pcm16():
    data = encode_wav(_buffer([0.0, -1.0, 0.5]))

    with wave.open(io.BytesIO(data), "rb") as wf:
        assert wf.getnchannels() == 1
        assert wf.getsampwidth() == 2
        assert wf.getframerate() == 24000
        frames = np.frombuffer(wf.readframes(3), dtype="<i2")
    assert list(frames) == [0, -32768, 16384]


def test_output_requires_initialization():
    output = AudioOutput()
    assert not output.is_ready
    with pytest.raises(AudioContextNotReadyError):
        output.play(_buffer([0.0]), lambda source: None)


def test_initialize_is_idempotent_and_reuses_sink():
    output = AudioOutput()
    assert output.initialize() is True
    sink = output.sink
    assert output.initialize() is False
    assert output.sink is sink


def test_playing_replaces_the_previous_source():
    output = AudioOutput()
    output.initialize()
    ended = []

    first = output.play(_buffer([0.1]), ended.append)
    second = output.play(_buffer([0.2]), ended.append)

    assert first.stopped
    assert output.is_current(second)
    assert output.sink.active_source() is second

    assert output.sink.notify_ended() is True
    assert ended == [second]
    assert output.sink.notify_ended() is False


def test_close_disposes_the_context():
    output = AudioOutput()
    output.initialize()
    source = output.play(_buffer([0.1]), lambda s: None)

    output.close()

    assert source.stopped
    assert not output.is_ready
    with pytest.raises(RuntimeError):
        output.initialize()


def test_closed_sink_refuses_new_sources():
    sink = BufferedAudioSink()
    sink.close()
    with pytest.raises(RuntimeError):
        sink.start(_buffer([0.0]), lambda: None)


def test_buffer_duration_follows_sample_rate():
    assert _buffer([0.0] * 12000).duration == 0.5
    assert _buffer([], sample_rate=16000).duration == 0.0
