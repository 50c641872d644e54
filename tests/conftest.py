"""Pytest configuration and fixtures for VoiceTask tests."""

import pytest
import tempfile
import logging
from collections import deque
from unittest.mock import Mock, patch
import numpy as np

from voicetask.models.audio import AudioClip, EnergyVerdict
from voicetask.models.task import ParsedTaskResult
from voicetask.services.recorder_controller import RecorderController
from voicetask.transcription.base import AbstractTaskParser


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: tests spanning several components")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def audio_test_data():
    """Generate 16-bit PCM test audio in various patterns."""
    def generate_audio(pattern="noise", num_samples=1024, amplitude=0.5, seed=0):
        """Generate audio data for testing.

        Args:
            pattern: Type of audio pattern ('sine', 'noise', 'silence')
            num_samples: Number of mono samples
            amplitude: Peak amplitude, 0-1
            seed: Random seed for the noise pattern

        Returns:
            bytes: Audio data as bytes
        """
        if pattern == "sine":
            t = np.arange(num_samples) / 16000
            wave_data = np.sin(2 * np.pi * 440 * t)
        elif pattern == "noise":
            wave_data = np.random.default_rng(seed).uniform(-1, 1, num_samples)
        elif pattern == "silence":
            wave_data = np.zeros(num_samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        return (wave_data * amplitude * 32767).astype(np.int16).tobytes()

    return generate_audio


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware.

    The stream callback passed to ``open`` is captured so tests can push
    audio blocks as if the device delivered them.
    """
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()
        callbacks = []

        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        def fake_open(**kwargs):
            callbacks.append(kwargs["stream_callback"])
            return mock_stream

        mock_pyaudio_instance.open.side_effect = fake_open
        mock_pyaudio_instance.get_device_count.return_value = 1
        mock_pyaudio_instance.get_default_input_device_info.return_value = {"name": "Mock Microphone"}
        mock_pyaudio_instance.terminate.return_value = None

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        def push(data: bytes):
            for callback in callbacks:
                callback(data, len(data) // 2, {}, 0)

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream,
            'callbacks': callbacks,
            'push': push,
        }


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 10_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeFrameHandle:
    def __init__(self, callback):
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualFrameScheduler:
    """Frame scheduler that only runs callbacks when a test asks it to."""

    def __init__(self):
        self.handles = []

    def request_frame(self, callback):
        handle = FakeFrameHandle(callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def run_frame(self) -> int:
        """Run every pending callback once; returns how many ran."""
        due, self.handles = self.pending, []
        for handle in due:
            handle.callback()
        return len(due)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def frame_scheduler():
    return ManualFrameScheduler()


def verdict(is_sound: bool) -> EnergyVerdict:
    return EnergyVerdict(level=80.0 if is_sound else 2.0, threshold=15, is_silent=not is_sound)


class FakeStream:
    def __init__(self):
        self.is_active = True
        self.sinks = []
        self.stop_calls = 0

    @property
    def track_count(self):
        return 1 if self.is_active else 0

    def add_sink(self, sink):
        self.sinks.append(sink)

    def remove_sink(self, sink):
        if sink in self.sinks:
            self.sinks.remove(sink)

    def stop(self):
        if self.is_active:
            self.stop_calls += 1
        self.is_active = False


class FakeCapture:
    def __init__(self, open_error=None, finish_error=None):
        self.open_error = open_error
        self.finish_error = finish_error
        self.stream = None
        self.open_calls = 0
        self.finish_calls = 0
        self.release_calls = 0
        self.is_encoding = False

    @property
    def track_count(self):
        return self.stream.track_count if self.stream else 0

    async def open(self):
        self.open_calls += 1
        if self.open_error:
            raise self.open_error
        self.stream = FakeStream()
        return self.stream

    def begin_encoding(self, stream):
        self.is_encoding = True

    def finish(self):
        self.finish_calls += 1
        try:
            self.is_encoding = False
        finally:
            self.release()
        if self.finish_error:
            raise self.finish_error
        return AudioClip(data=b"RIFFclip", mime_type="audio/wav", sample_rate=16000,
                         channels=1, fragment_count=3, pcm_bytes=6144)

    def release(self):
        self.release_calls += 1
        if self.stream:
            self.stream.stop()


class FakeNode:
    def __init__(self):
        self.connected = True


class ScriptedMonitor:
    """Energy monitor that replays a shared script of sound/silence verdicts."""

    def __init__(self, script, attach_error=None):
        self.script = script
        self.attach_error = attach_error
        self.node = None
        self.last_node = None
        self.samples = 0
        self.detach_calls = 0

    def attach(self, stream):
        if self.attach_error:
            raise self.attach_error
        self.node = self.last_node = FakeNode()

    def sample_once(self):
        self.samples += 1
        item = self.script.popleft() if self.script else False
        if isinstance(item, Exception):
            raise item
        return verdict(item)

    def detach(self):
        self.detach_calls += 1
        if self.node:
            self.node.connected = False
        self.node = None


class FakeParser(AbstractTaskParser):
    def __init__(self, result=None, error=None):
        self.result = result or ParsedTaskResult(title="Buy milk", originalTranscript="buy milk tomorrow")
        self.error = error
        self.calls = []

    async def parse(self, audio_base64, mime_type):
        self.calls.append((audio_base64, mime_type))
        if self.error:
            raise self.error
        return self.result


class RecorderHarness:
    """Builds a RecorderController wired to fakes and records its callbacks."""

    def __init__(self):
        self.clock = FakeClock()
        self.scheduler = ManualFrameScheduler()
        self.parser = FakeParser()
        self.script = deque()
        self.captures = []
        self.monitors = []
        self.open_error = None
        self.attach_error = None
        self.finish_error = None
        self.processing_started = 0
        self.results = []
        self.errors = []

    def capture_factory(self):
        capture = FakeCapture(open_error=self.open_error, finish_error=self.finish_error)
        self.captures.append(capture)
        return capture

    def monitor_factory(self):
        monitor = ScriptedMonitor(self.script, attach_error=self.attach_error)
        self.monitors.append(monitor)
        return monitor

    def on_processing_start(self):
        self.processing_started += 1

    def build(self, **kwargs) -> RecorderController:
        return RecorderController(
            self.parser,
            on_processing_start=self.on_processing_start,
            on_processing_complete=self.results.append,
            on_error=self.errors.append,
            capture_factory=self.capture_factory,
            monitor_factory=self.monitor_factory,
            scheduler=self.scheduler,
            clock=self.clock,
            **kwargs,
        )

    def run_frames(self, count: int, step_ms: float = 16.0) -> None:
        for _ in range(count):
            self.clock.advance(step_ms)
            self.scheduler.run_frame()


@pytest.fixture
def recorder_harness():
    return RecorderHarness()
