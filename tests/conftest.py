"""
Shared fixtures for the test suite.

Signals are synthesized with numpy so no audio device or file is needed.
sounddevice is replaced by a MagicMock injected through the `sd` argument.
"""

from unittest.mock import MagicMock

import numpy as np
import pytest

from tuner.config import FRAME_SIZE, SAMPLE_RATE

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def sine_frame(freq, amplitude=1.0, sr=SAMPLE_RATE, size=FRAME_SIZE):
    """One frame of a pure sine."""
    t = np.arange(size) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


class FakeEstimator:
    """Returns a fixed estimate and records every frame it sees."""

    def __init__(self, freq):
        self.freq = freq
        self.frames = []

    def estimate(self, frame):
        self.frames.append(frame)
        return self.freq


class FakeSource:
    """Frame source serving a list of frames, then None."""

    def __init__(self, frames, sample_rate=SAMPLE_RATE, fail_on_open=None):
        self.frames = list(frames)
        self.sample_rate = sample_rate
        self.frame_size = FRAME_SIZE
        self.fail_on_open = fail_on_open
        self.opened = 0
        self.closed = 0

    def open(self):
        if self.fail_on_open is not None:
            raise self.fail_on_open
        self.opened += 1

    def read(self):
        if not self.frames:
            return None
        return self.frames.pop(0)

    def close(self):
        self.closed += 1


class FakePortAudioError(Exception):
    pass


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def silent_frame():
    return np.zeros(FRAME_SIZE, dtype=np.float32)


@pytest.fixture
def loud_frame():
    return sine_frame(440.0, amplitude=1.0)


@pytest.fixture
def mock_sd():
    """MagicMock standing in for the sounddevice module."""
    sd = MagicMock()
    sd.PortAudioError = FakePortAudioError
    return sd
