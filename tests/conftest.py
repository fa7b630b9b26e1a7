"""Shared fixtures: synthetic sample buffers."""

import numpy as np
import pytest

from tracksense.core.models import SampleBuffer
from tracksense.utils.config import get_default_config

SR = 44100


# ---------------------------------------------------------------------------
# Signal builders
# ---------------------------------------------------------------------------

def make_tone(freq: float = 440.0, seconds: float = 10.0, amplitude: float = 0.5,
              sr: int = SR) -> SampleBuffer:
    t = np.arange(int(seconds * sr)) / sr
    return SampleBuffer(amplitude * np.sin(2 * np.pi * freq * t), sr)


def make_impulse_train(period: float = 0.5, seconds: float = 20.0, sr: int = SR) -> SampleBuffer:
    data = np.zeros(int(seconds * sr), dtype=np.float32)
    positions = (np.arange(0.0, seconds, period) * sr).astype(int)
    data[positions[positions < len(data)]] = 1.0
    return SampleBuffer(data, sr)


def make_drop_track(seconds: float = 40.0, drop_at: float = 20.0, sr: int = SR) -> SampleBuffer:
    """Quiet hi-hat noise, then a bass-heavy kick pattern from ``drop_at`` on."""
    rng = np.random.default_rng(7)
    n = int(seconds * sr)
    t = np.arange(n) / sr
    data = 0.02 * rng.standard_normal(n)

    kick_len = int(0.15 * sr)
    envelope = np.exp(-np.arange(kick_len) / (0.03 * sr))
    kick = 0.9 * envelope * np.sin(2 * np.pi * 55.0 * np.arange(kick_len) / sr)
    for start in np.arange(drop_at, seconds - 0.2, 0.5):
        i = int(start * sr)
        data[i:i + kick_len] += kick

    data += np.where(t >= drop_at, 0.2 * np.sin(2 * np.pi * 110.0 * t), 0.0)
    return SampleBuffer(np.clip(data, -1.0, 1.0), sr)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def silence():
    """30 seconds of digital silence."""
    return SampleBuffer(np.zeros(30 * SR, dtype=np.float32), SR)


@pytest.fixture
def tone_440():
    """10 seconds of a 440 Hz sine."""
    return make_tone()


@pytest.fixture
def impulse_train():
    """20 seconds of single-sample clicks every 0.5 s."""
    return make_impulse_train()


@pytest.fixture
def short_buffer():
    """0.1 seconds of noise, too short for any analyzer."""
    rng = np.random.default_rng(0)
    return SampleBuffer(0.1 * rng.standard_normal(int(0.1 * SR)), SR)


@pytest.fixture
def drop_track():
    """40 seconds with a bass drop at 20 s."""
    return make_drop_track()


@pytest.fixture
def default_config():
    """Default configuration dictionary."""
    return get_default_config()
