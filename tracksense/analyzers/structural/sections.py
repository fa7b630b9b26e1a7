"""
Coarse track structure: intro/outro boundaries and waveform overview peaks.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from tracksense.core.analyzer_base import BaseAnalyzer, params_from_section
from tracksense.core.models import SampleBuffer


@dataclass(frozen=True)
class IntroOutroParams:
    """Tunable intro/outro scan constants."""
    window_seconds: float = 0.5
    threshold_ratio: float = 0.03


def window_rms(samples: np.ndarray, window: int) -> np.ndarray:
    """RMS of consecutive ``window``-sample blocks; the last block may be short."""
    n = len(samples)
    if n == 0:
        return np.zeros(0)
    data = samples.astype(np.float64)
    full = n // window
    rms = []
    if full:
        blocks = data[:full * window].reshape(full, window)
        rms.append(np.sqrt(np.mean(blocks * blocks, axis=1)))
    tail = data[full * window:]
    if len(tail):
        rms.append(np.array([np.sqrt(np.mean(tail * tail))]))
    return np.concatenate(rms)


def detect_intro_outro(
    buffer: SampleBuffer,
    params: Optional[IntroOutroParams] = None,
) -> Tuple[float, float]:
    """
    Find where the low-energy head ends and the low-energy tail begins.

    The buffer is scanned in fixed windows; a window counts as active when
    its RMS exceeds ``threshold_ratio`` times the loudest window.

    Returns:
        (intro_time, outro_time) in seconds; ``(0, duration)`` when no
        window is active
    """
    params = params or IntroOutroParams()
    duration = float(buffer.duration)
    window = max(1, int(round(params.window_seconds * buffer.sample_rate)))

    rms = window_rms(buffer.samples, window)
    if len(rms) == 0 or rms.max() <= 0:
        return 0.0, duration

    active = np.flatnonzero(rms > params.threshold_ratio * rms.max())
    if len(active) == 0:
        return 0.0, duration

    intro = active[0] * window / buffer.sample_rate
    outro = min((active[-1] + 1) * window / buffer.sample_rate, duration)
    return float(intro), float(max(outro, intro))


def compute_waveform_peaks(buffer: SampleBuffer, num_peaks: int = 2048) -> List[float]:
    """
    Normalized absolute peak of each of ``num_peaks`` equal blocks.

    Data for a waveform overview; returns an empty list when the buffer has
    fewer samples than requested peaks.
    """
    if num_peaks < 1:
        return []
    block = len(buffer.samples) // num_peaks
    if block < 1:
        return []

    data = np.abs(buffer.samples[:block * num_peaks].astype(np.float64))
    peaks = data.reshape(num_peaks, block).max(axis=1)
    return (peaks / max(float(peaks.max()), 0.001)).tolist()


class IntroOutroAnalyzer(BaseAnalyzer[Tuple[float, float]]):
    """Analyzer wrapper around :func:`detect_intro_outro`."""

    def __init__(self, params: Optional[IntroOutroParams] = None):
        super().__init__("intro_outro", "1.0.0")
        self.params = params or IntroOutroParams()

    def _analyze_impl(self, buffer: SampleBuffer) -> Tuple[float, float]:
        return detect_intro_outro(buffer, self.params)


def create_intro_outro_analyzer(config: Dict[str, Any]) -> IntroOutroAnalyzer:
    """Factory function to create intro/outro analyzer from the full config."""
    section = config.get('analysis', {}).get('intro_outro', {})
    return IntroOutroAnalyzer(params_from_section(IntroOutroParams, section))
