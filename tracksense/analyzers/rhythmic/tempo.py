"""
Tempo (BPM) estimation.

Spectral-flux onset envelope, global autocorrelation, log-normal tempo
prior, parabolic peak refinement and octave folding into the felt-tempo
range.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from tracksense.core.analyzer_base import BaseAnalyzer, params_from_section
from tracksense.core.frames import FrameExtractor, spectral_flux
from tracksense.core.models import SampleBuffer


@dataclass(frozen=True)
class TempoParams:
    """Tunable tempo estimator constants."""
    fft_size: int = 2048
    hop_size: int = 512
    min_bpm: float = 30.0
    max_bpm: float = 300.0
    prior_center_bpm: float = 120.0
    prior_octave_std: float = 1.0
    autocorr_gain: float = 1e6
    fold_min_bpm: float = 60.0
    fold_max_bpm: float = 150.0
    min_frames: int = 10


def onset_envelope(buffer: SampleBuffer, params: TempoParams) -> np.ndarray:
    """Spectral flux of every frame after the first."""
    extractor = FrameExtractor(params.fft_size, params.hop_size)
    return spectral_flux(extractor, buffer.samples)[1:]


def autocorrelation(envelope: np.ndarray, max_lag: int) -> np.ndarray:
    """
    Mean-removed autocorrelation for lags ``0..max_lag``.

    Each lag is averaged over its overlap length so long lags are not
    penalized for having fewer terms.
    """
    centered = envelope - envelope.mean()
    n = len(centered)
    ac = np.zeros(max_lag + 1, dtype=np.float64)
    for lag in range(min(max_lag, n - 1) + 1):
        ac[lag] = np.dot(centered[:n - lag], centered[lag:]) / (n - lag)
    return ac


def log_tempo_prior(bpm: np.ndarray, params: TempoParams) -> np.ndarray:
    """Log of a log-normal density over BPM (constant term dropped)."""
    octaves = np.log2(bpm / params.prior_center_bpm) / params.prior_octave_std
    return -0.5 * octaves * octaves


def parabolic_offset(y0: float, y1: float, y2: float) -> float:
    """Sub-sample offset of the vertex of the parabola through three points."""
    denom = y0 - 2.0 * y1 + y2
    if denom == 0.0:
        return 0.0
    return float(np.clip(0.5 * (y0 - y2) / denom, -0.5, 0.5))


def fold_bpm(bpm: float, low: float = 60.0, high: float = 150.0) -> float:
    """Halve or double ``bpm`` until it lies in ``[low, high]``."""
    if bpm <= 0 or not math.isfinite(bpm):
        return 0.0
    while bpm > high:
        bpm /= 2.0
    while bpm < low:
        bpm *= 2.0
    return bpm


def detect_bpm(buffer: SampleBuffer, params: Optional[TempoParams] = None) -> int:
    """
    Estimate the felt tempo of a buffer.

    Args:
        buffer: Mono sample buffer
        params: Estimator constants (defaults if omitted)

    Returns:
        int: BPM folded into [60, 150], or 0 when there is not enough
        signal (too few frames, inverted lag range, silence)
    """
    params = params or TempoParams()
    extractor = FrameExtractor(params.fft_size, params.hop_size)
    if extractor.num_frames(len(buffer.samples)) < params.min_frames:
        return 0

    envelope = onset_envelope(buffer, params)
    fps = extractor.frame_rate(buffer.sample_rate)

    min_lag = max(1, math.floor(fps * 60.0 / params.max_bpm))
    max_lag = min(math.ceil(fps * 60.0 / params.min_bpm), len(envelope) - 2)
    if min_lag >= max_lag:
        return 0

    ac = autocorrelation(envelope, max_lag + 1)
    peak = ac[min_lag - 1:].max()
    if not peak > 0.0:
        return 0
    ac = ac / peak

    lags = np.arange(min_lag, max_lag + 1)
    bpms = 60.0 * fps / lags
    scores = np.log1p(params.autocorr_gain * np.maximum(ac[lags], 0.0))
    scores = scores + log_tempo_prior(bpms, params)

    best_lag = int(lags[int(np.argmax(scores))])
    refined = best_lag + parabolic_offset(ac[best_lag - 1], ac[best_lag], ac[best_lag + 1])

    bpm = fold_bpm(60.0 * fps / refined, params.fold_min_bpm, params.fold_max_bpm)
    return int(round(bpm))


class TempoAnalyzer(BaseAnalyzer[int]):
    """Analyzer wrapper around :func:`detect_bpm`."""

    def __init__(self, params: Optional[TempoParams] = None):
        super().__init__("tempo", "1.0.0")
        self.params = params or TempoParams()

    def _analyze_impl(self, buffer: SampleBuffer) -> int:
        bpm = detect_bpm(buffer, self.params)
        self.logger.debug(f"Detected tempo: {bpm} BPM")
        return bpm


def create_tempo_analyzer(config: Dict[str, Any]) -> TempoAnalyzer:
    """
    Factory function to create tempo analyzer.

    Args:
        config: Full configuration dict

    Returns:
        TempoAnalyzer: Configured analyzer
    """
    section = config.get('analysis', {}).get('tempo', {})
    return TempoAnalyzer(params_from_section(TempoParams, section))
