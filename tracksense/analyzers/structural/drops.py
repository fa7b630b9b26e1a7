"""
Drop and build detection.

Tracks half-wave-rectified spectral flux in four frequency bands, compares
each band against a robust sliding threshold (median + k * MAD) and selects
the strongest candidates greedily under a minimum spacing constraint.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from tracksense.core.analyzer_base import BaseAnalyzer, params_from_section
from tracksense.core.fft import bin_frequencies
from tracksense.core.frames import FrameExtractor, spectral_flux
from tracksense.core.models import (
    AUTO_CUE_ID_START,
    BUILD_COLOR,
    DROP_COLOR,
    CuePoint,
    CueSource,
    SampleBuffer,
)

# (low_hz, high_hz); None means Nyquist
BANDS: Tuple[Tuple[float, Optional[float]], ...] = (
    (20.0, 100.0),    # sub-bass
    (100.0, 300.0),   # bass
    (300.0, 4000.0),  # mid
    (4000.0, None),   # high
)
SUB, BASS, MID, HIGH = range(4)


@dataclass(frozen=True)
class DropParams:
    """Tunable drop/build detector constants."""
    fft_size: int = 2048
    hop_size: int = 1024
    window_seconds: float = 2.0
    mad_multiplier: float = 2.5
    band_weights: tuple = (0.4, 0.3, 0.2, 0.1)
    build_weights: tuple = (0.5, 0.5)
    build_bass_ratio: float = 0.5
    min_gap_seconds: float = 8.0
    max_markers: int = 8
    first_cue_id: int = AUTO_CUE_ID_START
    min_frames: int = 10


@dataclass(frozen=True)
class Candidate:
    """A frame that scored as a drop or a build."""
    frame: int
    score: float
    source: CueSource


def band_slices(fft_size: int, sample_rate: float) -> List[slice]:
    """Bin ranges ``[low, high)`` of the four analysis bands."""
    freqs = bin_frequencies(fft_size, sample_rate)
    nyquist = sample_rate / 2.0
    slices = []
    for low, high in BANDS:
        high = nyquist if high is None else high
        start = int(np.searchsorted(freqs, low, side='left'))
        stop = int(np.searchsorted(freqs, high, side='left'))
        if high >= nyquist:
            stop = len(freqs)
        slices.append(slice(start, stop))
    return slices


def adaptive_threshold(flux: np.ndarray, radius: int, multiplier: float) -> np.ndarray:
    """
    Per-frame ``median + multiplier * MAD`` over a ``±radius`` window.

    Windows are truncated at the edges of the signal.
    """
    n = len(flux)
    if n == 0:
        return np.zeros(0)
    padded = np.pad(flux.astype(np.float64), radius, constant_values=np.nan)
    windows = sliding_window_view(padded, 2 * radius + 1)[:n]
    median = np.nanmedian(windows, axis=1)
    mad = np.nanmedian(np.abs(windows - median[:, np.newaxis]), axis=1)
    return median + multiplier * mad


def score_frames(
    flux: np.ndarray,
    thresholds: np.ndarray,
    params: DropParams,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Drop and build scores for every frame.

    Args:
        flux: Band flux, shape (4, frames)
        thresholds: Band thresholds, same shape
        params: Detector constants

    Returns:
        (drop_scores, build_scores)
    """
    excess = np.maximum(flux - thresholds, 0.0)
    drop_scores = np.asarray(params.band_weights, dtype=np.float64) @ excess

    active = (flux[MID] > thresholds[MID]) | (flux[HIGH] > thresholds[HIGH])
    quiet_low = (
        (flux[SUB] <= params.build_bass_ratio * thresholds[SUB])
        & (flux[BASS] <= params.build_bass_ratio * thresholds[BASS])
    )
    mid_weight, high_weight = params.build_weights
    build_scores = np.where(
        active & quiet_low,
        mid_weight * excess[MID] + high_weight * excess[HIGH],
        0.0,
    )
    return drop_scores, build_scores


def collect_candidates(drop_scores: np.ndarray, build_scores: np.ndarray) -> List[Candidate]:
    """Frames with a positive score, labelled by their larger score."""
    candidates = []
    for frame in np.flatnonzero((drop_scores > 0) | (build_scores > 0)):
        drop, build = float(drop_scores[frame]), float(build_scores[frame])
        if build > drop:
            candidates.append(Candidate(int(frame), build, CueSource.AUTO_BUILD))
        else:
            candidates.append(Candidate(int(frame), drop, CueSource.AUTO_DROP))
    return candidates


def select_candidates(
    candidates: Sequence[Candidate],
    frame_time: Callable[[int], float],
    min_gap_seconds: float,
    max_markers: int,
) -> List[Candidate]:
    """
    Greedy selection by score, skipping anything within ``min_gap_seconds``
    of an already selected candidate. Ties go to the earlier frame.

    Gaps are measured between ``frame_time`` values, the same numbers that
    become cue positions.
    """
    selected: List[Candidate] = []
    for cand in sorted(candidates, key=lambda c: (-c.score, c.frame)):
        if len(selected) >= max_markers:
            break
        position = frame_time(cand.frame)
        if all(abs(position - frame_time(s.frame)) >= min_gap_seconds for s in selected):
            selected.append(cand)
    return sorted(selected, key=lambda c: c.frame)


def detect_drops(buffer: SampleBuffer, params: Optional[DropParams] = None) -> List[CuePoint]:
    """
    Detect drop and build cue points.

    Args:
        buffer: Mono sample buffer
        params: Detector constants

    Returns:
        List[CuePoint]: At most ``max_markers`` cues sorted by position,
        at least ``min_gap_seconds`` apart; empty for fewer than
        ``min_frames`` frames
    """
    params = params or DropParams()
    extractor = FrameExtractor(params.fft_size, params.hop_size)
    if extractor.num_frames(len(buffer.samples)) < params.min_frames:
        return []

    bands = band_slices(params.fft_size, buffer.sample_rate)
    flux = spectral_flux(extractor, buffer.samples, bands)

    radius = max(1, int(round(params.window_seconds * extractor.frame_rate(buffer.sample_rate))))
    thresholds = np.vstack([
        adaptive_threshold(row, radius, params.mad_multiplier) for row in flux
    ])

    drop_scores, build_scores = score_frames(flux, thresholds, params)
    candidates = collect_candidates(drop_scores, build_scores)

    def frame_time(frame: int) -> float:
        return extractor.frame_time(frame, buffer.sample_rate)

    selected = select_candidates(
        candidates, frame_time, params.min_gap_seconds, params.max_markers
    )

    cues = []
    for offset, cand in enumerate(selected):
        is_build = cand.source is CueSource.AUTO_BUILD
        cues.append(CuePoint(
            id=params.first_cue_id + offset,
            position=frame_time(cand.frame),
            label="Build" if is_build else "Drop",
            color=BUILD_COLOR if is_build else DROP_COLOR,
            source=cand.source,
        ))
    return cues


class DropAnalyzer(BaseAnalyzer[List[CuePoint]]):
    """Analyzer wrapper around :func:`detect_drops`."""

    def __init__(self, params: Optional[DropParams] = None):
        super().__init__("drops", "1.0.0")
        self.params = params or DropParams()

    def _analyze_impl(self, buffer: SampleBuffer) -> List[CuePoint]:
        cues = detect_drops(buffer, self.params)
        self.logger.debug(f"Detected {len(cues)} cue points")
        return cues


def create_drop_analyzer(config: Dict[str, Any]) -> DropAnalyzer:
    """Factory function to create drop/build analyzer from the full config."""
    section = config.get('analysis', {}).get('drops', {})
    return DropAnalyzer(params_from_section(DropParams, section))
