"""
Musical key estimation.

Chroma accumulation over a centered segment, Krumhansl-Schmuckler profile
matching with Pearson correlation, and conversion to Camelot notation.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np

from tracksense.core.analyzer_base import BaseAnalyzer, params_from_section
from tracksense.core.fft import bin_frequencies
from tracksense.core.frames import FrameExtractor
from tracksense.core.models import KEY_UNKNOWN, SampleBuffer

MAJOR_PROFILE = np.array(
    [6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88]
)
MINOR_PROFILE = np.array(
    [6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17]
)

# Tonic pitch class (C=0 .. B=11) -> Camelot number
CAMELOT_MAJOR = [8, 3, 10, 5, 12, 7, 2, 9, 4, 11, 6, 1]
CAMELOT_MINOR = [5, 12, 7, 2, 9, 4, 11, 6, 1, 8, 3, 10]


@dataclass(frozen=True)
class KeyParams:
    """Tunable key estimator constants."""
    fft_size: int = 8192
    hop_size: int = 4096
    segment_seconds: float = 60.0
    min_frequency: float = 50.0
    max_frequency: float = 4000.0


def frequency_to_pitch_class(freq: np.ndarray) -> np.ndarray:
    """``round(69 + 12*log2(f/440)) mod 12`` with half-up rounding."""
    midi = 69.0 + 12.0 * np.log2(np.asarray(freq, dtype=np.float64) / 440.0)
    return np.floor(midi + 0.5).astype(np.int64) % 12


def compute_chroma(
    samples: np.ndarray,
    sample_rate: float,
    fft_size: int = 8192,
    hop_size: int = 4096,
    min_frequency: float = 50.0,
    max_frequency: float = 4000.0,
) -> Tuple[np.ndarray, int]:
    """
    Accumulate squared magnitude per pitch class over all frames.

    Args:
        samples: Mono samples
        sample_rate: Sample rate in Hz
        fft_size: Frame size
        hop_size: Frame hop
        min_frequency: Lowest bin frequency considered (inclusive)
        max_frequency: Highest bin frequency considered (inclusive)

    Returns:
        (chroma, num_frames): chroma normalized so its maximum is 1, or all
        zero when there is no energy in range
    """
    extractor = FrameExtractor(fft_size, hop_size)
    freqs = bin_frequencies(fft_size, sample_rate)
    in_range = np.flatnonzero((freqs >= min_frequency) & (freqs <= max_frequency))
    pitch_classes = frequency_to_pitch_class(freqs[in_range])

    chroma = np.zeros(12, dtype=np.float64)
    for _, mags in extractor.spectra(samples):
        selected = mags[:, in_range]
        power = (selected * selected).sum(axis=0)
        chroma += np.bincount(pitch_classes, weights=power, minlength=12)

    peak = chroma.max()
    if peak > 0:
        chroma /= peak
    return chroma, extractor.num_frames(len(samples))


def center_segment(samples: np.ndarray, sample_rate: float, seconds: float) -> np.ndarray:
    """Up to ``seconds`` of audio taken from the middle of the buffer."""
    length = min(len(samples), int(round(seconds * sample_rate)))
    start = (len(samples) - length) // 2
    return samples[start:start + length]


def pearson_correlation(a: np.ndarray, b: np.ndarray) -> float:
    """Pearson correlation, 0 when either input has no variance."""
    da = a - a.mean()
    db = b - b.mean()
    denom = np.sqrt(np.dot(da, da) * np.dot(db, db))
    if denom == 0:
        return 0.0
    return float(np.dot(da, db) / denom)


def match_key_profile(chroma: np.ndarray) -> Tuple[int, str, float]:
    """
    Best-matching rotated profile.

    Iterates shift 0..11, major before minor; a later candidate wins only
    with a strictly greater correlation.

    Returns:
        (tonic_pitch_class, mode, correlation) with mode 'major' or 'minor'
    """
    best = (0, 'major', -np.inf)
    for shift in range(12):
        for mode, profile in (('major', MAJOR_PROFILE), ('minor', MINOR_PROFILE)):
            corr = pearson_correlation(chroma, np.roll(profile, shift))
            if corr > best[2]:
                best = (shift, mode, corr)
    return best


def to_camelot(tonic: int, mode: str) -> str:
    """Convert tonic pitch class and mode to Camelot notation (C major -> 8B)."""
    if mode == 'major':
        return f"{CAMELOT_MAJOR[tonic % 12]}B"
    return f"{CAMELOT_MINOR[tonic % 12]}A"


def detect_key(buffer: SampleBuffer, params: Optional[KeyParams] = None) -> str:
    """
    Estimate the key of a buffer in Camelot notation.

    Args:
        buffer: Mono sample buffer
        params: Estimator constants

    Returns:
        str: Camelot key such as ``"8A"``, or ``"N/A"`` when the segment has
        no usable frames or no energy in the analysed range
    """
    params = params or KeyParams()
    segment = center_segment(buffer.samples, buffer.sample_rate, params.segment_seconds)
    chroma, num_frames = compute_chroma(
        segment,
        buffer.sample_rate,
        params.fft_size,
        params.hop_size,
        params.min_frequency,
        params.max_frequency,
    )
    if num_frames == 0 or not chroma.any():
        return KEY_UNKNOWN

    tonic, mode, _ = match_key_profile(chroma)
    return to_camelot(tonic, mode)


class KeyAnalyzer(BaseAnalyzer[str]):
    """Analyzer wrapper around :func:`detect_key`."""

    def __init__(self, params: Optional[KeyParams] = None):
        super().__init__("key", "1.0.0")
        self.params = params or KeyParams()

    def _analyze_impl(self, buffer: SampleBuffer) -> str:
        key = detect_key(buffer, self.params)
        self.logger.debug(f"Detected key: {key}")
        return key


def create_key_analyzer(config: Dict[str, Any]) -> KeyAnalyzer:
    """Factory function to create key analyzer from the full config."""
    section = config.get('analysis', {}).get('key', {})
    return KeyAnalyzer(params_from_section(KeyParams, section))
