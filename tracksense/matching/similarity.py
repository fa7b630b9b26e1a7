"""
Track similarity and harmonic compatibility.

Cosine similarity over feature vectors, Camelot-wheel neighbours, and the
two ranking views built on them: tracks that *sound* alike and tracks that
mix well (compatible key, close tempo).
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Hashable, List, Optional, Sequence, Tuple

import numpy as np

from tracksense.core.models import CAMELOT_PATTERN, KEY_UNKNOWN

logger = logging.getLogger('matching')

KEY_SCORE_SAME = 1.0
KEY_SCORE_ADJACENT = 0.8
KEY_SCORE_PARALLEL = 0.6
BPM_TOLERANCE = 0.05  # relative difference at which the BPM score reaches 0
KEY_WEIGHT = 0.6
BPM_WEIGHT = 0.4
MIN_COMPATIBLE_SCORE = 0.3
MAX_COMPATIBLE_RESULTS = 20
MAX_SIMILAR_RESULTS = 10


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two equal-length vectors.

    Returns 0 for mismatched lengths, empty input or a zero-norm vector.
    The result is clipped to [-1, 1] and ``cosine_similarity(a, a)`` is
    exactly 1 for any non-zero ``a``.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.ndim != 1 or va.shape != vb.shape or len(va) == 0:
        return 0.0

    dot = float(np.dot(va, vb))
    norm_sq = float(np.dot(va, va)) * float(np.dot(vb, vb))
    if norm_sq == 0.0 or not math.isfinite(norm_sq):
        return 0.0
    return float(min(1.0, max(-1.0, dot / math.sqrt(norm_sq))))


def parse_camelot(key: str) -> Optional[Tuple[int, str]]:
    """Split a Camelot key into (number, letter), or None when malformed."""
    if not isinstance(key, str):
        return None
    match = CAMELOT_PATTERN.match(key)
    if not match:
        return None
    number = int(match.group(1))
    if not 1 <= number <= 12:
        return None
    return number, match.group(2)


def get_camelot_compatible(key: str) -> List[str]:
    """
    Harmonically compatible keys on the Camelot wheel.

    Returns:
        ``[key, number-1, number+1, parallel]`` (wrapping 1 <-> 12), or an
        empty list for malformed input
    """
    parsed = parse_camelot(key)
    if parsed is None:
        return []
    number, letter = parsed
    down = 12 if number == 1 else number - 1
    up = 1 if number == 12 else number + 1
    parallel = 'A' if letter == 'B' else 'B'
    return [key, f"{down}{letter}", f"{up}{letter}", f"{number}{parallel}"]


def key_compatibility(reference: str, other: str) -> float:
    """1.0 same key, 0.8 one step on the wheel, 0.6 parallel mode, else 0."""
    if parse_camelot(reference) is None or parse_camelot(other) is None:
        return 0.0
    if other == reference:
        return KEY_SCORE_SAME
    if other not in get_camelot_compatible(reference):
        return 0.0
    if other[-1] == reference[-1]:
        return KEY_SCORE_ADJACENT
    return KEY_SCORE_PARALLEL


def bpm_compatibility(reference_bpm: float, other_bpm: float) -> float:
    """Linear score falling from 1 to 0 as the relative BPM gap reaches 5 %."""
    if reference_bpm <= 0:
        return 0.0
    diff = abs(other_bpm - reference_bpm) / reference_bpm
    return max(0.0, 1.0 - diff / BPM_TOLERANCE)


@dataclass(frozen=True)
class TrackProfile:
    """The parts of an analysed track the ranking functions need."""
    track_id: Hashable
    bpm: int = 0
    key: str = KEY_UNKNOWN
    feature_vector: Tuple[float, ...] = field(default_factory=tuple)

    @classmethod
    def from_result(cls, track_id: Hashable, result) -> "TrackProfile":
        """Build a profile from an ``AnalysisResult``."""
        return cls(
            track_id=track_id,
            bpm=result.bpm,
            key=result.key,
            feature_vector=tuple(result.feature_vector),
        )


@dataclass(frozen=True)
class RankedTrack:
    """A candidate track with its score."""
    track: TrackProfile
    score: float


def rank_similar_tracks(
    reference: TrackProfile,
    candidates: Sequence[TrackProfile],
    limit: int = MAX_SIMILAR_RESULTS,
) -> List[RankedTrack]:
    """
    Tracks whose feature vectors point the same way as the reference.

    The reference itself and tracks without a feature vector are skipped.
    """
    if not reference.feature_vector:
        return []

    ranked = [
        RankedTrack(other, cosine_similarity(reference.feature_vector, other.feature_vector))
        for other in candidates
        if other.track_id != reference.track_id and other.feature_vector
    ]
    ranked.sort(key=lambda r: r.score, reverse=True)
    return ranked[:limit]


def rank_compatible_tracks(
    reference: TrackProfile,
    candidates: Sequence[TrackProfile],
    limit: int = MAX_COMPATIBLE_RESULTS,
) -> List[RankedTrack]:
    """
    Tracks that mix well with the reference.

    Score is ``0.6 * key score + 0.4 * BPM score``; tracks with an
    incompatible key or a total score of 0.3 or less are dropped.
    """
    if parse_camelot(reference.key) is None or reference.bpm <= 0:
        return []

    ranked = []
    for other in candidates:
        if other.track_id == reference.track_id or other.bpm <= 0:
            continue
        key_score = key_compatibility(reference.key, other.key)
        if key_score == 0.0:
            continue
        total = KEY_WEIGHT * key_score + BPM_WEIGHT * bpm_compatibility(reference.bpm, other.bpm)
        if total > MIN_COMPATIBLE_SCORE:
            ranked.append(RankedTrack(other, total))

    ranked.sort(key=lambda r: r.score, reverse=True)
    logger.debug(f"{len(ranked)} compatible tracks for {reference.track_id}")
    return ranked[:limit]
