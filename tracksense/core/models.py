"""
Core data models for TrackSense.

Immutable domain models representing the analysed sample buffer and the
analysis results handed back to the caller.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from tracksense.utils.errors import BufferContractError

CAMELOT_PATTERN = re.compile(r'^(\d{1,2})([AB])$')
KEY_UNKNOWN = "N/A"

AUTO_CUE_ID_START = 100
DROP_COLOR = "#ef4444"   # red
BUILD_COLOR = "#f59e0b"  # amber


class CueSource(Enum):
    """Where a cue point came from."""
    MANUAL = "manual"
    AUTO_DROP = "auto-drop"
    AUTO_BUILD = "auto-build"


class Mood(Enum):
    """
    Closed set of mood labels.

    Declaration order is the tie-break order of the mood classifier.
    """
    FROEHLICH = "Fröhlich"
    MELANCHOLISCH = "Melancholisch"
    AGGRESSIV = "Aggressiv"
    ENTSPANNT = "Entspannt"
    EPISCH = "Episch"
    MYSTERIOES = "Mysteriös"
    ROMANTISCH = "Romantisch"
    DUESTER = "Düster"


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """
    Immutable mono sample buffer handed to the engine.

    The samples are copied into a read-only float32 array, so the engine
    can never mutate the caller's data and the buffer is safe to share
    between worker threads.
    """

    samples: np.ndarray
    sample_rate: float
    duration: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate and freeze the buffer."""
        validate_sample_rate(self.sample_rate)

        data = np.array(self.samples, dtype=np.float32, copy=True)
        if data.ndim != 1:
            raise BufferContractError(
                f"Sample buffer must be one-dimensional, got shape {data.shape}",
                field_name="samples",
                value=data.shape,
            )
        if not np.isfinite(data).all():
            raise BufferContractError(
                "Sample buffer contains NaN or infinite samples",
                field_name="samples",
                value=int(np.count_nonzero(~np.isfinite(data))),
            )
        data.setflags(write=False)
        object.__setattr__(self, 'samples', data)
        object.__setattr__(self, 'sample_rate', float(self.sample_rate))

        if self.duration is None:
            object.__setattr__(self, 'duration', len(data) / self.sample_rate)
        elif not math.isfinite(self.duration) or self.duration < 0:
            raise BufferContractError(
                f"Duration must be a finite, non-negative number, got {self.duration}",
                field_name="duration",
                value=self.duration,
            )
        else:
            object.__setattr__(self, 'duration', float(self.duration))

    @classmethod
    def from_channels(
        cls,
        audio_data: np.ndarray,
        sample_rate: float,
        duration: Optional[float] = None,
    ) -> "SampleBuffer":
        """
        Build a buffer from decoder output, keeping only the first channel.

        Args:
            audio_data: Mono (n,) or channel-first (channels, n) samples
            sample_rate: Sample rate in Hz
            duration: Optional precise duration from the decoder
        """
        data = np.asarray(audio_data)
        if data.ndim == 2:
            data = data[0]
        return cls(samples=data, sample_rate=sample_rate, duration=duration)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def nyquist(self) -> float:
        """Half the sample rate."""
        return self.sample_rate / 2.0

    def scaled(self, gain: float) -> "SampleBuffer":
        """Return a copy of this buffer multiplied by ``gain``."""
        return SampleBuffer(self.samples * np.float32(gain), self.sample_rate, self.duration)


@dataclass(frozen=True)
class CuePoint:
    """A cue marker on the track timeline."""

    id: int
    position: float  # seconds
    label: str
    color: str  # hex color
    source: CueSource = CueSource.MANUAL

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'position': self.position,
            'label': self.label,
            'color': self.color,
            'source': self.source.value,
        }


@dataclass(frozen=True)
class SpectralFeatures:
    """Track-level spectral descriptors (averaged over frames)."""

    centroid: float  # Hz
    rolloff: float  # Hz
    zero_crossing_rate: float  # crossings per sample
    rms: float
    chroma_vector: tuple = field(default_factory=lambda: (0.0,) * 12)

    def __post_init__(self) -> None:
        """Validate fields."""
        chroma = tuple(float(v) for v in self.chroma_vector)
        validate_chroma(chroma)
        object.__setattr__(self, 'chroma_vector', chroma)

    @classmethod
    def silent(cls) -> "SpectralFeatures":
        """Neutral features for a buffer with no usable frames."""
        return cls(centroid=0.0, rolloff=0.0, zero_crossing_rate=0.0, rms=0.0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'centroid': self.centroid,
            'rolloff': self.rolloff,
            'zero_crossing_rate': self.zero_crossing_rate,
            'rms': self.rms,
            'chroma_vector': list(self.chroma_vector),
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Complete analysis result for one sample buffer."""

    bpm: int
    key: str
    energy: int
    features: SpectralFeatures
    drops: List[CuePoint]
    intro_time: float
    outro_time: float
    auto_tags: List[str]
    mood: Mood

    def __post_init__(self) -> None:
        """Validate fields."""
        validate_bpm(self.bpm)
        validate_energy(self.energy)
        validate_camelot(self.key)
        validate_drops(self.drops)

    @property
    def feature_vector(self) -> List[float]:
        """
        Similarity vector: centroid, rolloff, zcr, rms, bpm, then 12 chroma bins.
        """
        return [
            self.features.centroid,
            self.features.rolloff,
            self.features.zero_crossing_rate,
            self.features.rms,
            float(self.bpm),
            *self.features.chroma_vector,
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'bpm': self.bpm,
            'key': self.key,
            'energy': self.energy,
            'features': self.features.to_dict(),
            'feature_vector': self.feature_vector,
            'drops': [cue.to_dict() for cue in self.drops],
            'intro_time': self.intro_time,
            'outro_time': self.outro_time,
            'auto_tags': list(self.auto_tags),
            'mood': self.mood.value,
        }

    def to_json(self, indent: int = 2) -> str:
        """Export as JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False, default=str)

    def get_summary(self) -> str:
        """Get human-readable summary."""
        parts = [
            f"BPM: {self.bpm}" if self.bpm else "BPM: -",
            f"Key: {self.key}",
            f"Energy: {self.energy}/10",
            f"Mood: {self.mood.value}",
        ]
        if self.drops:
            parts.append(f"Cues: {len(self.drops)}")
        if self.auto_tags:
            parts.append(", ".join(self.auto_tags))
        return " | ".join(parts)


# Validation helpers

def validate_sample_rate(sample_rate: Any) -> None:
    """Validate sample rate is a finite, positive number."""
    try:
        value = float(sample_rate)
    except (TypeError, ValueError) as e:
        raise BufferContractError(
            f"Sample rate must be a number, got {sample_rate!r}",
            field_name="sample_rate",
            value=sample_rate,
        ) from e
    if not math.isfinite(value) or value <= 0:
        raise BufferContractError(
            f"Sample rate must be finite and positive, got {sample_rate}",
            field_name="sample_rate",
            value=sample_rate,
        )


def validate_bpm(bpm: int) -> None:
    """Validate BPM is a non-negative integer (0 means unknown)."""
    if isinstance(bpm, bool) or not isinstance(bpm, int) or bpm < 0:
        raise ValueError(f"BPM must be a non-negative integer, got {bpm!r}")


def validate_energy(energy: int) -> None:
    """Validate energy score is in valid range."""
    if not (1 <= energy <= 10):
        raise ValueError(f"Energy must be in [1, 10], got {energy}")


def validate_camelot(key: str) -> None:
    """Validate key is a Camelot string or the unknown sentinel."""
    if key == KEY_UNKNOWN:
        return
    match = CAMELOT_PATTERN.match(key)
    if not match or not (1 <= int(match.group(1)) <= 12):
        raise ValueError(f"Invalid Camelot key: {key!r}")


def validate_chroma(chroma: Sequence[float]) -> None:
    """Validate chroma has 12 bins normalized to [0, 1]."""
    if len(chroma) != 12:
        raise ValueError(f"Chroma vector must have 12 bins, got {len(chroma)}")
    if not all(0.0 <= v <= 1.0 for v in chroma):
        raise ValueError("Chroma values must be in [0.0, 1.0]")


def validate_drops(drops: Sequence[CuePoint]) -> None:
    """Validate cue list is sorted by position with unique IDs."""
    ids = [cue.id for cue in drops]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Cue point IDs must be unique, got {ids}")
    for previous, current in zip(drops, drops[1:]):
        if current.position < previous.position:
            raise ValueError("Cue points must be sorted by position")
