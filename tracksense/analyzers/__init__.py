"""
Analyzer implementations for the individual analysis tasks.
"""

from tracksense.analyzers.rhythmic.tempo import TempoAnalyzer, detect_bpm
from tracksense.analyzers.musical.key import KeyAnalyzer, detect_key
from tracksense.analyzers.structural.drops import DropAnalyzer, detect_drops
from tracksense.analyzers.structural.sections import (
    IntroOutroAnalyzer,
    compute_waveform_peaks,
    detect_intro_outro,
)
from tracksense.analyzers.spectral.features import (
    FeatureAnalyzer,
    auto_tag,
    classify_mood,
    compute_spectral_features,
    detect_energy,
)

__all__ = [
    "TempoAnalyzer",
    "KeyAnalyzer",
    "DropAnalyzer",
    "IntroOutroAnalyzer",
    "FeatureAnalyzer",
    "detect_bpm",
    "detect_key",
    "detect_drops",
    "detect_intro_outro",
    "compute_waveform_peaks",
    "compute_spectral_features",
    "detect_energy",
    "classify_mood",
    "auto_tag",
]
