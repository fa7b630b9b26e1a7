"""
Structural analyzers: drop/build cues and intro/outro boundaries.
"""

from tracksense.analyzers.structural.drops import (
    DropAnalyzer,
    DropParams,
    create_drop_analyzer,
    detect_drops,
)
from tracksense.analyzers.structural.sections import (
    IntroOutroAnalyzer,
    IntroOutroParams,
    compute_waveform_peaks,
    create_intro_outro_analyzer,
    detect_intro_outro,
)

__all__ = [
    "DropAnalyzer",
    "DropParams",
    "create_drop_analyzer",
    "detect_drops",
    "IntroOutroAnalyzer",
    "IntroOutroParams",
    "compute_waveform_peaks",
    "create_intro_outro_analyzer",
    "detect_intro_outro",
]
