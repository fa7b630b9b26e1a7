"""
Tempo estimation.
"""

from tracksense.analyzers.rhythmic.tempo import (
    TempoAnalyzer,
    TempoParams,
    create_tempo_analyzer,
    detect_bpm,
)

__all__ = [
    "TempoAnalyzer",
    "TempoParams",
    "create_tempo_analyzer",
    "detect_bpm",
]
