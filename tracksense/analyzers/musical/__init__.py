"""
Key estimation and Camelot notation.
"""

from tracksense.analyzers.musical.key import (
    KeyAnalyzer,
    KeyParams,
    compute_chroma,
    create_key_analyzer,
    detect_key,
    to_camelot,
)

__all__ = [
    "KeyAnalyzer",
    "KeyParams",
    "compute_chroma",
    "create_key_analyzer",
    "detect_key",
    "to_camelot",
]
