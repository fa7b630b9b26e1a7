"""
Spectral features, energy, mood and auto-tags.
"""

from tracksense.analyzers.spectral.features import (
    FeatureAnalyzer,
    FeatureParams,
    TrackFeatures,
    auto_tag,
    classify_mood,
    compute_spectral_features,
    create_feature_analyzer,
    detect_energy,
)

__all__ = [
    "FeatureAnalyzer",
    "FeatureParams",
    "TrackFeatures",
    "auto_tag",
    "classify_mood",
    "compute_spectral_features",
    "create_feature_analyzer",
    "detect_energy",
]
