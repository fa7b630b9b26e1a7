"""
Track matching: feature-vector similarity and Camelot key compatibility.
"""

from tracksense.matching.similarity import (
    RankedTrack,
    TrackProfile,
    cosine_similarity,
    get_camelot_compatible,
    rank_compatible_tracks,
    rank_similar_tracks,
)

__all__ = [
    "RankedTrack",
    "TrackProfile",
    "cosine_similarity",
    "get_camelot_compatible",
    "rank_compatible_tracks",
    "rank_similar_tracks",
]
