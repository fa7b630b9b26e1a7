"""
TrackSense

Audio analysis engine that derives tempo, Camelot key, energy, mood,
similarity feature vectors and drop/build cue points from a decoded mono
sample buffer.
"""

__version__ = "1.0.0"
__author__ = "TrackSense Team"
