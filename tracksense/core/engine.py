"""
Analysis engine for TrackSense.

Main orchestration engine that runs every analyzer over one sample buffer
and aggregates the results.
"""

import logging
import time
from typing import Any, Dict, Optional

from tracksense.analyzers.musical.key import KeyAnalyzer, create_key_analyzer
from tracksense.analyzers.rhythmic.tempo import TempoAnalyzer, create_tempo_analyzer
from tracksense.analyzers.spectral.features import FeatureAnalyzer, create_feature_analyzer
from tracksense.analyzers.structural.drops import DropAnalyzer, create_drop_analyzer
from tracksense.analyzers.structural.sections import (
    IntroOutroAnalyzer,
    create_intro_outro_analyzer,
)
from tracksense.core.models import AnalysisResult, SampleBuffer
from tracksense.utils.errors import BufferContractError


class AnalysisEngine:
    """
    Main analysis engine - orchestrates all analyzers.

    Design:
    - Dependency Injection: All analyzers injected (testable)
    - Stateless: holds configuration only, every call allocates its own
      scratch arrays, so one engine can serve many worker threads
    - Sequential pipeline: tempo -> key -> drops -> features -> energy ->
      intro/outro -> auto-tags -> mood
    """

    def __init__(
        self,
        tempo_analyzer: TempoAnalyzer,
        key_analyzer: KeyAnalyzer,
        drop_analyzer: DropAnalyzer,
        feature_analyzer: FeatureAnalyzer,
        intro_outro_analyzer: IntroOutroAnalyzer,
    ):
        """
        Initialize analysis engine.

        Args:
            tempo_analyzer: BPM estimator
            key_analyzer: Key estimator
            drop_analyzer: Drop/build cue detector
            feature_analyzer: Spectral features, energy, mood and tags
            intro_outro_analyzer: Intro/outro boundary scan
        """
        self.analyzers = {
            'tempo': tempo_analyzer,
            'key': key_analyzer,
            'drops': drop_analyzer,
            'features': feature_analyzer,
            'intro_outro': intro_outro_analyzer,
        }
        self.logger = logging.getLogger('engine')

    @property
    def analyzer_versions(self) -> Dict[str, str]:
        """Name -> version of every configured analyzer."""
        return {name: analyzer.version for name, analyzer in self.analyzers.items()}

    def analyze(self, buffer: SampleBuffer) -> AnalysisResult:
        """
        Run the full pipeline over one buffer.

        Args:
            buffer: Mono sample buffer

        Returns:
            AnalysisResult: Aggregated result

        Raises:
            BufferContractError: If the buffer is empty
            AnalysisError: If an analyzer fails unexpectedly
        """
        if len(buffer) == 0:
            raise BufferContractError(
                "Cannot analyze an empty sample buffer",
                field_name="samples",
                value=0,
            )

        start_time = time.perf_counter()
        self.logger.debug(
            f"Analyzing {buffer.duration:.2f}s @ {buffer.sample_rate:g} Hz"
        )

        bpm = self.analyzers['tempo'].analyze(buffer)
        key = self.analyzers['key'].analyze(buffer)
        drops = self.analyzers['drops'].analyze(buffer)

        feature_analyzer: FeatureAnalyzer = self.analyzers['features']
        track = feature_analyzer.analyze(buffer)
        energy = feature_analyzer.energy(track, bpm, buffer.nyquist)

        intro_time, outro_time = self.analyzers['intro_outro'].analyze(buffer)
        auto_tags = feature_analyzer.tags(track, energy, bpm, key)
        mood = feature_analyzer.mood(track, energy, bpm, key, buffer.nyquist)

        result = AnalysisResult(
            bpm=bpm,
            key=key,
            energy=energy,
            features=track.features,
            drops=drops,
            intro_time=intro_time,
            outro_time=outro_time,
            auto_tags=auto_tags,
            mood=mood,
        )

        elapsed = time.perf_counter() - start_time
        self.logger.info(
            f"Analysis complete in {elapsed:.3f}s: {result.get_summary()}"
        )
        return result


def create_analysis_engine(config: Optional[Dict[str, Any]] = None) -> AnalysisEngine:
    """
    Factory function to create fully configured analysis engine.

    Args:
        config: Configuration dict (defaults used for missing keys)

    Returns:
        AnalysisEngine: Configured engine
    """
    config = config or {}
    return AnalysisEngine(
        tempo_analyzer=create_tempo_analyzer(config),
        key_analyzer=create_key_analyzer(config),
        drop_analyzer=create_drop_analyzer(config),
        feature_analyzer=create_feature_analyzer(config),
        intro_outro_analyzer=create_intro_outro_analyzer(config),
    )
