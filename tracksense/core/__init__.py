"""
Core module containing data models, DSP primitives, and the analysis engine.

Uses lazy imports for modules with heavy dependencies (librosa, soundfile).
"""

# Models are lightweight - import directly
from tracksense.core.models import (
    SampleBuffer,
    CuePoint,
    CueSource,
    Mood,
    SpectralFeatures,
    AnalysisResult,
    validate_camelot,
    validate_energy,
)

__all__ = [
    # Models (always available)
    "SampleBuffer",
    "CuePoint",
    "CueSource",
    "Mood",
    "SpectralFeatures",
    "AnalysisResult",
    "validate_camelot",
    "validate_energy",
    # Lazy loaded
    "AudioLoader",
    "create_audio_loader",
    "Analyzer",
    "BaseAnalyzer",
    "AnalysisEngine",
    "create_analysis_engine",
    "AnalysisRequest",
    "AnalysisResponse",
    "AnalysisWorkerPool",
    "run_analysis_request",
    "BatchProcessor",
    "BatchResult",
    "ResultWriter",
    "TextResultWriter",
    "JSONResultWriter",
    "create_result_writer",
]

_LAZY = {
    "AudioLoader": "tracksense.core.loader",
    "create_audio_loader": "tracksense.core.loader",
    "Analyzer": "tracksense.core.analyzer_base",
    "BaseAnalyzer": "tracksense.core.analyzer_base",
    "AnalysisEngine": "tracksense.core.engine",
    "create_analysis_engine": "tracksense.core.engine",
    "AnalysisRequest": "tracksense.core.worker",
    "AnalysisResponse": "tracksense.core.worker",
    "AnalysisWorkerPool": "tracksense.core.worker",
    "run_analysis_request": "tracksense.core.worker",
    "BatchProcessor": "tracksense.core.batch_processor",
    "BatchResult": "tracksense.core.batch_processor",
    "ResultWriter": "tracksense.core.result_writer",
    "TextResultWriter": "tracksense.core.result_writer",
    "JSONResultWriter": "tracksense.core.result_writer",
    "create_result_writer": "tracksense.core.result_writer",
}


def __getattr__(name: str):
    """Lazy load modules with heavy dependencies."""
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    import importlib
    return getattr(importlib.import_module(module_name), name)
