"""
Utility modules for configuration, logging, and error handling.
"""

from tracksense.utils.errors import (
    TrackAnalysisError,
    BufferContractError,
    AudioLoadError,
    UnsupportedFormatError,
    FileTooLargeError,
    AnalysisError,
    ConfigurationError,
)
from tracksense.utils.logging import (
    get_logger,
    setup_logging,
    setup_logging_from_config,
    JSONFormatter,
)
from tracksense.utils.config import ConfigManager, load_config, get_default_config

__all__ = [
    "TrackAnalysisError",
    "BufferContractError",
    "AudioLoadError",
    "UnsupportedFormatError",
    "FileTooLargeError",
    "AnalysisError",
    "ConfigurationError",
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
    "JSONFormatter",
    "ConfigManager",
    "load_config",
    "get_default_config",
]
