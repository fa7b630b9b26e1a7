"""
Custom exceptions for the TrackSense analysis engine.

This module defines a hierarchy of exceptions for the few conditions that
should reach a caller. Degenerate audio (too short, silent) is never an
error: analyzers return neutral values for it instead.
"""

from typing import Any, Optional


class TrackAnalysisError(Exception):
    """Base exception for all TrackSense errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class BufferContractError(TrackAnalysisError):
    """Raised when a sample buffer violates the input contract."""

    def __init__(self, message: str, field_name: Optional[str] = None, value: Any = None):
        super().__init__(message, details={"field": field_name, "value": value})
        self.field_name = field_name
        self.value = value


class AudioLoadError(TrackAnalysisError):
    """Raised when an audio file cannot be decoded into a sample buffer."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message, details={"file_path": file_path})
        self.file_path = file_path


class UnsupportedFormatError(AudioLoadError):
    """Raised when audio format is not supported."""

    def __init__(self, message: str, format: Optional[str] = None):
        super().__init__(message)
        self.format = format
        self.details = {"format": format}


class FileTooLargeError(AudioLoadError):
    """Raised when audio file exceeds size limit."""

    def __init__(
        self,
        message: str,
        file_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        super().__init__(message)
        self.file_size = file_size
        self.max_size = max_size
        self.details = {"file_size": file_size, "max_size": max_size}


class AnalysisError(TrackAnalysisError):
    """Raised when an analyzer fails unexpectedly."""

    def __init__(
        self,
        message: str,
        analyzer_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.analyzer_name = analyzer_name
        self.original_error = original_error
        self.details = {
            "analyzer_name": analyzer_name,
            "original_error": str(original_error) if original_error else None,
        }


class ConfigurationError(TrackAnalysisError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key}
