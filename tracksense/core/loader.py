"""
Audio loader for TrackSense.

Decodes audio files into ``SampleBuffer`` instances for the engine. Only
the first channel is kept and the native sample rate is preserved.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Set, Tuple

import librosa
import numpy as np
import soundfile as sf

from tracksense.core.models import SampleBuffer
from tracksense.utils.errors import AudioLoadError, FileTooLargeError, UnsupportedFormatError


# Constants
SUPPORTED_FORMATS: Dict[str, str] = {
    '.wav': 'soundfile',
    '.aif': 'soundfile',
    '.aiff': 'soundfile',
    '.flac': 'soundfile',
    '.ogg': 'soundfile',
    '.mp3': 'audioread',
}

MAX_FILE_SIZE: int = 524288000  # 500 MB

logger = logging.getLogger('loader')


class AudioLoader:
    """
    Loads audio files and creates SampleBuffer instances.

    Thread-safe and stateless - can be used concurrently.
    """

    def __init__(
        self,
        max_file_size: int = MAX_FILE_SIZE,
        supported_formats: Optional[Set[str]] = None,
    ):
        """
        Initialize loader with configuration.

        Args:
            max_file_size: Maximum file size in bytes
            supported_formats: File suffixes accepted (defaults to SUPPORTED_FORMATS)
        """
        self.max_file_size = max_file_size
        self.supported_suffixes: Set[str] = {
            s.lower() for s in (supported_formats or SUPPORTED_FORMATS.keys())
        }

    def load(self, file_path: Path) -> SampleBuffer:
        """
        Load audio file and create SampleBuffer.

        Args:
            file_path: Path to audio file

        Returns:
            SampleBuffer: First channel at the file's native sample rate

        Raises:
            FileNotFoundError: File doesn't exist
            UnsupportedFormatError: File format not supported
            FileTooLargeError: File exceeds size limit
            AudioLoadError: Audio data is invalid
        """
        file_path = Path(file_path)

        self._validate_file(file_path)
        audio_data, sample_rate = self._load_audio_data(file_path)

        if audio_data.size == 0:
            raise AudioLoadError(f"Audio file is empty: {file_path}", file_path=str(file_path))

        duration = self._read_duration(file_path)
        buffer = SampleBuffer.from_channels(audio_data, sample_rate, duration)

        logger.info(
            f"Loaded {file_path.name}: {buffer.sample_rate:g} Hz, "
            f"{buffer.duration:.2f}s"
        )
        return buffer

    def _validate_file(self, file_path: Path) -> None:
        """Validate file exists, has supported format, and is within size limit."""
        if not file_path.exists():
            raise FileNotFoundError(f"Audio file not found: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix not in self.supported_suffixes:
            raise UnsupportedFormatError(
                f"Format {suffix} not supported. "
                f"Supported formats: {', '.join(sorted(self.supported_suffixes))}",
                format=suffix
            )

        file_size = file_path.stat().st_size
        if file_size > self.max_file_size:
            raise FileTooLargeError(
                f"File too large: {file_size / 1024 / 1024:.1f} MB. "
                f"Maximum: {self.max_file_size / 1024 / 1024:.1f} MB",
                file_size=file_size,
                max_size=self.max_file_size
            )

    def _load_audio_data(self, file_path: Path) -> Tuple[np.ndarray, float]:
        """Decode at the native sample rate, keeping all channels."""
        try:
            audio_data, sample_rate = librosa.load(
                str(file_path),
                sr=None,
                mono=False,
                dtype=np.float32
            )
        except Exception as e:
            raise AudioLoadError(
                f"Failed to load audio data from {file_path}: {e}",
                file_path=str(file_path)
            ) from e

        return audio_data, float(sample_rate)

    def _read_duration(self, file_path: Path) -> Optional[float]:
        """
        Precise duration from file metadata, or None when unavailable.

        The buffer falls back to ``len / sample_rate`` in that case.
        """
        try:
            info = sf.info(str(file_path))
        except Exception as e:
            # Formats soundfile can't read (some MP3s)
            logger.debug(f"Could not read metadata with soundfile: {e}")
            return None
        if info.samplerate <= 0:
            return None
        return info.frames / info.samplerate


def create_audio_loader(config: Optional[Dict[str, Any]] = None) -> AudioLoader:
    """
    Factory function to create AudioLoader with configuration.

    Args:
        config: Optional ``audio`` configuration section

    Returns:
        AudioLoader: Configured loader instance
    """
    if config is None:
        config = {}

    return AudioLoader(
        max_file_size=config.get('max_file_size', MAX_FILE_SIZE),
        supported_formats=set(config.get('supported_formats', SUPPORTED_FORMATS.keys())),
    )
