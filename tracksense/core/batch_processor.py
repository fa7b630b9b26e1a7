"""
Batch processor for analyzing multiple audio files.

Follows SOLID principles:
- Single Responsibility: Only handles batch orchestration
- Open/Closed: Extends functionality without modifying the engine
- Dependency Inversion: Depends on loader and worker pool abstractions
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union

from tracksense.core.loader import SUPPORTED_FORMATS, AudioLoader
from tracksense.core.models import AnalysisResult
from tracksense.core.worker import AnalysisRequest, AnalysisWorkerPool
from tracksense.utils.errors import AudioLoadError


@dataclass
class BatchResult:
    """Result of a batch processing operation."""
    successful: Dict[Path, AnalysisResult] = field(default_factory=dict)
    failed: Dict[Path, str] = field(default_factory=dict)
    total_files: int = 0
    total_time: float = 0.0
    cancelled: bool = False

    @property
    def success_count(self) -> int:
        """Number of successfully processed files."""
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        """Number of failed files."""
        return len(self.failed)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total_files == 0:
            return 0.0
        return (self.success_count / self.total_files) * 100


class BatchProcessor:
    """
    Decodes audio files and analyses them through a worker pool.

    Files are decoded lazily as the pool asks for more work, so only
    ``max_workers`` decoded buffers are held at once.
    """

    def __init__(
        self,
        loader: AudioLoader,
        worker_pool: AnalysisWorkerPool,
        progress_callback: Optional[Callable[[int, int, Path], None]] = None
    ):
        """
        Initialize batch processor.

        Args:
            loader: Audio loader (dependency injection)
            worker_pool: Pool that runs the analyses
            progress_callback: Optional callback(current, total, file_path) for progress updates
        """
        self.loader = loader
        self.worker_pool = worker_pool
        self.progress_callback = progress_callback
        self.logger = logging.getLogger("batch_processor")

    @property
    def audio_extensions(self):
        """Suffixes considered audio files."""
        return getattr(self.loader, 'supported_suffixes', set(SUPPORTED_FORMATS))

    def process(
        self,
        inputs: Union[Path, List[Path]],
        recursive: bool = False
    ) -> BatchResult:
        """
        Process one or more audio files or directories.

        Args:
            inputs: Single path or list of paths (files or directories)
            recursive: If True, search directories recursively

        Returns:
            BatchResult containing all results and any errors
        """
        start_time = time.time()

        files = self._collect_files(inputs, recursive)

        if not files:
            self.logger.warning("No audio files found to process")
            return BatchResult(total_files=0, total_time=0.0)

        self.logger.info(f"Processing {len(files)} audio files")

        result = self._process_files(files)
        result.total_time = time.time() - start_time

        self.logger.info(
            f"Batch complete: {result.success_count}/{result.total_files} succeeded "
            f"in {result.total_time:.2f}s"
        )

        return result

    def cancel(self) -> None:
        """Stop dispatching further files; in-flight results are discarded."""
        self.worker_pool.cancel()

    def _collect_files(
        self,
        inputs: Union[Path, List[Path]],
        recursive: bool
    ) -> List[Path]:
        """Collect all audio files from inputs."""
        if isinstance(inputs, (str, Path)):
            inputs = [inputs]

        files = []
        for path in inputs:
            path = Path(path)
            if path.is_file():
                if self._is_audio_file(path):
                    files.append(path)
                else:
                    self.logger.warning(f"Skipping non-audio file: {path}")
            elif path.is_dir():
                files.extend(self._scan_directory(path, recursive))
            else:
                self.logger.warning(f"Path not found: {path}")

        return sorted(set(files))

    def _scan_directory(self, directory: Path, recursive: bool) -> List[Path]:
        """Scan directory for audio files."""
        pattern = "**/*" if recursive else "*"
        return [
            path for path in directory.glob(pattern)
            if path.is_file() and self._is_audio_file(path)
        ]

    def _is_audio_file(self, path: Path) -> bool:
        """Check if path is a supported audio file."""
        return path.suffix.lower() in self.audio_extensions

    def _requests(self, files: List[Path], result: BatchResult) -> Iterator[AnalysisRequest]:
        """Decode files one by one; decode failures are recorded and skipped."""
        for file_path in files:
            try:
                buffer = self.loader.load(file_path)
            except (AudioLoadError, FileNotFoundError) as e:
                result.failed[file_path] = str(e)
                self.logger.error(f"Failed to load {file_path}: {e}")
                self._report_progress(result, file_path)
                continue
            yield AnalysisRequest.from_buffer(file_path, buffer)

    def _report_progress(self, result: BatchResult, file_path: Path) -> None:
        if self.progress_callback:
            done = result.success_count + result.failure_count
            self.progress_callback(done, result.total_files, file_path)

    def _process_files(self, files: List[Path]) -> BatchResult:
        """Dispatch decoded files to the worker pool and collect responses."""
        result = BatchResult(total_files=len(files))

        for response in self.worker_pool.run(self._requests(files, result)):
            file_path = response.request_id
            if response.ok:
                result.successful[file_path] = response.result
                self.logger.debug(f"Successfully processed: {file_path}")
            else:
                result.failed[file_path] = response.error
                self.logger.error(f"Failed to process {file_path}: {response.error}")
            self._report_progress(result, file_path)

        result.cancelled = self.worker_pool.cancelled
        return result
