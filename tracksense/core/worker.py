"""
Batch worker protocol.

A host sends ``AnalysisRequest`` messages (sample data, sample rate,
duration) and receives one ``AnalysisResponse`` per request carrying either
the result or an error. ``AnalysisWorkerPool`` dispatches requests to
threads or processes with ``concurrent.futures``; each analysis runs to
completion on its worker. Cancellation is cooperative: the pool stops
dispatching and discards results that are still in flight.
"""

import logging
import threading
import time
from concurrent.futures import (
    FIRST_COMPLETED,
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Optional

import numpy as np

from tracksense.core.engine import create_analysis_engine
from tracksense.core.models import AnalysisResult, SampleBuffer
from tracksense.utils.errors import ConfigurationError
from tracksense.utils.logging import create_logger_with_context, init_worker_logging

EXECUTOR_TYPES = ("thread", "process")


@dataclass(frozen=True, eq=False)
class AnalysisRequest:
    """One track to analyse."""
    request_id: Hashable
    sample_data: np.ndarray
    sample_rate: float
    duration: Optional[float] = None

    @classmethod
    def from_buffer(cls, request_id: Hashable, buffer: SampleBuffer) -> "AnalysisRequest":
        """Wrap an existing buffer."""
        return cls(request_id, buffer.samples, buffer.sample_rate, buffer.duration)


@dataclass(frozen=True)
class AnalysisResponse:
    """Result or error for one request."""
    request_id: Hashable
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True when the analysis produced a result."""
        return self.error is None

    @classmethod
    def failure(cls, request_id: Hashable, exc: BaseException) -> "AnalysisResponse":
        """Build an error response from an exception."""
        return cls(request_id=request_id, error=str(exc), error_type=type(exc).__name__)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {'request_id': self.request_id}
        if self.ok:
            data['result'] = self.result.to_dict()
        else:
            data['error'] = self.error
            data['error_type'] = self.error_type
        return data


def run_analysis_request(
    request: AnalysisRequest,
    config: Optional[Dict[str, Any]] = None,
) -> AnalysisResponse:
    """
    Run the full pipeline for one request.

    Module-level so it can be pickled into a process pool. Never raises:
    any failure becomes an error response.
    """
    logger = create_logger_with_context('worker', {'request_id': request.request_id})
    start_time = time.perf_counter()

    try:
        buffer = SampleBuffer(request.sample_data, request.sample_rate, request.duration)
        result = create_analysis_engine(config).analyze(buffer)
    except Exception as e:
        logger.error(f"Analysis failed: {e}")
        return AnalysisResponse.failure(request.request_id, e)

    logger.debug(f"Request finished in {time.perf_counter() - start_time:.3f}s")
    return AnalysisResponse(request_id=request.request_id, result=result)


class AnalysisWorkerPool:
    """
    Dispatches analysis requests to a pool of workers.

    At most ``max_workers`` requests are in flight at a time, so a
    ``cancel()`` takes effect before the rest of the batch is submitted.
    """

    def __init__(
        self,
        max_workers: int = 4,
        executor: str = "thread",
        config: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize worker pool.

        Args:
            max_workers: Maximum concurrent analyses
            executor: "thread" or "process"
            config: Configuration dict passed to every worker's engine

        Raises:
            ConfigurationError: On an unknown executor type or worker count
        """
        if executor not in EXECUTOR_TYPES:
            raise ConfigurationError(
                f"Unknown executor type: {executor!r} (expected one of {EXECUTOR_TYPES})",
                config_key="performance.executor",
            )
        if max_workers < 1:
            raise ConfigurationError(
                f"max_workers must be at least 1, got {max_workers}",
                config_key="performance.max_workers",
            )
        self.max_workers = max_workers
        self.executor_type = executor
        self.config = config
        self._cancel_event = threading.Event()
        self.logger = logging.getLogger('worker')

    @property
    def cancelled(self) -> bool:
        """True once ``cancel()`` has been called during the current run."""
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Stop dispatching further requests and drop in-flight results."""
        self.logger.info("Cancellation requested")
        self._cancel_event.set()

    def _create_executor(self) -> Executor:
        if self.executor_type == "process":
            return ProcessPoolExecutor(
                max_workers=self.max_workers,
                initializer=init_worker_logging,
                initargs=(logging.getLogger().getEffectiveLevel(),),
            )
        return ThreadPoolExecutor(max_workers=self.max_workers)

    def run(self, requests: Iterable[AnalysisRequest]) -> Iterator[AnalysisResponse]:
        """
        Analyse requests, yielding responses in completion order.

        Args:
            requests: Requests to dispatch (consumed lazily)

        Yields:
            AnalysisResponse: One per completed, non-cancelled request
        """
        self._cancel_event.clear()
        source = iter(requests)
        pending: Dict[Future, Hashable] = {}
        executor = self._create_executor()

        def dispatch() -> None:
            while len(pending) < self.max_workers and not self.cancelled:
                request = next(source, None)
                if request is None:
                    return
                future = executor.submit(run_analysis_request, request, self.config)
                pending[future] = request.request_id

        try:
            dispatch()
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    request_id = pending.pop(future)
                    if self.cancelled:
                        self.logger.debug(f"Discarding result for {request_id}")
                        continue
                    try:
                        response = future.result()
                    except Exception as e:
                        # Executor-level failure (broken pool, unpicklable request)
                        self.logger.error(f"Worker failed for {request_id}: {e}")
                        response = AnalysisResponse.failure(request_id, e)
                    yield response

                if self.cancelled:
                    self.logger.info(f"Cancelled with {len(pending)} requests in flight")
                    for future in pending:
                        future.cancel()
                    pending.clear()
                    break
                dispatch()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def run_all(self, requests: Iterable[AnalysisRequest]) -> List[AnalysisResponse]:
        """Analyse every request and return the responses in completion order."""
        return list(self.run(requests))

    def __enter__(self) -> "AnalysisWorkerPool":
        """Context manager support."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Cancel outstanding work on context exit."""
        if exc_type is not None:
            self.cancel()


def create_worker_pool(config: Dict[str, Any]) -> AnalysisWorkerPool:
    """
    Factory function to create a worker pool from configuration.

    Args:
        config: Full configuration dict

    Returns:
        AnalysisWorkerPool: Pool using the ``performance`` section
    """
    performance = config.get('performance', {})
    return AnalysisWorkerPool(
        max_workers=performance.get('max_workers', 4),
        executor=performance.get('executor', 'thread'),
        config=config,
    )
