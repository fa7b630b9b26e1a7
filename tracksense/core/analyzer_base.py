"""
Shared plumbing for the per-task analyzers.

Each analyzer is a thin, stateless wrapper around a pure detection function
plus a frozen parameter dataclass built from its config section.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import fields
from typing import Any, Dict, Generic, Protocol, Type, TypeVar

from tracksense.core.models import SampleBuffer
from tracksense.utils.errors import AnalysisError

T = TypeVar('T')
P = TypeVar('P')


class Analyzer(Protocol[T]):
    """Anything the engine can call: a named, versioned ``analyze(buffer)``."""

    name: str
    version: str

    def analyze(self, buffer: SampleBuffer) -> T:
        ...


class BaseAnalyzer(ABC, Generic[T]):
    """
    Times and logs one analysis call and wraps unexpected failures.

    Subclasses implement ``_analyze_impl``. Instances hold parameters only,
    so one analyzer can serve every worker thread.
    """

    def __init__(self, name: str, version: str):
        self._name = name
        self._version = version
        self.logger = logging.getLogger(f"analyzer.{name}")

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> str:
        return self._version

    def analyze(self, buffer: SampleBuffer) -> T:
        """
        Run the analysis on ``buffer``.

        Raises:
            AnalysisError: Wrapping any exception raised by the implementation
        """
        start_time = time.perf_counter()
        self.logger.debug(
            f"Starting analysis: {len(buffer)} samples @ {buffer.sample_rate:g} Hz"
        )
        try:
            result = self._analyze_impl(buffer)
        except AnalysisError:
            raise
        except Exception as e:
            self.logger.error(f"Analysis failed: {e}")
            raise AnalysisError(
                f"{self.name} analysis failed: {e}",
                analyzer_name=self.name,
                original_error=e
            ) from e

        self.logger.debug(f"Analysis complete in {time.perf_counter() - start_time:.3f}s")
        return result

    @abstractmethod
    def _analyze_impl(self, buffer: SampleBuffer) -> T:
        ...


def params_from_section(params_cls: Type[P], section: Dict[str, Any]) -> P:
    """
    Build a frozen parameter dataclass from a config section.

    Missing keys keep the dataclass default; present values are coerced to
    the default's type (lists become tuples).
    """
    defaults = params_cls()
    values = {}
    for f in fields(params_cls):
        default = getattr(defaults, f.name)
        values[f.name] = type(default)(section.get(f.name, default))
    return params_cls(**values)
