"""
Result writers for saving analysis results to files.

Strategy pattern: each writer renders a mapping of file path to
``AnalysisResult`` in one output format.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, TextIO

from tracksense.core.models import AnalysisResult

RULE = "=" * 70
THIN_RULE = "-" * 70


class ResultWriter(ABC):
    """Abstract base class for result writers."""

    @abstractmethod
    def write(self, results: Dict[Path, AnalysisResult], output_path: Path) -> None:
        """Write results to the specified path."""


class TextResultWriter(ResultWriter):
    """Writes analysis results to a human-readable text file."""

    def __init__(self, include_timestamp: bool = True):
        """
        Initialize text writer.

        Args:
            include_timestamp: Whether to include timestamp in output
        """
        self.include_timestamp = include_timestamp
        self.logger = logging.getLogger("result_writer.text")

    def write(self, results: Dict[Path, AnalysisResult], output_path: Path) -> None:
        """
        Write results to a text file.

        Args:
            results: Dictionary mapping file paths to their analysis results
            output_path: Path to output text file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(RULE + "\n")
            f.write("TRACKSENSE ANALYSIS RESULTS\n")
            f.write(RULE + "\n")
            if self.include_timestamp:
                f.write(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
            f.write(f"Total Files Analyzed: {len(results)}\n")
            f.write(RULE + "\n\n")

            for file_path, result in results.items():
                self._write_single_result(f, Path(file_path), result)

            f.write(RULE + "\n")
            f.write("END OF REPORT\n")
            f.write(RULE + "\n")

        self.logger.info(f"Results written to: {output_path}")

    def _write_single_result(self, f: TextIO, file_path: Path, result: AnalysisResult) -> None:
        """Write a single analysis result to file."""
        f.write(THIN_RULE + "\n")
        f.write(f"FILE: {file_path.name}\n")
        f.write(f"PATH: {file_path}\n")
        f.write(THIN_RULE + "\n")

        f.write(f"Summary: {result.get_summary()}\n\n")
        f.write(f"  BPM: {result.bpm or 'unknown'}\n")
        f.write(f"  Key: {result.key}\n")
        f.write(f"  Energy: {result.energy}/10\n")
        f.write(f"  Mood: {result.mood.value}\n")
        f.write(f"  Intro ends: {result.intro_time:.2f}s\n")
        f.write(f"  Outro starts: {result.outro_time:.2f}s\n")

        features = result.features
        f.write("\nSpectral Features:\n")
        f.write(f"  Centroid: {features.centroid:.1f} Hz\n")
        f.write(f"  Rolloff: {features.rolloff:.1f} Hz\n")
        f.write(f"  Zero-Crossing Rate: {features.zero_crossing_rate:.4f}\n")
        f.write(f"  RMS: {features.rms:.4f}\n")
        f.write(f"  Chroma: {' '.join(f'{v:.2f}' for v in features.chroma_vector)}\n")

        if result.drops:
            f.write("\nCue Points:\n")
            for cue in result.drops:
                f.write(f"  [{cue.id}] {cue.position:8.2f}s  {cue.label}\n")

        if result.auto_tags:
            f.write(f"\nTags: {', '.join(result.auto_tags)}\n")

        f.write("\n")


class JSONResultWriter(ResultWriter):
    """Writes analysis results to a JSON file."""

    def __init__(self, indent: int = 2):
        """
        Initialize JSON writer.

        Args:
            indent: JSON indentation level
        """
        self.indent = indent
        self.logger = logging.getLogger("result_writer.json")

    def write(self, results: Dict[Path, AnalysisResult], output_path: Path) -> None:
        """
        Write results to a JSON file.

        Args:
            results: Dictionary mapping file paths to their analysis results
            output_path: Path to output JSON file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        output_data = {
            "generated": datetime.now().isoformat(),
            "total_files": len(results),
            "results": {
                str(path): result.to_dict()
                for path, result in results.items()
            }
        }

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(output_data, f, indent=self.indent, ensure_ascii=False, default=str)

        self.logger.info(f"Results written to: {output_path}")


def create_result_writer(format: str = "text", **kwargs) -> ResultWriter:
    """
    Factory function to create appropriate result writer.

    Args:
        format: Output format ("text" or "json")
        **kwargs: Additional arguments for the writer

    Returns:
        Appropriate ResultWriter instance
    """
    writers = {
        "text": TextResultWriter,
        "txt": TextResultWriter,
        "json": JSONResultWriter,
    }

    writer_class = writers.get(format.lower())
    if writer_class is None:
        raise ValueError(f"Unknown format: {format}. Supported: {list(writers.keys())}")

    return writer_class(**kwargs)
