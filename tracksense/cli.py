"""
TrackSense - Audio Analysis CLI

This module provides the command-line interface for the TrackSense engine.
It can be invoked as 'tracksense' from anywhere after installation.

Example usage:
    # Single file analysis
    tracksense path/to/track.wav
    tracksense --output results.json path/to/track.wav

    # Batch processing
    tracksense --batch path/to/directory/
    tracksense --batch --recursive --workers 8 path/to/directory/
    tracksense --batch --output-file results.txt path/to/directory/
    tracksense --batch --compatible path/to/directory/
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from tracksense import __version__
from tracksense.core.models import AnalysisResult
from tracksense.utils.config import load_config
from tracksense.utils.errors import ConfigurationError, TrackAnalysisError
from tracksense.utils.logging import setup_logging_from_config


def print_single_result(file_path: Path, result: AnalysisResult) -> None:
    """Print analysis results for a single file to console."""
    print("\n" + "=" * 60)
    print("TRACKSENSE ANALYSIS RESULTS")
    print("=" * 60)
    print(f"File: {file_path.name}")
    print("-" * 60)
    print(result.get_summary())
    print("-" * 60)

    print(f"\nTempo: {result.bpm or 'unknown'} BPM")
    print(f"Key: {result.key}")
    print(f"Energy: {result.energy}/10")
    print(f"Mood: {result.mood.value}")
    print(f"Intro ends at {result.intro_time:.2f}s, outro starts at {result.outro_time:.2f}s")

    print("\nSpectral Features:")
    print(f"  Centroid: {result.features.centroid:.1f} Hz")
    print(f"  Rolloff: {result.features.rolloff:.1f} Hz")
    print(f"  Zero-Crossing Rate: {result.features.zero_crossing_rate:.4f}")
    print(f"  RMS: {result.features.rms:.4f}")

    if result.drops:
        print("\nCue Points:")
        for cue in result.drops:
            print(f"  [{cue.id}] {cue.position:8.2f}s  {cue.label}")

    if result.auto_tags:
        print(f"\nTags: {', '.join(result.auto_tags)}")


def print_compatible_tracks(results: Dict[Path, AnalysisResult]) -> None:
    """Print, for every track, the other tracks in the batch that mix well with it."""
    from tracksense.matching import TrackProfile, rank_compatible_tracks

    profiles = [TrackProfile.from_result(path, result) for path, result in results.items()]
    print("\n" + "=" * 60)
    print("COMPATIBLE TRACKS")
    print("=" * 60)
    for profile in profiles:
        ranked = rank_compatible_tracks(profile, profiles)
        print(f"{Path(profile.track_id).name} ({profile.key} / {profile.bpm} BPM)")
        if not ranked:
            print("  (none)")
        for match in ranked:
            other = match.track
            print(
                f"  {match.score:5.0%}  {Path(other.track_id).name} "
                f"({other.key} / {other.bpm} BPM)"
            )


def analyze_single_file(
    audio_file: Path,
    config: dict,
    output_json: Optional[Path] = None,
    output_txt: Optional[Path] = None,
    verbose: bool = False,
) -> int:
    """
    Analyze a single audio file.

    Args:
        audio_file: Path to audio file
        config: Configuration dictionary
        output_json: Optional path for JSON output
        output_txt: Optional path for text output
        verbose: Enable verbose error output

    Returns:
        Exit code (0 for success, 1 for error)
    """
    from tracksense.core.engine import create_analysis_engine
    from tracksense.core.loader import create_audio_loader

    if not audio_file.exists():
        print(f"Error: Audio file not found: {audio_file}")
        return 1

    print(f"Analyzing: {audio_file}")
    loader = create_audio_loader(config.get('audio', {}))
    engine = create_analysis_engine(config)

    try:
        buffer = loader.load(audio_file)
        result = engine.analyze(buffer)

        print_single_result(audio_file, result)

        if output_json:
            with open(output_json, 'w', encoding='utf-8') as f:
                f.write(result.to_json(indent=2))
            print(f"\nJSON results saved to: {output_json}")

        if output_txt:
            from tracksense.core.result_writer import TextResultWriter
            writer = TextResultWriter()
            writer.write({audio_file: result}, output_txt)
            print(f"Text results saved to: {output_txt}")

        return 0

    except (TrackAnalysisError, OSError) as e:
        print(f"Error during analysis: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        return 1


def analyze_batch(
    inputs: List[Path],
    config: dict,
    recursive: bool = False,
    output_txt: Optional[Path] = None,
    output_json: Optional[Path] = None,
    verbose: bool = False,
    compatible: bool = False,
) -> int:
    """
    Analyze multiple audio files in batch mode.

    Args:
        inputs: List of paths (files or directories)
        config: Configuration dictionary
        recursive: Search directories recursively
        output_txt: Optional path for text output
        output_json: Optional path for JSON output
        verbose: Enable verbose error output
        compatible: Print harmonically compatible tracks after analysis

    Returns:
        Exit code (0 for success, 1 for failed files, 2 for configuration errors)
    """
    from tracksense.core.batch_processor import BatchProcessor
    from tracksense.core.loader import create_audio_loader
    from tracksense.core.result_writer import JSONResultWriter, TextResultWriter
    from tracksense.core.worker import create_worker_pool

    def progress_callback(current: int, total: int, file_path: Path) -> None:
        """Print progress updates."""
        print(f"[{current}/{total}] Processed: {file_path.name}")

    try:
        processor = BatchProcessor(
            loader=create_audio_loader(config.get('audio', {})),
            worker_pool=create_worker_pool(config),
            progress_callback=progress_callback
        )
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 2

    try:
        batch_result = processor.process(inputs, recursive=recursive)
    except KeyboardInterrupt:
        processor.cancel()
        print("\nBatch cancelled")
        return 130
    except (TrackAnalysisError, OSError) as e:
        print(f"Error during batch processing: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        return 1

    print("\n" + "=" * 60)
    print("BATCH PROCESSING COMPLETE")
    print("=" * 60)
    print(f"Total Files: {batch_result.total_files}")
    print(f"Successful: {batch_result.success_count}")
    print(f"Failed: {batch_result.failure_count}")
    print(f"Success Rate: {batch_result.success_rate:.1f}%")
    print(f"Total Time: {batch_result.total_time:.2f}s")

    if batch_result.failed:
        print("\nFailed Files:")
        for path, error in batch_result.failed.items():
            print(f"  {Path(path).name}: {error}")

    # Text output is the default when nothing else was requested
    if output_txt or (not output_json and batch_result.successful):
        txt_path = output_txt or Path(
            f"tracksense_results_{datetime.now().strftime('%Y%m%d_%H%M%S')}.txt"
        )
        TextResultWriter().write(batch_result.successful, txt_path)
        print(f"\nText results saved to: {txt_path}")

    if output_json:
        JSONResultWriter().write(batch_result.successful, output_json)
        print(f"JSON results saved to: {output_json}")

    if compatible and batch_result.successful:
        print_compatible_tracks(batch_result.successful)

    return 0 if batch_result.failure_count == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="tracksense",
        description="Analyze tracks for tempo, key, energy, mood and drop/build cue points",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Single file:
    tracksense track.wav
    tracksense --output results.json track.wav
    tracksense --output-file results.txt track.wav

  Batch processing:
    tracksense --batch music/
    tracksense --batch --recursive --workers 8 music/
    tracksense --batch --executor process music/
    tracksense --batch --compatible music/
        """
    )

    parser.add_argument(
        "inputs",
        type=Path,
        nargs="+",
        help="Audio file(s) or directory to analyze"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"tracksense {__version__}"
    )
    parser.add_argument(
        "--batch",
        "-b",
        action="store_true",
        help="Enable batch processing mode for multiple files or directories"
    )
    parser.add_argument(
        "--recursive",
        "-r",
        action="store_true",
        help="Search directories recursively (only with --batch)"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to save JSON output (single file mode)"
    )
    parser.add_argument(
        "--output-file",
        "-o",
        type=Path,
        default=None,
        help="Path to save text results file (.txt)"
    )
    parser.add_argument(
        "--output-json",
        type=Path,
        default=None,
        help="Path to save JSON results file (batch mode)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of parallel analyses (overrides performance.max_workers)"
    )
    parser.add_argument(
        "--executor",
        choices=["thread", "process"],
        default=None,
        help="Worker type (overrides performance.executor)"
    )
    parser.add_argument(
        "--compatible",
        action="store_true",
        help="List harmonically compatible tracks within the batch"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point for TrackSense."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(str(args.config) if args.config else None)
        setup_logging_from_config(config.get("logging", {}), verbose=args.verbose)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(2)

    performance = config.setdefault("performance", {})
    if args.workers is not None:
        performance["max_workers"] = args.workers
    if args.executor is not None:
        performance["executor"] = args.executor

    is_batch = args.batch or len(args.inputs) > 1 or args.inputs[0].is_dir()

    if is_batch:
        exit_code = analyze_batch(
            inputs=args.inputs,
            config=config,
            recursive=args.recursive,
            output_txt=args.output_file,
            output_json=args.output_json,
            verbose=args.verbose,
            compatible=args.compatible,
        )
    else:
        exit_code = analyze_single_file(
            audio_file=args.inputs[0],
            config=config,
            output_json=args.output,
            output_txt=args.output_file,
            verbose=args.verbose,
        )

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
