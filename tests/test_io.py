"""Tests for audio loading, batch processing and result writers."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest
import soundfile as sf

from conftest import SR, make_tone
from tracksense.core.batch_processor import BatchProcessor, BatchResult
from tracksense.core.engine import create_analysis_engine
from tracksense.core.loader import AudioLoader, create_audio_loader
from tracksense.core.result_writer import (
    JSONResultWriter,
    TextResultWriter,
    create_result_writer,
)
from tracksense.core.worker import AnalysisWorkerPool
from tracksense.utils.errors import (
    AudioLoadError,
    FileTooLargeError,
    UnsupportedFormatError,
)


@pytest.fixture
def wav_file(tmp_path):
    """Three seconds of a 440 Hz tone as a stereo 16-bit WAV."""
    tone = make_tone(440.0, 3.0).samples
    path = tmp_path / "tone.wav"
    sf.write(str(path), np.column_stack([tone, np.zeros_like(tone)]), SR, subtype="PCM_16")
    return path


@pytest.fixture
def music_dir(tmp_path):
    root = tmp_path / "music"
    (root / "nested").mkdir(parents=True)
    for name, freq in (("a.wav", 440.0), ("b.flac", 330.0), ("nested/c.wav", 220.0)):
        sf.write(str(root / name), make_tone(freq, 2.0).samples, SR)
    (root / "notes.txt").write_text("not audio")
    (root / "broken.wav").write_bytes(b"RIFF....WAVEjunk")
    return root


class TestAudioLoader:
    def test_loads_first_channel(self, wav_file):
        buffer = AudioLoader().load(wav_file)

        assert buffer.sample_rate == SR
        assert buffer.duration == pytest.approx(3.0)
        assert buffer.samples.ndim == 1
        assert np.max(np.abs(buffer.samples)) == pytest.approx(0.5, abs=1e-3)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AudioLoader().load(tmp_path / "missing.wav")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "track.xyz"
        path.write_bytes(b"data")
        with pytest.raises(UnsupportedFormatError):
            AudioLoader().load(path)

    def test_too_large(self, wav_file):
        with pytest.raises(FileTooLargeError):
            AudioLoader(max_file_size=100).load(wav_file)

    def test_undecodable(self, music_dir):
        with pytest.raises(AudioLoadError):
            AudioLoader().load(music_dir / "broken.wav")

    def test_factory(self):
        loader = create_audio_loader({"supported_formats": [".WAV"], "max_file_size": 10})
        assert loader.supported_suffixes == {".wav"}
        assert loader.max_file_size == 10


class TestBatchProcessor:
    def make_processor(self, callback=None):
        return BatchProcessor(
            loader=AudioLoader(),
            worker_pool=AnalysisWorkerPool(max_workers=2),
            progress_callback=callback,
        )

    def test_directory(self, music_dir):
        callback = MagicMock()
        result = self.make_processor(callback).process(music_dir)

        names = sorted(path.name for path in result.successful)
        assert names == ["a.wav", "b.flac"]
        assert [path.name for path in result.failed] == ["broken.wav"]
        assert result.total_files == 3
        assert callback.call_count == 3
        assert not result.cancelled

    def test_recursive(self, music_dir):
        result = self.make_processor().process([music_dir], recursive=True)
        assert "c.wav" in {path.name for path in result.successful}
        assert result.total_files == 4

    def test_results_are_keyed_by_path(self, music_dir):
        result = self.make_processor().process([music_dir / "a.wav"])
        [(path, analysis)] = result.successful.items()
        assert path == music_dir / "a.wav"
        assert analysis.key == "11B"

    def test_nothing_to_do(self, tmp_path):
        result = self.make_processor().process([tmp_path / "missing"])
        assert result.total_files == 0
        assert result.success_rate == 0.0

    def test_cancel_delegates_to_pool(self):
        pool = MagicMock()
        BatchProcessor(loader=AudioLoader(), worker_pool=pool).cancel()
        pool.cancel.assert_called_once_with()

    def test_success_rate(self):
        result = BatchResult(successful={Path("a"): None}, failed={Path("b"): "x"}, total_files=2)
        assert result.success_rate == 50.0


class TestResultWriters:
    @pytest.fixture
    def results(self, wav_file):
        buffer = AudioLoader().load(wav_file)
        return {wav_file: create_analysis_engine().analyze(buffer)}

    def test_text(self, results, tmp_path):
        out = tmp_path / "out" / "results.txt"
        TextResultWriter(include_timestamp=False).write(results, out)

        text = out.read_text(encoding="utf-8")
        assert "TRACKSENSE ANALYSIS RESULTS" in text
        assert "FILE: tone.wav" in text
        assert "Key: 11B" in text
        assert "Generated:" not in text
        assert text.rstrip().endswith("=" * 70)

    def test_json(self, results, tmp_path):
        out = tmp_path / "results.json"
        JSONResultWriter().write(results, out)

        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["total_files"] == 1
        [entry] = data["results"].values()
        assert entry["key"] == "11B"
        assert len(entry["feature_vector"]) == 17

    @pytest.mark.parametrize("fmt,cls", [
        ("text", TextResultWriter),
        ("TXT", TextResultWriter),
        ("json", JSONResultWriter),
    ])
    def test_factory(self, fmt, cls):
        assert isinstance(create_result_writer(fmt), cls)

    def test_factory_unknown(self):
        with pytest.raises(ValueError):
            create_result_writer("xml")
