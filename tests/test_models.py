"""Tests for core data models and validators."""

import json

import numpy as np
import pytest

from tracksense.core.models import (
    AnalysisResult,
    CuePoint,
    CueSource,
    Mood,
    SampleBuffer,
    SpectralFeatures,
    validate_camelot,
    validate_energy,
)
from tracksense.utils.errors import BufferContractError


def make_result(**overrides):
    defaults = dict(
        bpm=128,
        key="8A",
        energy=7,
        features=SpectralFeatures(1500.0, 5000.0, 0.06, 0.25, tuple([0.5] * 12)),
        drops=[
            CuePoint(100, 30.0, "Drop", "#ef4444", CueSource.AUTO_DROP),
            CuePoint(101, 60.0, "Build", "#f59e0b", CueSource.AUTO_BUILD),
        ],
        intro_time=4.0,
        outro_time=180.0,
        auto_tags=["AI: Fast"],
        mood=Mood.EPISCH,
    )
    defaults.update(overrides)
    return AnalysisResult(**defaults)


class TestSampleBuffer:
    def test_copies_and_freezes_samples(self):
        data = np.ones(100)
        buffer = SampleBuffer(data, 44100)
        data[0] = 5.0

        assert buffer.samples[0] == 1.0
        assert buffer.samples.dtype == np.float32
        with pytest.raises(ValueError):
            buffer.samples[0] = 2.0

    def test_duration_defaults_to_length(self):
        buffer = SampleBuffer(np.zeros(22050), 44100)
        assert buffer.duration == 0.5
        assert len(buffer) == 22050
        assert buffer.nyquist == 22050.0

    def test_explicit_duration(self):
        assert SampleBuffer(np.zeros(10), 10, duration=1.25).duration == 1.25

    @pytest.mark.parametrize("rate", [0, -44100, float("nan"), float("inf"), "fast"])
    def test_invalid_sample_rate(self, rate):
        with pytest.raises(BufferContractError):
            SampleBuffer(np.zeros(10), rate)

    def test_rejects_two_dimensional(self):
        with pytest.raises(BufferContractError) as exc_info:
            SampleBuffer(np.zeros((2, 10)), 44100)
        assert exc_info.value.field_name == "samples"

    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_rejects_non_finite_samples(self, bad):
        data = np.zeros(100)
        data[10] = bad
        with pytest.raises(BufferContractError) as exc_info:
            SampleBuffer(data, 44100)
        assert exc_info.value.field_name == "samples"

    def test_rejects_negative_duration(self):
        with pytest.raises(BufferContractError):
            SampleBuffer(np.zeros(10), 44100, duration=-1.0)

    def test_from_channels_keeps_first(self):
        stereo = np.vstack([np.full(8, 0.25), np.full(8, -0.75)])
        buffer = SampleBuffer.from_channels(stereo, 8000)
        assert np.all(buffer.samples == 0.25)

    def test_scaled(self):
        buffer = SampleBuffer(np.full(4, 0.5), 100)
        half = buffer.scaled(0.5)
        assert np.all(half.samples == 0.25)
        assert half.sample_rate == buffer.sample_rate
        assert np.all(buffer.samples == 0.5)


class TestSpectralFeatures:
    def test_chroma_must_have_twelve_bins(self):
        with pytest.raises(ValueError):
            SpectralFeatures(0.0, 0.0, 0.0, 0.0, (0.5,) * 11)

    def test_chroma_range(self):
        with pytest.raises(ValueError):
            SpectralFeatures(0.0, 0.0, 0.0, 0.0, (1.5,) + (0.0,) * 11)

    def test_chroma_rejects_nan(self):
        with pytest.raises(ValueError):
            SpectralFeatures(0.0, 0.0, 0.0, 0.0, (float("nan"),) + (0.0,) * 11)

    def test_silent(self):
        silent = SpectralFeatures.silent()
        assert silent.rms == 0.0
        assert silent.chroma_vector == (0.0,) * 12


class TestAnalysisResult:
    def test_valid(self):
        result = make_result()
        assert result.bpm == 128
        assert len(result.feature_vector) == 17
        assert result.feature_vector[4] == 128.0

    @pytest.mark.parametrize("bpm", [-1, 120.5, True])
    def test_invalid_bpm(self, bpm):
        with pytest.raises(ValueError):
            make_result(bpm=bpm)

    def test_unknown_tempo_allowed(self):
        assert make_result(bpm=0).bpm == 0

    @pytest.mark.parametrize("energy", [0, 11])
    def test_invalid_energy(self, energy):
        with pytest.raises(ValueError):
            make_result(energy=energy)

    def test_unsorted_drops(self):
        drops = [
            CuePoint(100, 60.0, "Drop", "#ef4444", CueSource.AUTO_DROP),
            CuePoint(101, 30.0, "Drop", "#ef4444", CueSource.AUTO_DROP),
        ]
        with pytest.raises(ValueError):
            make_result(drops=drops)

    def test_duplicate_cue_ids(self):
        drops = [
            CuePoint(100, 30.0, "Drop", "#ef4444", CueSource.AUTO_DROP),
            CuePoint(100, 60.0, "Drop", "#ef4444", CueSource.AUTO_DROP),
        ]
        with pytest.raises(ValueError):
            make_result(drops=drops)

    def test_to_json(self):
        data = json.loads(make_result().to_json())
        assert data["mood"] == "Episch"
        assert data["drops"][1]["source"] == "auto-build"
        assert len(data["features"]["chroma_vector"]) == 12

    def test_to_json_keeps_umlauts(self):
        assert "Düster" in make_result(mood=Mood.DUESTER).to_json()

    def test_summary(self):
        summary = make_result().get_summary()
        assert summary == "BPM: 128 | Key: 8A | Energy: 7/10 | Mood: Episch | Cues: 2 | AI: Fast"

    def test_summary_unknown_tempo(self):
        summary = make_result(bpm=0, drops=[], auto_tags=[]).get_summary()
        assert summary.startswith("BPM: - | Key: 8A")


class TestValidators:
    @pytest.mark.parametrize("key", ["1A", "12B", "8A", "N/A"])
    def test_valid_camelot(self, key):
        validate_camelot(key)

    @pytest.mark.parametrize("key", ["0A", "13B", "8C", "C major", ""])
    def test_invalid_camelot(self, key):
        with pytest.raises(ValueError):
            validate_camelot(key)

    def test_energy_bounds(self):
        validate_energy(1)
        validate_energy(10)
        with pytest.raises(ValueError):
            validate_energy(0)


def test_mood_order_is_tie_break_order():
    assert list(Mood)[0] is Mood.FROEHLICH
    assert list(Mood)[-1] is Mood.DUESTER
    assert len(Mood) == 8
