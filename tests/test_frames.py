"""Tests for the frame extractor and spectral flux."""

import numpy as np
import pytest

from tracksense.core.fft import magnitude_spectrum
from tracksense.core.frames import FrameExtractor, spectral_flux


class TestFrameCount:
    @pytest.mark.parametrize("length,expected", [
        (0, 0),
        (100, 0),
        (2048, 0),
        (2048 + 1023, 0),
        (2048 + 1024, 1),
        (2048 + 10 * 1024, 10),
    ])
    def test_num_frames(self, length, expected):
        assert FrameExtractor(2048, 1024).num_frames(length) == expected

    def test_rejects_non_power_of_two(self):
        with pytest.raises(ValueError):
            FrameExtractor(1000, 500)

    def test_rejects_zero_hop(self):
        with pytest.raises(ValueError):
            FrameExtractor(1024, 0)


class TestFrames:
    def test_raw_frames_slice_the_buffer(self):
        samples = np.arange(64, dtype=np.float32)
        ex = FrameExtractor(16, 8)
        frames = ex.raw_frames(samples)

        assert frames.shape == (ex.num_frames(64), 16)
        assert frames[0].tolist() == list(range(16))
        assert frames[2][0] == 16.0
        assert frames.dtype == np.float64

    def test_windowed_frames_apply_hann(self):
        samples = np.ones(64, dtype=np.float32)
        ex = FrameExtractor(16, 8)
        np.testing.assert_allclose(ex.windowed_frames(samples)[1], ex.window)

    def test_too_short_buffer_yields_nothing(self):
        ex = FrameExtractor(2048, 1024)
        assert ex.raw_frames(np.zeros(100)).shape == (0, 2048)
        assert list(ex.spectra(np.zeros(100))) == []

    def test_batches_cover_all_frames(self):
        ex = FrameExtractor(16, 4, batch_size=3)
        samples = np.zeros(100)
        ranges = list(ex.iter_batches(samples))
        assert ranges[0] == (0, 3)
        assert ranges[-1][1] == ex.num_frames(100)
        assert sum(stop - start for start, stop in ranges) == ex.num_frames(100)

    def test_spectra_match_unbatched(self):
        rng = np.random.default_rng(5)
        samples = rng.standard_normal(4000)
        ex = FrameExtractor(256, 128, batch_size=4)

        batched = np.vstack([mags for _, mags in ex.spectra(samples)])
        direct = magnitude_spectrum(ex.windowed_frames(samples))
        np.testing.assert_allclose(batched, direct)

    def test_frame_timing(self):
        ex = FrameExtractor(2048, 1024)
        assert ex.frame_rate(44100) == pytest.approx(44100 / 1024)
        assert ex.frame_time(10, 44100) == pytest.approx(10 * 1024 / 44100)


class TestSpectralFlux:
    def test_silence_has_no_flux(self):
        ex = FrameExtractor(256, 128)
        flux = spectral_flux(ex, np.zeros(5000))
        assert flux.shape == (ex.num_frames(5000),)
        assert not flux.any()

    def test_first_frame_is_zero_and_rest_non_negative(self):
        rng = np.random.default_rng(6)
        ex = FrameExtractor(256, 128)
        flux = spectral_flux(ex, rng.standard_normal(5000))
        assert flux[0] == 0.0
        assert np.all(flux >= 0.0)

    def test_batching_does_not_change_flux(self):
        rng = np.random.default_rng(8)
        samples = rng.standard_normal(6000)
        small = spectral_flux(FrameExtractor(256, 128, batch_size=3), samples)
        large = spectral_flux(FrameExtractor(256, 128, batch_size=1000), samples)
        np.testing.assert_allclose(small, large)

    def test_matches_definition(self):
        rng = np.random.default_rng(9)
        samples = rng.standard_normal(3000)
        ex = FrameExtractor(256, 128)
        mags = magnitude_spectrum(ex.windowed_frames(samples))
        expected = np.maximum(np.diff(mags, axis=0), 0).sum(axis=1)
        np.testing.assert_allclose(spectral_flux(ex, samples)[1:], expected)

    def test_band_rows(self):
        rng = np.random.default_rng(10)
        samples = rng.standard_normal(3000)
        ex = FrameExtractor(256, 128)
        bands = [slice(0, 10), slice(10, 128)]
        per_band = spectral_flux(ex, samples, bands)
        assert per_band.shape == (2, ex.num_frames(3000))
        np.testing.assert_allclose(per_band.sum(axis=0), spectral_flux(ex, samples))
