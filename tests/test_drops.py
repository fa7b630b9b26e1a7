"""Tests for drop and build detection."""

import numpy as np
import pytest

from tracksense.analyzers.structural.drops import (
    BASS,
    HIGH,
    MID,
    SUB,
    Candidate,
    DropAnalyzer,
    DropParams,
    adaptive_threshold,
    band_slices,
    collect_candidates,
    create_drop_analyzer,
    detect_drops,
    score_frames,
    select_candidates,
)
from tracksense.core.frames import FrameExtractor
from tracksense.core.models import AUTO_CUE_ID_START, DROP_COLOR, CueSource


def candidate(frame, score, source=CueSource.AUTO_DROP):
    return Candidate(frame, score, source)


class TestDetectDrops:
    def test_drop_track_invariants(self, drop_track):
        cues = detect_drops(drop_track)
        params = DropParams()

        assert 0 < len(cues) <= params.max_markers
        positions = [cue.position for cue in cues]
        assert positions == sorted(positions)
        for earlier, later in zip(positions, positions[1:]):
            assert later - earlier >= params.min_gap_seconds
        assert [cue.id for cue in cues] == list(
            range(AUTO_CUE_ID_START, AUTO_CUE_ID_START + len(cues))
        )
        assert all(0.0 <= p <= drop_track.duration for p in positions)
        assert all(cue.source in (CueSource.AUTO_DROP, CueSource.AUTO_BUILD) for cue in cues)

    def test_strongest_cue_is_the_drop(self, drop_track):
        cues = detect_drops(drop_track, DropParams(max_markers=1))
        assert len(cues) == 1
        assert cues[0].position >= 19.5
        assert cues[0].label == "Drop"
        assert cues[0].color == DROP_COLOR
        assert cues[0].source is CueSource.AUTO_DROP

    def test_silence_has_no_cues(self, silence):
        assert detect_drops(silence) == []

    def test_short_buffer_has_no_cues(self, short_buffer):
        assert detect_drops(short_buffer) == []

    def test_first_cue_id_is_configurable(self, drop_track):
        cues = detect_drops(drop_track, DropParams(first_cue_id=500, max_markers=2))
        assert cues[0].id in (500, 501)

    def test_deterministic(self, drop_track):
        first = [c.to_dict() for c in detect_drops(drop_track)]
        second = [c.to_dict() for c in detect_drops(drop_track)]
        assert first == second


class TestAdaptiveThreshold:
    def test_constant_flux(self):
        flux = np.full(50, 3.0)
        np.testing.assert_allclose(adaptive_threshold(flux, 5, 2.5), 3.0)

    def test_windows_truncated_at_edges(self):
        # Every window covers the whole signal: median 2, MAD 1
        thresholds = adaptive_threshold(np.array([1.0, 2.0, 3.0]), 5, 2.5)
        np.testing.assert_allclose(thresholds, 4.5)

    def test_isolated_spike_exceeds_threshold(self):
        flux = np.zeros(40)
        flux[20] = 10.0
        thresholds = adaptive_threshold(flux, 5, 2.5)
        assert flux[20] > thresholds[20]
        assert not np.any(flux[:20] > thresholds[:20])

    def test_empty(self):
        assert len(adaptive_threshold(np.zeros(0), 3, 2.5)) == 0


class TestScoring:
    def setup_method(self):
        self.params = DropParams()
        self.thresholds = np.ones((4, 3))
        self.flux = np.zeros((4, 3))
        self.flux[SUB, 0] = 3.0
        self.flux[MID, 1] = 3.0
        self.flux[HIGH, 1] = 3.0
        self.flux[:, 2] = 0.5

    def test_drop_scores_weight_band_excess(self):
        drop, _ = score_frames(self.flux, self.thresholds, self.params)
        assert drop[0] == pytest.approx(0.4 * 2.0)
        assert drop[1] == pytest.approx(0.2 * 2.0 + 0.1 * 2.0)
        assert drop[2] == 0.0

    def test_build_needs_quiet_low_end(self):
        _, build = score_frames(self.flux, self.thresholds, self.params)
        assert build[0] == 0.0
        assert build[1] == pytest.approx(0.5 * 2.0 + 0.5 * 2.0)
        assert build[2] == 0.0

    def test_loud_bass_blocks_build(self):
        self.flux[BASS, 1] = 0.9
        _, build = score_frames(self.flux, self.thresholds, self.params)
        assert build[1] == 0.0

    def test_candidates_take_larger_score(self):
        drop, build = score_frames(self.flux, self.thresholds, self.params)
        cands = collect_candidates(drop, build)
        assert [(c.frame, c.source) for c in cands] == [
            (0, CueSource.AUTO_DROP),
            (1, CueSource.AUTO_BUILD),
        ]

    def test_equal_scores_are_drops(self):
        cands = collect_candidates(np.array([1.0]), np.array([1.0]))
        assert cands[0].source is CueSource.AUTO_DROP


class TestSelectCandidates:
    def test_strongest_first_then_gap(self):
        cands = [candidate(0, 1.0), candidate(5, 2.0), candidate(20, 1.0)]
        selected = select_candidates(cands, float, 8.0, 8)
        assert [c.frame for c in selected] == [5, 20]

    def test_exact_gap_is_allowed(self):
        cands = [candidate(0, 1.0), candidate(8, 1.0)]
        assert len(select_candidates(cands, float, 8.0, 8)) == 2

    def test_ties_go_to_earlier_frame(self):
        cands = [candidate(30, 1.0), candidate(10, 1.0)]
        assert select_candidates(cands, float, 8.0, 1)[0].frame == 10

    def test_max_markers(self):
        cands = [candidate(i * 10, float(i)) for i in range(20)]
        selected = select_candidates(cands, float, 8.0, 8)
        assert len(selected) == 8
        assert [c.frame for c in selected] == [120, 130, 140, 150, 160, 170, 180, 190]

    @pytest.mark.parametrize("sample_rate", [16000, 32000, 48000, 96000])
    def test_gap_is_measured_on_cue_positions(self, sample_rate):
        extractor = FrameExtractor(2048, 1024)
        steps = int(8.0 * sample_rate / 1024)

        def frame_time(frame):
            return extractor.frame_time(frame, sample_rate)

        cands = [candidate(1, 2.0), candidate(1 + steps, 1.0), candidate(2 + steps, 0.5)]
        selected = select_candidates(cands, frame_time, 8.0, 8)

        positions = [frame_time(c.frame) for c in selected]
        assert positions[1] - positions[0] >= 8.0
        if frame_time(1 + steps) - frame_time(1) < 8.0:
            assert selected[1].frame == 2 + steps

    def test_float_rounding_at_48k(self):
        extractor = FrameExtractor(2048, 1024)

        def frame_time(frame):
            return extractor.frame_time(frame, 48000)

        # 375 hops are exactly 8 s, but the rounded start times land just short
        assert frame_time(376) - frame_time(1) < 8.0
        cands = [candidate(1, 2.0), candidate(376, 1.0)]
        assert [c.frame for c in select_candidates(cands, frame_time, 8.0, 8)] == [1]


class TestBands:
    def test_bands_are_contiguous_and_cover_to_nyquist(self):
        slices = band_slices(2048, 44100)
        assert len(slices) == 4
        for low, high in zip(slices, slices[1:]):
            assert low.stop == high.start
        assert slices[-1].stop == 1024
        assert slices[SUB].start == 1


class TestDropAnalyzer:
    def test_analyze_silence(self, silence):
        assert DropAnalyzer().analyze(silence) == []

    def test_factory_coerces_lists(self, default_config):
        default_config["analysis"]["drops"]["band_weights"] = [0.25, 0.25, 0.25, 0.25]
        analyzer = create_drop_analyzer(default_config)
        assert analyzer.params.band_weights == (0.25, 0.25, 0.25, 0.25)
        assert analyzer.name == "drops"
