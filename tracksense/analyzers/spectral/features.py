"""
Spectral features, energy score, mood and auto-tags.

Frame statistics (RMS, zero-crossing rate, spectral centroid, rolloff) are
averaged over the whole buffer and combined with tempo and key into
heuristic descriptors. The weights and thresholds are empirically tuned;
every one of them can be overridden from the ``analysis.features`` and
``analysis.mood`` configuration sections.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from tracksense.analyzers.musical.key import KeyParams, compute_chroma
from tracksense.core.analyzer_base import BaseAnalyzer, params_from_section
from tracksense.core.fft import bin_frequencies, magnitude_spectrum
from tracksense.core.frames import FrameExtractor
from tracksense.core.models import KEY_UNKNOWN, Mood, SampleBuffer, SpectralFeatures
from tracksense.utils.errors import ConfigurationError

TAG_PREFIX = "AI: "

# Per-mood weights over normalized features (all in [0, 1]) and the key
# mode term (+1 major, -1 minor, 0 unknown).
MOOD_WEIGHTS: Dict[Mood, Dict[str, float]] = {
    Mood.FROEHLICH: {
        'tempo': 0.3, 'energy': 0.25, 'brightness': 0.25, 'loudness': 0.1, 'mode': 0.3,
    },
    Mood.MELANCHOLISCH: {
        'tempo': -0.3, 'energy': -0.3, 'brightness': -0.2, 'bias': 0.5, 'mode': -0.3,
    },
    Mood.AGGRESSIV: {
        'tempo': 0.25, 'energy': 0.35, 'noisiness': 0.25, 'loudness': 0.25,
        'brightness': 0.1, 'bias': -0.1, 'mode': -0.1,
    },
    Mood.ENTSPANNT: {
        'tempo': -0.25, 'energy': -0.35, 'loudness': -0.15, 'noisiness': -0.1,
        'bias': 0.55, 'mode': 0.1,
    },
    Mood.EPISCH: {
        'energy': 0.3, 'fullness': 0.3, 'loudness': 0.2, 'tempo': 0.05, 'bias': -0.05,
    },
    Mood.MYSTERIOES: {
        'brightness': -0.2, 'energy': -0.1, 'noisiness': 0.1, 'tempo': -0.1,
        'bias': 0.3, 'mode': -0.2,
    },
    Mood.ROMANTISCH: {
        'tempo': -0.15, 'energy': -0.1, 'brightness': 0.1, 'loudness': -0.05,
        'bias': 0.35, 'mode': 0.2,
    },
    Mood.DUESTER: {
        'brightness': -0.3, 'fullness': -0.2, 'energy': 0.1, 'bias': 0.25, 'mode': -0.35,
    },
}


@dataclass(frozen=True)
class FeatureParams:
    """Tunable feature, energy and tag constants."""
    fft_size: int = 2048
    hop_size: int = 1024
    rolloff_fraction: float = 0.85
    loud_frame_fraction: float = 0.1
    energy_weights: tuple = (0.4, 0.3, 0.3)
    energy_bpm_range: tuple = (60.0, 200.0)
    default_energy: int = 5
    # Mood normalization scales
    brightness_scale_hz: float = 5000.0
    noisiness_scale: float = 0.25
    loudness_scale: float = 0.35
    # Auto-tag thresholds
    energetic_min_energy: int = 8
    chill_max_energy: int = 3
    dark_max_centroid: float = 1500.0
    bright_min_centroid: float = 3000.0
    vocal_zcr_range: tuple = (0.04, 0.12)
    vocal_centroid_range: tuple = (1000.0, 3000.0)
    percussive_min_zcr: float = 0.15
    fast_min_bpm: int = 135
    slow_max_bpm: int = 85
    bass_heavy_max_rolloff: float = 1500.0
    bass_heavy_min_rms: float = 0.05


@dataclass(frozen=True, eq=False)
class FrameStatistics:
    """Per-frame descriptors, one entry per analysis frame."""
    rms: np.ndarray
    zero_crossing_rate: np.ndarray
    centroid: np.ndarray
    rolloff: np.ndarray

    def __len__(self) -> int:
        return len(self.rms)


@dataclass(frozen=True)
class TrackFeatures:
    """Output of the feature analyzer."""
    features: SpectralFeatures
    frames: FrameStatistics


def _spectral_shape(
    mags: np.ndarray,
    freqs: np.ndarray,
    rolloff_fraction: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Centroid and rolloff (Hz) for a batch of magnitude spectra."""
    total = mags.sum(axis=1)
    weighted = mags @ freqs
    centroid = np.divide(weighted, total, out=np.zeros_like(total), where=total > 0)

    power = np.cumsum(mags * mags, axis=1)
    energy = power[:, -1]
    idx = np.argmax(power >= (rolloff_fraction * energy)[:, np.newaxis], axis=1)
    rolloff = np.where(energy > 0, freqs[idx], 0.0)
    return centroid, rolloff


def compute_frame_statistics(
    buffer: SampleBuffer,
    params: Optional[FeatureParams] = None,
) -> FrameStatistics:
    """
    RMS and zero-crossing rate from the raw frames, centroid and rolloff
    from the windowed magnitude spectrum.
    """
    params = params or FeatureParams()
    extractor = FrameExtractor(params.fft_size, params.hop_size)
    freqs = bin_frequencies(params.fft_size, buffer.sample_rate)

    rms, zcr, centroid, rolloff = [], [], [], []
    for start, stop in extractor.iter_batches(buffer.samples):
        raw = extractor.raw_frames(buffer.samples, start, stop)
        rms.append(np.sqrt(np.mean(raw * raw, axis=1)))
        signs = np.signbit(raw)
        zcr.append(np.mean(signs[:, 1:] != signs[:, :-1], axis=1))

        mags = magnitude_spectrum(raw * extractor.window)
        c, r = _spectral_shape(mags, freqs, params.rolloff_fraction)
        centroid.append(c)
        rolloff.append(r)

    def join(parts: List[np.ndarray]) -> np.ndarray:
        return np.concatenate(parts) if parts else np.zeros(0)

    return FrameStatistics(join(rms), join(zcr), join(centroid), join(rolloff))


def compute_spectral_features(
    buffer: SampleBuffer,
    params: Optional[FeatureParams] = None,
    key_params: Optional[KeyParams] = None,
) -> TrackFeatures:
    """
    Track-level spectral features.

    Frame statistics are averaged over all frames; the chroma vector is
    accumulated over the whole track with the key estimator's method.

    Args:
        buffer: Mono sample buffer
        params: Feature constants
        key_params: Chroma frame size and frequency range

    Returns:
        TrackFeatures: averaged features plus the per-frame statistics
    """
    params = params or FeatureParams()
    key_params = key_params or KeyParams()

    stats = compute_frame_statistics(buffer, params)
    if len(stats) == 0:
        return TrackFeatures(SpectralFeatures.silent(), stats)

    chroma, _ = compute_chroma(
        buffer.samples,
        buffer.sample_rate,
        key_params.fft_size,
        key_params.hop_size,
        key_params.min_frequency,
        key_params.max_frequency,
    )
    features = SpectralFeatures(
        centroid=float(stats.centroid.mean()),
        rolloff=float(stats.rolloff.mean()),
        zero_crossing_rate=float(stats.zero_crossing_rate.mean()),
        rms=float(stats.rms.mean()),
        chroma_vector=tuple(float(v) for v in chroma),
    )
    return TrackFeatures(features, stats)


def detect_energy(
    frames: FrameStatistics,
    bpm: int,
    nyquist: float,
    params: Optional[FeatureParams] = None,
) -> int:
    """
    Energy score 1-10.

    Blends dynamic headroom (mean RMS over the mean of the loudest frames),
    spectral fullness (rolloff over Nyquist) and tempo.

    Returns:
        int: Energy in [1, 10]; ``default_energy`` with fewer than 2 frames
    """
    params = params or FeatureParams()
    if len(frames) < 2:
        return params.default_energy

    rms = frames.rms
    loud_count = max(1, int(math.ceil(params.loud_frame_fraction * len(rms))))
    loud_mean = float(np.sort(rms)[-loud_count:].mean())
    rms_rel = float(rms.mean()) / loud_mean if loud_mean > 0 else 0.0

    fullness = float(frames.rolloff.mean()) / nyquist if nyquist > 0 else 0.0

    low_bpm, high_bpm = params.energy_bpm_range
    tempo = float(np.clip((bpm - low_bpm) / (high_bpm - low_bpm), 0.0, 1.0)) if bpm > 0 else 0.0

    w_rms, w_full, w_tempo = params.energy_weights
    blend = w_rms * rms_rel + w_full * fullness + w_tempo * tempo
    return int(min(10, max(1, round(1 + 9 * blend))))


def key_mode(key: str) -> int:
    """+1 for a major (B) key, -1 for minor (A), 0 when unknown."""
    if key == KEY_UNKNOWN or not key:
        return 0
    return 1 if key.endswith('B') else -1 if key.endswith('A') else 0


def normalized_mood_features(
    features: SpectralFeatures,
    energy: int,
    bpm: int,
    nyquist: float,
    params: FeatureParams,
) -> Dict[str, float]:
    """Mood inputs, each clipped to [0, 1]."""
    def unit(x: float) -> float:
        return float(min(1.0, max(0.0, x)))

    low_bpm, high_bpm = params.energy_bpm_range
    return {
        'tempo': unit((bpm - low_bpm) / (high_bpm - low_bpm)) if bpm > 0 else 0.0,
        'energy': unit((energy - 1) / 9.0),
        'brightness': unit(features.centroid / params.brightness_scale_hz),
        'fullness': unit(features.rolloff / nyquist) if nyquist > 0 else 0.0,
        'noisiness': unit(features.zero_crossing_rate / params.noisiness_scale),
        'loudness': unit(features.rms / params.loudness_scale),
        'bias': 1.0,
    }


def classify_mood(
    features: SpectralFeatures,
    energy: int,
    bpm: int,
    key: str,
    nyquist: float,
    params: Optional[FeatureParams] = None,
    weights: Optional[Mapping[Mood, Mapping[str, float]]] = None,
) -> Mood:
    """
    Pick the best-scoring mood label.

    Each mood scores a weighted sum of the normalized features plus a key
    mode term; ties go to the mood declared first.
    """
    params = params or FeatureParams()
    weights = weights or MOOD_WEIGHTS
    inputs = normalized_mood_features(features, energy, bpm, nyquist, params)
    inputs['mode'] = float(key_mode(key))

    best_mood, best_score = None, -math.inf
    for mood in Mood:
        table = weights.get(mood, {})
        score = sum(weight * inputs.get(name, 0.0) for name, weight in table.items())
        if score > best_score:
            best_mood, best_score = mood, score
    return best_mood


def auto_tag(
    features: SpectralFeatures,
    energy: int,
    bpm: int,
    key: str,
    params: Optional[FeatureParams] = None,
) -> List[str]:
    """
    Threshold-based descriptive tags; several may apply at once.

    A silent buffer (zero RMS) gets no tags.
    """
    params = params or FeatureParams()
    if features.rms <= 0:
        return []

    tags = []
    if energy >= params.energetic_min_energy:
        tags.append("Energetic")
    if energy <= params.chill_max_energy:
        tags.append("Chill")
    if key_mode(key) < 0 and features.centroid < params.dark_max_centroid:
        tags.append("Dark")
    if features.centroid > params.bright_min_centroid:
        tags.append("Bright")
    zcr_low, zcr_high = params.vocal_zcr_range
    centroid_low, centroid_high = params.vocal_centroid_range
    if (zcr_low <= features.zero_crossing_rate <= zcr_high
            and centroid_low <= features.centroid <= centroid_high):
        tags.append("Vocal")
    if features.zero_crossing_rate > params.percussive_min_zcr:
        tags.append("Percussive")
    if bpm >= params.fast_min_bpm:
        tags.append("Fast")
    if 0 < bpm <= params.slow_max_bpm:
        tags.append("Slow")
    if (features.rolloff < params.bass_heavy_max_rolloff
            and features.rms >= params.bass_heavy_min_rms):
        tags.append("Bass-Heavy")
    return [TAG_PREFIX + tag for tag in tags]


class FeatureAnalyzer(BaseAnalyzer[TrackFeatures]):
    """
    Spectral feature analyzer.

    ``analyze()`` returns the track features; the derived descriptors need
    tempo and key as well and are exposed as separate methods.
    """

    def __init__(
        self,
        params: Optional[FeatureParams] = None,
        key_params: Optional[KeyParams] = None,
        mood_weights: Optional[Mapping[Mood, Mapping[str, float]]] = None,
    ):
        super().__init__("features", "1.0.0")
        self.params = params or FeatureParams()
        self.key_params = key_params or KeyParams()
        self.mood_weights = mood_weights or MOOD_WEIGHTS

    def _analyze_impl(self, buffer: SampleBuffer) -> TrackFeatures:
        return compute_spectral_features(buffer, self.params, self.key_params)

    def energy(self, track: TrackFeatures, bpm: int, nyquist: float) -> int:
        return detect_energy(track.frames, bpm, nyquist, self.params)

    def mood(self, track: TrackFeatures, energy: int, bpm: int, key: str, nyquist: float) -> Mood:
        return classify_mood(
            track.features, energy, bpm, key, nyquist, self.params, self.mood_weights
        )

    def tags(self, track: TrackFeatures, energy: int, bpm: int, key: str) -> List[str]:
        return auto_tag(track.features, energy, bpm, key, self.params)


def mood_weights_from_config(section: Mapping[str, Any]) -> Dict[Mood, Dict[str, float]]:
    """
    Merge ``analysis.mood`` overrides over the default weights.

    Keys are mood labels (e.g. ``"Episch"``) mapping feature names to weights.
    """
    weights = {mood: dict(table) for mood, table in MOOD_WEIGHTS.items()}
    for label, table in (section or {}).items():
        try:
            mood = Mood(label)
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown mood label: {label}", config_key=f"analysis.mood.{label}"
            ) from e
        weights[mood].update({name: float(value) for name, value in table.items()})
    return weights


def create_feature_analyzer(config: Dict[str, Any]) -> FeatureAnalyzer:
    """Factory function to create feature analyzer from the full config."""
    analysis = config.get('analysis', {})
    return FeatureAnalyzer(
        params=params_from_section(FeatureParams, analysis.get('features', {})),
        key_params=params_from_section(KeyParams, analysis.get('key', {})),
        mood_weights=mood_weights_from_config(analysis.get('mood', {})),
    )
