"""
Frame extraction for spectral analysis.

Slices a sample buffer into overlapping fixed-size frames, applies a Hann
window and feeds the batches to the FFT kernel. Spectra are produced in
bounded batches so long tracks never hold every frame in memory at once.
"""

from typing import Iterator, Optional, Sequence, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from tracksense.core.fft import hann_window, is_power_of_two, magnitude_spectrum


class FrameExtractor:
    """
    Overlapping frame extractor.

    ``num_frames(length) = max(0, floor((length - fft_size) / hop_size))``.
    Frames that would read past the end of the buffer are never emitted.
    """

    def __init__(self, fft_size: int, hop_size: int, batch_size: int = 256):
        """
        Initialize extractor.

        Args:
            fft_size: Frame length in samples (power of two)
            hop_size: Distance between frame starts in samples
            batch_size: Frames transformed per FFT batch
        """
        if not is_power_of_two(fft_size):
            raise ValueError(f"fft_size must be a power of two, got {fft_size}")
        if hop_size < 1:
            raise ValueError(f"hop_size must be positive, got {hop_size}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        self.fft_size = fft_size
        self.hop_size = hop_size
        self.batch_size = batch_size
        self.window = hann_window(fft_size)

    def num_frames(self, length: int) -> int:
        """Number of complete frames in a buffer of ``length`` samples."""
        return max(0, (length - self.fft_size) // self.hop_size)

    def frame_rate(self, sample_rate: float) -> float:
        """Frames per second."""
        return sample_rate / self.hop_size

    def frame_time(self, index: int, sample_rate: float) -> float:
        """Start time (seconds) of frame ``index``."""
        return index * self.hop_size / sample_rate

    def raw_frames(
        self,
        samples: np.ndarray,
        start: int = 0,
        stop: Optional[int] = None,
    ) -> np.ndarray:
        """
        Un-windowed frames ``start..stop`` as a float64 array.

        Args:
            samples: Mono samples
            start: First frame index
            stop: One past the last frame index (defaults to all frames)

        Returns:
            np.ndarray: shape (frames, fft_size)
        """
        total = self.num_frames(len(samples))
        stop = total if stop is None else min(stop, total)
        if start >= stop:
            return np.empty((0, self.fft_size), dtype=np.float64)

        view = sliding_window_view(samples, self.fft_size)[::self.hop_size]
        return np.asarray(view[start:stop], dtype=np.float64)

    def windowed_frames(
        self,
        samples: np.ndarray,
        start: int = 0,
        stop: Optional[int] = None,
    ) -> np.ndarray:
        """Frames ``start..stop`` multiplied by the Hann window."""
        return self.raw_frames(samples, start, stop) * self.window

    def iter_batches(self, samples: np.ndarray) -> Iterator[Tuple[int, int]]:
        """Yield ``(start, stop)`` frame ranges of at most ``batch_size``."""
        total = self.num_frames(len(samples))
        for start in range(0, total, self.batch_size):
            yield start, min(start + self.batch_size, total)

    def spectra(self, samples: np.ndarray) -> Iterator[Tuple[int, np.ndarray]]:
        """
        Magnitude spectra of all frames, batch by batch.

        Yields:
            (first_frame_index, magnitudes) with magnitudes of shape
            (frames_in_batch, fft_size / 2)
        """
        for start, stop in self.iter_batches(samples):
            yield start, magnitude_spectrum(self.windowed_frames(samples, start, stop))


def spectral_flux(
    extractor: FrameExtractor,
    samples: np.ndarray,
    bands: Optional[Sequence[slice]] = None,
) -> np.ndarray:
    """
    Half-wave-rectified spectral flux between consecutive frames.

    ``flux[f] = sum(max(0, mag[f][bin] - mag[f-1][bin]))``; frame 0 has no
    predecessor and gets 0.

    Args:
        extractor: Frame extractor to drive
        samples: Mono samples
        bands: Optional bin ranges; one flux row per band when given

    Returns:
        np.ndarray: shape (num_frames,) or (len(bands), num_frames)
    """
    total = extractor.num_frames(len(samples))
    band_list = list(bands) if bands is not None else [slice(None)]
    flux = np.zeros((len(band_list), total), dtype=np.float64)

    previous: Optional[np.ndarray] = None
    for start, mags in extractor.spectra(samples):
        if previous is None:
            stacked = mags
            offset = start + 1
        else:
            stacked = np.vstack((previous[np.newaxis, :], mags))
            offset = start
        rise = np.maximum(np.diff(stacked, axis=0), 0.0)
        for row, band in enumerate(band_list):
            flux[row, offset:offset + len(rise)] = rise[:, band].sum(axis=1)
        previous = mags[-1]

    if bands is None:
        return flux[0]
    return flux
