"""
Radix-2 Fourier transform kernel.

Iterative decimation-in-time FFT over the last axis of real/imaginary
float64 buffers. A 2-D input is treated as a batch of frames and every row
is transformed at once, which is how the frame extractor drives it.
"""

import math
from functools import lru_cache
from typing import Tuple

import numpy as np


def is_power_of_two(n: int) -> bool:
    """Return True if ``n`` is a positive power of two."""
    return n > 0 and (n & (n - 1)) == 0


@lru_cache(maxsize=16)
def bit_reversal_indices(n: int) -> np.ndarray:
    """
    Permutation that reorders a length-``n`` buffer into bit-reversed order.

    Args:
        n: Transform size (power of two)

    Returns:
        Read-only index array of length ``n``
    """
    if not is_power_of_two(n):
        raise ValueError(f"Transform size must be a power of two, got {n}")

    bits = n.bit_length() - 1
    idx = np.arange(n)
    rev = np.zeros(n, dtype=np.intp)
    for b in range(bits):
        rev |= ((idx >> b) & 1) << (bits - 1 - b)
    rev.setflags(write=False)
    return rev


@lru_cache(maxsize=64)
def _twiddles(size: int) -> Tuple[np.ndarray, np.ndarray]:
    angle = -2.0 * np.pi * np.arange(size // 2) / size
    return np.cos(angle), np.sin(angle)


def _check_buffer(name: str, buf: np.ndarray) -> None:
    if not isinstance(buf, np.ndarray) or buf.dtype != np.float64:
        raise ValueError(f"{name} must be a float64 numpy array")
    if not buf.flags.c_contiguous or not buf.flags.writeable:
        raise ValueError(f"{name} must be a writeable C-contiguous array")


def fft_in_place(real: np.ndarray, imag: np.ndarray) -> None:
    """
    Compute the discrete Fourier transform of ``real + i*imag`` in place.

    Bit-reversal permutation followed by log2(N) butterfly stages. Both
    buffers are overwritten with the transform.

    Args:
        real: Real parts, shape (..., N), float64, C-contiguous
        imag: Imaginary parts, same shape as ``real``

    Raises:
        ValueError: If N is not a power of two or the buffers are unusable
    """
    _check_buffer("real", real)
    _check_buffer("imag", imag)
    if real.shape != imag.shape:
        raise ValueError(f"Shape mismatch: {real.shape} vs {imag.shape}")

    n = real.shape[-1] if real.ndim else 0
    if not is_power_of_two(n):
        raise ValueError(f"Transform size must be a power of two, got {n}")
    if n == 1:
        return

    rev = bit_reversal_indices(n)
    real[...] = real[..., rev]
    imag[...] = imag[..., rev]

    lead = real.shape[:-1]
    size = 2
    while size <= n:
        half = size // 2
        wr, wi = _twiddles(size)

        # Views: each row splits into n/size butterflies of width ``size``
        r = real.reshape(lead + (n // size, size))
        i = imag.reshape(lead + (n // size, size))

        even_r = r[..., :half].copy()
        even_i = i[..., :half].copy()
        odd_r = r[..., half:]
        odd_i = i[..., half:]

        tr = odd_r * wr - odd_i * wi
        ti = odd_r * wi + odd_i * wr

        r[..., :half] = even_r + tr
        i[..., :half] = even_i + ti
        r[..., half:] = even_r - tr
        i[..., half:] = even_i - ti

        size *= 2


def magnitude_spectrum(frames: np.ndarray) -> np.ndarray:
    """
    Magnitude of the first N/2 bins of each frame.

    Args:
        frames: Real-valued samples, shape (N,) or (num_frames, N)

    Returns:
        np.ndarray: ``sqrt(re² + im²)``, shape (..., N/2), float64
    """
    real = np.array(frames, dtype=np.float64, order='C', copy=True)
    imag = np.zeros_like(real)
    fft_in_place(real, imag)

    half = real.shape[-1] // 2
    re = real[..., :half]
    im = imag[..., :half]
    return np.sqrt(re * re + im * im)


@lru_cache(maxsize=16)
def hann_window(size: int) -> np.ndarray:
    """
    Symmetric Hann window ``0.5 * (1 - cos(2*pi*i / (N - 1)))``.

    Returns a read-only cached array.
    """
    if size < 1:
        raise ValueError(f"Window size must be positive, got {size}")
    if size == 1:
        window = np.ones(1)
    else:
        window = 0.5 * (1.0 - np.cos(2.0 * math.pi * np.arange(size) / (size - 1)))
    window.setflags(write=False)
    return window


def bin_frequencies(fft_size: int, sample_rate: float) -> np.ndarray:
    """Center frequency (Hz) of each of the first ``fft_size/2`` bins."""
    return np.arange(fft_size // 2) * (sample_rate / fft_size)
