"""McLeod pitch method (MPM) estimator.

The estimator computes the normalized square-difference function (NSDF) of a
window, picks the first key maximum close enough to the highest one, and
refines its lag with parabolic interpolation. All working buffers are
allocated once per instance and overwritten on every call.
"""

from __future__ import annotations
from typing import Optional, ClassVar, List, Tuple

import numpy as np

from ..core.config import Thresholds
from ..core.interfaces import IPitchEstimator
from ..note_types import PitchEstimate


def parabolic_peak(y_minus: float, y0: float, y_plus: float) -> Tuple[float, float]:
    """Vertex of the parabola through three equally spaced points.

    Returns:
        (offset, height): offset in samples relative to the centre point, and
        the interpolated height at that offset
    """
    denom = y_minus - 2.0 * y0 + y_plus
    if denom == 0:
        return 0.0, y0
    offset = 0.5 * (y_minus - y_plus) / denom
    return offset, y0 - 0.25 * (y_minus - y_plus) * offset


def key_maxima(nsdf: np.ndarray) -> List[int]:
    """Lags of the highest NSDF value in each positive region.

    The lobe around lag 0 is skipped; only regions entered through a
    positive-going zero crossing count. A maximum on the last lag is
    dropped since it has no right neighbour.
    """
    positive = nsdf > 0
    ups = np.flatnonzero(~positive[:-1] & positive[1:]) + 1
    downs = np.flatnonzero(positive[:-1] & ~positive[1:]) + 1

    last = len(nsdf) - 1
    maxima = []
    for start in ups:
        i = np.searchsorted(downs, start)
        end = downs[i] if i < len(downs) else len(nsdf)
        peak = int(start + np.argmax(nsdf[start:end]))
        if peak < last:
            maxima.append(peak)
    return maxima


class McLeodPitchEstimator(IPitchEstimator):
    """Estimate the fundamental frequency of fixed-size sample windows."""

    DEFAULT_WINDOW_SIZE: ClassVar[int] = 512
    DEFAULT_KEY_MAXIMUM_FRACTION: ClassVar[float] = 0.9

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        thresholds: Optional[Thresholds] = None,
        key_maximum_fraction: float = DEFAULT_KEY_MAXIMUM_FRACTION,
    ) -> None:
        """Initialize the estimator and its scratch buffers.

        Args:
            window_size: Number of samples per analysis window (even)
            thresholds: Power and clarity gates, or None for the defaults
            key_maximum_fraction: Fraction of the highest key maximum a peak
                must reach to be chosen (lower favours the fundamental)
        """
        if window_size < 4 or window_size % 2:
            raise ValueError(f"window_size must be an even number >= 4, got {window_size}")
        if not 0.0 < key_maximum_fraction <= 1.0:
            raise ValueError("key_maximum_fraction must be within (0, 1]")

        self.window_size = window_size
        self.padding_size = window_size // 2
        self.thresholds = thresholds or Thresholds()
        self.key_maximum_fraction = key_maximum_fraction

        # Lags beyond padding_size would wrap around the FFT buffer
        self._lag_count = window_size - self.padding_size
        self._padded = np.zeros(window_size + self.padding_size, dtype=np.float64)
        self._squares = np.empty(window_size, dtype=np.float64)
        self._cumulative = np.zeros(window_size + 1, dtype=np.float64)
        self._norm = np.empty(self._lag_count, dtype=np.float64)
        self._nsdf = np.empty(self._lag_count, dtype=np.float64)

    def _load(self, samples) -> np.ndarray:
        samples = np.asarray(samples)
        if samples.shape != (self.window_size,):
            raise ValueError(
                f"Expected a window of {self.window_size} samples, got shape {samples.shape}"
            )
        signal = self._padded[: self.window_size]
        np.copyto(signal, samples, casting="same_kind")
        self._padded[self.window_size :] = 0.0
        return signal

    def _compute_nsdf(self, signal: np.ndarray) -> np.ndarray:
        n = self.window_size
        lags = self._lag_count

        spectrum = np.fft.rfft(self._padded)
        autocorrelation = np.fft.irfft(spectrum.real**2 + spectrum.imag**2, n=len(self._padded))

        # m(tau) = sum(x[j]^2, j < n - tau) + sum(x[j]^2, j >= tau)
        np.square(signal, out=self._squares)
        np.cumsum(self._squares, out=self._cumulative[1:])
        cumulative = self._cumulative
        np.copyto(self._norm, cumulative[n : n - lags : -1])
        self._norm += cumulative[n]
        self._norm -= cumulative[:lags]

        self._nsdf.fill(0.0)
        np.divide(autocorrelation[:lags], self._norm, out=self._nsdf, where=self._norm > 0)
        self._nsdf *= 2.0
        return self._nsdf

    def normalized_square_difference(self, samples) -> np.ndarray:
        """NSDF of a window for lags 0 .. window_size - padding_size - 1.

        The returned array is a scratch buffer owned by the estimator and is
        overwritten by the next call; copy it to keep it.
        """
        return self._compute_nsdf(self._load(samples))

    def power(self, samples) -> float:
        """Energy (sum of squares) of a window."""
        signal = self._load(samples)
        return float(np.dot(signal, signal))

    def estimate(self, samples, sample_rate: int) -> Optional[PitchEstimate]:
        """Estimate the fundamental frequency of one window.

        Args:
            samples: Exactly window_size normalized float samples
            sample_rate: Sample rate in Hz

        Returns:
            PitchEstimate, or None for silence or insufficiently periodic input

        Raises:
            ValueError: If the window has the wrong size or sample_rate is not positive
        """
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")

        signal = self._load(samples)

        # Silence gate; also guarantees a non-zero normaliser below
        if float(np.dot(signal, signal)) < self.thresholds.power_threshold or not signal.any():
            return None

        nsdf = self._compute_nsdf(signal)
        candidates = key_maxima(nsdf)
        if not candidates:
            return None

        heights = nsdf[candidates]
        cutoff = self.key_maximum_fraction * heights.max()
        lag = candidates[int(np.argmax(heights >= cutoff))]

        offset, height = parabolic_peak(nsdf[lag - 1], nsdf[lag], nsdf[lag + 1])
        clarity = min(max(float(height), 0.0), 1.0)
        if clarity < self.thresholds.clarity_threshold:
            return None

        return PitchEstimate(frequency=float(sample_rate / (lag + offset)), clarity=clarity)
