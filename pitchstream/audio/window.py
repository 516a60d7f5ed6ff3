"""Fixed-capacity sample buffer forming one analysis window."""

from __future__ import annotations
from typing import Optional

import numpy as np


class SampleWindow:
    """A reusable buffer that fills up to exactly `size` samples.

    The buffer is allocated once; `advance` and `clear` reset it logically
    without reallocating.
    """

    def __init__(self, size: int) -> None:
        if size < 4 or size % 2:
            raise ValueError(f"window size must be an even number >= 4, got {size}")
        self.size = size
        self.padding_size = size // 2
        self._buffer = np.zeros(size, dtype=np.float32)
        self._filled = 0

    def __len__(self) -> int:
        return self._filled

    @property
    def is_full(self) -> bool:
        return self._filled == self.size

    @property
    def is_empty(self) -> bool:
        return self._filled == 0

    @property
    def samples(self) -> np.ndarray:
        """Read-only view of the buffered samples."""
        view = self._buffer[: self._filled]
        view.flags.writeable = False
        return view

    def fill(self, chunk: np.ndarray, start: int = 0) -> int:
        """Copy samples from chunk[start:] until the window is full.

        Returns:
            Number of samples consumed from the chunk
        """
        count = min(self.size - self._filled, len(chunk) - start)
        if count > 0:
            self._buffer[self._filled : self._filled + count] = chunk[start : start + count]
            self._filled += count
        return count

    def advance(self, hop: int) -> None:
        """Drop the oldest `hop` samples, keeping the rest as the new head."""
        if not 1 <= hop <= self.size:
            raise ValueError(f"hop must be within [1, {self.size}], got {hop}")
        keep = max(self._filled - hop, 0)
        if keep:
            self._buffer[:keep] = self._buffer[hop : hop + keep]
        self._filled = keep

    def clear(self) -> int:
        """Discard buffered samples and return how many were dropped."""
        dropped = self._filled
        self._filled = 0
        return dropped


def to_mono(indata: np.ndarray, channel: Optional[int] = None) -> np.ndarray:
    """Reduce a (frames x channels) block to a 1-D array.

    Args:
        indata: Audio block, 1-D or 2-D
        channel: Channel index to select, or None to average all channels

    Returns:
        1-D float32 array with one sample per frame
    """
    if indata.ndim == 1:
        return indata
    if channel is not None:
        return indata[:, channel]
    if indata.shape[1] == 1:
        return indata[:, 0]
    return indata.mean(axis=1, dtype=np.float32)
