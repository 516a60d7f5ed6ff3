"""Defines the core interfaces for the pitchstream application."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional, Callable

import numpy as np

from ..note_types import NoteEvent, PitchEstimate

ChunkCallback = Callable[[np.ndarray], None]
FinishedCallback = Callable[[], None]
ReportingSink = Callable[[Optional[NoteEvent]], None]


class IAudioInput(ABC):
    """Interface for audio sources delivering mono float32 chunks."""

    @abstractmethod
    def start(
        self, on_chunk: ChunkCallback, on_finished: Optional[FinishedCallback] = None
    ) -> None:
        """Start delivering audio; on_finished fires once when input ends."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering audio."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if audio is being delivered."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The negotiated sample rate in Hz."""
        pass


class IPitchEstimator(ABC):
    """Interface for single-window pitch estimation algorithms."""

    @abstractmethod
    def estimate(self, samples: np.ndarray, sample_rate: int) -> Optional[PitchEstimate]:
        """Estimate the fundamental of one full window, or None if rejected."""
        pass
