"""Streaming pitch pipeline: chunks in, note events out."""

from __future__ import annotations
from enum import Enum, auto
from typing import Optional

import numpy as np

from ..core.config import PitchConfig
from ..core.interfaces import IPitchEstimator, ReportingSink
from ..logger import get_logger
from ..note_types import NoteEvent
from ..note_utils import NoteMapper
from .mcleod import McLeodPitchEstimator
from .window import SampleWindow

logger = get_logger(__name__)


class PipelineState(Enum):
    """Buffering state of the pipeline."""

    IDLE = auto()  # Nothing buffered
    ACCUMULATING = auto()  # Partial window buffered


class StreamingPipeline:
    """Assembles fixed-size windows from a sample stream and reports notes.

    One instance owns one window buffer and one long-lived estimator. Calls
    to `process_chunk` must be serialized; the audio callback contract
    guarantees this, so no locking is done here.
    """

    def __init__(
        self,
        sample_rate: int,
        sink: ReportingSink,
        config: Optional[PitchConfig] = None,
        estimator: Optional[IPitchEstimator] = None,
        mapper: Optional[NoteMapper] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            sample_rate: Sample rate of the incoming stream in Hz
            sink: Non-blocking callable receiving NoteEvent (or None ticks)
            config: Pipeline configuration, or None for defaults
            estimator: Estimator instance, or None to build an MPM one from config
            mapper: Note mapper, or None to build one for config.reference_a4
        """
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")

        self.config = config or PitchConfig()
        self.sample_rate = int(sample_rate)
        self._sink = sink
        self._estimator = estimator or McLeodPitchEstimator(
            window_size=self.config.window_size,
            thresholds=self.config.thresholds,
            key_maximum_fraction=self.config.key_maximum_fraction,
        )
        self._mapper = mapper or NoteMapper(self.config.reference_a4)
        self._window = SampleWindow(self.config.window_size)
        self._hop = self.config.effective_hop_size

        self.samples_received = 0
        self.windows_analyzed = 0
        self.notes_emitted = 0

    @property
    def state(self) -> PipelineState:
        return PipelineState.IDLE if self._window.is_empty else PipelineState.ACCUMULATING

    @property
    def buffered(self) -> int:
        """Number of samples waiting for the current window to fill."""
        return len(self._window)

    def process_chunk(self, samples: np.ndarray) -> int:
        """Consume one chunk of mono samples.

        Args:
            samples: 1-D array of normalized float samples, any length

        Returns:
            Number of windows analyzed while consuming this chunk

        Raises:
            ValueError: If samples is not one-dimensional
        """
        chunk = np.asarray(samples, dtype=np.float32)
        if chunk.ndim != 1:
            raise ValueError(
                f"Expected mono samples (1-D), got shape {chunk.shape}; downmix first"
            )

        analyzed = 0
        offset = 0
        while offset < len(chunk):
            consumed = self._window.fill(chunk, offset)
            offset += consumed
            self.samples_received += consumed
            if self._window.is_full:
                self._analyze()
                self._window.advance(self._hop)
                analyzed += 1
        return analyzed

    def _analyze(self) -> None:
        self.windows_analyzed += 1
        estimate = self._estimator.estimate(self._window.samples, self.sample_rate)
        if estimate is None:
            if self.config.emit_silence:
                self._sink(None)
            return

        name, octave = self._mapper.map(estimate.frequency)
        event = NoteEvent(
            name=name,
            octave=octave,
            frequency=estimate.frequency,
            clarity=estimate.clarity,
            timestamp=self.samples_received / self.sample_rate,
        )
        self.notes_emitted += 1
        self._sink(event)

    def close(self) -> int:
        """Treat the input as finished and discard any partial window.

        Returns:
            Number of buffered samples dropped without analysis
        """
        dropped = self._window.clear()
        if dropped:
            logger.debug(f"Discarded {dropped} buffered samples at end of input")
        return dropped
