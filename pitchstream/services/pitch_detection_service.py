"""Pitch detection service that integrates an audio source, the pipeline and a sink."""

from __future__ import annotations
import threading
from typing import Optional

import numpy as np

from ..audio.pipeline import StreamingPipeline
from ..core.config import PitchConfig
from ..core.interfaces import IAudioInput, ReportingSink
from ..logger import get_logger
from ..sinks import QueueSink

logger = get_logger(__name__)


class PitchDetectionService:
    """Facade wiring an audio source to the streaming pipeline.

    The pipeline is built once the source's sample rate is known and lives
    for the whole stream. Reporting goes through a QueueSink so the audio
    callback never waits on the consumer.
    """

    def __init__(
        self,
        audio_input: IAudioInput,
        handler: ReportingSink,
        config: Optional[PitchConfig] = None,
        queue_size: int = 64,
    ) -> None:
        """Initialize the pitch detection service.

        Args:
            audio_input: Source of mono float32 chunks
            handler: Consumer of note events, called on the reporting thread
            config: Pipeline configuration, or None for defaults
            queue_size: Capacity of the reporting queue
        """
        self._audio_input = audio_input
        self._config = config or PitchConfig()
        self._sink = QueueSink(handler, maxsize=queue_size)
        self._pipeline: Optional[StreamingPipeline] = None
        self._finished = threading.Event()
        self._running = False

    @property
    def pipeline(self) -> Optional[StreamingPipeline]:
        return self._pipeline

    @property
    def dropped_events(self) -> int:
        return self._sink.dropped

    def start(self) -> None:
        """Start the reporting thread and the audio source."""
        if self._running:
            logger.warning("Pitch detection already running")
            return

        self._pipeline = StreamingPipeline(
            sample_rate=self._audio_input.sample_rate,
            sink=self._sink,
            config=self._config,
        )
        self._finished.clear()
        self._sink.start()
        try:
            self._audio_input.start(self._process_audio, self._input_finished)
        except Exception:
            self._sink.stop()
            raise
        self._running = True
        logger.info(
            f"Pitch detection started: {self._audio_input.sample_rate} Hz, "
            f"window {self._config.window_size}, hop {self._config.effective_hop_size}"
        )

    def _process_audio(self, chunk: np.ndarray) -> None:
        self._pipeline.process_chunk(chunk)

    def _input_finished(self) -> None:
        logger.debug("Audio input reported end of stream")
        self._finished.set()

    def request_stop(self) -> None:
        """Wake up wait(); safe to call from signal handlers and other threads."""
        self._finished.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the input ends or a stop is requested.

        Returns:
            True if the stream finished or a stop was requested, False on timeout
        """
        return self._finished.wait(timeout)

    def stop(self) -> None:
        """Stop the source, drop any partial window and drain reporting."""
        if not self._running:
            return

        self._audio_input.stop()
        self._pipeline.close()
        self._sink.stop()
        self._running = False
        self._finished.set()
        logger.info(
            f"Pitch detection stopped: {self._pipeline.windows_analyzed} windows, "
            f"{self._pipeline.notes_emitted} notes, {self._sink.dropped} dropped"
        )

    def run(self, duration: Optional[float] = None) -> None:
        """Start, block until the input ends, a stop is requested or duration elapses, then stop."""
        self.start()
        try:
            self.wait(duration)
        finally:
            self.stop()

    def is_running(self) -> bool:
        return self._running
