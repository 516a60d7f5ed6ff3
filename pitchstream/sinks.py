"""Reporting sinks that take note events off the audio thread."""

from __future__ import annotations
import queue
import threading
from typing import Callable, Optional

import click

from .logger import get_logger
from .note_types import NoteEvent

logger = get_logger(__name__)

Handler = Callable[[Optional[NoteEvent]], None]

# Marks the end of the queue for the consumer thread
_STOP = object()


class QueueSink:
    """Bounded, non-blocking hand-off from the audio callback to a handler.

    Calling the sink never blocks: when the queue is full the event is
    dropped and counted. A single consumer thread delivers events to the
    handler in the order they were produced.
    """

    def __init__(self, handler: Handler, maxsize: int = 64) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._handler = handler
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._thread: Optional[threading.Thread] = None
        self.dropped = 0

    def __call__(self, event: Optional[NoteEvent]) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1
            logger.debug(f"Reporting queue full, dropped event ({self.dropped} total)")

    def start(self) -> None:
        """Start the consumer thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._consume, name="pitchstream-sink", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        """Deliver everything already queued, then stop the consumer thread."""
        if self._thread is None:
            return
        # The producer has stopped by now, so this put may wait for room
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("Reporting queue still full, abandoning reporting thread")
        else:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Reporting thread did not finish in time")
        self._thread = None

    def _consume(self) -> None:
        while True:
            event = self._queue.get()
            if event is _STOP:
                break
            try:
                self._handler(event)
            except Exception as e:  # pylint: disable=broad-except
                logger.error(f"Error in reporting handler: {e}", exc_info=True)


class ConsoleReporter:
    """Prints note events, and optionally "no pitch" ticks, to stdout."""

    def __init__(self, show_silence: bool = False) -> None:
        self.show_silence = show_silence

    def __call__(self, event: Optional[NoteEvent]) -> None:
        if event is None:
            if self.show_silence:
                click.echo("-")
            return
        click.echo(str(event))
