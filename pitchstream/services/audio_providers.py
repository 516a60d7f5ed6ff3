import threading
from typing import Optional

import soundfile as sf

from pitchstream.audio.window import to_mono
from pitchstream.core.interfaces import IAudioInput, ChunkCallback, FinishedCallback
from pitchstream.logger import get_logger

logger = get_logger(__name__)


class WavFileAudioProvider(IAudioInput):
    """Provides audio data by reading from an audio file."""

    def __init__(
        self,
        file_path: str,
        chunk_size: int = 512,
        realtime: bool = False,
        channel: Optional[int] = None,
    ):
        self._file_path = file_path
        self._chunk_size = chunk_size
        self._realtime = realtime
        self._channel = channel
        self._on_chunk: Optional[ChunkCallback] = None
        self._on_finished: Optional[FinishedCallback] = None
        self._stop_requested = threading.Event()
        self._thread: Optional[threading.Thread] = None

        with sf.SoundFile(self._file_path) as f:
            self._sample_rate = f.samplerate
            self._channels = f.channels
            self._frames = f.frames

        if self._channel is not None and not 0 <= self._channel < self._channels:
            raise ValueError(
                f"Channel {self._channel} not in file with {self._channels} channel(s)"
            )

    def start(
        self, on_chunk: ChunkCallback, on_finished: Optional[FinishedCallback] = None
    ) -> None:
        if self.is_running():
            return

        self._on_chunk = on_chunk
        self._on_finished = on_finished
        self._stop_requested.clear()
        self._thread = threading.Thread(
            target=self._stream_data, name="pitchstream-file", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_requested.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None

    def is_running(self) -> bool:
        """Returns True if the provider is currently streaming data."""
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the file to be fully delivered."""
        if self._thread:
            self._thread.join(timeout)

    def _stream_data(self) -> None:
        try:
            with sf.SoundFile(self._file_path) as f:
                for block in f.blocks(
                    blocksize=self._chunk_size, dtype="float32", always_2d=True
                ):
                    if self._stop_requested.is_set():
                        break

                    chunk = to_mono(block, self._channel)
                    self._on_chunk(chunk)

                    if self._realtime:
                        # Simulate real-time playback speed
                        self._stop_requested.wait(len(chunk) / self._sample_rate)
        except sf.LibsndfileError as e:
            logger.error(f"Error streaming audio file {self._file_path}: {e}")
        finally:
            if self._on_finished:
                self._on_finished()

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def frames(self) -> int:
        return self._frames
