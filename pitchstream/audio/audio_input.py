"""Audio capture glue between sounddevice and the pitch pipeline."""

from __future__ import annotations
import numpy as np
import sounddevice as sd
from typing import Optional, Dict, Any, List, ClassVar

from ..logger import get_logger
from ..core.errors import (
    AudioStartupError,
    NoInputDeviceError,
    UnsupportedConfigurationError,
    UnsupportedSampleFormatError,
)
from ..core.interfaces import IAudioInput, ChunkCallback, FinishedCallback
from .window import to_mono

logger = get_logger(__name__)

SUPPORTED_SAMPLE_FORMATS = ("float32",)


def list_input_devices() -> List[Dict[str, Any]]:
    """Return the host's input-capable devices with their index."""
    devices = []
    for device_id, device in enumerate(sd.query_devices()):
        if device["max_input_channels"] > 0:
            devices.append(dict(device, index=device_id))
    return devices


class SoundDeviceInput(IAudioInput):
    """Audio input handler using sounddevice library."""

    # Audio configuration
    SAMPLE_RATE: ClassVar[int] = 44100  # Hz
    FRAMES_PER_BUFFER: ClassVar[int] = 512  # Matches the default analysis window
    CHANNELS: ClassVar[int] = 1  # Mono audio
    FALLBACK_RATES: ClassVar[List[int]] = [44100, 48000, 22050, 16000, 8000]

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        frames_per_buffer: Optional[int] = None,
        channels: Optional[int] = None,
        channel: Optional[int] = None,
        sample_format: str = "float32",
    ) -> None:
        """Initialize the audio input handler and negotiate a configuration.

        Args:
            device_id: Audio input device ID, or None for the default input device
            sample_rate: Preferred sample rate in Hz, or None for default (44100)
            frames_per_buffer: Frames per callback, or None for default (512)
            channels: Number of channels to open, or None for default (1)
            channel: Channel to analyze, or None to average all channels
            sample_format: Sample format to request; only 'float32' is accepted

        Raises:
            NoInputDeviceError: If no input device is available
            UnsupportedConfigurationError: If no sample rate/channel setup works
            UnsupportedSampleFormatError: If sample_format is not normalized float
        """
        if sample_format not in SUPPORTED_SAMPLE_FORMATS:
            raise UnsupportedSampleFormatError(sample_format)

        self._device_id = device_id
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._frames_per_buffer = frames_per_buffer or self.FRAMES_PER_BUFFER
        self._channels = channels or self.CHANNELS
        self._channel = channel
        self._sample_format = sample_format

        self._stream: Optional[sd.InputStream] = None
        self._on_chunk: Optional[ChunkCallback] = None
        self._on_finished: Optional[FinishedCallback] = None
        self._running = False

        self._init_audio_device()

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def device_name(self) -> str:
        return self._device_info["name"]

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def sample_format(self) -> str:
        return self._sample_format

    def _init_audio_device(self) -> None:
        """Resolve the input device and pick the first working sample rate."""
        try:
            self._device_info = sd.query_devices(self._device_id, "input")
        except (ValueError, sd.PortAudioError) as e:
            raise NoInputDeviceError(f"No input device available: {e}") from e

        max_channels = int(self._device_info["max_input_channels"])
        if max_channels < 1:
            raise NoInputDeviceError(
                f"Device '{self._device_info['name']}' has no input channels"
            )
        if self._channels > max_channels:
            logger.warning(
                f"Device supports {max_channels} input channels, "
                f"reducing from {self._channels}"
            )
            self._channels = max_channels
        if self._channel is not None and not 0 <= self._channel < self._channels:
            raise UnsupportedConfigurationError(
                f"Channel {self._channel} not available with {self._channels} channel(s)"
            )

        # Requested rate first, then the common fallbacks
        rates = [self._sample_rate] + [
            r for r in self.FALLBACK_RATES if r != self._sample_rate
        ]
        for rate in rates:
            try:
                sd.check_input_settings(
                    device=self._device_id,
                    channels=self._channels,
                    dtype=self._sample_format,
                    samplerate=rate,
                )
            except (ValueError, sd.PortAudioError) as e:
                logger.warning(f"Sample rate {rate} Hz not supported: {e}")
                continue

            self._sample_rate = rate
            logger.info(
                f"Audio device initialized: {self._device_info['name']} "
                f"Rate={rate}Hz Channels={self._channels} Format={self._sample_format}"
            )
            return

        raise UnsupportedConfigurationError(
            f"Device '{self._device_info['name']}' accepts none of the sample rates {rates}"
        )

    def _audio_callback(
        self,
        indata: np.ndarray,
        _frames: int,
        _time_info,
        status: sd.CallbackFlags,
    ) -> None:
        """Callback for processing audio data from the input stream.

        Note:
            This is called from the audio thread; the chunk is handed on
            synchronously and nothing here may block.
        """
        if status:
            logger.warning(f"Audio callback status: {status}")

        if self._on_chunk:
            self._on_chunk(to_mono(indata, self._channel))

    def _stream_finished(self) -> None:
        self._running = False
        logger.info("Audio input stream finished")
        if self._on_finished:
            self._on_finished()

    def start(
        self, on_chunk: ChunkCallback, on_finished: Optional[FinishedCallback] = None
    ) -> None:
        """Start capturing audio and pass mono chunks to on_chunk.

        Args:
            on_chunk: Function called with each 1-D float32 chunk
            on_finished: Function called once when the stream ends

        Raises:
            AudioStartupError: If the input stream cannot be opened or started
        """
        if self._running:
            logger.warning("Audio input already running")
            return

        self._on_chunk = on_chunk
        self._on_finished = on_finished
        stream = None
        try:
            stream = sd.InputStream(
                device=self._device_id,
                samplerate=self._sample_rate,
                blocksize=self._frames_per_buffer,
                channels=self._channels,
                dtype=self._sample_format,
                callback=self._audio_callback,
                finished_callback=self._stream_finished,
            )
            stream.start()
        except sd.PortAudioError as e:
            if stream is not None:
                stream.close()
            raise AudioStartupError(
                f"Cannot open input stream on '{self.device_name}': {e}"
            ) from e

        self._stream = stream
        self._running = True
        logger.info(f"Audio input started with sample rate {self._sample_rate} Hz")

    def stop(self) -> None:
        """Stop capturing audio and release the stream."""
        if self._stream is None:
            return

        try:
            self._stream.stop()
        finally:
            self._stream.close()
            self._stream = None
            self._running = False
        logger.info("Audio input stopped")

    def is_running(self) -> bool:
        return self._running
