"""Exception hierarchy for pitchstream."""


class PitchStreamError(Exception):
    """Base class for pitchstream errors."""


class AudioStartupError(PitchStreamError):
    """The audio environment cannot be used; startup must abort."""


class NoInputDeviceError(AudioStartupError):
    """No audio input device is available."""


class UnsupportedConfigurationError(AudioStartupError):
    """No sample rate / channel configuration is accepted by the device."""


class UnsupportedSampleFormatError(AudioStartupError):
    """The selected sample format is not normalized floating point."""

    def __init__(self, sample_format: str):
        super().__init__(
            f"Unsupported sample format '{sample_format}': "
            "only normalized float32 samples are accepted"
        )
        self.sample_format = sample_format
