"""Main entry point for the pitchstream CLI."""

import signal
import sys
from contextlib import contextmanager
from typing import Optional

import click

from ..core.config import ConfigManager
from ..core.errors import AudioStartupError
from ..logger import get_logger
from ..logging_config import setup_logging
from ..services.audio_providers import WavFileAudioProvider
from ..services.pitch_detection_service import PitchDetectionService
from ..sinks import ConsoleReporter

logger = get_logger(__name__)


def tuning_options(func):
    """Shared options for the estimator configuration."""
    options = [
        click.option("--window-size", type=int, default=None, help="Samples per analysis window (default: 512)"),
        click.option("--hop-size", type=int, default=None, help="Samples between window starts (default: window size, no overlap)"),
        click.option("--power-threshold", type=float, default=None, help="Minimum window energy (default: 1.0)"),
        click.option("--clarity-threshold", type=float, default=None, help="Minimum clarity 0-1 (default: 0.3)"),
        click.option("--a4", "reference_a4", type=float, default=None, help="Tuning reference for A4 in Hz (default: 440)"),
        click.option("--show-silence", is_flag=True, help="Print a tick for windows without a pitch"),
        click.option("--config-dir", type=click.Path(file_okay=False), default=None, help="Configuration directory"),
        click.option("--debug", is_flag=True, help="Enable debug logging"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _pitch_config(config_manager, window_size, hop_size, power_threshold, clarity_threshold, reference_a4, show_silence):
    return config_manager.pitch_config(
        window_size=window_size,
        hop_size=hop_size,
        power_threshold=power_threshold,
        clarity_threshold=clarity_threshold,
        reference_a4=reference_a4,
        emit_silence=True if show_silence else None,
    )


def _startup_failed(error: Exception):
    logger.error(f"Cannot start audio input: {error}")
    click.echo(f"Error: cannot start audio input: {error}", err=True)
    sys.exit(1)


@contextmanager
def _stop_on_signals(service: PitchDetectionService):
    """Route SIGINT/SIGTERM to the service while the block runs."""

    def handle(signum, _frame):
        logger.info(f"Received signal {signum}, stopping")
        service.request_stop()

    previous = {sig: signal.signal(sig, handle) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


@click.group()
def cli():
    """pitchstream - real-time monophonic pitch tracking."""


@cli.command()
@click.option("--device", type=int, default=None, help="Audio input device ID (default: system default)")
@click.option("--sample-rate", type=int, default=None, help="Preferred sample rate in Hz (default: 44100)")
@click.option("--channel", type=int, default=None, help="Input channel to analyze (default: average all)")
@click.option("--duration", "-t", type=float, default=None, help="Stop after this many seconds (default: run until interrupted)")
@tuning_options
def listen(device, sample_rate, channel, duration, window_size, hop_size, power_threshold,
           clarity_threshold, reference_a4, show_silence, config_dir, debug):
    """Track the pitch of the live input signal."""
    setup_logging("DEBUG" if debug else None)
    config_manager = ConfigManager(config_dir)

    try:
        config = _pitch_config(config_manager, window_size, hop_size, power_threshold,
                               clarity_threshold, reference_a4, show_silence)
        audio_config = config_manager.audio_input_config(
            device_id=device, sample_rate=sample_rate, channel=channel
        )
        if channel is not None:
            audio_config["channels"] = max(audio_config.get("channels") or 1, channel + 1)
        # Loading sounddevice fails with OSError when PortAudio is missing
        from ..audio.audio_input import SoundDeviceInput

        audio_input = SoundDeviceInput(**audio_config)
    except ValueError as e:
        raise click.BadParameter(str(e))
    except (AudioStartupError, OSError) as e:
        _startup_failed(e)

    click.echo(f"Using input device: {audio_input.device_name}")
    click.echo(f"Sample rate: {audio_input.sample_rate} Hz")
    click.echo(f"Channels: {audio_input.channels}")
    click.echo(f"Sample format: {audio_input.sample_format}")

    service = PitchDetectionService(audio_input, ConsoleReporter(config.emit_silence), config)
    with _stop_on_signals(service):
        try:
            service.run(duration)
        except AudioStartupError as e:
            _startup_failed(e)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--channel", type=int, default=None, help="Channel to analyze (default: average all)")
@click.option("--realtime", is_flag=True, help="Pace delivery at the file's sample rate")
@tuning_options
def analyze(path, channel, realtime, window_size, hop_size, power_threshold,
            clarity_threshold, reference_a4, show_silence, config_dir, debug):
    """Track the pitch of an audio file."""
    setup_logging("DEBUG" if debug else None)
    config_manager = ConfigManager(config_dir)

    try:
        config = _pitch_config(config_manager, window_size, hop_size, power_threshold,
                               clarity_threshold, reference_a4, show_silence)
        provider = WavFileAudioProvider(path, chunk_size=config.window_size,
                                        realtime=realtime, channel=channel)
    except (ValueError, RuntimeError) as e:
        raise click.BadParameter(str(e))

    # Unpaced replay outruns the console, so size the queue for every window in the file
    queue_size = 64 if realtime else provider.frames // config.effective_hop_size + 1
    service = PitchDetectionService(provider, ConsoleReporter(config.emit_silence), config,
                                    queue_size=max(queue_size, 1))
    with _stop_on_signals(service):
        service.run()


@cli.command()
def devices():
    """List input devices and the sample rates they accept."""
    import sounddevice as sd

    from ..audio.audio_input import list_input_devices

    for device in list_input_devices():
        click.echo(f"Device {device['index']}: {device['name']}")
        click.echo(f"  Max input channels: {device['max_input_channels']}")
        click.echo(f"  Default sample rate: {device['default_samplerate']} Hz")
        for rate in [8000, 16000, 22050, 44100, 48000, 96000]:
            try:
                sd.check_input_settings(device=device["index"], samplerate=rate,
                                        channels=1, dtype="float32")
                click.echo(f"    {rate} Hz: Supported")
            except (ValueError, sd.PortAudioError) as e:
                click.echo(f"    {rate} Hz: Not supported ({e})")
        click.echo()

    click.echo(f"Default input device: {sd.default.device[0]}")


def main(args: Optional[list] = None) -> int:
    """Run the CLI and return its exit code."""
    try:
        cli.main(args=args, prog_name="pitchstream", standalone_mode=False)
    except click.exceptions.Abort:
        return 1
    except click.ClickException as e:
        e.show()
        return e.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
