import json
import threading

import numpy as np
import pytest
import soundfile as sf
from click.testing import CliRunner

from pitchstream.cli.main import cli
from pitchstream.core.config import PitchConfig
from pitchstream.core.errors import AudioStartupError
from pitchstream.core.interfaces import IAudioInput
from pitchstream.services.audio_providers import WavFileAudioProvider
from pitchstream.services.pitch_detection_service import PitchDetectionService

from conftest import make_sine


@pytest.fixture
def a4_wav(tmp_path):
    """One second of A4 on the left channel, silence on the right."""
    left = make_sine(440.0, length=44100)
    stereo = np.column_stack([left, np.zeros_like(left)])
    path = tmp_path / "a4.wav"
    sf.write(str(path), stereo, 44100, subtype="FLOAT")
    return str(path)


def run_file(path, **provider_kwargs):
    events = []
    provider = WavFileAudioProvider(path, chunk_size=300, **provider_kwargs)
    service = PitchDetectionService(provider, events.append, PitchConfig(), queue_size=256)
    service.run(duration=10.0)
    return service, events


def test_file_stream_reports_notes(a4_wav):
    service, events = run_file(a4_wav, channel=0)

    assert not service.is_running()
    assert service.pipeline.windows_analyzed == 44100 // 512
    assert len(events) == 44100 // 512
    assert {event.label for event in events} == {"A4"}
    assert all(event.frequency == pytest.approx(440.0, rel=0.01) for event in events)
    # Events arrive in window order
    timestamps = [event.timestamp for event in events]
    assert timestamps == sorted(timestamps)


def test_downmixed_file_still_detected(a4_wav):
    # Averaging halves the amplitude; energy stays well above the gate
    _, events = run_file(a4_wav)
    assert events and {event.label for event in events} == {"A4"}


def test_silent_channel_reports_nothing(a4_wav):
    _, events = run_file(a4_wav, channel=1)
    assert events == []


def test_invalid_channel(a4_wav):
    with pytest.raises(ValueError):
        WavFileAudioProvider(a4_wav, channel=2)


def test_provider_metadata(a4_wav):
    provider = WavFileAudioProvider(a4_wav)
    assert provider.sample_rate == 44100
    assert provider.channels == 2
    assert provider.frames == 44100
    assert not provider.is_running()


def test_partial_window_discarded_at_end(a4_wav):
    service, _ = run_file(a4_wav, channel=0)
    # Stop releases the buffered tail without analyzing it
    assert service.pipeline.buffered == 0
    assert service.pipeline.samples_received == 44100


def test_request_stop_wakes_wait(a4_wav):
    provider = WavFileAudioProvider(a4_wav, realtime=True)
    service = PitchDetectionService(provider, lambda event: None)
    service.start()
    service.request_stop()
    assert service.wait(timeout=1.0)
    service.stop()
    assert not provider.is_running()


def test_cli_analyze(a4_wav, tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        cli, ["analyze", a4_wav, "--channel", "0", "--config-dir", str(tmp_path / "config")]
    )

    assert result.exit_code == 0, result.output
    lines = [line for line in result.output.splitlines() if line.startswith("Note:")]
    assert len(lines) == 44100 // 512
    assert all(line.startswith("Note: A4,") for line in lines)


def test_cli_analyze_rejects_bad_window(a4_wav, tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["analyze", a4_wav, "--window-size", "511", "--config-dir", str(tmp_path / "config")],
    )
    assert result.exit_code != 0


def test_chunks_are_file_samples(a4_wav):
    chunks = []
    finished = threading.Event()
    provider = WavFileAudioProvider(a4_wav, chunk_size=300, channel=0)

    provider.start(chunks.append, finished.set)
    assert finished.wait(5)
    provider.join(1)

    assert all(len(chunk) == 300 for chunk in chunks[:-1])
    np.testing.assert_allclose(
        np.concatenate(chunks), make_sine(440.0, length=44100), atol=1e-7
    )


class FailingInput(IAudioInput):
    def start(self, on_chunk, on_finished=None):
        raise AudioStartupError("Device unavailable")

    def stop(self):
        pass

    def is_running(self):
        return False

    @property
    def sample_rate(self):
        return 44100


def test_failed_start_stops_reporting_thread():
    before = threading.active_count()
    service = PitchDetectionService(FailingInput(), lambda event: None)

    with pytest.raises(AudioStartupError):
        service.run(duration=1.0)

    assert not service.is_running()
    assert threading.active_count() == before


def test_cli_analyze_silence_ticks_from_config_file(a4_wav, tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "pitch_estimator.json").write_text(json.dumps({"emit_silence": True}))

    result = CliRunner().invoke(
        cli, ["analyze", a4_wav, "--channel", "1", "--config-dir", str(config_dir)]
    )

    assert result.exit_code == 0, result.output
    ticks = [line for line in result.output.splitlines() if line == "-"]
    assert len(ticks) == 44100 // 512
