import unittest

import numpy as np
import pytest

from pitchstream.audio.pipeline import PipelineState, StreamingPipeline
from pitchstream.audio.window import SampleWindow, to_mono
from pitchstream.core.config import PitchConfig, Thresholds
from pitchstream.core.interfaces import IPitchEstimator
from pitchstream.note_types import PitchEstimate

from conftest import make_sine


class RecordingEstimator(IPitchEstimator):
    """Keeps a copy of every window it sees and never finds a pitch."""

    def __init__(self, result=None):
        self.windows = []
        self.result = result

    def estimate(self, samples, sample_rate):
        self.windows.append(np.array(samples))
        return self.result


class TestWindowing(unittest.TestCase):
    def setUp(self):
        self.events = []
        self.estimator = RecordingEstimator()
        self.pipeline = StreamingPipeline(
            sample_rate=44100, sink=self.events.append, estimator=self.estimator
        )

    def feed(self, signal, sizes):
        offset = 0
        for size in sizes:
            self.pipeline.process_chunk(signal[offset : offset + size])
            offset += size
        return offset

    def test_starts_idle(self):
        self.assertEqual(self.pipeline.state, PipelineState.IDLE)
        self.assertEqual(self.pipeline.buffered, 0)

    def test_remainder_stays_buffered(self):
        signal = np.arange(1057, dtype=np.float32)
        total = self.feed(signal, [100, 300, 7, 600, 50])

        self.assertEqual(len(self.estimator.windows), total // 512)
        self.assertEqual(self.pipeline.buffered, total % 512)
        self.assertEqual(self.pipeline.state, PipelineState.ACCUMULATING)

    def test_no_samples_lost_or_duplicated(self):
        signal = np.arange(3000, dtype=np.float32)
        self.feed(signal, [1, 511, 513, 1000, 3, 972])

        delivered = np.concatenate(self.estimator.windows)
        np.testing.assert_array_equal(delivered, signal[: len(delivered)])
        self.assertEqual(len(delivered) + self.pipeline.buffered, 3000)

    def test_exact_window_returns_to_idle(self):
        windows = self.pipeline.process_chunk(np.ones(512, dtype=np.float32))
        self.assertEqual(windows, 1)
        self.assertEqual(self.pipeline.state, PipelineState.IDLE)

    def test_one_chunk_many_windows(self):
        windows = self.pipeline.process_chunk(np.zeros(512 * 5 + 3, dtype=np.float32))
        self.assertEqual(windows, 5)
        self.assertEqual(self.pipeline.buffered, 3)
        self.assertEqual(self.pipeline.windows_analyzed, 5)
        self.assertEqual(self.pipeline.samples_received, 512 * 5 + 3)

    def test_empty_chunk(self):
        self.assertEqual(self.pipeline.process_chunk(np.zeros(0, dtype=np.float32)), 0)
        self.assertEqual(self.pipeline.state, PipelineState.IDLE)

    def test_close_discards_partial_window(self):
        self.pipeline.process_chunk(np.ones(300, dtype=np.float32))

        self.assertEqual(self.pipeline.close(), 300)
        self.assertEqual(self.pipeline.state, PipelineState.IDLE)
        self.assertEqual(self.estimator.windows, [])
        self.assertEqual(self.events, [])

    def test_multichannel_chunk_rejected(self):
        with self.assertRaises(ValueError):
            self.pipeline.process_chunk(np.zeros((256, 2), dtype=np.float32))


class TestOverlap(unittest.TestCase):
    def test_hop_controls_window_count(self):
        estimator = RecordingEstimator()
        pipeline = StreamingPipeline(
            sample_rate=44100,
            sink=lambda event: None,
            config=PitchConfig(hop_size=256),
            estimator=estimator,
        )
        signal = np.arange(2048, dtype=np.float32)
        for start in range(0, 2048, 100):
            pipeline.process_chunk(signal[start : start + 100])

        self.assertEqual(len(estimator.windows), 1 + (2048 - 512) // 256)
        for index, window in enumerate(estimator.windows):
            np.testing.assert_array_equal(window, signal[index * 256 : index * 256 + 512])
        self.assertEqual(pipeline.buffered, 256)


class TestReporting(unittest.TestCase):
    def test_sine_stream_reports_a4(self):
        events = []
        pipeline = StreamingPipeline(sample_rate=44100, sink=events.append)
        signal = make_sine(440.0, length=4096)
        for start in range(0, 4096, 300):
            pipeline.process_chunk(signal[start : start + 300])

        self.assertEqual(len(events), 8)
        self.assertTrue(all(event.label == "A4" for event in events))
        self.assertAlmostEqual(events[0].timestamp, 512 / 44100)
        self.assertAlmostEqual(events[-1].timestamp, 4096 / 44100)
        self.assertEqual(pipeline.notes_emitted, 8)

    def test_silence_emits_nothing_by_default(self):
        events = []
        pipeline = StreamingPipeline(sample_rate=44100, sink=events.append)
        pipeline.process_chunk(np.zeros(2048, dtype=np.float32))
        self.assertEqual(events, [])
        self.assertEqual(pipeline.windows_analyzed, 4)

    def test_silence_ticks_when_enabled(self):
        events = []
        pipeline = StreamingPipeline(
            sample_rate=44100, sink=events.append, config=PitchConfig(emit_silence=True)
        )
        pipeline.process_chunk(np.zeros(1024, dtype=np.float32))
        self.assertEqual(events, [None, None])

    def test_estimates_mapped_with_configured_reference(self):
        events = []
        pipeline = StreamingPipeline(
            sample_rate=44100,
            sink=events.append,
            config=PitchConfig(reference_a4=415.0),
            estimator=RecordingEstimator(PitchEstimate(frequency=440.0, clarity=0.8)),
        )
        pipeline.process_chunk(np.zeros(512, dtype=np.float32))

        self.assertEqual(len(events), 1)
        self.assertEqual((events[0].name, events[0].octave), ("A#", 4))
        self.assertEqual(events[0].frequency, 440.0)
        self.assertEqual(events[0].clarity, 0.8)

    def test_thresholds_come_from_config(self):
        events = []
        config = PitchConfig(thresholds=Thresholds(power_threshold=1000.0))
        pipeline = StreamingPipeline(sample_rate=44100, sink=events.append, config=config)
        pipeline.process_chunk(make_sine(440.0, length=1024))
        self.assertEqual(events, [])

    def test_invalid_sample_rate(self):
        with self.assertRaises(ValueError):
            StreamingPipeline(sample_rate=0, sink=lambda event: None)


def test_sample_window_fill_and_advance():
    window = SampleWindow(8)
    chunk = np.arange(10, dtype=np.float32)

    assert window.fill(chunk) == 8
    assert window.is_full
    assert window.fill(chunk, 8) == 0

    window.advance(6)
    np.testing.assert_array_equal(window.samples, [6, 7])
    assert window.fill(chunk, 8) == 2
    np.testing.assert_array_equal(window.samples, [6, 7, 8, 9])


def test_sample_window_view_is_read_only():
    window = SampleWindow(4)
    window.fill(np.ones(4, dtype=np.float32))
    with pytest.raises(ValueError):
        window.samples[0] = 2.0


def test_sample_window_rejects_bad_hop():
    window = SampleWindow(4)
    with pytest.raises(ValueError):
        window.advance(0)
    with pytest.raises(ValueError):
        window.advance(5)


def test_to_mono():
    stereo = np.array([[1.0, 0.0], [0.5, 0.5], [-1.0, 1.0]], dtype=np.float32)

    np.testing.assert_array_equal(to_mono(stereo), [0.5, 0.5, 0.0])
    np.testing.assert_array_equal(to_mono(stereo, channel=1), [0.0, 0.5, 1.0])
    np.testing.assert_array_equal(to_mono(stereo[:, :1]), [1.0, 0.5, -1.0])
    assert to_mono(stereo).dtype == np.float32
