"""pitchstream: real-time monophonic pitch tracking with the McLeod pitch method."""

from .audio.mcleod import McLeodPitchEstimator
from .audio.pipeline import StreamingPipeline, PipelineState
from .audio.window import SampleWindow
from .core.config import PitchConfig, Thresholds
from .note_types import NoteEvent, PitchEstimate
from .note_utils import NoteMapper, NOTES, frequency_to_note, get_note_name

__version__ = "0.1.0"

__all__ = [
    "McLeodPitchEstimator",
    "StreamingPipeline",
    "PipelineState",
    "SampleWindow",
    "PitchConfig",
    "Thresholds",
    "NoteEvent",
    "PitchEstimate",
    "NoteMapper",
    "NOTES",
    "frequency_to_note",
    "get_note_name",
]
