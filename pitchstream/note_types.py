"""Type definitions for the pitchstream project."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PitchEstimate:
    """A fundamental-frequency estimate for one analysis window."""

    frequency: float  # Frequency in Hz
    clarity: float  # Periodicity score (0-1, 1 = perfectly periodic)


@dataclass(frozen=True)
class NoteEvent:
    """A pitch estimate mapped onto the equal-tempered scale."""

    name: str  # Semitone label (e.g., 'C#')
    octave: int  # e.g. 4; may be negative below C0
    frequency: float  # Frequency in Hz
    clarity: float  # Periodicity score (0-1)
    timestamp: float = 0.0  # Seconds of audio consumed when the window completed

    @property
    def label(self) -> str:
        """Note name with octave (e.g., 'A4')."""
        return f"{self.name}{self.octave}"

    def __str__(self):
        return (
            f"Note: {self.label}, Frequency: {self.frequency:.2f} Hz, "
            f"Clarity: {self.clarity:.2f}"
        )
