"""Utility functions for working with musical notes and frequencies."""

import math
from typing import ClassVar, List, Tuple, TypeAlias

NoteName: TypeAlias = str

NOTES: List[NoteName] = [
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
]


def _round_half_away(value: float) -> int:
    # Python's round() is banker's rounding; note boundaries round up in magnitude
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


class NoteMapper:
    """Maps frequencies onto 12-tone equal temperament.

    Octave 0 starts at C0, four octaves and nine semitones below the A4
    reference.
    """

    A4_FREQ: ClassVar[float] = 440.0
    C0_OFFSET_OCTAVES: ClassVar[float] = 4.75

    def __init__(self, reference_a4: float = A4_FREQ) -> None:
        if not math.isfinite(reference_a4) or reference_a4 <= 0:
            raise ValueError(f"reference_a4 must be a positive frequency, got {reference_a4}")
        self.reference_a4 = float(reference_a4)
        self.c0 = self.reference_a4 * 2 ** -self.C0_OFFSET_OCTAVES

    def semitones_from_c0(self, frequency: float) -> int:
        """Nearest whole number of semitones between C0 and frequency.

        Raises:
            ValueError: If frequency is not a finite positive number
        """
        if not math.isfinite(frequency) or frequency <= 0:
            raise ValueError(f"frequency must be a finite positive number, got {frequency}")
        return _round_half_away(12 * math.log2(frequency / self.c0))

    def map(self, frequency: float) -> Tuple[NoteName, int]:
        """Convert a frequency in Hz to (note name, octave).

        Frequencies below C0 give negative octaves; the note name is always valid.

        Examples:
            >>> NoteMapper().map(440.0)
            ('A', 4)
        """
        h = self.semitones_from_c0(frequency)
        octave, semitone = divmod(h, 12)
        return NOTES[semitone], octave

    def note_frequency(self, name: NoteName, octave: int) -> float:
        """Equal-tempered frequency of a note under this tuning.

        Raises:
            ValueError: If name is not one of NOTES
        """
        try:
            semitone = NOTES.index(name)
        except ValueError:
            raise ValueError(f"Unknown note name: {name!r}") from None
        return self.c0 * 2 ** ((octave * 12 + semitone) / 12)


def frequency_to_note(frequency: float, reference_a4: float = 440.0) -> Tuple[NoteName, int]:
    """Convert frequency to (note name, octave) with the given A4 reference."""
    return NoteMapper(reference_a4).map(frequency)


def get_note_name(freq: float, reference_a4: float = 440.0) -> str:
    """Convert frequency to a note label with octave (e.g., 'A4', 'C#3').

    Args:
        freq: Frequency in Hz, finite and positive
        reference_a4: Tuning reference for A4 in Hz

    Returns:
        Note label such as 'A4'; octaves below zero render as 'D#-1'
    """
    name, octave = frequency_to_note(freq, reference_a4)
    return f"{name}{octave}"
