"""Parallel harmony voices for a melody.

Every note is shifted by a fixed number of semitones within its own octave.
The "third" voice uses four semitones (a major third regardless of the scale
the melody came from) and the "fifth" voice seven.

Example
-------
>>> generate_harmonies(["C4", "A4"])
(['E4', 'C#4'], ['G4', 'E4'])
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from . import NOTES
from .note_utils import join_note, split_note

__all__ = ["generate_harmony_line", "generate_harmonies", "THIRD_INTERVAL", "FIFTH_INTERVAL"]

THIRD_INTERVAL = 4
FIFTH_INTERVAL = 7


def generate_harmony_line(melody: Sequence[str], interval: int = THIRD_INTERVAL) -> List[str]:
    """Return a harmony line ``interval`` semitones above ``melody``.

    The pitch class wraps around the octave while the octave digit is kept,
    so ``A4`` shifted by four becomes ``C#4`` rather than ``C#5``. Tokens that
    cannot be parsed are copied unchanged so the line always matches the
    melody's length.

    @param melody (Sequence[str]): Base melody to harmonize.
    @param interval (int): Interval offset in semitones.
    @returns List[str]: Harmony melody line.
    """
    harmony = []
    for note in melody:
        name, octave = split_note(note)
        if octave is None or name not in NOTES:
            harmony.append(note)
            continue
        shifted = NOTES[(NOTES.index(name) + interval) % 12]
        harmony.append(join_note(shifted, octave))
    return harmony


def generate_harmonies(melody: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Return the ``(third, fifth)`` harmony voices for ``melody``."""

    return (
        generate_harmony_line(melody, THIRD_INTERVAL),
        generate_harmony_line(melody, FIFTH_INTERVAL),
    )
