"""Utility functions for working with note tokens.

A note token is a pitch-class name followed by an octave digit, e.g. ``F#4``.
The helpers here split and rebuild such tokens for the enhancer and harmony
generator and convert them to MIDI numbers and frequencies for the outer
interfaces.

Example
-------
>>> from pi_composer.note_utils import split_note, note_to_midi
>>> split_note("F#4")
('F#', 4)
>>> note_to_midi("C4")
60
"""

# Modification Summary
# ---------------------
# * ``split_note`` mirrors the token convention used throughout the composer:
#   the final character is the octave digit. Tokens without a trailing digit
#   report ``None`` for the octave instead of raising so the core algorithms
#   can leave malformed input untouched.
# * Added ``note_frequency`` so the CLI and web API can report equal-tempered
#   frequencies alongside the generated notes.

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Optional, Tuple

from . import NOTE_TO_SEMITONE

__all__ = ["split_note", "join_note", "note_to_midi", "note_frequency"]

# Concert pitch reference used by ``note_frequency``.
A4_FREQUENCY = 440.0
A4_MIDI = 69


def split_note(note: str) -> Tuple[str, Optional[int]]:
    """Return ``(pitch_class, octave)`` for ``note``.

    The last character is treated as the octave digit, so octaves of ten or
    more are not representable. When the final character is not a digit the
    whole token is returned as the name and the octave is ``None``.
    """

    name, last = note[:-1], note[-1:]
    if last.isdigit():
        return name, int(last)
    return note, None


def join_note(name: str, octave: int) -> str:
    """Return the token for ``name`` at ``octave``."""

    return f"{name}{octave}"


@lru_cache(maxsize=None)
def note_to_midi(note: str) -> int:
    """Convert a note string such as ``C#4`` into a MIDI number.

    Parameters
    ----------
    note:
        Note name including octave. Octaves may be negative or contain
        multiple digits.

    Returns
    -------
    int
        MIDI note number in the range ``0-127``.

    Raises
    ------
    ValueError
        If ``note`` is not properly formatted or if the computed MIDI value
        falls outside the allowed ``0-127`` range.
    """

    # A letter A–G followed by an optional accidental and a signed integer
    # octave. Examples: ``C#4``, ``Gb9``, ``C-1``.
    match = re.fullmatch(r"([A-Ga-g][#b]?)(-?\d+)", note)
    if not match:
        logging.error("Invalid note format: %s", note)
        raise ValueError(f"Invalid note format: {note}")

    note_name, octave_str = match.groups()
    # MIDI's octave numbers are offset by one relative to scientific pitch
    # notation, hence the ``+ 1`` adjustment.
    octave = int(octave_str) + 1
    note_name = note_name.capitalize()

    try:
        note_idx = NOTE_TO_SEMITONE[note_name]
    except KeyError:
        logging.error("Unknown note name: %s", note_name)
        raise ValueError(f"Unknown note name: {note_name}")

    midi_val = note_idx + (octave * 12)
    if not 0 <= midi_val <= 127:
        logging.error("MIDI value out of range: %s -> %d", note, midi_val)
        raise ValueError(
            f"Computed MIDI value {midi_val} out of range 0-127 for note {note}"
        )

    return midi_val


def note_frequency(note: str) -> float:
    """Return the equal-tempered frequency of ``note`` in hertz.

    ``A4`` maps to 440 Hz and every semitone multiplies the frequency by the
    twelfth root of two.

    >>> round(note_frequency("A4"), 2)
    440.0
    >>> round(note_frequency("C4"), 2)
    261.63
    """

    return A4_FREQUENCY * 2 ** ((note_to_midi(note) - A4_MIDI) / 12)
