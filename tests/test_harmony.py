"""Tests for the fixed-interval harmony voices."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from pi_composer import NOTES  # noqa: E402
from pi_composer.harmony import (  # noqa: E402
    FIFTH_INTERVAL,
    THIRD_INTERVAL,
    generate_harmonies,
    generate_harmony_line,
)


def test_single_note_harmonies():
    assert generate_harmonies(["C4"]) == (["E4"], ["G4"])


def test_pitch_class_wraps_within_octave():
    """Shifts wrap around the chromatic table without changing the octave."""

    third, fifth = generate_harmonies(["A4", "B3", "F#6"])
    assert third == ["C#4", "D#3", "A#6"]
    assert fifth == ["E4", "F#3", "C#6"]


def test_offsets_hold_for_every_pitch_class():
    melody = [f"{name}{octave}" for octave in (3, 5) for name in NOTES]
    third, fifth = generate_harmonies(melody)
    assert len(third) == len(fifth) == len(melody)
    for original, up_third, up_fifth in zip(melody, third, fifth):
        index = NOTES.index(original[:-1])
        assert up_third[:-1] == NOTES[(index + THIRD_INTERVAL) % 12]
        assert up_fifth[:-1] == NOTES[(index + FIFTH_INTERVAL) % 12]
        assert up_third[-1] == up_fifth[-1] == original[-1]


def test_empty_melody():
    assert generate_harmonies([]) == ([], [])


def test_malformed_tokens_pass_through():
    """Unparseable tokens are copied so the line keeps the melody's length."""

    assert generate_harmony_line(["Db4", "C", "C4"]) == ["Db4", "C", "E4"]


def test_custom_interval():
    assert generate_harmony_line(["C4", "G4"], interval=12) == ["C4", "G4"]
    assert generate_harmony_line(["C4"], interval=-1) == ["B4"]
