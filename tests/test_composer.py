"""Tests for the public :func:`pi_composer.enhance_composition` entry point.

These cover the complexity gate that decides how many patterns reach the
enhancer, the harmony flag and the JSON-ready result mapping.
"""

import logging
import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from pi_composer import composer  # noqa: E402
from pi_composer.composer import (  # noqa: E402
    CompositionOptions,
    CompositionResult,
    enhance_composition,
)
from pi_composer.patterns import Pattern  # noqa: E402

EXAMPLE = ["D4", "E4", "F#4", "D4", "E4", "F#4", "G4", "A4"]


class ExplodingRandom:
    """Random source that fails the test when consulted."""

    def random(self):
        raise AssertionError("random() should not be called")

    def randrange(self, stop):
        raise AssertionError("randrange() should not be called")


def _fake_patterns(count):
    return [Pattern(start=i, length=2, repeats=2, significance=0.9) for i in range(count)]


def test_zero_complexity_returns_input():
    """Complexity zero bypasses the enhancer but still reports patterns."""

    result = enhance_composition(
        CompositionOptions(EXAMPLE, complexity=0, harmony=False, variation=1.0),
        rng=ExplodingRandom(),
    )
    assert result.enhanced_notes == EXAMPLE
    assert Pattern(start=0, length=3, repeats=2, significance=0.3) in result.patterns
    assert result.harmonies is None


def test_harmony_flag_adds_voices_from_original_melody():
    result = enhance_composition(
        CompositionOptions(["C4", "D4"], complexity=0, harmony=True)
    )
    assert result.harmonies == (["E4", "F#4"], ["G4", "A4"])


def test_complexity_selects_top_patterns(monkeypatch):
    """The enhancer receives ``max(1, floor(n * complexity))`` patterns."""

    received = []

    def fake_enhance(notes, patterns, variation, rng=None):
        received.append(len(patterns))
        return list(notes)

    monkeypatch.setattr(composer, "detect_patterns", lambda notes: _fake_patterns(5))
    monkeypatch.setattr(composer, "enhance_melody", fake_enhance)

    for complexity in (0.1, 0.5, 0.99, 1.0):
        result = enhance_composition(CompositionOptions(EXAMPLE, complexity=complexity))
        # The full list is always reported back to the caller.
        assert len(result.patterns) == 5

    assert received == [1, 2, 4, 5]


def test_zero_complexity_skips_enhancer(monkeypatch):
    def fail(*_a, **_k):
        raise AssertionError("enhancer should be bypassed")

    monkeypatch.setattr(composer, "enhance_melody", fail)
    result = enhance_composition(CompositionOptions(EXAMPLE, complexity=0))
    assert result.enhanced_notes == EXAMPLE


def test_variation_is_forwarded(monkeypatch):
    seen = {}

    def fake_enhance(notes, patterns, variation, rng=None):
        seen["variation"] = variation
        seen["rng"] = rng
        return list(notes)

    monkeypatch.setattr(composer, "enhance_melody", fake_enhance)
    rng = random.Random(3)
    enhance_composition(CompositionOptions(EXAMPLE, complexity=1, variation=0.7), rng)
    assert seen == {"variation": 0.7, "rng": rng}


def test_out_of_range_controls_are_clamped(monkeypatch, caplog):
    seen = {}

    def fake_enhance(notes, patterns, variation, rng=None):
        seen["variation"] = variation
        return list(notes)

    monkeypatch.setattr(composer, "enhance_melody", fake_enhance)
    caplog.set_level(logging.WARNING)
    enhance_composition(CompositionOptions(EXAMPLE, complexity=3, variation=-1))
    assert seen["variation"] == 0.0
    assert "complexity" in caplog.text
    assert "variation" in caplog.text


def test_seeded_composition_is_reproducible():
    notes = ["C4", "D4", "E4"] * 10
    options = CompositionOptions(notes, complexity=1, variation=1)
    first = enhance_composition(options, random.Random(9))
    second = enhance_composition(options, random.Random(9))
    assert first.enhanced_notes == second.enhanced_notes
    assert len(first.enhanced_notes) >= len(notes)


def test_empty_melody():
    result = enhance_composition(CompositionOptions([], complexity=1, harmony=True))
    assert result.enhanced_notes == []
    assert result.patterns == []
    assert result.harmonies == ([], [])


def test_result_to_dict():
    result = CompositionResult(
        enhanced_notes=["C4"],
        patterns=[Pattern(start=0, length=2, repeats=2, significance=0.2)],
        harmonies=(["E4"], ["G4"]),
    )
    assert result.to_dict() == {
        "enhancedNotes": ["C4"],
        "patterns": [{"start": 0, "length": 2, "repeats": 2, "significance": 0.2}],
        "harmonies": [["E4"], ["G4"]],
    }
    assert CompositionResult(enhanced_notes=[]).to_dict()["harmonies"] is None
