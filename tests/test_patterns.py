"""Tests for repeated-span detection in :mod:`pi_composer.patterns`.

The detector is pure, so these tests feed hand-built melodies and check the
ranked output directly: exact repeats, the fuzzy fallback for melodies with
no exact repeats, ordering, truncation and the short-input guard.
"""

import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from pi_composer import NOTES  # noqa: E402
from pi_composer.patterns import (  # noqa: E402
    MAX_PATTERNS,
    MIN_PATTERN_LENGTH,
    Pattern,
    detect_patterns,
)

EXAMPLE = ["D4", "E4", "F#4", "D4", "E4", "F#4", "G4", "A4"]


def test_repeated_triplet_ranks_first():
    """The repeated ``D4 E4 F#4`` span outranks its two-note sub-spans."""

    patterns = detect_patterns(EXAMPLE)
    assert patterns[0] == Pattern(start=0, length=3, repeats=2, significance=0.3)
    assert patterns[1:] == [
        Pattern(start=0, length=2, repeats=2, significance=0.2),
        Pattern(start=1, length=2, repeats=2, significance=0.2),
    ]


def test_short_sequences_yield_nothing():
    """Fewer notes than two minimal spans never produce patterns."""

    for length in range(2 * MIN_PATTERN_LENGTH):
        assert detect_patterns(["C4"] * length) == []


def test_input_is_not_modified():
    notes = list(EXAMPLE)
    detect_patterns(notes)
    assert notes == EXAMPLE


def test_results_are_capped_and_sorted():
    """Random melodies never return more than five patterns, best first."""

    rng = random.Random(1234)
    for _ in range(50):
        notes = [f"{rng.choice(NOTES[:4])}4" for _ in range(rng.randint(0, 60))]
        patterns = detect_patterns(notes)
        assert len(patterns) <= MAX_PATTERNS
        scores = [p.significance for p in patterns]
        assert scores == sorted(scores, reverse=True)
        for pattern in patterns:
            assert pattern.repeats >= 2
            assert 0 <= pattern.significance <= 1


def test_significance_is_capped_at_one():
    patterns = detect_patterns(["C4"] * 30)
    assert patterns[0].significance == 1
    # Long spans reach the cap first and are discovered after shorter ones.
    assert all(p.significance == 1 for p in patterns)
    assert [p.length for p in patterns] == [2, 3, 4, 5]


def test_fuzzy_fallback_when_nothing_repeats():
    """Ten notes without exact repeats fall back to loose window matching."""

    notes = ["C4", "D4", "E4", "F4", "C4", "G4", "A4", "D4", "B4", "E4"]
    assert detect_patterns(notes) == [
        Pattern(start=0, length=3, repeats=5, significance=0.75)
    ]


def test_fuzzy_scan_skips_ahead_after_each_match():
    """A registered window moves the scan three places on.

    The window at index 1 would also collect enough loose matches, so it only
    stays out of the result because the scan jumps from 0 straight to 3.
    """

    notes = ["C4", "D4", "E4", "C4", "F4", "D4", "G4", "E4", "A4", "C4", "B4", "D4"]
    assert detect_patterns(notes) == [
        Pattern(start=0, length=3, repeats=7, significance=1.0),
        Pattern(start=3, length=3, repeats=3, significance=0.45),
    ]


def test_fuzzy_fallback_needs_ten_notes():
    notes = ["C4", "D4", "E4", "F4", "C4", "G4", "A4", "D4", "B4"]
    assert detect_patterns(notes) == []


def test_alternative_calibration_can_be_requested():
    """Span range and normalizer are keyword arguments."""

    patterns = detect_patterns(EXAMPLE, min_length=3, max_length=8, normalizer=50)
    assert patterns == [Pattern(start=0, length=3, repeats=2, significance=0.12)]


def test_limit_argument():
    patterns = detect_patterns(["C4", "D4"] * 10, limit=2)
    assert len(patterns) == 2


def test_pattern_to_dict():
    pattern = Pattern(start=1, length=2, repeats=3, significance=0.3)
    assert pattern.to_dict() == {
        "start": 1,
        "length": 2,
        "repeats": 3,
        "significance": 0.3,
    }
    # Positions and counts stay integers so JSON clients see ``1`` not ``1.0``.
    assert all(
        type(pattern.to_dict()[key]) is int for key in ("start", "length", "repeats")
    )
