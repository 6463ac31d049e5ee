"""Detection of repeated spans within a note sequence.

The detector slides windows of two to five notes across a melody and records
every span that occurs at least twice. Each span is scored by
``min(1, repeats * length / 20)`` so long or frequently repeated spans rank
highest. Only the five most significant spans are returned.

Melodies derived from π rarely contain long exact repeats, so when nothing
repeats exactly a looser pass compares three-note windows that merely share a
pitch with a reference window.

Example
-------
>>> detect_patterns(["D4", "E4", "F#4", "D4", "E4", "F#4", "G4", "A4"])[0]
Pattern(start=0, length=3, repeats=2, significance=0.3)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

__all__ = [
    "Pattern",
    "detect_patterns",
    "MIN_PATTERN_LENGTH",
    "MAX_PATTERN_LENGTH",
    "SIGNIFICANCE_NORMALIZER",
    "MAX_PATTERNS",
]

logger = logging.getLogger(__name__)

# Span lengths scanned for exact repeats (inclusive).
MIN_PATTERN_LENGTH = 2
MAX_PATTERN_LENGTH = 5

# ``repeats * length`` reaching this value gives full significance.
SIGNIFICANCE_NORMALIZER = 20

# Number of top-ranked patterns kept.
MAX_PATTERNS = 5

# Fuzzy fallback parameters. Sequences shorter than ``FUZZY_MIN_NOTES`` are
# not considered and windows are always ``FUZZY_WINDOW`` notes long.
FUZZY_MIN_NOTES = 10
FUZZY_WINDOW = 3
FUZZY_MIN_MATCHES = 2
FUZZY_SKIP = 2


@dataclass(frozen=True)
class Pattern:
    """A span of ``length`` notes starting at ``start`` found ``repeats`` times."""

    start: int
    length: int
    repeats: int
    significance: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "start": self.start,
            "length": self.length,
            "repeats": self.repeats,
            "significance": self.significance,
        }


def _exact_patterns(
    notes: Sequence[str], min_length: int, max_length: int, normalizer: float
) -> List[Pattern]:
    patterns: List[Pattern] = []
    for length in range(min_length, max_length + 1):
        # Insertion order of the dictionary keeps spans in order of first
        # appearance, which later acts as the tie-breaker when sorting.
        positions: Dict[str, List[int]] = {}
        for i in range(len(notes) - length + 1):
            span = ",".join(notes[i:i + length])
            positions.setdefault(span, []).append(i)

        for starts in positions.values():
            if len(starts) > 1:
                patterns.append(
                    Pattern(
                        start=starts[0],
                        length=length,
                        repeats=len(starts),
                        significance=min(1.0, len(starts) * length / normalizer),
                    )
                )
    return patterns


def _fuzzy_patterns(notes: Sequence[str]) -> List[Pattern]:
    """Return spans whose pitches recur loosely later in ``notes``.

    A three-note reference window matches any later, non-overlapping window
    that shares at least one token with it. References with enough matches
    become patterns and the scan then skips ahead so consecutive patterns do
    not overlap heavily.
    """

    patterns: List[Pattern] = []
    last_start = len(notes) - FUZZY_WINDOW
    i = 0
    while i <= last_start:
        reference = set(notes[i:i + FUZZY_WINDOW])
        matches = 0
        for j in range(i + FUZZY_WINDOW, last_start + 1):
            if reference.intersection(notes[j:j + FUZZY_WINDOW]):
                matches += 1

        if matches >= FUZZY_MIN_MATCHES:
            patterns.append(
                Pattern(
                    start=i,
                    length=FUZZY_WINDOW,
                    repeats=matches,
                    significance=min(
                        1.0, matches * FUZZY_WINDOW / SIGNIFICANCE_NORMALIZER
                    ),
                )
            )
            i += FUZZY_SKIP
        i += 1
    return patterns


def detect_patterns(
    notes: Sequence[str],
    *,
    min_length: int = MIN_PATTERN_LENGTH,
    max_length: int = MAX_PATTERN_LENGTH,
    normalizer: float = SIGNIFICANCE_NORMALIZER,
    limit: int = MAX_PATTERNS,
) -> List[Pattern]:
    """Return up to ``limit`` repeated spans of ``notes``, most significant first.

    Parameters
    ----------
    notes:
        Note tokens to analyse. The sequence is never modified.
    min_length, max_length:
        Inclusive range of span lengths scanned for exact repeats. Overlapping
        occurrences each count as a repeat.
    normalizer:
        Value of ``repeats * length`` that maps to full significance.
    limit:
        Maximum number of patterns returned.

    Returns
    -------
    list[Pattern]
        Patterns sorted by non-increasing significance. Ties keep discovery
        order, so shorter spans and earlier first occurrences come first.
        Sequences shorter than two minimal spans yield an empty list.
    """

    if len(notes) < 2 * min_length:
        return []

    patterns = _exact_patterns(notes, min_length, max_length, normalizer)
    if not patterns and len(notes) >= FUZZY_MIN_NOTES:
        patterns = _fuzzy_patterns(notes)
        logger.debug("No exact repeats; fuzzy pass found %d spans", len(patterns))

    ranked = sorted(patterns, key=lambda p: p.significance, reverse=True)[:limit]
    logger.debug(
        "Detected %d repeated spans in %d notes; keeping %d",
        len(patterns),
        len(notes),
        len(ranked),
    )
    return ranked
