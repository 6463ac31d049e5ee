"""Pattern-driven melody enhancement.

:func:`enhance_melody` walks the ranked patterns returned by
:func:`pi_composer.patterns.detect_patterns` and mutates the melody around
them. How a pattern is treated depends on its significance tier:

``> 0.7``
    The span is copied from the original melody and inserted at a random
    position, so strong motifs are heard again.
``> 0.4``
    Each repeat of the span has its first note lifted by an octave (capped at
    :data:`MAX_ENHANCED_OCTAVE`).
otherwise
    Notes of the span are decorated. Decorations are internal markers only
    and never appear in the returned notes.

Every pattern first passes a coin flip and each tier is then gated by the
``variation`` level, so a variation of ``0`` leaves the melody untouched and
higher values make changes more likely. All random draws come from the
``rng`` argument which lets callers reproduce a result exactly.
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence, Set

from .note_utils import join_note, split_note
from .patterns import Pattern

__all__ = ["enhance_melody", "MAX_ENHANCED_OCTAVE"]

logger = logging.getLogger(__name__)

# Octave raises never go above this octave.
MAX_ENHANCED_OCTAVE = 7

HIGH_SIGNIFICANCE = 0.7
MEDIUM_SIGNIFICANCE = 0.4

# Probability of a pattern being considered at all.
PATTERN_CHANCE = 0.5

# Per-note decoration probability for weak patterns, relative to variation.
DECORATION_FACTOR = 0.3


def _raise_octave(note: str) -> str:
    name, octave = split_note(note)
    if octave is None:
        return note
    # Notes already at or above the cap keep their octave.
    return join_note(name, max(octave, min(octave + 1, MAX_ENHANCED_OCTAVE)))


def enhance_melody(
    notes: Sequence[str],
    patterns: Sequence[Pattern],
    variation: float,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Return a varied copy of ``notes`` guided by ``patterns``.

    Parameters
    ----------
    notes:
        Original melody. It is never modified.
    patterns:
        Ranked patterns to act on, most significant first.
    variation:
        Level in ``[0, 1]`` controlling how likely each mutation is. ``0``
        returns the melody unchanged.
    rng:
        Source of randomness. A fresh unseeded :class:`random.Random` is used
        when omitted.

    Returns
    -------
    list[str]
        The enhanced melody. It is never shorter than ``notes``; only the
        insertion of highly significant spans makes it longer.
    """

    if variation == 0:
        return list(notes)

    rng = rng or random.Random()
    enhanced = list(notes)
    decorated: Set[int] = set()

    for pattern in patterns:
        if rng.random() <= PATTERN_CHANCE:
            continue

        # Spans are always taken from the unmodified melody so earlier
        # insertions cannot change what a later pattern repeats.
        span = list(notes[pattern.start:pattern.start + pattern.length])

        if pattern.significance > HIGH_SIGNIFICANCE:
            if rng.random() < variation:
                position = rng.randrange(len(enhanced) + 1)
                enhanced[position:position] = span
                logger.debug(
                    "Repeated %d-note span from %d at %d",
                    len(span),
                    pattern.start,
                    position,
                )
        elif pattern.significance > MEDIUM_SIGNIFICANCE:
            if rng.random() < variation:
                for k in range(pattern.repeats):
                    pos = pattern.start + k * pattern.length
                    if pos < len(enhanced) and rng.random() < variation:
                        enhanced[pos] = _raise_octave(enhanced[pos])
                        logger.debug("Raised octave at %d to %s", pos, enhanced[pos])
        else:
            for offset in range(len(span)):
                if rng.random() < variation * DECORATION_FACTOR:
                    decorated.add(pattern.start + offset)

    if decorated:
        logger.debug("Decorated positions: %s", sorted(decorated))
    return enhanced
