"""Public entry point combining detection, enhancement and harmony.

:func:`enhance_composition` is what the CLI and web API call. It accepts the
three user-facing controls:

``complexity``
    Fraction of the detected patterns handed to the enhancer. At least one
    pattern is used whenever complexity is above zero; at exactly zero the
    enhancer is skipped and no random numbers are drawn.
``variation``
    Passed through to :func:`pi_composer.enhancer.enhance_melody`.
``harmony``
    When true, third and fifth voices are derived from the original melody.

Example
-------
>>> result = enhance_composition(
...     CompositionOptions(["D4", "E4", "F#4", "D4", "E4", "F#4"], complexity=0)
... )
>>> result.enhanced_notes
['D4', 'E4', 'F#4', 'D4', 'E4', 'F#4']
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .enhancer import enhance_melody
from .harmony import generate_harmonies
from .patterns import Pattern, detect_patterns

__all__ = ["CompositionOptions", "CompositionResult", "enhance_composition"]

logger = logging.getLogger(__name__)


@dataclass
class CompositionOptions:
    """Input controls for :func:`enhance_composition`."""

    notes: List[str]
    complexity: float = 0.5
    harmony: bool = False
    variation: float = 0.3


@dataclass
class CompositionResult:
    """Enhanced melody, detected patterns and optional harmony voices."""

    enhanced_notes: List[str]
    patterns: List[Pattern] = field(default_factory=list)
    harmonies: Optional[Tuple[List[str], List[str]]] = None

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-ready mapping using the public camelCase field names."""

        return {
            "enhancedNotes": list(self.enhanced_notes),
            "patterns": [p.to_dict() for p in self.patterns],
            "harmonies": (
                [list(voice) for voice in self.harmonies]
                if self.harmonies is not None
                else None
            ),
        }


def _clamp_unit(name: str, value: float) -> float:
    """Return ``value`` limited to ``[0, 1]``, warning when it had to move."""

    clamped = min(1.0, max(0.0, value))
    if clamped != value:
        logger.warning("%s %r outside 0-1; using %s", name, value, clamped)
    return clamped


def _patterns_for_complexity(patterns: List[Pattern], complexity: float) -> List[Pattern]:
    if complexity == 0:
        return []
    count = max(1, math.floor(len(patterns) * complexity))
    return patterns[:count]


def enhance_composition(
    options: CompositionOptions, rng: Optional[random.Random] = None
) -> CompositionResult:
    """Analyse ``options.notes`` and return the enhanced composition.

    @param options (CompositionOptions): Melody and control values.
    @param rng (random.Random | None): Randomness for the enhancer. A fresh
        generator is created when omitted.
    @returns CompositionResult: Enhanced notes, every detected pattern and
        the harmony pair when requested.
    """
    notes = list(options.notes)
    complexity = _clamp_unit("complexity", options.complexity)
    variation = _clamp_unit("variation", options.variation)

    patterns = detect_patterns(notes)

    if complexity > 0:
        selected = _patterns_for_complexity(patterns, complexity)
        enhanced = enhance_melody(notes, selected, variation, rng)
    else:
        enhanced = notes

    harmonies = generate_harmonies(notes) if options.harmony else None

    logger.debug(
        "Composition: %d notes in, %d out, %d patterns, harmony=%s",
        len(notes),
        len(enhanced),
        len(patterns),
        options.harmony,
    )
    return CompositionResult(
        enhanced_notes=enhanced, patterns=patterns, harmonies=harmonies
    )
