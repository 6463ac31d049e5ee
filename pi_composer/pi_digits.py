"""Digits of π and their mapping onto musical notes.

This module is the upstream producer for the composer: it computes the
requested number of decimal places of π and turns each digit into a note of a
chosen scale and key. The rest of the package treats the result as an opaque
list of note tokens.

The digit calculation uses the series ``π = 6·asin(1/2)`` evaluated with
integer arithmetic and twenty guard digits, which is exact for the digit
counts the interfaces allow.

Example
-------
>>> calculate_pi_digits(5)
'3.14159'
>>> digits_to_notes("1415", "major", "C")
['D4', 'G4', 'D4', 'A4']
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Tuple, Union

from . import MAX_OCTAVE, MIN_OCTAVE, NOTES

__all__ = [
    "SCALES",
    "KEYS",
    "MAX_PI_DIGITS",
    "canonical_scale",
    "canonical_key",
    "calculate_pi_digits",
    "digits_to_notes",
    "generate_pi_melody",
]

logger = logging.getLogger(__name__)

# Semitone offsets from the tonic for each supported scale. The number of
# entries decides how digits wrap into the next octave: a digit ``d`` selects
# degree ``d % len(scale)`` and climbs ``d // len(scale)`` octaves.
SCALES: Dict[str, List[int]] = {
    "major": [0, 2, 4, 5, 7, 9, 11],
    "minor": [0, 2, 3, 5, 7, 8, 10],
    "pentatonic": [0, 2, 4, 7, 9],
    "blues": [0, 3, 5, 6, 7, 10],
    "chromatic": [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11],
    "dorian": [0, 2, 3, 5, 7, 9, 10],
    "phrygian": [0, 1, 3, 5, 7, 8, 10],
    "lydian": [0, 2, 4, 6, 7, 9, 11],
    "mixolydian": [0, 2, 4, 5, 7, 9, 10],
    "locrian": [0, 1, 3, 5, 6, 8, 10],
}

# Tonic offsets for the natural keys.
KEYS: Dict[str, int] = {
    "C": 0,
    "D": 2,
    "E": 4,
    "F": 5,
    "G": 7,
    "A": 9,
    "B": 11,
}

# Upper bound on the number of decimal places a caller may request. The
# series converges by roughly 0.6 digits per term so even the maximum stays
# well below a second of work.
MAX_PI_DIGITS = 1000

# Extra digits carried through the integer series so truncation in the
# intermediate divisions never reaches the requested places.
_GUARD_DIGITS = 20

DEFAULT_BASE_OCTAVE = 4


def canonical_scale(name: str) -> str:
    """Return the canonical scale name for ``name`` (case-insensitive).

    Raises
    ------
    ValueError
        If ``name`` is not a supported scale.
    """

    key = name.strip().lower()
    if key not in SCALES:
        raise ValueError(f"Unknown scale '{name}'")
    return key


def canonical_key(name: str) -> str:
    """Return the canonical key name for ``name`` (case-insensitive).

    Raises
    ------
    ValueError
        If ``name`` is not one of the natural keys in :data:`KEYS`.
    """

    key = name.strip().upper()
    if key not in KEYS:
        raise ValueError(f"Unknown key '{name}'")
    return key


def calculate_pi_digits(digits: int) -> str:
    """Return π truncated to ``digits`` decimal places, e.g. ``"3.14159"``.

    Parameters
    ----------
    digits:
        Number of decimal places, between ``1`` and :data:`MAX_PI_DIGITS`.

    Raises
    ------
    ValueError
        If ``digits`` lies outside the supported range.
    """

    if not 1 <= digits <= MAX_PI_DIGITS:
        raise ValueError(f"digits must be between 1 and {MAX_PI_DIGITS}")

    # Sum 3·Σ (2n choose n)/(16^n (2n+1)) scaled by 10^(digits + guard). Each
    # step derives the next term from the previous one so only integer
    # multiplications and divisions are needed.
    term = 3 * 10 ** (digits + _GUARD_DIGITS)
    total = term
    i = 1
    while term > 0:
        term = term * i // ((i + 1) * 4)
        total += term // (i + 2)
        i += 2

    text = str(total // 10 ** _GUARD_DIGITS)
    return f"{text[0]}.{text[1:digits + 1]}"


def digits_to_notes(
    digits: Union[str, Iterable[int]],
    scale: str = "major",
    key: str = "D",
    base_octave: int = DEFAULT_BASE_OCTAVE,
) -> List[str]:
    """Map each decimal digit onto a note of ``scale`` in ``key``.

    Parameters
    ----------
    digits:
        Either a string of decimal digits or an iterable of integers 0-9.
    scale:
        Name of a scale in :data:`SCALES`.
    key:
        Tonic name from :data:`KEYS`.
    base_octave:
        Octave assigned to digits that fall inside the first pass over the
        scale. Larger digits climb into the following octave.

    Returns
    -------
    list[str]
        One note token per digit.

    Raises
    ------
    ValueError
        If the scale, key, octave or any digit is invalid.
    """

    scale_name = canonical_scale(scale)
    key_name = canonical_key(key)
    pattern = SCALES[scale_name]
    key_offset = KEYS[key_name]

    # The highest digit (9) may climb ``9 // len(pattern)`` octaves above the
    # base, so check the top of the range as well as the bottom.
    top_octave = base_octave + 9 // len(pattern)
    if base_octave < MIN_OCTAVE or top_octave > MAX_OCTAVE:
        raise ValueError(
            f"Base octave {base_octave} would place notes outside "
            f"{MIN_OCTAVE}-{MAX_OCTAVE} for scale '{scale_name}'"
        )

    notes: List[str] = []
    for raw in digits:
        digit = raw
        if isinstance(raw, str) and len(raw) == 1 and raw in "0123456789":
            digit = int(raw)
        if not isinstance(digit, int) or not 0 <= digit <= 9:
            raise ValueError(f"Invalid digit: {raw!r}")
        degree = pattern[digit % len(pattern)]
        octave = base_octave + digit // len(pattern)
        notes.append(f"{NOTES[(key_offset + degree) % 12]}{octave}")
    return notes


def generate_pi_melody(
    num_digits: int,
    scale: str = "major",
    key: str = "D",
    base_octave: int = DEFAULT_BASE_OCTAVE,
) -> Tuple[str, List[str]]:
    """Return ``(pi_text, notes)`` for the first ``num_digits`` decimals of π.

    ``pi_text`` is the truncated value as displayed to users (``"3.1415"``);
    ``notes`` holds one token per decimal place, the leading ``3`` excluded.
    """

    pi_text = calculate_pi_digits(num_digits)
    notes = digits_to_notes(pi_text[2:], scale, key, base_octave)
    logger.debug(
        "Mapped %d digits of pi onto %s %s", num_digits, key, scale
    )
    return pi_text, notes
