#!/usr/bin/env python3
"""Pi Composer library.

This package turns the decimal digits of π into a melody and optionally
reworks that melody with a small pattern-driven enhancer. A typical workflow
is to call :func:`generate_pi_melody` with a digit count, scale and key, then
pass the resulting notes to :func:`enhance_composition` together with the
``complexity``, ``variation`` and ``harmony`` controls.  Both the command line
interface and the Flask JSON API wrap these calls so end users can experiment
without writing code.

Underlying Algorithm
--------------------
Each digit selects a degree of the chosen scale; digits larger than the scale
length spill into the next octave.  The enhancer then looks for exact repeats
of short spans (two to five notes) and ranks them by a simple significance
score ``min(1, repeats * length / 20)``.  The most significant spans drive
three kinds of mutation:

* highly significant spans are copied and inserted at a random position,
* medium spans have the octave of each repeat raised by one,
* weak spans are only decorated internally and leave the notes untouched.

Harmony voices are derived independently by shifting every pitch class four
and seven semitones upward.

Algorithm Pseudocode
--------------------
The following outlines :func:`enhance_composition`::

    patterns = detect_patterns(notes)
    if complexity > 0:
        top = patterns[:max(1, floor(len(patterns) * complexity))]
        notes = enhance_melody(notes, top, variation, rng)
    harmonies = generate_harmonies(original_notes) if harmony else None

Modified: October 16, 2026
"""

__version__ = "0.1.0"

# ---------------------------------------------------------------
# Modification Summary
# ---------------------------------------------------------------
# * Package reorganised around the π composer: the note tables and settings
#   helpers remain here while pattern detection, enhancement and harmony live
#   in dedicated modules.
# * Random decisions are driven by an explicit ``random.Random`` instance so
#   callers and tests can seed the enhancer without touching global state.
# * ``load_settings`` and ``save_settings`` honour ``PI_COMPOSER_SETTINGS_FILE``
#   so the CLI can keep its preferences outside the home directory.
# ---------------------------------------------------------------

import json
import logging
import os
from pathlib import Path
from typing import Dict, List

# Default path for storing user preferences. The file lives in the user's
# home directory so settings persist between runs of the CLI.
env_path = os.environ.get("PI_COMPOSER_SETTINGS_FILE")
if env_path:
    DEFAULT_SETTINGS_FILE = Path(env_path).expanduser()
else:
    DEFAULT_SETTINGS_FILE = Path.home() / ".pi_composer_settings.json"

# ``MIN_OCTAVE`` and ``MAX_OCTAVE`` bound the octaves a note token may carry.
# Token parsing assumes a single trailing octave digit so the range stays
# within 0-9.
MIN_OCTAVE = 0
MAX_OCTAVE = 8

# Sharp spellings of the twelve chromatic pitch classes. Every note token
# produced by the package uses one of these names.
NOTES: List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# NOTE_TO_SEMITONE maps sharp and flat spellings to the semitone offset within
# an octave so that conversions like ``note_to_midi`` accept ``Db4`` as well as
# ``C#4``.
NOTE_TO_SEMITONE: Dict[str, int] = {
    "C": 0,
    "B#": 0,
    "C#": 1,
    "Db": 1,
    "D": 2,
    "D#": 3,
    "Eb": 3,
    "E": 4,
    "Fb": 4,
    "E#": 5,
    "F": 5,
    "F#": 6,
    "Gb": 6,
    "G": 7,
    "G#": 8,
    "Ab": 8,
    "A": 9,
    "A#": 10,
    "Bb": 10,
    "B": 11,
    "Cb": 11,
}


def load_settings(path: Path = DEFAULT_SETTINGS_FILE) -> dict:
    """Load saved user settings from ``path`` if it exists.

    @param path (Path): Location of the settings file.
    @returns dict: Loaded settings or an empty dictionary when unavailable.
    """
    # Prefer the user's saved options but fall back to an empty dictionary
    # when the settings file is missing, unreadable or not a JSON object.
    if path.is_file():
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logging.error(f"Could not load settings: {exc}")
            return {}
        if isinstance(data, dict):
            return data
        logging.error("Settings file %s does not contain a JSON object", path)
    return {}


def save_settings(settings: dict, path: Path = DEFAULT_SETTINGS_FILE) -> None:
    """Save user ``settings`` to ``path`` as JSON.

    @param settings (dict): Options to be persisted.
    @param path (Path): Destination file path.
    @returns None: Function does not return a value.
    """
    # Any I/O failure is logged but ignored so failing to save preferences
    # never prevents a composition from being produced.
    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(settings, fh, indent=2)
    except (OSError, TypeError) as exc:
        logging.error(f"Could not save settings: {exc}")


from .note_utils import (  # noqa: E402
    split_note,
    join_note,
    note_to_midi,
    note_frequency,
)
from .pi_digits import (  # noqa: E402
    KEYS,
    MAX_PI_DIGITS,
    SCALES,
    calculate_pi_digits,
    digits_to_notes,
    generate_pi_melody,
)
from .patterns import Pattern, detect_patterns  # noqa: E402
from .enhancer import enhance_melody  # noqa: E402
from .harmony import generate_harmonies, generate_harmony_line  # noqa: E402
from .composer import (  # noqa: E402
    CompositionOptions,
    CompositionResult,
    enhance_composition,
)


def run_cli():
    from .cli import run_cli as _run_cli
    _run_cli()


def main():
    from .cli import main as _main
    _main()


if __name__ == "__main__":
    main()
