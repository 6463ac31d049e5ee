"""Command line helpers for Pi Composer.

This module implements the console entry point for the project. The
``run_cli`` function parses command line arguments, maps the requested digits
of π onto notes and optionally runs the pattern enhancer and harmony
generator before printing the result. Saved preferences from the JSON
settings file act as defaults for every option so frequent users do not have
to repeat themselves; ``--save-settings`` stores the current values.

Keeping the CLI logic separate from the web API lets other applications reuse
the composition routines without importing Flask.

Example
-------
Running ``python -m pi_composer --digits 32 --scale minor --key A --enhance \
    --complexity 0.6 --variation 0.4 --harmony --seed 7`` prints the first 32
decimals of π, the enhanced melody, the detected patterns and both harmony
voices. Add ``--json`` to receive the same information as a JSON document.
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from . import (
    DEFAULT_SETTINGS_FILE,
    MAX_OCTAVE,
    MIN_OCTAVE,
    load_settings,
    note_frequency,
    save_settings,
)
from .composer import CompositionOptions, CompositionResult, enhance_composition
from .pi_digits import (
    DEFAULT_BASE_OCTAVE,
    KEYS,
    MAX_PI_DIGITS,
    SCALES,
    canonical_key,
    canonical_scale,
    generate_pi_melody,
)

__all__ = ["run_cli", "main"]

# Values used when neither the command line nor the settings file supplies
# an option.
_DEFAULTS = {
    "digits": 20,
    "scale": "major",
    "key": "D",
    "base_octave": DEFAULT_BASE_OCTAVE,
    "enhance": False,
    "complexity": 0.5,
    "variation": 0.3,
    "harmony": False,
}


def _build_parser(defaults: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Turn the digits of pi into a melody with optional pattern enhancement."
    )
    parser.add_argument("--list-scales", action="store_true", help="List all supported scales and exit")
    parser.add_argument("--list-keys", action="store_true", help="List all supported keys and exit")
    parser.add_argument("--digits", type=int, default=defaults["digits"], help=f"Number of decimals of pi to use (1-{MAX_PI_DIGITS}).")
    parser.add_argument("--scale", type=str, default=defaults["scale"], help="Scale used to map digits (e.g., major, minor, blues).")
    parser.add_argument("--key", type=str, default=defaults["key"], help="Tonic of the scale (C, D, E, F, G, A or B).")
    parser.add_argument(
        "--base-octave",
        type=int,
        default=defaults["base_octave"],
        help=f"Octave of the lowest scale degree ({MIN_OCTAVE}-{MAX_OCTAVE}, default: {DEFAULT_BASE_OCTAVE}).",
    )
    parser.add_argument("--enhance", action="store_true", default=defaults["enhance"], help="Apply the pattern enhancer to the melody.")
    parser.add_argument("--no-enhance", dest="enhance", action="store_false", default=defaults["enhance"], help="Leave the melody unchanged even if enhancement was saved as a default.")
    parser.add_argument("--complexity", type=float, default=defaults["complexity"], help="Share of detected patterns used by the enhancer (0-1).")
    parser.add_argument("--variation", type=float, default=defaults["variation"], help="Likelihood of each enhancement (0-1).")
    parser.add_argument("--harmony", action="store_true", default=defaults["harmony"], help="Generate third and fifth harmony voices.")
    parser.add_argument("--no-harmony", dest="harmony", action="store_false", default=defaults["harmony"], help="Skip the harmony voices even if they were saved as a default.")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible enhancement")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--settings-file", type=str, help="Path to the JSON settings file")
    parser.add_argument("--save-settings", action="store_true", help="Store the current options as defaults")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def _settings_path(argv: Sequence[str]) -> Path:
    """Return the settings path requested in ``argv`` or the default one."""

    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--settings-file", type=str)
    pre_args, _ = pre_parser.parse_known_args(argv)
    if pre_args.settings_file:
        return Path(pre_args.settings_file).expanduser()
    return DEFAULT_SETTINGS_FILE


def _load_defaults(path: Path) -> dict:
    """Merge saved settings over the built-in defaults.

    Unknown keys are ignored and values of the wrong type are discarded with
    a warning so a hand-edited settings file cannot break argument parsing.
    """

    defaults = dict(_DEFAULTS)
    for name, value in load_settings(path).items():
        if name not in defaults:
            continue
        expected = type(_DEFAULTS[name])
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            logging.warning("Ignoring invalid saved value for %s: %r", name, value)
            continue
        defaults[name] = value
    return defaults


def _print_result(pi_text: str, notes: List[str], result: CompositionResult) -> None:
    print(f"Pi: {pi_text}")
    print(f"Notes: {' '.join(notes)}")
    if result.enhanced_notes != notes:
        print(f"Enhanced: {' '.join(result.enhanced_notes)}")
    if result.patterns:
        print("Patterns:")
        for pattern in result.patterns:
            span = " ".join(notes[pattern.start:pattern.start + pattern.length])
            print(
                f"  start={pattern.start} length={pattern.length} "
                f"repeats={pattern.repeats} significance={pattern.significance:.2f}  [{span}]"
            )
    else:
        print("Patterns: none")
    if result.harmonies is not None:
        third, fifth = result.harmonies
        print(f"Third: {' '.join(third)}")
        print(f"Fifth: {' '.join(fifth)}")


def run_cli(argv: Optional[Sequence[str]] = None) -> None:
    """Parse CLI arguments and print the π composition.

    Invalid values are logged and terminate the process with exit status
    ``1`` so calling scripts can react to the failure.
    """

    argv = list(sys.argv[1:] if argv is None else argv)

    if "--list-scales" in argv:
        print("\n".join(sorted(SCALES.keys())))
        return
    if "--list-keys" in argv:
        print("\n".join(KEYS.keys()))
        return

    settings_path = _settings_path(argv)
    parser = _build_parser(_load_defaults(settings_path))
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not 1 <= args.digits <= MAX_PI_DIGITS:
        logging.error(f"Number of digits must be between 1 and {MAX_PI_DIGITS}.")
        sys.exit(1)
    if not 0 <= args.complexity <= 1:
        logging.error("Complexity must be between 0 and 1.")
        sys.exit(1)
    if not 0 <= args.variation <= 1:
        logging.error("Variation must be between 0 and 1.")
        sys.exit(1)

    try:
        args.scale = canonical_scale(args.scale)
        args.key = canonical_key(args.key)
        pi_text, notes = generate_pi_melody(
            args.digits, args.scale, args.key, args.base_octave
        )
    except ValueError as exc:
        logging.error(str(exc))
        sys.exit(1)

    rng = random.Random(args.seed)
    # Without ``--enhance`` the melody is still analysed so patterns and
    # harmonies can be reported, but complexity zero keeps the notes intact.
    options = CompositionOptions(
        notes=notes,
        complexity=args.complexity if args.enhance else 0.0,
        harmony=args.harmony,
        variation=args.variation,
    )
    result = enhance_composition(options, rng)

    if args.json:
        payload = {
            "pi": pi_text,
            "notes": notes,
            "frequencies": [
                round(note_frequency(n), 2) for n in result.enhanced_notes
            ],
        }
        payload.update(result.to_dict())
        print(json.dumps(payload, indent=2))
    else:
        _print_result(pi_text, notes, result)

    if args.save_settings:
        save_settings(
            {
                "digits": args.digits,
                "scale": args.scale,
                "key": args.key,
                "base_octave": args.base_octave,
                "enhance": args.enhance,
                "complexity": args.complexity,
                "variation": args.variation,
                "harmony": args.harmony,
            },
            settings_path,
        )
        logging.info("Settings saved to %s", settings_path)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point used by ``python -m pi_composer`` and the console script."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    run_cli(argv)
