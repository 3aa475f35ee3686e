"""Command line helpers for Cantus Generator.

This module implements the console entry point.  :func:`run_cli` parses
arguments, merges them over the options stored in the settings file,
composes a cantus firmus and prints it.  A MIDI file is written when
``--output`` is supplied.

Example
-------
Running ``python -m cantus_generator --tonic D4 --mode dorian --length 11 \
    --seed 7 --output cf.mid`` composes an eleven-note dorian line on D and
saves it to ``cf.mid``.  Options that are left out are chosen at random, or
taken from the settings file when it defines them.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import (
    DEFAULT_SETTINGS_FILE,
    SCALE_PATTERNS,
    GenerationConfig,
    create_midi_file,
    generate_cantus_firmus,
    load_settings,
    save_settings,
)

__all__ = ["build_parser", "run_cli", "main"]

# CLI destinations that map directly onto ``GenerationConfig`` fields.
_CONFIG_OPTIONS = ("tonic", "mode", "goal_length", "climax", "climax_position", "max_range", "max_iterations")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compose a species counterpoint cantus firmus."
    )
    parser.add_argument("--tonic", type=str, help="Starting and final note (e.g. G4, Bb3).")
    parser.add_argument("--mode", choices=sorted(SCALE_PATTERNS), help="Scale the line is drawn from.")
    parser.add_argument("--length", dest="goal_length", type=int, help="Number of notes (default: random 8-16).")
    parser.add_argument("--climax", type=str, help="Highest note of the line (e.g. D5).")
    parser.add_argument("--climax-position", type=int, help="Zero-based index of the climax note.")
    parser.add_argument("--max-range", type=int, help="Generic size from the lowest allowed note up to the climax.")
    parser.add_argument("--max-iterations", type=int, help="Stop each search phase after this many nodes.")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible output.")
    parser.add_argument("--output", type=str, help="Write the line to this MIDI file.")
    parser.add_argument("--bpm", type=int, default=60, help="Tempo of the MIDI file (default: 60).")
    parser.add_argument("--instrument", type=int, default=0, help="MIDI program number.")
    parser.add_argument("--check", action="store_true", help="Print rule violations of the result.")
    parser.add_argument("--settings-file", type=str, help="JSON file with default generation options.")
    parser.add_argument("--save-settings", action="store_true", help="Store the supplied options as new defaults.")
    parser.add_argument("--verbose", action="store_true", help="Log search progress.")
    return parser


def run_cli(argv: Optional[List[str]] = None) -> int:
    """Parse ``argv`` and compose a cantus firmus.

    Returns ``0`` when a complete line was composed and ``2`` when the search
    only produced a partial line. Invalid options log an error and exit with
    status ``1``.
    """

    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    settings_path = Path(args.settings_file).expanduser() if args.settings_file else DEFAULT_SETTINGS_FILE
    options = load_settings(settings_path)
    supplied = {name: getattr(args, name) for name in _CONFIG_OPTIONS if getattr(args, name) is not None}
    options.update(supplied)
    if args.save_settings:
        save_settings(options, settings_path)

    if args.bpm <= 0:
        logging.error("BPM must be a positive integer.")
        sys.exit(1)
    if not 0 <= args.instrument <= 127:
        logging.error("Instrument must be between 0 and 127.")
        sys.exit(1)

    try:
        config = GenerationConfig.from_settings(options)
        result = generate_cantus_firmus(config, seed=args.seed)
    except ValueError as exc:
        logging.error("Invalid generation options: %s", exc)
        sys.exit(1)

    print(" ".join(result.pitches))
    print(f"rank: {result.rank:.3f}")
    print("complete" if result.complete else "incomplete")
    if args.check:
        problems = result.line.errors()
        for problem in problems:
            print(f"- {problem}")
        if not problems:
            print("No errors found!")

    if args.output:
        try:
            create_midi_file(result.line, args.output, bpm=args.bpm, program=args.instrument)
        except OSError as exc:
            logging.error("Could not write MIDI file: %s", exc)
            sys.exit(1)
    return 0 if result.complete else 2


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point used by ``python -m cantus_generator`` and the console script."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    return run_cli(argv)
