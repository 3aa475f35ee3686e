#!/usr/bin/env python3
"""Cantus Generator library.

This package composes a *cantus firmus*, the plain whole-note melody that
species counterpoint exercises are written against.  A typical workflow is to
call :func:`generate_cantus_firmus` with an optional
:class:`GenerationConfig` and then feed ``result.line`` into
:func:`create_midi_file` to hear it.

Underlying Algorithm
--------------------
Generation is a heuristic best-first search.  Candidate lines are kept in a
max priority queue ordered by :attr:`MelodicLine.rank`; the most promising
line is repeatedly extended with every legal next note reported by
:func:`next_pitches`.  The search runs in two phases:

    climax_lines = search(start, goal=climax at climax_position, quota=10)
    result = search(climax_lines, goal=degree 2 then tonic at the end)

Candidates are shuffled before insertion and restricted to a range window
below the climax, so runs differ between seeds but repeat exactly for the
same seed.

Features include:
- Spelled pitches with diatonic stepping and named intervals.
- Major, natural minor and dorian lines on any tonic.
- Rule checking of finished lines via :meth:`MelodicLine.errors`.
- MIDI export and a command line interface.
"""

__version__ = "0.1.0"

# ---------------------------------------------------------------
# Modification Summary
# ---------------------------------------------------------------
# * Replaced the chord-driven motif generator with a species counterpoint
#   cantus firmus search built on ``MaxPQ``, ``MelodicLine`` and the
#   ``next_pitches`` rule engine.
# * Note strings are now parsed into immutable ``Pitch`` objects that keep
#   their spelling, so ``F#`` and ``Gb`` are no longer merged.
# * ``create_midi_file`` writes one whole note per pitch.
# * Settings files now hold ``GenerationConfig`` defaults for the CLI and
#   honour the ``CANTUS_SETTINGS_FILE`` environment variable.
# ---------------------------------------------------------------

import json
import logging
import os
from pathlib import Path

from .pitch import (  # noqa: F401
    CONSONANT_MELODIC_INTERVALS,
    INTERVAL_QUALITY,
    INTERVAL_SEMITONES,
    NOTE_LETTERS,
    SCALE_PATTERNS,
    Interval,
    MalformedPitchError,
    Pitch,
    UndefinedIntervalError,
    scale_from,
)
from .priority_queue import EmptyQueueError, MaxPQ  # noqa: F401
from .melodic_line import (  # noqa: F401
    MAX_LEAPS,
    MAX_LENGTH,
    MAX_RANGE,
    MIN_LENGTH,
    MelodicLine,
)
from .continuation import current_outline, is_next_pitch_possible, next_pitches  # noqa: F401
from .search import (  # noqa: F401
    SUCCESS_QUOTA,
    CantusFirmusBuilder,
    GenerationConfig,
    GenerationResult,
    SearchEvent,
    generate_cantus_firmus,
    resolve_config,
)

# Default path for stored generation options.  The file lives in the user's
# home directory so defaults persist between runs of the CLI.
env_path = os.environ.get("CANTUS_SETTINGS_FILE")
if env_path:
    DEFAULT_SETTINGS_FILE = Path(env_path).expanduser()
else:
    DEFAULT_SETTINGS_FILE = Path.home() / ".cantus_generator_settings.json"


def load_settings(path: Path = DEFAULT_SETTINGS_FILE) -> dict:
    """Load saved generation options from ``path`` if it exists.

    @param path (Path): Location of the settings file.
    @returns dict: Loaded settings or an empty dictionary when unavailable.
    """
    # Prefer the user's saved options but fall back to an empty
    # dictionary when the settings file is missing or unreadable.
    if path.is_file():
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logging.error(f"Could not load settings: {exc}")
            return {}
        if isinstance(data, dict):
            return data
        logging.error(f"Settings file {path} does not contain a JSON object")
    return {}


def save_settings(settings: dict, path: Path = DEFAULT_SETTINGS_FILE) -> None:
    """Save generation ``settings`` to ``path`` as JSON.

    @param settings (dict): Options to be persisted.
    @param path (Path): Destination file path.
    @returns None: Function does not return a value.
    """
    # Failing to save preferences is logged but never stops generation.
    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(settings, fh, indent=2)
    except OSError as exc:
        logging.error(f"Could not save settings: {exc}")


from . import midi_io  # noqa: F401,E402
from .midi_io import create_midi_file, pitch_to_midi  # noqa: F401,E402


def run_cli(argv=None):
    from .cli import run_cli as _run_cli
    return _run_cli(argv)


def main(argv=None):
    from .cli import main as _main
    return _main(argv)


if __name__ == "__main__":
    main()
