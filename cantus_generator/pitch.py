"""Spelled pitches, diatonic stepping and named intervals.

The search engine never works with bare MIDI numbers: species counterpoint
cares about *spelling* (``F#`` is not ``Gb``) and about *generic* interval
sizes (a third is a third whether it is major or minor).  This module provides
the immutable :class:`Pitch` value type together with the read-only lookup
tables used to name intervals and to derive accidentals.

Example
-------
>>> from cantus_generator.pitch import Pitch, scale_from
>>> d4 = Pitch.parse("D4")
>>> str(d4.plus_interval("M7"))
'C#5'
>>> dorian = scale_from(d4, "dorian")
>>> str(d4.step_down(5, dorian))
'G3'
>>> d4.interval_to(Pitch.parse("A4")).name
'P5'

Design Notes
------------
- Spelling is preserved exactly as authored.  Two pitches compare equal only
  when letter, accidental and octave all match; enharmonic equivalence is an
  explicit query via :meth:`Pitch.is_enharmonic`.
- The quality table stores the augmented seventh under semitone residue ``0``
  because qualities are looked up with ``semitones % 12``.
- Octave numbers follow scientific pitch notation so ``Pitch.absolute`` is
  also the MIDI note number (``C4`` is ``60``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple, Union

__all__ = [
    "NOTE_LETTERS",
    "INTERVAL_QUALITY",
    "INTERVAL_SEMITONES",
    "SCALE_PATTERNS",
    "CONSONANT_MELODIC_INTERVALS",
    "MalformedPitchError",
    "UndefinedIntervalError",
    "Interval",
    "Pitch",
    "scale_from",
]

NOTE_LETTERS: Tuple[str, ...] = ("C", "D", "E", "F", "G", "A", "B")

# Octave numbers are written with one or two digits.
MAX_OCTAVE = 99

# Semitone offset of each natural letter above C.
LETTER_SEMITONES: Dict[str, int] = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}

# Quality abbreviation keyed by simple generic size, then by the semitone
# distance reduced modulo 12.  Size ``1`` carries the diminished entry at
# ``11`` so diminished octaves reduce correctly.
INTERVAL_QUALITY: Dict[int, Dict[int, str]] = {
    1: {0: "P", 1: "A", 11: "d"},
    2: {0: "d", 1: "m", 2: "M", 3: "A"},
    3: {2: "d", 3: "m", 4: "M", 5: "A"},
    4: {4: "d", 5: "P", 6: "A"},
    5: {6: "d", 7: "P", 8: "A"},
    6: {7: "d", 8: "m", 9: "M", 10: "A"},
    7: {9: "d", 10: "m", 11: "M", 0: "A"},
    8: {11: "d", 12: "P", 13: "A"},
}

# Semitone width of every simple interval.  ``d1`` cannot be spelled on its
# own but a diminished octave reduces to it.
INTERVAL_SEMITONES: Dict[str, int] = {
    "d1": -1, "P1": 0, "A1": 1,
    "d2": 0, "m2": 1, "M2": 2, "A2": 3,
    "d3": 2, "m3": 3, "M3": 4, "A3": 5,
    "d4": 4, "P4": 5, "A4": 6,
    "d5": 6, "P5": 7, "A5": 8,
    "d6": 7, "m6": 8, "M6": 9, "A6": 10,
    "d7": 9, "m7": 10, "M7": 11, "A7": 12,
}

QUALITY_NAMES: Dict[str, str] = {
    "P": "Perfect",
    "M": "Major",
    "m": "Minor",
    "A": "Augmented",
    "d": "Diminished",
}

# Successive intervals between the seven degrees of each supported mode.
SCALE_PATTERNS: Dict[str, Tuple[str, ...]] = {
    "major": ("M2", "M2", "m2", "M2", "M2", "M2"),
    "minor": ("M2", "m2", "M2", "M2", "m2", "M2"),
    "dorian": ("M2", "m2", "M2", "M2", "M2", "m2"),
}

# Melodic intervals a cantus firmus may use between consecutive notes.
CONSONANT_MELODIC_INTERVALS = frozenset(
    {"m2", "M2", "m3", "M3", "P4", "P5", "m6", "M6", "P8"}
)

_PITCH_RE = re.compile(r"([A-G])(#+|b+)?(\d{1,2})")
_INTERVAL_RE = re.compile(r"([dmMAP])(\d{1,2})")


class MalformedPitchError(ValueError):
    """Raised when a pitch string does not follow scientific pitch notation."""


class UndefinedIntervalError(ValueError):
    """Raised when an interval name has no entry in the semitone table."""


@dataclass(frozen=True)
class Interval:
    """Generic size plus quality of the distance between two pitches.

    ``quality`` is ``None`` when the semitone distance has no name for the
    given generic size (for example a doubly augmented fourth).
    """

    size: int
    quality: Optional[str]

    @property
    def simple_size(self) -> int:
        return (self.size - 1) % 7 + 1

    @property
    def name(self) -> str:
        return f"{self.quality or '?'}{self.size}"

    @property
    def quality_name(self) -> Optional[str]:
        return QUALITY_NAMES.get(self.quality) if self.quality else None

    @property
    def is_consonant(self) -> bool:
        """Return ``True`` for intervals allowed between consecutive notes."""

        return self.name in CONSONANT_MELODIC_INTERVALS

    def __str__(self) -> str:
        return self.name


def _parse_interval(name: str) -> Tuple[str, int]:
    match = _INTERVAL_RE.fullmatch(name)
    if not match or int(match.group(2)) < 1:
        logging.error("Invalid interval name: %s", name)
        raise UndefinedIntervalError(f"Undefined interval: {name}")
    return match.group(1), int(match.group(2))


@dataclass(frozen=True)
class Pitch:
    """A spelled pitch such as ``Bb3`` or ``F##4``.

    Parameters
    ----------
    letter:
        Natural letter name, one of :data:`NOTE_LETTERS`.
    accidental:
        Signed accidental count; negative values are flats, positive values
        sharps.
    octave:
        Scientific pitch octave number between ``0`` and ``99``.
    """

    letter: str
    accidental: int = 0
    octave: int = 4

    def __post_init__(self) -> None:
        if self.letter not in NOTE_LETTERS:
            raise MalformedPitchError(f"Invalid note letter: {self.letter!r}")
        if not 0 <= self.octave <= MAX_OCTAVE:
            raise MalformedPitchError(f"Octave must lie between 0 and {MAX_OCTAVE}: {self.octave}")

    @classmethod
    def parse(cls, text: str) -> "Pitch":
        """Build a :class:`Pitch` from a string such as ``"C#4"``.

        Raises
        ------
        MalformedPitchError
            If ``text`` is not a capital letter followed by optional sharps or
            flats and a one or two digit octave.
        """

        match = _PITCH_RE.fullmatch(text) if isinstance(text, str) else None
        if not match:
            logging.error("Invalid pitch format: %s", text)
            raise MalformedPitchError(f"Invalid pitch format: {text}")
        letter, accidentals, octave = match.groups()
        accidental = 0
        if accidentals:
            accidental = len(accidentals) if accidentals[0] == "#" else -len(accidentals)
        return cls(letter, accidental, int(octave))

    @classmethod
    def from_pitch_class(cls, pitch_class: str, octave: int) -> "Pitch":
        """Attach ``octave`` to a pitch class string such as ``"Eb"``."""

        return cls.parse(f"{pitch_class}{octave}")

    @property
    def pitch_class(self) -> str:
        if self.accidental > 0:
            return self.letter + "#" * self.accidental
        return self.letter + "b" * -self.accidental

    @property
    def absolute(self) -> int:
        """Semitone number of the pitch; identical to its MIDI note number."""

        return LETTER_SEMITONES[self.letter] + 12 * (self.octave + 1) + self.accidental

    def __str__(self) -> str:
        return f"{self.pitch_class}{self.octave}"

    def is_lower(self, other: "Pitch") -> bool:
        return self.absolute < other.absolute

    def is_higher(self, other: "Pitch") -> bool:
        return self.absolute > other.absolute

    def is_enharmonic(self, other: "Pitch") -> bool:
        return self.absolute == other.absolute

    def same_pitch_class(self, other: "Pitch") -> bool:
        return self.pitch_class == other.pitch_class

    def semitones_to(self, other: "Pitch") -> int:
        return abs(self.absolute - other.absolute)

    @property
    def diatonic_index(self) -> int:
        """Staff position in letter steps above ``C0``, ignoring accidentals."""

        return self.octave * 7 + NOTE_LETTERS.index(self.letter)

    def generic_size_to(self, other: "Pitch") -> int:
        """Return the diatonic distance to ``other`` counting both endpoints.

        The result ignores accidentals and is independent of argument order:
        ``C4`` to ``E4`` and ``E4`` to ``C#4`` are both thirds, and ``B#3`` to
        ``C4`` is a second even though both sound the same.
        """

        return abs(self.diatonic_index - other.diatonic_index) + 1

    def _by_staff_position(self, other: "Pitch") -> Tuple["Pitch", "Pitch"]:
        # Letters decide which note is written lower; sound only breaks ties
        # between notes on the same staff position (``C4`` and ``C#4``).
        lower, higher = sorted((self, other), key=lambda p: (p.diatonic_index, p.absolute))
        return lower, higher

    def interval_to(self, other: "Pitch") -> Interval:
        """Return the named :class:`Interval` between ``self`` and ``other``.

        ``C4`` to ``Dbb4`` is a diminished second and ``C4`` to ``C#4`` an
        augmented unison, whichever argument comes first.
        """

        if self == other:
            return Interval(1, "P")
        lower, higher = self._by_staff_position(other)
        size = higher.diatonic_index - lower.diatonic_index + 1
        simple = (size - 1) % 7 + 1
        semitones = (higher.absolute - lower.absolute) % 12
        return Interval(size, INTERVAL_QUALITY.get(simple, {}).get(semitones))

    def _walk(self, size: int, scale: Optional[Sequence[str]], ascending: bool) -> "Pitch":
        if size < 1:
            raise ValueError(f"Generic interval size must be positive: {size}")
        if scale:
            alphabet = tuple(scale)
            start = self.pitch_class
        else:
            alphabet = NOTE_LETTERS
            start = self.letter
        if start not in alphabet:
            logging.error("Pitch class %s is not part of scale %s", start, list(alphabet))
            raise ValueError(f"Pitch class {start} is not in the scale {list(alphabet)}")

        octave_change = (size - 1) // 7
        octave = self.octave + (octave_change if ascending else -octave_change)
        cur = alphabet.index(start)
        for _ in range((size - 1) % 7):
            if ascending:
                cur = (cur + 1) % len(alphabet)
                if alphabet[cur].startswith("C"):
                    octave += 1
            else:
                cur = (cur - 1) % len(alphabet)
                if alphabet[cur].startswith("B"):
                    octave -= 1
        # The constructor rejects octaves outside the notated range.
        spelled = Pitch.from_pitch_class(alphabet[cur], 0)
        return Pitch(spelled.letter, spelled.accidental, octave)

    def step_up(self, size: int, scale: Optional[Sequence[str]] = None) -> "Pitch":
        """Return the pitch ``size`` scale steps above (``1`` is a unison).

        When ``scale`` is omitted the natural letters are used and only the
        letter of ``self`` anchors the walk, so the result has no accidental.
        """

        return self._walk(size, scale, ascending=True)

    def step_down(self, size: int, scale: Optional[Sequence[str]] = None) -> "Pitch":
        """Mirror of :meth:`step_up` moving downward through ``scale``."""

        return self._walk(size, scale, ascending=False)

    def _respell(self, name: str, ascending: bool) -> "Pitch":
        quality, size = _parse_interval(name)
        simple_name = f"{quality}{(size - 1) % 7 + 1}"
        if simple_name not in INTERVAL_SEMITONES:
            logging.error("Interval %s is not defined", name)
            raise UndefinedIntervalError(f"Undefined interval: {name}")

        target = self._walk(size, None, ascending)
        goal = INTERVAL_SEMITONES[simple_name] + 12 * ((size - 1) // 7)
        if ascending:
            current = target.absolute - self.absolute
            adjust = goal - current
        else:
            current = self.absolute - target.absolute
            adjust = current - goal
        if adjust == 0:
            return target
        return Pitch(target.letter, adjust, target.octave)

    def plus_interval(self, name: str) -> "Pitch":
        """Return the pitch a named interval (``"M3"``, ``"P8"``, ``"A4"``) above.

        Raises
        ------
        UndefinedIntervalError
            If ``name`` is malformed or its quality does not exist for its size.
        """

        return self._respell(name, ascending=True)

    def minus_interval(self, name: str) -> "Pitch":
        """Return the pitch a named interval below ``self``."""

        return self._respell(name, ascending=False)


def scale_from(tonic: Union[Pitch, str], mode: Union[str, Sequence[str]] = "major") -> Tuple[str, ...]:
    """Return the seven pitch classes of ``mode`` built on ``tonic``.

    ``mode`` is either a key of :data:`SCALE_PATTERNS` or an explicit
    sequence of six interval names.

    >>> scale_from(Pitch.parse("D4"), "minor")
    ('D', 'E', 'F', 'G', 'A', 'Bb', 'C')
    """

    if isinstance(tonic, str):
        tonic = Pitch.parse(tonic)
    if isinstance(mode, str):
        if mode not in SCALE_PATTERNS:
            logging.error("Unknown mode: %s", mode)
            raise ValueError(f"Unknown mode '{mode}'")
        pattern: Sequence[str] = SCALE_PATTERNS[mode]
    else:
        pattern = mode
    notes = [tonic]
    for step in pattern:
        notes.append(notes[-1].plus_interval(step))
    return tuple(note.pitch_class for note in notes)
