"""Analysis and ranking of a (possibly unfinished) cantus firmus.

:class:`MelodicLine` wraps an immutable sequence of :class:`Pitch` objects
together with the scale they are drawn from.  Every statistic used by the
search heuristic is derived on demand from that sequence, and the scalar
:attr:`MelodicLine.rank` combining them is computed once per line because
lines never change after construction.

Rank
----
Higher is better.  The score rewards length, pitch variety and uneven
melodic outline lengths, and penalises:

* uneven emphasis between pitches (after bonuses for leap arrivals and for
  the low and high points of longer lines),
* too many or too few leaps,
* too few stepwise seconds and repeated octave leaps,
* a narrow range relative to the number of distinct pitches,
* unbalanced upward and downward motion.

Lines with fewer than two notes always rank ``0``.

Example
-------
>>> from cantus_generator.pitch import scale_from
>>> line = MelodicLine.from_strings(["D4", "F4", "E4", "D4"], scale_from("D4", "dorian"))
>>> line.leap_count()
0
>>> [len(o) for o in line.melodic_outlines()]
[2, 3]
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from functools import cached_property
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .pitch import NOTE_LETTERS, Interval, Pitch

__all__ = [
    "MIN_LENGTH",
    "MAX_LENGTH",
    "MAX_RANGE",
    "MAX_LEAPS",
    "LEAP_SIZE",
    "PitchStats",
    "OutlineStats",
    "DirectionStats",
    "MelodicLine",
]

# Length bounds of a finished cantus firmus.
MIN_LENGTH = 8
MAX_LENGTH = 16
# Widest permitted distance between the lowest and highest notes.
MAX_RANGE = "M10"
# A finished line should contain at most four leaps.
MAX_LEAPS = 4
# Steps with a generic size above this value are leaps.
LEAP_SIZE = 3


@dataclass(frozen=True)
class PitchStats:
    """Per-pitch values keyed by canonical pitch string plus their spread."""

    values: Dict[str, float]
    mean: float
    std_deviation: float

    @property
    def count(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class OutlineStats:
    count: int
    mean: float
    std_deviation: float


@dataclass(frozen=True)
class DirectionStats:
    up: int
    down: int
    tied: int


def _spread(values: Iterable[float]) -> Tuple[float, float]:
    """Return the mean and population standard deviation of ``values``."""

    arr = np.fromiter(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0, 0.0
    return float(arr.mean()), float(arr.std())


@dataclass(frozen=True)
class MelodicLine:
    """Append-only melodic line built from ``scale``.

    Parameters
    ----------
    pitches:
        Notes of the line in order. Any iterable is accepted and stored as a
        tuple.
    scale:
        Pitch classes used for diatonic stepping. Defaults to the natural
        letters (C major).
    """

    pitches: Tuple[Pitch, ...] = ()
    scale: Tuple[str, ...] = field(default=NOTE_LETTERS)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pitches", tuple(self.pitches))
        object.__setattr__(self, "scale", tuple(self.scale))

    @classmethod
    def from_strings(cls, notes: Iterable[str], scale: Sequence[str] = NOTE_LETTERS) -> "MelodicLine":
        return cls(tuple(Pitch.parse(n) for n in notes), tuple(scale))

    def __len__(self) -> int:
        return len(self.pitches)

    def __iter__(self) -> Iterator[Pitch]:
        return iter(self.pitches)

    def __getitem__(self, index: int) -> Pitch:
        return self.pitches[index]

    def __str__(self) -> str:
        return "cf: [" + " ".join(str(p) for p in self.pitches) + "]"

    def extend(self, pitch: Pitch) -> "MelodicLine":
        """Return a new line with ``pitch`` appended."""

        return MelodicLine(self.pitches + (pitch,), self.scale)

    @property
    def first(self) -> Optional[Pitch]:
        return self.pitches[0] if self.pitches else None

    @property
    def last(self) -> Optional[Pitch]:
        return self.pitches[-1] if self.pitches else None

    @cached_property
    def leading_tone(self) -> Optional[Pitch]:
        """Major seventh above the first note, or ``None`` for an empty line."""

        return self.pitches[0].plus_interval("M7") if self.pitches else None

    def _steps(self) -> Iterator[Tuple[Pitch, Pitch]]:
        return zip(self.pitches, self.pitches[1:])

    # ------------------------------------------------------------------
    # Extremes and pitch inventory
    # ------------------------------------------------------------------
    def sorted_ascending(self) -> List[Pitch]:
        return sorted(self.pitches, key=lambda p: p.absolute)

    def lowest(self) -> Pitch:
        return self.sorted_ascending()[0]

    def highest(self) -> Pitch:
        return self.sorted_ascending()[-1]

    def range(self) -> Interval:
        return self.lowest().interval_to(self.highest())

    def climax_index(self) -> int:
        """Index of the first occurrence of the highest pitch."""

        return self.pitches.index(self.highest())

    def unique_pitches(self) -> List[Pitch]:
        """Distinct pitches from low to high; respellings count separately."""

        return list(dict.fromkeys(self.sorted_ascending()))

    def leap_count(self) -> int:
        return sum(1 for a, b in self._steps() if a.generic_size_to(b) > LEAP_SIZE)

    def pitch_frequency(self) -> PitchStats:
        """Occurrence count of every pitch with mean and standard deviation."""

        counts = Counter(str(p) for p in self.sorted_ascending())
        values = {name: float(n) for name, n in counts.items()}
        mean, std = _spread(values.values())
        return PitchStats(values, mean, std)

    def pitch_weights(self) -> PitchStats:
        """Like :meth:`pitch_frequency` with extra weight on prominent notes.

        A note reached by a leap gains ``sqrt(size) - 1.75``; once the line
        has eight notes the highest pitch gains ``1`` and so does the lowest
        pitch when it lies below the opening note.
        """

        weights = dict(self.pitch_frequency().values)
        for prev, cur in self._steps():
            size = cur.generic_size_to(prev)
            if size > LEAP_SIZE:
                weights[str(cur)] += math.sqrt(size) - 1.75
        if len(self) >= MIN_LENGTH:
            weights[str(self.highest())] += 1
            low = self.lowest()
            if low.is_lower(self.pitches[0]):
                weights[str(low)] += 1
        mean, std = _spread(weights.values())
        return PitchStats(weights, mean, std)

    # ------------------------------------------------------------------
    # Contour
    # ------------------------------------------------------------------
    def melodic_outlines(self) -> List[Tuple[Pitch, ...]]:
        """Split the line into runs moving in one direction.

        Direction is "the next note is higher".  A repeated note therefore
        reads as not ascending and groups with descending motion.  The note
        where the direction changes ends one outline and starts the next.
        """

        n = len(self)
        if n < 2:
            return [self.pitches] if n else []
        boundaries = [0]
        previous = self.pitches[0].is_lower(self.pitches[1])
        for i in range(2, n):
            direction = self.pitches[i - 1].is_lower(self.pitches[i])
            if direction != previous:
                boundaries += [i - 1, i - 1]
                previous = direction
        boundaries.append(n - 1)
        return [
            self.pitches[boundaries[i]: boundaries[i + 1] + 1]
            for i in range(0, len(boundaries), 2)
        ]

    def outline_shape_stats(self) -> OutlineStats:
        lengths = [len(o) for o in self.melodic_outlines()]
        mean, std = _spread(lengths)
        return OutlineStats(len(lengths), mean, std)

    def interval_histogram(self) -> Counter:
        """Number of steps of each generic size between consecutive notes."""

        return Counter(b.generic_size_to(a) for a, b in self._steps())

    def direction_stats(self) -> DirectionStats:
        up = down = tied = 0
        for prev, cur in self._steps():
            if cur.is_lower(prev):
                down += 1
            elif cur.is_higher(prev):
                up += 1
            else:
                tied += 1
        return DirectionStats(up, down, tied)

    # ------------------------------------------------------------------
    # Heuristic score
    # ------------------------------------------------------------------
    @cached_property
    def rank(self) -> float:
        length = len(self)
        if length <= 1:
            return 0.0

        unique_count = len(self.unique_pitches())
        score = 0.1 * length
        score += unique_count
        score += 6 * self.outline_shape_stats().std_deviation

        if length > 6:
            score -= self.pitch_weights().std_deviation

        leaps = self.leap_count()
        if leaps > MAX_LEAPS:
            score -= leaps - MAX_LEAPS
        elif length >= 5:
            # Roughly one leap per four notes; never a bonus.
            deduction = leaps - length / 4
            if deduction < 0:
                score += deduction

        histogram = self.interval_histogram()
        if length > 5 and 2 in histogram:
            # A line without any seconds is not penalised here.
            desired_seconds = (length - 1) / 1.85
            if histogram[2] < desired_seconds:
                score -= desired_seconds - histogram[2]
        if 8 in histogram:
            score -= histogram[8] - 1

        span = self.lowest().generic_size_to(self.highest())
        if span < length and length > 5:
            score -= span - unique_count

        if length > 6:
            directions = self.direction_stats()
            off_balance = abs(directions.up - directions.down) - 2
            score -= off_balance * (length / 8)

        return score

    # ------------------------------------------------------------------
    # Finished-line checks
    # ------------------------------------------------------------------
    def is_complete(self, goal_length: int) -> bool:
        """Return ``True`` when the line has ``goal_length`` notes and ends 2-1."""

        if len(self) != goal_length or goal_length < 3:
            return False
        tonic = self.pitches[0]
        return (
            self.pitches[-1] == tonic
            and self.pitches[-2] == tonic.step_up(2, self.scale)
        )

    def errors(self) -> List[str]:
        """Describe every rule a finished cantus firmus breaks.

        Returns an empty list for a line that passes all checks.
        """

        if not self.pitches:
            return ["Cantus firmus is empty."]

        problems: List[str] = []
        first, last = self.pitches[0], self.pitches[-1]
        if first != last:
            problems.append(
                f"Cantus firmus must end on the tonic ({first}); the last note is {last}."
            )
        if len(self) < MIN_LENGTH:
            problems.append(
                f"Cantus firmus must be at least {MIN_LENGTH} notes long; current length is {len(self)}."
            )
        if len(self) > MAX_LENGTH:
            problems.append(
                f"Cantus firmus cannot be more than {MAX_LENGTH} notes long; current length is {len(self)}."
            )

        low, high = self.lowest(), self.highest()
        if high.is_higher(low.plus_interval(MAX_RANGE)):
            problems.append(
                f"Range cannot be greater than a {MAX_RANGE}; current range is {self.range()}."
            )

        repeats = self.pitches.count(high)
        if repeats > 1:
            problems.append(
                f"Climax note cannot be repeated; the highest note ({high}) is used {repeats} times."
            )

        for prev, cur in self._steps():
            interval = prev.interval_to(cur)
            if not interval.is_consonant:
                problems.append(f"Dissonant melodic interval ({interval}) from {prev} to {cur}.")

        for outline in self.melodic_outlines():
            if len(outline) > 2:
                interval = outline[0].interval_to(outline[-1])
                if not interval.is_consonant:
                    notes = " ".join(str(p) for p in outline)
                    problems.append(f"{notes} outline a dissonant interval ({interval}).")

        leaps = self.leap_count()
        if leaps > MAX_LEAPS:
            problems.append(f"Too many leaps ({leaps}); use at most {MAX_LEAPS}.")
        return problems
