"""Legal next notes for a cantus firmus under construction.

:func:`next_pitches` encodes the melodic rules of species counterpoint as a
small priority-ordered decision:

1. An empty line starts on the tonic in octave ``4``.
2. After a single note any consonant step or leap up to an octave is open.
3. A leap larger than a third must be recovered by a step or third in the
   opposite direction.
4. After stepwise motion the current melodic outline (the run of notes moving
   the same way) decides what follows.  An outline of five notes must turn
   around, and it can only turn around when its total span is itself a
   consonant melodic interval.  Shorter outlines may also continue, but never
   past an octave and never onto a note dissonant with the outline's start.

Every candidate is finally filtered so that it forms a consonant melodic
interval with the previous note and is not the leading tone reached by leap.

Example
-------
>>> from cantus_generator.melodic_line import MelodicLine
>>> line = MelodicLine.from_strings(["C4", "A4"])
>>> sorted(str(p) for p in next_pitches(line))
['F4', 'G4']
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .melodic_line import LEAP_SIZE, MelodicLine
from .pitch import MalformedPitchError, Pitch

__all__ = [
    "OPENING_OCTAVE",
    "OutlineContext",
    "current_outline",
    "next_pitches",
    "is_next_pitch_possible",
]

# Octave used when the line is empty.
OPENING_OCTAVE = 4

# Generic sizes offered after a single note or when turning after a second.
ALL_SIZES: Tuple[int, ...] = (2, 3, 4, 5, 6, 8)
# Recovery after a leap.
RECOVERY_SIZES: Tuple[int, ...] = (2, 3)
# Turning after a third or a fourth avoids outlining a triad.
TURN_AFTER_THIRD: Tuple[int, ...] = (2, 4, 8)
TURN_AFTER_FOURTH: Tuple[int, ...] = (2, 3, 5, 8)
# Same-direction continuations after a second.
CONTINUE_FROM_START: Tuple[int, ...] = (3, 4, 5)
CONTINUE_IN_RUN: Tuple[int, ...] = (3,)

# An outline this long must change direction.
MAX_OUTLINE_NOTES = 5
# Widest generic span a single outline may cover.
MAX_OUTLINE_SPAN = 8


@dataclass(frozen=True)
class OutlineContext:
    """The melodic outline ending at the last note of a line.

    ``ascending`` follows the outline convention of
    :meth:`MelodicLine.melodic_outlines`: a repeated note is not ascending.
    """

    notes: Tuple[Pitch, ...]
    ascending: bool
    last_step: int

    @property
    def start(self) -> Pitch:
        return self.notes[0]

    @property
    def end(self) -> Pitch:
        return self.notes[-1]

    @property
    def span(self) -> int:
        """Generic size between the outline's first and last notes."""

        return self.end.generic_size_to(self.start)

    @property
    def can_turn(self) -> bool:
        """Whether the outlined interval is consonant enough to end on."""

        return self.end.interval_to(self.start).is_consonant


def current_outline(line: MelodicLine) -> OutlineContext:
    """Return the outline ending at the last note of ``line``.

    ``line`` must contain at least two notes.
    """

    if len(line) < 2:
        raise ValueError("an outline needs at least two notes")
    before, last = line[-2], line[-1]
    ascending = before.is_lower(last)
    notes = [before, last]
    for pitch in reversed(line.pitches[:-2]):
        if pitch.is_lower(notes[0]) != ascending:
            break
        notes.insert(0, pitch)
    return OutlineContext(tuple(notes), ascending, before.generic_size_to(last))


def _move(pitch: Pitch, size: int, ascending: bool, scale) -> Optional[Pitch]:
    """Step through ``scale``; ``None`` when the result leaves octaves 0-99."""

    try:
        return pitch.step_up(size, scale) if ascending else pitch.step_down(size, scale)
    except MalformedPitchError:
        logging.debug("No note %d steps %s %s", size, "above" if ascending else "below", pitch)
        return None


def _admit(line: MelodicLine, size: int, ascending: bool) -> Optional[Pitch]:
    """Return the note ``size`` steps away if it survives the global filters."""

    last = line[-1]
    candidate = _move(last, size, ascending, line.scale)
    if candidate is None:
        return None
    leading_tone = line.leading_tone
    if (
        size > LEAP_SIZE
        and leading_tone is not None
        and candidate.absolute % 12 == leading_tone.absolute % 12
    ):
        logging.debug("Rejecting leap of %d onto leading tone %s", size, candidate)
        return None
    if not last.interval_to(candidate).is_consonant:
        return None
    return candidate


def _collect(line: MelodicLine, sizes: Iterable[int], ascending: bool) -> List[Pitch]:
    admitted = (_admit(line, size, ascending) for size in sizes)
    return [p for p in admitted if p is not None]


def _turning_sizes(context: OutlineContext) -> Tuple[int, ...]:
    if context.last_step == 3:
        return TURN_AFTER_THIRD
    if context.last_step == 4:
        return TURN_AFTER_FOURTH
    return ALL_SIZES


def _turning_candidates(line: MelodicLine, context: OutlineContext) -> List[Pitch]:
    if not context.can_turn:
        return []
    return _collect(line, _turning_sizes(context), not context.ascending)


def _continuing_candidates(line: MelodicLine, context: OutlineContext) -> List[Pitch]:
    sizes = [2]
    if context.last_step == 2:
        sizes.extend(CONTINUE_IN_RUN if len(context.notes) > 2 else CONTINUE_FROM_START)

    result: List[Pitch] = []
    for size in sizes:
        # ``size - 1`` additional steps are added to the outlined span.
        if context.span + size - 1 > MAX_OUTLINE_SPAN:
            continue
        if size > 2:
            target = _move(line[-1], size, context.ascending, line.scale)
            if target is None or not context.start.interval_to(target).is_consonant:
                continue
        result.extend(_collect(line, (size,), context.ascending))
    return result


def next_pitches(line: MelodicLine) -> List[Pitch]:
    """Return every pitch that may legally follow ``line``.

    The order of the result carries no meaning; the search driver shuffles
    it before use. An empty list marks a dead end.
    """

    if not len(line):
        return [Pitch.from_pitch_class(line.scale[0], OPENING_OCTAVE)]

    if len(line) == 1:
        return _collect(line, ALL_SIZES, True) + _collect(line, ALL_SIZES, False)

    before, last = line[-2], line[-1]
    if before.generic_size_to(last) > LEAP_SIZE:
        return _collect(line, RECOVERY_SIZES, not before.is_lower(last))

    context = current_outline(line)
    if len(context.notes) >= MAX_OUTLINE_NOTES:
        # Must turn; a dissonant outline leaves nowhere to go.
        return _turning_candidates(line, context)
    return _turning_candidates(line, context) + _continuing_candidates(line, context)


def is_next_pitch_possible(line: MelodicLine, pitch: Pitch) -> bool:
    """Return ``True`` when ``pitch`` (exact spelling) may follow ``line``."""

    return pitch in next_pitches(line)
