"""Two-phase best-first search that composes a cantus firmus.

The builder first searches for lines that reach a chosen climax pitch at a
chosen position, then continues the best of those lines to a stepwise
``2 - 1`` cadence on the tonic.  Both phases share the same discipline:

    frontier = MaxPQ(by rank)
    while frontier and not done:
        line = frontier.del_max()
        choices = next_pitches(line)
        if line is one note short of the phase goal:
            append the goal if it is among the choices
        else:
            shuffle(choices)
            push line + choice for every choice inside the range window

Phase A stops after :data:`SUCCESS_QUOTA` climax-reaching lines, so it
samples rather than enumerates.  Phase B stops at the first completed
cadence or when the frontier is exhausted; in the latter case the last line
held is returned as an incomplete result rather than raising.

Example
-------
>>> from cantus_generator.search import GenerationConfig, generate_cantus_firmus
>>> result = generate_cantus_firmus(GenerationConfig(tonic="D4", mode="dorian"), seed=3)
>>> result.pitches[0]
'D4'

Design Notes
------------
- Randomness comes from an injectable :class:`random.Random` so a seed
  reproduces a run exactly.  Candidate lists are kept in generation order
  before shuffling for the same reason.
- Progress is logged at ``DEBUG`` level and may also be observed through an
  optional ``trace`` callback receiving :class:`SearchEvent` objects.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .continuation import is_next_pitch_possible, next_pitches
from .melodic_line import MelodicLine
from .pitch import Pitch, scale_from
from .priority_queue import MaxPQ

__all__ = [
    "SUCCESS_QUOTA",
    "GenerationConfig",
    "ResolvedConfig",
    "SearchEvent",
    "GenerationResult",
    "CantusFirmusBuilder",
    "resolve_config",
    "generate_cantus_firmus",
]

# Climax-reaching lines collected before Phase A stops.
SUCCESS_QUOTA = 10

# Random defaults for unset configuration values.
DEFAULT_TONICS: Tuple[str, ...] = ("G4", "F4", "A4")
DEFAULT_MODES: Tuple[str, ...] = ("major", "minor", "dorian")
MIN_GOAL_LENGTH = 8
MAX_GOAL_LENGTH = 16
MIN_CLIMAX_SIZE = 2
MAX_CLIMAX_SIZE = 8  # exclusive
SHORT_LINE_MAX_CLIMAX_SIZE = 6  # exclusive, used when the goal length is 8
MIN_RANGE = 5
MAX_RANGE_SIZE = 10  # exclusive

PHASE_CLIMAX = "climax"
PHASE_CADENCE = "cadence"

TraceCallback = Callable[["SearchEvent"], None]


@dataclass
class GenerationConfig:
    """User-facing generation options; ``None`` means "choose at random".

    Parameters
    ----------
    tonic:
        First and last note, as a :class:`Pitch` or a string like ``"G4"``.
        Ignored when ``starting_line`` is supplied.
    mode:
        ``"major"``, ``"minor"`` or ``"dorian"``. Ignored when ``scale`` or
        ``starting_line`` is supplied.
    scale:
        Explicit seven pitch classes starting on the tonic's pitch class.
    starting_line:
        Partial line to continue instead of the lone tonic.
    goal_length:
        Total number of notes of the finished line.
    climax:
        Highest note of the line.
    climax_position:
        Zero-based index of the climax. Equal to ``goal_length - 2`` the
        climax doubles as the penultimate note and Phase A is skipped.
    max_range:
        Generic size from the lowest allowed note up to the climax.
    success_quota:
        Number of climax-reaching lines Phase A collects.
    max_iterations:
        Optional cap on the nodes popped per phase.
    """

    tonic: Optional[Union[Pitch, str]] = None
    mode: Optional[str] = None
    scale: Optional[Sequence[str]] = None
    starting_line: Optional[MelodicLine] = None
    goal_length: Optional[int] = None
    climax: Optional[Union[Pitch, str]] = None
    climax_position: Optional[int] = None
    max_range: Optional[int] = None
    success_quota: int = SUCCESS_QUOTA
    max_iterations: Optional[int] = None

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "GenerationConfig":
        """Build a config from a settings mapping, ignoring unknown keys."""

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {k: v for k, v in settings.items() if k in known and v is not None}
        unknown = sorted(set(settings) - known)
        if unknown:
            logging.warning("Ignoring unknown settings: %s", ", ".join(unknown))
        if "starting_line" in values and not isinstance(values["starting_line"], MelodicLine):
            raise ValueError("starting_line must be a MelodicLine")
        return cls(**values)


@dataclass(frozen=True)
class ResolvedConfig:
    """Fully specified search parameters derived from a :class:`GenerationConfig`."""

    start: MelodicLine
    goal_length: int
    climax: Pitch
    climax_position: int
    max_range: int
    min_pitch: Pitch
    success_quota: int = SUCCESS_QUOTA
    max_iterations: Optional[int] = None

    @property
    def tonic(self) -> Pitch:
        return self.start[0]

    @property
    def scale(self) -> Tuple[str, ...]:
        return self.start.scale

    @property
    def skips_climax_phase(self) -> bool:
        return self.climax_position == self.goal_length - 2


@dataclass(frozen=True)
class SearchEvent:
    """Observation emitted to the optional trace callback.

    ``kind`` is one of ``popped``, ``candidates``, ``accepted``,
    ``rejected``, ``goal_reached``, ``completed`` or ``exhausted``.
    """

    kind: str
    phase: str
    line: MelodicLine
    pitch: Optional[Pitch] = None
    candidates: Tuple[Pitch, ...] = ()


@dataclass(frozen=True)
class GenerationResult:
    line: MelodicLine
    complete: bool
    config: Optional[ResolvedConfig] = field(default=None, compare=False)

    @property
    def rank(self) -> float:
        return self.line.rank

    @property
    def pitches(self) -> List[str]:
        return [str(p) for p in self.line]

    def __str__(self) -> str:
        status = "complete" if self.complete else "incomplete"
        return f"{self.line} rank={self.rank:.3f} ({status})"


def _as_pitch(value: Union[Pitch, str]) -> Pitch:
    return value if isinstance(value, Pitch) else Pitch.parse(value)


def resolve_config(config: Optional[GenerationConfig] = None, rng: Optional[random.Random] = None) -> ResolvedConfig:
    """Fill unset values of ``config`` with random choices from ``rng``.

    Raises
    ------
    ValueError
        If an explicit value is inconsistent, e.g. a climax position outside
        ``1 .. goal_length - 2`` or a climax not above the tonic.
    """

    config = config or GenerationConfig()
    rng = rng or random.Random()

    if config.starting_line is not None:
        start = config.starting_line
        if not len(start):
            raise ValueError("starting_line must contain at least one note")
    else:
        tonic = _as_pitch(config.tonic) if config.tonic is not None else Pitch.parse(rng.choice(DEFAULT_TONICS))
        if config.scale is not None:
            scale = tuple(config.scale)
            if not scale or scale[0] != tonic.pitch_class:
                raise ValueError(f"scale must start on the tonic's pitch class {tonic.pitch_class}")
        else:
            scale = scale_from(tonic, config.mode or rng.choice(DEFAULT_MODES))
        start = MelodicLine((tonic,), scale)
    tonic = start[0]

    goal_length = config.goal_length
    if goal_length is None:
        goal_length = rng.randint(MIN_GOAL_LENGTH, MAX_GOAL_LENGTH)
    if goal_length < 3:
        raise ValueError("goal_length must be at least 3")

    climax_position = config.climax_position
    if config.climax is not None:
        climax = _as_pitch(config.climax)
        if not climax.is_higher(tonic):
            raise ValueError(f"climax {climax} must be higher than the tonic {tonic}")
        climax_size = tonic.generic_size_to(climax)
    else:
        upper = SHORT_LINE_MAX_CLIMAX_SIZE if goal_length == MIN_GOAL_LENGTH else MAX_CLIMAX_SIZE
        climax_size = rng.randrange(MIN_CLIMAX_SIZE, upper)
        if climax_size == 7 and tonic.plus_interval("M7") == tonic.step_up(7, start.scale):
            # The seventh degree is the leading tone; pick something lower.
            climax_size = rng.randrange(MIN_CLIMAX_SIZE, SHORT_LINE_MAX_CLIMAX_SIZE)
        climax = tonic.step_up(climax_size, start.scale)
    if climax_size == 2 and climax_position is None:
        # A climax one step above the tonic can only be the penultimate note.
        climax_position = goal_length - 2

    if climax_position is None:
        start_offset, end_offset = 1, 3
        if climax_size >= 7:
            start_offset += 1
            end_offset += 1
        if climax_size > 4:
            end_offset += 1
        climax_position = start_offset + rng.randrange(max(1, goal_length - end_offset))
        climax_position = min(climax_position, goal_length - 2)
    if not 1 <= climax_position <= goal_length - 2:
        raise ValueError(f"climax_position must lie between 1 and {goal_length - 2}")
    if len(start) > climax_position and climax_position != goal_length - 2:
        raise ValueError("starting_line already extends past the climax position")
    if len(start) > goal_length - 2:
        raise ValueError("starting_line already extends past the cadence")

    max_range = config.max_range
    if max_range is None:
        min_range = max(climax_size, MIN_RANGE)
        max_range = rng.randrange(min_range, MAX_RANGE_SIZE) if min_range < MAX_RANGE_SIZE else min_range
    if max_range < 2:
        raise ValueError("max_range must be at least 2")
    if config.success_quota < 1:
        raise ValueError("success_quota must be positive")
    if config.max_iterations is not None and config.max_iterations < 1:
        raise ValueError("max_iterations must be positive")

    return ResolvedConfig(
        start=start,
        goal_length=goal_length,
        climax=climax,
        climax_position=climax_position,
        max_range=max_range,
        min_pitch=climax.step_down(max_range, start.scale),
        success_quota=config.success_quota,
        max_iterations=config.max_iterations,
    )


def _rank_is_less(a: MelodicLine, b: MelodicLine) -> bool:
    return a.rank < b.rank


class CantusFirmusBuilder:
    """Compose a cantus firmus for ``config`` using best-first search.

    Parameters
    ----------
    config:
        Generation options; unset values are drawn from ``rng``.
    rng:
        Random source used for defaults and for shuffling candidates.
    seed:
        Convenience alternative to ``rng``; ignored when ``rng`` is given.
    trace:
        Optional callable receiving a :class:`SearchEvent` for each step.
    """

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        *,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        trace: Optional[TraceCallback] = None,
    ) -> None:
        self.rng = rng if rng is not None else random.Random(seed)
        self.trace = trace
        self.config = resolve_config(config, self.rng)
        self.line = self.config.start
        logging.debug(
            "Resolved config: start=%s goal_length=%d climax=%s at %d max_range=%d min_pitch=%s",
            self.config.start,
            self.config.goal_length,
            self.config.climax,
            self.config.climax_position,
            self.config.max_range,
            self.config.min_pitch,
        )

    def _emit(self, kind: str, phase: str, line: MelodicLine, pitch: Optional[Pitch] = None,
              candidates: Sequence[Pitch] = ()) -> None:
        if self.trace is not None:
            self.trace(SearchEvent(kind, phase, line, pitch, tuple(candidates)))

    def in_range(self, pitch: Pitch) -> bool:
        """Return ``True`` for pitches strictly below the climax and not below the floor."""

        return pitch.is_lower(self.config.climax) and not pitch.is_lower(self.config.min_pitch)

    def _expand(self, frontier: MaxPQ, line: MelodicLine, choices: List[Pitch], phase: str) -> None:
        self.rng.shuffle(choices)
        for pitch in choices:
            if self.in_range(pitch):
                frontier.insert(line.extend(pitch))
                self._emit("accepted", phase, line, pitch)
            else:
                self._emit("rejected", phase, line, pitch)

    def _pop(self, frontier: MaxPQ, phase: str) -> Tuple[MelodicLine, List[Pitch]]:
        line = frontier.del_max()
        self._emit("popped", phase, line)
        choices = next_pitches(line)
        self._emit("candidates", phase, line, candidates=choices)
        logging.debug("%s: popped %s rank=%.3f choices=%s", phase, line, line.rank,
                      " ".join(str(p) for p in choices))
        return line, choices

    def _budget_spent(self, iterations: int, phase: str) -> bool:
        limit = self.config.max_iterations
        if limit is not None and iterations >= limit:
            logging.warning("%s phase stopped after %d iterations", phase, iterations)
            return True
        return False

    def compose_to_climax(self, deposit: MaxPQ) -> int:
        """Phase A: push lines ending on the climax into ``deposit``.

        Returns the number of lines deposited.
        """

        cfg = self.config
        frontier: MaxPQ = MaxPQ(_rank_is_less)
        frontier.insert(cfg.start)
        found = 0
        iterations = 0
        while not frontier.is_empty() and found < cfg.success_quota:
            if self._budget_spent(iterations, PHASE_CLIMAX):
                break
            iterations += 1
            line, choices = self._pop(frontier, PHASE_CLIMAX)
            self.line = line
            if not choices:
                continue
            if len(line) > cfg.climax_position:
                continue
            if len(line) == cfg.climax_position:
                if cfg.climax in choices:
                    self.line = line.extend(cfg.climax)
                    deposit.insert(self.line)
                    found += 1
                    self._emit("goal_reached", PHASE_CLIMAX, self.line, cfg.climax)
                    logging.debug("Reached climax: %s rank=%.3f", self.line, self.line.rank)
                continue
            self._expand(frontier, line, choices, PHASE_CLIMAX)
        if found == 0:
            self._emit("exhausted", PHASE_CLIMAX, self.line)
        logging.info("Climax phase found %d line(s) after %d iteration(s)", found, iterations)
        return found

    def compose_to_end(self, frontier: MaxPQ) -> MelodicLine:
        """Phase B: continue lines from ``frontier`` to the ``2 - 1`` cadence."""

        cfg = self.config
        penultimate_position = cfg.goal_length - 2
        penultimate = cfg.tonic.step_up(2, cfg.scale)
        iterations = 0
        while len(self.line) < cfg.goal_length and not frontier.is_empty():
            if self._budget_spent(iterations, PHASE_CADENCE):
                break
            iterations += 1
            line, choices = self._pop(frontier, PHASE_CADENCE)
            self.line = line
            if not choices:
                continue
            if len(line) > penultimate_position:
                continue
            if len(line) == penultimate_position:
                if penultimate in choices:
                    self.line = line.extend(penultimate)
                    self._emit("goal_reached", PHASE_CADENCE, self.line, penultimate)
                    if is_next_pitch_possible(self.line, cfg.tonic):
                        self.line = self.line.extend(cfg.tonic)
                        self._emit("completed", PHASE_CADENCE, self.line, cfg.tonic)
                continue
            self._expand(frontier, line, choices, PHASE_CADENCE)
        if len(self.line) < cfg.goal_length:
            self._emit("exhausted", PHASE_CADENCE, self.line)
        return self.line

    def build(self) -> GenerationResult:
        """Run both phases and return the finished (or best-effort) line."""

        cfg = self.config
        frontier: MaxPQ = MaxPQ(_rank_is_less)
        if cfg.skips_climax_phase:
            frontier.insert(cfg.start)
        else:
            self.compose_to_climax(frontier)
        line = self.compose_to_end(frontier)
        complete = line.is_complete(cfg.goal_length)
        if complete:
            logging.info("Composed %s rank=%.3f", line, line.rank)
        else:
            logging.warning("Search ended without a cadence; best effort is %s", line)
        return GenerationResult(line, complete, cfg)


def generate_cantus_firmus(
    config: Optional[GenerationConfig] = None,
    *,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
    trace: Optional[TraceCallback] = None,
) -> GenerationResult:
    """Compose a cantus firmus in one call; see :class:`CantusFirmusBuilder`."""

    return CantusFirmusBuilder(config, rng=rng, seed=seed, trace=trace).build()
