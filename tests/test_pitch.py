"""Unit tests for the spelled pitch model in ``cantus_generator.pitch``.

The tests cover parsing and printing of scientific pitch notation, diatonic
stepping through the natural letters and through mode scales, and the naming
of intervals in both directions.  Enharmonic spellings are checked explicitly
because the search relies on ``F#`` and ``Gb`` being different notes.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from cantus_generator.pitch import (  # noqa: E402  # isort:skip
    INTERVAL_SEMITONES,
    Interval,
    MalformedPitchError,
    Pitch,
    UndefinedIntervalError,
    scale_from,
)


@pytest.mark.parametrize("text", ["C4", "F#3", "Bb5", "Ebb2", "G##4", "A0", "D10"])
def test_parse_and_str_round_trip(text):
    """Printing a parsed pitch reproduces the original spelling."""

    pitch = Pitch.parse(text)
    assert str(pitch) == text
    assert Pitch.parse(str(pitch)) == pitch


@pytest.mark.parametrize("text", ["H4", "c4", "C", "C#b4", "", " C4", "C-1", "4C"])
def test_parse_rejects_malformed_strings(text):
    """Malformed strings raise ``MalformedPitchError`` which is a ``ValueError``."""

    with pytest.raises(MalformedPitchError):
        Pitch.parse(text)
    assert issubclass(MalformedPitchError, ValueError)


def test_constructor_validates_letter_and_octave():
    with pytest.raises(MalformedPitchError):
        Pitch("X", 0, 4)
    with pytest.raises(MalformedPitchError):
        Pitch("C", 0, -1)
    with pytest.raises(MalformedPitchError):
        Pitch("C", 0, 100)


def test_absolute_matches_midi_numbers():
    """``absolute`` uses scientific octaves so C4 is middle C (60)."""

    assert Pitch.parse("C4").absolute == 60
    assert Pitch.parse("A4").absolute == 69
    assert Pitch.parse("B#3").absolute == 60
    assert Pitch.parse("Cb4").absolute == 59


def test_enharmonic_pitches_are_not_equal():
    """Spelling equality and sounding equality are different questions."""

    c_sharp = Pitch.parse("C#4")
    d_flat = Pitch.parse("Db4")
    assert c_sharp != d_flat
    assert c_sharp.is_enharmonic(d_flat)
    assert not c_sharp.is_lower(d_flat)
    assert not c_sharp.is_higher(d_flat)
    assert not c_sharp.same_pitch_class(d_flat)


def test_from_pitch_class_attaches_octave():
    assert Pitch.from_pitch_class("Eb", 3) == Pitch("E", -1, 3)


@pytest.mark.parametrize(
    "low, high, name",
    [
        ("C4", "D4", "M2"),
        ("E4", "F4", "m2"),
        ("C4", "E4", "M3"),
        ("C4", "C5", "P8"),
        ("B3", "F4", "d5"),
        ("F4", "B4", "A4"),
        ("C4", "B4", "M7"),
        ("C4", "D5", "M9"),
        ("C4", "Cb5", "d8"),
        ("C4", "B#4", "A7"),
    ],
)
def test_interval_names(low, high, name):
    """Intervals are named the same way regardless of argument order."""

    a, b = Pitch.parse(low), Pitch.parse(high)
    assert a.interval_to(b).name == name
    assert b.interval_to(a).name == name


def test_unison_and_generic_size():
    c4 = Pitch.parse("C4")
    assert c4.interval_to(c4) == Interval(1, "P")
    assert c4.interval_to(c4).quality_name == "Perfect"
    assert c4.generic_size_to(Pitch.parse("E4")) == 3
    assert Pitch.parse("E4").generic_size_to(Pitch.parse("C#4")) == 3
    assert c4.generic_size_to(Pitch.parse("D5")) == 9
    assert Interval(9, "M").simple_size == 2


def test_consonance_of_melodic_intervals():
    c4 = Pitch.parse("C4")
    assert c4.interval_to(Pitch.parse("D4")).is_consonant
    assert c4.interval_to(Pitch.parse("C5")).is_consonant
    assert not c4.interval_to(Pitch.parse("F#4")).is_consonant
    assert not c4.interval_to(Pitch.parse("B4")).is_consonant
    assert not c4.interval_to(Pitch.parse("D5")).is_consonant


@pytest.mark.parametrize(
    "start, name, expected",
    [
        ("C4", "P8", "C5"),
        ("D4", "M7", "C#5"),
        ("E4", "m2", "F4"),
        ("F4", "A4", "B4"),
        ("B3", "P5", "F#4"),
        ("C4", "A7", "B#4"),
    ],
)
def test_plus_interval_spells_target(start, name, expected):
    assert str(Pitch.parse(start).plus_interval(name)) == expected


@pytest.mark.parametrize(
    "start, name, expected",
    [
        ("C4", "M3", "Ab3"),
        ("E4", "m3", "C#4"),
        ("C5", "P8", "C4"),
        ("F4", "P4", "C4"),
    ],
)
def test_minus_interval_spells_target(start, name, expected):
    assert str(Pitch.parse(start).minus_interval(name)) == expected


def _named_intervals():
    """Every tabulated simple interval plus its compound form an octave up."""

    names = list(INTERVAL_SEMITONES)
    names += [f"{name[0]}{int(name[1:]) + 7}" for name in INTERVAL_SEMITONES]
    return names


@pytest.mark.parametrize("start", ["C4", "D4", "E4", "F#4", "Bb3", "B#3"])
def test_plus_and_minus_interval_are_inverse(start):
    """Adding then subtracting a named interval returns to the start."""

    pitch = Pitch.parse(start)
    for name in _named_intervals():
        above = pitch.plus_interval(name)
        assert above.minus_interval(name) == pitch, name
        if name != "d1":
            # Without a direction a diminished unison reads as augmented.
            assert pitch.interval_to(above).name == name
            assert above.interval_to(pitch).name == name


def test_enharmonic_neighbours_are_sized_by_letter():
    """Notes that sound alike but sit on different letters are a second apart."""

    b_sharp, c4 = Pitch.parse("B#3"), Pitch.parse("C4")
    assert b_sharp.generic_size_to(c4) == 2
    assert c4.generic_size_to(b_sharp) == 2
    assert c4.interval_to(b_sharp).name == "d2"

    d_double_flat = c4.plus_interval("d2")
    assert str(d_double_flat) == "Dbb4"
    assert c4.interval_to(d_double_flat).name == "d2"
    assert d_double_flat.interval_to(c4).name == "d2"

    assert c4.interval_to(Pitch.parse("Cb4")).name == "A1"


@pytest.mark.parametrize("name", ["P3", "M5", "X3", "M0", "m", "P1x"])
def test_undefined_intervals_raise(name):
    with pytest.raises(UndefinedIntervalError):
        Pitch.parse("C4").plus_interval(name)


def test_step_through_natural_letters():
    """Without a scale, stepping walks letters and wraps octaves at C and B."""

    assert Pitch.parse("B3").step_up(2) == Pitch.parse("C4")
    assert Pitch.parse("C4").step_down(2) == Pitch.parse("B3")
    assert Pitch.parse("C4").step_up(8) == Pitch.parse("C5")
    assert Pitch.parse("C4").step_up(1) == Pitch.parse("C4")


def test_step_through_mode_scale():
    g_major = scale_from("G4", "major")
    g4 = Pitch.parse("G4")
    assert g4.step_up(4, g_major) == Pitch.parse("C5")
    assert g4.step_up(7, g_major) == Pitch.parse("F#5")
    assert g4.step_up(9, g_major) == Pitch.parse("A5")
    assert g4.step_down(2, g_major) == Pitch.parse("F#4")

    d_minor = scale_from("D4", "minor")
    assert Pitch.parse("D4").step_down(3, d_minor) == Pitch.parse("Bb3")


@pytest.mark.parametrize("start", ["C4", "E4", "A3", "B4"])
def test_step_up_generic_size_matches(start):
    """Stepping ``n`` scale degrees produces a generic interval of size ``n``."""

    pitch = Pitch.parse(start)
    for size in range(1, 9):
        assert pitch.generic_size_to(pitch.step_up(size)) == size
        assert pitch.generic_size_to(pitch.step_down(size)) == size


def test_step_rejects_pitch_outside_scale():
    with pytest.raises(ValueError):
        Pitch.parse("C#4").step_up(2, scale_from("C4", "major"))
    with pytest.raises(ValueError):
        Pitch.parse("C4").step_up(0)


@pytest.mark.parametrize(
    "tonic, mode, expected",
    [
        ("C4", "major", ("C", "D", "E", "F", "G", "A", "B")),
        ("F4", "major", ("F", "G", "A", "Bb", "C", "D", "E")),
        ("A4", "minor", ("A", "B", "C", "D", "E", "F", "G")),
        ("D4", "minor", ("D", "E", "F", "G", "A", "Bb", "C")),
        ("D4", "dorian", ("D", "E", "F", "G", "A", "B", "C")),
        ("G4", "dorian", ("G", "A", "Bb", "C", "D", "E", "F")),
    ],
)
def test_scale_from_modes(tonic, mode, expected):
    assert scale_from(tonic, mode) == expected


def test_scale_from_unknown_mode():
    with pytest.raises(ValueError):
        scale_from("C4", "lydian")
