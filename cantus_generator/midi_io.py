"""Write a generated cantus firmus to a MIDI file.

A cantus firmus is traditionally notated in whole notes, so every pitch is
rendered as one semibreve in 4/4.  The helper is separated from the search
code so applications can compose lines without touching the filesystem.

Example
-------
>>> from cantus_generator.midi_io import create_midi_file
>>> create_midi_file(["D4", "F4", "E4", "D4"], "cf.mid")  # doctest: +SKIP
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Union

import mido
from mido import Message, MetaMessage, MidiFile, MidiTrack

from .pitch import Pitch

__all__ = ["TICKS_PER_BEAT", "pitch_to_midi", "create_midi_file"]

TICKS_PER_BEAT = 480
WHOLE_NOTE_TICKS = TICKS_PER_BEAT * 4


def pitch_to_midi(pitch: Union[Pitch, str]) -> int:
    """Return the MIDI number of ``pitch``.

    Raises
    ------
    ValueError
        If the pitch lies outside the MIDI range ``0-127``.
    """

    if isinstance(pitch, str):
        pitch = Pitch.parse(pitch)
    midi_val = pitch.absolute
    if not 0 <= midi_val <= 127:
        logging.error("MIDI value out of range: %s -> %d", pitch, midi_val)
        raise ValueError(f"Computed MIDI value {midi_val} out of range 0-127 for note {pitch}")
    return midi_val


def create_midi_file(
    pitches: Iterable[Union[Pitch, str]],
    output_file: Union[str, Path],
    bpm: int = 60,
    program: int = 0,
    velocity: int = 64,
) -> MidiFile:
    """Write ``pitches`` to ``output_file`` as consecutive whole notes.

    The parent directory of ``output_file`` is created automatically.

    Returns
    -------
    MidiFile
        The in-memory file that was written.

    Raises
    ------
    ValueError
        If ``bpm`` is not positive, ``program`` or ``velocity`` fall outside
        ``0-127`` or a pitch cannot be expressed in MIDI.
    """

    if bpm <= 0:
        raise ValueError("bpm must be a positive integer")
    if not 0 <= program <= 127:
        raise ValueError("program must be between 0 and 127")
    if not 0 <= velocity <= 127:
        raise ValueError("velocity must be between 0 and 127")
    notes = [pitch_to_midi(p) for p in pitches]

    mid = MidiFile(ticks_per_beat=TICKS_PER_BEAT)
    track = MidiTrack()
    mid.tracks.append(track)
    track.append(MetaMessage("set_tempo", tempo=mido.bpm2tempo(bpm)))
    track.append(MetaMessage("time_signature", numerator=4, denominator=4))
    track.append(Message("program_change", program=program, time=0))
    for note in notes:
        track.append(Message("note_on", note=note, velocity=velocity, time=0))
        track.append(Message("note_off", note=note, velocity=velocity, time=WHOLE_NOTE_TICKS))

    path = Path(output_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    mid.save(str(path))
    logging.info("Wrote %d notes to %s", len(notes), path)
    return mid
