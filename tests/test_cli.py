"""Command line interface tests.

Every test passes ``--settings-file`` pointing inside ``tmp_path`` so the
user's real settings file is never read or written.  The generation options
describe a short C major line that always completes, which keeps the output
predictable.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from cantus_generator.cli import build_parser, run_cli  # noqa: E402  # isort:skip

SHORT_LINE_ARGS = [
    "--tonic", "C4",
    "--mode", "major",
    "--length", "8",
    "--climax", "G4",
    "--climax-position", "3",
    "--max-range", "6",
]


def _settings_args(tmp_path):
    return ["--settings-file", str(tmp_path / "settings.json")]


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.bpm == 60
    assert args.instrument == 0
    assert args.goal_length is None
    assert not args.check


def test_run_cli_prints_line_and_writes_midi(tmp_path, capsys):
    out = tmp_path / "cf.mid"
    code = run_cli(SHORT_LINE_ARGS + ["--seed", "1", "--output", str(out)] + _settings_args(tmp_path))

    assert code == 0
    lines = capsys.readouterr().out.splitlines()
    notes = lines[0].split()
    assert len(notes) == 8
    assert notes[0] == "C4" and notes[-2:] == ["D4", "C4"]
    assert lines[1].startswith("rank: ")
    assert lines[2] == "complete"
    assert out.is_file()


def test_run_cli_check_lists_rule_report(tmp_path, capsys):
    code = run_cli(SHORT_LINE_ARGS + ["--seed", "2", "--check"] + _settings_args(tmp_path))

    assert code == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) > 3
    assert lines[3] == "No errors found!" or lines[3].startswith("- ")


def test_invalid_tonic_exits_with_error(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        with pytest.raises(SystemExit) as exc:
            run_cli(["--tonic", "H4"] + _settings_args(tmp_path))
    assert exc.value.code == 1
    assert "Invalid generation options" in caplog.text


def test_invalid_bpm_exits_with_error(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        with pytest.raises(SystemExit) as exc:
            run_cli(SHORT_LINE_ARGS + ["--bpm", "0"] + _settings_args(tmp_path))
    assert exc.value.code == 1
    assert "BPM must be a positive integer" in caplog.text


def test_unwritable_output_exits_with_error(tmp_path, caplog):
    """A directory where the MIDI file should go makes ``save`` fail."""

    target = tmp_path / "taken"
    target.mkdir()
    with caplog.at_level(logging.ERROR):
        with pytest.raises(SystemExit) as exc:
            run_cli(SHORT_LINE_ARGS + ["--seed", "1", "--output", str(target)] + _settings_args(tmp_path))
    assert exc.value.code == 1
    assert "Could not write MIDI file" in caplog.text


def test_settings_file_supplies_defaults(tmp_path, capsys):
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({
        "tonic": "C4",
        "mode": "major",
        "goal_length": 8,
        "climax": "G4",
        "climax_position": 3,
        "max_range": 6,
    }))

    code = run_cli(["--seed", "4", "--settings-file", str(settings)])

    assert code == 0
    notes = capsys.readouterr().out.splitlines()[0].split()
    assert len(notes) == 8
    assert notes[3] == "G4"


def test_save_settings_persists_options(tmp_path, capsys):
    settings = tmp_path / "saved.json"
    run_cli(SHORT_LINE_ARGS + ["--seed", "0", "--save-settings", "--settings-file", str(settings)])

    stored = json.loads(settings.read_text())
    assert stored["tonic"] == "C4"
    assert stored["goal_length"] == 8
    assert "seed" not in stored
