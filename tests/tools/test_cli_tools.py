"""
Tests for the command-line tools.
"""

import json

from chukrum.tools import play
from chukrum.tools import simulate


def test_play_arguments():
    args = play.parse_args(["-d", "hard", "--rounds", "3", "--queen-peek", "either"])
    assert args.difficulty == "hard"
    assert args.rounds == 3
    assert args.queen_peek == "either"
    assert args.transcript is None


def test_simulate_json(capsys):
    assert simulate.main(["-r", "4", "--seed", "9", "--json"]) == 0
    summaries = json.loads(capsys.readouterr().out)
    assert len(summaries) == 1
    assert summaries[0]["first"] == "hard"
    assert summaries[0]["rounds"] == 4


def test_simulate_text_for_every_pairing(capsys):
    assert simulate.main(["--all", "-r", "2", "--seed", "1"]) == 0
    out = capsys.readouterr().out
    assert "easy vs easy (2 rounds)" in out
    assert "hard vs hard (2 rounds)" in out


def test_shuffle_check(capsys):
    assert simulate.main(["--shuffle-check", "300", "--seed", "4", "--json"]) in (0, 1)
    result = json.loads(capsys.readouterr().out)
    assert result["samples"] == 300
