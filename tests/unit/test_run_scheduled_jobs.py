"""Tests for the scheduled job command line."""

from scripts.run_scheduled_jobs import _csv, main, parse_args


def test_parse_args_defaults():
    args = parse_args([])
    assert args.stages is None
    assert args.leagues is None
    assert args.lock_name == "playingxi_scheduled_jobs"


def test_csv_drops_blanks():
    assert _csv(" lineup_propagation, ,score_recompute ") == [
        "lineup_propagation",
        "score_recompute",
    ]
    assert _csv(None) == []


def test_unknown_stage_exits_before_running(capsys):
    assert main(["--stages", "tipping"]) == 2
    assert capsys.readouterr().out == ""
