"""Unit tests for the scheduled job stages and the job lock."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine

from playingxi.lineups import LineupStore, PropagationReport
from playingxi.scoring import LeagueRecomputeReport, MatchScoreResult
from playingxi.tasks import (
    STAGES,
    JobRun,
    StageReport,
    resolve_stages,
    run_propagation,
    run_scoring,
)
from playingxi.tasks.locks import advisory_lock_key, job_lock


def make_run(session_scope, clock, **kwargs):
    return JobRun(
        run_id="test",
        started_at=clock(),
        session_scope=session_scope,
        clock=clock,
        **kwargs,
    )


def test_resolve_stages_in_run_order():
    assert resolve_stages() == ["lineup_propagation", "score_recompute"]
    assert resolve_stages(skip={"lineup_propagation"}) == ["score_recompute"]
    assert resolve_stages(include=["score_recompute"]) == ["score_recompute"]
    assert list(STAGES) == resolve_stages()


def test_resolve_stages_unknown_raises():
    with pytest.raises(KeyError):
        resolve_stages(include=["lineup_propagation", "tipping"])


def test_job_run_start_stamps_run_id():
    run = JobRun.start(league_ids=[3], workers=2)

    assert run.run_id.startswith(run.started_at.strftime("%Y%m%dT%H%M%SZ"))
    assert run.league_ids == [3]
    assert run.resolve_league_ids() == [3]


def test_job_run_defaults_to_every_league(clock, make_league, session_scope):
    league_a, _, _ = make_league(name="League A")
    league_b, _, _ = make_league(name="League B", teams=("Zulu",))

    run = make_run(session_scope, clock)

    assert run.resolve_league_ids() == [league_a.id, league_b.id]


class TestStageReport:
    """Tests for folding league reports into a stage outcome."""

    def test_failed_propagation_match_makes_stage_partial(self):
        stage = StageReport(stage="lineup_propagation", started_at=datetime(2026, 3, 1))
        stage.add_propagation(PropagationReport(league_id=1, propagated=[(1, 2)]))
        assert stage.status == "success"

        stage.add_propagation(
            PropagationReport(league_id=2, failed=[{"match_id": 9, "error": "locked"}])
        )

        assert stage.status == "partial"
        assert stage.totals == {"propagated": 1, "unresolved": 0, "failed": 1}
        assert [league["league_id"] for league in stage.leagues] == [1, 2]

    def test_skipped_scoring_match_makes_stage_partial(self):
        stage = StageReport(stage="score_recompute", started_at=datetime(2026, 3, 1))
        stage.add_recompute(
            LeagueRecomputeReport(
                league_id=1,
                results=[
                    MatchScoreResult(match_id=1, status="scored", teams_scored=2),
                    MatchScoreResult(match_id=2, status="skipped", error="feed down"),
                ],
            )
        )

        assert stage.status == "partial"
        assert stage.totals == {"scored": 1, "deferred": 0, "skipped": 1}

    def test_error_marks_stage_failed(self):
        started = datetime(2026, 3, 1, 10, 0, 0)
        stage = StageReport(
            stage="score_recompute",
            started_at=started,
            ended_at=started + timedelta(seconds=12.5),
            error="database unavailable",
        )

        payload = stage.to_dict()
        assert payload["status"] == "failed"
        assert payload["duration_s"] == 12.5
        assert payload["error"] == "database unavailable"


def test_propagation_stage_reports_unresolved(db_session, clock, make_league, session_scope, base_xi):
    league, (alpha, bravo), matches = make_league()
    LineupStore(db_session, clock=clock).save_lineup(
        league.id, alpha.id, matches[0].id, base_xi, 3, 11
    )
    clock.set(matches[1].scheduled_start)

    stage = run_propagation(make_run(session_scope, clock, league_ids=[league.id]))

    assert stage.status == "success"
    assert stage.totals["propagated"] == 1
    unresolved = stage.leagues[0]["unresolved"]
    assert {item["team_id"] for item in unresolved} == {bravo.id}


def test_scoring_stage_defers_matches_without_data(clock, make_league, session_scope):
    league, _teams, matches = make_league(match_count=2)

    stage = run_scoring(make_run(session_scope, clock, league_ids=[league.id], workers=1))

    assert stage.status == "success"
    assert stage.totals == {"scored": 0, "deferred": len(matches), "skipped": 0}


def test_stage_failure_is_reported_not_raised(clock, session_scope, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("playingxi.tasks.jobs.propagate_league", broken)

    stage = run_propagation(make_run(session_scope, clock, league_ids=[1]))

    assert stage.status == "failed"
    assert stage.error == "database unavailable"


def test_advisory_lock_key_is_stable_64bit_int():
    key_a1 = advisory_lock_key("playingxi_scheduled_jobs")
    key_a2 = advisory_lock_key("playingxi_scheduled_jobs")
    key_b = advisory_lock_key("other_jobs")

    assert isinstance(key_a1, int)
    assert -(2 ** 63) <= key_a1 < 2 ** 63
    assert key_a1 == key_a2
    assert key_a1 != key_b


def test_job_lock_is_noop_without_postgres():
    engine = create_engine("sqlite://")
    with job_lock(engine, "playingxi_scheduled_jobs") as acquired:
        assert acquired is False
