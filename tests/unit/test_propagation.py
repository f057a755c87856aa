"""
Unit tests for lineup auto-propagation.

A team that saves nothing before a match locks keeps its previous XI:
the lineup of the nearest earlier locked match is copied in as
PROPAGATED. Propagation never touches existing lineups and never
consumes transfers or captaincy quota.
"""

import pytest
from sqlalchemy.exc import OperationalError

from playingxi.db.models import TeamState
from playingxi.lineups import LineupStore, propagate_all, propagate_league
from playingxi.lineups import propagation


def swap(xi, out_id, in_id):
    return sorted(in_id if pid == out_id else pid for pid in xi)


@pytest.fixture
def league_setup(make_league):
    league, teams, matches = make_league()
    return league, teams, matches


class TestPropagateLeague:
    """Tests for propagate_league."""

    def test_copies_previous_lineup_into_locked_match(self, db_session, clock, league_setup, base_xi):
        league, (alpha, _bravo), matches = league_setup
        m1, m2 = matches[:2]
        store = LineupStore(db_session, clock=clock)
        store.save_lineup(league.id, alpha.id, m1.id, base_xi, 3, 11)
        clock.set(m2.scheduled_start)

        report = propagate_league(db_session, league.id, clock=clock)

        assert (alpha.id, m2.id) in report.propagated
        lineup = store.get_lineup(alpha.id, m2.id)
        assert lineup.origin == "PROPAGATED"
        assert lineup.source_match_id == m1.id
        assert lineup.player_ids == sorted(base_xi)
        assert (lineup.captain_id, lineup.vice_captain_id) == (3, 11)
        assert lineup.revision_id is None

    def test_consumes_no_budget_and_advances_pointer(self, db_session, clock, league_setup, base_xi):
        league, (alpha, _bravo), matches = league_setup
        store = LineupStore(db_session, clock=clock)
        store.save_lineup(league.id, alpha.id, matches[0].id, base_xi, 3, 11)
        clock.set(matches[2].scheduled_start)

        report = propagate_league(db_session, league.id, clock=clock)

        assert [m for t, m in report.propagated if t == alpha.id] == [matches[1].id, matches[2].id]
        state = db_session.get(TeamState, alpha.id)
        db_session.refresh(state)
        assert state.transfers_used == 0
        assert state.captain_changes_used == 0
        assert state.latest_lineup_match_id == matches[2].id

    def test_second_run_is_a_noop(self, db_session, clock, league_setup, base_xi):
        league, (alpha, _bravo), matches = league_setup
        LineupStore(db_session, clock=clock).save_lineup(
            league.id, alpha.id, matches[0].id, base_xi, 3, 11
        )
        clock.set(matches[1].scheduled_start)

        first = propagate_league(db_session, league.id, clock=clock)
        second = propagate_league(db_session, league.id, clock=clock)

        assert len(first.propagated) == 1
        assert second.propagated == []
        assert second.already_resolved == first.already_resolved + 1

    def test_team_without_any_lineup_is_unresolved(self, db_session, clock, league_setup, base_xi):
        league, (alpha, bravo), matches = league_setup
        LineupStore(db_session, clock=clock).save_lineup(
            league.id, alpha.id, matches[0].id, base_xi, 3, 11
        )
        clock.set(matches[0].scheduled_start)

        report = propagate_league(db_session, league.id, clock=clock)

        assert report.unresolved == [(bravo.id, matches[0].id)]
        assert report.already_resolved == 1
        assert report.propagated == []

    def test_unlocked_matches_untouched(self, db_session, clock, league_setup, base_xi):
        league, (alpha, _bravo), matches = league_setup
        store = LineupStore(db_session, clock=clock)
        store.save_lineup(league.id, alpha.id, matches[0].id, base_xi, 3, 11)

        report = propagate_league(db_session, league.id, clock=clock)

        assert report.matches_checked == 0
        assert store.get_lineup(alpha.id, matches[1].id) is None

    def test_failed_match_recorded_and_run_continues(
        self, db_session, clock, league_setup, base_xi, monkeypatch
    ):
        league, (alpha, _bravo), matches = league_setup
        LineupStore(db_session, clock=clock).save_lineup(
            league.id, alpha.id, matches[0].id, base_xi, 3, 11
        )
        clock.set(matches[2].scheduled_start)

        real_propagate_match = propagation.propagate_match

        def flaky(session, match, *args):
            if match.id == matches[1].id:
                raise OperationalError("INSERT", {}, Exception("database is locked"))
            return real_propagate_match(session, match, *args)

        monkeypatch.setattr(propagation, "propagate_match", flaky)
        report = propagate_league(db_session, league.id, clock=clock, sleep=lambda _: None)

        assert [f["match_id"] for f in report.failed] == [matches[1].id]
        assert report.matches_checked == 3
        # Match 3 still copies from match 1, the nearest lineup that exists
        assert report.propagated == [(alpha.id, matches[2].id)]

    def test_open_earlier_match_is_never_a_source(self, db_session, clock, make_league, base_xi):
        """A postponed fixture still open when a later match locks."""
        league, (alpha, _bravo), (m1, postponed, m3) = make_league(starts=[1, 100, 2])
        store = LineupStore(db_session, clock=clock)
        store.save_lineup(league.id, alpha.id, m1.id, base_xi, 3, 11)
        store.save_lineup(league.id, alpha.id, postponed.id, swap(base_xi, 14, 15), 3, 11)
        clock.advance(hours=3)

        propagate_league(db_session, league.id, clock=clock)

        lineup = store.get_lineup(alpha.id, m3.id)
        assert lineup.origin == "PROPAGATED"
        assert lineup.source_match_id == m1.id
        assert lineup.player_ids == sorted(base_xi)

    def test_propagated_lineup_keeps_open_match_editable(
        self, db_session, clock, make_league, base_xi
    ):
        league, (alpha, _bravo), (m1, postponed, m3) = make_league(starts=[1, 100, 2])
        store = LineupStore(db_session, clock=clock)
        store.save_lineup(league.id, alpha.id, m1.id, base_xi, 3, 11)
        store.save_lineup(league.id, alpha.id, postponed.id, base_xi, 3, 11)
        clock.advance(hours=3)
        propagate_league(db_session, league.id, clock=clock)

        result = store.save_lineup(
            league.id, alpha.id, postponed.id, swap(base_xi, 14, 15), 3, 11
        )

        assert result.transfers_in == [15]
        assert store.get_lineup(alpha.id, m3.id).source_match_id == m1.id


def test_propagate_all_covers_every_league(db_session, clock, make_league, session_scope, base_xi):
    league_a, (alpha, _), matches_a = make_league(name="League A")
    league_b, (zulu,), matches_b = make_league(name="League B", teams=("Zulu",))
    store = LineupStore(db_session, clock=clock)
    store.save_lineup(league_a.id, alpha.id, matches_a[0].id, base_xi, 3, 11)
    store.save_lineup(league_b.id, zulu.id, matches_b[0].id, base_xi, 4, 12)
    clock.set(matches_a[1].scheduled_start)

    reports = propagate_all(session_scope=session_scope, clock=clock)

    by_league = {r.league_id: r for r in reports}
    assert (alpha.id, matches_a[1].id) in by_league[league_a.id].propagated
    assert (zulu.id, matches_b[1].id) in by_league[league_b.id].propagated
