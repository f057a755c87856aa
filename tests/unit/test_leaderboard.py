"""Unit tests for standings, per-match rankings and score history."""

from datetime import datetime

import pytest

from playingxi.db.models import TeamMatchScore
from playingxi.errors import NotFound
from playingxi.scoring import leaderboard, match_scores, team_score_history


@pytest.fixture
def league_with_scores(db_session, make_league):
    """
    Four teams, scores for two matches.

    Alpha and Bravo tie on 150 overall; Alpha was created first.
    Delta never scores.
    """
    league, teams, matches = make_league(teams=("Alpha", "Bravo", "Charlie", "Delta"))
    alpha, bravo, charlie, _delta = teams
    m1, m2 = matches[:2]

    def score(team, match, total, captain=0):
        db_session.add(
            TeamMatchScore(
                team_id=team.id,
                league_id=league.id,
                match_id=match.id,
                total_points=total,
                captain_points=captain,
                vice_captain_points=0,
                regular_points=total - captain,
                updated_at=datetime(2026, 3, 5),
            )
        )

    score(alpha, m1, 100, captain=40)
    score(bravo, m1, 100, captain=20)
    score(charlie, m1, 90)
    score(alpha, m2, 50)
    score(bravo, m2, 50)
    score(charlie, m2, 20)
    db_session.flush()
    return league, teams, matches


class TestLeaderboard:
    """Tests for league standings."""

    def test_order_and_ties(self, db_session, league_with_scores):
        league, (alpha, bravo, charlie, delta), _matches = league_with_scores

        standings = leaderboard(db_session, league.id)

        assert [e.team_id for e in standings] == [alpha.id, bravo.id, charlie.id, delta.id]
        assert [e.position for e in standings] == [1, 2, 3, 4]
        assert standings[0].total_points == 150
        assert standings[0].average_points == 75.0

    def test_team_without_scores_listed_with_zero(self, db_session, league_with_scores):
        league, teams, _matches = league_with_scores

        last = leaderboard(db_session, league.id)[-1]

        assert last.team_id == teams[3].id
        assert last.matches_played == 0
        assert last.total_points == 0
        assert last.average_points == 0.0

    def test_unknown_league(self, db_session, tables):
        with pytest.raises(NotFound):
            leaderboard(db_session, 424242)


def test_match_scores_competition_rank(db_session, league_with_scores):
    league, (alpha, bravo, charlie, _delta), matches = league_with_scores

    rows = match_scores(db_session, league.id, matches[0].id)

    assert [(r["team_id"], r["rank_in_match"]) for r in rows] == [
        (alpha.id, 1),
        (bravo.id, 1),
        (charlie.id, 3),
    ]
    assert rows[0]["captain_points"] == 40


def test_team_score_history_is_cumulative(db_session, league_with_scores):
    league, (_alpha, _bravo, charlie, _delta), matches = league_with_scores

    history = team_score_history(db_session, league.id, charlie.id)

    assert [h["match_id"] for h in history] == [matches[0].id, matches[1].id]
    assert [h["cumulative_points"] for h in history] == [90, 110]
