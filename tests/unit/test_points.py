"""
Unit tests for per-player fantasy points.

Covers:
- Batting weights, tiered run milestones and strike rate bands
- Bowling weights, wicket hauls, maidens and economy bands
- Fielding
- Captain / vice-captain multipliers (vice-captain floored)
"""

import pytest

from playingxi.scoring.points import (
    apply_multiplier,
    overs_to_balls,
    score_player,
)
from playingxi.sources import PlayerStats


class TestBatting:
    """Tests for batting points."""

    def test_fifty_as_captain(self):
        """
        55 off 34 with 4 fours and a six, strike rate 160.

        55 runs + 4 four bonuses + 2 six bonus + 50 milestone + 20 strike
        rate band = 131 base; doubled for the captain.
        """
        stats = PlayerStats(runs=55, balls=34, fours=4, sixes=1, strike_rate=160.0)
        points = score_player(stats)

        assert points.batting == 131
        assert points.breakdown["run_milestone"] == 50
        assert points.breakdown["strike_rate"] == 20
        assert points.total == 131
        assert apply_multiplier(points.total, "captain") == 262

    def test_century_gets_only_highest_milestone(self):
        stats = PlayerStats(runs=104, balls=80, fours=10, sixes=2)
        points = score_player(stats)

        assert points.breakdown["run_milestone"] == 100
        # 104 + 10 + 4 + 100, strike rate 130 is outside both bands
        assert points.batting == 218

    def test_strike_rate_derived_when_not_supplied(self):
        points = score_player(PlayerStats(runs=30, balls=15))
        assert points.breakdown["strike_rate"] == 20

    def test_slow_innings_penalised(self):
        points = score_player(PlayerStats(runs=12, balls=20))
        assert points.breakdown["strike_rate"] == -10
        assert points.batting == 2

    def test_short_innings_not_banded(self):
        """A 3-ball cameo is too short for its strike rate to count."""
        points = score_player(PlayerStats(runs=12, balls=3))
        assert points.breakdown["strike_rate"] == 0

    def test_feed_strike_rate_used_without_balls(self):
        points = score_player(PlayerStats(runs=20, strike_rate=155.0))
        assert points.breakdown["strike_rate"] == 20

    def test_did_not_bat_scores_nothing(self):
        assert score_player(PlayerStats()).total == 0


class TestBowling:
    """Tests for bowling points."""

    def test_three_wicket_haul(self):
        stats = PlayerStats(wickets=3, overs=4.0, runs_conceded=28)
        points = score_player(stats)

        # 75 for wickets + 50 haul bonus, economy 7.0 outside both bands
        assert points.bowling == 125
        assert points.breakdown["wicket_milestone"] == 50

    def test_five_wicket_haul_replaces_three(self):
        stats = PlayerStats(wickets=5, overs=4.0, runs_conceded=30)
        points = score_player(stats)

        assert points.breakdown["wicket_milestone"] == 100
        assert points.bowling == 225

    def test_economy_bonus_and_maiden(self):
        stats = PlayerStats(overs=4.0, maidens=1, runs_conceded=14)
        points = score_player(stats)

        assert points.breakdown["maidens"] == 10
        assert points.breakdown["economy"] == 30
        assert points.bowling == 40

    def test_expensive_spell_penalised(self):
        stats = PlayerStats(overs=3.0, runs_conceded=36)
        assert score_player(stats).breakdown["economy"] == -10

    def test_economy_needs_two_overs(self):
        stats = PlayerStats(overs=1.5, runs_conceded=2)
        assert score_player(stats).breakdown["economy"] == 0

    @pytest.mark.parametrize(
        "overs,balls",
        [(0.0, 0), (1.0, 6), (3.2, 20), (4.0, 24), (0.5, 5)],
    )
    def test_overs_to_balls(self, overs, balls):
        assert overs_to_balls(overs) == balls


class TestFieldingAndMultipliers:
    """Tests for fielding points and designation multipliers."""

    def test_fielding(self):
        stats = PlayerStats(catches=2, stumpings=1, run_outs=1)
        points = score_player(stats)
        assert points.fielding == 40
        assert points.total == 40

    def test_all_rounder_sums_disciplines(self):
        stats = PlayerStats(runs=20, balls=16, wickets=1, overs=4.0, runs_conceded=32, catches=1)
        points = score_player(stats)
        assert points.total == points.batting + points.bowling + points.fielding == 55

    def test_vice_captain_floors(self):
        assert apply_multiplier(131, "vice_captain") == 196
        assert apply_multiplier(40, "vice_captain") == 60

    def test_vice_captain_floors_negative(self):
        assert apply_multiplier(-5, "vice_captain") == -8

    def test_regular_player_unchanged(self):
        assert apply_multiplier(77, None) == 77
