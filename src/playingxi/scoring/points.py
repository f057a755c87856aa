"""
Per-player fantasy points.

Turns one player's raw match stats into base points, then applies the
captain / vice-captain multiplier. Everything is integer arithmetic so
the same inputs always produce the same stored values.

Usage:
    stats = PlayerStats(runs=55, balls=34, fours=4, sixes=1)
    result = score_player(stats)
    result.total                         # 55 + 4 + 2 + 50 + 20 = 131
    apply_multiplier(result.total, "captain")  # 262
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from playingxi.scoring.constants import (
    CAPTAIN_MULTIPLIER,
    ECONOMY_BONUS,
    ECONOMY_BONUS_BELOW,
    ECONOMY_PENALTY,
    ECONOMY_PENALTY_AT,
    MIN_BALLS_FOR_ECONOMY,
    MIN_BALLS_FOR_STRIKE_RATE,
    RUN_MILESTONES,
    SCORING_WEIGHTS,
    STRIKE_RATE_BONUS,
    STRIKE_RATE_BONUS_AT,
    STRIKE_RATE_PENALTY,
    STRIKE_RATE_PENALTY_BELOW,
    VICE_CAPTAIN_MULTIPLIER,
    WICKET_MILESTONES,
)
from playingxi.sources import PlayerStats

Designation = Literal["captain", "vice_captain"]


@dataclass
class PlayerPoints:
    """Base points for one player, split by discipline with an itemised breakdown."""

    batting: int = 0
    bowling: int = 0
    fielding: int = 0
    breakdown: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.batting + self.bowling + self.fielding

    def to_dict(self) -> dict:
        return {
            "batting": self.batting,
            "bowling": self.bowling,
            "fielding": self.fielding,
            "total": self.total,
            "breakdown": dict(self.breakdown),
        }


def overs_to_balls(overs: float) -> int:
    """
    Convert cricket overs notation to legal deliveries.

    3.2 means 3 overs and 2 balls, i.e. 20 deliveries.
    """
    whole = int(overs)
    extra = int(round((overs - whole) * 10))
    return whole * 6 + extra


def _milestone_bonus(value: int, tiers: tuple[tuple[int, int], ...]) -> int:
    for threshold, bonus in tiers:
        if value >= threshold:
            return bonus
    return 0


def _strike_rate(stats: PlayerStats) -> Optional[float]:
    """
    Strike rate used for banding, or None if the innings is too short to band.

    A feed-supplied strike rate is trusted when balls faced were not recorded.
    """
    if stats.balls >= MIN_BALLS_FOR_STRIKE_RATE:
        if stats.strike_rate is not None:
            return float(stats.strike_rate)
        return stats.runs * 100.0 / stats.balls
    if stats.balls == 0 and stats.strike_rate is not None:
        return float(stats.strike_rate)
    return None


def _economy(stats: PlayerStats) -> Optional[float]:
    balls_bowled = overs_to_balls(stats.overs)
    if balls_bowled < MIN_BALLS_FOR_ECONOMY:
        return None
    if stats.economy is not None:
        return float(stats.economy)
    return stats.runs_conceded * 6.0 / balls_bowled


def score_batting(stats: PlayerStats, breakdown: dict[str, int]) -> int:
    breakdown["runs"] = stats.runs * SCORING_WEIGHTS["run"]
    breakdown["fours"] = stats.fours * SCORING_WEIGHTS["four_bonus"]
    breakdown["sixes"] = stats.sixes * SCORING_WEIGHTS["six_bonus"]
    breakdown["run_milestone"] = _milestone_bonus(stats.runs, RUN_MILESTONES)

    strike_rate = _strike_rate(stats)
    band = 0
    if strike_rate is not None:
        if strike_rate >= STRIKE_RATE_BONUS_AT:
            band = STRIKE_RATE_BONUS
        elif strike_rate < STRIKE_RATE_PENALTY_BELOW:
            band = STRIKE_RATE_PENALTY
    breakdown["strike_rate"] = band

    return (
        breakdown["runs"]
        + breakdown["fours"]
        + breakdown["sixes"]
        + breakdown["run_milestone"]
        + breakdown["strike_rate"]
    )


def score_bowling(stats: PlayerStats, breakdown: dict[str, int]) -> int:
    breakdown["wickets"] = stats.wickets * SCORING_WEIGHTS["wicket"]
    breakdown["wicket_milestone"] = _milestone_bonus(stats.wickets, WICKET_MILESTONES)
    breakdown["maidens"] = stats.maidens * SCORING_WEIGHTS["maiden"]

    economy = _economy(stats)
    band = 0
    if economy is not None:
        if economy < ECONOMY_BONUS_BELOW:
            band = ECONOMY_BONUS
        elif economy >= ECONOMY_PENALTY_AT:
            band = ECONOMY_PENALTY
    breakdown["economy"] = band

    return (
        breakdown["wickets"]
        + breakdown["wicket_milestone"]
        + breakdown["maidens"]
        + breakdown["economy"]
    )


def score_fielding(stats: PlayerStats, breakdown: dict[str, int]) -> int:
    breakdown["catches"] = stats.catches * SCORING_WEIGHTS["catch"]
    breakdown["stumpings"] = stats.stumpings * SCORING_WEIGHTS["stumping"]
    breakdown["run_outs"] = stats.run_outs * SCORING_WEIGHTS["run_out"]
    return breakdown["catches"] + breakdown["stumpings"] + breakdown["run_outs"]


def score_player(stats: PlayerStats) -> PlayerPoints:
    """Base (un-multiplied) fantasy points for one player's match."""
    breakdown: dict[str, int] = {}
    return PlayerPoints(
        batting=score_batting(stats, breakdown),
        bowling=score_bowling(stats, breakdown),
        fielding=score_fielding(stats, breakdown),
        breakdown=breakdown,
    )


def apply_multiplier(base: int, designation: Optional[Designation]) -> int:
    """
    Final points for a player given their designation in the XI.

    Vice-captain points are floored, including for negative bases.
    """
    if designation == "captain":
        return base * CAPTAIN_MULTIPLIER
    if designation == "vice_captain":
        numerator, denominator = VICE_CAPTAIN_MULTIPLIER
        return (base * numerator) // denominator
    return base
