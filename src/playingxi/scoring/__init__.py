"""
Fantasy scoring module.

Implements cricket fantasy scoring with:
- A fixed weight table for batting, bowling and fielding events
- Tiered run and wicket milestone bonuses
- Strike rate and economy bands
- Captain (x2) and vice-captain (x1.5, floored) multipliers
- Idempotent per-match score records and read-only league standings
"""

from playingxi.scoring.constants import SCORING_WEIGHTS
from playingxi.scoring.points import PlayerPoints, apply_multiplier, score_player
from playingxi.scoring.engine import (
    LeagueRecomputeReport,
    MatchScoreResult,
    ScoringEngine,
    TeamScore,
    compute_team_score,
    recompute_league,
)
from playingxi.scoring.leaderboard import (
    LeaderboardEntry,
    leaderboard,
    match_scores,
    team_score_history,
)

__all__ = [
    "SCORING_WEIGHTS",
    "PlayerPoints",
    "apply_multiplier",
    "score_player",
    "LeagueRecomputeReport",
    "MatchScoreResult",
    "ScoringEngine",
    "TeamScore",
    "compute_team_score",
    "recompute_league",
    "LeaderboardEntry",
    "leaderboard",
    "match_scores",
    "team_score_history",
]
