"""
League standings and per-match rankings.

Everything here is a pure read over team_match_scores; nothing is cached
or written, so standings always reflect the latest scoring run.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from playingxi.db.models import FantasyTeam, LeagueMatch, TeamMatchScore
from playingxi.sources import DatabaseLeagueDirectory


@dataclass
class LeaderboardEntry:
    position: int
    team_id: int
    team_name: str
    matches_played: int
    total_points: int
    average_points: float

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "team_id": self.team_id,
            "team_name": self.team_name,
            "matches_played": self.matches_played,
            "total_points": self.total_points,
            "average_points": self.average_points,
        }


def leaderboard(session: Session, league_id: int) -> list[LeaderboardEntry]:
    """
    Every team in the league ordered by total points.

    Ties go to the team created first. Teams without any score record
    are listed with zero matches and zero points.
    """
    DatabaseLeagueDirectory(session).get_league_config(league_id)

    totals = (
        select(
            TeamMatchScore.team_id.label("team_id"),
            func.count(TeamMatchScore.id).label("matches_played"),
            func.sum(TeamMatchScore.total_points).label("total_points"),
        )
        .where(TeamMatchScore.league_id == league_id)
        .group_by(TeamMatchScore.team_id)
        .subquery()
    )
    rows = session.execute(
        select(
            FantasyTeam.id,
            FantasyTeam.name,
            FantasyTeam.created_at,
            totals.c.matches_played,
            totals.c.total_points,
        )
        .outerjoin(totals, totals.c.team_id == FantasyTeam.id)
        .where(FantasyTeam.league_id == league_id)
    ).all()

    standings = sorted(
        (
            (team_id, name, created_at or datetime.min, played or 0, int(total or 0))
            for team_id, name, created_at, played, total in rows
        ),
        key=lambda r: (-r[4], r[2], r[0]),
    )
    return [
        LeaderboardEntry(
            position=position,
            team_id=team_id,
            team_name=name,
            matches_played=played,
            total_points=total,
            average_points=round(total / played, 2) if played else 0.0,
        )
        for position, (team_id, name, _created, played, total) in enumerate(standings, start=1)
    ]


def match_scores(session: Session, league_id: int, match_id: int) -> list[dict]:
    """
    Scores for one match with each team's rank in that match.

    Ranks follow competition ranking: equal totals share a rank and the
    next rank skips accordingly (1, 2, 2, 4).
    """
    rows = session.execute(
        select(TeamMatchScore, FantasyTeam.name, FantasyTeam.created_at)
        .join(FantasyTeam, FantasyTeam.id == TeamMatchScore.team_id)
        .where(
            TeamMatchScore.league_id == league_id,
            TeamMatchScore.match_id == match_id,
        )
        .order_by(
            TeamMatchScore.total_points.desc(),
            FantasyTeam.created_at,
            FantasyTeam.id,
        )
    ).all()

    results = []
    rank = 0
    previous_total = None
    for index, (score, team_name, _created) in enumerate(rows, start=1):
        if score.total_points != previous_total:
            rank = index
            previous_total = score.total_points
        results.append({
            "rank_in_match": rank,
            "team_id": score.team_id,
            "team_name": team_name,
            "total_points": score.total_points,
            "captain_points": score.captain_points,
            "vice_captain_points": score.vice_captain_points,
            "regular_points": score.regular_points,
        })
    return results


def team_score_history(session: Session, league_id: int, team_id: int) -> list[dict]:
    """A team's per-match scores in fixture order with a running total."""
    rows = session.execute(
        select(TeamMatchScore, LeagueMatch.description, LeagueMatch.scheduled_start)
        .join(LeagueMatch, LeagueMatch.id == TeamMatchScore.match_id)
        .where(
            TeamMatchScore.league_id == league_id,
            TeamMatchScore.team_id == team_id,
        )
        .order_by(LeagueMatch.id)
    ).all()

    history = []
    cumulative = 0
    for score, description, scheduled_start in rows:
        cumulative += score.total_points
        history.append({
            "match_id": score.match_id,
            "description": description,
            "scheduled_start": scheduled_start.isoformat(),
            "total_points": score.total_points,
            "captain_points": score.captain_points,
            "vice_captain_points": score.vice_captain_points,
            "regular_points": score.regular_points,
            "cumulative_points": cumulative,
        })
    return history
