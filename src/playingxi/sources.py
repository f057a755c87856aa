"""
Read interfaces onto the external collaborators.

The engine never writes league, team, fixture or performance data. It
reads them through two narrow interfaces:

- LeagueDirectory: league rules, membership and each team's squad pool
- PerformanceFeed: per-player stats for a match, once available

The database-backed implementations read the collaborator tables in
playingxi.db.models. Tests and alternative deployments can pass any
object with the same methods.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from playingxi.db.models import FantasyTeam, League, PlayerPerformance, SquadPlayer
from playingxi.errors import NotFound
from playingxi.roles import Role, parse_role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerStats:
    """
    Raw stats for one player in one match.

    strike_rate and economy are optional: when the feed omits them they
    are derived from runs/balls and runs_conceded/overs.
    """

    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    strike_rate: Optional[float] = None
    wickets: int = 0
    overs: float = 0.0
    maidens: int = 0
    runs_conceded: int = 0
    economy: Optional[float] = None
    catches: int = 0
    stumpings: int = 0
    run_outs: int = 0


@dataclass(frozen=True)
class LeagueConfig:
    league_id: int
    transfer_limit: int
    squad_size: int


class LeagueDirectory(Protocol):
    def get_league_config(self, league_id: int) -> LeagueConfig: ...

    def team_ids(self, league_id: int) -> list[int]: ...

    def team_in_league(self, league_id: int, team_id: int) -> bool: ...

    def get_squad_pool(self, team_id: int) -> dict[int, Role]: ...


class PerformanceFeed(Protocol):
    def get_performance(self, match_id: int) -> Optional[dict[int, PlayerStats]]: ...


class DatabaseLeagueDirectory:
    """LeagueDirectory backed by the leagues / fantasy_teams / squad_players tables."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_league_config(self, league_id: int) -> LeagueConfig:
        league = self.session.get(League, league_id)
        if league is None:
            raise NotFound(f"League {league_id} not found", league_id=league_id)
        return LeagueConfig(
            league_id=league.id,
            transfer_limit=league.transfer_limit,
            squad_size=league.squad_size,
        )

    def team_ids(self, league_id: int) -> list[int]:
        """Team ids in creation order."""
        return list(
            self.session.scalars(
                select(FantasyTeam.id)
                .where(FantasyTeam.league_id == league_id)
                .order_by(FantasyTeam.created_at, FantasyTeam.id)
            )
        )

    def team_in_league(self, league_id: int, team_id: int) -> bool:
        team = self.session.get(FantasyTeam, team_id)
        return team is not None and team.league_id == league_id

    def get_squad_pool(self, team_id: int) -> dict[int, Role]:
        rows = self.session.execute(
            select(SquadPlayer.player_id, SquadPlayer.role).where(SquadPlayer.team_id == team_id)
        )
        return {player_id: Role(role) for player_id, role in rows}


class DatabasePerformanceFeed:
    """PerformanceFeed backed by the player_performances table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_performance(self, match_id: int) -> Optional[dict[int, PlayerStats]]:
        """
        Stats keyed by player id, or None when nothing has been imported yet.

        Players absent from the returned mapping did not feature in the match.
        """
        rows = self.session.scalars(
            select(PlayerPerformance).where(PlayerPerformance.match_id == match_id)
        ).all()
        if not rows:
            return None
        return {row.player_id: stats_from_row(row) for row in rows}


def stats_from_row(row: PlayerPerformance) -> PlayerStats:
    return PlayerStats(
        runs=row.runs,
        balls=row.balls,
        fours=row.fours,
        sixes=row.sixes,
        strike_rate=row.strike_rate,
        wickets=row.wickets,
        overs=row.overs,
        maidens=row.maidens,
        runs_conceded=row.runs_conceded,
        economy=row.economy,
        catches=row.catches,
        stumpings=row.stumpings,
        run_outs=row.run_outs,
    )


def add_squad_player(
    session: Session,
    team: FantasyTeam,
    player_id: int,
    player_name: str,
    role_label: str | Role,
) -> SquadPlayer:
    """
    Ingest one squad pool entry, resolving its role label to a Role once.

    Used by the squad import adapter; raises ValueError on unknown roles.
    """
    role = parse_role(role_label)
    entry = SquadPlayer(
        league_id=team.league_id,
        team_id=team.id,
        player_id=player_id,
        player_name=player_name,
        role=role.value,
    )
    session.add(entry)
    session.flush()
    logger.debug("Added %s (%s) to team %s squad", player_name, role.value, team.id)
    return entry
