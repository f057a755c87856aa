"""
SQLAlchemy ORM models for PlayingXI.

The schema splits into two halves:

Collaborator tables (written by the league directory and the match data
importer, read-only to the engine):
- leagues: League configuration (transfer limit, squad size)
- fantasy_teams: Teams participating in a league
- squad_players: Each team's drafted squad pool with a fixed role
- league_matches: Ordered fixtures per league with scheduled start
- player_performances: Per-player stats once a match completes

Engine tables:
- lineup_revisions: One row per explicit save (audit + undo history)
- lineups: The resolved XI per (team, match), explicit or propagated
- transfer_ledger: Player IN/OUT events; source of truth for transfers
- captaincy_changes: Captain / vice-captain change events
- team_states: Cached budget projection + per-team write serialization row
- team_match_scores: Fantasy points per (team, match)

Key design decisions:
- Match order is fixture order (league_matches.id), locking is by start time
- At most one lineup per (team, match), enforced by a unique constraint
- Ledger entries only count while their revision is active, so a re-save
  or an undo never leaves stale transfers behind
- Counters in team_states are recomputable from the ledger at any time
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# =============================================================================
# Constants
# =============================================================================

ROLE_VALUES = ("KEEPER", "BATTER", "BATTING_ALLROUNDER", "BOWLING_ALLROUNDER", "BOWLER")
LINEUP_ORIGINS = ("EXPLICIT", "PROPAGATED")
REVISION_STATUSES = ("active", "superseded", "undone")
TRANSFER_TYPES = ("IN", "OUT")
CAPTAINCY_KINDS = ("CAPTAIN", "VICE_CAPTAIN")

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _in_list(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Collaborator Tables
# =============================================================================


class League(Base):
    """A fantasy league and its lineup rules."""

    __tablename__ = "leagues"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    transfer_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    squad_size: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    teams: Mapped[list["FantasyTeam"]] = relationship(back_populates="league")
    matches: Mapped[list["LeagueMatch"]] = relationship(
        back_populates="league", order_by="LeagueMatch.id"
    )

    __table_args__ = (
        CheckConstraint("transfer_limit >= 0", name="check_transfer_limit"),
        CheckConstraint("squad_size BETWEEN 11 AND 30", name="check_squad_size"),
    )

    def __repr__(self) -> str:
        return f"<League(id={self.id}, name='{self.name}')>"


class FantasyTeam(Base):
    """A team taking part in one league."""

    __tablename__ = "fantasy_teams"

    id: Mapped[int] = mapped_column(primary_key=True)
    league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    owner_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    league: Mapped["League"] = relationship(back_populates="teams")
    squad: Mapped[list["SquadPlayer"]] = relationship(back_populates="team")

    __table_args__ = (
        UniqueConstraint("league_id", "name", name="uq_fantasy_teams_league_name"),
        Index("idx_fantasy_teams_league_created", "league_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<FantasyTeam(id={self.id}, name='{self.name}')>"


class SquadPlayer(Base):
    """
    One player in a team's squad pool.

    The role is assigned once at ingestion (see playingxi.roles.parse_role)
    and never re-derived from free text afterwards.
    """

    __tablename__ = "squad_players"

    id: Mapped[int] = mapped_column(primary_key=True)
    league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id"), nullable=False)
    team_id: Mapped[int] = mapped_column(ForeignKey("fantasy_teams.id"), nullable=False)
    player_id: Mapped[int] = mapped_column(Integer, nullable=False)
    player_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(30), nullable=False)

    team: Mapped["FantasyTeam"] = relationship(back_populates="squad")

    __table_args__ = (
        UniqueConstraint("team_id", "player_id", name="uq_squad_players_team_player"),
        CheckConstraint(_in_list("role", ROLE_VALUES), name="check_squad_player_role"),
    )

    def __repr__(self) -> str:
        return f"<SquadPlayer(team={self.team_id}, player={self.player_id}, role={self.role})>"


class LeagueMatch(Base):
    """
    A fixture in a league's tournament.

    Fixtures are ordered by id. A match is locked from its scheduled start
    onwards, regardless of ``completed``.
    """

    __tablename__ = "league_matches"

    id: Mapped[int] = mapped_column(primary_key=True)
    league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id"), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    scheduled_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    league: Mapped["League"] = relationship(back_populates="matches")

    __table_args__ = (
        Index("idx_league_matches_league_start", "league_id", "scheduled_start"),
    )

    def __repr__(self) -> str:
        return f"<LeagueMatch(id={self.id}, league={self.league_id}, start={self.scheduled_start})>"


class PlayerPerformance(Base):
    """Raw per-player stats for a completed match, as imported."""

    __tablename__ = "player_performances"

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("league_matches.id"), nullable=False)
    player_id: Mapped[int] = mapped_column(Integer, nullable=False)
    player_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Batting
    runs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    balls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sixes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    strike_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Bowling (overs in cricket notation: 3.2 = 3 overs and 2 balls)
    wickets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    overs: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    maidens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    runs_conceded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    economy: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Fielding
    catches: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stumpings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    run_outs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("match_id", "player_id", name="uq_player_performances_match_player"),
    )

    def __repr__(self) -> str:
        return f"<PlayerPerformance(match={self.match_id}, player={self.player_id})>"


# =============================================================================
# Lineups
# =============================================================================


class LineupRevision(Base):
    """
    One explicit save of a lineup.

    A re-save of the same match marks the earlier revision ``superseded``;
    an undo marks the revision ``undone`` and reactivates whatever it
    superseded. Only ledger entries of ``active`` revisions count.
    """

    __tablename__ = "lineup_revisions"

    id: Mapped[int] = mapped_column(primary_key=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("fantasy_teams.id"), nullable=False)
    match_id: Mapped[int] = mapped_column(ForeignKey("league_matches.id"), nullable=False)
    player_ids: Mapped[list] = mapped_column(JSONType, nullable=False)
    captain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    vice_captain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    # Match whose lineup this save was diffed against (None for the baseline)
    previous_match_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    supersedes_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("lineup_revisions.id"), nullable=True
    )
    saved_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    undone_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(_in_list("status", REVISION_STATUSES), name="check_revision_status"),
        Index("idx_lineup_revisions_team_status", "team_id", "status"),
        Index("idx_lineup_revisions_team_match", "team_id", "match_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<LineupRevision(id={self.id}, team={self.team_id}, "
            f"match={self.match_id}, status='{self.status}')>"
        )


class Lineup(Base):
    """The resolved Playing XI of a team for one match."""

    __tablename__ = "lineups"

    id: Mapped[int] = mapped_column(primary_key=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("fantasy_teams.id"), nullable=False)
    match_id: Mapped[int] = mapped_column(ForeignKey("league_matches.id"), nullable=False)
    # Sorted list of 11 player ids
    player_ids: Mapped[list] = mapped_column(JSONType, nullable=False)
    captain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    vice_captain_id: Mapped[int] = mapped_column(Integer, nullable=False)
    origin: Mapped[str] = mapped_column(String(20), nullable=False, default="EXPLICIT")
    revision_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("lineup_revisions.id"), nullable=True
    )
    # For propagated lineups: the match the XI was copied from
    source_match_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("team_id", "match_id", name="uq_lineups_team_match"),
        CheckConstraint(_in_list("origin", LINEUP_ORIGINS), name="check_lineup_origin"),
        CheckConstraint("captain_id != vice_captain_id", name="check_lineup_captaincy"),
        Index("idx_lineups_match", "match_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Lineup(team={self.team_id}, match={self.match_id}, origin='{self.origin}')>"
        )


class TransferLedgerEntry(Base):
    """
    One player moving in or out of a team's XI between consecutive matches.

    OUT entries carry the incoming player they were swapped for in
    ``counterpart_player_id`` and vice versa.
    """

    __tablename__ = "transfer_ledger"

    id: Mapped[int] = mapped_column(primary_key=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("fantasy_teams.id"), nullable=False)
    match_id: Mapped[int] = mapped_column(ForeignKey("league_matches.id"), nullable=False)
    revision_id: Mapped[int] = mapped_column(ForeignKey("lineup_revisions.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(3), nullable=False)
    player_id: Mapped[int] = mapped_column(Integer, nullable=False)
    counterpart_player_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(_in_list("type", TRANSFER_TYPES), name="check_transfer_type"),
        Index("idx_transfer_ledger_team", "team_id", "match_id"),
        Index("idx_transfer_ledger_revision", "revision_id"),
    )

    def __repr__(self) -> str:
        return f"<TransferLedgerEntry(team={self.team_id}, {self.type} {self.player_id})>"


class CaptaincyChange(Base):
    """A captain or vice-captain designation differing from the previous match."""

    __tablename__ = "captaincy_changes"

    id: Mapped[int] = mapped_column(primary_key=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("fantasy_teams.id"), nullable=False)
    match_id: Mapped[int] = mapped_column(ForeignKey("league_matches.id"), nullable=False)
    revision_id: Mapped[int] = mapped_column(ForeignKey("lineup_revisions.id"), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    player_id: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_player_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(_in_list("kind", CAPTAINCY_KINDS), name="check_captaincy_kind"),
        Index("idx_captaincy_changes_team", "team_id", "kind"),
    )

    def __repr__(self) -> str:
        return f"<CaptaincyChange(team={self.team_id}, {self.kind} -> {self.player_id})>"


class TeamState(Base):
    """
    Cached budget projection for one team.

    Every counter here can be rebuilt from the active ledger entries
    (see playingxi.lineups.transfers.refresh_team_state). The row also
    serves as the lock taken by explicit saves for the same team.
    """

    __tablename__ = "team_states"

    team_id: Mapped[int] = mapped_column(ForeignKey("fantasy_teams.id"), primary_key=True)
    transfers_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    captain_changes_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vice_captain_changes_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Latest match with a resolved lineup for this team
    latest_lineup_match_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<TeamState(team={self.team_id}, transfers={self.transfers_used}, "
            f"c={self.captain_changes_used}, vc={self.vice_captain_changes_used})>"
        )


# =============================================================================
# Scoring
# =============================================================================


class TeamMatchScore(Base):
    """Fantasy points earned by a team's resolved lineup in one match."""

    __tablename__ = "team_match_scores"

    id: Mapped[int] = mapped_column(primary_key=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("fantasy_teams.id"), nullable=False)
    league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id"), nullable=False)
    match_id: Mapped[int] = mapped_column(ForeignKey("league_matches.id"), nullable=False)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    captain_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vice_captain_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    regular_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("team_id", "match_id", name="uq_team_match_scores_team_match"),
        Index("idx_team_match_scores_league_match", "league_id", "match_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<TeamMatchScore(team={self.team_id}, match={self.match_id}, "
            f"total={self.total_points})>"
        )
