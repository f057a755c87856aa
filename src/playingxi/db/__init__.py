"""
Database module for PlayingXI.

Provides SQLAlchemy ORM models, session management, and ON CONFLICT helpers.

Usage:
    from playingxi.db import get_session, Lineup

    with get_session() as session:
        lineups = session.query(Lineup).filter(Lineup.team_id == 7).all()
"""

from playingxi.db.models import (
    Base,
    CaptaincyChange,
    FantasyTeam,
    League,
    LeagueMatch,
    Lineup,
    LineupRevision,
    PlayerPerformance,
    SquadPlayer,
    TeamMatchScore,
    TeamState,
    TransferLedgerEntry,
)
from playingxi.db.session import SessionLocal, get_db, get_engine, get_session

__all__ = [
    # Base
    "Base",
    # Models
    "CaptaincyChange",
    "FantasyTeam",
    "League",
    "LeagueMatch",
    "Lineup",
    "LineupRevision",
    "PlayerPerformance",
    "SquadPlayer",
    "TeamMatchScore",
    "TeamState",
    "TransferLedgerEntry",
    # Session
    "SessionLocal",
    "get_db",
    "get_engine",
    "get_session",
]
