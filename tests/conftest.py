"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

from contextlib import contextmanager
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from playingxi.db.models import Base, FantasyTeam, League, LeagueMatch, PlayerPerformance
from playingxi.sources import add_squad_player

# Fixed "now" for every test; matches are scheduled relative to it
NOW = datetime(2026, 3, 1, 12, 0, 0)

# Squad pool shared by every test team: player_id -> role label
SQUAD_POOL = {
    1: "KEEPER",
    2: "KEEPER",
    3: "BATTER",
    4: "BATTER",
    5: "BATTER",
    6: "BATTER",
    17: "BATTER",
    18: "BATTER",
    7: "BATTING_ALLROUNDER",
    8: "BATTING_ALLROUNDER",
    9: "BOWLING_ALLROUNDER",
    10: "BOWLING_ALLROUNDER",
    19: "BOWLING_ALLROUNDER",
    11: "BOWLER",
    12: "BOWLER",
    13: "BOWLER",
    14: "BOWLER",
    15: "BOWLER",
    16: "BOWLER",
    20: "BOWLER",
    21: "BOWLER",
    22: "BOWLER",
}

# 1 keeper, 4 batters, 22 overs of bowling
BASE_XI = [1, 3, 4, 5, 6, 7, 9, 11, 12, 13, 14]


class FakeClock:
    """Controllable clock passed wherever the code expects ``Clock``."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture(scope="session")
def test_engine():
    """
    Create a test database engine.

    Uses a single shared SQLite in-memory connection. pysqlite's own
    transaction handling is switched off so SAVEPOINTs (used by
    propagation and by the per-test rollback) behave as on PostgreSQL.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest.fixture(scope="session")
def tables(test_engine):
    """
    Create all tables for testing.

    This fixture runs once per test session.
    """
    Base.metadata.create_all(test_engine)
    yield
    Base.metadata.drop_all(test_engine)


@pytest.fixture
def db_connection(test_engine, tables):
    """Connection wrapped in an outer transaction that is rolled back after the test."""
    connection = test_engine.connect()
    transaction = connection.begin()
    yield connection
    transaction.rollback()
    connection.close()


@pytest.fixture
def db_session(db_connection):
    """
    Create a database session for a test.

    Commits inside the code under test only release a savepoint, so each
    test still ends with a full rollback.
    """
    Session = sessionmaker(bind=db_connection, join_transaction_mode="create_savepoint")
    session = Session()

    yield session

    session.close()


@pytest.fixture
def session_scope(db_session):
    """Stand-in for get_session() that hands out the test session."""

    @contextmanager
    def scope():
        yield db_session
        db_session.flush()

    return scope


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def base_xi():
    return list(BASE_XI)


@pytest.fixture
def make_league(db_session):
    """
    Factory building a league with teams, squad pools and fixtures.

    Teams are created one minute apart (first team oldest). Match i starts
    ``i`` days after NOW unless ``starts`` gives explicit offsets in hours.
    """

    def _make(
        name="Test League",
        transfer_limit=10,
        teams=("Alpha", "Bravo"),
        match_count=5,
        starts=None,
    ):
        league = League(name=name, transfer_limit=transfer_limit, squad_size=len(SQUAD_POOL))
        db_session.add(league)
        db_session.flush()

        created = []
        for index, team_name in enumerate(teams):
            team = FantasyTeam(
                league_id=league.id,
                name=team_name,
                created_at=NOW - timedelta(days=30) + timedelta(minutes=index),
            )
            db_session.add(team)
            db_session.flush()
            for player_id, role in SQUAD_POOL.items():
                add_squad_player(db_session, team, player_id, f"Player {player_id}", role)
            created.append(team)

        offsets = starts or [24 * (i + 1) for i in range(match_count)]
        matches = []
        for index, hours in enumerate(offsets, start=1):
            match = LeagueMatch(
                league_id=league.id,
                description=f"Match {index}",
                scheduled_start=NOW + timedelta(hours=hours),
            )
            db_session.add(match)
            db_session.flush()
            matches.append(match)

        return league, created, matches

    return _make


@pytest.fixture
def add_performance(db_session):
    """Insert a player_performances row for a match."""

    def _add(match, player_id, **stats):
        row = PlayerPerformance(match_id=match.id, player_id=player_id, **stats)
        db_session.add(row)
        db_session.flush()
        return row

    return _add
