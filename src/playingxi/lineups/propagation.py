"""
Auto-propagation of lineups into locked matches.

When a match locks and a team has not saved a lineup for it, the team
keeps playing its previous XI: the lineup of the nearest earlier match
that has already locked is copied in with origin PROPAGATED. Lineups of
earlier matches that are still open (a postponed fixture) are never a
source, since they can still change. Propagation never consumes transfers
or captaincy quota, and never overwrites an existing lineup. The insert
is conditional on (team_id, match_id), so running the job twice, or
racing a late explicit save, is harmless.

Teams with no earlier lineup at all (their first match) are left
unresolved and reported for operators.

Usage:
    with get_session() as session:
        report = propagate_league(session, league_id)
        print(report.summary())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, ContextManager, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from playingxi.db.models import League, LeagueMatch, Lineup, TeamState
from playingxi.db.session import get_session
from playingxi.db.upsert import insert_if_absent
from playingxi.retry import with_retry
from playingxi.sources import DatabaseLeagueDirectory, LeagueDirectory
from playingxi.timeline import Clock, MatchTimeline, utc_now

logger = logging.getLogger(__name__)


@dataclass
class PropagationReport:
    """Outcome of one propagation run over a league."""

    league_id: int
    matches_checked: int = 0
    propagated: list[tuple[int, int]] = field(default_factory=list)
    already_resolved: int = 0
    unresolved: list[tuple[int, int]] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"League {self.league_id}: {self.matches_checked} locked matches, "
            f"{len(self.propagated)} propagated, {self.already_resolved} already resolved, "
            f"{len(self.unresolved)} unresolved, {len(self.failed)} failed"
        )

    def to_dict(self) -> dict:
        return {
            "league_id": self.league_id,
            "matches_checked": self.matches_checked,
            "propagated": [{"team_id": t, "match_id": m} for t, m in self.propagated],
            "already_resolved": self.already_resolved,
            "unresolved": [{"team_id": t, "match_id": m} for t, m in self.unresolved],
            "failed": self.failed,
        }


def _previous_lineup(
    session: Session, team_id: int, match: LeagueMatch, now: datetime
) -> Optional[Lineup]:
    return session.scalars(
        select(Lineup)
        .join(LeagueMatch, LeagueMatch.id == Lineup.match_id)
        .where(
            Lineup.team_id == team_id,
            LeagueMatch.league_id == match.league_id,
            Lineup.match_id < match.id,
            LeagueMatch.scheduled_start <= now,
        )
        .order_by(Lineup.match_id.desc())
        .limit(1)
    ).first()


def _advance_pointer(session: Session, team_id: int, match_id: int) -> None:
    session.execute(
        update(TeamState)
        .where(
            TeamState.team_id == team_id,
            or_(
                TeamState.latest_lineup_match_id.is_(None),
                TeamState.latest_lineup_match_id < match_id,
            ),
        )
        .values(latest_lineup_match_id=match_id)
    )


def propagate_match(
    session: Session,
    match: LeagueMatch,
    team_ids: list[int],
    report: PropagationReport,
    now: datetime,
) -> None:
    """Fill in missing lineups for one locked match."""
    resolved = set(
        session.scalars(
            select(Lineup.team_id).where(
                Lineup.match_id == match.id,
                Lineup.team_id.in_(team_ids),
            )
        )
    )
    for team_id in team_ids:
        if team_id in resolved:
            report.already_resolved += 1
            continue

        source = _previous_lineup(session, team_id, match, now)
        if source is None:
            logger.warning(
                "Team %s has no locked lineup before match %s; leaving unresolved",
                team_id, match.id,
            )
            report.unresolved.append((team_id, match.id))
            continue

        inserted = insert_if_absent(
            session,
            Lineup.__table__,
            {
                "team_id": team_id,
                "match_id": match.id,
                "player_ids": list(source.player_ids),
                "captain_id": source.captain_id,
                "vice_captain_id": source.vice_captain_id,
                "origin": "PROPAGATED",
                "source_match_id": source.match_id,
            },
            conflict_columns=["team_id", "match_id"],
        )
        if inserted:
            _advance_pointer(session, team_id, match.id)
            report.propagated.append((team_id, match.id))
            logger.info(
                "Propagated team %s lineup from match %s into match %s",
                team_id, source.match_id, match.id,
            )
        else:
            report.already_resolved += 1


def propagate_league(
    session: Session,
    league_id: int,
    clock: Clock = utc_now,
    directory: Optional[LeagueDirectory] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> PropagationReport:
    """
    Propagate lineups into every locked match of a league, in fixture order.

    Each match runs in its own savepoint and is retried on transient
    database errors; a match that still fails is recorded in the report
    and the run moves on. Caller is responsible for commit.
    """
    directory = directory or DatabaseLeagueDirectory(session)
    timeline = MatchTimeline(session, clock)
    team_ids = directory.team_ids(league_id)
    report = PropagationReport(league_id=league_id)

    retry_kwargs = {"sleep": sleep} if sleep is not None else {}

    now = clock()
    for match in timeline.locked_matches(league_id):
        report.matches_checked += 1
        partial = PropagationReport(league_id=league_id)

        def _attempt() -> None:
            # Reset so a retried attempt doesn't double count
            partial.propagated.clear()
            partial.unresolved.clear()
            partial.already_resolved = 0
            with session.begin_nested():
                propagate_match(session, match, team_ids, partial, now)

        try:
            with_retry(_attempt, description=f"Propagate match {match.id}", **retry_kwargs)
        except SQLAlchemyError as exc:
            logger.error("Propagation failed for match %s: %s", match.id, exc)
            report.failed.append({"match_id": match.id, "error": str(exc)})
            continue

        report.propagated.extend(partial.propagated)
        report.unresolved.extend(partial.unresolved)
        report.already_resolved += partial.already_resolved

    logger.info(report.summary())
    return report


def propagate_all(
    session_scope: Callable[[], ContextManager[Session]] = get_session,
    clock: Clock = utc_now,
) -> list[PropagationReport]:
    """Propagate every league, each in its own transaction."""
    with session_scope() as session:
        league_ids = list(session.scalars(select(League.id).order_by(League.id)))

    reports = []
    for league_id in league_ids:
        with session_scope() as session:
            reports.append(propagate_league(session, league_id, clock=clock))
    return reports
