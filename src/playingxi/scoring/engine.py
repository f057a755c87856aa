"""
Scoring engine: turns match performance into team scores.

For each team with a resolved lineup for a match (explicit or
propagated), every XI player's base points are computed from the
performance feed, the captain's doubled and the vice-captain's
multiplied by 1.5 (floored). The result is upserted into
team_match_scores, keyed by (team_id, match_id), so scoring the same
match again is always safe and yields the same row.

If the feed has nothing for a match yet, scoring is deferred: nothing is
written and the result says so.

Usage, single match (e.g. right after an import):

    with get_session() as session:
        result = ScoringEngine(session).score_match(league_id, match_id)

Usage, recompute a whole league in parallel:

    report = recompute_league(league_id, max_workers=4)
    print(report.summary())
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, ContextManager, Literal, Optional

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from playingxi.config import settings
from playingxi.db.models import LeagueMatch, Lineup, TeamMatchScore
from playingxi.db.session import get_session
from playingxi.db.upsert import upsert_if_changed
from playingxi.errors import NotFound, PerformanceDataUnavailable
from playingxi.retry import with_retry
from playingxi.scoring.points import apply_multiplier, score_player
from playingxi.sources import (
    DatabaseLeagueDirectory,
    DatabasePerformanceFeed,
    PerformanceFeed,
    PlayerStats,
)
from playingxi.timeline import Clock, MatchTimeline, utc_now

logger = logging.getLogger(__name__)

MatchStatus = Literal["scored", "deferred", "skipped"]

SCORE_COLUMNS = ("total_points", "captain_points", "vice_captain_points", "regular_points")


@dataclass
class PlayerScore:
    """One XI player's contribution to a team score."""

    player_id: int
    base_points: int
    designation: Optional[str]
    final_points: int
    played: bool
    breakdown: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "base_points": self.base_points,
            "designation": self.designation,
            "final_points": self.final_points,
            "played": self.played,
            "breakdown": dict(self.breakdown),
        }


@dataclass
class TeamScore:
    team_id: int
    match_id: int
    captain_points: int = 0
    vice_captain_points: int = 0
    regular_points: int = 0
    players: list[PlayerScore] = field(default_factory=list)

    @property
    def total_points(self) -> int:
        return self.captain_points + self.vice_captain_points + self.regular_points

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "match_id": self.match_id,
            "total_points": self.total_points,
            "captain_points": self.captain_points,
            "vice_captain_points": self.vice_captain_points,
            "regular_points": self.regular_points,
            "players": [p.to_dict() for p in self.players],
        }


@dataclass
class MatchScoreResult:
    match_id: int
    status: MatchStatus
    teams_scored: int = 0
    teams_without_lineup: list[int] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "match_id": self.match_id,
            "status": self.status,
            "teams_scored": self.teams_scored,
            "teams_without_lineup": self.teams_without_lineup,
            "error": self.error,
        }


@dataclass
class LeagueRecomputeReport:
    """Summary returned by recompute_league()."""

    league_id: int
    results: list[MatchScoreResult] = field(default_factory=list)

    def _with_status(self, status: str) -> list[MatchScoreResult]:
        return [r for r in self.results if r.status == status]

    @property
    def scored(self) -> list[MatchScoreResult]:
        return self._with_status("scored")

    @property
    def deferred(self) -> list[MatchScoreResult]:
        return self._with_status("deferred")

    @property
    def skipped(self) -> list[MatchScoreResult]:
        return self._with_status("skipped")

    def summary(self) -> str:
        return (
            f"League {self.league_id}: {len(self.scored)} matches scored, "
            f"{len(self.deferred)} deferred, {len(self.skipped)} skipped"
        )

    def to_dict(self) -> dict:
        return {
            "league_id": self.league_id,
            "scored": len(self.scored),
            "deferred": len(self.deferred),
            "skipped": len(self.skipped),
            "matches": [r.to_dict() for r in sorted(self.results, key=lambda r: r.match_id)],
        }


def compute_team_score(
    team_id: int,
    match_id: int,
    player_ids: list[int],
    captain_id: int,
    vice_captain_id: int,
    performance: dict[int, PlayerStats],
) -> TeamScore:
    """
    Score one XI against a match's performance. Pure function.

    Players missing from ``performance`` did not play and score 0.
    """
    score = TeamScore(team_id=team_id, match_id=match_id)
    for player_id in player_ids:
        stats = performance.get(player_id)
        points = score_player(stats) if stats is not None else None
        base = points.total if points is not None else 0

        if player_id == captain_id:
            designation = "captain"
        elif player_id == vice_captain_id:
            designation = "vice_captain"
        else:
            designation = None
        final = apply_multiplier(base, designation)

        if designation == "captain":
            score.captain_points += final
        elif designation == "vice_captain":
            score.vice_captain_points += final
        else:
            score.regular_points += final

        score.players.append(
            PlayerScore(
                player_id=player_id,
                base_points=base,
                designation=designation,
                final_points=final,
                played=stats is not None,
                breakdown=points.breakdown if points is not None else {},
            )
        )
    return score


class ScoringEngine:
    """
    Scores resolved lineups against the performance feed.

    Writes go through the caller's session. Caller is responsible for commit.
    """

    def __init__(
        self,
        session: Session,
        feed: Optional[PerformanceFeed] = None,
        clock: Clock = utc_now,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.session = session
        self.feed = feed or DatabasePerformanceFeed(session)
        self.clock = clock
        self.timeline = MatchTimeline(session, clock)
        self._retry_kwargs = {"sleep": sleep} if sleep is not None else {}

    def fetch_performance(self, match_id: int) -> dict[int, PlayerStats]:
        """
        Read a match's performance, retrying transient feed failures.

        Raises:
            PerformanceDataUnavailable: the feed has no data for the match yet
            FeedUnavailable: the feed kept failing after retries
        """
        performance = with_retry(
            lambda: self.feed.get_performance(match_id),
            description=f"Fetch performance for match {match_id}",
            **self._retry_kwargs,
        )
        if not performance:
            raise PerformanceDataUnavailable(match_id)
        return performance

    def store_score(self, league_id: int, score: TeamScore) -> bool:
        """Upsert a team score. Returns False when the stored row was already identical."""
        return upsert_if_changed(
            self.session,
            TeamMatchScore.__table__,
            {
                "team_id": score.team_id,
                "league_id": league_id,
                "match_id": score.match_id,
                "total_points": score.total_points,
                "captain_points": score.captain_points,
                "vice_captain_points": score.vice_captain_points,
                "regular_points": score.regular_points,
                "updated_at": self.clock(),
            },
            conflict_columns=["team_id", "match_id"],
            compare_columns=SCORE_COLUMNS,
        )

    def score_team_match(self, league_id: int, team_id: int, match_id: int) -> TeamScore:
        """
        Score and store one team's resolved lineup for one match.

        Raises:
            NotFound: unknown match, or no resolved lineup for the team
            PerformanceDataUnavailable: no performance data yet
        """
        self.timeline.get_match(league_id, match_id)
        lineup = self.session.scalars(
            select(Lineup).where(Lineup.team_id == team_id, Lineup.match_id == match_id)
        ).first()
        if lineup is None:
            raise NotFound(
                f"Team {team_id} has no lineup for match {match_id}",
                team_id=team_id,
                match_id=match_id,
            )
        performance = self.fetch_performance(match_id)
        score = self._score_lineup(lineup, performance)
        self.store_score(league_id, score)
        return score

    def breakdown(self, league_id: int, team_id: int, match_id: int) -> TeamScore:
        """Per-player points for a team's lineup without writing anything."""
        self.timeline.get_match(league_id, match_id)
        lineup = self.session.scalars(
            select(Lineup).where(Lineup.team_id == team_id, Lineup.match_id == match_id)
        ).first()
        if lineup is None:
            raise NotFound(
                f"Team {team_id} has no lineup for match {match_id}",
                team_id=team_id,
                match_id=match_id,
            )
        return self._score_lineup(lineup, self.fetch_performance(match_id))

    def score_match(self, league_id: int, match_id: int) -> MatchScoreResult:
        """
        Score every resolved lineup for a match.

        Teams without a resolved lineup (unresolved first matches) are
        listed and get no record.
        """
        match = self.timeline.get_match(league_id, match_id)
        try:
            performance = self.fetch_performance(match.id)
        except PerformanceDataUnavailable:
            logger.info("Match %s has no performance data yet; scoring deferred", match.id)
            return MatchScoreResult(match_id=match.id, status="deferred")

        lineups = self.session.scalars(
            select(Lineup).where(Lineup.match_id == match.id).order_by(Lineup.team_id)
        ).all()

        result = MatchScoreResult(match_id=match.id, status="scored")
        for lineup in lineups:
            self.store_score(league_id, self._score_lineup(lineup, performance))
            result.teams_scored += 1

        team_ids = DatabaseLeagueDirectory(self.session).team_ids(league_id)
        scored = {lineup.team_id for lineup in lineups}
        result.teams_without_lineup = sorted(t for t in team_ids if t not in scored)

        logger.info(
            "Scored match %s: %d teams (%d without lineup)",
            match.id, result.teams_scored, len(result.teams_without_lineup),
        )
        return result

    def _score_lineup(self, lineup: Lineup, performance: dict[int, PlayerStats]) -> TeamScore:
        return compute_team_score(
            lineup.team_id,
            lineup.match_id,
            list(lineup.player_ids),
            lineup.captain_id,
            lineup.vice_captain_id,
            performance,
        )


def _score_match_worker(
    session_scope: Callable[[], ContextManager[Session]],
    league_id: int,
    match_id: int,
    clock: Clock,
    feed_factory: Optional[Callable[[Session], PerformanceFeed]],
    sleep: Optional[Callable[[float], None]] = None,
) -> MatchScoreResult:
    """Score one match in its own transaction, retrying write conflicts in a fresh one."""
    retry_kwargs = {"sleep": sleep} if sleep is not None else {}

    def _attempt() -> MatchScoreResult:
        with session_scope() as session:
            feed = feed_factory(session) if feed_factory is not None else None
            engine = ScoringEngine(session, feed=feed, clock=clock, sleep=sleep)
            return engine.score_match(league_id, match_id)

    return with_retry(
        _attempt,
        retry_on=(OperationalError,),
        description=f"Score match {match_id}",
        **retry_kwargs,
    )


def recompute_league(
    league_id: int,
    max_workers: Optional[int] = None,
    session_scope: Callable[[], ContextManager[Session]] = get_session,
    clock: Clock = utc_now,
    feed_factory: Optional[Callable[[Session], PerformanceFeed]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> LeagueRecomputeReport:
    """
    Rescore every match of a league, several matches at a time.

    Each match is scored in its own session and transaction; a transient
    database error retries the match in a new one. A match that fails
    after retries is reported as skipped; it never stops the
    others. Matches without performance data are reported as deferred.
    """
    if max_workers is None:
        max_workers = settings.scoring_max_workers

    with session_scope() as session:
        match_ids = list(
            session.scalars(
                select(LeagueMatch.id)
                .where(LeagueMatch.league_id == league_id)
                .order_by(LeagueMatch.id)
            )
        )

    report = LeagueRecomputeReport(league_id=league_id)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(
                _score_match_worker,
                session_scope, league_id, match_id, clock, feed_factory, sleep,
            ): match_id
            for match_id in match_ids
        }
        for future in as_completed(futures):
            match_id = futures[future]
            try:
                report.results.append(future.result())
            except Exception as exc:
                logger.warning("Skipping match %s during recompute: %s", match_id, exc)
                report.results.append(
                    MatchScoreResult(match_id=match_id, status="skipped", error=str(exc))
                )

    logger.info(report.summary())
    return report
