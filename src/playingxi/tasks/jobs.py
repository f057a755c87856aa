"""
Scheduled lineup and scoring jobs.

Two stages, run in this order for every league (or a chosen subset):

- lineup_propagation: carry lineups forward into newly locked matches
- score_recompute: rescore every match from the performance feed

Each stage folds the per-league reports it gets back (PropagationReport,
LeagueRecomputeReport) into one StageReport. A stage is "partial" when a
league had matches that failed or were skipped; the next run picks them
up again, since both stages are idempotent. It is "failed" only when the
stage itself could not run.

Usage:
    run = JobRun.start(league_ids=[3, 4], workers=2)
    for name in resolve_stages(["lineup_propagation"]):
        print(STAGES[name](run).to_dict())
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, ContextManager, Literal, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from playingxi.config import settings
from playingxi.db import League, get_session
from playingxi.lineups import PropagationReport, propagate_league
from playingxi.scoring import LeagueRecomputeReport, recompute_league
from playingxi.timeline import Clock, utc_now

logger = logging.getLogger(__name__)

StageStatus = Literal["success", "partial", "failed"]


@dataclass(frozen=True)
class JobRun:
    """One invocation of the scheduled jobs, shared by every stage."""

    run_id: str
    started_at: datetime
    # None means every league
    league_ids: Optional[list[int]] = None
    workers: Optional[int] = None
    session_scope: Callable[[], ContextManager[Session]] = get_session
    clock: Clock = utc_now

    @classmethod
    def start(cls, **kwargs: Any) -> JobRun:
        started_at = utc_now()
        run_id = started_at.strftime("%Y%m%dT%H%M%SZ") + "-" + uuid.uuid4().hex[:8]
        return cls(run_id=run_id, started_at=started_at, **kwargs)

    def resolve_league_ids(self) -> list[int]:
        if self.league_ids:
            return list(self.league_ids)
        with self.session_scope() as session:
            return list(session.scalars(select(League.id).order_by(League.id)))


@dataclass
class StageReport:
    """Outcome of one stage across every league of a run."""

    stage: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    leagues: list[dict[str, Any]] = field(default_factory=list)
    totals: dict[str, int] = field(default_factory=dict)
    needs_retry: bool = False
    error: Optional[str] = None

    @property
    def status(self) -> StageStatus:
        if self.error is not None:
            return "failed"
        return "partial" if self.needs_retry else "success"

    @property
    def duration_s(self) -> float:
        if self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds()

    def _add(self, key: str, count: int) -> None:
        self.totals[key] = self.totals.get(key, 0) + count

    def add_propagation(self, report: PropagationReport) -> None:
        self.leagues.append(report.to_dict())
        self._add("propagated", len(report.propagated))
        self._add("unresolved", len(report.unresolved))
        self._add("failed", len(report.failed))
        if report.failed:
            self.needs_retry = True

    def add_recompute(self, report: LeagueRecomputeReport) -> None:
        self.leagues.append(report.to_dict())
        self._add("scored", len(report.scored))
        self._add("deferred", len(report.deferred))
        self._add("skipped", len(report.skipped))
        if report.skipped:
            self.needs_retry = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_s": self.duration_s,
            "totals": self.totals,
            "leagues": self.leagues,
            "error": self.error,
        }


def run_propagation(run: JobRun) -> StageReport:
    """Propagate lineups league by league, one transaction per league."""
    stage = StageReport(stage="lineup_propagation", started_at=utc_now())
    try:
        for league_id in run.resolve_league_ids():
            with run.session_scope() as session:
                report = propagate_league(session, league_id, clock=run.clock)
            stage.add_propagation(report)
            for team_id, match_id in report.unresolved:
                logger.warning(
                    "Unresolved lineup: league %s team %s match %s (no locked lineup to copy)",
                    league_id, team_id, match_id,
                )
    except Exception as exc:
        logger.exception("Stage %s failed", stage.stage)
        stage.error = str(exc)

    stage.ended_at = utc_now()
    return stage


def run_scoring(run: JobRun) -> StageReport:
    """Recompute every league's scores, several matches at a time."""
    stage = StageReport(stage="score_recompute", started_at=utc_now())
    workers = run.workers or settings.scoring_max_workers
    try:
        for league_id in run.resolve_league_ids():
            stage.add_recompute(
                recompute_league(
                    league_id,
                    max_workers=workers,
                    session_scope=run.session_scope,
                    clock=run.clock,
                )
            )
    except Exception as exc:
        logger.exception("Stage %s failed", stage.stage)
        stage.error = str(exc)

    stage.ended_at = utc_now()
    return stage


# Run order
STAGES: dict[str, Callable[[JobRun], StageReport]] = {
    "lineup_propagation": run_propagation,
    "score_recompute": run_scoring,
}


def resolve_stages(
    include: Optional[list[str]] = None,
    skip: Optional[set[str]] = None,
) -> list[str]:
    """Stage names to run: ``include`` (or all, in run order) minus ``skip``."""
    names = include or list(STAGES)
    for name in names:
        if name not in STAGES:
            raise KeyError(f"Unknown stage: {name}")
    skipped = skip or set()
    return [name for name in names if name not in skipped]
