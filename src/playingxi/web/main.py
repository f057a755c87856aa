"""
JSON API for lineups, budgets and scores.

Every domain error is returned as
``{"error": CODE, "message": ..., "details": {...}}`` with the status
code carried by the exception, so clients can branch on ``error``.

Run locally (host, port and reload from settings):
    python -m playingxi.web.main
"""

import logging
from typing import Callable, ContextManager, List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from playingxi import __version__
from playingxi.config import settings
from playingxi.db.session import get_db, get_session
from playingxi.errors import NotFound, PlayingXIError
from playingxi.lineups import LineupStore, propagate_league
from playingxi.lineups.store import lineup_to_dict
from playingxi.lineups.transfers import transfer_history
from playingxi.scoring import (
    ScoringEngine,
    leaderboard,
    match_scores,
    recompute_league,
    team_score_history,
)
from playingxi.sources import DatabaseLeagueDirectory
from playingxi.timeline import Clock, MatchTimeline, utc_now

logger = logging.getLogger(__name__)

app = FastAPI(title="PlayingXI", version=__version__)


class LineupRequest(BaseModel):
    player_ids: List[int] = Field(..., description="The 11 selected player ids")
    captain_id: int
    vice_captain_id: int


# =============================================================================
# Dependencies
# =============================================================================


def get_clock() -> Clock:
    """Clock used for lock and undo-window checks. Overridden in tests."""
    return utc_now


def get_session_scope() -> Callable[[], ContextManager[Session]]:
    """Session factory for jobs that open one session per unit of work."""
    return get_session


@app.exception_handler(PlayingXIError)
async def playingxi_error_handler(request: Request, exc: PlayingXIError):
    """Render domain errors with their machine-readable code."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


def _require_team(db: Session, league_id: int, team_id: int) -> None:
    directory = DatabaseLeagueDirectory(db)
    directory.get_league_config(league_id)
    if not directory.team_in_league(league_id, team_id):
        raise NotFound(
            f"Team {team_id} is not in league {league_id}",
            league_id=league_id,
            team_id=team_id,
        )


# =============================================================================
# Matches & Lineups
# =============================================================================


@app.get("/api/leagues/{league_id}/matches")
def api_matches(
    league_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """League fixtures in order with lock state."""
    DatabaseLeagueDirectory(db).get_league_config(league_id)
    timeline = MatchTimeline(db, clock)
    now = clock()
    return {
        "league_id": league_id,
        "matches": [
            {
                "match_id": match.id,
                "description": match.description,
                "scheduled_start": match.scheduled_start.isoformat(),
                "completed": match.completed,
                "locked": timeline.is_locked(match, now),
                "seconds_until_start": timeline.seconds_until_start(match, now),
            }
            for match in timeline.matches(league_id)
        ],
    }


@app.get("/api/leagues/{league_id}/teams/{team_id}/matches-status")
def api_match_statuses(
    league_id: int,
    team_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return {
        "team_id": team_id,
        "matches": LineupStore(db, clock=clock).match_statuses(league_id, team_id),
    }


@app.get("/api/leagues/{league_id}/teams/{team_id}/matches/{match_id}/lineup")
def api_get_lineup(
    league_id: int,
    team_id: int,
    match_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    store = LineupStore(db, clock=clock)
    _require_team(db, league_id, team_id)
    store.timeline.get_match(league_id, match_id)
    lineup = store.get_lineup(team_id, match_id)
    if lineup is None:
        raise NotFound(
            f"Team {team_id} has no lineup for match {match_id}",
            team_id=team_id,
            match_id=match_id,
        )
    return lineup_to_dict(lineup)


@app.post("/api/leagues/{league_id}/teams/{team_id}/matches/{match_id}/lineup")
def api_save_lineup(
    league_id: int,
    team_id: int,
    match_id: int,
    payload: LineupRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    result = LineupStore(db, clock=clock).save_lineup(
        league_id,
        team_id,
        match_id,
        payload.player_ids,
        payload.captain_id,
        payload.vice_captain_id,
    )
    body = result.to_dict()
    db.commit()
    return body


@app.delete("/api/leagues/{league_id}/teams/{team_id}/matches/{match_id}/lineup")
def api_delete_lineup(
    league_id: int,
    team_id: int,
    match_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    result = LineupStore(db, clock=clock).delete_lineup(league_id, team_id, match_id)
    body = result.to_dict()
    db.commit()
    return body


@app.post("/api/leagues/{league_id}/teams/{team_id}/lineup/undo")
def api_undo_lineup(
    league_id: int,
    team_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    result = LineupStore(db, clock=clock).undo_last_save(league_id, team_id)
    body = result.to_dict()
    db.commit()
    return body


@app.get("/api/leagues/{league_id}/teams/{team_id}/budget")
def api_budget(
    league_id: int,
    team_id: int,
    db: Session = Depends(get_db),
):
    return LineupStore(db).budget(league_id, team_id).to_dict()


@app.get("/api/leagues/{league_id}/teams/{team_id}/transfers")
def api_transfers(
    league_id: int,
    team_id: int,
    db: Session = Depends(get_db),
):
    _require_team(db, league_id, team_id)
    return {"team_id": team_id, "transfers": transfer_history(db, team_id)}


@app.post("/api/leagues/{league_id}/propagate")
def api_propagate(
    league_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    DatabaseLeagueDirectory(db).get_league_config(league_id)
    report = propagate_league(db, league_id, clock=clock)
    db.commit()
    return report.to_dict()


# =============================================================================
# Scoring
# =============================================================================


@app.post("/api/leagues/{league_id}/matches/{match_id}/score")
def api_score_match(
    league_id: int,
    match_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    result = ScoringEngine(db, clock=clock).score_match(league_id, match_id)
    db.commit()
    return result.to_dict()


@app.post("/api/leagues/{league_id}/recompute-scores")
def api_recompute_scores(
    league_id: int,
    workers: Optional[int] = Query(None, ge=1, le=32, description="Parallel match workers"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    session_scope: Callable[[], ContextManager[Session]] = Depends(get_session_scope),
):
    DatabaseLeagueDirectory(db).get_league_config(league_id)
    report = recompute_league(
        league_id,
        max_workers=workers,
        session_scope=session_scope,
        clock=clock,
    )
    return report.to_dict()


@app.get("/api/leagues/{league_id}/leaderboard")
def api_leaderboard(league_id: int, db: Session = Depends(get_db)):
    return {
        "league_id": league_id,
        "standings": [entry.to_dict() for entry in leaderboard(db, league_id)],
    }


@app.get("/api/leagues/{league_id}/matches/{match_id}/scores")
def api_match_scores(
    league_id: int,
    match_id: int,
    db: Session = Depends(get_db),
):
    MatchTimeline(db).get_match(league_id, match_id)
    return {"match_id": match_id, "scores": match_scores(db, league_id, match_id)}


@app.get("/api/leagues/{league_id}/teams/{team_id}/matches/{match_id}/breakdown")
def api_breakdown(
    league_id: int,
    team_id: int,
    match_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    _require_team(db, league_id, team_id)
    score = ScoringEngine(db, clock=clock).breakdown(league_id, team_id, match_id)
    return score.to_dict()


@app.get("/api/leagues/{league_id}/teams/{team_id}/score-history")
def api_score_history(
    league_id: int,
    team_id: int,
    db: Session = Depends(get_db),
):
    _require_team(db, league_id, team_id)
    history = team_score_history(db, league_id, team_id)
    return {
        "team_id": team_id,
        "total_points": history[-1]["cumulative_points"] if history else 0,
        "matches": history,
    }


def run() -> None:
    """Serve the API with host, port and reload taken from settings."""
    import uvicorn

    uvicorn.run(
        "playingxi.web.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
