"""
Match timeline: fixture order and lock state for a league.

Matches are ordered by id (fixture order). A match is locked as soon as
``now >= scheduled_start``; after that no explicit lineup write is
accepted for it. The clock is injected so callers and tests control "now".
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from playingxi.db.models import LeagueMatch
from playingxi.errors import NotFound

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Naive UTC timestamp, matching how times are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class MatchTimeline:
    """Read-only view of a league's fixtures relative to a clock."""

    def __init__(self, session: Session, clock: Clock = utc_now) -> None:
        self.session = session
        self.clock = clock

    def matches(self, league_id: int) -> list[LeagueMatch]:
        return list(
            self.session.scalars(
                select(LeagueMatch)
                .where(LeagueMatch.league_id == league_id)
                .order_by(LeagueMatch.id)
            )
        )

    def get_match(self, league_id: int, match_id: int) -> LeagueMatch:
        match = self.session.get(LeagueMatch, match_id)
        if match is None or match.league_id != league_id:
            raise NotFound(
                f"Match {match_id} not found in league {league_id}",
                league_id=league_id,
                match_id=match_id,
            )
        return match

    def is_locked(self, match: LeagueMatch, now: Optional[datetime] = None) -> bool:
        return (now or self.clock()) >= match.scheduled_start

    def seconds_until_start(self, match: LeagueMatch, now: Optional[datetime] = None) -> int:
        """Seconds until the match locks; 0 once it has locked."""
        delta = match.scheduled_start - (now or self.clock())
        return max(int(delta.total_seconds()), 0)

    def locked_matches(self, league_id: int) -> list[LeagueMatch]:
        now = self.clock()
        return [m for m in self.matches(league_id) if self.is_locked(m, now)]

    def earlier_matches(self, match: LeagueMatch) -> list[LeagueMatch]:
        """Matches of the same league strictly before ``match``, in order."""
        return list(
            self.session.scalars(
                select(LeagueMatch)
                .where(
                    LeagueMatch.league_id == match.league_id,
                    LeagueMatch.id < match.id,
                )
                .order_by(LeagueMatch.id)
            )
        )
