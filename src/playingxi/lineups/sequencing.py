"""
Sequential lock rule.

A team may only write match M once its history up to M is settled:
every match before M that has already locked must have a resolved
lineup (explicit or propagated) for that team. Writes are also refused
when the team already has an explicit lineup for a later match, since that
later lineup's transfers were computed against the one being changed.
Propagated lineups only ever copy a locked match, so a later propagated
lineup never depends on an open one and does not block it.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from playingxi.db.models import LeagueMatch, Lineup
from playingxi.errors import SequentialLockViolation
from playingxi.timeline import MatchTimeline


def first_unresolved_locked_match(
    session: Session,
    timeline: MatchTimeline,
    team_id: int,
    match: LeagueMatch,
) -> Optional[LeagueMatch]:
    """Earliest locked match before ``match`` with no lineup for the team."""
    earlier = timeline.earlier_matches(match)
    if not earlier:
        return None

    resolved = set(
        session.scalars(
            select(Lineup.match_id).where(
                Lineup.team_id == team_id,
                Lineup.match_id.in_([m.id for m in earlier]),
            )
        )
    )
    now = timeline.clock()
    for earlier_match in earlier:
        if timeline.is_locked(earlier_match, now) and earlier_match.id not in resolved:
            return earlier_match
    return None


def first_later_lineup_match_id(session: Session, team_id: int, match: LeagueMatch) -> Optional[int]:
    """Earliest later match holding an explicit lineup for the team."""
    return session.scalars(
        select(Lineup.match_id)
        .join(LeagueMatch, LeagueMatch.id == Lineup.match_id)
        .where(
            Lineup.team_id == team_id,
            LeagueMatch.league_id == match.league_id,
            Lineup.match_id > match.id,
            Lineup.origin == "EXPLICIT",
        )
        .order_by(Lineup.match_id)
        .limit(1)
    ).first()


def check_sequence(
    session: Session,
    timeline: MatchTimeline,
    team_id: int,
    match: LeagueMatch,
) -> None:
    """Raise SequentialLockViolation naming the match that blocks a write to ``match``."""
    blocking = first_unresolved_locked_match(session, timeline, team_id, match)
    if blocking is not None:
        raise SequentialLockViolation(blocking.id)

    later_match_id = first_later_lineup_match_id(session, team_id, match)
    if later_match_id is not None:
        raise SequentialLockViolation(later_match_id, reason="later_lineup_exists")
