"""
Captain and vice-captain change quotas.

Designations are compared with the previous resolved lineup
independently of which players changed. A new captain (or vice-captain)
consumes one of that designation's quota; keeping the same player, or
having no previous lineup at all, consumes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from playingxi.db.models import CaptaincyChange, Lineup, LineupRevision
from playingxi.errors import CaptainQuotaExceeded, ViceCaptainQuotaExceeded
from playingxi.lineups.transfers import active_captaincy_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DesignationChange:
    kind: str  # "CAPTAIN" or "VICE_CAPTAIN"
    player_id: int
    previous_player_id: int


def detect_changes(
    previous: Optional[Lineup],
    captain_id: int,
    vice_captain_id: int,
) -> list[DesignationChange]:
    if previous is None:
        return []
    changes = []
    if captain_id != previous.captain_id:
        changes.append(DesignationChange("CAPTAIN", captain_id, previous.captain_id))
    if vice_captain_id != previous.vice_captain_id:
        changes.append(
            DesignationChange("VICE_CAPTAIN", vice_captain_id, previous.vice_captain_id)
        )
    return changes


def check_quota(
    session: Session,
    team_id: int,
    match_id: int,
    changes: list[DesignationChange],
    captain_quota: int,
    vice_captain_quota: int,
) -> None:
    """Raise if any change would exceed its quota. Changes already made at ``match_id`` are replaced."""
    for change in changes:
        used = active_captaincy_count(session, team_id, change.kind, exclude_match_id=match_id)
        if change.kind == "CAPTAIN" and used + 1 > captain_quota:
            logger.info("Team %s captain change rejected (%d/%d)", team_id, used, captain_quota)
            raise CaptainQuotaExceeded(quota=captain_quota, used=used)
        if change.kind == "VICE_CAPTAIN" and used + 1 > vice_captain_quota:
            logger.info(
                "Team %s vice-captain change rejected (%d/%d)", team_id, used, vice_captain_quota
            )
            raise ViceCaptainQuotaExceeded(quota=vice_captain_quota, used=used)


def record_changes(
    session: Session,
    revision: LineupRevision,
    changes: list[DesignationChange],
    created_at: datetime,
) -> None:
    session.add_all(
        CaptaincyChange(
            team_id=revision.team_id,
            match_id=revision.match_id,
            revision_id=revision.id,
            kind=change.kind,
            player_id=change.player_id,
            previous_player_id=change.previous_player_id,
            created_at=created_at,
        )
        for change in changes
    )
