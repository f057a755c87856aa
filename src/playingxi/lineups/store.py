"""
Lineup store: the only place explicit lineup writes happen.

A save runs as one unit inside the caller's transaction:

1. Resolve league, team and match (NotFound)
2. Reject locked matches (MatchLocked)
3. Validate composition against the squad pool (InvalidComposition)
4. Lock the team's state row so saves for one team serialize
5. Check the sequential lock rule (SequentialLockViolation)
6. Diff against the previous resolved lineup and check the transfer
   budget and captaincy quotas (TransferLimitExceeded, CaptainQuotaExceeded,
   ViceCaptainQuotaExceeded)
7. Write the revision, ledger entries, lineup row and refreshed projection

Every check runs before the first write, so a rejected save leaves the
ledger and lineups exactly as they were.

Usage:
    with get_session() as session:
        store = LineupStore(session)
        result = store.save_lineup(league_id, team_id, match_id, players, captain, vice)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from playingxi.config import settings
from playingxi.db.models import LeagueMatch, Lineup, LineupRevision, TeamState
from playingxi.errors import (
    MatchLocked,
    NoPriorLineup,
    NotFound,
    SequentialLockViolation,
    UndoWindowExpired,
)
from playingxi.lineups.captaincy import check_quota, detect_changes, record_changes
from playingxi.lineups.composition import validate_composition
from playingxi.lineups.sequencing import check_sequence, first_later_lineup_match_id
from playingxi.lineups.transfers import (
    check_transfer_budget,
    diff_lineups,
    lock_team_state,
    record_transfers,
    refresh_team_state,
)
from playingxi.sources import DatabaseLeagueDirectory, LeagueConfig, LeagueDirectory
from playingxi.timeline import Clock, MatchTimeline, utc_now

logger = logging.getLogger(__name__)


def lineup_to_dict(lineup: Lineup) -> dict:
    return {
        "team_id": lineup.team_id,
        "match_id": lineup.match_id,
        "player_ids": list(lineup.player_ids),
        "captain_id": lineup.captain_id,
        "vice_captain_id": lineup.vice_captain_id,
        "origin": lineup.origin,
        "source_match_id": lineup.source_match_id,
        "revision_id": lineup.revision_id,
        "updated_at": lineup.updated_at.isoformat() if lineup.updated_at else None,
    }


@dataclass
class TransferBudget:
    """Remaining transfer and captaincy budget for a team."""

    transfer_limit: int
    transfers_used: int
    captain_quota: int
    captain_changes_used: int
    vice_captain_quota: int
    vice_captain_changes_used: int

    @property
    def transfers_remaining(self) -> int:
        return max(self.transfer_limit - self.transfers_used, 0)

    def to_dict(self) -> dict:
        return {
            "transfer_limit": self.transfer_limit,
            "transfers_used": self.transfers_used,
            "transfers_remaining": self.transfers_remaining,
            "captain_changes_used": self.captain_changes_used,
            "captain_changes_remaining": max(self.captain_quota - self.captain_changes_used, 0),
            "vice_captain_changes_used": self.vice_captain_changes_used,
            "vice_captain_changes_remaining": max(
                self.vice_captain_quota - self.vice_captain_changes_used, 0
            ),
        }


@dataclass
class SaveResult:
    """Outcome of a successful explicit save."""

    lineup: Lineup
    revision_id: int
    transfers_in: list[int] = field(default_factory=list)
    transfers_out: list[int] = field(default_factory=list)
    captain_changed: bool = False
    vice_captain_changed: bool = False
    replaced_revision_id: Optional[int] = None
    budget: Optional[TransferBudget] = None

    def to_dict(self) -> dict:
        return {
            "lineup": lineup_to_dict(self.lineup),
            "revision_id": self.revision_id,
            "transfers_in": self.transfers_in,
            "transfers_out": self.transfers_out,
            "captain_changed": self.captain_changed,
            "vice_captain_changed": self.vice_captain_changed,
            "replaced_revision_id": self.replaced_revision_id,
            "budget": self.budget.to_dict() if self.budget else None,
        }


@dataclass
class UndoResult:
    """Outcome of undoing the most recent explicit save."""

    undone_revision_id: int
    match_id: int
    restored_revision_id: Optional[int]
    lineup: Optional[Lineup]
    budget: Optional[TransferBudget] = None

    def to_dict(self) -> dict:
        return {
            "undone_revision_id": self.undone_revision_id,
            "match_id": self.match_id,
            "restored_revision_id": self.restored_revision_id,
            "lineup": lineup_to_dict(self.lineup) if self.lineup else None,
            "budget": self.budget.to_dict() if self.budget else None,
        }


@dataclass
class DeleteResult:
    """Outcome of withdrawing a lineup from an open match."""

    match_id: int
    withdrawn_revision_id: Optional[int]
    budget: Optional[TransferBudget] = None

    def to_dict(self) -> dict:
        return {
            "match_id": self.match_id,
            "withdrawn_revision_id": self.withdrawn_revision_id,
            "budget": self.budget.to_dict() if self.budget else None,
        }


class LineupStore:
    """
    Reads and writes lineups for teams in a league.

    The store never commits. Callers own the transaction (get_session()
    in scripts, an explicit commit in API endpoints).
    """

    def __init__(
        self,
        session: Session,
        directory: Optional[LeagueDirectory] = None,
        clock: Clock = utc_now,
        captain_quota: Optional[int] = None,
        vice_captain_quota: Optional[int] = None,
        undo_grace_seconds: Optional[int] = None,
    ) -> None:
        self.session = session
        self.directory = directory or DatabaseLeagueDirectory(session)
        self.clock = clock
        self.timeline = MatchTimeline(session, clock)
        self.captain_quota = (
            settings.captain_change_quota if captain_quota is None else captain_quota
        )
        self.vice_captain_quota = (
            settings.vice_captain_change_quota if vice_captain_quota is None else vice_captain_quota
        )
        self.undo_grace_seconds = (
            settings.undo_grace_seconds if undo_grace_seconds is None else undo_grace_seconds
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_lineup(self, team_id: int, match_id: int) -> Optional[Lineup]:
        return self.session.scalars(
            select(Lineup).where(Lineup.team_id == team_id, Lineup.match_id == match_id)
        ).first()

    def previous_resolved_lineup(self, team_id: int, match: LeagueMatch) -> Optional[Lineup]:
        """Lineup of the nearest earlier match that has one for this team."""
        return self.session.scalars(
            select(Lineup)
            .join(LeagueMatch, LeagueMatch.id == Lineup.match_id)
            .where(
                Lineup.team_id == team_id,
                LeagueMatch.league_id == match.league_id,
                Lineup.match_id < match.id,
            )
            .order_by(Lineup.match_id.desc())
            .limit(1)
        ).first()

    def current_lineup(self, team_id: int) -> Optional[Lineup]:
        """The team's latest resolved lineup, via the team state pointer."""
        state = self.session.get(TeamState, team_id)
        if state is None or state.latest_lineup_match_id is None:
            return None
        return self.get_lineup(team_id, state.latest_lineup_match_id)

    def budget(self, league_id: int, team_id: int) -> TransferBudget:
        config = self._resolve_team(league_id, team_id)
        return self._budget_from_state(config, self.session.get(TeamState, team_id))

    def match_statuses(self, league_id: int, team_id: int) -> list[dict]:
        """Per-match lock and lineup status for one team, in fixture order."""
        self._resolve_team(league_id, team_id)
        matches = self.timeline.matches(league_id)
        lineups = {
            lineup.match_id: lineup
            for lineup in self.session.scalars(
                select(Lineup).where(
                    Lineup.team_id == team_id,
                    Lineup.match_id.in_([m.id for m in matches]),
                )
            )
        }
        now = self.clock()
        statuses = []
        for match in matches:
            lineup = lineups.get(match.id)
            statuses.append({
                "match_id": match.id,
                "description": match.description,
                "scheduled_start": match.scheduled_start.isoformat(),
                "locked": self.timeline.is_locked(match, now),
                "seconds_until_start": self.timeline.seconds_until_start(match, now),
                "completed": match.completed,
                "has_lineup": lineup is not None,
                "origin": lineup.origin if lineup else None,
                "captain_id": lineup.captain_id if lineup else None,
                "vice_captain_id": lineup.vice_captain_id if lineup else None,
            })
        return statuses

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_lineup(
        self,
        league_id: int,
        team_id: int,
        match_id: int,
        player_ids: list[int],
        captain_id: int,
        vice_captain_id: int,
    ) -> SaveResult:
        """
        Validate and store an explicit lineup for an unlocked match.

        Re-saving a match replaces its lineup; the replaced revision's
        transfers and captaincy changes stop counting.

        Raises:
            NotFound, MatchLocked, InvalidComposition, SequentialLockViolation,
            TransferLimitExceeded, CaptainQuotaExceeded, ViceCaptainQuotaExceeded
        """
        config = self._resolve_team(league_id, team_id)
        match = self.timeline.get_match(league_id, match_id)
        now = self.clock()

        if self.timeline.is_locked(match, now):
            logger.info("Team %s save rejected: match %s locked", team_id, match_id)
            raise MatchLocked(match_id)

        validate_composition(
            player_ids, captain_id, vice_captain_id, self.directory.get_squad_pool(team_id)
        )

        state = lock_team_state(self.session, team_id)
        check_sequence(self.session, self.timeline, team_id, match)

        previous = self.previous_resolved_lineup(team_id, match)
        diff = diff_lineups(previous.player_ids if previous else None, player_ids)
        check_transfer_budget(self.session, team_id, match.id, diff, config.transfer_limit)

        changes = detect_changes(previous, captain_id, vice_captain_id)
        check_quota(
            self.session, team_id, match.id, changes,
            self.captain_quota, self.vice_captain_quota,
        )

        # All checks passed; write everything
        existing = self.get_lineup(team_id, match.id)
        replaced: Optional[LineupRevision] = None
        if existing is not None and existing.revision_id is not None:
            replaced = self.session.get(LineupRevision, existing.revision_id)
            replaced.status = "superseded"

        sorted_players = sorted(player_ids)
        revision = LineupRevision(
            team_id=team_id,
            match_id=match.id,
            player_ids=sorted_players,
            captain_id=captain_id,
            vice_captain_id=vice_captain_id,
            previous_match_id=previous.match_id if previous else None,
            status="active",
            supersedes_id=replaced.id if replaced else None,
            saved_at=now,
        )
        self.session.add(revision)
        self.session.flush()

        record_transfers(self.session, revision, diff, now)
        record_changes(self.session, revision, changes, now)

        if existing is None:
            existing = Lineup(team_id=team_id, match_id=match.id, created_at=now)
            self.session.add(existing)
        existing.player_ids = sorted_players
        existing.captain_id = captain_id
        existing.vice_captain_id = vice_captain_id
        existing.origin = "EXPLICIT"
        existing.source_match_id = None
        existing.revision_id = revision.id
        existing.updated_at = now

        refresh_team_state(self.session, state)

        logger.info(
            "Team %s saved lineup for match %s (revision %s, %d transfers, %d/%d used)",
            team_id, match.id, revision.id, diff.count,
            state.transfers_used, config.transfer_limit,
        )
        return SaveResult(
            lineup=existing,
            revision_id=revision.id,
            transfers_in=diff.incoming,
            transfers_out=diff.outgoing,
            captain_changed=any(c.kind == "CAPTAIN" for c in changes),
            vice_captain_changed=any(c.kind == "VICE_CAPTAIN" for c in changes),
            replaced_revision_id=replaced.id if replaced else None,
            budget=self._budget_from_state(config, state),
        )

    def undo_last_save(self, league_id: int, team_id: int) -> UndoResult:
        """
        Revert the team's most recent explicit save.

        Allowed only while that save's match is unlocked, no later lineup
        exists, and the save is within the undo grace window. The save's
        transfers and captaincy changes are credited back.

        Raises:
            NotFound, NoPriorLineup, MatchLocked, SequentialLockViolation,
            UndoWindowExpired
        """
        config = self._resolve_team(league_id, team_id)
        state = lock_team_state(self.session, team_id)
        now = self.clock()

        revision = self.session.scalars(
            select(LineupRevision)
            .join(LeagueMatch, LeagueMatch.id == LineupRevision.match_id)
            .where(
                LineupRevision.team_id == team_id,
                LineupRevision.status == "active",
                LeagueMatch.league_id == league_id,
            )
            .order_by(LineupRevision.saved_at.desc(), LineupRevision.id.desc())
            .limit(1)
        ).first()
        if revision is None:
            raise NoPriorLineup(f"Team {team_id} has no save to undo", team_id=team_id)

        match = self.timeline.get_match(league_id, revision.match_id)
        if self.timeline.is_locked(match, now):
            raise MatchLocked(match.id)

        later_match_id = first_later_lineup_match_id(self.session, team_id, match)
        if later_match_id is not None:
            raise SequentialLockViolation(later_match_id, reason="later_lineup_exists")

        if now - revision.saved_at > timedelta(seconds=self.undo_grace_seconds):
            raise UndoWindowExpired(revision.id, self.undo_grace_seconds)

        revision.status = "undone"
        revision.undone_at = now

        lineup = self.get_lineup(team_id, match.id)
        restored: Optional[LineupRevision] = None
        if revision.supersedes_id is not None:
            restored = self.session.get(LineupRevision, revision.supersedes_id)
            restored.status = "active"
            lineup.player_ids = list(restored.player_ids)
            lineup.captain_id = restored.captain_id
            lineup.vice_captain_id = restored.vice_captain_id
            lineup.revision_id = restored.id
            lineup.updated_at = now
        elif lineup is not None:
            self.session.delete(lineup)
            lineup = None

        refresh_team_state(self.session, state)

        logger.info(
            "Team %s undid revision %s for match %s (restored=%s)",
            team_id, revision.id, match.id, restored.id if restored else None,
        )
        return UndoResult(
            undone_revision_id=revision.id,
            match_id=match.id,
            restored_revision_id=restored.id if restored else None,
            lineup=lineup,
            budget=self._budget_from_state(config, state),
        )

    def delete_lineup(self, league_id: int, team_id: int, match_id: int) -> DeleteResult:
        """
        Withdraw the team's lineup for an open match.

        This is how a team walks back to edit an earlier match: withdraw
        the latest lineups one by one, newest first, then save again. The
        withdrawn revision is marked undone, so its transfers and captaincy
        changes stop counting. There is no grace window, unlike undo.

        Raises:
            NotFound, MatchLocked, SequentialLockViolation
        """
        config = self._resolve_team(league_id, team_id)
        match = self.timeline.get_match(league_id, match_id)
        now = self.clock()

        if self.timeline.is_locked(match, now):
            raise MatchLocked(match.id)

        state = lock_team_state(self.session, team_id)
        lineup = self.get_lineup(team_id, match.id)
        if lineup is None:
            raise NotFound(
                f"Team {team_id} has no lineup for match {match.id}",
                team_id=team_id,
                match_id=match.id,
            )

        later_match_id = first_later_lineup_match_id(self.session, team_id, match)
        if later_match_id is not None:
            raise SequentialLockViolation(later_match_id, reason="later_lineup_exists")

        withdrawn = None
        if lineup.revision_id is not None:
            withdrawn = self.session.get(LineupRevision, lineup.revision_id)
            withdrawn.status = "undone"
            withdrawn.undone_at = now

        self.session.delete(lineup)
        refresh_team_state(self.session, state)

        logger.info(
            "Team %s withdrew lineup for match %s (revision %s)",
            team_id, match.id, withdrawn.id if withdrawn else None,
        )
        return DeleteResult(
            match_id=match.id,
            withdrawn_revision_id=withdrawn.id if withdrawn else None,
            budget=self._budget_from_state(config, state),
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _resolve_team(self, league_id: int, team_id: int) -> LeagueConfig:
        config = self.directory.get_league_config(league_id)
        if not self.directory.team_in_league(league_id, team_id):
            raise NotFound(
                f"Team {team_id} is not in league {league_id}",
                league_id=league_id,
                team_id=team_id,
            )
        return config

    def _budget_from_state(self, config: LeagueConfig, state: Optional[TeamState]) -> TransferBudget:
        return TransferBudget(
            transfer_limit=config.transfer_limit,
            transfers_used=state.transfers_used if state else 0,
            captain_quota=self.captain_quota,
            captain_changes_used=state.captain_changes_used if state else 0,
            vice_captain_quota=self.vice_captain_quota,
            vice_captain_changes_used=state.vice_captain_changes_used if state else 0,
        )
