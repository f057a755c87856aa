"""
Transfer ledger and team budget projection.

Transfers for a save at match M are the set difference between the new
XI and the previous resolved lineup (the nearest earlier match with a
lineup for the team). Each incoming player costs one transfer against
the league's ``transfer_limit``; a team's first lineup costs nothing.

The ledger is the source of truth. Entries count only while the
revision that produced them is active, so re-saving a match replaces
that match's transfers instead of adding to them, and undoing a save
gives its transfers back. TeamState counters are a projection of the
ledger, refreshed in the same transaction as every write and rebuildable
at any time with refresh_team_state().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from playingxi.db.models import (
    CaptaincyChange,
    LeagueMatch,
    Lineup,
    LineupRevision,
    TeamState,
    TransferLedgerEntry,
)
from playingxi.db.upsert import insert_if_absent
from playingxi.errors import TransferLimitExceeded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferDiff:
    outgoing: list[int]
    incoming: list[int]

    @property
    def count(self) -> int:
        return len(self.incoming)


def diff_lineups(previous: Optional[Iterable[int]], new: Iterable[int]) -> TransferDiff:
    """Players leaving and joining the XI. No previous lineup means no transfers."""
    if previous is None:
        return TransferDiff(outgoing=[], incoming=[])
    previous_set = set(previous)
    new_set = set(new)
    return TransferDiff(
        outgoing=sorted(previous_set - new_set),
        incoming=sorted(new_set - previous_set),
    )


def lock_team_state(session: Session, team_id: int) -> TeamState:
    """
    Fetch the team's state row with a row lock, creating it if needed.

    Explicit saves for the same team serialize on this lock.
    """
    insert_if_absent(
        session,
        TeamState.__table__,
        {"team_id": team_id},
        conflict_columns=["team_id"],
    )
    return session.scalars(
        select(TeamState)
        .where(TeamState.team_id == team_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).one()


def active_transfer_count(
    session: Session,
    team_id: int,
    exclude_match_id: Optional[int] = None,
) -> int:
    """Transfers consumed by active revisions, optionally ignoring one match."""
    stmt = (
        select(func.count(TransferLedgerEntry.id))
        .join(LineupRevision, LineupRevision.id == TransferLedgerEntry.revision_id)
        .where(
            TransferLedgerEntry.team_id == team_id,
            TransferLedgerEntry.type == "IN",
            LineupRevision.status == "active",
        )
    )
    if exclude_match_id is not None:
        stmt = stmt.where(TransferLedgerEntry.match_id != exclude_match_id)
    return session.scalar(stmt) or 0


def active_captaincy_count(
    session: Session,
    team_id: int,
    kind: str,
    exclude_match_id: Optional[int] = None,
) -> int:
    stmt = (
        select(func.count(CaptaincyChange.id))
        .join(LineupRevision, LineupRevision.id == CaptaincyChange.revision_id)
        .where(
            CaptaincyChange.team_id == team_id,
            CaptaincyChange.kind == kind,
            LineupRevision.status == "active",
        )
    )
    if exclude_match_id is not None:
        stmt = stmt.where(CaptaincyChange.match_id != exclude_match_id)
    return session.scalar(stmt) or 0


def check_transfer_budget(
    session: Session,
    team_id: int,
    match_id: int,
    diff: TransferDiff,
    transfer_limit: int,
) -> int:
    """
    Raise TransferLimitExceeded if ``diff`` would take the team past its limit.

    Transfers already recorded for ``match_id`` are ignored because the
    new save replaces them. Returns the cumulative total after this save.
    """
    used = active_transfer_count(session, team_id, exclude_match_id=match_id)
    if used + diff.count > transfer_limit:
        logger.info(
            "Team %s rejected at match %s: %d transfers needed, %d/%d used",
            team_id, match_id, diff.count, used, transfer_limit,
        )
        raise TransferLimitExceeded(limit=transfer_limit, used=used, attempted=diff.count)
    return used + diff.count


def record_transfers(
    session: Session,
    revision: LineupRevision,
    diff: TransferDiff,
    created_at: datetime,
) -> list[TransferLedgerEntry]:
    """Write paired OUT/IN ledger entries for a revision."""
    entries: list[TransferLedgerEntry] = []
    for out_id, in_id in zip(diff.outgoing, diff.incoming):
        entries.append(
            TransferLedgerEntry(
                team_id=revision.team_id,
                match_id=revision.match_id,
                revision_id=revision.id,
                type="OUT",
                player_id=out_id,
                counterpart_player_id=in_id,
                created_at=created_at,
            )
        )
        entries.append(
            TransferLedgerEntry(
                team_id=revision.team_id,
                match_id=revision.match_id,
                revision_id=revision.id,
                type="IN",
                player_id=in_id,
                counterpart_player_id=out_id,
                created_at=created_at,
            )
        )
    session.add_all(entries)
    return entries


def refresh_team_state(session: Session, state: TeamState) -> TeamState:
    """Recompute every cached counter on ``state`` from the ledger."""
    session.flush()
    team_id = state.team_id
    state.transfers_used = active_transfer_count(session, team_id)
    state.captain_changes_used = active_captaincy_count(session, team_id, "CAPTAIN")
    state.vice_captain_changes_used = active_captaincy_count(session, team_id, "VICE_CAPTAIN")
    state.latest_lineup_match_id = session.scalar(
        select(func.max(Lineup.match_id)).where(Lineup.team_id == team_id)
    )
    session.flush()
    return state


def transfer_history(session: Session, team_id: int) -> list[dict]:
    """Active ledger entries in match order, paired as OUT -> IN swaps."""
    rows = session.execute(
        select(TransferLedgerEntry, LeagueMatch.description)
        .join(LineupRevision, LineupRevision.id == TransferLedgerEntry.revision_id)
        .join(LeagueMatch, LeagueMatch.id == TransferLedgerEntry.match_id)
        .where(
            TransferLedgerEntry.team_id == team_id,
            TransferLedgerEntry.type == "IN",
            LineupRevision.status == "active",
        )
        .order_by(TransferLedgerEntry.match_id, TransferLedgerEntry.id)
    ).all()
    return [
        {
            "match_id": entry.match_id,
            "match_description": description,
            "player_in": entry.player_id,
            "player_out": entry.counterpart_player_id,
            "revision_id": entry.revision_id,
            "created_at": entry.created_at.isoformat(),
        }
        for entry, description in rows
    ]
