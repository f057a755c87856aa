"""
Lineup management.

- composition: Playing XI composition rules
- sequencing: Sequential lock rule across matches
- transfers: Transfer ledger and team budget projection
- captaincy: Captain / vice-captain change quotas
- store: Explicit saves, re-saves, undo and withdrawal
- propagation: Carrying lineups forward into locked matches
"""

from playingxi.lineups.composition import check_composition, validate_composition
from playingxi.lineups.propagation import PropagationReport, propagate_all, propagate_league
from playingxi.lineups.store import (
    DeleteResult,
    LineupStore,
    SaveResult,
    TransferBudget,
    UndoResult,
)

__all__ = [
    "check_composition",
    "validate_composition",
    "PropagationReport",
    "propagate_all",
    "propagate_league",
    "DeleteResult",
    "LineupStore",
    "SaveResult",
    "TransferBudget",
    "UndoResult",
]
