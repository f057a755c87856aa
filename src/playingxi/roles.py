"""
Player roles.

Roles are a closed set assigned once when a player enters a team's squad
pool. Free-text labels from upstream sources are normalized here so that
composition checks only ever compare enum members.
"""

from __future__ import annotations

import enum
import re


class Role(str, enum.Enum):
    KEEPER = "KEEPER"
    BATTER = "BATTER"
    BATTING_ALLROUNDER = "BATTING_ALLROUNDER"
    BOWLING_ALLROUNDER = "BOWLING_ALLROUNDER"
    BOWLER = "BOWLER"


# Overs each role is expected to contribute towards the bowling quota
OVERS_BY_ROLE: dict[Role, int] = {
    Role.KEEPER: 0,
    Role.BATTER: 0,
    Role.BATTING_ALLROUNDER: 2,
    Role.BOWLING_ALLROUNDER: 4,
    Role.BOWLER: 4,
}

MIN_BOWLING_OVERS = 20

# Normalized label -> role. Keys are lowercase with punctuation collapsed.
_ROLE_LABELS: dict[str, Role] = {
    "keeper": Role.KEEPER,
    "wicketkeeper": Role.KEEPER,
    "wicket keeper": Role.KEEPER,
    "wk": Role.KEEPER,
    "wicketkeeper batter": Role.KEEPER,
    "wicketkeeper batsman": Role.KEEPER,
    "wk batter": Role.KEEPER,
    "wk batsman": Role.KEEPER,
    "batter": Role.BATTER,
    "batsman": Role.BATTER,
    "bat": Role.BATTER,
    "batting allrounder": Role.BATTING_ALLROUNDER,
    "batting all rounder": Role.BATTING_ALLROUNDER,
    "bowling allrounder": Role.BOWLING_ALLROUNDER,
    "bowling all rounder": Role.BOWLING_ALLROUNDER,
    "bowler": Role.BOWLER,
    "bowl": Role.BOWLER,
}


def _normalize_label(label: str) -> str:
    cleaned = re.sub(r"[^a-z ]+", " ", label.lower())
    return " ".join(cleaned.split())


def parse_role(label: str | Role) -> Role:
    """
    Map an upstream role label to a Role.

    Accepts enum values ("BOWLING_ALLROUNDER") as well as the free-text
    forms used by scorecard providers ("Wicket-Keeper", "Batting All-Rounder").
    Raises ValueError for anything unrecognized rather than guessing. A
    bare "All-rounder" is unrecognized too, since it does not say whether
    the player counts for 2 or 4 overs.
    """
    if isinstance(label, Role):
        return label
    try:
        return Role(label.strip().upper())
    except ValueError:
        pass

    normalized = _normalize_label(label)
    role = _ROLE_LABELS.get(normalized)
    if role is None:
        raise ValueError(f"Unrecognized player role: {label!r}")
    return role
