"""
Playing XI composition rules.

A lineup must:
- contain exactly 11 distinct players, all from the team's squad pool
- include at least one wicketkeeper and at least one specialist batter
- carry at least 20 overs of bowling (bowlers and bowling all-rounders
  count 4 overs each, batting all-rounders 2)
- name a captain and a different vice-captain, both inside the XI

check_composition() reports every unmet rule at once so callers can show
the full list rather than one failure per attempt.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from playingxi.errors import InvalidComposition
from playingxi.roles import MIN_BOWLING_OVERS, OVERS_BY_ROLE, Role

LINEUP_SIZE = 11


def bowling_overs(roles: Iterable[Role]) -> int:
    return sum(OVERS_BY_ROLE[role] for role in roles)


def check_composition(
    player_ids: list[int],
    captain_id: int,
    vice_captain_id: int,
    squad_pool: dict[int, Role],
) -> list[str]:
    """Return the list of violated composition rules (empty when valid)."""
    violations: list[str] = []

    if len(player_ids) != LINEUP_SIZE:
        violations.append(f"lineup must have exactly {LINEUP_SIZE} players (got {len(player_ids)})")

    duplicates = sorted(pid for pid, count in Counter(player_ids).items() if count > 1)
    if duplicates:
        violations.append(f"duplicate players: {duplicates}")

    outside_pool = sorted({pid for pid in player_ids if pid not in squad_pool})
    if outside_pool:
        violations.append(f"players not in squad pool: {outside_pool}")

    roles = [squad_pool[pid] for pid in set(player_ids) if pid in squad_pool]
    role_counts = Counter(roles)

    if role_counts[Role.KEEPER] < 1:
        violations.append("at least 1 wicketkeeper required")
    if role_counts[Role.BATTER] < 1:
        violations.append("at least 1 batter required")

    overs = bowling_overs(roles)
    if overs < MIN_BOWLING_OVERS:
        violations.append(f"bowling quota of {MIN_BOWLING_OVERS} overs not met (got {overs})")

    if captain_id == vice_captain_id:
        violations.append("captain and vice-captain must be different players")
    if captain_id not in player_ids:
        violations.append(f"captain {captain_id} is not in the lineup")
    if vice_captain_id not in player_ids:
        violations.append(f"vice-captain {vice_captain_id} is not in the lineup")

    return violations


def validate_composition(
    player_ids: list[int],
    captain_id: int,
    vice_captain_id: int,
    squad_pool: dict[int, Role],
) -> None:
    """Raise InvalidComposition listing every violated rule."""
    violations = check_composition(player_ids, captain_id, vice_captain_id, squad_pool)
    if violations:
        raise InvalidComposition(violations)
