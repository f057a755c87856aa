"""
Fantasy points weight table.

Every event a player can be credited with maps to a fixed number of
points. Milestone bonuses are tiered: only the highest tier reached
applies, so a century earns the 100-run bonus and not the 50-run one too.

Rate bands (strike rate, economy) only apply once a player has faced or
bowled enough deliveries for the rate to mean something.

Multipliers:
  - Captain: base points x 2
  - Vice-captain: floor(base points x 1.5)
"""

SCORING_WEIGHTS = {
    # --- Batting ---
    "run": 1,
    "four_bonus": 1,
    "six_bonus": 2,

    # --- Bowling ---
    "wicket": 25,
    "maiden": 10,

    # --- Fielding ---
    "catch": 10,
    "stumping": 10,
    "run_out": 10,
}

# Tiered milestone bonuses as (threshold, bonus), highest first
RUN_MILESTONES: tuple[tuple[int, int], ...] = (
    (100, 100),
    (50, 50),
)
WICKET_MILESTONES: tuple[tuple[int, int], ...] = (
    (5, 100),
    (3, 50),
)

# Strike rate bands, applied when at least MIN_BALLS_FOR_STRIKE_RATE faced
MIN_BALLS_FOR_STRIKE_RATE = 10
STRIKE_RATE_BONUS_AT = 150.0
STRIKE_RATE_BONUS = 20
STRIKE_RATE_PENALTY_BELOW = 70.0
STRIKE_RATE_PENALTY = -10

# Economy bands, applied when at least MIN_BALLS_FOR_ECONOMY bowled (2 overs)
MIN_BALLS_FOR_ECONOMY = 12
ECONOMY_BONUS_BELOW = 4.0
ECONOMY_BONUS = 30
ECONOMY_PENALTY_AT = 10.0
ECONOMY_PENALTY = -10

CAPTAIN_MULTIPLIER = 2
# Vice-captain multiplier expressed as a fraction to keep integer arithmetic
VICE_CAPTAIN_MULTIPLIER = (3, 2)
