"""
PlayingXI v1.0 - Squad Evolution & Scoring Engine

Governs how a fantasy team's Playing XI changes match by match across a
tournament, and turns per-match player performance into fantasy points
and league standings.

Main components:
- timeline: Match ordering and lock state
- lineups: Lineup store, transfer ledger, captaincy quota, propagation
- scoring: Points table, scoring engine, leaderboard
- web: FastAPI JSON API
- tasks: Scheduled job management
"""

__version__ = "1.0.0"
