"""
ns2stat Core - Foundation modules shared by every analysis.

This module contains:
- constants: Sides, player classes and numeric defaults
- schemas: Match record data contracts
- errors: Exception taxonomy
- config: Application configuration management
- utils: Ratio helper and timing utilities
"""

from ns2stat.core.constants import (
    MAX_ROSTER_SIZE,
    MIN_PLAYERS_PER_SIDE,
    MIN_ROUND_LENGTH,
    BalanceScoring,
    PlayerClass,
    Team,
    WinningTeam,
)
from ns2stat.core.errors import (
    InputTooLargeError,
    MatchParseError,
    Ns2StatError,
    RankingUndefinedError,
    UnknownPlayerError,
)
from ns2stat.core.schemas import (
    KillEvent,
    MatchRecord,
    PlayerStat,
    PlayerTeamStats,
    RoundInfo,
    SteamId,
)

__all__ = [
    # Enums
    "BalanceScoring",
    "PlayerClass",
    "Team",
    "WinningTeam",
    # Constants
    "MAX_ROSTER_SIZE",
    "MIN_PLAYERS_PER_SIDE",
    "MIN_ROUND_LENGTH",
    # Errors
    "InputTooLargeError",
    "MatchParseError",
    "Ns2StatError",
    "RankingUndefinedError",
    "UnknownPlayerError",
    # Schemas (data contracts)
    "KillEvent",
    "MatchRecord",
    "PlayerStat",
    "PlayerTeamStats",
    "RoundInfo",
    "SteamId",
]
