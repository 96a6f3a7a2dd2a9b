"""
Exceptions raised by the ns2stat core.

All are local, recoverable conditions reported to the immediate caller.
Non-finite kd/kda/accuracy ratios are deliberately NOT represented here:
they are returned as nan/inf values and filtered by the caller.
"""

from collections.abc import Iterable
from pathlib import Path


class Ns2StatError(Exception):
    """Base class for ns2stat errors."""


class InputTooLargeError(Ns2StatError, ValueError):
    """Roster is larger than the balancer can enumerate."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Roster of {size} players exceeds the balancer limit of {limit} "
            f"(2^{size - 1} candidate splits)"
        )


class UnknownPlayerError(Ns2StatError, LookupError):
    """One or more requested players are not present in the aggregate."""

    def __init__(self, players: Iterable[object]):
        self.players = list(players)
        names = ", ".join(str(p) for p in self.players)
        super().__init__(f"Unknown player(s): {names}")


class RankingUndefinedError(Ns2StatError, ArithmeticError):
    """No dominant eigenvector could be determined for the encounter matrix."""

    def __init__(self, reason: str, iterations: int = 0):
        self.reason = reason
        self.iterations = iterations
        super().__init__(f"Skill ranking undefined: {reason}")


class MatchParseError(Ns2StatError, ValueError):
    """A match file could not be mapped onto a MatchRecord."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"Failed to parse match file `{path}`: {message}")
