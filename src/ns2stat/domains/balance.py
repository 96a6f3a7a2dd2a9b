"""
Team Balancer

Suggests teams by solving the balanced partitioning problem exhaustively.
Each of the n players is one bit of a mask: 0 puts the player in group A
(marines), 1 in group B (aliens). Candidates are ranked by

    |sum(score_a over group A) - sum(score_b over group B)|

and only splits whose sizes differ by at most one are returned.

Scoring modes:
- symmetric: one scalar per player, score_a == score_b. Groups are
  unordered, so the last player's bit is fixed to 0 and only 2^(n-1)
  masks are enumerated; a mask and its complement never both appear.
- side-aware: the score function returns a (marines, aliens) pair and
  group A is scored with the marine component, group B with the alien
  component. Orientation matters here, so all 2^n masks are enumerated.

The search is O(2^n). Rosters above MAX_ROSTER_SIZE are rejected with
InputTooLargeError before any enumeration starts.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Hashable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

import numpy as np

from ns2stat.core.constants import DEFAULT_MAX_SUGGESTIONS, MAX_ROSTER_SIZE, BalanceScoring
from ns2stat.core.errors import InputTooLargeError
from ns2stat.core.schemas import SteamId
from ns2stat.domains.aggregate import AggregateSnapshot, PlayerAggregate, Stat

logger = logging.getLogger(__name__)

# Masks scored per worker task when the search is split across threads
MIN_CHUNK_SIZE = 1 << 12


@dataclass(frozen=True)
class TeamAssignment:
    """A candidate split of the roster into two disjoint, exhaustive groups."""

    group_a: tuple[Hashable, ...]
    group_b: tuple[Hashable, ...]
    imbalance: float
    mask: int

    @property
    def marines(self) -> tuple[Hashable, ...]:
        return self.group_a

    @property
    def aliens(self) -> tuple[Hashable, ...]:
        return self.group_b

    def swapped(self) -> TeamAssignment:
        return TeamAssignment(
            group_a=self.group_b, group_b=self.group_a, imbalance=self.imbalance, mask=self.mask
        )


def split_imbalance(
    group_a: Sequence[Hashable],
    group_b: Sequence[Hashable],
    score_fn: Callable[[Any], float],
) -> float:
    """Symmetric imbalance of an explicit split."""
    return abs(sum(score_fn(p) for p in group_a) - sum(score_fn(p) for p in group_b))


def _side_scores(value: Any) -> tuple[float, float]:
    """Accept a Stat-like object (marines/aliens attributes) or a 2-tuple."""
    if hasattr(value, "marines") and hasattr(value, "aliens"):
        return float(value.marines), float(value.aliens)
    marines, aliens = value
    return float(marines), float(aliens)


def _score_vectors(
    players: Sequence[Hashable], score_fn: Callable[[Any], Any], scoring: BalanceScoring
) -> tuple[np.ndarray, np.ndarray]:
    scores_a = np.empty(len(players))
    scores_b = np.empty(len(players))
    for i, player in enumerate(players):
        if scoring is BalanceScoring.SIDE_AWARE:
            scores_a[i], scores_b[i] = _side_scores(score_fn(player))
        else:
            scores_a[i] = scores_b[i] = float(score_fn(player))
    if not (np.all(np.isfinite(scores_a)) and np.all(np.isfinite(scores_b))):
        bad = [
            p
            for p, a, b in zip(players, scores_a, scores_b)
            if not (math.isfinite(a) and math.isfinite(b))
        ]
        raise ValueError(f"Scores must be finite, got non-finite scores for: {bad}")
    return scores_a, scores_b


def _rank_chunk(
    start: int,
    stop: int,
    scores_a: np.ndarray,
    scores_b: np.ndarray,
    limit: int,
) -> tuple[np.ndarray, np.ndarray]:
    """Score masks in [start, stop) and return the best `limit` (masks, imbalances)."""
    n = len(scores_a)
    masks = np.arange(start, stop, dtype=np.int64)
    signed = np.zeros(len(masks))
    ones = np.zeros(len(masks), dtype=np.int64)
    for i in range(n):
        bit = (masks >> i) & 1
        signed += np.where(bit == 1, -scores_b[i], scores_a[i])
        ones += bit

    # group sizes may differ by at most one
    keep = np.abs(n - 2 * ones) <= 1
    masks = masks[keep]
    imbalance = np.abs(signed[keep])

    # primary key imbalance, ties broken by mask value
    order = np.lexsort((masks, imbalance))[:limit]
    return masks[order], imbalance[order]


def _chunks(total: int, workers: int) -> list[tuple[int, int]]:
    size = max(MIN_CHUNK_SIZE, -(-total // workers))
    return [(start, min(start + size, total)) for start in range(0, total, size)]


def balance(
    players: Sequence[Hashable],
    score_fn: Callable[[Any], Any],
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
    scoring: BalanceScoring | str = BalanceScoring.SYMMETRIC,
    max_roster_size: int = MAX_ROSTER_SIZE,
    workers: int = 1,
) -> Iterator[TeamAssignment]:
    """
    Rank two-team splits of `players` from most to least balanced.

    Args:
        players: Roster, in the order used for the mask bits
        score_fn: Player -> float (symmetric) or -> (marines, aliens) pair
        max_suggestions: Maximum number of assignments to produce
        scoring: "symmetric" or "side-aware"
        max_roster_size: Largest roster accepted
        workers: Split the mask range across this many threads

    Returns:
        Lazy iterator of TeamAssignment in ascending imbalance order

    Raises:
        InputTooLargeError: roster larger than max_roster_size
        ValueError: duplicate players, non-finite scores, bad arguments
    """
    scoring = BalanceScoring(scoring)
    players = list(players)
    n = len(players)

    if n > max_roster_size:
        raise InputTooLargeError(n, max_roster_size)
    if len(set(players)) != n:
        raise ValueError("Roster contains duplicate players")
    if max_suggestions < 0:
        raise ValueError("max_suggestions must be non-negative")
    if workers < 1:
        raise ValueError("workers must be at least 1")

    scores_a, scores_b = _score_vectors(players, score_fn, scoring)

    if n == 0 or max_suggestions == 0:
        return iter(())

    # Symmetric scoring: the last player's bit stays 0 (group A)
    free_bits = n - 1 if scoring is BalanceScoring.SYMMETRIC else n
    total = 1 << free_bits
    logger.debug(f"Balancing {n} players ({scoring}), {total} candidate masks")

    chunks = _chunks(total, workers)
    if len(chunks) == 1:
        masks, imbalance = _rank_chunk(0, total, scores_a, scores_b, max_suggestions)
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(
                executor.map(
                    lambda bounds: _rank_chunk(*bounds, scores_a, scores_b, max_suggestions),
                    chunks,
                )
            )
        masks = np.concatenate([r[0] for r in results])
        imbalance = np.concatenate([r[1] for r in results])
        order = np.lexsort((masks, imbalance))[:max_suggestions]
        masks, imbalance = masks[order], imbalance[order]

    return _assignments(players, masks, imbalance)


def _assignments(
    players: list[Hashable], masks: np.ndarray, imbalance: np.ndarray
) -> Iterator[TeamAssignment]:
    for mask, score in zip(masks.tolist(), imbalance.tolist()):
        group_a = tuple(p for i, p in enumerate(players) if not (mask >> i) & 1)
        group_b = tuple(p for i, p in enumerate(players) if (mask >> i) & 1)
        yield TeamAssignment(group_a=group_a, group_b=group_b, imbalance=score, mask=mask)


# =============================================================================
# Suggestions from an aggregate snapshot
# =============================================================================

SCORE_METRICS = ("kd", "kda", "win_rate", "score_per_game")


def player_metric(player: PlayerAggregate, metric: str) -> Stat:
    """Per-side scalar used to score a player for balancing."""
    if metric == "kd":
        return player.kd
    if metric == "kda":
        return player.kda
    if metric == "win_rate":
        return player.win_rate
    if metric == "score_per_game":
        return Stat.ratio(player.score, player.games)
    raise ValueError(f"Unknown metric {metric!r}, expected one of {SCORE_METRICS}")


def _finite_or_mean(values: dict[SteamId, float]) -> tuple[dict[SteamId, float], list[SteamId]]:
    """Replace non-finite values by the mean of the finite ones, 0.0 if none are."""
    finite = [v for v in values.values() if math.isfinite(v)]
    fallback = sum(finite) / len(finite) if finite else 0.0
    replaced = [sid for sid, v in values.items() if not math.isfinite(v)]
    return {sid: v if math.isfinite(v) else fallback for sid, v in values.items()}, replaced


def suggest_teams(
    snapshot: AggregateSnapshot,
    roster: Sequence[str | int],
    metric: str = "kd",
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
    scoring: BalanceScoring | str = BalanceScoring.SYMMETRIC,
    max_roster_size: int = MAX_ROSTER_SIZE,
    workers: int = 1,
) -> list[TeamAssignment]:
    """
    Balanced splits of `roster` scored from a snapshot.

    Roster entries may be steam ids or current display names; every entry
    is resolved before enumeration and all unknown ones are reported in a
    single UnknownPlayerError. Groups in the result hold steam ids.

    A metric value that is not finite (kd of a player without deaths,
    win rate of a player without games on a side) is replaced by the mean
    of the finite values of that component across the roster, or 0.0 when
    none is finite.
    """
    if len(roster) > max_roster_size:
        raise InputTooLargeError(len(roster), max_roster_size)
    steam_ids = snapshot.resolve_all(roster)
    scoring = BalanceScoring(scoring)

    stats = {sid: player_metric(snapshot.players[sid], metric) for sid in steam_ids}
    if scoring is BalanceScoring.SIDE_AWARE:
        marines, replaced_m = _finite_or_mean({sid: s.marines for sid, s in stats.items()})
        aliens, replaced_a = _finite_or_mean({sid: s.aliens for sid, s in stats.items()})
        scores = {sid: (marines[sid], aliens[sid]) for sid in steam_ids}
        replaced = sorted(set(replaced_m) | set(replaced_a))
    else:
        scores, replaced = _finite_or_mean({sid: s.total for sid, s in stats.items()})
    if replaced:
        logger.info(
            f"No finite {metric} for {[snapshot.name_of(sid) for sid in replaced]}, "
            f"using the roster mean"
        )

    return list(
        balance(
            steam_ids,
            scores.__getitem__,
            max_suggestions=max_suggestions,
            scoring=scoring,
            max_roster_size=max_roster_size,
            workers=workers,
        )
    )
