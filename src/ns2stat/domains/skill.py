"""
Skill Ranker

Relative skill from who-killed-whom counts, independent of raw K/D totals.

Pipeline:
1. Kill matrix K[attacker][victim] from the kill feed. Kills without a
   player killer, commander kills and self kills are ignored.
2. Players with fewer than `min_encounters` recorded deaths are dropped.
3. Pairwise matrix S[p1][p2] = K[p2][p1] / K[p1][p2], set only when both
   directions are nonzero and the pair met at least `min_pair_encounters`
   times. Everything else, including the diagonal, is zero.
4. Players with more than `encounter_slack` fewer nonzero pairs than the
   best-connected player are dropped.
5. Power iteration for the dominant left eigenvector (v <- vS / |vS|).
   The matrix is shifted by the identity, which keeps the eigenvectors
   but removes the period-2 oscillation of bipartite encounter graphs.
   Failure to converge raises RankingUndefinedError.

Weights are unitless and only comparable within one ranking run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ns2stat.core.constants import (
    DEFAULT_MIN_ENCOUNTERS,
    DEFAULT_MIN_PAIR_ENCOUNTERS,
    ENCOUNTER_SLACK,
    MIN_PLAYERS_PER_SIDE,
    MIN_ROUND_LENGTH,
    POWER_ITERATION_MAX_STEPS,
    POWER_ITERATION_TOLERANCE,
)
from ns2stat.core.errors import RankingUndefinedError
from ns2stat.core.schemas import MatchRecord, SteamId
from ns2stat.domains.filters import genuine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkillRanking:
    """One row of a skill ranking."""

    steam_id: SteamId
    name: str
    weight: float


def kill_matrix(matches: Iterable[MatchRecord]) -> pd.DataFrame:
    """
    Count kills per (attacker, victim) pair.

    Returns:
        Square DataFrame indexed by attacker (rows) and victim (columns)
        over every player that appears in a counted kill, sorted by steam id
    """
    pairs = [
        (kill.killer_steam_id, kill.victim_steam_id)
        for match in matches
        for kill in match.kill_feed
        if kill.killer_steam_id is not None
        and not kill.is_commander_kill
        and kill.killer_steam_id != kill.victim_steam_id
    ]
    if not pairs:
        return pd.DataFrame(dtype=np.int64)

    kills = pd.DataFrame(pairs, columns=["attacker", "victim"])
    players = sorted(set(kills["attacker"]) | set(kills["victim"]))
    matrix = pd.crosstab(kills["attacker"], kills["victim"])
    return matrix.reindex(index=players, columns=players, fill_value=0).astype(np.int64)


def pairwise_scores(
    kills: pd.DataFrame, min_pair_encounters: int = DEFAULT_MIN_PAIR_ENCOUNTERS
) -> pd.DataFrame:
    """
    Pairwise loss ratios from a square kill matrix.

    S[p1][p2] = K[p2][p1] / K[p1][p2] when both counts are nonzero and
    their sum reaches min_pair_encounters, otherwise 0.
    """
    forward = kills.to_numpy(dtype=float)
    backward = forward.T
    has_signal = (forward > 0) & (backward > 0) & (forward + backward >= min_pair_encounters)
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(has_signal, backward / forward, 0.0)
    np.fill_diagonal(scores, 0.0)
    return pd.DataFrame(scores, index=kills.index, columns=kills.columns)


def power_iteration(
    matrix: np.ndarray,
    tolerance: float = POWER_ITERATION_TOLERANCE,
    max_iterations: int = POWER_ITERATION_MAX_STEPS,
    shift: float = 1.0,
) -> tuple[np.ndarray, int]:
    """
    Dominant left eigenvector of `matrix` by power iteration.

    Starts from the normalised all-ones vector and iterates on
    matrix + shift * I until successive vectors differ by less than
    `tolerance` (Euclidean norm).

    Returns:
        (unit eigenvector, iterations used)

    Raises:
        RankingUndefinedError: no convergence within max_iterations, or
            the iterate collapsed to the zero vector
    """
    n = matrix.shape[0]
    shifted = matrix + shift * np.eye(n)
    vector = np.ones(n) / np.sqrt(n)

    for iteration in range(1, max_iterations + 1):
        product = vector @ shifted
        norm = np.linalg.norm(product)
        if norm == 0 or not np.isfinite(norm):
            raise RankingUndefinedError("power iteration collapsed", iterations=iteration)
        product = product / norm
        if np.linalg.norm(product - vector) < tolerance:
            return product, iteration
        vector = product

    raise RankingUndefinedError(
        f"power iteration did not converge within {max_iterations} iterations",
        iterations=max_iterations,
    )


def latest_names(matches: Iterable[MatchRecord]) -> dict[SteamId, str]:
    """Most recent display name for every steam id in `matches`."""
    names: dict[SteamId, tuple[int, str]] = {}
    for match in matches:
        date = match.round_info.round_date
        for steam_id, player in match.player_stats.items():
            if steam_id not in names or date >= names[steam_id][0]:
                names[steam_id] = (date, player.player_name)
    return {steam_id: name for steam_id, (_, name) in names.items()}


def rank(
    matches: Iterable[MatchRecord],
    genuine_only: bool = True,
    min_encounters: int = DEFAULT_MIN_ENCOUNTERS,
    min_pair_encounters: int = DEFAULT_MIN_PAIR_ENCOUNTERS,
    encounter_slack: int = ENCOUNTER_SLACK,
    tolerance: float = POWER_ITERATION_TOLERANCE,
    max_iterations: int = POWER_ITERATION_MAX_STEPS,
    min_round_length: float = MIN_ROUND_LENGTH,
    min_players_per_side: int = MIN_PLAYERS_PER_SIDE,
) -> list[SkillRanking]:
    """
    Rank players by the dominant eigenvector of their pairwise encounter matrix.

    Args:
        matches: Match records to read kill feeds from
        genuine_only: Apply the match filter first; pass False to rank
            over every match including short and bot games
        min_encounters: Minimum recorded deaths for a player to be ranked
        min_pair_encounters: Minimum kills between two players for the
            pair to carry a signal
        encounter_slack: Allowed shortfall in nonzero pairs versus the
            best-connected player
        tolerance: Power iteration convergence threshold
        max_iterations: Power iteration cap
        min_round_length: Match filter length threshold, in seconds
        min_players_per_side: Match filter per-side player threshold

    Returns:
        Rankings sorted by weight, highest first

    Raises:
        RankingUndefinedError: fewer than two players survive the filters,
            no pair carries a signal, or power iteration does not converge
    """
    matches = list(
        genuine(matches, min_round_length, min_players_per_side) if genuine_only else matches
    )
    names = latest_names(matches)

    kills = kill_matrix(matches)
    deaths = kills.sum(axis=0)
    retained = deaths.index[deaths >= min_encounters]
    logger.info(
        f"Ranking over {len(matches)} matches: {len(kills)} players with kills, "
        f"{len(retained)} with at least {min_encounters} deaths"
    )

    scores = pairwise_scores(kills.loc[retained, retained], min_pair_encounters)
    if len(scores) > 0:
        encounters = (scores.to_numpy() != 0).sum(axis=1)
        connected = encounters >= encounters.max() - encounter_slack
        scores = scores.loc[connected, connected]
    logger.info(f"{len(scores)} players remain after the encounter filter")

    if len(scores) < 2:
        raise RankingUndefinedError(f"only {len(scores)} player(s) left to rank")
    if not scores.to_numpy().any():
        raise RankingUndefinedError("no pair reaches the encounter threshold")

    vector, iterations = power_iteration(scores.to_numpy(), tolerance, max_iterations)
    logger.info(f"Power iteration converged after {iterations} iterations")

    rankings = [
        SkillRanking(steam_id=int(sid), name=names.get(int(sid), str(sid)), weight=float(w))
        for sid, w in zip(scores.index, vector)
    ]
    rankings.sort(key=lambda r: (-r.weight, r.steam_id))
    return rankings
