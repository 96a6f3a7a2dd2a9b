"""
Export Functionality for ns2stat

JSON-ready renderings of aggregate snapshots, rankings and team
suggestions. Non-finite ratios (players without deaths, maps without
games) become null, since JSON has no nan/inf.
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ns2stat.core.utils import is_finite
from ns2stat.domains.aggregate import AggregateSnapshot, PlayerAggregate, Stat
from ns2stat.domains.balance import TeamAssignment
from ns2stat.domains.skill import SkillRanking

logger = logging.getLogger(__name__)


def _finite_or_none(value: float) -> float | None:
    return float(value) if is_finite(value) else None


def stat_to_dict(stat: Stat) -> dict[str, float | None]:
    return {key: _finite_or_none(value) for key, value in stat.to_dict().items()}


def player_to_dict(player: PlayerAggregate) -> dict[str, Any]:
    """Counters plus derived per-side ratios."""
    result: dict[str, Any] = {name: stat.to_dict() for name, stat in player.counters().items()}
    result["kd"] = stat_to_dict(player.kd)
    result["kda"] = stat_to_dict(player.kda)
    result["accuracy"] = stat_to_dict(player.accuracy)
    return result


def snapshot_to_dict(snapshot: AggregateSnapshot) -> dict[str, Any]:
    """Render a snapshot; players are keyed by steam id (as a string) and carry their name."""
    players = {}
    for steam_id in sorted(snapshot.players):
        entry = player_to_dict(snapshot.players[steam_id])
        entry["name"] = snapshot.name_of(steam_id)
        players[str(steam_id)] = entry

    maps = {
        name: {
            "total_games": m.total_games,
            "marine_wins": m.marine_wins,
            "alien_wins": m.alien_wins,
        }
        for name, m in sorted(snapshot.maps.items())
    }

    return {
        "latest_game": snapshot.latest_game,
        "total_games": snapshot.total_games,
        "marine_wins": snapshot.marine_wins,
        "alien_wins": snapshot.alien_wins,
        "players": players,
        "maps": maps,
    }


def continuous_to_dict(history: Iterable[tuple[int, AggregateSnapshot]]) -> dict[str, Any]:
    return {str(date): snapshot_to_dict(snapshot) for date, snapshot in history}


def ranking_to_list(rankings: Iterable[SkillRanking]) -> list[dict[str, Any]]:
    return [
        {"steam_id": r.steam_id, "name": r.name, "weight": r.weight} for r in rankings
    ]


def assignment_to_dict(assignment: TeamAssignment, names: dict | None = None) -> dict[str, Any]:
    names = names or {}
    return {
        "marines": [names.get(p, p) for p in assignment.group_a],
        "aliens": [names.get(p, p) for p in assignment.group_b],
        "imbalance": assignment.imbalance,
    }


def write_json(data: Any, path: Path, indent: int = 2) -> None:
    """Write JSON data to a file."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent)
    logger.info(f"Wrote {path}")
