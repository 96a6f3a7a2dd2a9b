"""
Match file loader.

Reads every `*.json` round dump in a directory, in parallel threads, and
maps each onto a MatchRecord. Games are keyed by round_date.
"""

from __future__ import annotations

import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from ns2stat.core.errors import MatchParseError
from ns2stat.core.schemas import MatchRecord

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = max(1, (os.cpu_count() or 4) - 1)


def load_match(path: Path) -> MatchRecord:
    """Parse a single match file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return MatchRecord.from_dict(data)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise MatchParseError(path, f"{type(e).__name__}: {e}") from e


def match_files(directory: Path) -> list[Path]:
    return sorted(p for p in Path(directory).iterdir() if p.is_file() and p.suffix == ".json")


def load_games(directory: Path, workers: int = DEFAULT_WORKERS) -> dict[int, MatchRecord]:
    """
    Load all match files in `directory`.

    Args:
        directory: Folder containing round dumps
        workers: Number of parser threads

    Returns:
        Matches keyed by round_date, in ascending date order

    Raises:
        MatchParseError: a file is not a valid round dump
        OSError: the directory cannot be read
    """
    paths = match_files(directory)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        records = list(executor.map(load_match, paths))

    games: dict[int, MatchRecord] = {}
    for path, record in zip(paths, records):
        if record.round_date in games:
            logger.warning(f"Duplicate round date {record.round_date} in {path.name}, keeping the later file")
        games[record.round_date] = record

    logger.info(f"Loaded {len(games)} games from {directory}")
    return dict(sorted(games.items()))
