"""
Published snapshot store and data directory watcher.

SnapshotStore holds one immutable StoreState (games + aggregate snapshot).
Readers take `store.state` and work on that object; writers build a new
StoreState and swap the reference. Writers serialize on a lock, readers
never take it.

StoreWatcher reloads the store when the data directory changes, with the
same debounce-and-coalesce approach as a replay folder watcher: bursts of
file events collapse into a single reload.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ns2stat.core.constants import MIN_PLAYERS_PER_SIDE, MIN_ROUND_LENGTH
from ns2stat.core.schemas import MatchRecord
from ns2stat.core.utils import PerformanceMonitor
from ns2stat.domains.aggregate import AggregateSnapshot, compute, from_match, merge
from ns2stat.domains.filters import genuine, is_genuine
from ns2stat.infra.loader import load_games

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreState:
    """A consistent (games, stats) pair. Never mutated after publication."""

    games: Mapping[int, MatchRecord] = field(default_factory=lambda: MappingProxyType({}))
    stats: AggregateSnapshot = field(default_factory=AggregateSnapshot.empty)
    loaded_at: float = 0.0


class SnapshotStore:
    """
    Holds the current StoreState for concurrent readers.

    Usage:
        store = SnapshotStore(Path("data"))
        store.reload()
        stats = store.state.stats
    """

    def __init__(
        self,
        data_dir: Path | None = None,
        min_round_length: float = MIN_ROUND_LENGTH,
        min_players_per_side: int = MIN_PLAYERS_PER_SIDE,
        loader: Callable[[Path], dict[int, MatchRecord]] = load_games,
    ):
        self.data_dir = data_dir
        self.min_round_length = min_round_length
        self.min_players_per_side = min_players_per_side
        self._loader = loader
        self._write_lock = threading.Lock()
        self._state = StoreState()

    @property
    def state(self) -> StoreState:
        return self._state

    def _is_genuine(self, match: MatchRecord) -> bool:
        return is_genuine(match, self.min_round_length, self.min_players_per_side)

    def publish(self, games: Mapping[int, MatchRecord]) -> StoreState:
        """Recompute stats for `games` and swap them in."""
        ordered = dict(sorted(games.items()))
        with self._write_lock:
            stats = compute(
                genuine(ordered.values(), self.min_round_length, self.min_players_per_side)
            )
            self._state = StoreState(
                games=MappingProxyType(ordered), stats=stats, loaded_at=time.time()
            )
            return self._state

    def reload(self) -> StoreState:
        """Reload every match file from data_dir and publish the result."""
        if self.data_dir is None:
            raise ValueError("SnapshotStore has no data directory to reload from")
        with PerformanceMonitor(f"Reloading games from {self.data_dir}"):
            games = self._loader(self.data_dir)
            state = self.publish(games)
        logger.info(f"Published {len(state.games)} games, {state.stats.total_games} genuine")
        return state

    def add_game(self, match: MatchRecord) -> StoreState:
        """
        Add one newly arrived match without recomputing from scratch.

        The match's single-game snapshot is merged into the current one.
        A match with an existing round_date triggers a full recompute instead,
        since its previous contribution cannot be subtracted.
        """
        with self._write_lock:
            current = self._state
            games = dict(current.games)
            replaced = match.round_date in games
            games[match.round_date] = match
            games = dict(sorted(games.items()))

            if replaced:
                stats = compute(
                    genuine(games.values(), self.min_round_length, self.min_players_per_side)
                )
            elif self._is_genuine(match):
                stats = merge(current.stats, from_match(match))
            else:
                stats = current.stats

            self._state = StoreState(
                games=MappingProxyType(games), stats=stats, loaded_at=time.time()
            )
            return self._state


class DataDirHandler(FileSystemEventHandler):
    """Coalesces JSON file events into one debounced callback."""

    def __init__(self, callback: Callable[[], None], debounce_seconds: float = 2.0):
        super().__init__()
        self.callback = callback
        self.debounce_seconds = debounce_seconds
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def _is_match_file(self, path: str) -> bool:
        return str(path).lower().endswith(".json")

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or not self._is_match_file(event.src_path):
            return
        logger.debug(f"Data directory event ({event.event_type}): {event.src_path}")
        self.schedule()

    def schedule(self) -> None:
        """(Re)start the debounce timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        try:
            self.callback()
        except Exception as e:
            # keep serving the previous snapshot; the next event retries
            logger.error(f"Reload failed: {e}")

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class StoreWatcher:
    """
    Reloads a SnapshotStore whenever its data directory changes.

    Example usage:
        watcher = StoreWatcher(store)
        watcher.start()
        # Keep serving...
        watcher.stop()
    """

    def __init__(self, store: SnapshotStore, debounce_seconds: float = 2.0, recursive: bool = False):
        if store.data_dir is None:
            raise ValueError("StoreWatcher needs a store with a data directory")
        self.store = store
        self.recursive = recursive
        self.handler = DataDirHandler(store.reload, debounce_seconds)
        self._observer = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self) -> None:
        if self.is_running:
            logger.warning("Watcher is already running")
            return
        self._observer = Observer()
        self._observer.schedule(self.handler, str(self.store.data_dir), recursive=self.recursive)
        self._observer.start()
        logger.info(f"Watching {self.store.data_dir} for new games")

    def stop(self) -> None:
        self.handler.cancel()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
            logger.info("Stopped watching for new games")
