"""Tests for the snapshot store and the data directory watcher."""

import threading
import time
from unittest.mock import Mock

import pytest

from ns2stat.core.constants import WinningTeam
from ns2stat.core.schemas import MatchRecord, PlayerStat, PlayerTeamStats, RoundInfo
from ns2stat.domains.aggregate import compute
from ns2stat.domains.filters import genuine
from ns2stat.infra.store import DataDirHandler, SnapshotStore, StoreState, StoreWatcher


def _make_match(
    round_date: int,
    round_length: float = 600.0,
    kills: int = 1,
    winner: WinningTeam = WinningTeam.MARINES,
) -> MatchRecord:
    players = {}
    for i in range(3):
        players[10 + i] = PlayerStat(
            player_name=f"m{i}",
            marines=PlayerTeamStats(time_played=500.0, kills=kills, deaths=1),
        )
        players[20 + i] = PlayerStat(
            player_name=f"a{i}",
            aliens=PlayerTeamStats(time_played=500.0, kills=1, deaths=kills),
        )
    return MatchRecord(
        round_info=RoundInfo(
            round_date=round_date,
            round_length=round_length,
            map_name="ns2_descent",
            winning_team=winner,
        ),
        player_stats=players,
    )


def _store(games: dict[int, MatchRecord] | None = None) -> SnapshotStore:
    games = games or {}
    return SnapshotStore(data_dir=None, loader=lambda _: dict(games))


class TestSnapshotStore:
    """Tests for SnapshotStore."""

    def test_starts_empty(self):
        state = _store().state
        assert isinstance(state, StoreState)
        assert len(state.games) == 0
        assert state.stats.is_empty

    def test_publish_filters_and_computes(self):
        games = {1: _make_match(1), 2: _make_match(2, round_length=60.0), 3: _make_match(3)}
        state = _store().publish(games)

        assert list(state.games) == [1, 2, 3]
        assert state.stats.total_games == 2
        assert state.stats == compute(genuine(games.values()))

    def test_reload_uses_loader(self, tmp_path):
        loader = Mock(return_value={5: _make_match(5)})
        store = SnapshotStore(data_dir=tmp_path, loader=loader)

        state = store.reload()
        loader.assert_called_once_with(tmp_path)
        assert state.stats.latest_game == 5

    def test_reload_without_data_dir(self):
        with pytest.raises(ValueError, match="data directory"):
            _store().reload()

    def test_add_game_equals_recompute(self):
        store = _store()
        matches = [_make_match(d, kills=d) for d in (3, 1, 2)]
        for match in matches:
            store.add_game(match)

        state = store.state
        assert list(state.games) == [1, 2, 3]
        assert state.stats == compute(sorted(matches, key=lambda m: m.round_date))

    def test_add_short_game_keeps_stats(self):
        store = _store()
        store.add_game(_make_match(1))
        before = store.state.stats

        state = store.add_game(_make_match(2, round_length=30.0))
        assert 2 in state.games
        assert state.stats is before

    def test_add_game_replacing_date_recomputes(self):
        store = _store()
        store.add_game(_make_match(1, kills=5))
        store.add_game(_make_match(1, kills=2))

        stats = store.state.stats
        assert stats.total_games == 1
        assert stats.players[10].kills.total == 2

    def test_readers_keep_their_state(self):
        store = _store()
        store.add_game(_make_match(1))
        seen = store.state

        store.add_game(_make_match(2))
        assert seen.stats.total_games == 1
        assert len(seen.games) == 1
        assert store.state.stats.total_games == 2

    def test_published_games_are_read_only(self):
        store = _store()
        store.add_game(_make_match(1))
        with pytest.raises(TypeError):
            store.state.games[2] = _make_match(2)

    def test_concurrent_writers(self):
        store = _store()
        threads = [
            threading.Thread(target=store.add_game, args=(_make_match(d),)) for d in range(1, 21)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store.state.games) == 20
        assert store.state.stats.total_games == 20


class TestDataDirHandler:
    """Tests for the debounced file event handler."""

    def _event(self, path: str, is_directory: bool = False):
        return Mock(src_path=path, is_directory=is_directory, event_type="modified")

    def test_burst_triggers_one_callback(self):
        callback = Mock()
        handler = DataDirHandler(callback, debounce_seconds=0.05)
        for _ in range(5):
            handler.on_any_event(self._event("/data/round.json"))

        time.sleep(0.5)
        callback.assert_called_once()

    def test_ignores_other_files(self):
        callback = Mock()
        handler = DataDirHandler(callback, debounce_seconds=0.01)
        handler.on_any_event(self._event("/data/notes.txt"))
        handler.on_any_event(self._event("/data/sub.json", is_directory=True))

        time.sleep(0.1)
        callback.assert_not_called()

    def test_failed_reload_is_logged(self):
        callback = Mock(side_effect=RuntimeError("disk gone"))
        handler = DataDirHandler(callback)
        handler._fire()
        callback.assert_called_once()

    def test_cancel(self):
        callback = Mock()
        handler = DataDirHandler(callback, debounce_seconds=0.05)
        handler.schedule()
        handler.cancel()

        time.sleep(0.2)
        callback.assert_not_called()


class TestStoreWatcher:
    """Tests for StoreWatcher."""

    def test_requires_data_dir(self):
        with pytest.raises(ValueError):
            StoreWatcher(_store())

    def test_start_and_stop(self, tmp_path):
        watcher = StoreWatcher(SnapshotStore(data_dir=tmp_path), debounce_seconds=0.05)
        watcher.start()
        try:
            assert watcher.is_running
        finally:
            watcher.stop()
        assert not watcher.is_running
