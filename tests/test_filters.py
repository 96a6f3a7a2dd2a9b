"""
Tests for the Match Filter

Tests the genuine match classification:
- Round length rule
- Bot game rule (players with time on both sides)
- Generator helpers and their composition
"""

import types

from ns2stat.core.schemas import MatchRecord, PlayerStat, PlayerTeamStats, RoundInfo
from ns2stat.domains.filters import (
    filter_bot_games,
    filter_by_length,
    genuine,
    is_bot_game,
    is_genuine,
    is_long_enough,
    players_per_side,
)


def _make_match(
    round_length: float = 600.0,
    marines: int = 3,
    aliens: int = 3,
    round_date: int = 1_600_000_000,
) -> MatchRecord:
    players = {}
    for i in range(marines):
        players[1000 + i] = PlayerStat(
            player_name=f"marine{i}", marines=PlayerTeamStats(time_played=400.0)
        )
    for i in range(aliens):
        players[2000 + i] = PlayerStat(
            player_name=f"alien{i}", aliens=PlayerTeamStats(time_played=400.0)
        )
    return MatchRecord(
        round_info=RoundInfo(round_date=round_date, round_length=round_length, map_name="ns2_veil"),
        player_stats=players,
    )


class TestLengthRule:
    """Tests for the round length rule."""

    def test_long_round_is_kept(self):
        assert is_long_enough(_make_match(round_length=600.0))

    def test_threshold_is_inclusive(self):
        """A round of exactly 300 seconds counts."""
        assert is_long_enough(_make_match(round_length=300.0))
        assert not is_long_enough(_make_match(round_length=299.9))

    def test_short_round_is_not_genuine(self):
        assert not is_genuine(_make_match(round_length=120.0))


class TestBotGameRule:
    """Tests for the bot game rule."""

    def test_three_per_side_is_genuine(self):
        assert is_genuine(_make_match(marines=3, aliens=3))

    def test_two_players_on_one_side_is_excluded(self):
        """Strictly more than two players are required on both sides."""
        assert is_bot_game(_make_match(marines=2, aliens=5))
        assert is_bot_game(_make_match(marines=5, aliens=2))
        assert not is_genuine(_make_match(marines=2, aliens=5))

    def test_empty_match_is_excluded_without_error(self):
        match = _make_match(marines=0, aliens=0)
        assert players_per_side(match) == (0, 0)
        assert not is_genuine(match)

    def test_players_without_time_are_not_counted(self):
        match = _make_match(marines=3, aliens=3)
        match.player_stats[3000] = PlayerStat(player_name="spectator")
        assert players_per_side(match) == (3, 3)

    def test_player_with_time_on_both_sides_counts_twice(self):
        """A player who switched sides counts on each side they played."""
        players = {
            i: PlayerStat(
                player_name=f"p{i}",
                marines=PlayerTeamStats(time_played=200.0),
                aliens=PlayerTeamStats(time_played=200.0),
            )
            for i in range(3)
        }
        match = MatchRecord(
            round_info=RoundInfo(round_date=1, round_length=600.0, map_name="ns2_veil"),
            player_stats=players,
        )
        assert players_per_side(match) == (3, 3)
        assert is_genuine(match)

    def test_custom_thresholds(self):
        match = _make_match(round_length=200.0, marines=2, aliens=2)
        assert not is_genuine(match)
        assert is_genuine(match, min_round_length=100.0, min_players_per_side=1)


class TestGeneratorHelpers:
    """Tests for filter_by_length, filter_bot_games and genuine."""

    def _matches(self) -> list[MatchRecord]:
        return [
            _make_match(round_length=600.0, round_date=1),
            _make_match(round_length=100.0, round_date=2),
            _make_match(marines=1, aliens=4, round_date=3),
            _make_match(round_length=1200.0, round_date=4),
        ]

    def test_filter_by_length(self):
        kept = list(filter_by_length(self._matches(), lambda length: length > 500))
        assert [m.round_date for m in kept] == [1, 3, 4]

    def test_filter_bot_games(self):
        kept = list(filter_bot_games(self._matches()))
        assert [m.round_date for m in kept] == [1, 2, 4]

    def test_genuine_is_the_composition(self):
        kept = list(genuine(self._matches()))
        assert [m.round_date for m in kept] == [1, 4]

    def test_genuine_is_lazy(self):
        assert isinstance(genuine(self._matches()), types.GeneratorType)

    def test_filter_is_idempotent(self):
        """Filtering an already genuine set changes nothing."""
        once = list(genuine(self._matches()))
        twice = list(genuine(once))
        assert twice == once
