"""
Match Filter

Classifies match records as genuine or excluded:
- Length rule: round_length >= 300 seconds (short rounds are aborts)
- Bot-game rule: strictly more than 2 players with time played on BOTH sides

A match with no players simply fails the bot-game rule. Nothing here raises.
"""

import logging
from collections.abc import Callable, Iterable, Iterator

from ns2stat.core.constants import MIN_PLAYERS_PER_SIDE, MIN_ROUND_LENGTH
from ns2stat.core.schemas import MatchRecord

logger = logging.getLogger(__name__)


def players_per_side(match: MatchRecord) -> tuple[int, int]:
    """Count distinct players with nonzero time played on (marines, aliens)."""
    marines = 0
    aliens = 0
    for player in match.player_stats.values():
        if player.marines.time_played > 0:
            marines += 1
        if player.aliens.time_played > 0:
            aliens += 1
    return marines, aliens


def is_long_enough(match: MatchRecord, min_round_length: float = MIN_ROUND_LENGTH) -> bool:
    return match.round_info.round_length >= min_round_length


def is_bot_game(match: MatchRecord, min_players_per_side: int = MIN_PLAYERS_PER_SIDE) -> bool:
    marines, aliens = players_per_side(match)
    return not (marines > min_players_per_side and aliens > min_players_per_side)


def is_genuine(
    match: MatchRecord,
    min_round_length: float = MIN_ROUND_LENGTH,
    min_players_per_side: int = MIN_PLAYERS_PER_SIDE,
) -> bool:
    """True if the match passes both the length and the bot-game rule."""
    return is_long_enough(match, min_round_length) and not is_bot_game(
        match, min_players_per_side
    )


def filter_by_length(
    matches: Iterable[MatchRecord], predicate: Callable[[float], bool]
) -> Iterator[MatchRecord]:
    """Keep matches whose round length satisfies `predicate`."""
    return (m for m in matches if predicate(m.round_info.round_length))


def filter_bot_games(
    matches: Iterable[MatchRecord], min_players_per_side: int = MIN_PLAYERS_PER_SIDE
) -> Iterator[MatchRecord]:
    """Drop matches that were likely played against bots."""
    return (m for m in matches if not is_bot_game(m, min_players_per_side))


def genuine(
    matches: Iterable[MatchRecord],
    min_round_length: float = MIN_ROUND_LENGTH,
    min_players_per_side: int = MIN_PLAYERS_PER_SIDE,
) -> Iterator[MatchRecord]:
    """
    Lazily yield only the genuine matches.

    Counts of kept and excluded matches are logged once the iterator is
    exhausted.
    """
    kept = 0
    excluded = 0
    for match in matches:
        if is_genuine(match, min_round_length, min_players_per_side):
            kept += 1
            yield match
        else:
            excluded += 1
    logger.debug(f"Match filter kept {kept} matches, excluded {excluded}")
