"""
Game summaries and past lineup lookup.

A GameSummary condenses one match into who played on which side, who
commanded, how long it lasted and who won. Team suggestions use it to look
up how a proposed lineup fared before.

Players are keyed by steam id. Display names are carried for output and
for lookups by name only.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from ns2stat.core.constants import Team, WinningTeam
from ns2stat.core.schemas import MatchRecord, PlayerTeamStats, SteamId
from ns2stat.domains.aggregate import find_commander


@dataclass(frozen=True)
class LineupPlayer:
    """A player's name and counters for the side they were attributed to."""

    name: str
    stats: PlayerTeamStats


@dataclass
class TeamSummary:
    """One side of a game: players by steam id and the commander's steam id."""

    players: dict[SteamId, LineupPlayer] = field(default_factory=dict)
    commander: SteamId | None = None
    commander_name: str | None = None

    def has_player(self, player: str | int) -> bool:
        """Match a steam id, or a display name when given a string."""
        if isinstance(player, int):
            return player in self.players
        return any(p.name == player for p in self.players.values())

    def is_commander(self, player: str | int) -> bool:
        if self.commander is None:
            return False
        if isinstance(player, int):
            return self.commander == player
        return self.commander_name == player

    def to_dict(self) -> dict:
        return {
            "players": {
                str(steam_id): {
                    "name": p.name,
                    "kills": p.stats.kills,
                    "deaths": p.stats.deaths,
                    "assists": p.stats.assists,
                    "score": p.stats.score,
                    "time_played": p.stats.time_played,
                }
                for steam_id, p in self.players.items()
            },
            "commander": self.commander_name,
            "commander_steam_id": self.commander,
        }


@dataclass
class GameSummary:
    """Condensed view of one match."""

    round_date: int
    map_name: str
    round_length: float
    winning_team: WinningTeam
    marines: TeamSummary
    aliens: TeamSummary

    def team(self, team: Team) -> TeamSummary:
        return self.marines if team is Team.MARINES else self.aliens

    @property
    def player_count(self) -> int:
        return len(self.marines.players) + len(self.aliens.players)

    def has_player(self, player: str | int) -> bool:
        return self.marines.has_player(player) or self.aliens.has_player(player)

    def to_dict(self) -> dict:
        return {
            "round_date": self.round_date,
            "map_name": self.map_name,
            "round_length": self.round_length,
            "winning_team": self.winning_team.name.lower(),
            "marines": self.marines.to_dict(),
            "aliens": self.aliens.to_dict(),
        }


def summarize_game(match: MatchRecord) -> GameSummary:
    """Split the roster by attributed side and find both commanders."""
    teams = {Team.MARINES: TeamSummary(), Team.ALIENS: TeamSummary()}
    for steam_id, player in match.sorted_players():
        if not player.has_played:
            continue
        team = player.attributed_team
        teams[team].players[steam_id] = LineupPlayer(player.player_name, player.side(team))

    for team, summary in teams.items():
        commander = find_commander(match, team)
        if commander is not None:
            summary.commander = commander
            summary.commander_name = match.player_stats[commander].player_name

    info = match.round_info
    return GameSummary(
        round_date=info.round_date,
        map_name=info.map_name,
        round_length=info.round_length,
        winning_team=info.winning_team,
        marines=teams[Team.MARINES],
        aliens=teams[Team.ALIENS],
    )


def _commanded_by(team: TeamSummary, commander: str | int | None) -> bool:
    if commander is None:
        return team.commander is None
    return team.is_commander(commander)


def find_past_games(
    summaries: Iterable[GameSummary],
    players: Iterable[str | int],
    marine_commander: str | int | None = None,
    alien_commander: str | int | None = None,
) -> list[GameSummary]:
    """
    Past games played by exactly `players` with the given commanders.

    Players and commanders are steam ids or display names. Results are
    sorted by round length, longest first.
    """
    roster = list(players)
    matching = [
        game
        for game in summaries
        if game.player_count == len(roster)
        and _commanded_by(game.marines, marine_commander)
        and _commanded_by(game.aliens, alien_commander)
        and all(game.has_player(p) for p in roster)
    ]
    matching.sort(key=lambda game: game.round_length, reverse=True)
    return matching


def select_range(
    games: Mapping[int, MatchRecord], start: int | None = None, end: int | None = None
) -> list[MatchRecord]:
    """Matches with start <= round_date <= end, in date order. Bounds are optional."""
    return [
        games[date]
        for date in sorted(games)
        if (start is None or date >= start) and (end is None or date <= end)
    ]
