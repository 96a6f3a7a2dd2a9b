"""
Aggregation Engine

Folds match records into cumulative per-player and per-map statistics:
- Stat: a (total, marines, aliens) triple with an explicit add(side, value)
- PlayerAggregate: games, commander games, wins and raw counters per side
- MapAggregate: games and wins per map
- AggregateSnapshot: the root value, built by compute() and combined by merge()

Attribution: games and wins go to the side the player spent more time on
(marines on an exact tie). Raw counters (kills, deaths, ...) are added for
both recorded sides, so every per-side field holds that side's own numbers
and total is always marines + aliens.

Ratios (kd, kda, accuracy) are derived on read and never stored. A zero
denominator yields nan/inf; filtering is the caller's job.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, fields

from ns2stat.core.constants import Team
from ns2stat.core.errors import UnknownPlayerError
from ns2stat.core.schemas import MatchRecord, SteamId
from ns2stat.core.utils import ratio, timed

logger = logging.getLogger(__name__)


# =============================================================================
# Stat triple
# =============================================================================


@dataclass
class Stat:
    """One counter split by side. total == marines + aliens by construction."""

    total: float = 0
    marines: float = 0
    aliens: float = 0

    def add(self, team: Team, value: float = 1) -> None:
        self.total += value
        if team is Team.MARINES:
            self.marines += value
        else:
            self.aliens += value

    def get(self, team: Team) -> float:
        return self.marines if team is Team.MARINES else self.aliens

    def __add__(self, other: Stat) -> Stat:
        return Stat(
            total=self.total + other.total,
            marines=self.marines + other.marines,
            aliens=self.aliens + other.aliens,
        )

    @staticmethod
    def ratio(numerator: Stat, denominator: Stat) -> Stat:
        """Side-wise division with nan/inf on a zero denominator."""
        return Stat(
            total=ratio(numerator.total, denominator.total),
            marines=ratio(numerator.marines, denominator.marines),
            aliens=ratio(numerator.aliens, denominator.aliens),
        )

    def to_dict(self) -> dict[str, float]:
        return {"total": self.total, "marines": self.marines, "aliens": self.aliens}


# =============================================================================
# Player and map aggregates
# =============================================================================


@dataclass
class PlayerAggregate:
    """Cumulative statistics for one player, keyed by steam id in the snapshot."""

    games: Stat = field(default_factory=Stat)
    commander: Stat = field(default_factory=Stat)
    wins: Stat = field(default_factory=Stat)
    kills: Stat = field(default_factory=Stat)
    assists: Stat = field(default_factory=Stat)
    deaths: Stat = field(default_factory=Stat)
    score: Stat = field(default_factory=Stat)
    hits: Stat = field(default_factory=Stat)
    misses: Stat = field(default_factory=Stat)

    def __add__(self, other: PlayerAggregate) -> PlayerAggregate:
        return PlayerAggregate(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    @property
    def kd(self) -> Stat:
        return Stat.ratio(self.kills, self.deaths)

    @property
    def kda(self) -> Stat:
        return Stat.ratio(self.kills + self.assists, self.deaths)

    @property
    def accuracy(self) -> Stat:
        return Stat.ratio(self.hits, self.hits + self.misses)

    @property
    def win_rate(self) -> Stat:
        return Stat.ratio(self.wins, self.games)

    def counters(self) -> dict[str, Stat]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class MapAggregate:
    """Games and wins on one map."""

    total_games: int = 0
    marine_wins: int = 0
    alien_wins: int = 0

    def __add__(self, other: MapAggregate) -> MapAggregate:
        return MapAggregate(
            total_games=self.total_games + other.total_games,
            marine_wins=self.marine_wins + other.marine_wins,
            alien_wins=self.alien_wins + other.alien_wins,
        )

    @property
    def marine_win_rate(self) -> float:
        return ratio(self.marine_wins, self.total_games)


@dataclass(frozen=True)
class PlayerName:
    """Latest display name seen for a steam id."""

    name: str
    seen_at: int  # round_date of the match it was taken from


# =============================================================================
# Snapshot
# =============================================================================


@dataclass
class AggregateSnapshot:
    """
    Root aggregate over a set of matches.

    Treat as a value: compute() and merge() always return fresh instances
    and never modify their inputs. Holders publish a new snapshot by
    replacing the reference, not by mutating the one readers see.
    """

    latest_game: int = 0
    players: dict[SteamId, PlayerAggregate] = field(default_factory=dict)
    maps: dict[str, MapAggregate] = field(default_factory=dict)
    total_games: int = 0
    marine_wins: int = 0
    alien_wins: int = 0
    names: dict[SteamId, PlayerName] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> AggregateSnapshot:
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.total_games == 0

    @property
    def marine_win_rate(self) -> float:
        return ratio(self.marine_wins, self.total_games)

    def __add__(self, other: AggregateSnapshot) -> AggregateSnapshot:
        return merge(self, other)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def name_of(self, steam_id: SteamId) -> str:
        entry = self.names.get(steam_id)
        return entry.name if entry else str(steam_id)

    def player(self, steam_id: SteamId) -> PlayerAggregate:
        try:
            return self.players[steam_id]
        except KeyError:
            raise UnknownPlayerError([steam_id]) from None

    def resolve(self, identifier: str | int) -> SteamId:
        """
        Resolve a steam id or a current display name to a steam id.

        Names are matched against the latest name of each player. If two
        players currently share a name the one seen most recently wins.
        """
        if isinstance(identifier, int) or str(identifier).isdigit():
            steam_id = int(identifier)
            if steam_id in self.players:
                return steam_id
        candidates = [
            (entry.seen_at, steam_id)
            for steam_id, entry in self.names.items()
            if entry.name == identifier
        ]
        if not candidates:
            raise UnknownPlayerError([identifier])
        return max(candidates)[1]

    def resolve_all(self, identifiers: Iterable[str | int]) -> list[SteamId]:
        """Resolve a roster, reporting every unknown identifier at once."""
        resolved = []
        unknown = []
        for identifier in identifiers:
            try:
                resolved.append(self.resolve(identifier))
            except UnknownPlayerError:
                unknown.append(identifier)
        if unknown:
            raise UnknownPlayerError(unknown)
        return resolved


# =============================================================================
# Fold
# =============================================================================


def find_commander(match: MatchRecord, team: Team) -> SteamId | None:
    """Player with the most commander time on `team`; first by steam id on ties."""
    commander = None
    best = 0.0
    for steam_id, player in match.sorted_players():
        time = player.side(team).commander_time
        if time > best:
            best = time
            commander = steam_id
    return commander


def _fold_match(snapshot: AggregateSnapshot, match: MatchRecord) -> None:
    """Add one match into an accumulator snapshot that nobody else can see yet."""
    info = match.round_info
    winner = info.winning_team.team

    for steam_id, player in match.sorted_players():
        aggregate = snapshot.players.setdefault(steam_id, PlayerAggregate())

        if player.has_played:
            team = player.attributed_team
            aggregate.games.add(team)
            if winner is team:
                aggregate.wins.add(team)

        for team in (Team.MARINES, Team.ALIENS):
            side = player.side(team)
            aggregate.kills.add(team, side.kills)
            aggregate.assists.add(team, side.assists)
            aggregate.deaths.add(team, side.deaths)
            aggregate.score.add(team, side.score)
            aggregate.hits.add(team, side.hits)
            aggregate.misses.add(team, side.misses)

        snapshot.names[steam_id] = _latest_name(
            snapshot.names.get(steam_id), PlayerName(player.player_name, info.round_date)
        )

    for team in (Team.MARINES, Team.ALIENS):
        commander = find_commander(match, team)
        if commander is not None:
            snapshot.players[commander].commander.add(team)

    map_entry = snapshot.maps.setdefault(info.map_name, MapAggregate())
    map_entry.total_games += 1
    if winner is Team.MARINES:
        map_entry.marine_wins += 1
        snapshot.marine_wins += 1
    elif winner is Team.ALIENS:
        map_entry.alien_wins += 1
        snapshot.alien_wins += 1

    snapshot.latest_game = max(snapshot.latest_game, info.round_date)
    snapshot.total_games += 1


@timed
def compute(matches: Iterable[MatchRecord]) -> AggregateSnapshot:
    """
    Fold a sequence of matches into an AggregateSnapshot.

    No filtering happens here; pass `genuine(matches)` for the usual view.
    An empty sequence gives the all-zero snapshot with latest_game == 0.
    """
    snapshot = AggregateSnapshot()
    for match in matches:
        _fold_match(snapshot, match)
    logger.debug(
        f"Aggregated {snapshot.total_games} matches, "
        f"{len(snapshot.players)} players, {len(snapshot.maps)} maps"
    )
    return snapshot


def from_match(match: MatchRecord) -> AggregateSnapshot:
    """Snapshot of a single match, for incremental merging."""
    return compute([match])


def _latest_name(a: PlayerName | None, b: PlayerName | None) -> PlayerName:
    if a is None:
        return b  # type: ignore[return-value]
    if b is None:
        return a
    # order on (seen_at, name) so the result does not depend on argument order
    return max(a, b, key=lambda entry: (entry.seen_at, entry.name))


def merge(a: AggregateSnapshot, b: AggregateSnapshot) -> AggregateSnapshot:
    """
    Field-wise sum of two snapshots.

    Players and maps are merged by key over the union of both key sets; a
    key missing on one side counts as a zero aggregate. Neither input is
    modified. merge(compute(A), compute(B)) == compute(A + B).
    """
    players = {
        steam_id: a.players.get(steam_id, PlayerAggregate())
        + b.players.get(steam_id, PlayerAggregate())
        for steam_id in a.players.keys() | b.players.keys()
    }
    maps = {
        name: a.maps.get(name, MapAggregate()) + b.maps.get(name, MapAggregate())
        for name in a.maps.keys() | b.maps.keys()
    }
    names = {
        steam_id: _latest_name(a.names.get(steam_id), b.names.get(steam_id))
        for steam_id in a.names.keys() | b.names.keys()
    }
    return AggregateSnapshot(
        latest_game=max(a.latest_game, b.latest_game),
        players=players,
        maps=maps,
        total_games=a.total_games + b.total_games,
        marine_wins=a.marine_wins + b.marine_wins,
        alien_wins=a.alien_wins + b.alien_wins,
        names=names,
    )


def merge_all(snapshots: Iterable[AggregateSnapshot]) -> AggregateSnapshot:
    """Merge any number of partial snapshots, e.g. one per worker."""
    result = AggregateSnapshot.empty()
    for snapshot in snapshots:
        result = merge(result, snapshot)
    return result


def continuous_stats(matches: Iterable[MatchRecord]) -> list[tuple[int, AggregateSnapshot]]:
    """
    Running snapshots over matches in date order.

    Returns (round_date, snapshot of every match up to and including that
    one). Each step merges the single-match snapshot into the previous
    result instead of recomputing from scratch.
    """
    ordered = sorted(matches, key=lambda m: m.round_info.round_date)
    history: list[tuple[int, AggregateSnapshot]] = []
    current = AggregateSnapshot.empty()
    for match in ordered:
        current = merge(current, from_match(match))
        history.append((match.round_info.round_date, current))
    return history
