"""
ns2stat Data Contracts

Match records as produced by the NS2 server's round-end stats dump.
EVERY structure that crosses a module boundary is defined here; the
aggregation engine, balancer and ranker consume these read-only.

Producers: infra/loader.py (MatchRecord.from_dict)
Consumers: domains/filters.py, domains/aggregate.py, domains/skill.py,
domains/summary.py
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ns2stat.core.constants import PlayerClass, Team, WinningTeam

SteamId = int


# ============================================================
# PER-SIDE PLAYER COUNTERS
# ============================================================


@dataclass(frozen=True)
class PlayerTeamStats:
    """A player's counters for one side of one round."""

    kills: int = 0
    deaths: int = 0
    assists: int = 0
    score: int = 0
    hits: int = 0  # includes onos hits
    onos_hits: int = 0
    misses: int = 0
    killstreak: int = 0
    time_played: float = 0.0  # seconds on this side
    commander_time: float = 0.0  # seconds in the command chair
    time_building: float = 0.0
    player_damage: float = 0.0
    structure_damage: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayerTeamStats:
        return cls(
            kills=int(data.get("kills", 0)),
            deaths=int(data.get("deaths", 0)),
            assists=int(data.get("assists", 0)),
            score=int(data.get("score", 0)),
            hits=int(data.get("hits", 0)),
            onos_hits=int(data.get("onosHits", 0)),
            misses=int(data.get("misses", 0)),
            killstreak=int(data.get("killstreak", 0)),
            time_played=float(data.get("timePlayed", 0.0)),
            commander_time=float(data.get("commanderTime", 0.0)),
            time_building=float(data.get("timeBuilding", 0.0)),
            player_damage=float(data.get("playerDamage", 0.0)),
            structure_damage=float(data.get("structureDamage", 0.0)),
        )


@dataclass(frozen=True)
class PlayerStat:
    """One player's record in a round: both sides plus identity."""

    player_name: str
    marines: PlayerTeamStats = field(default_factory=PlayerTeamStats)
    aliens: PlayerTeamStats = field(default_factory=PlayerTeamStats)
    last_team: Team | None = None
    hive_skill: int = 0
    is_rookie: bool = False

    def side(self, team: Team) -> PlayerTeamStats:
        return self.marines if team is Team.MARINES else self.aliens

    @property
    def attributed_team(self) -> Team:
        """Side the player is credited to: larger time played, marines on a tie."""
        if self.aliens.time_played > self.marines.time_played:
            return Team.ALIENS
        return Team.MARINES

    @property
    def has_played(self) -> bool:
        return self.marines.time_played > 0 or self.aliens.time_played > 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayerStat:
        last_team = data.get("lastTeam")
        return cls(
            player_name=str(data.get("playerName", "")),
            marines=PlayerTeamStats.from_dict(data.get("1") or {}),
            aliens=PlayerTeamStats.from_dict(data.get("2") or {}),
            last_team=Team(last_team) if last_team in (1, 2) else None,
            hive_skill=int(data.get("hiveSkill") or 0),
            is_rookie=bool(data.get("isRookie", False)),
        )


# ============================================================
# KILL FEED
# ============================================================


@dataclass(frozen=True)
class KillEvent:
    """A single entry of the kill feed."""

    victim_steam_id: SteamId
    killer_steam_id: SteamId | None = None  # None for world / structure kills
    killer_class: PlayerClass | None = None
    killer_weapon: str = ""
    killer_team: Team | None = None
    victim_class: PlayerClass | None = None
    game_time: float = 0.0

    @property
    def is_commander_kill(self) -> bool:
        return self.killer_class is PlayerClass.COMMANDER

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KillEvent:
        killer = data.get("killerSteamID")
        killer_team = data.get("killerTeamNumber")
        return cls(
            victim_steam_id=int(data["victimSteamID"]),
            # steam id 0 is what the server writes for non-player killers
            killer_steam_id=int(killer) if killer else None,
            killer_class=_player_class(data.get("killerClass")),
            killer_weapon=str(data.get("killerWeapon") or ""),
            killer_team=Team(killer_team) if killer_team in (1, 2) else None,
            victim_class=_player_class(data.get("victimClass")),
            game_time=float(data.get("gameTime", 0.0)),
        )


def _player_class(value: Any) -> PlayerClass | None:
    if value is None:
        return None
    try:
        return PlayerClass(value)
    except ValueError:
        return None


# ============================================================
# ROUND / MATCH
# ============================================================


@dataclass(frozen=True)
class RoundInfo:
    """Round metadata."""

    round_date: int  # unix time
    round_length: float  # seconds
    map_name: str
    winning_team: WinningTeam = WinningTeam.NONE
    max_players_marines: int = 0
    max_players_aliens: int = 0
    tournament_mode: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoundInfo:
        return cls(
            round_date=int(data["roundDate"]),
            round_length=float(data["roundLength"]),
            map_name=str(data["mapName"]),
            winning_team=WinningTeam(int(data.get("winningTeam", 0))),
            max_players_marines=int(data.get("maxPlayers1", 0)),
            max_players_aliens=int(data.get("maxPlayers2", 0)),
            tournament_mode=bool(data.get("tournamentMode", False)),
        )


@dataclass(frozen=True)
class MatchRecord:
    """
    One completed match.

    THIS IS THE CONTRACT. The loader maps the raw server JSON onto it and
    everything downstream reads only these fields.
    """

    round_info: RoundInfo
    player_stats: dict[SteamId, PlayerStat] = field(default_factory=dict)
    kill_feed: tuple[KillEvent, ...] = ()

    @property
    def round_date(self) -> int:
        return self.round_info.round_date

    def sorted_players(self) -> list[tuple[SteamId, PlayerStat]]:
        """Players ordered by steam id, for iteration that must be stable."""
        return sorted(self.player_stats.items())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchRecord:
        """Map a raw round-end stats dump (PascalCase top level) onto a record."""
        players = {
            int(steam_id): PlayerStat.from_dict(stat)
            for steam_id, stat in (data.get("PlayerStats") or {}).items()
        }
        kill_feed = tuple(KillEvent.from_dict(k) for k in data.get("KillFeed") or [])
        return cls(
            round_info=RoundInfo.from_dict(data["RoundInfo"]),
            player_stats=players,
            kill_feed=kill_feed,
        )
