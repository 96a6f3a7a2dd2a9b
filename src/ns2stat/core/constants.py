"""
ns2stat - Constants

Team numbers, player classes and the numeric thresholds shared by the
filter, aggregation, balancing and ranking modules.
"""

from enum import Enum, StrEnum


class Team(int, Enum):
    """NS2 team numbers as they appear in the match logs."""

    MARINES = 1
    ALIENS = 2

    @property
    def label(self) -> str:
        return self.name.lower()


class WinningTeam(int, Enum):
    """Winner of a round. NONE covers draws and aborted rounds."""

    NONE = 0
    MARINES = 1
    ALIENS = 2

    @property
    def team(self) -> Team | None:
        if self is WinningTeam.NONE:
            return None
        return Team(self.value)


class PlayerClass(StrEnum):
    """Lifeform / class names used in the kill feed."""

    COMMAND_STATION = "CommandStation"
    COMMANDER = "Commander"
    DEAD = "Dead"
    DEATH_TRIGGER = "DeathTrigger"
    EMBRYO = "Embryo"
    EXO = "Exo"
    FADE = "Fade"
    FADE_EGG = "FadeEgg"
    FLAMETHROWER = "Flamethrower"
    GORGE = "Gorge"
    GORGE_EGG = "GorgeEgg"
    GRENADE_LAUNCHER = "GrenadeLauncher"
    HEAVY_MACHINE_GUN = "HeavyMachineGun"
    LERK = "Lerk"
    LERK_EGG = "LerkEgg"
    MINE = "Mine"
    ONOS = "Onos"
    ONOS_EGG = "OnosEgg"
    RIFLE = "Rifle"
    SENTRY = "Sentry"
    SHOTGUN = "Shotgun"
    SKULK = "Skulk"
    VOID = "Void"


class BalanceScoring(StrEnum):
    """How the team balancer scores a candidate split."""

    SYMMETRIC = "symmetric"  # one scalar per player, sign flipped by side
    SIDE_AWARE = "side-aware"  # marine component vs alien component


# ============================================================================
# Match filter
# ============================================================================

# Rounds shorter than this (seconds) are aborted or forfeited games
MIN_ROUND_LENGTH = 300.0

# A side needs strictly more than this many players with time played,
# otherwise the round was most likely a bot or practice game
MIN_PLAYERS_PER_SIDE = 2

# ============================================================================
# Team balancer
# ============================================================================

# Exhaustive search is O(2^n); 2^19 candidate masks is the practical ceiling
MAX_ROSTER_SIZE = 20
DEFAULT_MAX_SUGGESTIONS = 4

# ============================================================================
# Skill ranker
# ============================================================================

# Players need at least this many recorded deaths to be ranked
DEFAULT_MIN_ENCOUNTERS = 50
# A pair needs at least this many kills between them to carry a signal
DEFAULT_MIN_PAIR_ENCOUNTERS = 20
# Players whose pair count is more than this below the best-connected
# player are dropped before power iteration
ENCOUNTER_SLACK = 3
POWER_ITERATION_TOLERANCE = 1e-4
POWER_ITERATION_MAX_STEPS = 1000

# ============================================================================
# Display
# ============================================================================

# Players at or below these totals are hidden from the stats table
DISPLAY_MIN_KILLS = 50
DISPLAY_MIN_DEATHS = 50
