"""
ns2stat - Natural Selection 2 match statistics

Aggregates round stats dumps into per-player and per-map statistics,
suggests balanced teams and ranks players by pairwise kill ratios.

Usage:
    from ns2stat import load_games, genuine, compute

    games = load_games(Path("data"))
    stats = compute(genuine(games.values()))

    for steam_id, player in stats.players.items():
        print(f"{stats.name_of(steam_id)}: {player.kd.total:.2f}")
"""

__version__ = "0.3.0"


def __getattr__(name):
    """Lazy import for heavy dependencies."""
    # Match filter
    if name == "is_genuine":
        from ns2stat.domains.filters import is_genuine
        return is_genuine
    elif name == "genuine":
        from ns2stat.domains.filters import genuine
        return genuine
    # Aggregation
    elif name == "compute":
        from ns2stat.domains.aggregate import compute
        return compute
    elif name == "merge":
        from ns2stat.domains.aggregate import merge
        return merge
    elif name == "continuous_stats":
        from ns2stat.domains.aggregate import continuous_stats
        return continuous_stats
    elif name == "AggregateSnapshot":
        from ns2stat.domains.aggregate import AggregateSnapshot
        return AggregateSnapshot
    # Balancer
    elif name == "balance":
        from ns2stat.domains.balance import balance
        return balance
    elif name == "suggest_teams":
        from ns2stat.domains.balance import suggest_teams
        return suggest_teams
    # Ranker
    elif name == "rank":
        from ns2stat.domains.skill import rank
        return rank
    # Loading
    elif name == "MatchRecord":
        from ns2stat.core.schemas import MatchRecord
        return MatchRecord
    elif name == "load_games":
        from ns2stat.infra.loader import load_games
        return load_games
    elif name == "SnapshotStore":
        from ns2stat.infra.store import SnapshotStore
        return SnapshotStore
    raise AttributeError(f"module 'ns2stat' has no attribute '{name}'")


__all__ = [
    # Version
    "__version__",
    # Match filter
    "is_genuine",
    "genuine",
    # Aggregation
    "compute",
    "merge",
    "continuous_stats",
    "AggregateSnapshot",
    # Balancer
    "balance",
    "suggest_teams",
    # Ranker
    "rank",
    # Loading
    "MatchRecord",
    "load_games",
    "SnapshotStore",
]
