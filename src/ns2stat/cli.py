"""
ns2stat CLI - Command Line Interface for NS2 match statistics

Provides commands for:
- Aggregate player and map statistics
- Running (continuous) statistics export
- Balanced team suggestions
- Pairwise skill ranking
- Game listings and past lineups
- Serving the HTTP API
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ns2stat import __version__
from ns2stat.core.config import configure_logging, get_config, load_config, set_config
from ns2stat.core.constants import BalanceScoring
from ns2stat.core.errors import Ns2StatError
from ns2stat.core.utils import is_finite
from ns2stat.domains.aggregate import AggregateSnapshot, continuous_stats
from ns2stat.domains.balance import SCORE_METRICS, suggest_teams
from ns2stat.domains.filters import genuine
from ns2stat.domains.skill import rank as rank_players
from ns2stat.domains.summary import find_past_games, summarize_game
from ns2stat.export import continuous_to_dict, snapshot_to_dict, write_json
from ns2stat.infra.store import SnapshotStore

app = typer.Typer(
    name="ns2stat",
    help="Natural Selection 2 match statistics, team balancing and skill ranking",
    add_completion=False,
)
console = Console()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]ns2stat[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output"
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (.yaml, .toml or .json)",
        exists=True,
        dir_okay=False,
    ),
) -> None:
    """ns2stat - NS2 match statistics"""
    if config_file is not None:
        set_config(load_config(config_file))
    configure_logging(get_config().logging)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _data_dir_argument():
    return typer.Argument(
        ...,
        help="Directory containing round stats JSON files",
        exists=True,
        file_okay=False,
        resolve_path=True,
    )


def _load_store(data_dir: Path) -> SnapshotStore:
    config = get_config()
    store = SnapshotStore(
        data_dir,
        min_round_length=config.filter.min_round_length,
        min_players_per_side=config.filter.min_players_per_side,
    )
    try:
        store.reload()
    except (Ns2StatError, OSError) as e:
        console.print(f"[red]Error loading games:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    return store


def _fmt(value: float, digits: int = 2) -> str:
    return f"{value:.{digits}f}" if is_finite(value) else "-"


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%" if is_finite(value) else "-"


def _display_players(snapshot: AggregateSnapshot) -> None:
    display = get_config().display
    shown = [
        (steam_id, player)
        for steam_id, player in snapshot.players.items()
        if player.kills.total > display.min_kills and player.deaths.total > display.min_deaths
    ]
    # infinite kd cannot occur here, deaths are above the display threshold
    shown.sort(key=lambda item: item[1].kd.total, reverse=True)

    if not shown:
        console.print("[yellow]No players above the display thresholds[/yellow]")
        return

    table = Table(title="Players")
    table.add_column("Player", style="cyan")
    table.add_column("Games", justify="right")
    table.add_column("Wins", justify="right")
    table.add_column("Comm", justify="right")
    table.add_column("K/D", justify="right", style="green")
    table.add_column("K/D (M)", justify="right")
    table.add_column("K/D (A)", justify="right")
    table.add_column("KDA", justify="right")
    table.add_column("Accuracy", justify="right")

    for steam_id, player in shown:
        table.add_row(
            escape(snapshot.name_of(steam_id)),
            str(int(player.games.total)),
            str(int(player.wins.total)),
            str(int(player.commander.total)),
            _fmt(player.kd.total),
            _fmt(player.kd.marines),
            _fmt(player.kd.aliens),
            _fmt(player.kda.total),
            _pct(player.accuracy.total),
        )

    console.print(table)
    console.print()


def _display_maps(snapshot: AggregateSnapshot) -> None:
    table = Table(title="Maps")
    table.add_column("Map", style="cyan")
    table.add_column("Games", justify="right")
    table.add_column("Marine wins", justify="right")
    table.add_column("Alien wins", justify="right")
    table.add_column("Marine win rate", justify="right", style="green")

    for name, entry in sorted(snapshot.maps.items(), key=lambda item: -item[1].total_games):
        table.add_row(
            escape(name),
            str(entry.total_games),
            str(entry.marine_wins),
            str(entry.alien_wins),
            _pct(entry.marine_win_rate),
        )

    console.print(table)
    console.print()


@app.command()
def stats(
    data_dir: Path = _data_dir_argument(),
    as_json: bool = typer.Option(False, "--json", help="Print the snapshot as JSON"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the snapshot as JSON to this file"
    ),
) -> None:
    """Show aggregate statistics over all genuine games."""
    store = _load_store(data_dir)
    snapshot = store.state.stats

    if output is not None:
        write_json(snapshot_to_dict(snapshot), output)
        console.print(f"[green]Stats exported to:[/green] {output}")
    if as_json:
        console.print_json(data=snapshot_to_dict(snapshot))
        return

    console.print(
        f"\n[bold blue]ns2stat[/bold blue] - {snapshot.total_games} genuine games "
        f"of {len(store.state.games)} loaded\n"
    )
    if snapshot.is_empty:
        console.print("[yellow]No genuine games found[/yellow]")
        return

    _display_players(snapshot)
    _display_maps(snapshot)
    console.print(f"[bold]Marine win rate:[/bold] {_pct(snapshot.marine_win_rate)}")


@app.command()
def continuous(
    data_dir: Path = _data_dir_argument(),
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="JSON file for the running statistics"
    ),
) -> None:
    """Export the statistics after every genuine game, in date order."""
    config = get_config()
    store = _load_store(data_dir)
    matches = genuine(
        store.state.games.values(),
        config.filter.min_round_length,
        config.filter.min_players_per_side,
    )
    history = continuous_stats(matches)
    write_json(continuous_to_dict(history), output)
    console.print(f"[green]{len(history)} snapshots exported to:[/green] {output}")


@app.command()
def teams(
    data_dir: Path = _data_dir_argument(),
    players: list[str] = typer.Argument(..., help="Steam ids or player names of the roster"),
    scoring: Optional[BalanceScoring] = typer.Option(
        None,
        "--scoring",
        "-s",
        help="symmetric (one score per player) or side-aware (marine/alien scores)"
    ),
    suggestions: Optional[int] = typer.Option(
        None,
        "--suggestions",
        "-n",
        min=1,
        help="Number of suggestions to show"
    ),
    metric: str = typer.Option(
        "kd",
        "--metric",
        "-m",
        help=f"Player score: {', '.join(SCORE_METRICS)}"
    ),
) -> None:
    """Suggest balanced teams for a roster."""
    config = get_config()
    store = _load_store(data_dir)
    snapshot = store.state.stats

    try:
        assignments = suggest_teams(
            snapshot,
            players,
            metric=metric,
            max_suggestions=suggestions or config.balance.max_suggestions,
            scoring=scoring or config.balance.scoring,
            max_roster_size=config.balance.max_roster_size,
            workers=config.balance.workers,
        )
    except (Ns2StatError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print("\n[bold blue]Team suggestions[/bold blue]\n")
    for i, assignment in enumerate(assignments, 1):
        table = Table(title=f"#{i} (imbalance {assignment.imbalance:.3f})")
        table.add_column("Marines", style="blue")
        table.add_column("Aliens", style="yellow")
        marines = [escape(snapshot.name_of(p)) for p in assignment.marines]
        aliens = [escape(snapshot.name_of(p)) for p in assignment.aliens]
        for row in range(max(len(marines), len(aliens))):
            table.add_row(
                marines[row] if row < len(marines) else "",
                aliens[row] if row < len(aliens) else "",
            )
        console.print(table)
        console.print()


@app.command()
def rank(
    data_dir: Path = _data_dir_argument(),
    min_encounters: Optional[int] = typer.Option(
        None,
        "--min-encounters",
        min=0,
        help="Minimum recorded deaths for a player to be ranked"
    ),
    all_games: bool = typer.Option(
        False,
        "--all-games",
        help="Rank over every game, including short and bot games"
    ),
) -> None:
    """Rank players by pairwise kill ratios."""
    config = get_config()
    ranking = config.ranking
    store = _load_store(data_dir)

    try:
        rankings = rank_players(
            store.state.games.values(),
            genuine_only=ranking.genuine_only and not all_games,
            min_encounters=ranking.min_encounters if min_encounters is None else min_encounters,
            min_pair_encounters=ranking.min_pair_encounters,
            encounter_slack=ranking.encounter_slack,
            tolerance=ranking.tolerance,
            max_iterations=ranking.max_iterations,
            min_round_length=config.filter.min_round_length,
            min_players_per_side=config.filter.min_players_per_side,
        )
    except Ns2StatError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    table = Table(title="Skill ranking")
    table.add_column("#", justify="right")
    table.add_column("Player", style="cyan")
    table.add_column("Weight", justify="right", style="green")
    for i, entry in enumerate(rankings, 1):
        table.add_row(str(i), escape(entry.name), f"{entry.weight:.4f}")
    console.print(table)


@app.command()
def games(
    data_dir: Path = _data_dir_argument(),
    limit: int = typer.Option(20, "--limit", "-l", min=1, help="Number of games to show"),
) -> None:
    """List the most recent games."""
    store = _load_store(data_dir)
    recent = sorted(store.state.games)[-limit:]

    table = Table(title="Games")
    table.add_column("Date", justify="right")
    table.add_column("Map", style="cyan")
    table.add_column("Length", justify="right")
    table.add_column("Players", justify="right")
    table.add_column("Winner", style="green")
    table.add_column("Marine comm")
    table.add_column("Alien comm")

    for date in reversed(recent):
        summary = summarize_game(store.state.games[date])
        table.add_row(
            str(summary.round_date),
            summary.map_name,
            f"{summary.round_length / 60:.1f} min",
            str(summary.player_count),
            summary.winning_team.name.lower(),
            escape(summary.marines.commander_name or "-"),
            escape(summary.aliens.commander_name or "-"),
        )
    console.print(table)


@app.command()
def lineups(
    data_dir: Path = _data_dir_argument(),
    players: list[str] = typer.Argument(..., help="Player names of the lineup"),
    marine_commander: Optional[str] = typer.Option(None, "--marine-commander", help="Marine commander name"),
    alien_commander: Optional[str] = typer.Option(None, "--alien-commander", help="Alien commander name"),
    limit: int = typer.Option(4, "--limit", "-l", min=1, help="Number of games to show"),
) -> None:
    """Show past games played by exactly this lineup, longest first."""
    store = _load_store(data_dir)
    summaries = [summarize_game(match) for match in store.state.games.values()]
    past = find_past_games(summaries, players, marine_commander, alien_commander)[:limit]

    if not past:
        console.print("[yellow]No past games with this lineup[/yellow]")
        return

    def _names(team) -> str:
        return escape(
            ", ".join(
                f"[{p.name}]" if steam_id == team.commander else p.name
                for steam_id, p in team.players.items()
            )
        )

    for game in past:
        console.print(f"\n[blue]Marines:[/blue] {_names(game.marines)}")
        console.print(f"[yellow]Aliens:[/yellow] {_names(game.aliens)}")
        console.print(
            f"({game.round_length / 60:.3f} min, winner: {game.winning_team.name.lower()})"
        )


@app.command()
def serve(
    data_dir: Path = _data_dir_argument(),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on"),
    watch: bool = typer.Option(True, "--watch/--no-watch", help="Reload when the data directory changes"),
) -> None:
    """Serve the HTTP API over the games in DATA_DIR."""
    import uvicorn

    from ns2stat.api import create_app
    from ns2stat.infra.store import StoreWatcher

    config = get_config()
    store = _load_store(data_dir)
    watcher = None
    if watch:
        watcher = StoreWatcher(
            store,
            debounce_seconds=config.watcher.debounce_seconds,
            recursive=config.watcher.recursive,
        )
        watcher.start()

    console.print(f"\n[bold blue]ns2stat[/bold blue] - Serving on http://{host}:{port}\n")
    try:
        uvicorn.run(create_app(store, config), host=host, port=port)
    finally:
        if watcher is not None:
            watcher.stop()


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
