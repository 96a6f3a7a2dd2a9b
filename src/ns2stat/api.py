"""
ns2stat Web API

Read-only FastAPI application over a SnapshotStore.

Provides:
- Aggregate stats (all genuine games) and their running history
- Game summaries, optionally restricted to a date range
- Per-player aggregates
- Balanced team suggestions
- Pairwise skill ranking
"""

import logging

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from ns2stat import __version__
from ns2stat.core.config import Ns2StatConfig, get_config
from ns2stat.core.constants import BalanceScoring
from ns2stat.core.errors import InputTooLargeError, RankingUndefinedError, UnknownPlayerError
from ns2stat.domains.aggregate import continuous_stats
from ns2stat.domains.balance import suggest_teams
from ns2stat.domains.filters import genuine
from ns2stat.domains.skill import rank
from ns2stat.domains.summary import select_range, summarize_game
from ns2stat.export import (
    assignment_to_dict,
    continuous_to_dict,
    player_to_dict,
    ranking_to_list,
    snapshot_to_dict,
)
from ns2stat.infra.store import SnapshotStore

logger = logging.getLogger(__name__)


class TeamRequest(BaseModel):
    """Roster to split into two teams."""

    players: list[str] = Field(..., min_length=1, description="Steam ids or current player names")
    metric: str = Field(default="kd", description="kd, kda, win_rate or score_per_game")
    scoring: BalanceScoring = Field(default=BalanceScoring.SYMMETRIC)
    suggestions: int = Field(default=4, ge=1, le=100)


class HealthResponse(BaseModel):
    status: str
    version: str
    games: int
    genuine_games: int


def create_app(store: SnapshotStore, config: Ns2StatConfig | None = None) -> FastAPI:
    """Build the API around an already populated store."""
    config = config or get_config()
    app = FastAPI(
        title="ns2stat",
        description="Natural Selection 2 match statistics",
        version=__version__,
    )

    def _genuine_range(start: int | None, end: int | None):
        games = select_range(store.state.games, start, end)
        return list(
            genuine(games, config.filter.min_round_length, config.filter.min_players_per_side)
        )

    @app.get("/health", response_model=HealthResponse)
    async def health():
        state = store.state
        return HealthResponse(
            status="ok",
            version=__version__,
            games=len(state.games),
            genuine_games=state.stats.total_games,
        )

    @app.get("/stats")
    async def get_stats():
        return snapshot_to_dict(store.state.stats)

    @app.get("/stats/continuous")
    async def get_continuous_stats(
        start: int | None = Query(default=None, alias="from"),
        end: int | None = Query(default=None, alias="to"),
    ):
        return continuous_to_dict(continuous_stats(_genuine_range(start, end)))

    @app.get("/games")
    async def get_games(
        start: int | None = Query(default=None, alias="from"),
        end: int | None = Query(default=None, alias="to"),
    ):
        return [summarize_game(g).to_dict() for g in select_range(store.state.games, start, end)]

    @app.get("/games/latest")
    async def get_latest_game():
        games = store.state.games
        if not games:
            raise HTTPException(status_code=404, detail="No games loaded")
        return summarize_game(games[max(games)]).to_dict()

    @app.get("/players/{player}")
    async def get_player(player: str):
        stats = store.state.stats
        try:
            steam_id = stats.resolve(player)
        except UnknownPlayerError as e:
            raise HTTPException(status_code=404, detail=str(e))
        result = player_to_dict(stats.players[steam_id])
        result["steam_id"] = steam_id
        result["name"] = stats.name_of(steam_id)
        return result

    @app.post("/teams")
    async def post_teams(request: TeamRequest):
        stats = store.state.stats
        try:
            assignments = suggest_teams(
                stats,
                request.players,
                metric=request.metric,
                max_suggestions=request.suggestions,
                scoring=request.scoring,
                max_roster_size=config.balance.max_roster_size,
            )
        except UnknownPlayerError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except (InputTooLargeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        names = {steam_id: stats.name_of(steam_id) for steam_id in stats.players}
        return [assignment_to_dict(a, names) for a in assignments]

    @app.get("/ranking")
    async def get_ranking(
        min_encounters: int = Query(default=config.ranking.min_encounters, ge=0),
        all_games: bool = Query(default=not config.ranking.genuine_only),
    ):
        try:
            rankings = rank(
                store.state.games.values(),
                genuine_only=not all_games,
                min_encounters=min_encounters,
                min_pair_encounters=config.ranking.min_pair_encounters,
                encounter_slack=config.ranking.encounter_slack,
                tolerance=config.ranking.tolerance,
                max_iterations=config.ranking.max_iterations,
                min_round_length=config.filter.min_round_length,
                min_players_per_side=config.filter.min_players_per_side,
            )
        except RankingUndefinedError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return ranking_to_list(rankings)

    return app
