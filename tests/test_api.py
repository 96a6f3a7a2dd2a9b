"""Tests for the FastAPI web API."""

import pytest
from fastapi.testclient import TestClient

from ns2stat.api import create_app
from ns2stat.core.config import FilterConfig, Ns2StatConfig
from ns2stat.core.constants import WinningTeam
from ns2stat.core.schemas import KillEvent, MatchRecord, PlayerStat, PlayerTeamStats, RoundInfo
from ns2stat.infra.store import SnapshotStore

NAMES = {1: "alpha", 2: "bravo", 3: "charlie", 4: "delta", 5: "echo", 6: "foxtrot"}


def _make_match(round_date: int, round_length: float = 900.0, with_kills: bool = False) -> MatchRecord:
    players = {}
    for steam_id, name in NAMES.items():
        side = PlayerTeamStats(time_played=800.0, kills=steam_id + 1, deaths=2, score=10)
        marine = steam_id % 2 == 1
        players[steam_id] = PlayerStat(
            player_name=name,
            marines=side if marine else PlayerTeamStats(),
            aliens=PlayerTeamStats() if marine else side,
        )
    kills = ()
    if with_kills:
        kills = tuple(
            [KillEvent(victim_steam_id=2, killer_steam_id=1) for _ in range(30)]
            + [KillEvent(victim_steam_id=1, killer_steam_id=2) for _ in range(5)]
        )
    return MatchRecord(
        round_info=RoundInfo(
            round_date=round_date,
            round_length=round_length,
            map_name="ns2_docking",
            winning_team=WinningTeam.ALIENS,
        ),
        player_stats=players,
        kill_feed=kills,
    )


@pytest.fixture
def client() -> TestClient:
    store = SnapshotStore()
    store.publish(
        {
            100: _make_match(100, with_kills=True),
            200: _make_match(200),
            300: _make_match(300, round_length=45.0),
        }
    )
    return TestClient(create_app(store, Ns2StatConfig()))


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["games"] == 3
        assert data["genuine_games"] == 2
        assert isinstance(data["version"], str)


class TestStatsEndpoints:
    """Tests for /stats and /stats/continuous."""

    def test_stats(self, client):
        data = client.get("/stats").json()
        assert data["total_games"] == 2
        assert data["alien_wins"] == 2
        assert data["players"]["2"]["name"] == "bravo"
        assert data["players"]["2"]["games"]["aliens"] == 2

    def test_continuous(self, client):
        data = client.get("/stats/continuous").json()
        assert list(data) == ["100", "200"]
        assert data["100"]["total_games"] == 1
        assert data["200"]["total_games"] == 2

    def test_continuous_range(self, client):
        data = client.get("/stats/continuous", params={"from": 150, "to": 400}).json()
        assert list(data) == ["200"]
        assert data["200"]["total_games"] == 1


class TestGamesEndpoints:
    """Tests for /games and /games/latest."""

    def test_games_include_short_games(self, client):
        data = client.get("/games").json()
        assert [g["round_date"] for g in data] == [100, 200, 300]

    def test_games_range(self, client):
        data = client.get("/games", params={"to": 200}).json()
        assert [g["round_date"] for g in data] == [100, 200]

    def test_latest(self, client):
        data = client.get("/games/latest").json()
        assert data["round_date"] == 300
        assert data["winning_team"] == "aliens"

    def test_latest_without_games(self):
        client = TestClient(create_app(SnapshotStore(), Ns2StatConfig()))
        assert client.get("/games/latest").status_code == 404


class TestPlayersEndpoint:
    """Tests for /players/{player}."""

    def test_by_name(self, client):
        data = client.get("/players/charlie").json()
        assert data["steam_id"] == 3
        assert data["kills"]["total"] == 8

    def test_by_steam_id(self, client):
        assert client.get("/players/4").json()["name"] == "delta"

    def test_unknown(self, client):
        response = client.get("/players/zulu")
        assert response.status_code == 404
        assert "zulu" in response.json()["detail"]


class TestTeamsEndpoint:
    """Tests for POST /teams."""

    def test_suggestions(self, client):
        response = client.post(
            "/teams", json={"players": ["alpha", "bravo", "charlie", "delta"], "suggestions": 2}
        )
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 2
        for suggestion in data:
            assert len(suggestion["marines"]) == 2
            assert len(suggestion["aliens"]) == 2
        assert data[0]["imbalance"] <= data[1]["imbalance"]
        names = set(data[0]["marines"]) | set(data[0]["aliens"])
        assert names == {"alpha", "bravo", "charlie", "delta"}

    def test_unknown_players(self, client):
        response = client.post("/teams", json={"players": ["alpha", "yankee", "zulu"]})
        assert response.status_code == 404
        assert "yankee" in response.json()["detail"]
        assert "zulu" in response.json()["detail"]

    def test_roster_too_large(self, client):
        response = client.post("/teams", json={"players": [f"p{i}" for i in range(21)]})
        assert response.status_code == 400

    def test_unknown_metric(self, client):
        response = client.post("/teams", json={"players": ["alpha", "bravo"], "metric": "elo"})
        assert response.status_code == 400

    def test_invalid_scoring(self, client):
        response = client.post("/teams", json={"players": ["alpha"], "scoring": "random"})
        assert response.status_code == 422


class TestRankingEndpoint:
    """Tests for /ranking."""

    def test_ranking(self, client):
        response = client.get("/ranking", params={"min_encounters": 5})
        assert response.status_code == 200
        data = response.json()
        assert [r["name"] for r in data] == ["alpha", "bravo"]
        assert data[0]["weight"] > data[1]["weight"]

    def test_ranking_undefined(self, client):
        response = client.get("/ranking")
        assert response.status_code == 422
        assert "undefined" in response.json()["detail"]

    def test_ranking_uses_configured_match_filter(self):
        config = Ns2StatConfig(filter=FilterConfig(min_round_length=1200.0))
        store = SnapshotStore(min_round_length=config.filter.min_round_length)
        store.publish({100: _make_match(100, with_kills=True)})
        client = TestClient(create_app(store, config))

        assert client.get("/stats").json()["total_games"] == 0
        response = client.get("/ranking", params={"min_encounters": 5})
        assert response.status_code == 422
