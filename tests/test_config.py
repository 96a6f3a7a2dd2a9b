"""Tests for configuration loading, merging and saving."""

import json
import logging

import pytest

from ns2stat.core.config import (
    LoggingConfig,
    Ns2StatConfig,
    config_to_dict,
    configure_logging,
    dict_to_config,
    get_config,
    load_config,
    load_env_config,
    merge_configs,
    reset_config,
    save_config,
    set_config,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for name in (
        "NS2STAT_LOG_LEVEL",
        "NS2STAT_LOG_FILE",
        "NS2STAT_MIN_ROUND_LENGTH",
        "NS2STAT_MIN_ENCOUNTERS",
        "NS2STAT_MIN_PAIR_ENCOUNTERS",
        "NS2STAT_MAX_ROSTER_SIZE",
        "NS2STAT_BALANCE_SCORING",
        "NS2STAT_DATA_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self):
        config = Ns2StatConfig()
        assert config.filter.min_round_length == 300.0
        assert config.filter.min_players_per_side == 2
        assert config.balance.max_roster_size == 20
        assert config.balance.scoring == "symmetric"
        assert config.ranking.min_encounters == 50
        assert config.ranking.min_pair_encounters == 20
        assert config.ranking.max_iterations == 1000
        assert config.display.min_kills == 50

    def test_load_without_files(self):
        assert load_config() == Ns2StatConfig()


class TestFiles:
    """Tests for config files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("ranking:\n  min_encounters: 25\nbalance:\n  scoring: side-aware\n")
        config = load_config(path, include_env=False)
        assert config.ranking.min_encounters == 25
        assert config.balance.scoring == "side-aware"
        assert config.ranking.min_pair_encounters == 20

    def test_toml(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text("[filter]\nmin_round_length = 120.0\n")
        assert load_config(path, include_env=False).filter.min_round_length == 120.0

    def test_json(self, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"watcher": {"debounce_seconds": 0.5}, "data_dir": "games"}))
        config = load_config(path, include_env=False)
        assert config.watcher.debounce_seconds == 0.5
        assert config.data_dir == "games"

    def test_default_path_in_cwd(self, tmp_path):
        (tmp_path / "ns2stat.yaml").write_text("display:\n  min_kills: 5\n")
        assert load_config(include_env=False).display.min_kills == 5

    def test_unknown_keys_ignored(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = dict_to_config({"ranking": {"min_encounters": 7, "bogus": 1}})
        assert config.ranking.min_encounters == 7
        assert "ranking.bogus" in caplog.text


class TestEnvironment:
    """Tests for environment overrides."""

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("ranking:\n  min_encounters: 25\n")
        monkeypatch.setenv("NS2STAT_MIN_ENCOUNTERS", "80")
        monkeypatch.setenv("NS2STAT_BALANCE_SCORING", "side-aware")
        monkeypatch.setenv("NS2STAT_DATA_DIR", "/srv/ns2")

        config = load_config(path)
        assert config.ranking.min_encounters == 80
        assert config.balance.scoring == "side-aware"
        assert config.data_dir == "/srv/ns2"

    def test_env_type_conversion(self, monkeypatch):
        monkeypatch.setenv("NS2STAT_MIN_ROUND_LENGTH", "240.5")
        monkeypatch.setenv("NS2STAT_MAX_ROSTER_SIZE", "16")
        env = load_env_config()
        assert env["filter"]["min_round_length"] == 240.5
        assert env["balance"]["max_roster_size"] == 16


class TestMergeAndSave:
    """Tests for merge_configs() and save_config()."""

    def test_merge_is_recursive(self):
        base = {"ranking": {"min_encounters": 1, "tolerance": 0.1}}
        merged = merge_configs(base, {"ranking": {"min_encounters": 2}})
        assert merged == {"ranking": {"min_encounters": 2, "tolerance": 0.1}}
        assert base["ranking"]["min_encounters"] == 1

    @pytest.mark.parametrize("name", ["saved.yaml", "saved.json"])
    def test_save_and_load(self, tmp_path, name):
        config = Ns2StatConfig()
        config.ranking.min_encounters = 33
        config.balance.workers = 4
        path = tmp_path / name

        save_config(config, path)
        assert load_config(path, include_env=False) == config

    def test_save_unsupported_format(self, tmp_path):
        with pytest.raises(ValueError, match="Unsupported"):
            save_config(Ns2StatConfig(), tmp_path / "saved.ini")

    def test_config_to_dict(self):
        data = config_to_dict(Ns2StatConfig())
        assert data["ranking"]["min_pair_encounters"] == 20


class TestGlobalConfig:
    """Tests for get_config()/set_config()/reset_config()."""

    def test_set_and_reset(self):
        custom = Ns2StatConfig()
        custom.display.min_deaths = 1
        set_config(custom)
        assert get_config() is custom

        reset_config()
        assert get_config().display.min_deaths == 50

    def test_configure_logging(self, tmp_path):
        log_file = tmp_path / "ns2stat.log"
        configure_logging(LoggingConfig(level="debug", file=str(log_file)))
        try:
            assert logging.getLogger().level == logging.DEBUG
            logging.getLogger("ns2stat.test").debug("hello")
            for handler in logging.getLogger().handlers:
                handler.flush()
            assert "hello" in log_file.read_text()
        finally:
            configure_logging(LoggingConfig())
