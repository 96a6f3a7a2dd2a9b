"""
Configuration Management for ns2stat

Provides configuration loading from multiple sources:
- Default values
- Configuration files (YAML, TOML, JSON)
- Environment variables

Configuration precedence (highest to lowest):
1. Environment variables (NS2STAT_*)
2. Configuration file
3. Default values
"""

import json
import logging
import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ns2stat.core.constants import (
    DEFAULT_MAX_SUGGESTIONS,
    DEFAULT_MIN_ENCOUNTERS,
    DEFAULT_MIN_PAIR_ENCOUNTERS,
    DISPLAY_MIN_DEATHS,
    DISPLAY_MIN_KILLS,
    ENCOUNTER_SLACK,
    MAX_ROSTER_SIZE,
    MIN_PLAYERS_PER_SIDE,
    MIN_ROUND_LENGTH,
    POWER_ITERATION_MAX_STEPS,
    POWER_ITERATION_TOLERANCE,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Dataclasses
# ============================================================================


@dataclass
class FilterConfig:
    """Which matches count as genuine."""

    min_round_length: float = MIN_ROUND_LENGTH
    # Strictly more than this many players with time played on both sides
    min_players_per_side: int = MIN_PLAYERS_PER_SIDE


@dataclass
class BalanceConfig:
    """Configuration for team suggestions."""

    max_roster_size: int = MAX_ROSTER_SIZE
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS
    # "symmetric" or "side-aware"
    scoring: str = "symmetric"
    # Split the mask range across this many worker threads
    workers: int = 1


@dataclass
class RankingConfig:
    """Configuration for the pairwise skill ranking."""

    min_encounters: int = DEFAULT_MIN_ENCOUNTERS
    min_pair_encounters: int = DEFAULT_MIN_PAIR_ENCOUNTERS
    encounter_slack: int = ENCOUNTER_SLACK
    tolerance: float = POWER_ITERATION_TOLERANCE
    max_iterations: int = POWER_ITERATION_MAX_STEPS
    genuine_only: bool = True


@dataclass
class WatcherConfig:
    """Configuration for the data directory watcher."""

    debounce_seconds: float = 2.0
    recursive: bool = False


@dataclass
class DisplayConfig:
    """Thresholds for the stats table."""

    min_kills: int = DISPLAY_MIN_KILLS
    min_deaths: int = DISPLAY_MIN_DEATHS


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None


@dataclass
class Ns2StatConfig:
    """Main configuration container."""

    filter: FilterConfig = field(default_factory=FilterConfig)
    balance: BalanceConfig = field(default_factory=BalanceConfig)
    ranking: RankingConfig = field(default_factory=RankingConfig)
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Directory holding the match JSON files
    data_dir: str | None = None

    # Version of the config format
    config_version: str = "1.0"


_SECTIONS = ("filter", "balance", "ranking", "watcher", "display", "logging")


# ============================================================================
# Configuration Loading
# ============================================================================


def get_default_config_paths() -> list[Path]:
    """Get the default paths to search for configuration files."""
    paths = []

    # Current directory
    paths.append(Path.cwd() / "ns2stat.yaml")
    paths.append(Path.cwd() / "ns2stat.toml")
    paths.append(Path.cwd() / "ns2stat.json")

    # User config directory
    home = Path.home()
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(home / ".config"))
    paths.append(Path(xdg_config) / "ns2stat" / "config.yaml")
    paths.append(Path(xdg_config) / "ns2stat" / "config.toml")

    return paths


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(path) as f:
        return json.load(f)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a file, detecting format from extension."""
    if not path.exists():
        return {}

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return load_yaml_config(path)
    elif suffix == ".toml":
        return load_toml_config(path)
    elif suffix == ".json":
        return load_json_config(path)
    else:
        logger.warning(f"Unknown config file format: {suffix}")
        return {}


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    env_mappings = {
        "NS2STAT_LOG_LEVEL": ("logging", "level"),
        "NS2STAT_LOG_FILE": ("logging", "file"),
        "NS2STAT_MIN_ROUND_LENGTH": ("filter", "min_round_length"),
        "NS2STAT_MIN_ENCOUNTERS": ("ranking", "min_encounters"),
        "NS2STAT_MIN_PAIR_ENCOUNTERS": ("ranking", "min_pair_encounters"),
        "NS2STAT_MAX_ROSTER_SIZE": ("balance", "max_roster_size"),
        "NS2STAT_BALANCE_SCORING": ("balance", "scoring"),
        "NS2STAT_DATA_DIR": (None, "data_dir"),
    }

    for env_var, (section, key) in env_mappings.items():
        value = os.environ.get(env_var)
        if value is None:
            continue

        # Type conversion
        converted: Any = value
        if value.lower() in ("true", "false"):
            converted = value.lower() == "true"
        elif value.isdigit():
            converted = int(value)
        else:
            try:
                converted = float(value)
            except ValueError:
                pass

        if section is None:
            config[key] = value
        else:
            config.setdefault(section, {})[key] = converted

    return config


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two configuration dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def dict_to_config(data: dict[str, Any]) -> Ns2StatConfig:
    """Convert a dictionary to Ns2StatConfig. Unknown keys are ignored."""
    config = Ns2StatConfig()

    for section in _SECTIONS:
        if section not in data:
            continue
        target = getattr(config, section)
        for key, value in data[section].items():
            if hasattr(target, key):
                setattr(target, key, value)
            else:
                logger.warning(f"Ignoring unknown config key: {section}.{key}")

    if data.get("data_dir"):
        config.data_dir = str(data["data_dir"])

    return config


def load_config(config_file: Path | None = None, include_env: bool = True) -> Ns2StatConfig:
    """
    Load configuration from all sources.

    Args:
        config_file: Explicit path to a config file (optional)
        include_env: Whether to include environment variables

    Returns:
        Merged Ns2StatConfig
    """
    config_data: dict[str, Any] = {}

    if config_file:
        config_data = load_config_file(config_file)
        logger.info(f"Loaded config from: {config_file}")
    else:
        for path in get_default_config_paths():
            if path.exists():
                config_data = load_config_file(path)
                logger.info(f"Loaded config from: {path}")
                break

    if include_env:
        config_data = merge_configs(config_data, load_env_config())

    return dict_to_config(config_data)


# ============================================================================
# Configuration Saving
# ============================================================================


def config_to_dict(config: Ns2StatConfig) -> dict[str, Any]:
    """Convert Ns2StatConfig to a dictionary."""
    return asdict(config)


def save_config(config: Ns2StatConfig, path: Path) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save to (.yaml/.yml or .json)
    """
    data = config_to_dict(config)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    elif suffix == ".json":
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    else:
        raise ValueError(f"Unsupported config format for saving: {suffix}")

    logger.info(f"Saved config to: {path}")


# ============================================================================
# Global Configuration
# ============================================================================

_global_config: Ns2StatConfig | None = None


def get_config() -> Ns2StatConfig:
    """Get the global configuration, loading it if necessary."""
    global _global_config

    if _global_config is None:
        _global_config = load_config()

    return _global_config


def set_config(config: Ns2StatConfig) -> None:
    """Set the global configuration."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset the global configuration to defaults."""
    global _global_config
    _global_config = None


def configure_logging(config: LoggingConfig) -> None:
    """Apply a LoggingConfig to the root logger."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    logging.basicConfig(level=config.level.upper(), format=config.format, handlers=handlers, force=True)
