"""The per-user configuration file holding the CLI id."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

CONFIG_FILE_NAME = ".popcorn.yaml"


class ConfigError(Exception):
    """The configuration file cannot be found, read or written."""


@dataclass
class Config:
    """Settings kept between runs."""

    cli_id: str | None = None


def get_config_path() -> Path:
    """Return the path of the configuration file in the home directory."""
    try:
        home = Path.home()
    except RuntimeError as exc:
        raise ConfigError("Could not find home directory") from exc
    return home / CONFIG_FILE_NAME


def _parse(path: Path) -> Config:
    try:
        with path.open(encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Failed to parse config file: expected a mapping")
    cli_id = data.get("cli_id")
    if cli_id is not None and not isinstance(cli_id, str):
        raise ConfigError("Failed to parse config file: cli_id must be a string")
    return Config(cli_id=cli_id)


def load_config() -> Config:
    """Load the configuration; it is an error if the file does not exist."""
    path = get_config_path()
    if not path.exists():
        raise ConfigError(
            f"Config file not found at {path}. Please run `popcorn register` first."
        )
    return _parse(path)


def load_config_or_default() -> Config:
    """Load the configuration, or an empty one if it is missing or unreadable."""
    try:
        return load_config()
    except (ConfigError, OSError):
        return Config()


def save_config(config: Config) -> None:
    """Write the configuration, replacing the file."""
    path = get_config_path()
    with path.open("w", encoding="utf-8") as handle:
        try:
            yaml.safe_dump({"cli_id": config.cli_id}, handle, default_flow_style=False)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to write config file: {exc}") from exc