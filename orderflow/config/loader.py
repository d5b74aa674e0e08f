"""Layered TOML configuration.

Two layers are read from the config directory and merged, the second
winning key by key:

    default.toml          required, holds every section
    {ORDERFLOW_ENV}.toml  optional overlay (development, test, ...)

A relative ``storage.path`` is anchored at the project root, the parent of
the config directory, so the session file does not move with the working
directory of whichever process loads it.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "ORDERFLOW_CONFIG_DIR"
ENVIRONMENT_ENV = "ORDERFLOW_ENV"
DEFAULT_ENVIRONMENT = "development"

# How many directories upward from cwd are searched for config/
SEARCH_DEPTH = 5


def get_config_dir() -> Path:
    """Locate the config directory.

    ORDERFLOW_CONFIG_DIR wins when set and must exist. Otherwise the first
    ``config/`` found walking up from the working directory is used.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        path = Path(override)
        if not path.is_dir():
            raise FileNotFoundError(f"Config directory not found: {override}")
        return path

    cwd = Path.cwd()
    for directory in [cwd, *cwd.parents][:SEARCH_DEPTH]:
        candidate = directory / "config"
        if candidate.is_dir():
            return candidate

    return Path("config")


def get_environment() -> str:
    return os.environ.get(ENVIRONMENT_ENV, DEFAULT_ENVIRONMENT)


def load_toml(file_path: Path) -> dict[str, Any]:
    """Parse one TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with file_path.open("rb") as f:
        return tomllib.load(f)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Tables present on both sides are merged recursively; any other value in
    ``override`` replaces the one in ``base``. Neither argument is mutated.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def config_layers(config_dir: Path, environment: str) -> list[Path]:
    """Files to merge for an environment, lowest precedence first."""
    default_path = config_dir / "default.toml"
    if not default_path.exists():
        raise FileNotFoundError(
            f"Default configuration file not found: {default_path}. "
            f"Create config/default.toml or set {CONFIG_DIR_ENV}."
        )

    layers = [default_path]
    overlay = config_dir / f"{environment}.toml"
    if overlay.exists():
        layers.append(overlay)
    return layers


def anchor_storage_path(config: dict[str, Any], root: Path) -> dict[str, Any]:
    """Resolve a relative ``storage.path`` against ``root``.

    Absolute paths and ``~`` paths are left alone, as is a config without
    a storage path.
    """
    storage = config.get("storage")
    if not isinstance(storage, dict) or not isinstance(storage.get("path"), str):
        return config

    raw = storage["path"]
    if raw.startswith("~") or Path(raw).is_absolute():
        return config

    return deep_merge(config, {"storage": {"path": str(root / raw)}})


def load_config() -> dict[str, Any]:
    """Merge the config layers for the current environment."""
    config_dir = get_config_dir()

    config: dict[str, Any] = {}
    for layer in config_layers(config_dir, get_environment()):
        config = deep_merge(config, load_toml(layer))

    return anchor_storage_path(config, config_dir.resolve().parent)
