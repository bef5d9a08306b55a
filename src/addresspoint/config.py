from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from addresspoint.errors import ConfigError

CONFIG_ENV = "ADDRESSPOINT_CONFIG"
DATASET_ENV = "SHAPEFILE_PATH"


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Read a YAML config (optional) and resolve it against defaults and env."""
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV)
        config_path = Path(env_path) if env_path else None

    if config_path is None:
        return resolve_config({}, base_dir=Path.cwd())

    config_path = Path(config_path)
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read config {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {config_path}: {exc}") from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("config must be a mapping")
    return resolve_config(raw, base_dir=config_path.resolve().parent)


def _section(config: dict[str, Any], name: str, defaults: dict[str, Any]) -> dict[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"config section {name!r} must be a mapping, got {type(value).__name__}")
    return {**defaults, **value}


def resolve_config(config: dict[str, Any], *, base_dir: Path) -> dict[str, Any]:
    dataset = _section(config, "dataset", {"path": None, "citycode_field": "city_code", "address_field": "jusho1"})
    env_dataset = os.environ.get(DATASET_ENV)
    if env_dataset:
        dataset["path"] = env_dataset
    if dataset["path"]:
        path = Path(dataset["path"])
        if not path.is_absolute():
            path = (base_dir / path).resolve()
        dataset["path"] = path

    index = _section(config, "index", {"node_capacity": 16})
    try:
        index["node_capacity"] = int(index["node_capacity"])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"index.node_capacity must be an integer: {index['node_capacity']!r}") from exc
    if index["node_capacity"] < 2:
        raise ConfigError("index.node_capacity must be at least 2")

    api = _section(config, "api", {"host": "0.0.0.0", "port": 3000})
    try:
        api["port"] = int(api["port"])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"api.port must be an integer: {api['port']!r}") from exc

    logging_cfg = _section(config, "logging", {"level": "DEBUG", "json": True})

    return {
        **config,
        "dataset": dataset,
        "index": index,
        "api": api,
        "logging": logging_cfg,
    }


def require_dataset_path(config: dict[str, Any]) -> Path:
    path = (config.get("dataset") or {}).get("path")
    if not path:
        raise ConfigError(f"{DATASET_ENV} is not set. Please set it to the path of the shapefile.")
    return Path(path)
