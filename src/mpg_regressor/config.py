"""Configuration loading and validation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from mpg_regressor.exceptions import InvalidConfigError
from mpg_regressor.models import AppConfig

_ENV_TO_CONFIG: dict[str, str] = {
    "MPG_EPOCHS": "epochs",
    "MPG_BATCH_SIZE": "batch_size",
    "MPG_LEARNING_RATE": "learning_rate",
    "MPG_INIT_LIMIT": "init_limit",
    "MPG_PREDICTION_POINTS": "prediction_points",
    "MPG_SEED": "seed",
    "MPG_OUTPUT_ROOT": "output_root",
}

_INT_FIELDS = {"epochs", "batch_size", "prediction_points", "seed"}
_FLOAT_FIELDS = {"learning_rate", "init_limit"}


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    dotenv_path: Path | None = None,
) -> AppConfig:
    """Load config from defaults, yaml file, .env, env, and explicit overrides."""
    payload: dict[str, Any] = {}
    dotenv_to_load = dotenv_path if dotenv_path is not None else Path(".env")
    load_dotenv(dotenv_path=dotenv_to_load, override=False)

    if config_path is not None:
        if not config_path.exists():
            raise InvalidConfigError(f"Config file does not exist: {config_path}")
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise InvalidConfigError("Config file must contain a top-level mapping.")
        payload.update(raw)

    for env_key, config_key in _ENV_TO_CONFIG.items():
        env_value = os.getenv(env_key)
        if env_value is None or env_value == "":
            continue
        payload[config_key] = _coerce_env_value(env_key, config_key, env_value)

    if overrides:
        for key, value in overrides.items():
            if value is not None:
                payload[key] = value

    try:
        return AppConfig(**payload)
    except ValidationError as exc:
        raise InvalidConfigError(f"Invalid configuration: {exc}") from exc


def ensure_output_root(path_value: str) -> Path:
    """Ensure output root exists."""
    path = Path(path_value)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _coerce_env_value(env_key: str, config_key: str, env_value: str) -> Any:
    try:
        if config_key in _INT_FIELDS:
            return int(env_value)
        if config_key in _FLOAT_FIELDS:
            return float(env_value)
    except ValueError as exc:
        raise InvalidConfigError(f"{env_key} must be numeric, got '{env_value}'.") from exc
    return env_value
