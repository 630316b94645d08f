"""Config loader — reads YAML, applies SIGNAL_DESK_* env var overrides."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from signal_desk.config.schema import AppConfig

# env var -> (section, key)
_ENV_OVERRIDES = {
    "SIGNAL_DESK_DATABASE_URL": ("database", "url"),
    "SIGNAL_DESK_LOG_LEVEL": ("logging", "level"),
    "SIGNAL_DESK_LOG_FORMAT": ("logging", "format"),
    "SIGNAL_DESK_BOT_API_URL": ("messaging", "bot_api_url"),
}


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from a YAML file, then apply env var overrides.

    If *path* is None or the file doesn't exist, returns defaults.

    Environment variable overrides:
        SIGNAL_DESK_DATABASE_URL  -> database.url
        SIGNAL_DESK_LOG_LEVEL     -> logging.level
        SIGNAL_DESK_LOG_FORMAT    -> logging.format
        SIGNAL_DESK_BOT_API_URL   -> messaging.bot_api_url
    """
    data: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}

    for env_var, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data.setdefault(section, {})[key] = value

    return AppConfig.model_validate(data)


DEFAULT_CONFIG_PATH = "config.yaml"


def config_path() -> str:
    """Config file named by ``SIGNAL_DESK_CONFIG``, else ``config.yaml``."""
    return os.environ.get("SIGNAL_DESK_CONFIG", DEFAULT_CONFIG_PATH)
