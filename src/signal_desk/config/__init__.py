"""Configuration system."""

from signal_desk.config.loader import config_path, load_config
from signal_desk.config.schema import AppConfig

__all__ = ["AppConfig", "config_path", "load_config"]
