"""Configuration management."""

import copy
import logging
import os
import yaml
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "messaging": {"platform": "line"},
    "line": {
        "channel_access_token": None,
        "channel_secret": None,
        "api_base": "https://api.line.me",
    },
    "telegram": {"bot_token": None, "secret_token": None},
    "store": {
        "backend": "sqlite",
        "path": "data/reminders.db",
        "url": "redis://localhost:6379/0",
        "prefix": "reminders",
        "user_index": True,
    },
    "parser": {"languages": ["en"], "placeholder_task": "Reminder"},
    "sweep": {"give_up_after_minutes": 1440},
    "cron": {"token": None},
    "timezone": None,
    "api": {"host": "127.0.0.1", "port": 8000},
    "logging": {"level": "INFO", "file": None},
}

# Environment variable -> dot-notation key
ENV_OVERRIDES = {
    "LINE_CHANNEL_ACCESS_TOKEN": "line.channel_access_token",
    "LINE_CHANNEL_SECRET": "line.channel_secret",
    "TELEGRAM_BOT_TOKEN": "telegram.bot_token",
    "TELEGRAM_SECRET_TOKEN": "telegram.secret_token",
    "REDIS_URL": "store.url",
    "CRON_TOKEN": "cron.token",
    "REMINDER_BOT_PLATFORM": "messaging.platform",
    "REMINDER_BOT_STORE": "store.backend",
    "REMINDER_BOT_TIMEZONE": "timezone",
}

_config: Dict[str, Any] = {}
_base_path: Path = None


def load_config(config_path: str = None) -> Dict[str, Any]:
    """Load configuration from YAML file, then apply environment overrides."""
    global _config, _base_path

    if config_path is None:
        # Try to find config in common locations
        possible_paths = [
            Path("config/config.yaml"),
            Path("config.yaml"),
            Path.home() / ".config" / "reminder_bot" / "config.yaml",
        ]
        for path in possible_paths:
            if path.exists():
                config_path = str(path)
                break

    loaded: Dict[str, Any] = {}
    if config_path is None:
        logger.info("No config.yaml found, using defaults and environment variables")
        _base_path = Path.cwd()
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file {config_path} not found. Copy config/config.example.yaml "
                "to config/config.yaml and fill in your values."
            )
        _base_path = config_path.resolve().parent.parent  # Project root
        with open(config_path) as f:
            loaded = yaml.safe_load(f) or {}

    _config = _merge(copy.deepcopy(DEFAULTS), loaded)
    _apply_env_overrides()

    # Resolve relative paths
    _resolve_paths()

    return _config


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def _apply_env_overrides():
    for env_name, key in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            set_value(key, value)


def _resolve_paths():
    """Resolve relative paths in config to absolute paths."""
    store = _config.get("store") or {}
    if store.get("path"):
        path = Path(store["path"])
        if not path.is_absolute():
            store["path"] = str(_base_path / path)

    log_cfg = _config.get("logging") or {}
    if log_cfg.get("file"):
        path = Path(log_cfg["file"])
        if not path.is_absolute():
            log_cfg["file"] = str(_base_path / path)


def get_config() -> Dict[str, Any]:
    """Get the loaded configuration."""
    if not _config:
        load_config()
    return _config


def get(key: str, default: Any = None) -> Any:
    """Get a config value by dot-notation key (e.g., 'line.channel_secret')."""
    if not _config:
        load_config()

    keys = key.split(".")
    value = _config
    for k in keys:
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default
    return default if value is None else value


def set_value(key: str, value: Any):
    """Set a config value by dot-notation key, creating sections as needed."""
    keys = key.split(".")
    section = _config
    for k in keys[:-1]:
        section = section.setdefault(k, {})
    section[keys[-1]] = value
