"""
config.py
Settings read from the environment (and an optional .env file).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from engine import RENEWAL_ANCHORS
from exceptions import ConfigError

BASE_DIR = Path(__file__).resolve().parent

STORE_BACKENDS = ("memory", "sqlite", "http")


@dataclass(frozen=True)
class Settings:
    store_backend: str = "sqlite"
    db_file: Path = BASE_DIR / "gym.db"
    api_url: str = "http://localhost:8000/api"
    api_timeout: float = 10.0
    sweep_interval: int = 60  # seconds
    renewal_anchor: str = "today"
    log_level: str = "INFO"


def _number(env, key: str, default, cast):
    raw = env.get(key)
    if raw is None or not str(raw).strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got '{raw}'") from None
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got '{raw}'")
    return value


def load_settings(env=None) -> Settings:
    """
    Build Settings from env (defaults to os.environ after loading .env).
    """
    if env is None:
        load_dotenv(BASE_DIR / ".env")
        env = os.environ

    defaults = Settings()

    backend = env.get("GYM_STORE_BACKEND", defaults.store_backend).strip().lower()
    if backend not in STORE_BACKENDS:
        raise ConfigError(f"GYM_STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}, got '{backend}'")

    anchor = env.get("GYM_RENEWAL_ANCHOR", defaults.renewal_anchor).strip().lower()
    if anchor not in RENEWAL_ANCHORS:
        raise ConfigError(f"GYM_RENEWAL_ANCHOR must be one of {', '.join(RENEWAL_ANCHORS)}, got '{anchor}'")

    db_file = env.get("GYM_DB_FILE")

    return Settings(
        store_backend=backend,
        db_file=Path(db_file) if db_file else defaults.db_file,
        api_url=env.get("GYM_API_URL", defaults.api_url),
        api_timeout=_number(env, "GYM_API_TIMEOUT", defaults.api_timeout, float),
        sweep_interval=_number(env, "GYM_SWEEP_INTERVAL", defaults.sweep_interval, int),
        renewal_anchor=anchor,
        log_level=env.get("GYM_LOG_LEVEL", defaults.log_level).strip().upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
