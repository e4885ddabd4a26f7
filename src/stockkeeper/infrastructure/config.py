"""Runtime configuration read from the environment.

A ``.env`` file in the working directory is loaded first (python-dotenv);
real environment variables win over it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from stockkeeper.domain.exceptions import ConfigurationError, ValidationError
from stockkeeper.domain.model.product import (
    DEFAULT_MAX_THRESHOLD,
    DEFAULT_MIN_THRESHOLD,
    validate_thresholds,
)
from stockkeeper.domain.service.movement_log import DEFAULT_HISTORY_LIMIT

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
DATA_DIR = Path(__file__).resolve().parents[3] / "data"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    checkout_timeout: float | None = None
    pending_order_ttl_minutes: int | None = None
    default_min_threshold: int = DEFAULT_MIN_THRESHOLD
    default_max_threshold: int = DEFAULT_MAX_THRESHOLD
    history_limit: int = DEFAULT_HISTORY_LIMIT


def default_database_url() -> str:
    return f"sqlite+aiosqlite:///{DATA_DIR / 'stockkeeper.db'}"


def load_settings(env: dict[str, str] | None = None) -> Settings:
    """Build Settings from ``env`` (defaults to ``os.environ`` after .env)."""
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    log_level = env.get("STOCKKEEPER_LOG_LEVEL", "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level '{log_level}'")

    timeout = _optional_float(env, "STOCKKEEPER_CHECKOUT_TIMEOUT")
    if timeout is not None and timeout <= 0:
        raise ConfigurationError("STOCKKEEPER_CHECKOUT_TIMEOUT must be positive")

    ttl = _optional_int(env, "STOCKKEEPER_PENDING_ORDER_TTL_MINUTES")
    if ttl is not None and ttl <= 0:
        raise ConfigurationError("STOCKKEEPER_PENDING_ORDER_TTL_MINUTES must be positive")

    min_threshold = _optional_int(env, "STOCKKEEPER_DEFAULT_MIN_THRESHOLD")
    max_threshold = _optional_int(env, "STOCKKEEPER_DEFAULT_MAX_THRESHOLD")
    min_threshold = DEFAULT_MIN_THRESHOLD if min_threshold is None else min_threshold
    max_threshold = DEFAULT_MAX_THRESHOLD if max_threshold is None else max_threshold
    try:
        validate_thresholds(min_threshold, max_threshold)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid default thresholds: {exc}") from exc

    history_limit = _optional_int(env, "STOCKKEEPER_HISTORY_LIMIT")
    if history_limit is not None and history_limit <= 0:
        raise ConfigurationError("STOCKKEEPER_HISTORY_LIMIT must be positive")

    return Settings(
        database_url=env.get("STOCKKEEPER_DATABASE_URL") or default_database_url(),
        log_level=log_level,
        checkout_timeout=timeout,
        pending_order_ttl_minutes=ttl,
        default_min_threshold=min_threshold,
        default_max_threshold=max_threshold,
        history_limit=history_limit or DEFAULT_HISTORY_LIMIT,
    )


def _optional_int(env: dict[str, str], key: str) -> int | None:
    raw = env.get(key, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from None


def _optional_float(env: dict[str, str], key: str) -> float | None:
    raw = env.get(key, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from None
