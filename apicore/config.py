"""Environment driven settings for API clients built on the pipeline."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

BASE_URL_ENV = "API_BASE_URL"
TIMEOUT_ENV = "API_TIMEOUT_SECONDS"
LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class APISettings:
    """Settings shared by every endpoint unless the endpoint overrides them."""

    base_url: str = ""
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL


def _parse_timeout(raw: str | None) -> float:
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError as exc:
        raise ValueError(f"{TIMEOUT_ENV} must be a number of seconds, got {raw!r}.") from exc
    if timeout <= 0:
        raise ValueError(f"{TIMEOUT_ENV} must be positive, got {raw!r}.")
    return timeout


def get_settings() -> APISettings:
    """Resolve settings from the process environment (and ``.env``, if present)."""

    return APISettings(
        base_url=os.getenv(BASE_URL_ENV, "").strip(),
        timeout_seconds=_parse_timeout(os.getenv(TIMEOUT_ENV)),
        log_level=os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper(),
    )


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or get_settings().log_level).upper())


__all__ = [
    "APISettings",
    "BASE_URL_ENV",
    "DEFAULT_TIMEOUT_SECONDS",
    "LOG_LEVEL_ENV",
    "TIMEOUT_ENV",
    "configure_logging",
    "get_settings",
]
