from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Settings:
    """
    Service settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'firestore'
    - FIREBASE_CREDENTIALS_PATH: service-account JSON for the firestore backend.
      When unset, application default credentials are used.
    - SCAN_LIMIT: maximum number of due items fetched per kind and run. Default 50
    - RUN_INTERVAL_MINUTES: period of the in-process interval trigger. Default 5
    - ENABLE_INTERVAL_TRIGGER: 'true' to run the scheduler inside the app process (default: false)
    - RUN_DEADLINE_SECONDS: time budget of a single run; '0' disables it. Default 240
    - INTERNAL_TRIGGER_TOKEN: when set, the run endpoint requires a matching X-Internal-Token header
    - LOG_LEVEL: root log level. Default 'INFO'
    """

    persistence_backend: str
    firebase_credentials_path: Optional[str]
    scan_limit: int
    run_interval_minutes: int
    enable_interval_trigger: bool
    run_deadline_seconds: Optional[float]
    internal_trigger_token: Optional[str]
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_positive_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_deadline(value: str, default: float) -> Optional[float]:
    """
    Parse the run deadline in seconds. Zero or a negative number disables the
    deadline; garbage falls back to the default.
    """
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else None


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return service settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "firestore"}:
        # Fallback to memory if unsupported
        backend = "memory"

    credentials_path = os.getenv("FIREBASE_CREDENTIALS_PATH") or None
    token = (os.getenv("INTERNAL_TRIGGER_TOKEN") or "").strip() or None

    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        log_level = "INFO"

    return Settings(
        persistence_backend=backend,
        firebase_credentials_path=credentials_path,
        scan_limit=_parse_positive_int(_get_env("SCAN_LIMIT", "50"), 50),
        run_interval_minutes=_parse_positive_int(_get_env("RUN_INTERVAL_MINUTES", "5"), 5),
        enable_interval_trigger=_parse_bool(_get_env("ENABLE_INTERVAL_TRIGGER", "false"), False),
        run_deadline_seconds=_parse_deadline(_get_env("RUN_DEADLINE_SECONDS", "240"), 240.0),
        internal_trigger_token=token,
        log_level=log_level,
    )
