"""Load and validate environment variables. Uses python-dotenv.

This module is intentionally thin and side-effect free except for loading `.env`.
Callers should use the accessor functions below (or the `AppConfig` built by
`load_app_config`) rather than reading `os.environ` directly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _project_root() -> Path:
    """Resolve project root (the directory holding the minbar package)."""
    return Path(__file__).resolve().parent.parent.parent


def load_config() -> None:
    """
    Load .env from project root. Idempotent; safe to call multiple times.
    Uses override=True to ensure .env values take precedence over existing env vars.
    """
    env_path = _project_root() / ".env"
    load_dotenv(env_path, override=True)


def get_required(key: str) -> str:
    """
    Get required env var. Raises if missing or empty.

    Raises:
        ValueError: If key is missing or empty after trimming.
    """
    load_config()
    val = os.getenv(key, "").strip()
    if not val:
        raise ValueError(
            f"Missing required environment variable: {key}. "
            "Set it in .env or export it."
        )
    return val


def get_optional(key: str, default: str = "") -> str:
    """Get optional env var; return default if missing or empty."""
    load_config()
    val = os.getenv(key, "").strip()
    return val if val else default


def get_optional_int(key: str, default: int) -> int:
    """Get optional env var as int; return default if missing or invalid."""
    load_config()
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_optional_float(key: str, default: float) -> float:
    """Get optional env var as float; return default if missing or invalid."""
    load_config()
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# --- Public config accessors ---

def janus_server() -> str:
    """Optional: Janus gateway HTTP endpoint. Default http://localhost:8088/janus."""
    return get_optional("JANUS_SERVER", "http://localhost:8088/janus").rstrip("/")


def stream_api_base() -> str:
    """Optional: base URL of the streaming backend (without the /stream suffix)."""
    return get_optional("STREAM_API_BASE", "http://localhost:8080/api/v1").rstrip("/")


def social_api_base() -> str:
    """Optional: base URL of the posts/comments/follow backend."""
    return get_optional("SOCIAL_API_BASE", "http://localhost:9001").rstrip("/")


def api_token() -> str | None:
    """Optional: bearer token sent to the backends."""
    val = get_optional("MINBAR_API_TOKEN", "")
    return val or None


def stream_poll_interval() -> float:
    """Optional: seconds between stream status polls. Default 5."""
    val = get_optional_float("STREAM_POLL_INTERVAL_SECONDS", 5.0)
    return val if val > 0 else 5.0


def request_timeout() -> float:
    """Optional: HTTP timeout in seconds. Default 15."""
    return get_optional_float("HTTP_TIMEOUT_SECONDS", 15.0)


def store_path() -> Path:
    """Optional: JSON file backing the local key-value store."""
    raw = get_optional("MINBAR_STORE_PATH", "")
    if raw:
        return Path(raw).expanduser()
    return _project_root() / "data" / "local_store.json"


def log_level() -> int:
    """Optional: LOG_LEVEL name (DEBUG, INFO, ...). Default INFO."""
    name = get_optional("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def project_root() -> Path:
    """Project root directory."""
    return _project_root()


@dataclass(frozen=True)
class AppConfig:
    """Startup configuration handed to services instead of module globals."""

    janus_server: str
    stream_api_base: str
    social_api_base: str
    api_token: str | None
    poll_interval: float
    request_timeout: float
    store_path: Path
    log_level: int


def load_app_config() -> AppConfig:
    """Snapshot every accessor into one immutable AppConfig."""
    return AppConfig(
        janus_server=janus_server(),
        stream_api_base=stream_api_base(),
        social_api_base=social_api_base(),
        api_token=api_token(),
        poll_interval=stream_poll_interval(),
        request_timeout=request_timeout(),
        store_path=store_path(),
        log_level=log_level(),
    )
