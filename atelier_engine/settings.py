"""Configuration helpers for the Atelier engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .codec import THUMBNAIL_MAX_DIMENSION
from .history import HISTORY_STORAGE_KEY
from .providers.gemini import DEFAULT_EDIT_MODEL, DEFAULT_IMAGE_MODEL
from .utils import load_dotenv


GATEWAYS = ("gemini", "dryrun")


@dataclass(frozen=True, slots=True)
class AtelierSettings:
    """Resolved runtime configuration."""

    api_key: str | None = None
    image_model: str = DEFAULT_IMAGE_MODEL
    edit_model: str = DEFAULT_EDIT_MODEL
    gateway: str = "gemini"
    home_dir: Path = Path.home() / ".atelier"
    history_path: Path = Path.home() / ".atelier" / f"{HISTORY_STORAGE_KEY}.json"
    events_path: Path | None = None
    log_dir: Path = Path.home() / ".atelier" / "logs"
    log_level: str = "INFO"
    thumbnail_size: int = THUMBNAIL_MAX_DIMENSION


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


def load_settings(env_path: Path | None = None, *, gateway: str | None = None) -> AtelierSettings:
    """Return settings from a .env file and the process environment."""
    load_dotenv(env_path)

    home_dir = Path(os.getenv("ATELIER_HOME") or Path.home() / ".atelier").expanduser()
    history_raw = os.getenv("ATELIER_HISTORY_PATH")
    history_path = Path(history_raw).expanduser() if history_raw else home_dir / f"{HISTORY_STORAGE_KEY}.json"
    events_raw = os.getenv("ATELIER_EVENTS_PATH")
    events_path = Path(events_raw).expanduser() if events_raw else None

    resolved_gateway = (gateway or os.getenv("ATELIER_GATEWAY") or "gemini").strip().lower()
    if resolved_gateway not in GATEWAYS:
        resolved_gateway = "gemini"

    return AtelierSettings(
        api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
        image_model=os.getenv("ATELIER_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
        edit_model=os.getenv("ATELIER_EDIT_MODEL") or DEFAULT_EDIT_MODEL,
        gateway=resolved_gateway,
        home_dir=home_dir,
        history_path=history_path,
        events_path=events_path,
        log_dir=home_dir / "logs",
        log_level=(os.getenv("ATELIER_LOG_LEVEL") or "INFO").strip().upper(),
        thumbnail_size=_int_env("ATELIER_THUMBNAIL_SIZE", THUMBNAIL_MAX_DIMENSION),
    )
