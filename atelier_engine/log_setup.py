"""Logging helpers."""

from __future__ import annotations

import logging

from .settings import AtelierSettings


def setup_logging(settings: AtelierSettings) -> logging.Logger:
    """Configure and return the package logger.

    Leaves an already configured root logger untouched.
    """
    logger = logging.getLogger("atelier_engine")
    if logging.getLogger().handlers:
        return logger
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_path = settings.log_dir / "atelier.log"
    file_error: OSError | None = None
    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    except OSError as exc:
        file_error = exc
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
    if file_error is not None:
        logger.warning("Logging to stderr only; could not open %s: %s", log_path, file_error)
    return logger
