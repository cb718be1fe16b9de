"""Logging setup from LOG_LEVEL / LOG_FILE. Called once at process start (server lifespan or CLI)."""
from __future__ import annotations

import logging
import os

from transrelay.config import Settings, get_settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.LOG_FILE:
        log_dir = os.path.dirname(settings.LOG_FILE)
        try:
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))
        except OSError as e:
            logging.getLogger(__name__).warning("Log file %s unavailable: %s", settings.LOG_FILE, e)
    logging.basicConfig(level=level, format=_FORMAT, handlers=handlers)
