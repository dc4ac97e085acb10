# -*- coding: utf-8 -*-
"""structlog + Logfire setup for the ledger service."""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any

import logfire
import structlog
from structlog.types import EventDict, Processor

from nft_ledger.config import Settings, get_settings

# stdlib level name -> Logfire level name
_LOGFIRE_LEVELS: dict[str, str] = {
    "DEBUG": "debug",
    "INFO": "info",
    "WARNING": "warn",
    "ERROR": "error",
    "CRITICAL": "fatal",
}


def _add_service_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp logger name, app/service identity and environment on every event."""
    stdlib_logger = getattr(logger, "_logger", None)
    event_dict["logger"] = (
        getattr(stdlib_logger, "name", None) or getattr(logger, "name", "") or ""
    )
    app = get_settings().app
    event_dict["app_name"] = app.app_name
    if app.service_name:
        event_dict["service_name"] = app.service_name
    if app.service_version:
        event_dict["service_version"] = app.service_version
    event_dict["environment"] = app.environment
    return event_dict


def _build_handlers(settings: Settings) -> list[logging.Handler]:
    """Console and/or rotating file handlers, each with its own level."""
    cfg = settings.logging
    handlers: list[logging.Handler] = []

    if cfg.log_to_console:
        console = logging.StreamHandler()
        console.setLevel(getattr(logging, cfg.console_level, logging.INFO))
        console.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(console)

    if cfg.log_to_file:
        path = Path(cfg.log_file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            path,
            when=cfg.log_file_when,
            interval=cfg.log_file_interval,
            backupCount=cfg.log_file_backup_count,
            encoding="utf-8",
            utc=cfg.log_file_utc,
        )
        file_handler.setLevel(getattr(logging, cfg.file_level, logging.INFO))
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        handlers.append(file_handler)

    return handlers


def _build_processors(settings: Settings) -> list[Processor]:
    cfg = settings.logging
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_service_context,
    ]
    if cfg.logfire_enabled:
        processors.append(logfire.StructlogProcessor())  # type: ignore[arg-type]

    if cfg.log_to_console or cfg.log_to_file:
        # File output is always JSON so it can be shipped/parsed.
        renderer: Any = (
            structlog.processors.JSONRenderer()
            if cfg.log_to_file or cfg.json_format
            else structlog.dev.ConsoleRenderer()
        )
        processors.append(renderer)
    return processors


def configure_logging(settings: Settings | None = None) -> None:
    """Configure stdlib handlers, optional Logfire export and the structlog chain."""
    settings = settings or get_settings()
    cfg = settings.logging

    handlers = _build_handlers(settings)
    if handlers:
        logging.basicConfig(level=min(h.level for h in handlers), handlers=handlers)

    if cfg.logfire_enabled:
        logfire.configure(
            token=cfg.logfire_token,
            service_name=settings.app.service_name or settings.app.app_name,
            service_version=settings.app.service_version,
            min_level=_LOGFIRE_LEVELS.get(cfg.logfire_level, "info"),  # type: ignore[arg-type]
            environment=settings.app.environment,
        )

    structlog.configure(
        processors=_build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
