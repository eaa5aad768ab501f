# koolpresets/utils/logger.py
from __future__ import annotations

"""Logging setup
----------------
Human-readable records go to stderr through rich, so script output captured
on stdout stays clean. With LOG_TO_FILE the same records are appended to a
rotating file as one JSON object per line, including any bound context
(command, definition, group, step).
"""

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from koolpresets.utils.config import LogLevel, Settings, get_settings


__all__ = [
    "get_logger",
    "set_log_level",
    "reset_logging",
    "bind",
    "unbind",
    "log_with_context",
]

ROOT_LOGGER = "koolpresets"

_handlers: list[logging.Handler] = []
_context: Dict[str, Any] = {}  # shared by every adapter from get_logger()


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg, then bound context."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: Dict[str, Any] = {
            "ts": ts.strftime("%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        ctx = getattr(record, "extra", None)
        if isinstance(ctx, dict):
            payload.update({k: v for k, v in ctx.items() if v is not None})
        return json.dumps(payload, ensure_ascii=False, default=str)


def _level_for(settings: Settings) -> int:
    if settings.KOOL_VERBOSE:
        return logging.DEBUG
    name = settings.LOG_LEVEL.value if isinstance(settings.LOG_LEVEL, LogLevel) else str(settings.LOG_LEVEL)
    return logging.getLevelName(name.upper())


def _build_handlers(settings: Settings, level: int) -> list[logging.Handler]:
    console = Console(stderr=True, color_system="auto" if settings.COLORIZED_OUTPUT else None)
    rich_handler = RichHandler(console=console, show_time=False, show_path=False, markup=False)
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    handlers: list[logging.Handler] = [rich_handler]

    if settings.LOG_TO_FILE:
        settings.ensure_dirs()
        file_handler = RotatingFileHandler(
            filename=str(settings.LOG_FILE),
            maxBytes=2 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
            delay=True,
        )
        file_handler.setFormatter(JsonFormatter())
        handlers.append(file_handler)

    for h in handlers:
        h.setLevel(level)
    return handlers


def _ensure_configured() -> logging.Logger:
    """Attach handlers to the package logger on first use."""
    root = logging.getLogger(ROOT_LOGGER)
    if _handlers:
        return root
    settings = get_settings()
    level = _level_for(settings)
    _handlers.extend(_build_handlers(settings, level))
    for h in _handlers:
        root.addHandler(h)
    root.setLevel(level)
    root.propagate = False
    return root


def reset_logging() -> None:
    """Detach and close handlers so the next get_logger() re-reads settings."""
    root = logging.getLogger(ROOT_LOGGER)
    while _handlers:
        h = _handlers.pop()
        root.removeHandler(h)
        h.close()
    _context.clear()


def get_logger(name: Optional[str] = None) -> logging.LoggerAdapter:
    """Logger under the `koolpresets` hierarchy carrying the bound context."""
    _ensure_configured()
    if not name or name == ROOT_LOGGER:
        base = logging.getLogger(ROOT_LOGGER)
    elif name.startswith(ROOT_LOGGER + "."):
        base = logging.getLogger(name)
    else:
        base = logging.getLogger(f"{ROOT_LOGGER}.{name}")
    return logging.LoggerAdapter(base, extra={"extra": _context})


def set_log_level(level: LogLevel | str) -> None:
    root = _ensure_configured()
    name = level.value if isinstance(level, LogLevel) else level
    py_level = logging.getLevelName(name.upper())
    if not isinstance(py_level, int):
        py_level = logging.INFO
    root.setLevel(py_level)
    for h in _handlers:
        h.setLevel(py_level)


def bind(**kwargs: Any) -> None:
    """Attach context (e.g. command="preset", definition="adonis") to later records."""
    _context.update(kwargs)


def unbind(*keys: str) -> None:
    for k in keys:
        _context.pop(k, None)


def log_with_context(logger: logging.LoggerAdapter, **kwargs: Any) -> logging.LoggerAdapter:
    """
    Adapter that adds scoped fields on top of the bound context and of any
    fields `logger` already carries:
        step_log = log_with_context(group_log, step=2, kind="merge")
    """
    merged = dict(_context)
    inherited = logger.extra.get("extra") if isinstance(logger.extra, dict) else None
    if isinstance(inherited, dict) and inherited is not _context:
        merged.update(inherited)
    merged.update(kwargs)
    return logging.LoggerAdapter(logger.logger, extra={"extra": merged})
