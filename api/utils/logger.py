"""
Logging for the tutor service.

One rotating file plus the console, shared by the `feynman` app logger and the
`agents` / `infra` package loggers. Every record carries the HTTP request id
and the learning session id from context vars, so a single session can be
followed through the log with grep.
"""

from __future__ import annotations

import copy
import logging
import os
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

REQUEST_ID: ContextVar[str] = ContextVar("request_id", default="-")
SESSION_ID: ContextVar[str] = ContextVar("session_id", default="-")

APP_LOGGER = "feynman"
_PACKAGE_LOGGERS = ("agents", "infra")

LOG_FORMAT = (
    "%(asctime)s %(levelname)-8s %(name)s "
    "rid=%(request_id)s sid=%(session_id)s %(filename)s:%(lineno)d %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 10


class ContextFilter(logging.Filter):
    """Stamps request_id and session_id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.request_id = REQUEST_ID.get()
        record.session_id = SESSION_ID.get()
        return True


def _ansi(code: str, text: str) -> str:
    return f"\x1b[{code}m{text}\x1b[0m"


class ColorFormatter(logging.Formatter):
    """Console formatter: coloured level, dimmed logger name, highlighted session id."""

    LEVEL_CODES = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "35",
    }

    def __init__(self, *args, enable_color: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.enable_color = enable_color

    def format(self, record: logging.LogRecord) -> str:
        if not self.enable_color:
            return super().format(record)
        painted = copy.copy(record)
        painted.levelname = _ansi(self.LEVEL_CODES.get(record.levelno, "37"), record.levelname)
        painted.name = _ansi("2", record.name)
        if getattr(record, "session_id", "-") != "-":
            painted.session_id = _ansi("34", record.session_id)
        return super().format(painted)


def _wants_color(stream) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _level(name: Optional[str]) -> int:
    return logging.getLevelNamesMapping().get((name or "INFO").upper(), logging.INFO)


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(str(path), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColorFormatter(LOG_FORMAT, DATE_FORMAT, enable_color=_wants_color(sys.stdout)))
    return handler


def configure_logging(
    *,
    log_dir: str | Path | None = None,
    log_file: str | None = None,
    level: str | None = None,
) -> logging.Logger:
    """
    Attach the file and console handlers once and return the app logger.
    Unset arguments fall back to LOG_DIR / LOG_FILE / LOG_LEVEL from settings.
    Later calls return the already configured logger unchanged.
    """
    app_logger = logging.getLogger(APP_LOGGER)
    if getattr(app_logger, "_configured", False):
        return app_logger

    from api.config import get_settings

    settings = get_settings()
    directory = Path(log_dir or settings.log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    numeric_level = _level(level or settings.log_level)

    context_filter = ContextFilter()
    handlers = [
        _file_handler(directory / (log_file or settings.log_file), numeric_level),
        _console_handler(numeric_level),
    ]
    for handler in handlers:
        handler.addFilter(context_filter)

    for name in (APP_LOGGER, *_PACKAGE_LOGGERS):
        target = logging.getLogger(name)
        target.setLevel(numeric_level)
        target.propagate = False
        for handler in handlers:
            target.addHandler(handler)

    app_logger._configured = True  # type: ignore[attr-defined]
    app_logger.debug("logging to %s at %s", directory, logging.getLevelName(numeric_level))
    return app_logger


def set_request_id(request_id: Optional[str] = None) -> str:
    rid = request_id or uuid.uuid4().hex[:12]
    REQUEST_ID.set(rid)
    return rid


def clear_request_id() -> None:
    REQUEST_ID.set("-")


def set_session_id(session_id: Optional[str]) -> None:
    SESSION_ID.set(session_id or "-")


@contextmanager
def log_request(logger: logging.Logger, name: str) -> Iterator[None]:
    """Log how long the wrapped block took, and whether it raised."""
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        logger.warning("%s failed duration_ms=%d error=%s", name, (time.perf_counter() - started) * 1000, e)
        raise
    logger.info("%s ok duration_ms=%d", name, (time.perf_counter() - started) * 1000)
