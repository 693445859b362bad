# frontdesk/logging_config.py
"""
Front Desk Visitor Log - Logging Setup

One root configuration shared by the API and the tools/ scripts: a stdout
stream plus a size-rotated file under LOG_DIR. Every line carries the
request id of the HTTP call that produced it ("-" outside a request).

QueryLogger times the read-side visitor queries (search, history, export)
and reports them at INFO, WARNING when slow, ERROR when they raise.
"""

from __future__ import annotations

import logging
import sys
import time
import uuid
from logging.handlers import RotatingFileHandler
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from .config import (
    LOG_FILE,
    LOG_MAX_BYTES,
    LOG_BACKUP_COUNT,
    LOG_DATE_FORMAT,
    SLOW_QUERY_THRESHOLD_MS,
)

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"

_request_id: ContextVar[str] = ContextVar("request_id", default="-")


# ==========================================================
# Request id
# ==========================================================
def get_request_id() -> str:
    return _request_id.get()


def set_request_id(request_id: str | None = None) -> str:
    """Bind a request id to the current context (8 hex chars if not given)."""
    rid = request_id or uuid.uuid4().hex[:8]
    _request_id.set(rid)
    return rid


class RequestIdFilter(logging.Filter):
    """Stamps record.request_id so LOG_FORMAT can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


# ==========================================================
# Root configuration
# ==========================================================
def setup_logging(level: int = logging.INFO, log_file: Path | None = None) -> None:
    """
    Replace the root handlers with console + rotating file output.

    Safe to call more than once; earlier handlers are dropped.
    """
    log_file = log_file or LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
        RotatingFileHandler(
            log_file,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        ),
    ]

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(RequestIdFilter())
        root.addHandler(handler)

    # uvicorn access lines duplicate the request middleware's own log
    for noisy in ("uvicorn.access", "multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# ==========================================================
# Query timing
# ==========================================================
class QueryLogger:
    """
    Time one read query and log how it went.

        with QueryLogger("history", logger) as ql:
            rows = store.query(sql, params)
            ql.set_row_count(len(rows))

    Produces e.g. "query history: 12 row(s) in 3.4 ms".
    """

    def __init__(self, sql_kind: str, logger: logging.Logger | None = None):
        self.sql_kind = sql_kind
        self.logger = logger or logging.getLogger(__name__)
        self.row_count: int | None = None
        self.extra_info: dict[str, Any] = {}
        self._started = 0.0

    def __enter__(self) -> "QueryLogger":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        elapsed_ms = (time.perf_counter() - self._started) * 1000
        rows = "?" if self.row_count is None else str(self.row_count)
        extras = "".join(f", {k}={v}" for k, v in self.extra_info.items())

        if exc_type is not None:
            self.logger.error(
                "query %s failed after %.1f ms%s: %s",
                self.sql_kind, elapsed_ms, extras, exc_val,
            )
        elif elapsed_ms >= SLOW_QUERY_THRESHOLD_MS:
            self.logger.warning(
                "slow query %s: %s row(s) in %.1f ms%s",
                self.sql_kind, rows, elapsed_ms, extras,
            )
        else:
            self.logger.info(
                "query %s: %s row(s) in %.1f ms%s",
                self.sql_kind, rows, elapsed_ms, extras,
            )

    def set_row_count(self, count: int) -> None:
        self.row_count = count

    def add_info(self, key: str, value: Any) -> None:
        self.extra_info[key] = value
