"""
Structured logging configuration for migsum.

CI runs usually set ``LOG_FORMAT=json`` so verification logs can be shipped
as machine-parseable records; locally the human-readable format is used.

Logs go to stderr: stdout carries the command result itself, and with
``--format json`` it must stay a single parseable JSON document.

Usage
-----
Call :func:`configure_logging` once at the top of an entry point
**before** any logger calls.

    >>> from migsum.src.logging_config import configure_logging
    >>> configure_logging()          # reads LOG_FORMAT and LOG_LEVEL from env
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone


class _JSONFormatter(logging.Formatter):
    """Emit each log record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


def configure_logging(level: str | None = None) -> None:
    """Set up the root logger based on environment variables.

    Parameters
    ----------
    level : str | None
        Overrides ``LOG_LEVEL`` when given (e.g. from ``--verbose``).

    Environment variables
    ---------------------
    LOG_FORMAT : str
        ``"json"`` for structured JSON output.
        Anything else (or unset) for human-readable console output.
    LOG_LEVEL : str
        Standard Python log level name (default: ``"INFO"``).
    """
    log_format = os.environ.get("LOG_FORMAT", "text").lower()
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    root = logging.getLogger()
    root.setLevel(log_level)

    # Remove existing handlers to avoid duplicate output
    root.handlers.clear()

    # stderr: stdout carries the command's own output (e.g. --format json)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)

    if log_format == "json":
        handler.setFormatter(_JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
            )
        )

    root.addHandler(handler)
