"""Logging for the anchoring service.

Everything goes to stdout through one root handler.  LOG_JSON picks the
shape: a readable single line for a terminal, or one JSON object per line
for the aggregator.

Every record carries ``request_id`` (see RequestContextFilter).  Services
that talk to the ledger pass ``credential_id``, ``quiz_id``, ``operation``
and ``tx_hash`` through ``extra=`` so a transaction hash can be followed
from approve through mint to reconcile.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

# Libraries that log every request/RPC at DEBUG.
_CHATTY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "httpcore",
    "httpx",
    "urllib3",
    "web3",
)


class RequestContextFilter(logging.Filter):
    """Stamps the current request_id onto records that lack one.

    Installed on the handler: filters on the root logger never see records
    propagated up from child loggers.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created).astimezone().isoformat(
        timespec="milliseconds"
    )


class _TextFormatter(logging.Formatter):
    """``<time> <LEVEL> [<request_id>] <logger>  <message>``

    WARNING and above also get ``[file:line]``.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = "%s %-8s [%s] %s  %s" % (
            _timestamp(record),
            record.levelname,
            getattr(record, "request_id", "-"),
            record.name,
            record.getMessage(),
        )
        if record.levelno >= logging.WARNING:
            line += f"  [{record.filename}:{record.lineno}]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _JsonFormatter(logging.Formatter):
    """One JSON object per record; known context fields become top-level keys."""

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
        "user_id",
        "credential_id",
        "quiz_id",
        "operation",
        "tx_hash",
    )

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key))
            for key in self._CONTEXT_FIELDS
            if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Replace the root handlers with a single stdout handler.

    Unknown level names fall back to INFO.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _TextFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
