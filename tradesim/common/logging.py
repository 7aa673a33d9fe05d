"""Structured logging setup for tradesim.

Each line reads ``timestamp | LEVEL | [run=<id> |] TAG | message | {data}``.
The run id appears only for lines emitted inside a backtest run, and
values under secret-looking keys are masked before anything is written.

Usage:
    from tradesim.common.logging import get_logger
    logger = get_logger("MARKET")
    logger.info("History fetched", extra={"data": {"symbol": "AAPL", "bars": 251}})
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import UTC, datetime

MODULE_TAGS = frozenset({"MARKET", "STRATEGY", "SIMULATOR", "BACKTEST", "SYSTEM", "TEST"})

DEFAULT_TAG = "SYSTEM"

# Bound by run_backtest() for the duration of one run
run_id_var: ContextVar[str] = ContextVar("run_id", default="")

_SECRET_VALUE_PATTERN = re.compile(
    r'"([^"]*(?:key|secret|password|token|private|credential)[^"]*)":\s*"([^"]*)"',
    re.IGNORECASE,
)


def _redact_secrets(text: str) -> str:
    """Mask JSON string values whose key name looks secret."""
    return _SECRET_VALUE_PATTERN.sub(r'"\1": "[REDACTED]"', text)


def _render_data(data: object) -> str:
    if data is None:
        return ""
    try:
        rendered = json.dumps(data, default=str)
    except (TypeError, ValueError):
        rendered = str(data)
    return _redact_secrets(rendered)


class StructuredFormatter(logging.Formatter):
    """Pipe-separated, human-readable structured lines.

    Example:
        2025-02-15T10:30:00Z | INFO | run=1a2b3c4d | BACKTEST | Backtest finished | {"outcome": "success"}
    """

    def format(self, record: logging.LogRecord) -> str:
        fields = [
            datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            record.levelname,
        ]
        run_id = run_id_var.get()
        if run_id:
            fields.append(f"run={run_id[:8]}")
        fields.append(getattr(record, "module_tag", DEFAULT_TAG))
        fields.append(_redact_secrets(record.getMessage()))

        data = _render_data(getattr(record, "data", None))
        if data:
            fields.append(data)

        line = " | ".join(fields)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ModuleTagLogger(logging.LoggerAdapter):
    """Adapter that stamps every record with its module tag.

    Structured fields go in ``extra={"data": {...}}``; the adapter keeps
    them and adds ``module_tag`` alongside.
    """

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = dict(kwargs.get("extra") or {})
        extra["module_tag"] = self.extra["module_tag"]
        kwargs["extra"] = extra
        return msg, kwargs


_loggers: dict[str, ModuleTagLogger] = {}


def get_logger(module_tag: str) -> ModuleTagLogger:
    """Return the structured logger for ``module_tag``.

    Unknown tags are logged under SYSTEM. Loggers are cached per tag and
    write to stdout without propagating to the root logger.

    Args:
        module_tag: One of MODULE_TAGS (MARKET, STRATEGY, BACKTEST, ...).
    """
    tag = module_tag if module_tag in MODULE_TAGS else DEFAULT_TAG
    cached = _loggers.get(tag)
    if cached is not None:
        return cached

    base = logging.getLogger(f"tradesim.{tag.lower()}")
    if not base.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        base.addHandler(handler)
        base.setLevel(logging.DEBUG)
        base.propagate = False

    adapter = ModuleTagLogger(base, {"module_tag": tag})
    _loggers[tag] = adapter
    return adapter
