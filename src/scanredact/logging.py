"""Structured logging helpers (JSON).

Use `get_logger(__name__)` to emit JSON logs. Fields passed through ``extra=``
are merged into the payload, so callers log counts and offsets as structured
keys rather than formatting them into the message.
"""

from __future__ import annotations

import logging
import os

import orjson

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED = set(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode("utf-8")


def get_logger(name: str = "scanredact") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(JsonFormatter())
        logger.addHandler(h)
        logger.setLevel(os.environ.get("SCANREDACT_LOG_LEVEL", "INFO").upper())
        logger.propagate = False
    return logger
