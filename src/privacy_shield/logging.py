from __future__ import annotations

import json
import logging
import os


class JsonFormatter(logging.Formatter):
    """Small JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str | int | None = None) -> None:
    """Configure root logging to stderr.

    ``LOG_LEVEL`` sets the default level; ``LOG_FORMAT=json`` switches to
    one JSON object per line.  Log messages carry counts and keys only,
    never the masked values themselves.
    """

    if level is None:
        level = os.getenv("LOG_LEVEL", "WARNING").upper()
    elif isinstance(level, str):
        level = level.upper()

    fmt = os.getenv("LOG_FORMAT", "plain").lower()
    if fmt == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler], force=True)
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%H:%M:%S",
            force=True,
        )
