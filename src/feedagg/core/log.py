"""Logging setup for the feedagg process.

Library modules only create loggers with ``logging.getLogger(__name__)``;
handlers are installed once by the process entry point.

Example:
    >>> import logging
    >>> from feedagg.core.log import configure_logging
    >>> configure_logging("WARNING", "json")
    >>> logging.getLogger("feedagg").getEffectiveLevel() == logging.WARNING
    True
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from rich.console import Console
from rich.logging import RichHandler


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Install a single root handler.

    Args:
        level: Logging level name.
        fmt: ``"console"`` for Rich output, ``"json"`` for structured lines.
    """
    if fmt == "console":
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())
    logging.getLogger("feedagg").setLevel(level.upper())
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
