# ==============================
# Logging Bootstrap
# ==============================
"""
Logging bootstrap.

Goals:
- Centralize logger configuration using Settings.logging.
- Provide structured context fields (topic, client_id, peername, sink_id).
- Keep it simple: stdlib logging + JSON-ish formatter.

The console handler carries its own level so widening the global level for trace
sinks does not flood the console.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict

from core.config.schema import Settings

CONTEXT_FIELDS = ("topic", "client_id", "peername", "sink_id")


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        # Optional structured extras
        for k in CONTEXT_FIELDS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def bootstrap_logger(settings: Settings) -> logging.Logger:
    """
    Configure root logger based on settings.
    Returns a named logger ("msgtrace").

    Must run before the trace registry is created: the registry captures the
    root level set here as the level to restore.
    """
    level = logging.getLevelName(settings.logging.level)
    root = logging.getLogger()
    root.setLevel(level)

    # clear existing handlers to avoid duplicates in reload
    root.handlers = []

    if settings.logging.console:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        if settings.logging.json_lines:
            handler.setFormatter(JsonLineFormatter())
        else:
            handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root.addHandler(handler)

    return logging.getLogger("msgtrace")
