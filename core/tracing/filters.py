# ==============================
# Per-Session Filter
# ==============================
"""
Selector-bound record filters.

Each installed sink gets one SelectorFilter bound to its session selector at install
time. Records whose relevant metadata attribute is missing or empty are rejected.
"""

from __future__ import annotations

import logging
from typing import Any

from core.contracts.trace_schema import Selector, SelectorKind
from core.tracing.topic import matches


def accepts(record: Any, selector: Selector) -> bool:
    """
    Decide whether `record` belongs to the session identified by `selector`.
    `record` is a logging.LogRecord or anything exposing the same attributes
    (e.g. TraceRecord).
    """
    if selector.kind == SelectorKind.CLIENT_ID:
        client_id = getattr(record, "client_id", None)
        return client_id is not None and client_id == selector.value
    topic = getattr(record, "topic", None)
    if not isinstance(topic, str) or not topic:
        return False
    return matches(selector.value, topic)


class SelectorFilter(logging.Filter):
    def __init__(self, selector: Selector) -> None:
        super().__init__()
        self._selector = selector

    @property
    def selector(self) -> Selector:
        return self._selector

    def filter(self, record: logging.LogRecord) -> bool:
        return accepts(record, self._selector)
