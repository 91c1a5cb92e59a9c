# ==============================
# Trace Event Classifier
# ==============================
"""
Decides whether an outbound publish is trace-eligible and emits it.

Rules:
- System topics ($SYS/...) are never traced.
- Anonymous publishes and unrecognized origins are never traced.
- Everything else becomes a TraceRecord logged on the shared trace logger.

The classifier does not know which sessions exist; the sink filters decide inclusion.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, Optional

from core.config.schema import Settings
from core.contracts.trace_schema import OriginKind, PublishEvent, TraceRecord
from core.tracing.topic import DEFAULT_SYS_PREFIX, is_system_topic

TRACE_LOGGER_NAME = "msgtrace.trace"

_RECOGNIZED_ORIGINS = {k.value: k for k in OriginKind}


def _display(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, (bytes, bytearray)):
        try:
            return bytes(payload).decode("utf-8")
        except UnicodeDecodeError:
            return repr(bytes(payload))
    return repr(payload)


def classify(event: PublishEvent, *, sys_prefix: str = DEFAULT_SYS_PREFIX) -> Optional[TraceRecord]:
    """Return a TraceRecord for eligible events, None when the event is ignored."""
    if is_system_topic(event.topic, sys_prefix):
        return None
    origin = event.origin
    if origin is None:
        return None
    kind = _RECOGNIZED_ORIGINS.get(origin.kind)
    if kind is None:
        return None
    return TraceRecord(
        topic=event.topic,
        payload=_display(event.payload),
        origin_kind=kind,
        origin_id=origin.id,
        client_id=origin.id if kind == OriginKind.CLIENT else None,
        peername=event.peername,
    )


def trace_publish(
    event: PublishEvent,
    *,
    logger: Optional[logging.Logger] = None,
    sys_prefix: str = DEFAULT_SYS_PREFIX,
) -> Optional[TraceRecord]:
    """
    Hot-path hook called by the message pipeline for every outbound publish.
    Emits eligible records at INFO with topic/client metadata for sink filters.
    """
    record = classify(event, sys_prefix=sys_prefix)
    if record is None:
        return None
    log = logger or logging.getLogger(TRACE_LOGGER_NAME)
    log.info(record.message, extra=record.log_extra())
    return record


PublishHook = Callable[[PublishEvent], Optional[TraceRecord]]


def publish_hook(settings: Settings) -> PublishHook:
    """trace_publish bound to the configured trace logger and system prefix."""
    return partial(
        trace_publish,
        logger=logging.getLogger(settings.tracing.trace_logger),
        sys_prefix=settings.tracing.sys_prefix,
    )
