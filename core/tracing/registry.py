# ==============================
# Trace Session Registry
# ==============================
"""
Registry of active trace sessions.

Responsibilities:
- Keep one session per Selector (start twice -> ALREADY_ACTIVE)
- Install/remove a filtered sink per session through the SinkInstaller
- Widen the global level while any session is active; restore the level captured
  at construction when the last session stops

Every operation (including the installer call) runs under one lock, so start/stop/list
never interleave. Results are TraceResult envelopes; nothing here raises on
administrative failure.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from core.config.schema import Settings
from core.contracts.trace_schema import (
    Selector,
    TraceErrorCode,
    TraceRequest,
    TraceResult,
    TraceSession,
)
from core.tracing.filters import SelectorFilter
from core.tracing.sinks import (
    DEFAULT_FLUSH_INTERVAL_MS,
    LevelGate,
    LoggingSinkInstaller,
    SinkConfig,
    SinkError,
    SinkInstaller,
    TraceLineFormatter,
    sink_id_for,
)

# Lowest real level; NOTSET on a non-root logger would defer to its parent.
LEVEL_ALL = 1

logger = logging.getLogger("msgtrace.tracer")


class TraceRegistry:
    def __init__(
        self,
        *,
        installer: SinkInstaller,
        level_gate: Optional[LevelGate] = None,
        trace_level: int = logging.DEBUG,
        flush_interval_ms: int = DEFAULT_FLUSH_INTERVAL_MS,
    ) -> None:
        if flush_interval_ms < 0:
            raise ValueError("flush_interval_ms must be >= 0")
        self.installer = installer
        self.level_gate = level_gate or LevelGate()
        self.trace_level = trace_level
        self.flush_interval_ms = flush_interval_ms
        self._lock = threading.Lock()
        self._original_level = self.level_gate.level
        self._sessions: Dict[Selector, TraceSession] = {}

    # ------------------------------
    # State (read-only views)
    # ------------------------------

    @property
    def original_level(self) -> int:
        return self._original_level

    @property
    def effective_level(self) -> int:
        return self.level_gate.level

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get(self, selector: Selector) -> Optional[TraceSession]:
        with self._lock:
            return self._sessions.get(selector)

    # ------------------------------
    # Operations
    # ------------------------------

    def start(self, selector: Selector, destination: str) -> TraceResult:
        with self._lock:
            current = self._sessions.get(selector)
            if current is not None:
                return TraceResult.fail(
                    TraceErrorCode.ALREADY_ACTIVE,
                    f"Trace already active for {selector}",
                    details={"destination": current.destination},
                )

            sink_id = sink_id_for(selector)
            config = SinkConfig(
                level=self.trace_level,
                target=destination,
                filter=SelectorFilter(selector),
                formatter=TraceLineFormatter(),
                flush_interval_ms=self.flush_interval_ms,
            )
            try:
                self.installer.install(sink_id, config)
            except (SinkError, OSError) as exc:
                logger.error("[Tracer] start trace for %s failed, error: %s", selector, exc)
                return TraceResult.fail(
                    TraceErrorCode.INSTALL_FAILED,
                    str(exc),
                    details={"sink_id": sink_id, "destination": destination},
                )

            self.level_gate.set_level(LEVEL_ALL)
            session = TraceSession(selector=selector, sink_id=sink_id, destination=destination)
            self._sessions[selector] = session
            logger.info("[Tracer] start trace for %s", selector, extra={"sink_id": sink_id})
            return TraceResult.success(session.to_dict())

    def stop(self, selector: Selector) -> TraceResult:
        with self._lock:
            session = self._sessions.get(selector)
            if session is None:
                return TraceResult.fail(TraceErrorCode.NOT_FOUND, f"No active trace for {selector}")

            removal_error = self._remove_sink(session)
            del self._sessions[selector]
            if not self._sessions:
                self.level_gate.set_level(self._original_level)

            data = session.to_dict()
            if removal_error is not None:
                data["removal_error"] = {
                    "code": TraceErrorCode.REMOVAL_FAILED.value,
                    "message": removal_error,
                }
            return TraceResult.success(data)

    def list(self) -> List[TraceSession]:
        with self._lock:
            return sorted(self._sessions.values(), key=lambda s: s.sink_id)

    def shutdown(self) -> None:
        """Remove every installed sink and restore the original level. Safe to call twice."""
        with self._lock:
            for session in list(self._sessions.values()):
                self._remove_sink(session)
            self._sessions.clear()
            self.level_gate.set_level(self._original_level)

    def handle(self, request: Union[TraceRequest, Mapping[str, Any]]) -> TraceResult:
        """
        Dispatch a generic administrative request.
        Unknown or malformed requests are logged and answered UNSUPPORTED.
        """
        try:
            req = request if isinstance(request, TraceRequest) else TraceRequest.model_validate(request)
        except ValidationError as exc:
            logger.error("[Tracer] unexpected request: %r", request)
            return TraceResult.fail(TraceErrorCode.UNSUPPORTED, "ignored", details={"errors": exc.errors()})

        if req.op == "list":
            return TraceResult.success({"traces": [s.to_dict() for s in self.list()]})
        if req.op == "start" and req.selector is not None and req.destination:
            return self.start(req.selector, req.destination)
        if req.op == "stop" and req.selector is not None:
            return self.stop(req.selector)

        logger.error("[Tracer] unexpected request: %r", request)
        return TraceResult.fail(TraceErrorCode.UNSUPPORTED, "ignored", details={"op": req.op})

    # ------------------------------
    # Internals (lock held)
    # ------------------------------

    def _remove_sink(self, session: TraceSession) -> Optional[str]:
        try:
            self.installer.remove(session.sink_id)
        except (SinkError, OSError) as exc:
            logger.error("[Tracer] stop trace for %s failed, error: %s", session.selector, exc)
            return str(exc)
        logger.info("[Tracer] stop trace for %s", session.selector, extra={"sink_id": session.sink_id})
        return None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        installer: Optional[SinkInstaller] = None,
    ) -> "TraceRegistry":
        """
        Convenience constructor for gateway/CLI wiring.
        Sinks attach to, and the level gate controls, tracing.target_logger.
        """
        target = logging.getLogger(settings.tracing.target_logger or None)
        return cls(
            installer=installer or LoggingSinkInstaller(logger=target),
            level_gate=LevelGate(target),
            trace_level=settings.tracing.level_number(),
            flush_interval_ms=settings.tracing.flush_interval_ms,
        )
