# ==============================
# Trace Sinks (logging glue)
# ==============================
"""
Sink installation contract and its stdlib logging implementation.

Design:
- SinkInstaller is the only seam between the registry and the logging subsystem.
- A sink is a file handler + one SelectorFilter + the fixed trace line formatter.
- LevelGate wraps the global minimum level applied before any handler runs.

Sink names are deterministic per selector and collision-free across selector kinds.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote

from core.contracts.trace_schema import Selector, SelectorKind
from core.tracing.filters import SelectorFilter

DEFAULT_FLUSH_INTERVAL_MS = 1000

_SINK_PREFIX = {
    SelectorKind.TOPIC: "topic_",
    SelectorKind.CLIENT_ID: "clientid_",
}


class SinkError(Exception):
    """Raised by a SinkInstaller when a sink cannot be installed or removed."""


def sink_id_for(selector: Selector) -> str:
    # quote() leaves [A-Za-z0-9_.-~] alone; "~" is escaped as well
    return _SINK_PREFIX[selector.kind] + quote(selector.value, safe="").replace("~", "%7E")


# ==============================
# Formatting
# ==============================


class TraceLineFormatter(logging.Formatter):
    """
    <time> [<LEVEL>] <client_id>@<peername> <msg>

    The origin part shrinks to "<client_id> " without a peername and disappears
    without a client id.
    """

    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        client_id = getattr(record, "client_id", None)
        peername = getattr(record, "peername", None)
        if client_id and peername:
            origin = f"{client_id}@{peername} "
        elif client_id:
            origin = f"{client_id} "
        else:
            origin = ""
        line = f"{self.formatTime(record)} [{record.levelname}] {origin}{record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


@dataclass(frozen=True)
class SinkConfig:
    level: int
    target: str
    filter: SelectorFilter
    formatter: logging.Formatter = field(default_factory=TraceLineFormatter)
    filter_default: str = "stop"
    flush_interval_ms: int = DEFAULT_FLUSH_INTERVAL_MS

    def __post_init__(self) -> None:
        # only reject-unless-accepted is meaningful for a single selector filter
        if self.filter_default != "stop":
            raise ValueError(f"Unsupported filter_default: {self.filter_default}")
        if self.flush_interval_ms < 0:
            raise ValueError("flush_interval_ms must be >= 0")


# ==============================
# Installer Contract
# ==============================


class SinkInstaller(ABC):
    @abstractmethod
    def install(self, sink_id: str, config: SinkConfig) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, sink_id: str) -> None:
        raise NotImplementedError

    def installed(self) -> List[str]:
        return []


# ==============================
# Stdlib Logging Implementation
# ==============================


class PeriodicFlushFileHandler(logging.FileHandler):
    """
    File handler whose buffered writes reach the file every `flush_interval_ms`.

    A daemon thread syncs the stream on that cadence, so the tail of a burst shows
    up without waiting for the next record. An interval of 0 flushes after every
    record. close() stops the thread and writes whatever is still buffered.
    """

    def __init__(self, filename: str, *, flush_interval_ms: int = DEFAULT_FLUSH_INTERVAL_MS) -> None:
        super().__init__(filename, mode="a", encoding="utf-8")
        self.flush_interval = flush_interval_ms / 1000.0
        self._stopped = threading.Event()
        self._syncer: Optional[threading.Thread] = None
        if self.flush_interval > 0:
            self._syncer = threading.Thread(
                target=self._sync_loop,
                name=f"msgtrace-sync-{Path(filename).name}",
                daemon=True,
            )
            self._syncer.start()

    def _sync_loop(self) -> None:
        while not self._stopped.wait(self.flush_interval):
            self.sync()

    def sync(self) -> None:
        super().flush()

    def flush(self) -> None:
        # emit() calls this after every record; the sync thread owns it while running
        if self._syncer is None or self._stopped.is_set():
            self.sync()

    def close(self) -> None:
        self._stopped.set()
        if self._syncer is not None and self._syncer is not threading.current_thread():
            self._syncer.join()
        super().close()


class LoggingSinkInstaller(SinkInstaller):
    """Attaches trace sinks as handlers on `logger` (root by default)."""

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger()
        self._lock = threading.Lock()
        self._handlers: Dict[str, logging.Handler] = {}

    def install(self, sink_id: str, config: SinkConfig) -> None:
        with self._lock:
            if sink_id in self._handlers:
                raise SinkError(f"Sink already installed: {sink_id}")
            target = Path(config.target).expanduser()
            try:
                handler = PeriodicFlushFileHandler(str(target), flush_interval_ms=config.flush_interval_ms)
            except OSError as exc:
                raise SinkError(f"Cannot open {target}: {exc}") from exc
            handler.set_name(sink_id)
            handler.setLevel(config.level)
            handler.setFormatter(config.formatter)
            handler.addFilter(config.filter)
            self.logger.addHandler(handler)
            self._handlers[sink_id] = handler

    def remove(self, sink_id: str) -> None:
        with self._lock:
            handler = self._handlers.pop(sink_id, None)
            if handler is None:
                raise SinkError(f"Unknown sink: {sink_id}")
            self.logger.removeHandler(handler)
        try:
            handler.close()
        except OSError as exc:
            raise SinkError(f"Failed to close sink {sink_id}: {exc}") from exc

    def installed(self) -> List[str]:
        with self._lock:
            return sorted(self._handlers)


class LevelGate:
    """Global minimum severity applied before any handler-level filtering."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger()

    @property
    def level(self) -> int:
        return self.logger.level

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)
