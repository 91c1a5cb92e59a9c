# ==============================
# Testing Fixtures
# ==============================
from __future__ import annotations

import logging
import sys
import uuid
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from core.tracing.registry import TraceRegistry
from core.tracing.sinks import LevelGate, SinkConfig, SinkError, SinkInstaller
from gateway.api import deps as gateway_deps
from gateway.api.http_app import create_app


class FakeSinkInstaller(SinkInstaller):
    """Records install/remove calls; can be told to fail either."""

    def __init__(self) -> None:
        self.sinks: Dict[str, SinkConfig] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_install: Optional[str] = None
        self.fail_remove: Optional[str] = None

    def install(self, sink_id: str, config: SinkConfig) -> None:
        self.calls.append(("install", sink_id))
        if self.fail_install is not None:
            raise SinkError(self.fail_install)
        if sink_id in self.sinks:
            raise SinkError(f"duplicate sink {sink_id}")
        self.sinks[sink_id] = config

    def remove(self, sink_id: str) -> None:
        self.calls.append(("remove", sink_id))
        if self.fail_remove is not None:
            raise SinkError(self.fail_remove)
        self.sinks.pop(sink_id)

    def installed(self) -> List[str]:
        return sorted(self.sinks)


@pytest.fixture
def gated_logger() -> Iterator[logging.Logger]:
    """Private logger standing in for the root logger, so tests never touch global levels."""
    log = logging.getLogger(f"msgtrace.test.{uuid.uuid4().hex}")
    log.setLevel(logging.WARNING)
    log.propagate = False
    yield log
    for handler in list(log.handlers):
        if isinstance(handler, logging.FileHandler):
            log.removeHandler(handler)
            handler.close()


@pytest.fixture
def fake_installer() -> FakeSinkInstaller:
    return FakeSinkInstaller()


@pytest.fixture
def registry(fake_installer: FakeSinkInstaller, gated_logger: logging.Logger) -> TraceRegistry:
    return TraceRegistry(installer=fake_installer, level_gate=LevelGate(gated_logger))


@pytest.fixture
def app_client(registry: TraceRegistry) -> Iterator[TestClient]:
    """FastAPI test client wired to the provided registry."""
    gateway_deps.get_settings.cache_clear()
    gateway_deps.get_trace_registry.cache_clear()
    app = create_app()
    app.dependency_overrides[gateway_deps.get_trace_registry] = lambda: registry
    with TestClient(app) as client:
        yield client
