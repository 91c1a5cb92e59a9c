# ==============================
# API Dependencies / Singletons
# ==============================
from __future__ import annotations

from functools import lru_cache

from core.config.loader import load_settings
from core.config.schema import Settings
from core.tracing.registry import TraceRegistry


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def get_trace_registry() -> TraceRegistry:
    settings = get_settings()
    return TraceRegistry.from_settings(settings)


def shutdown_trace_registry() -> None:
    """Tear down the process registry if one was created."""
    if get_trace_registry.cache_info().currsize:
        get_trace_registry().shutdown()
