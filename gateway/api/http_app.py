# ==============================
# FastAPI App Factory
# ==============================
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from gateway.api.deps import shutdown_trace_registry
from gateway.api.routes_traces import router as traces_router


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    shutdown_trace_registry()


def create_app() -> FastAPI:
    app = FastAPI(title="msgtrace", version="0.1.0", lifespan=_lifespan)
    app.include_router(traces_router, prefix="/api")
    return app
