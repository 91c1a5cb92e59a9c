# ==============================
# Trace Administration Routes
# ==============================
from __future__ import annotations

from typing import Any, Dict, NoReturn

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, ValidationError

from core.contracts.trace_schema import Selector, SelectorKind, TraceErrorCode, TraceResult
from core.tracing.registry import TraceRegistry
from gateway.api.deps import get_trace_registry


router = APIRouter()

_HTTP_STATUS = {
    TraceErrorCode.ALREADY_ACTIVE: status.HTTP_409_CONFLICT,
    TraceErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    TraceErrorCode.INSTALL_FAILED: status.HTTP_400_BAD_REQUEST,
    TraceErrorCode.REMOVAL_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    TraceErrorCode.UNSUPPORTED: status.HTTP_400_BAD_REQUEST,
}


class SelectorBody(BaseModel):
    kind: SelectorKind = Field(..., description="client_id | topic")
    value: str = Field(..., description="Client id or topic pattern.")


class StartTraceRequest(SelectorBody):
    destination: str = Field(..., description="File the trace sink writes to.")


def _ok(data: Dict[str, Any], *, meta: Dict[str, Any] | None = None) -> Dict[str, Any]:
    return {"ok": True, "data": data, "error": None, "meta": meta or {}}


def _error(
    *,
    http_status: int,
    code: str,
    message: str,
    details: Dict[str, Any] | None = None,
) -> NoReturn:
    payload = {
        "ok": False,
        "data": None,
        "error": {"code": code, "message": message, "details": details or {}},
        "meta": {},
    }
    raise HTTPException(status_code=http_status, detail=payload)


def _selector(body: SelectorBody) -> Selector:
    try:
        return Selector(kind=body.kind, value=body.value)
    except ValidationError as exc:
        _error(
            http_status=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="invalid_selector",
            message=f"Invalid {body.kind.value} selector.",
            details={"errors": [e.get("msg") for e in exc.errors()]},
        )


def _respond(result: TraceResult) -> Dict[str, Any]:
    if result.ok:
        return _ok(result.data or {})
    error = result.error
    if error is None:
        _error(
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code="unknown_error",
            message="Unknown failure.",
        )
    _error(
        http_status=_HTTP_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST),
        code=error.code.value,
        message=error.message,
        details=error.details,
    )


@router.get("/health")
def health() -> Dict[str, Any]:
    return _ok({"status": "ok"})


@router.get("/traces")
def list_traces(registry: TraceRegistry = Depends(get_trace_registry)) -> Dict[str, Any]:
    traces = [s.to_dict() for s in registry.list()]
    return _ok(
        {"traces": traces},
        meta={"effective_level": registry.effective_level, "original_level": registry.original_level},
    )


@router.post("/traces")
def start_trace(
    req: StartTraceRequest,
    registry: TraceRegistry = Depends(get_trace_registry),
) -> Dict[str, Any]:
    selector = _selector(req)
    return _respond(registry.start(selector, req.destination))


@router.post("/traces/stop")
def stop_trace(
    req: SelectorBody,
    registry: TraceRegistry = Depends(get_trace_registry),
) -> Dict[str, Any]:
    selector = _selector(req)
    return _respond(registry.stop(selector))
