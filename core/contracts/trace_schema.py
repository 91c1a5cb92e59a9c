# ==============================
# Trace Contracts
# ==============================
"""
Trace contracts for msgtrace.

These models define the stable representation of trace selectors, active trace sessions,
publish events handed over by the message pipeline, and the result envelope returned by
every administrative trace operation.

Intended usage:
- Registry keys sessions by Selector
- Classifier turns PublishEvent into TraceRecord
- Gateway API returns TraceResult payloads as-is
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.tracing.topic import validate_pattern


# ==============================
# Enums
# ==============================
class SelectorKind(str, Enum):
    """What a trace session captures."""
    CLIENT_ID = "client_id"
    TOPIC = "topic"


class OriginKind(str, Enum):
    """Recognized publishers of traceable messages."""
    CLIENT = "client"
    SYSTEM = "system"


class TraceErrorCode(str, Enum):
    """Standard error codes for trace administration."""
    ALREADY_ACTIVE = "already_active"
    NOT_FOUND = "not_found"
    INSTALL_FAILED = "install_failed"
    REMOVAL_FAILED = "removal_failed"
    UNSUPPORTED = "unsupported"


# ==============================
# Selector / Session
# ==============================
class Selector(BaseModel):
    """Identity key of a trace session: a client id or a topic pattern."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: SelectorKind = Field(..., description="Selector variant.")
    value: str = Field(..., description="Client id or topic pattern.")

    @field_validator("value")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("selector value must not be empty")
        return v

    @model_validator(mode="after")
    def _valid_pattern(self) -> "Selector":
        if self.kind == SelectorKind.TOPIC:
            validate_pattern(self.value)
        return self

    @classmethod
    def client_id(cls, client_id: str) -> "Selector":
        return cls(kind=SelectorKind.CLIENT_ID, value=client_id)

    @classmethod
    def topic(cls, pattern: str) -> "Selector":
        return cls(kind=SelectorKind.TOPIC, value=pattern)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.value}"


class TraceSession(BaseModel):
    """An active trace: selector, the sink it owns and where that sink writes."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    selector: Selector = Field(...)
    sink_id: str = Field(..., description="Deterministic sink name derived from selector.")
    destination: str = Field(..., description="File path the sink writes to.")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.selector.kind.value,
            "value": self.selector.value,
            "sink_id": self.sink_id,
            "destination": self.destination,
        }


# ==============================
# Publish Events / Records
# ==============================
class Origin(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: str = Field(..., description="client | system (anything else is not traced).")
    id: str = Field(..., description="Client id or internal actor name.")


class PublishEvent(BaseModel):
    """Outbound publish as seen by the message pipeline."""
    model_config = ConfigDict(extra="forbid")

    origin: Optional[Origin] = Field(default=None, description="Publisher; None for anonymous.")
    topic: str = Field(...)
    payload: Any = Field(default=None)
    peername: Optional[str] = Field(default=None, description="host:port of the publisher connection.")


class TraceRecord(BaseModel):
    """Loggable record for an eligible publish."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    topic: str
    payload: str
    origin_kind: OriginKind
    origin_id: str
    client_id: Optional[str] = None
    peername: Optional[str] = None

    @property
    def message(self) -> str:
        return f"PUBLISH to {self.topic}: {self.payload}"

    def log_extra(self) -> Dict[str, Any]:
        """Metadata attached to the emitted LogRecord; sink filters read these attributes."""
        extra: Dict[str, Any] = {
            "topic": self.topic,
            "origin_kind": self.origin_kind.value,
            "origin_id": self.origin_id,
        }
        if self.client_id is not None:
            extra["client_id"] = self.client_id
        if self.peername is not None:
            extra["peername"] = self.peername
        return extra


# ==============================
# Results
# ==============================
class TraceError(BaseModel):
    """Structured error for trace administration. Errors are data, not control flow."""
    model_config = ConfigDict(extra="forbid")

    code: TraceErrorCode = Field(...)
    message: str = Field(...)
    details: Dict[str, Any] = Field(default_factory=dict)


class TraceResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ok: bool = Field(...)
    data: Optional[Dict[str, Any]] = Field(default=None)
    error: Optional[TraceError] = Field(default=None)

    @model_validator(mode="after")
    def _enforce_error_contract(self) -> "TraceResult":
        if self.ok and self.error is not None:
            raise ValueError("Trace error must be None when ok=True")
        if not self.ok and self.error is None:
            raise ValueError("Trace error is required when ok=False")
        return self

    @classmethod
    def success(cls, data: Optional[Dict[str, Any]] = None) -> "TraceResult":
        return cls(ok=True, data=data or {}, error=None)

    @classmethod
    def fail(
        cls,
        code: TraceErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> "TraceResult":
        return cls(ok=False, data=None, error=TraceError(code=code, message=message, details=details or {}))


class TraceRequest(BaseModel):
    """Generic administrative request (see TraceRegistry.handle)."""
    model_config = ConfigDict(extra="allow")

    op: str = Field(..., description="start | stop | list")
    selector: Optional[Selector] = Field(default=None)
    destination: Optional[str] = Field(default=None)
