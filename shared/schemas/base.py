from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class HealthResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    service: str
    version: str


class ErrorResponse(BaseModel):
    """Body returned for every rejected request. ``details`` carries the
    machine-readable payload of the error (limit, detected type, ...)."""

    model_config = ConfigDict(frozen=True)

    error_code: str
    message: str
    details: dict[str, Any] | None = None
    correlation_id: str | None = None
