from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None
    details: Any = None
    request_id: str | None = None


class HealthResponse(BaseModel):
    status: str
    build_version: str
    storage_driver: str
    analyzer_engine: str
