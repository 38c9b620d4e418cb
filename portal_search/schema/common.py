from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

ComponentStatus = Literal["ok", "down"]


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail


class HealthStatus(BaseModel):
    status: Literal["ok", "degraded", "down"] = "ok"
    version: Optional[str] = None
    store: Optional[ComponentStatus] = None
    embeddings: Optional[ComponentStatus] = None
