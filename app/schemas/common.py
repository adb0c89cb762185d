from typing import Any

from pydantic import BaseModel, Field


class ApiError(BaseModel):
    code: str
    message: str
    trace_id: str
    details: dict[str, Any] = Field(default_factory=dict)


class ApiEnvelope(BaseModel):
    data: Any = None
    error: ApiError | None = None
    meta: dict[str, Any] = Field(default_factory=dict)
