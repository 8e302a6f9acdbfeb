from datetime import datetime, timezone

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    status: str = "ok"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorResponse(BaseModel):
    error: str
    filename: str | None = None
