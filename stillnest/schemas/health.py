"""Schemas for the health endpoint used as the connectivity probe target."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str
    uptime: float


__all__ = ["HealthResponse"]
