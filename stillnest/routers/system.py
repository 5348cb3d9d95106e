"""System-level routes used for connectivity probing."""
from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status

from ..config import get_settings
from ..schemas import HealthResponse

router = APIRouter(prefix="/api", tags=["system"])

_STARTED_AT = time.monotonic()


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc),
        version=settings.api_version,
        environment=settings.environment,
        uptime=time.monotonic() - _STARTED_AT,
    )


@router.head("/health")
def health_head() -> Response:
    """Header-only variant hit by client connectivity probes."""

    return Response(status_code=status.HTTP_200_OK)


__all__ = ["router"]
