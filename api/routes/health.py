"""Health check endpoints."""

from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel


router = APIRouter()

API_VERSION = "1.0.0"


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    version: str
    services: Dict[str, str]


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint."""
    ctx = getattr(request.app.state, "ctx", None)
    return HealthResponse(
        status="healthy" if ctx is not None else "degraded",
        timestamp=datetime.utcnow().isoformat(),
        version=API_VERSION,
        services={
            "api": "up",
            "monitor": "up" if ctx is not None else "down",
            "storage": "up" if ctx is not None and ctx.tracking.base_dir.exists() else "unknown",
        },
    )


@router.get("/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, str]:
    """Readiness probe: ready once the monitor context is wired."""
    if getattr(request.app.state, "ctx", None) is None:
        response.status_code = 503
        return {"status": "not_ready"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    """Liveness probe."""
    return {"status": "alive"}
