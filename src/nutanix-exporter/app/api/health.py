"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "nutanix-exporter"}


@router.get("/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness check - ready once discovery has run and a route exists."""
    scheduler = getattr(request.app.state, "scheduler", None)
    routes = getattr(request.app.state, "routes", None)

    cycles = scheduler.cycles_completed if scheduler is not None else 0
    registered = len(routes) if routes is not None else 0

    if cycles > 0 and registered > 0:
        return JSONResponse({"status": "ready", "clusters": registered})
    return JSONResponse(
        {"status": "not_ready", "discovery_cycles": cycles, "clusters": registered},
        status_code=503,
    )
