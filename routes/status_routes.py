"""
routes/status_routes.py

Responsibility: Read-only JSON endpoints for liveness probes and for
inspecting the most recent sync cycle.
Does NOT: trigger syncs, mutate state, or call Kubernetes or PowerDNS.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends

from config import BuildInfo
from dependencies import get_build_info, get_status_service
from services.status_service import StatusService

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """
    Liveness probe. The server only accepts requests after the startup
    checks and the initial sync succeeded, so answering at all means healthy.

    Returns:
        {"status": "ok"}
    """
    return {"status": "ok"}


@router.get("/status")
async def status(
    build_info: BuildInfo = Depends(get_build_info),
    status_service: StatusService = Depends(get_status_service),
) -> dict[str, Any]:
    """
    Returns build info plus counters and the outcome of the last sync cycle.

    Args:
        build_info: Version metadata from app.state.
        status_service: In-memory sync status from app.state.

    Returns:
        A JSON object with "build" and "sync" keys.
    """
    return {"build": asdict(build_info), "sync": status_service.snapshot()}
