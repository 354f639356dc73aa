"""
dependencies.py

Responsibility: Declares the FastAPI Depends() provider functions that hand
lifespan-created objects to route handlers.
Does NOT: contain business logic, HTTP handlers, or create collaborators.
"""

from __future__ import annotations

from fastapi import Request

from config import BuildInfo
from services.status_service import StatusService


def get_status_service(request: Request) -> StatusService:
    """
    Returns the StatusService stored on app.state by the lifespan.

    Args:
        request: The current FastAPI Request (injected automatically).

    Returns:
        The application-level StatusService.
    """
    return request.app.state.status_service


def get_build_info(request: Request) -> BuildInfo:
    """
    Returns the BuildInfo stored on app.state by create_app().

    Args:
        request: The current FastAPI Request (injected automatically).

    Returns:
        The immutable BuildInfo of this process.
    """
    return request.app.state.build_info
