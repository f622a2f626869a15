"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

import os
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from render_service.config.logging import get_logger
from render_service.config.settings import Settings
from render_service.models.schemas import HealthStatus

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


def check_system_health(settings: Settings) -> Dict[str, Any]:
    """
    Check the filesystem pieces a render depends on.

    Returns:
        Dictionary with a flag per component and the in-flight file count
    """
    output_dir = settings.output_dir
    output_dir_writable = output_dir.is_dir() and os.access(output_dir, os.W_OK)
    in_flight = (
        sum(1 for entry in output_dir.iterdir() if entry.is_file()) if output_dir.is_dir() else 0
    )
    return {
        "output_dir_writable": output_dir_writable,
        "project_dir_present": settings.remotion_project_dir.is_dir(),
        "entry_point_present": settings.entry_point_path.is_file(),
        "in_flight_artifacts": in_flight,
    }


@router.get("/health", response_model=HealthStatus)
async def health_check(request: Request) -> JSONResponse:
    """
    Get application health status.

    Reports whether the output directory is writable and whether the Remotion
    project and entry point can be found. Responds 503 when unhealthy.
    """
    settings: Settings = request.app.state.settings
    components = check_system_health(settings)
    healthy = all(
        components[key]
        for key in ("output_dir_writable", "project_dir_present", "entry_point_present")
    )

    health_status = HealthStatus(
        status="healthy" if healthy else "unhealthy",
        version=settings.app_version,
        **components,
    )

    logger.info("Health check completed", status=health_status.status, **components)
    return JSONResponse(
        status_code=200 if healthy else 503, content=health_status.model_dump(mode="json")
    )
