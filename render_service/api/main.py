"""
FastAPI Application
==================

Main FastAPI application exposing the render-and-download endpoint.
"""

from contextlib import asynccontextmanager
import uuid
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from render_service.api.routes.health import router as health_router
from render_service.api.routes.render import router as render_router
from render_service.config.logging import get_logger, setup_logging
from render_service.config.settings import Settings, get_settings
from render_service.core.rendering.coordinator import RenderCoordinator
from render_service.core.rendering.errors import RenderServiceError
from render_service.models.schemas import ErrorResponse, StatusClass

logger = get_logger(__name__)


def _status_class(status_code: int) -> StatusClass:
    return StatusClass.CLIENT_ERROR if status_code < 500 else StatusClass.SERVER_ERROR


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    error: Optional[str] = None,
    error_code: Optional[str] = None,
) -> JSONResponse:
    error_response = ErrorResponse(
        message=message,
        error=error,
        error_code=error_code,
        status_class=_status_class(status_code),
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=status_code, content=error_response.model_dump(mode="json"))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    logger.info("Starting render server", port=settings.port)

    settings.output_dir.mkdir(parents=True, exist_ok=True)
    leftovers = [entry.name for entry in settings.output_dir.iterdir() if entry.is_file()]
    if leftovers:
        logger.warning(
            "Output directory already holds files",
            output_dir=str(settings.output_dir),
            count=len(leftovers),
        )
    if not settings.entry_point_path.is_file():
        logger.warning("Remotion entry point not found", entry_point=str(settings.entry_point_path))

    try:
        yield
    finally:
        logger.info("Shutting down render server")


def register_exception_handlers(app: FastAPI) -> None:
    """Map the render error taxonomy and framework errors to JSON responses."""

    @app.exception_handler(RenderServiceError)
    async def render_service_exception_handler(
        request: Request, exc: RenderServiceError
    ) -> JSONResponse:
        logger.error(
            "Render request failed",
            error_code=exc.error_code,
            message=exc.message,
            detail=exc.detail,
            request_id=getattr(request.state, "request_id", None),
        )
        return _error_response(request, exc.status_code, exc.message, exc.detail, exc.error_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        logger.warning("Invalid request body", errors=errors)
        return _error_response(request, 400, "Invalid request body.", errors, "INVALID_REQUEST")

    @app.exception_handler(HTTPException)
    async def custom_http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        logger.error("HTTP exception", status_code=exc.status_code, detail=exc.detail)
        return _error_response(request, exc.status_code, str(exc.detail), None, str(exc.status_code))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", exception=str(exc), exc_info=True)
        settings: Settings = request.app.state.settings
        return _error_response(
            request,
            500,
            "Internal server error",
            str(exc) if settings.debug else None,
            "INTERNAL_ERROR",
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to run with; read from the environment when omitted

    Returns:
        FastAPI application instance
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Render Remotion compositions to video and download the result",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.coordinator = RenderCoordinator(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Request-ID"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):  # type: ignore[no-untyped-def]
        """Add request ID to all requests."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    register_exception_handlers(app)
    app.include_router(render_router)
    app.include_router(health_router)

    @app.get("/", tags=["General"])
    async def root() -> dict[str, Any]:
        """Root endpoint with basic API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs_url": "/docs" if settings.debug else None,
            "health_check": "/health",
            "endpoints": {
                "render_and_download": "POST /api/render-and-download",
            },
        }

    return app


def run_development_server() -> None:
    """Run the server with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "render_service.api.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug and settings.environment == "development",
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_development_server()
