"""
Render Routes
=============

FastAPI route that renders a composition and streams the video back.
"""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from render_service.config.logging import get_logger
from render_service.core.rendering.coordinator import RenderCoordinator, RenderedArtifact
from render_service.models.schemas import RenderRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Rendering"])


def get_coordinator(request: Request) -> RenderCoordinator:
    """Dependency returning the application's render coordinator."""
    return request.app.state.coordinator


def content_disposition(filename: str) -> str:
    """Attachment header value, RFC 5987 encoded when the name is not plain ASCII."""
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


def build_download_response(artifact: RenderedArtifact, media_type: str) -> StreamingResponse:
    """Stream an artifact as a download, releasing it once the response is done."""
    return StreamingResponse(
        artifact.iter_bytes(),
        media_type=media_type,
        headers={
            "Content-Disposition": content_disposition(artifact.delivery_name),
            "Content-Length": str(artifact.size),
        },
        background=BackgroundTask(artifact.release),
    )


@router.post("/render-and-download")
async def render_and_download(
    payload: RenderRequest,
    request: Request,
    coordinator: RenderCoordinator = Depends(get_coordinator),
) -> StreamingResponse:
    """
    Render a composition and return the video as a download.

    Args:
        payload: Composition id and input props

    Returns:
        Streaming video response; the temporary file is deleted once sent
    """
    logger.info(
        "Render requested",
        composition_id=payload.composition_id,
        request_id=getattr(request.state, "request_id", None),
    )

    artifact = await coordinator.run(payload)
    return build_download_response(artifact, coordinator.settings.output_media_type)
