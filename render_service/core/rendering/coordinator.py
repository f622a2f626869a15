"""
Render Job Coordinator
======================

Drives one render request through validate -> allocate -> render -> deliver ->
clean up. The temporary video is owned here from the moment the renderer is
started until it is deleted, and it is deleted exactly once on every path
that reached the render stage.
"""

import asyncio
import os
import re
import uuid
from pathlib import Path
from types import TracebackType
from typing import Any, AsyncIterator, BinaryIO, Optional, Type

from render_service.config.logging import get_logger
from render_service.config.settings import Settings
from render_service.core.rendering.allocator import ArtifactPathAllocator
from render_service.core.rendering.errors import ClientInputError, DeliveryFailure, RenderFailure
from render_service.core.rendering.invoker import RemotionInvoker, serialize_input_props
from render_service.models.schemas import ArtifactLocation, JobStage, RenderRequest

logger = get_logger(__name__)

# Remotion accepts latin letters, digits, CJK characters and '-'
_CJK = r"\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af"
COMPOSITION_ID_PATTERN = re.compile(rf"[A-Za-z0-9{_CJK}][A-Za-z0-9{_CJK}-]*")
MAX_COMPOSITION_ID_LENGTH = 200


class RenderJob:
    """Bookkeeping for a single render request."""

    def __init__(self, request: RenderRequest):
        self.job_id = uuid.uuid4().hex
        self.request = request
        self.stage = JobStage.VALIDATING
        self.location: Optional[ArtifactLocation] = None


class RenderedArtifact:
    """
    A finished render waiting to be delivered.

    Iterating ``iter_bytes`` streams the video and releases it afterwards,
    whether the stream completed, failed or was abandoned. ``release`` may
    also be called directly and is idempotent.
    """

    def __init__(
        self,
        coordinator: "RenderCoordinator",
        job: RenderJob,
        handle: BinaryIO,
        size: int,
    ):
        self._coordinator = coordinator
        self._handle = handle
        self._released = False
        self.job = job
        self.location: ArtifactLocation = job.location  # type: ignore[assignment]
        self.size = size
        self.delivered = False
        self.logger: Any = coordinator.logger.bind(job_id=job.job_id)

    @property
    def delivery_name(self) -> str:
        return self.location.delivery_name

    @property
    def path(self) -> Path:
        return self.location.internal_path

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """Yield the video in chunks, then delete it."""
        chunk_size = self._coordinator.settings.delivery_chunk_size
        try:
            while True:
                chunk = await asyncio.to_thread(self._handle.read, chunk_size)
                if not chunk:
                    break
                yield chunk
            self.delivered = True
            self.logger.info("File sent successfully", path=str(self.path), size=self.size)
        except asyncio.CancelledError:
            self.logger.error("Delivery interrupted, client went away", path=str(self.path))
            raise
        except OSError as e:
            self.logger.error("Error sending file", path=str(self.path), error=str(e))
            raise DeliveryFailure("Error sending the rendered file.", detail=str(e)) from e
        finally:
            self.release()

    def release(self) -> None:
        """Close and delete the artifact. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        self._handle.close()
        self.job.stage = JobStage.CLEANING_UP
        self._coordinator.cleanup(self.location, self.logger)
        self.job.stage = JobStage.DONE if self.delivered else JobStage.FAILED

    async def __aenter__(self) -> "RenderedArtifact":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()


class RenderCoordinator:
    """Runs render jobs end to end."""

    def __init__(
        self,
        settings: Settings,
        allocator: Optional[ArtifactPathAllocator] = None,
        invoker: Optional[RemotionInvoker] = None,
    ):
        self.settings = settings
        self.allocator = allocator or ArtifactPathAllocator.from_settings(settings)
        self.invoker = invoker or RemotionInvoker(settings)
        self.logger: Any = logger.bind(component="coordinator")

    def validate(self, request: RenderRequest) -> str:
        """
        Check a request before anything touches the filesystem.

        Returns:
            The composition id

        Raises:
            ClientInputError: If the composition id is missing or invalid, or
                the props cannot be serialized
        """
        composition_id = request.composition_id
        if not composition_id or not composition_id.strip():
            raise ClientInputError("compositionId is required.")

        if (
            len(composition_id) > MAX_COMPOSITION_ID_LENGTH
            or not COMPOSITION_ID_PATTERN.fullmatch(composition_id)
        ):
            raise ClientInputError(
                "compositionId may only contain letters, digits, CJK characters and '-', "
                "and must not start with '-'.",
                detail=composition_id[:MAX_COMPOSITION_ID_LENGTH],
            )

        try:
            serialize_input_props(request.input_props)
        except (TypeError, ValueError) as e:
            raise ClientInputError("inputProps must be JSON serializable.", detail=str(e)) from e

        return composition_id

    async def run(self, request: RenderRequest) -> RenderedArtifact:
        """
        Render a request and hand back the artifact for delivery.

        Args:
            request: Render request

        Returns:
            RenderedArtifact that streams the video and deletes it afterwards

        Raises:
            ClientInputError: Invalid request, nothing was created
            RenderFailure: Renderer failed, any partial file was removed
            DeliveryFailure: The finished video could not be opened, it was removed
        """
        job = RenderJob(request)
        log = self.logger.bind(job_id=job.job_id)

        try:
            composition_id = self.validate(request)
        except ClientInputError as e:
            job.stage = JobStage.FAILED
            log.warning("Rejected render request", reason=e.message, detail=e.detail)
            raise

        job.stage = JobStage.ALLOCATING
        location = self.allocator.allocate(composition_id)
        job.location = location

        log.info(
            "Starting render",
            composition_id=composition_id,
            input_props=request.input_props,
            output_path=str(location.internal_path),
        )

        job.stage = JobStage.RENDERING
        try:
            outcome = await self.invoker.invoke(
                composition_id, location.internal_path, request.input_props
            )
        except (Exception, asyncio.CancelledError):
            job.stage = JobStage.FAILED
            self.cleanup(location, log)
            raise

        if not outcome.success:
            job.stage = JobStage.FAILED
            log.error("Render process failed", reason=outcome.reason)
            self.cleanup(location, log)
            raise RenderFailure(
                "Video rendering failed.", detail=outcome.diagnostics or outcome.reason
            )

        job.stage = JobStage.DELIVERING
        handle: Optional[BinaryIO] = None
        try:
            handle = open(location.internal_path, "rb")
            size = os.fstat(handle.fileno()).st_size
        except OSError as e:
            if handle is not None:
                handle.close()
            job.stage = JobStage.FAILED
            log.error("Error opening rendered file", path=str(location.internal_path), error=str(e))
            self.cleanup(location, log)
            raise DeliveryFailure("Error sending the rendered file.", detail=str(e)) from e

        return RenderedArtifact(self, job, handle, size)

    def cleanup(self, location: ArtifactLocation, log: Any = None) -> bool:
        """
        Delete a job's temporary file if it exists.

        Failures are logged and never raised.

        Returns:
            True if a file was deleted
        """
        if log is None:
            log = self.logger
        path = location.internal_path
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            log.error("Error deleting temporary file", path=str(path), error=str(e))
            return False

        log.info("Temporary file deleted", path=str(path))
        return True
