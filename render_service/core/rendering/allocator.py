"""
Artifact Path Allocator
=======================

Builds a collision-free output path for each render job and the friendlier
filename the caller downloads it as. Nothing here touches the filesystem.
"""

import re
import time
import uuid
from pathlib import Path
from typing import Callable, Optional

from render_service.config.logging import get_logger
from render_service.config.settings import Settings
from render_service.models.schemas import ArtifactLocation

logger = get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w-]", re.UNICODE)


def sanitize_filename_component(value: str) -> str:
    """Replace anything outside word characters and '-' with '_'."""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", value)
    return cleaned or "_"


class ArtifactPathAllocator:
    """Allocates output locations inside a single output directory."""

    def __init__(
        self,
        output_dir: Path,
        extension: str = "mp4",
        clock: Optional[Callable[[], float]] = None,
    ):
        self.output_dir = Path(output_dir).resolve()
        self.extension = extension
        self._clock = clock or time.time
        self.logger = logger.bind(component="allocator")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ArtifactPathAllocator":
        return cls(settings.output_dir, extension=settings.output_extension)

    def allocate(self, composition_id: str) -> ArtifactLocation:
        """
        Allocate a location for one render of ``composition_id``.

        Args:
            composition_id: Composition being rendered

        Returns:
            ArtifactLocation with a unique internal path and a download name
        """
        safe_id = sanitize_filename_component(composition_id)
        token = uuid.uuid4().hex
        internal_path = self.output_dir / f"{token}-{safe_id}.{self.extension}"
        timestamp_ms = int(self._clock() * 1000)
        delivery_name = f"{safe_id}-{timestamp_ms}.{self.extension}"

        self.logger.debug(
            "Allocated artifact location",
            composition_id=composition_id,
            internal_path=str(internal_path),
            delivery_name=delivery_name,
        )
        return ArtifactLocation(internal_path=internal_path, delivery_name=delivery_name)
