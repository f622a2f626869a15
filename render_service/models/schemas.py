"""
Pydantic Models and Schemas
===========================

Core data models for render requests, render job bookkeeping and API responses.
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Enums
class JobStage(str, Enum):
    """Render job lifecycle stages."""
    VALIDATING = "validating"
    ALLOCATING = "allocating"
    RENDERING = "rendering"
    DELIVERING = "delivering"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


class StatusClass(str, Enum):
    """Coarse classification of an error response."""
    CLIENT_ERROR = "client-error"
    SERVER_ERROR = "server-error"


# Render Job Models
class RenderRequest(BaseModel):
    """Request to render a composition and download the result."""
    composition_id: Optional[str] = Field(
        None, alias="compositionId", description="Remotion composition identifier"
    )
    input_props: Dict[str, Any] = Field(
        default_factory=dict, alias="inputProps", description="Input props passed to the composition"
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("input_props", mode="before")
    @classmethod
    def default_input_props(cls, v: Any) -> Any:
        """Treat explicit null props as empty."""
        return {} if v is None else v


class ArtifactLocation(BaseModel):
    """Where one render job writes its video and what the caller sees it as."""
    internal_path: Path = Field(..., description="Absolute path the renderer writes to")
    delivery_name: str = Field(..., description="Filename offered to the caller")

    model_config = ConfigDict(frozen=True)


class RenderOutcome(BaseModel):
    """Result of a single renderer invocation."""
    success: bool = Field(..., description="Whether the render produced a valid artifact")
    reason: Optional[str] = Field(None, description="Failure reason")
    diagnostics: str = Field("", description="Captured diagnostic text")
    return_code: Optional[int] = Field(None, description="Renderer exit code")
    stdout: str = Field("", description="Captured standard output")
    stderr: str = Field("", description="Captured standard error")
    duration: float = Field(0.0, description="Render wall time in seconds")

    @classmethod
    def succeeded(cls, **kwargs: Any) -> "RenderOutcome":
        return cls(success=True, **kwargs)

    @classmethod
    def failed(cls, reason: str, **kwargs: Any) -> "RenderOutcome":
        return cls(success=False, reason=reason, **kwargs)


# Health Check Models
class HealthStatus(BaseModel):
    """Health check status."""
    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall status")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")
    version: str = Field(..., description="Application version")

    # Component statuses
    output_dir_writable: bool = Field(..., description="Output directory is writable")
    project_dir_present: bool = Field(..., description="Remotion project directory exists")
    entry_point_present: bool = Field(..., description="Remotion entry point exists")
    in_flight_artifacts: int = Field(0, ge=0, description="Files currently in the output directory")


# Error Models
class ErrorResponse(BaseModel):
    """Standard error response model."""
    message: str = Field(..., description="Error message")
    error: Optional[str] = Field(None, description="Underlying cause, e.g. renderer diagnostics")
    error_code: Optional[str] = Field(None, description="Error code")
    status_class: StatusClass = Field(..., description="Client or server error")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
