"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

import json
import shlex
from pathlib import Path
from typing import Annotated, List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="Remotion Render Server", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3001, description="Server port")

    # Storage Configuration
    output_dir: Path = Field(
        default=Path("./output"), description="Directory holding in-flight rendered videos"
    )
    log_dir: Path = Field(default=Path("./logs"), description="Log files directory")

    # Remotion Configuration
    remotion_project_dir: Path = Field(
        default=Path("../frontend"), description="Remotion project root, used as working directory"
    )
    remotion_entry_point: Path = Field(
        default=Path("src/remotion/index.js"),
        description="Remotion entry point, relative to the project root unless absolute",
    )
    render_command: Annotated[List[str], NoDecode] = Field(
        default=["npx", "remotion", "render"], description="Command prefix that runs a render"
    )
    extra_render_args: Annotated[List[str], NoDecode] = Field(
        default=[], description="Additional arguments appended to every render command"
    )
    output_extension: str = Field(default="mp4", description="Rendered file extension")
    output_media_type: str = Field(default="video/mp4", description="Rendered file media type")

    # Render Execution Configuration
    render_timeout: Optional[float] = Field(
        default=None, gt=0, description="Render timeout in seconds (unset waits indefinitely)"
    )
    max_concurrent_renders: Optional[int] = Field(
        default=None, gt=0, description="Maximum simultaneous renders (unset is unlimited)"
    )
    stderr_failure_markers: Annotated[List[str], NoDecode] = Field(
        default=["error"],
        description="Case-insensitive markers in renderer stderr that classify a render as failed",
    )
    max_diagnostic_chars: int = Field(
        default=4000, gt=0, description="Maximum diagnostic characters returned to callers"
    )
    delivery_chunk_size: int = Field(
        default=64 * 1024, gt=0, description="Chunk size in bytes used when streaming videos"
    )

    # Security Configuration
    allowed_hosts: Annotated[List[str], NoDecode] = Field(
        default=["*"], description="Allowed hosts for CORS"
    )

    # Monitoring Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("allowed_hosts", "stderr_failure_markers", mode="before")
    @classmethod
    def parse_string_list(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse a list from a JSON array or comma-separated string."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("render_command", "extra_render_args", mode="before")
    @classmethod
    def parse_command(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse a command from a JSON array or a shell-style string."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return shlex.split(v)
        return v

    @field_validator("render_command")
    @classmethod
    def validate_render_command(cls, v: List[str]) -> List[str]:
        """Require at least an executable."""
        if not v:
            raise ValueError("render_command must name an executable")
        return v

    @field_validator("output_extension")
    @classmethod
    def validate_output_extension(cls, v: str) -> str:
        """Strip a leading dot and reject path separators."""
        v = v.lstrip(".")
        if not v or "/" in v or "\\" in v:
            raise ValueError("output_extension must be a bare file extension")
        return v

    @field_validator("stderr_failure_markers")
    @classmethod
    def normalize_markers(cls, v: List[str]) -> List[str]:
        """Lower-case markers for case-insensitive matching."""
        return [marker.lower() for marker in v if marker]

    @field_validator("output_dir", "log_dir")
    @classmethod
    def create_directories(cls, v: Path) -> Path:
        """Ensure directories exist."""
        v = v.expanduser().resolve()
        v.mkdir(parents=True, exist_ok=True)
        return v

    @field_validator("remotion_project_dir")
    @classmethod
    def resolve_project_dir(cls, v: Path) -> Path:
        """Resolve the project root to an absolute path."""
        return v.expanduser().resolve()

    @property
    def entry_point_path(self) -> Path:
        """Absolute path of the Remotion entry point."""
        if self.remotion_entry_point.is_absolute():
            return self.remotion_entry_point
        return self.remotion_project_dir / self.remotion_entry_point

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="REMOTION_RENDER_",
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
