"""
Remotion Render Server
======================

An HTTP service that renders a Remotion composition to a video file and
streams it back to the caller.

This package provides:
- FastAPI REST endpoint for render-and-download requests
- Core job lifecycle: path allocation, renderer invocation, delivery and cleanup
- Environment-based configuration with pydantic-settings
- Structured logging with structlog
"""

__version__ = "1.0.0"
__author__ = "Remotion Render Server Team"
