"""
Render Errors
=============

Exceptions raised by the render job lifecycle and mapped to HTTP responses.
"""

from typing import Optional


class RenderServiceError(Exception):
    """Base class for render job errors."""

    status_code = 500
    error_code = "RENDER_SERVICE_ERROR"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ClientInputError(RenderServiceError):
    """Exception raised when a render request is missing or has invalid input."""

    status_code = 400
    error_code = "INVALID_REQUEST"


class RenderFailure(RenderServiceError):
    """Exception raised when the renderer fails or reports an error."""

    error_code = "RENDER_FAILED"


class DeliveryFailure(RenderServiceError):
    """Exception raised when a rendered video cannot be sent to the caller."""

    error_code = "DELIVERY_FAILED"
