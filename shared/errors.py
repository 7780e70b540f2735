"""
Shared error handling for the portfolio showcase services.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ShowcaseException(Exception):
    """Base exception for showcase services."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(ShowcaseException):
    """Invalid or inconsistent configuration."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class StorageCorrupt(ShowcaseException):
    """Persisted cache payload could not be deserialized."""

    def __init__(self, key: str, message: str = "Cached payload is corrupt", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORAGE_CORRUPT", message, {"key": key, **(details or {})})


class ResourceFetchError(ShowcaseException):
    """Base class for failures talking to the portfolio API."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, details)


class NotFound(ResourceFetchError):
    """The API answered 404: the resource does not exist (yet)."""

    def __init__(self, resource: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", f"{resource} not found", details)
        self.resource = resource


class BadResponseFormat(ResourceFetchError):
    """The API answered with something other than the expected JSON envelope."""

    def __init__(self, message: str = "Server returned non-JSON response", details: Optional[Dict[str, Any]] = None):
        super().__init__("BAD_RESPONSE_FORMAT", message, details)


class HttpError(ResourceFetchError):
    """The API answered with a non-successful status other than 404."""

    def __init__(self, status_code: int, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "HTTP_ERROR",
            message or f"HTTP {status_code}",
            {"status_code": status_code, **(details or {})}
        )
        self.status_code = status_code


class TransportError(ResourceFetchError):
    """The request never produced a response (timeout, refused connection, ...)."""

    def __init__(self, message: str = "Network request failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_ERROR", message, details)
