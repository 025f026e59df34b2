"""
Shared error handling for the Bearer Gate.

Every failure the gate can surface is an ``OAuthError``: an RFC 6750
error code, a human description and the HTTP status to answer with.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    error_description: str


class AccessLayerException(Exception):
    """Base exception for gate services."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class OAuthError(AccessLayerException):
    """Classified authentication error.

    ``error`` is the machine code, ``error_description`` the human text and
    ``status_code`` the HTTP status. ``realm`` is only used to build the
    ``WWW-Authenticate`` challenge on 401 responses.
    """

    def __init__(
        self,
        error: str,
        error_description: str,
        status_code: int = 400,
        realm: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(error, error_description, details)
        self.error = error
        self.error_description = error_description
        self.status_code = status_code
        self.realm = realm

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.error, error_description=self.error_description)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(error={self.error!r}, "
            f"error_description={self.error_description!r}, status_code={self.status_code})"
        )


class InvalidRequestError(OAuthError):
    """Malformed or ambiguous credential presentation."""

    def __init__(self, error_description: str = "Invalid request", details: Optional[Dict[str, Any]] = None):
        super().__init__("invalid_request", error_description, 400, details=details)


class UnauthorizedError(OAuthError):
    """Well-formed request that carries no credential."""

    def __init__(
        self,
        error_description: str = "An access token is required",
        error: str = "invalid_request",
        realm: Optional[str] = "user",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(error, error_description, 401, realm=realm, details=details)


class InvalidTokenError(OAuthError):
    """Token present but rejected (signature, expiry, issuer)."""

    def __init__(
        self,
        error_description: str = "Invalid access token",
        realm: Optional[str] = "user",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("invalid_token", error_description, 401, realm=realm, details=details)


class ForbiddenTokenError(OAuthError):
    """Valid token issued for another audience or client."""

    def __init__(self, error_description: str = "Mismatching audience", details: Optional[Dict[str, Any]] = None):
        super().__init__("invalid_token", error_description, 403, details=details)


class InsufficientScopeError(OAuthError):
    """Valid token lacking a required scope."""

    def __init__(self, error_description: str = "Insufficient scope", details: Optional[Dict[str, Any]] = None):
        super().__init__("insufficient_scope", error_description, 403, details=details)


class ProviderError(OAuthError):
    """Issuing authority unreachable or returned garbage."""

    def __init__(
        self,
        service: str,
        message: str = "External service error",
        status_code: int = 502,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("server_error", f"{service}: {message}", status_code, details=details)
        self.service = service
