from __future__ import annotations


class RentalMcpError(Exception):
    """Base exception for all rental platform MCP errors."""


class NotFoundError(RentalMcpError):
    """Raised when a requested row does not exist (or is not visible)."""


class ApiError(RentalMcpError):
    """Raised when the backend REST endpoint returns a non-2xx status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        super().__init__(message or f"Backend API error ({status_code})")


class InvalidStatusTransitionError(RentalMcpError):
    """Raised when a booking is moved to a status its current status does not allow."""

    def __init__(self, current: str, requested: str, allowed: list[str]) -> None:
        self.current = current
        self.requested = requested
        self.allowed = allowed
        super().__init__(
            f"Invalid status transition from '{current}' to '{requested}'. "
            f"Allowed transitions: {', '.join(allowed) or 'none'}"
        )


class ValidationError(RentalMcpError):
    """Raised when input parameters fail validation before any network call."""
