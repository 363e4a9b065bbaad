"""Exception types shared across the bridge."""

from typing import Any


class AcBridgeError(Exception):
    """Base exception for all bridge errors.

    Carries a machine-readable code and an HTTP status so handlers can turn
    it into an API response without inspecting the concrete type.
    """

    error_code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize AcBridgeError.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            status_code: HTTP status code for API responses.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for logging or API bodies."""
        data: dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            data["details"] = self.details
        return data


class NotConfiguredError(AcBridgeError):
    """API URL or API key is missing."""

    error_code = "NOT_CONFIGURED"
    status_code = 400

    def __init__(self, message: str = "ActiveCampaign API is not configured"):
        super().__init__(message)


class InvalidInputError(AcBridgeError):
    """Input rejected before any external call (bad email, empty tag)."""

    error_code = "INVALID_INPUT"
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, details={"field": field} if field else None)
        self.field = field


class ApiError(AcBridgeError):
    """ActiveCampaign returned a non-2xx status or the call failed in transport."""

    error_code = "API_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        response_body: str | None = None,
    ):
        details: dict[str, Any] = {}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__(message, details=details)
        self.upstream_status = upstream_status
        self.response_body = response_body


class ForbiddenError(AcBridgeError):
    """Caller is not allowed to perform an admin action."""

    error_code = "FORBIDDEN"
    status_code = 403

    def __init__(self, message: str = "You don't have permission to perform this action"):
        super().__init__(message)


class NoAttributionSignal(AcBridgeError):
    """No source produced a tag, so the signup is intentionally not synced."""

    error_code = "NO_ATTRIBUTION_SIGNAL"
    status_code = 200

    def __init__(self, message: str = "No attribution tag found for this signup"):
        super().__init__(message)
