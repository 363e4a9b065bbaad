"""Utility functions and helpers."""

from acbridge.utils.auth import AuthContext, get_auth_context, require_admin
from acbridge.utils.exceptions import (
    AcBridgeError,
    ApiError,
    ForbiddenError,
    InvalidInputError,
    NoAttributionSignal,
    NotConfiguredError,
)
from acbridge.utils.request_context import RequestContext
from acbridge.utils.responses import error, forbidden, success, validation_error

__all__ = [
    # Response helpers
    "success",
    "error",
    "forbidden",
    "validation_error",
    # Auth
    "AuthContext",
    "get_auth_context",
    "require_admin",
    # Request
    "RequestContext",
    # Exceptions
    "AcBridgeError",
    "ApiError",
    "ForbiddenError",
    "InvalidInputError",
    "NoAttributionSignal",
    "NotConfiguredError",
]
