"""Authentication context helpers for the admin endpoints."""

from dataclasses import dataclass
from typing import Any

import structlog

from acbridge.utils.exceptions import ForbiddenError

logger = structlog.get_logger()


@dataclass
class AuthContext:
    """Identity passed through by the API Gateway authorizer."""

    user_id: str
    email: str | None = None
    is_admin: bool = False


def get_auth_context(event: dict[str, Any]) -> AuthContext:
    """Extract authentication context from API Gateway event.

    Args:
        event: API Gateway event dict.

    Returns:
        AuthContext with user information.

    Raises:
        ForbiddenError: If no authenticated user is present.
    """
    request_context = event.get("requestContext") or {}
    authorizer = request_context.get("authorizer") or {}

    # Lambda authorizer payload v2 nests the context
    context = authorizer.get("lambda", authorizer)

    user_id = context.get("userId") or context.get("user_id") or context.get("sub")
    if not user_id:
        logger.warning("No user ID in auth context")
        raise ForbiddenError("Authentication required")

    is_admin = context.get("isAdmin", False) or context.get("is_admin", False)
    if isinstance(is_admin, str):
        is_admin = is_admin.lower() == "true"

    return AuthContext(
        user_id=user_id,
        email=context.get("email"),
        is_admin=bool(is_admin),
    )


def require_admin(event: dict[str, Any]) -> AuthContext:
    """Ensure the caller may manage integration settings.

    Raises:
        ForbiddenError: If the caller is not an admin.
    """
    auth = get_auth_context(event)
    if not auth.is_admin:
        logger.warning("Admin access denied", user_id=auth.user_id)
        raise ForbiddenError()
    return auth
