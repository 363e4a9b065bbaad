"""API Gateway response builders.

JSON responses carry CORS headers for the membership site. Cookies are
attached with with_cookies(), since a proxy response needs
multiValueHeaders to send more than one Set-Cookie.
"""

import json
import os
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel as PydanticBaseModel

# Origin of the site embedding the tracking script
_ALLOWED_ORIGIN = os.environ.get("CORS_ALLOWED_ORIGIN", "*")


def get_cors_headers() -> dict[str, str]:
    headers = {
        "Access-Control-Allow-Origin": _ALLOWED_ORIGIN,
        "Access-Control-Allow-Headers": "Content-Type,Authorization",
        "Access-Control-Allow-Methods": "GET,POST,PUT,OPTIONS",
        "Content-Type": "application/json",
    }
    # Browsers reject credentials with a wildcard origin
    if _ALLOWED_ORIGIN != "*":
        headers["Access-Control-Allow-Credentials"] = "true"
    return headers


CORS_HEADERS = get_cors_headers()


def _default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, PydanticBaseModel):
        return obj.model_dump(mode="json")
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def _json_response(status_code: int, body: Any) -> dict:
    return {
        "statusCode": status_code,
        "headers": dict(CORS_HEADERS),
        "body": json.dumps(body, default=_default),
    }


def success(data: Any, status_code: int = 200) -> dict:
    """JSON response for a handled request (dict, list or Pydantic model)."""
    if isinstance(data, PydanticBaseModel):
        data = data.model_dump(mode="json")
    return _json_response(status_code, data)


def error(
    message: str,
    status_code: int = 500,
    error_code: str | None = None,
    details: dict | None = None,
) -> dict:
    """JSON error response.

    Body: ``{"error": true, "message": ..., "error_code"?: ..., "details"?: ...}``
    """
    body: dict[str, Any] = {"error": True, "message": message}
    if error_code:
        body["error_code"] = error_code
    if details:
        body["details"] = details
    return _json_response(status_code, body)


def validation_error(errors: list[dict]) -> dict:
    """400 listing ``{"field", "message"}`` entries."""
    return error("Validation failed", 400, "VALIDATION_ERROR", {"errors": errors})


def forbidden(message: str = "You don't have permission to perform this action") -> dict:
    return error(message, 403, "FORBIDDEN")


def javascript(source: str, max_age: int = 300) -> dict:
    """Cacheable JavaScript response for the tracking script."""
    return {
        "statusCode": 200,
        "headers": {
            "Content-Type": "application/javascript; charset=utf-8",
            "Cache-Control": f"public, max-age={max_age}",
            "X-Content-Type-Options": "nosniff",
        },
        "body": source,
    }


def with_cookies(response: dict, cookies: list[str]) -> dict:
    """Add Set-Cookie header values to a response in place and return it."""
    if cookies:
        multi = response.setdefault("multiValueHeaders", {})
        multi.setdefault("Set-Cookie", []).extend(cookies)
    return response
