"""Cookie parsing and Set-Cookie header helpers."""

from email.utils import formatdate
from typing import Any
from urllib.parse import quote, unquote

# Server-set attribution cookie (JSON payload)
SERVER_TAGS_COOKIE = "mepr_ac_tags"
# Written by the client-side tracking script (JSON payload with url)
CLIENT_TAGS_COOKIE = "mepr_ac_tags_js"
# Visitor session id
SESSION_COOKIE = "acbridge_sid"

_EXPIRED = "Thu, 01 Jan 1970 00:00:00 GMT"


def parse_cookie_header(header: str | None) -> dict[str, str]:
    """Parse a Cookie header into a dict of URL-decoded values.

    The first occurrence of a name wins.
    """
    cookies: dict[str, str] = {}
    if not header:
        return cookies
    for part in header.split(";"):
        if "=" not in part:
            continue
        name, _, value = part.partition("=")
        name = name.strip()
        if not name or name in cookies:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        cookies[name] = unquote(value)
    return cookies


def cookies_from_event(event: dict[str, Any]) -> dict[str, str]:
    """Collect cookies from an API Gateway event (REST v1 or HTTP v2)."""
    # HTTP API (payload v2) passes cookies as a list
    v2_cookies = event.get("cookies")
    if v2_cookies:
        return parse_cookie_header("; ".join(v2_cookies))

    multi = event.get("multiValueHeaders") or {}
    for key, values in multi.items():
        if key.lower() == "cookie" and values:
            return parse_cookie_header("; ".join(values))

    headers = event.get("headers") or {}
    for key, value in headers.items():
        if key.lower() == "cookie":
            return parse_cookie_header(value)
    return {}


def build_set_cookie(
    name: str,
    value: str,
    max_age: int,
    now: float,
    path: str = "/",
    http_only: bool = False,
    secure: bool = False,
) -> str:
    """Build a Set-Cookie header value.

    Args:
        name: Cookie name.
        value: Raw value; URL-encoded here.
        max_age: Lifetime in seconds.
        now: Current unix time, used for the Expires attribute.
        path: Cookie path.
        http_only: Hide the cookie from client scripts.
        secure: Only send over HTTPS.

    Returns:
        Header value for Set-Cookie.
    """
    parts = [
        f"{name}={quote(value, safe='')}",
        f"Max-Age={max_age}",
        f"Expires={formatdate(now + max_age, usegmt=True)}",
        f"Path={path}",
        "SameSite=Lax",
    ]
    if http_only:
        parts.append("HttpOnly")
    if secure:
        parts.append("Secure")
    return "; ".join(parts)


def build_expired_cookie(name: str, path: str = "/") -> str:
    """Build a Set-Cookie header value that deletes a cookie."""
    return f"{name}=; Max-Age=0; Expires={_EXPIRED}; Path={path}; SameSite=Lax"
