"""Request context passed to the tag resolver.

Everything the resolver may consult for one HTTP request (query string,
posted form fields, headers, cookies, stored session attribution) is
gathered here once, so the resolver never touches the raw event.
"""

import base64
import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, urlparse

from acbridge.models.attribution import AttributionState
from acbridge.utils.cookies import SESSION_COOKIE, cookies_from_event

# Hidden fields injected into signup forms by the tracking script
POSTED_TAGS_FIELD = "mepr_ac_tags"
POSTED_URL_FIELD = "mepr_ac_url"
# WordPress-style referer field posted by host forms
HOST_REFERER_FIELD = "_wp_http_referer"


def get_url_param(url: str | None, name: str) -> str | None:
    """Get the first non-empty value of a query parameter in a URL."""
    if not url or not name:
        return None
    query = urlparse(url).query
    if not query:
        return None
    values = parse_qs(query).get(name) or []
    for value in values:
        if value:
            return value
    return None


def _flatten(params: dict[str, Any] | None) -> dict[str, str]:
    flat: dict[str, str] = {}
    for key, value in (params or {}).items():
        if isinstance(value, list):
            value = value[0] if value else ""
        if value is None or isinstance(value, (dict, list)):
            continue
        flat[str(key)] = str(value)
    return flat


def parse_form_body(event: dict[str, Any]) -> dict[str, Any]:
    """Parse the request body as JSON or form-urlencoded.

    Returns:
        Parsed body; empty dict when there is no usable body.
    """
    body_raw = event.get("body") or ""
    if event.get("isBase64Encoded") and body_raw:
        body_raw = base64.b64decode(body_raw).decode("utf-8", errors="replace")
    if not body_raw:
        return {}

    headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
    content_type = (headers.get("content-type") or "").lower()

    if "application/x-www-form-urlencoded" in content_type:
        return {k: v[0] for k, v in parse_qs(body_raw, keep_blank_values=True).items()}

    try:
        parsed = json.loads(body_raw)
    except (json.JSONDecodeError, TypeError):
        # Untyped bodies from plain HTML forms
        return {k: v[0] for k, v in parse_qs(body_raw, keep_blank_values=True).items()}
    return parsed if isinstance(parsed, dict) else {}


@dataclass
class RequestContext:
    """Inputs for tag resolution from one request."""

    query_params: dict[str, str] = field(default_factory=dict)
    form_fields: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    path: str = "/"
    host: str = ""
    scheme: str = "https"
    session_id: str | None = None
    session_state: AttributionState | None = None

    def __post_init__(self) -> None:
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    @classmethod
    def from_event(
        cls,
        event: dict[str, Any],
        body: dict[str, Any] | None = None,
        session_state: AttributionState | None = None,
    ) -> "RequestContext":
        """Build a context from an API Gateway proxy event.

        Args:
            event: API Gateway event (REST v1 or HTTP v2).
            body: Already parsed body, if the caller parsed it.
            session_state: Attribution loaded from the session store.
        """
        headers = {k.lower(): v for k, v in (event.get("headers") or {}).items() if v is not None}
        cookies = cookies_from_event(event)
        if body is None:
            body = parse_form_body(event)

        query_params = event.get("queryStringParameters") or {}
        if not query_params and event.get("rawQueryString"):
            query_params = parse_qs(event["rawQueryString"])

        path = event.get("path") or event.get("rawPath") or "/"
        scheme = (headers.get("x-forwarded-proto") or "https").split(",")[0].strip()

        return cls(
            query_params=_flatten(query_params),
            form_fields=_flatten(body),
            headers=headers,
            cookies=cookies,
            path=path,
            host=headers.get("host", ""),
            scheme=scheme,
            session_id=cookies.get(SESSION_COOKIE),
            session_state=session_state,
        )

    @property
    def current_url(self) -> str:
        """Reconstruct the requested URL (scheme://host/path?query)."""
        url = f"{self.scheme}://{self.host}{self.path}"
        if self.query_params:
            query = "&".join(f"{k}={v}" for k, v in self.query_params.items())
            url = f"{url}?{query}"
        return url

    @property
    def referer(self) -> str | None:
        """Raw Referer header."""
        return self.headers.get("referer") or None

    def host_referrer(self) -> str | None:
        """Referrer as the host platform resolves it.

        Prefers the posted ``_wp_http_referer`` field over the Referer header
        and ignores a referrer that points at the current request itself.
        """
        candidate = self.form_fields.get(HOST_REFERER_FIELD) or self.referer
        if not candidate:
            return None
        if candidate.startswith("/") and self.host:
            candidate = f"{self.scheme}://{self.host}{candidate}"
        if candidate == self.current_url:
            return None
        return candidate

    def query_param(self, name: str) -> str | None:
        """Non-empty query parameter value, if present."""
        return self.query_params.get(name) or None

    def form_field(self, name: str) -> str | None:
        """Non-empty posted form field value, if present."""
        return self.form_fields.get(name) or None
