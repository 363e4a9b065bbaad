"""Attribution tracking API handler (no authentication required).

Called for every page view of the membership site with the visitor's
cookies. The viewed page is either the request itself (when the edge
forwards the original path and query string) or the ``page_url`` query
parameter (when the page calls the endpoint as a beacon). Also serves the
client-side tracking script.
"""

import time
from typing import Any
from urllib.parse import parse_qs, urlparse

import structlog

from acbridge.models.attribution import COOKIE_MAX_AGE, SESSION_MAX_AGE
from acbridge.models.base import generate_ulid
from acbridge.repositories.session import SessionRepository
from acbridge.repositories.settings import SettingsRepository
from acbridge.services.tag_resolver import AttributionCapture
from acbridge.services.tracking_script import render_tracking_script
from acbridge.utils.cookies import SERVER_TAGS_COOKIE, SESSION_COOKIE, build_set_cookie
from acbridge.utils.request_context import RequestContext
from acbridge.utils.responses import error, javascript, success, with_cookies

logger = structlog.get_logger()


def handler(event: dict[str, Any], context: Any) -> dict:
    """Handle attribution tracking requests.

    Routes:
        GET  /attribution/script.js  - Client-side tracking script
        GET  /attribution/capture    - Capture tags from a page view
        POST /attribution/capture    - Same, for beacon-style calls
    """
    try:
        http_method = event.get("httpMethod", "").upper()
        path = event.get("path", "")

        if path.endswith("/attribution/script.js") and http_method == "GET":
            return get_tracking_script()
        elif "/attribution/capture" in path and http_method in ("GET", "POST"):
            return capture_page_view(event)
        else:
            return error("Not found", 404)

    except Exception as e:
        logger.exception("Attribution tracking handler error", error=str(e))
        return error("Internal server error", 500)


def get_tracking_script() -> dict:
    """Render the tracking script for the configured parameter."""
    settings = SettingsRepository().load()
    if not settings.is_configured:
        return javascript("/* acbridge: integration not configured */")
    return javascript(render_tracking_script(settings.url_param_name, settings.debug_mode))


def _page_view_event(event: dict[str, Any]) -> dict[str, Any]:
    """Rewrite a capture request so it describes the viewed page."""
    page_event = dict(event)
    page_event["body"] = None  # only the URL counts on page view

    params = dict(event.get("queryStringParameters") or {})
    page_url = params.pop("page_url", None)
    if not page_url:
        return page_event

    parsed = urlparse(page_url)
    headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
    if parsed.netloc:
        headers["host"] = parsed.netloc
    if parsed.scheme:
        headers["x-forwarded-proto"] = parsed.scheme

    page_event["headers"] = headers
    page_event["path"] = parsed.path or "/"
    page_event["queryStringParameters"] = {k: v[0] for k, v in parse_qs(parsed.query).items()}
    page_event["rawQueryString"] = parsed.query
    return page_event


def capture_page_view(event: dict[str, Any]) -> dict:
    """Store tags carried by the page URL in the session and a cookie.

    Nothing is written when the URL has no tag parameter or the integration
    is not configured.
    """
    settings = SettingsRepository().load()
    if not settings.is_configured:
        return success({"captured": False, "tags": []})

    request = RequestContext.from_event(_page_view_event(event))

    now = time.time()
    state = AttributionCapture(settings).capture(request, now)
    if state is None:
        return success({"captured": False, "tags": []})

    session_id = request.session_id or generate_ulid()
    try:
        SessionRepository().store_attribution(session_id, state)
    except Exception as e:
        # The cookie still carries the tags
        logger.warning("Failed to store session attribution", session_id=session_id, error=str(e))

    secure = request.scheme == "https"
    cookies = [
        build_set_cookie(
            SERVER_TAGS_COOKIE,
            state.to_cookie_value(),
            COOKIE_MAX_AGE,
            now,
            secure=secure,
        ),
        build_set_cookie(
            SESSION_COOKIE,
            session_id,
            SESSION_MAX_AGE,
            now,
            http_only=True,
            secure=secure,
        ),
    ]

    logger.info(
        "Tags stored in session and cookie",
        tags=state.tags,
        session_id=session_id,
        path=request.path,
    )

    return with_cookies(success({"captured": True, "tags": state.tags}), cookies)
