"""Attribution sources for tag resolution.

Each source is a pure function ``(context, scope) -> list[str]`` returning
normalized tags, or an empty list when it has nothing to offer. The order of
TAG_SOURCES is the resolution priority.
"""

from collections.abc import Callable
from dataclasses import dataclass

from acbridge.models.attribution import (
    COOKIE_MAX_AGE,
    SESSION_MAX_AGE,
    AttributionState,
    normalize_tags,
    split_tag_list,
)
from acbridge.utils.cookies import CLIENT_TAGS_COOKIE, SERVER_TAGS_COOKIE
from acbridge.utils.request_context import (
    POSTED_TAGS_FIELD,
    POSTED_URL_FIELD,
    RequestContext,
    get_url_param,
)


@dataclass(frozen=True)
class SourceScope:
    """Settings and clock shared by all sources in one resolution pass."""

    param_name: str
    now: float
    page_slug_tagging: bool = False
    require_url_param: bool = True


TagSource = Callable[[RequestContext, SourceScope], list[str]]


def _first_path_segment(path: str) -> str | None:
    segments = [s for s in path.split("/") if s]
    return segments[0] if segments else None


def _fresh_tags(state: AttributionState | None, now: float, max_age: int) -> list[str]:
    if state is None or not state.is_fresh(now, max_age):
        return []
    return state.tags


def from_query_param(context: RequestContext, scope: SourceScope) -> list[str]:
    """Configured parameter in the current request's query string.

    With legacy page-slug tagging on, the first path segment is added as a
    second tag; it only stands alone when the parameter is not required.
    """
    raw: list[str] = []
    value = context.query_param(scope.param_name)
    if value:
        raw.append(value)
    if scope.page_slug_tagging and (raw or not scope.require_url_param):
        slug = _first_path_segment(context.path)
        if slug:
            raw.append(slug)
    return normalize_tags(raw)


def from_posted_url(context: RequestContext, scope: SourceScope) -> list[str]:
    """Configured parameter inside the URL posted by the tracking script."""
    value = get_url_param(context.form_field(POSTED_URL_FIELD), scope.param_name)
    return normalize_tags([value]) if value else []


def from_posted_tags(context: RequestContext, scope: SourceScope) -> list[str]:
    """Comma-separated tag list posted by the tracking script."""
    return split_tag_list(context.form_field(POSTED_TAGS_FIELD))


def from_http_referer(context: RequestContext, scope: SourceScope) -> list[str]:
    """Configured parameter inside the raw Referer header."""
    value = get_url_param(context.referer, scope.param_name)
    return normalize_tags([value]) if value else []


def from_client_cookie(context: RequestContext, scope: SourceScope) -> list[str]:
    """Cookie written by the tracking script, valid for 7 days."""
    state = AttributionState.from_cookie_value(context.cookies.get(CLIENT_TAGS_COOKIE))
    return _fresh_tags(state, scope.now, COOKIE_MAX_AGE)


def from_server_cookie(context: RequestContext, scope: SourceScope) -> list[str]:
    """Cookie written on page view capture, valid for 7 days."""
    state = AttributionState.from_cookie_value(context.cookies.get(SERVER_TAGS_COOKIE))
    return _fresh_tags(state, scope.now, COOKIE_MAX_AGE)


def from_session(context: RequestContext, scope: SourceScope) -> list[str]:
    """Session attribution, valid for 1 hour."""
    return _fresh_tags(context.session_state, scope.now, SESSION_MAX_AGE)


def from_host_referrer(context: RequestContext, scope: SourceScope) -> list[str]:
    """Last resort: the host's own referrer resolution, then the raw header."""
    referrer = context.host_referrer() or context.referer
    value = get_url_param(referrer, scope.param_name)
    return normalize_tags([value]) if value else []


TAG_SOURCES: tuple[tuple[str, TagSource], ...] = (
    ("query_param", from_query_param),
    ("posted_url", from_posted_url),
    ("posted_tags", from_posted_tags),
    ("http_referer", from_http_referer),
    ("client_cookie", from_client_cookie),
    ("server_cookie", from_server_cookie),
    ("session", from_session),
    ("host_referrer", from_host_referrer),
)
