"""Tag resolution across the attribution sources.

Resolution walks TAG_SOURCES in priority order and stops at the first
source that yields at least one tag. Tags from different sources are never
merged. An empty result means the signup has no attribution signal and must
not be synced.
"""

import time
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from acbridge.models.attribution import AttributionState, normalize_tag
from acbridge.models.settings import IntegrationSettings
from acbridge.services.tag_sources import TAG_SOURCES, SourceScope, TagSource, from_query_param
from acbridge.utils.request_context import RequestContext

logger = structlog.get_logger()


@dataclass
class TagResolution:
    """Resolved tags and the source that supplied them."""

    tags: list[str] = field(default_factory=list)
    source: str | None = None

    def __bool__(self) -> bool:
        return bool(self.tags)


class TagResolver:
    """Resolves attribution tags for a request.

    Example:
        resolver = TagResolver(settings)
        tags = resolver.resolve(RequestContext.from_event(event))
    """

    def __init__(
        self,
        settings: IntegrationSettings,
        sources: Sequence[tuple[str, TagSource]] = TAG_SOURCES,
        apply_prefix: bool = True,
    ):
        """Initialize the resolver.

        Args:
            settings: Integration settings (parameter name, prefix, flags).
            sources: Ordered (name, source) pairs; defaults to TAG_SOURCES.
            apply_prefix: Prepend tag_prefix to resolved tags. Stored
                attribution keeps bare tags, so only the read path prefixes.
        """
        self.settings = settings
        self.sources = tuple(sources)
        self.apply_prefix = apply_prefix
        self.logger = logger.bind(param_name=settings.url_param_name)

    def _scope(self, now: float | None) -> SourceScope:
        return SourceScope(
            param_name=self.settings.url_param_name,
            now=time.time() if now is None else now,
            page_slug_tagging=self.settings.page_slug_tagging,
            require_url_param=self.settings.require_url_param,
        )

    def _trace(self, event: str, **kwargs) -> None:
        if self.settings.debug_mode:
            self.logger.info(event, **kwargs)

    def _apply_prefix(self, tags: list[str]) -> list[str]:
        prefix = normalize_tag(self.settings.tag_prefix)
        if not prefix or not self.apply_prefix:
            return tags
        return [f"{prefix}{tag}" for tag in tags]

    def resolve_with_source(
        self,
        context: RequestContext,
        now: float | None = None,
    ) -> TagResolution:
        """Resolve tags and report which source supplied them.

        Args:
            context: Request inputs.
            now: Unix time for expiry checks (defaults to the current time).

        Returns:
            TagResolution; empty when no source produced a tag.
        """
        scope = self._scope(now)
        self._trace(
            "Tag resolution started",
            form_fields=sorted(context.form_fields),
            cookies=sorted(context.cookies),
            referer=context.referer,
        )

        for position, (name, source) in enumerate(self.sources, start=1):
            tags = source(context, scope)
            if tags:
                tags = self._apply_prefix(tags)
                self._trace("Tag source matched", position=position, source=name, tags=tags)
                return TagResolution(tags=tags, source=name)
            self._trace("Tag source empty", position=position, source=name)

        self._trace("No tags found in any source")
        return TagResolution()

    def resolve(self, context: RequestContext, now: float | None = None) -> list[str]:
        """Resolve the ordered, de-duplicated tag list for a request."""
        return self.resolve_with_source(context, now).tags


class AttributionCapture:
    """Page-view write path: captures tags carried by the current URL."""

    def __init__(self, settings: IntegrationSettings):
        self.settings = settings
        self._resolver = TagResolver(
            settings,
            sources=(("query_param", from_query_param),),
            apply_prefix=False,
        )

    def capture(self, context: RequestContext, now: float | None = None) -> AttributionState | None:
        """Build the attribution state to store for this page view.

        Args:
            context: Page view request.
            now: Capture time (defaults to the current time).

        Returns:
            AttributionState when the URL carries the parameter, else None.
        """
        now = time.time() if now is None else now
        tags = self._resolver.resolve(context, now)
        if not tags:
            return None

        state = AttributionState(tags=tags, timestamp=int(now))
        if self.settings.debug_mode:
            logger.info("Tags captured from URL", url=context.current_url, tags=tags)
        return state
