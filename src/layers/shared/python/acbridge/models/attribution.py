"""Visitor attribution state and tag normalization.

Attribution state is the set of tags captured from a landing-page URL,
plus the unix timestamp of the capture. It travels in two places:

    cookie ``mepr_ac_tags``     {"tags": [...], "timestamp": N}
    cookie ``mepr_ac_tags_js``  {"tags": [...], "timestamp": N, "url": "..."}
                                (written by the client-side tracking script)

and in the server-side visitor session. Expiry is only checked on read.
"""

import json
import re
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel as PydanticBaseModel, Field, field_validator

SESSION_MAX_AGE = 60 * 60  # 1 hour
COOKIE_MAX_AGE = 7 * 24 * 60 * 60  # 7 days

_HTML_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_tag(value: Any) -> str:
    """Normalize a raw tag value: strip markup and whitespace, lowercase."""
    if value is None:
        return ""
    tag = _HTML_TAG_RE.sub("", str(value))
    tag = _WHITESPACE_RE.sub(" ", tag)
    return tag.strip().lower()


def normalize_tags(values: Iterable[Any]) -> list[str]:
    """Normalize a sequence of tags, dropping empties and duplicates.

    Order of first occurrence is preserved.
    """
    tags: list[str] = []
    for value in values:
        tag = normalize_tag(value)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def split_tag_list(raw: str | None) -> list[str]:
    """Split a comma-separated tag list (as posted by the tracking script)."""
    if not raw:
        return []
    return normalize_tags(raw.split(","))


class AttributionState(PydanticBaseModel):
    """Tags captured for one visitor plus when they were captured."""

    tags: list[str] = Field(default_factory=list)
    timestamp: int = 0
    url: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize(cls, v: Any) -> list[str]:
        if not isinstance(v, (list, tuple)):
            raise ValueError("tags must be a list")
        return normalize_tags(v)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, v: Any) -> int:
        try:
            return int(v or 0)
        except (TypeError, ValueError):
            return 0

    def age(self, now: float) -> float:
        """Seconds elapsed since capture."""
        return now - self.timestamp

    def is_fresh(self, now: float, max_age: int) -> bool:
        """Check the retention window: ``now - timestamp <= max_age``."""
        return self.age(now) <= max_age

    def to_cookie_value(self) -> str:
        """Encode as the JSON cookie payload."""
        payload: dict[str, Any] = {"tags": self.tags, "timestamp": self.timestamp}
        if self.url:
            payload["url"] = self.url
        return json.dumps(payload, separators=(",", ":"))

    @classmethod
    def from_cookie_value(cls, raw: str | None) -> "AttributionState | None":
        """Decode a cookie payload, returning None for anything malformed."""
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None
        if not isinstance(data, dict) or not isinstance(data.get("tags"), list):
            return None
        try:
            return cls.model_validate(
                {
                    "tags": data["tags"],
                    "timestamp": data.get("timestamp"),
                    "url": data.get("url") if isinstance(data.get("url"), str) else None,
                }
            )
        except ValueError:
            return None
