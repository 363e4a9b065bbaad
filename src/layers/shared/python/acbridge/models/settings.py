"""Integration settings model.

Single item in the table:
    PK: INTEGRATION#activecampaign
    SK: SETTINGS
"""

import os
import re
from typing import Any, ClassVar

from pydantic import BaseModel as PydanticBaseModel, Field, field_validator

from acbridge.models.base import BaseModel

DEFAULT_URL_PARAM_NAME = "source"

_KEY_INVALID_RE = re.compile(r"[^a-z0-9_\-]")


def sanitize_key(value: str) -> str:
    """Lowercase and keep only ``a-z0-9_-`` (query parameter names)."""
    return _KEY_INVALID_RE.sub("", value.lower())


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


class IntegrationSettings(BaseModel):
    """ActiveCampaign connection and tagging configuration.

    Defaults are resolved once, at construction, from the AC_* environment
    variables. Values saved through the admin API override them.
    """

    _pk: ClassVar[str] = "INTEGRATION#activecampaign"
    _sk: ClassVar[str] = "SETTINGS"

    api_url: str = Field(
        default_factory=lambda: os.environ.get("AC_API_URL", ""),
        validate_default=True,
        description="Account API base URL, e.g. https://acme.api-us1.com",
    )
    api_key: str = Field(
        default_factory=lambda: os.environ.get("AC_API_KEY", ""),
        validate_default=True,
        description="API token sent as the Api-Token header",
    )
    url_param_name: str = Field(
        default_factory=lambda: os.environ.get("AC_URL_PARAM_NAME", DEFAULT_URL_PARAM_NAME),
        validate_default=True,
        description="Query parameter whose value becomes the tag",
    )
    debug_mode: bool = Field(
        default_factory=lambda: _env_flag("AC_DEBUG_MODE"),
        description="Emit verbose attribution trace logs",
    )

    # Legacy (1.x) tagging options
    require_url_param: bool = True
    tag_prefix: str = ""
    page_slug_tagging: bool = False

    @field_validator("api_url", mode="before")
    @classmethod
    def _strip_api_url(cls, v: Any) -> str:
        return str(v or "").strip().rstrip("/")

    @field_validator("api_key", "tag_prefix", mode="before")
    @classmethod
    def _strip_text(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("url_param_name", mode="before")
    @classmethod
    def _sanitize_param_name(cls, v: Any) -> str:
        return sanitize_key(str(v or "")) or DEFAULT_URL_PARAM_NAME

    @property
    def is_configured(self) -> bool:
        """Tagging and sync are inert unless both URL and key are set."""
        return bool(self.api_url and self.api_key)

    @property
    def masked_api_key(self) -> str:
        """API key with all but the last four characters hidden."""
        if not self.api_key:
            return ""
        return "*" * max(len(self.api_key) - 4, 0) + self.api_key[-4:]

    def to_public_dict(self) -> dict[str, Any]:
        """Settings as returned to the admin UI (key masked)."""
        data = self.model_dump(mode="json", exclude={"api_key", "created_at", "updated_at"})
        data["api_key"] = self.masked_api_key
        data["configured"] = self.is_configured
        return data

    def get_pk(self) -> str:
        return self._pk

    def get_sk(self) -> str:
        return self._sk


class UpdateSettingsRequest(PydanticBaseModel):
    """Request model for saving settings from the admin UI.

    Omitted fields keep their stored value. Echoing back the masked key the
    UI displays leaves the stored key unchanged.
    """

    api_url: str | None = None
    api_key: str | None = None
    url_param_name: str | None = None
    debug_mode: bool | None = None
    require_url_param: bool | None = None
    tag_prefix: str | None = None
    page_slug_tagging: bool | None = None

    def apply_to(self, settings: IntegrationSettings) -> IntegrationSettings:
        """Return a copy of ``settings`` with the provided fields replaced."""
        updates = self.model_dump(exclude_none=True)
        if updates.get("api_key") and updates["api_key"] == settings.masked_api_key:
            updates.pop("api_key")
        data = settings.model_dump()
        data.update(updates)
        return IntegrationSettings.model_validate(data)


class ConnectionTestRequest(PydanticBaseModel):
    """Credentials entered in the admin UI, tested before saving."""

    api_url: str = ""
    api_key: str = ""

    @field_validator("api_url", "api_key", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return str(v or "").strip()

    @property
    def base_url(self) -> str:
        return self.api_url.rstrip("/")


class SendTestRequest(PydanticBaseModel):
    """Admin test send: one email, one tag."""

    email: str = ""
    tag: str = ""

    @field_validator("email", "tag", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return str(v or "").strip()
