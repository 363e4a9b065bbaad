"""Pydantic models for the ActiveCampaign bridge."""

from acbridge.models.attribution import (
    COOKIE_MAX_AGE,
    SESSION_MAX_AGE,
    AttributionState,
    normalize_tag,
    normalize_tags,
)
from acbridge.models.base import BaseModel, generate_ulid, utc_now
from acbridge.models.session import VisitorSession
from acbridge.models.settings import IntegrationSettings, UpdateSettingsRequest
from acbridge.models.signup import (
    ConnectionResult,
    SignupOutcome,
    SignupUser,
    SyncResult,
    is_valid_email,
)

__all__ = [
    # Base
    "BaseModel",
    "generate_ulid",
    "utc_now",
    # Attribution
    "AttributionState",
    "COOKIE_MAX_AGE",
    "SESSION_MAX_AGE",
    "normalize_tag",
    "normalize_tags",
    "VisitorSession",
    # Settings
    "IntegrationSettings",
    "UpdateSettingsRequest",
    # Signup
    "ConnectionResult",
    "SignupOutcome",
    "SignupUser",
    "SyncResult",
    "is_valid_email",
]
