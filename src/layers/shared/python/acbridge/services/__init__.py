"""Business logic services."""

from acbridge.services.activecampaign import ActiveCampaignClient
from acbridge.services.signup_service import SignupSyncService
from acbridge.services.tag_resolver import AttributionCapture, TagResolution, TagResolver
from acbridge.services.tracking_script import render_tracking_script

__all__ = [
    "ActiveCampaignClient",
    "AttributionCapture",
    "SignupSyncService",
    "TagResolution",
    "TagResolver",
    "render_tracking_script",
]
