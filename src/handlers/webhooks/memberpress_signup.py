"""MemberPress signup webhook handler.

Receives the signup form submission (or a MemberPress ``member-signup``
webhook) together with the visitor's cookies and referrer, resolves the
attribution tags and syncs the member to ActiveCampaign.

This endpoint must never make the signup fail: every outcome, including
internal errors, is answered with 200.
"""

from typing import Any

import structlog

from acbridge.models.signup import SignupUser
from acbridge.repositories.session import SessionRepository
from acbridge.repositories.settings import SettingsRepository
from acbridge.services.signup_service import SignupSyncService
from acbridge.utils.request_context import RequestContext, parse_form_body
from acbridge.utils.responses import success, with_cookies

logger = structlog.get_logger()


def handler(event: dict[str, Any], context: Any) -> dict:
    """Handle a signup event.

    Routes:
        POST /webhooks/memberpress/signup
    """
    try:
        body = parse_form_body(event)
        user = SignupUser.from_payload(body)

        settings = SettingsRepository().load()
        if not settings.is_configured:
            logger.debug("Integration not configured, signup ignored")
            return success({"status": "skipped", "reason": "not_configured", "tags": []})

        sessions = SessionRepository()
        request = RequestContext.from_event(event, body=body)
        try:
            request.session_state = sessions.get_attribution(request.session_id)
        except Exception as e:
            logger.warning("Failed to load session attribution", error=str(e))

        service = SignupSyncService(settings, session_repository=sessions)
        try:
            outcome = service.handle_signup(user, request)
        finally:
            service.client.close()

        return with_cookies(success(outcome.to_dict()), outcome.expired_cookies)

    except Exception as e:
        logger.exception("Signup webhook error", error=str(e))
        # Don't fail the signup
        return success({"status": "failed", "reason": "internal_error", "tags": []})
