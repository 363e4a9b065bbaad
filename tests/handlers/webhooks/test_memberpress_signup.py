"""Tests for the MemberPress signup webhook handler."""

import json
import time
from unittest.mock import patch
from urllib.parse import quote, urlencode

from acbridge.models.attribution import AttributionState
from acbridge.models.signup import SyncResult
from acbridge.repositories.session import SessionRepository


def _parse_body(response: dict) -> dict:
    """Parse JSON response body."""
    return json.loads(response["body"])


def signup_event(api_gateway_event, form: dict, cookies: dict = None, headers: dict = None):
    """Build a form-encoded signup POST."""
    event_headers = {"Content-Type": "application/x-www-form-urlencoded"}
    event_headers.update(headers or {})
    return api_gateway_event(
        method="POST",
        path="/webhooks/memberpress/signup",
        body=urlencode(form),
        headers=event_headers,
        cookies={k: quote(v) for k, v in (cookies or {}).items()},
    )


FORM = {
    "user_email": "jane@example.com",
    "user_first_name": "Jane",
    "user_last_name": "Doe",
}


class TestSignupWebhook:
    """POST /webhooks/memberpress/signup"""

    @patch("acbridge.services.signup_service.ActiveCampaignClient")
    def test_posted_tags_are_synced(self, mock_client_cls, stored_settings, api_gateway_event):
        from webhooks.memberpress_signup import handler

        client = mock_client_cls.from_settings.return_value
        client.sync.return_value = SyncResult.synced("17", applied_tags=["spring", "promo"])

        event = signup_event(api_gateway_event, {**FORM, "mepr_ac_tags": "Spring,promo"})

        response = handler(event, None)

        assert response["statusCode"] == 200
        body = _parse_body(response)
        assert body["status"] == "synced"
        assert body["tags"] == ["spring", "promo"]
        assert body["tag_source"] == "posted_tags"
        client.sync.assert_called_once_with("jane@example.com", "Jane", "Doe", ["spring", "promo"])

    @patch("acbridge.services.signup_service.ActiveCampaignClient")
    def test_session_attribution_used_and_cleared(self, mock_client_cls, stored_settings, api_gateway_event):
        from webhooks.memberpress_signup import handler

        client = mock_client_cls.from_settings.return_value
        client.sync.return_value = SyncResult.synced("17", applied_tags=["podcast"])

        sessions = SessionRepository()
        sessions.store_attribution("01HSESSION", AttributionState(tags=["podcast"], timestamp=int(time.time())))

        event = signup_event(api_gateway_event, FORM, cookies={"acbridge_sid": "01HSESSION"})

        response = handler(event, None)

        body = _parse_body(response)
        assert body["status"] == "synced"
        assert body["tag_source"] == "session"
        assert sessions.get_attribution("01HSESSION") is None

    @patch("acbridge.services.signup_service.ActiveCampaignClient")
    def test_cookie_attribution_expires_cookies(self, mock_client_cls, stored_settings, api_gateway_event):
        from webhooks.memberpress_signup import handler

        client = mock_client_cls.from_settings.return_value
        client.sync.return_value = SyncResult.synced("17", applied_tags=["facebook"])

        cookie = json.dumps({"tags": ["facebook"], "timestamp": int(time.time()) - 3 * 24 * 3600})
        event = signup_event(api_gateway_event, FORM, cookies={"mepr_ac_tags": cookie})

        response = handler(event, None)

        assert _parse_body(response)["tag_source"] == "server_cookie"
        set_cookies = response["multiValueHeaders"]["Set-Cookie"]
        assert set_cookies == [
            "mepr_ac_tags=; Max-Age=0; Expires=Thu, 01 Jan 1970 00:00:00 GMT; Path=/; SameSite=Lax"
        ]

    @patch("acbridge.services.signup_service.ActiveCampaignClient")
    def test_referer_attribution(self, mock_client_cls, stored_settings, api_gateway_event):
        from webhooks.memberpress_signup import handler

        client = mock_client_cls.from_settings.return_value
        client.sync.return_value = SyncResult.synced("17", applied_tags=["google"])

        event = signup_event(
            api_gateway_event,
            FORM,
            headers={"Referer": "https://members.example.com/register/?source=Google"},
        )

        body = _parse_body(handler(event, None))

        assert body["tags"] == ["google"]
        assert body["tag_source"] == "http_referer"

    @patch("acbridge.services.signup_service.ActiveCampaignClient")
    def test_no_attribution_is_not_synced(self, mock_client_cls, stored_settings, api_gateway_event):
        from webhooks.memberpress_signup import handler

        response = handler(signup_event(api_gateway_event, FORM), None)

        assert response["statusCode"] == 200
        assert _parse_body(response) == {"status": "skipped", "tags": [], "reason": "no_attribution"}
        mock_client_cls.from_settings.return_value.sync.assert_not_called()

    @patch("acbridge.services.signup_service.ActiveCampaignClient")
    def test_sync_failure_does_not_fail_signup(self, mock_client_cls, stored_settings, api_gateway_event):
        from webhooks.memberpress_signup import handler

        client = mock_client_cls.from_settings.return_value
        client.sync.return_value = SyncResult.failed("API error: HTTP 500", error_code="API_ERROR")

        response = handler(signup_event(api_gateway_event, {**FORM, "mepr_ac_tags": "x"}), None)

        assert response["statusCode"] == 200
        assert _parse_body(response)["status"] == "failed"

    def test_unconfigured_is_inert(self, dynamodb_table, api_gateway_event):
        from webhooks.memberpress_signup import handler

        response = handler(signup_event(api_gateway_event, {**FORM, "mepr_ac_tags": "x"}), None)

        assert _parse_body(response)["reason"] == "not_configured"
        assert "multiValueHeaders" not in response

    @patch("acbridge.services.signup_service.ActiveCampaignClient")
    def test_nested_json_payload(self, mock_client_cls, stored_settings, api_gateway_event):
        from webhooks.memberpress_signup import handler

        client = mock_client_cls.from_settings.return_value
        client.sync.return_value = SyncResult.synced("17", applied_tags=["fb"])

        event = api_gateway_event(
            method="POST",
            path="/webhooks/memberpress/signup",
            query_params={"source": "fb"},
            body={"event": "member-signup", "user": {"email": "jane@example.com", "first_name": "Jane"}},
        )

        body = _parse_body(handler(event, None))

        assert body["status"] == "synced"
        client.sync.assert_called_once_with("jane@example.com", "Jane", "", ["fb"])

    @patch("webhooks.memberpress_signup.SettingsRepository")
    def test_internal_error_still_returns_200(self, mock_repo, api_gateway_event):
        from webhooks.memberpress_signup import handler

        mock_repo.return_value.load.side_effect = RuntimeError("dynamodb down")

        response = handler(signup_event(api_gateway_event, FORM), None)

        assert response["statusCode"] == 200
        assert _parse_body(response)["reason"] == "internal_error"


class TestLandingToSignup:
    """Page view with the parameter, then a signup without it."""

    @patch("acbridge.services.signup_service.ActiveCampaignClient")
    def test_stored_tag_reaches_contact_sync(self, mock_client_cls, stored_settings, api_gateway_event):
        from api.attribution_tracking import handler as capture_handler
        from webhooks.memberpress_signup import handler as signup_handler

        client = mock_client_cls.from_settings.return_value
        client.sync.return_value = SyncResult.synced("17", applied_tags=["messekoeln"])

        capture = capture_handler(api_gateway_event(
            path="/attribution/capture",
            query_params={"page_url": "https://members.example.com/premium/?source=messekoeln"},
        ), None)

        # Browser sends back what the capture set
        cookies = {}
        for header in capture["multiValueHeaders"]["Set-Cookie"]:
            name, _, rest = header.partition("=")
            cookies[name] = rest.split(";", 1)[0]

        event = api_gateway_event(
            method="POST",
            path="/webhooks/memberpress/signup",
            body=urlencode({"user_email": "visitor@example.com"}),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            cookies=cookies,
        )

        body = _parse_body(signup_handler(event, None))

        assert body["status"] == "synced"
        assert body["tags"] == ["messekoeln"]
        client.sync.assert_called_once_with("visitor@example.com", "", "", ["messekoeln"])
        assert SessionRepository().get_attribution(cookies["acbridge_sid"]) is None
