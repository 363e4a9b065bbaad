"""Tests for Pydantic models."""

import json

import pytest

from acbridge.models.attribution import AttributionState, normalize_tag, normalize_tags, split_tag_list
from acbridge.models.settings import (
    ConnectionTestRequest,
    IntegrationSettings,
    UpdateSettingsRequest,
    sanitize_key,
)
from acbridge.models.signup import SignupOutcome, SignupUser, SyncResult, is_valid_email


class TestNormalization:
    """Tests for tag normalization helpers."""

    @pytest.mark.parametrize("raw,expected", [
        ("Facebook", "facebook"),
        ("  padded  ", "padded"),
        ("<script>x</script>ads", "xads"),
        ("multi \t\n space", "multi space"),
        (None, ""),
        (42, "42"),
    ])
    def test_normalize_tag(self, raw, expected):
        assert normalize_tag(raw) == expected

    def test_normalize_tags_keeps_first_occurrence_order(self):
        assert normalize_tags(["B", "a", "b", "", "A"]) == ["b", "a"]

    def test_split_tag_list(self):
        assert split_tag_list("one, Two ,,one") == ["one", "two"]
        assert split_tag_list("") == []
        assert split_tag_list(None) == []


class TestAttributionState:
    """Tests for AttributionState."""

    def test_cookie_round_trip(self):
        state = AttributionState(tags=["facebook"], timestamp=1700000000)

        raw = state.to_cookie_value()

        assert json.loads(raw) == {"tags": ["facebook"], "timestamp": 1700000000}
        assert AttributionState.from_cookie_value(raw) == state

    def test_client_cookie_with_url(self):
        raw = json.dumps({"tags": ["Ads"], "timestamp": "1700000000", "url": "https://x/?source=ads"})

        state = AttributionState.from_cookie_value(raw)

        assert state.tags == ["ads"]
        assert state.timestamp == 1700000000
        assert state.url == "https://x/?source=ads"

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "not json",
        "[1, 2]",
        json.dumps({"timestamp": 1}),
        json.dumps({"tags": "facebook", "timestamp": 1}),
    ])
    def test_malformed_cookie(self, raw):
        assert AttributionState.from_cookie_value(raw) is None

    def test_missing_timestamp_is_zero(self):
        state = AttributionState.from_cookie_value(json.dumps({"tags": ["a"]}))

        assert state.timestamp == 0
        assert not state.is_fresh(1700000000, 3600)

    def test_freshness_boundary(self):
        state = AttributionState(tags=["a"], timestamp=1000)

        assert state.is_fresh(4600, 3600)
        assert not state.is_fresh(4601, 3600)

    def test_tags_must_be_list(self):
        with pytest.raises(ValueError):
            AttributionState(tags="facebook")


class TestIntegrationSettings:
    """Tests for IntegrationSettings."""

    def test_defaults(self):
        settings = IntegrationSettings()

        assert settings.api_url == ""
        assert settings.url_param_name == "source"
        assert settings.debug_mode is False
        assert settings.is_configured is False

    def test_environment_defaults(self, monkeypatch):
        monkeypatch.setenv("AC_API_URL", "https://env.api-us1.com/")
        monkeypatch.setenv("AC_API_KEY", "env-key")
        monkeypatch.setenv("AC_URL_PARAM_NAME", "Campaign")
        monkeypatch.setenv("AC_DEBUG_MODE", "true")

        settings = IntegrationSettings()

        assert settings.api_url == "https://env.api-us1.com"
        assert settings.api_key == "env-key"
        assert settings.url_param_name == "campaign"
        assert settings.debug_mode is True
        assert settings.is_configured is True

    def test_sanitization(self):
        settings = IntegrationSettings(
            api_url="  https://acme.api-us1.com///  ",
            api_key="  key  ",
            url_param_name="My Source!",
        )

        assert settings.api_url == "https://acme.api-us1.com"
        assert settings.api_key == "key"
        assert settings.url_param_name == "mysource"

    def test_blank_param_name_falls_back(self):
        assert IntegrationSettings(url_param_name="!!!").url_param_name == "source"

    def test_sanitize_key(self):
        assert sanitize_key("Utm_Source-2") == "utm_source-2"

    def test_public_dict_masks_key(self, settings):
        data = settings.to_public_dict()

        assert data["api_key"] == "*************1234"
        assert data["configured"] is True
        assert "created_at" not in data

    def test_keys(self, settings):
        assert settings.get_keys() == {"PK": "INTEGRATION#activecampaign", "SK": "SETTINGS"}


class TestUpdateSettingsRequest:
    """Tests for partial settings updates."""

    def test_only_provided_fields_change(self, settings):
        updated = UpdateSettingsRequest(url_param_name="Campaign").apply_to(settings)

        assert updated.url_param_name == "campaign"
        assert updated.api_key == settings.api_key
        assert updated.api_url == settings.api_url

    def test_masked_key_keeps_stored_key(self, settings):
        updated = UpdateSettingsRequest(api_key=settings.masked_api_key).apply_to(settings)

        assert updated.api_key == "test-api-key-1234"

    def test_new_key_replaces_stored_key(self, settings):
        updated = UpdateSettingsRequest(api_key="new-key").apply_to(settings)

        assert updated.api_key == "new-key"

    def test_connection_test_request_strips_url(self):
        request = ConnectionTestRequest(api_url=" https://acme.api-us1.com/ ", api_key=" k ")

        assert request.base_url == "https://acme.api-us1.com"
        assert request.api_key == "k"


class TestSignupModels:
    """Tests for signup models."""

    @pytest.mark.parametrize("email,valid", [
        ("jane@example.com", True),
        ("jane.doe+tag@sub.example.co", True),
        ("jane@", False),
        ("jane@example", False),
        ("", False),
        (None, False),
    ])
    def test_is_valid_email(self, email, valid):
        assert is_valid_email(email) is valid

    def test_user_from_nested_payload(self):
        user = SignupUser.from_payload({"user": {"email": " jane@example.com ", "first_name": "Jane"}})

        assert user.email == "jane@example.com"
        assert user.first_name == "Jane"
        assert user.last_name == ""

    def test_user_from_registration_form(self):
        user = SignupUser.from_payload({
            "user_email": "jane@example.com",
            "user_first_name": "Jane",
            "user_last_name": "Doe",
        })

        assert (user.email, user.first_name, user.last_name) == ("jane@example.com", "Jane", "Doe")

    def test_sync_result_to_dict(self):
        assert SyncResult.failed("nope", "API_ERROR").to_dict() == {
            "success": False,
            "message": "nope",
            "error_code": "API_ERROR",
        }
        assert SyncResult.synced("17", ["a"]).to_dict()["applied_tags"] == ["a"]

    def test_outcome_hides_cookies(self):
        outcome = SignupOutcome(status="skipped", reason="no_attribution", expired_cookies=["x=; Max-Age=0"])

        assert outcome.to_dict() == {"status": "skipped", "tags": [], "reason": "no_attribution"}
