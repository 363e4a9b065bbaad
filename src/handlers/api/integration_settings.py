"""Integration settings API handler (admin only).

Backs the settings screen: read and save settings, test the connection
with unsaved credentials, and send a test contact with one tag.
"""

import json
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from acbridge.models.settings import (
    ConnectionTestRequest,
    SendTestRequest,
    UpdateSettingsRequest,
)
from acbridge.models.signup import is_valid_email
from acbridge.repositories.settings import SettingsRepository
from acbridge.services.activecampaign import ActiveCampaignClient
from acbridge.utils.auth import require_admin
from acbridge.utils.exceptions import AcBridgeError, ForbiddenError
from acbridge.utils.responses import error, forbidden, success, validation_error

logger = structlog.get_logger()


def handler(event: dict[str, Any], context: Any) -> dict:
    """Handle integration settings requests.

    Routes:
        GET  /admin/integration/settings
        PUT  /admin/integration/settings
        POST /admin/integration/test-connection
        POST /admin/integration/send-test
    """
    try:
        auth = require_admin(event)
        http_method = event.get("httpMethod", "").upper()
        path = event.get("path", "")

        if path.endswith("/settings") and http_method == "GET":
            return get_settings()
        elif path.endswith("/settings") and http_method == "PUT":
            return update_settings(_parse_body(event), auth.user_id)
        elif path.endswith("/test-connection") and http_method == "POST":
            return test_connection(_parse_body(event))
        elif path.endswith("/send-test") and http_method == "POST":
            return send_test(_parse_body(event))
        else:
            return error("Not found", 404)

    except ForbiddenError as e:
        return forbidden(e.message)
    except PydanticValidationError as e:
        return validation_error([
            {"field": ".".join(str(x) for x in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ])
    except AcBridgeError as e:
        return error(e.message, e.status_code, e.error_code)
    except ValueError as e:
        return error(str(e), 400)
    except Exception as e:
        logger.exception("Integration settings handler error", error=str(e))
        return error("Internal server error", 500)


def _parse_body(event: dict[str, Any]) -> dict:
    try:
        body = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError:
        raise ValueError("Invalid JSON body")
    if not isinstance(body, dict):
        raise ValueError("Invalid JSON body")
    return body


def get_settings() -> dict:
    """Get current settings with the API key masked."""
    settings = SettingsRepository().load()
    return success(settings.to_public_dict())


def update_settings(body: dict, user_id: str) -> dict:
    """Sanitize and save settings."""
    request = UpdateSettingsRequest.model_validate(body)

    repo = SettingsRepository()
    settings = request.apply_to(repo.load())
    repo.save(settings)

    logger.info("Settings updated", user_id=user_id, configured=settings.is_configured)
    return success(settings.to_public_dict())


def test_connection(body: dict) -> dict:
    """Test credentials from the form, before they are saved."""
    request = ConnectionTestRequest.model_validate(body)
    if not request.api_url or not request.api_key:
        return error("API URL and key must be filled in", 400, "INVALID_INPUT")

    with ActiveCampaignClient(request.base_url, request.api_key) as client:
        result = client.test_connection()

    if not result.success:
        return error(result.message, 400, "CONNECTION_FAILED")
    return success({"success": True, "message": result.message, "username": result.username})


def send_test(body: dict) -> dict:
    """Sync one contact with one tag using the saved settings."""
    settings = SettingsRepository().load()
    if not settings.is_configured:
        return error("API not configured. Save the settings first.", 400, "NOT_CONFIGURED")

    request = SendTestRequest.model_validate(body)
    if not is_valid_email(request.email):
        return error("Invalid email address", 400, "INVALID_INPUT")
    if not request.tag:
        return error("Tag must not be empty", 400, "INVALID_INPUT")

    with ActiveCampaignClient.from_settings(settings) as client:
        result = client.sync(request.email, "", "", [request.tag])

    if not result.success:
        status_code = 502 if result.error_code == "API_ERROR" else 400
        return error(result.message or "Test send failed", status_code, result.error_code)

    return success({
        "success": True,
        "message": "Test sent. Contact created/updated and tag assigned.",
        "contact_id": result.contact_id,
        "applied_tags": result.applied_tags,
        "failed_tags": result.failed_tags,
    })
