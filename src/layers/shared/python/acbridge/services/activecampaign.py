"""ActiveCampaign API v3 client.

Upserts contacts and applies tags. Every call is a single attempt with a
15 second timeout; tag failures never undo the contact upsert.

Endpoints used:
    GET  /api/3/users/me           connection test
    POST /api/3/contact/sync       contact upsert
    POST /api/3/tags               tag create (422 -> search)
    GET  /api/3/tags?search=...    tag lookup
    POST /api/3/contactTags        link contact and tag
"""

from collections.abc import Iterable
from typing import Any

import httpx
import structlog

from acbridge.models.attribution import normalize_tags
from acbridge.models.settings import IntegrationSettings
from acbridge.models.signup import ConnectionResult, SyncResult, is_valid_email
from acbridge.utils.exceptions import (
    AcBridgeError,
    ApiError,
    InvalidInputError,
    NotConfiguredError,
)

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 15.0
SUCCESS_CODES = (200, 201)


def _has_duplicate_error(body: Any) -> dict | None:
    """Return the first ``{"code": "duplicate"}`` error entry, if any."""
    if not isinstance(body, dict):
        return None
    for err in body.get("errors") or []:
        if isinstance(err, dict) and err.get("code") == "duplicate":
            return err
    return None


class ActiveCampaignClient:
    """Contact sync client for one ActiveCampaign account."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
        debug: bool = False,
    ):
        """Initialize the client.

        Args:
            api_url: Account base URL (trailing slash ignored).
            api_key: API token.
            timeout: Per-call timeout in seconds.
            transport: Optional httpx transport (tests use MockTransport).
            debug: Log request and response bodies.
        """
        self.api_url = (api_url or "").strip().rstrip("/")
        self.api_key = (api_key or "").strip()
        self.timeout = timeout
        self.debug = debug
        self._transport = transport
        self._client: httpx.Client | None = None
        self.logger = logger.bind(api_url=self.api_url)

    @classmethod
    def from_settings(cls, settings: IntegrationSettings, transport: httpx.BaseTransport | None = None) -> "ActiveCampaignClient":
        """Build a client from IntegrationSettings."""
        return cls(
            api_url=settings.api_url,
            api_key=settings.api_key,
            transport=transport,
            debug=settings.debug_mode,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url and self.api_key)

    @property
    def client(self) -> httpx.Client:
        """Get the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.api_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Api-Token": self.api_key,
                    "Accept": "application/json",
                },
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ActiveCampaignClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        json_body: dict | None = None,
        params: dict | None = None,
    ) -> tuple[int, Any, str]:
        """Issue one request.

        Returns:
            (status code, parsed JSON body or None, raw body text)

        Raises:
            ApiError: On timeout or transport failure.
        """
        if self.debug:
            self.logger.info("ActiveCampaign request", method=method, path=path, body=json_body)
        try:
            response = self.client.request(method, path, json=json_body, params=params)
        except httpx.TimeoutException as e:
            self.logger.warning("ActiveCampaign request timed out", method=method, path=path)
            raise ApiError(f"Request to {path} timed out") from e
        except httpx.HTTPError as e:
            self.logger.warning(
                "ActiveCampaign request failed",
                method=method,
                path=path,
                error=str(e),
            )
            raise ApiError(f"Connection error: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if self.debug:
            self.logger.info(
                "ActiveCampaign response",
                method=method,
                path=path,
                status_code=response.status_code,
                body=response.text[:2000],
            )
        return response.status_code, body, response.text

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise NotConfiguredError()

    # =========================================
    # Connection test
    # =========================================

    def test_connection(self) -> ConnectionResult:
        """Check credentials against /users/me.

        Returns:
            ConnectionResult with a message for the admin UI.
        """
        if not self.is_configured:
            return ConnectionResult(success=False, message="API URL and key are required")

        try:
            status, body, _ = self._request("GET", "/api/3/users/me")
        except ApiError as e:
            return ConnectionResult(success=False, message=e.message)

        if status == 200:
            user = body.get("user") if isinstance(body, dict) else None
            if not isinstance(user, dict):
                user = {}
            username = user.get("username") or "unknown"
            return ConnectionResult(
                success=True,
                message=f"Connection successful, logged in as: {username}",
                username=username,
            )
        if status == 403:
            return ConnectionResult(success=False, message="Invalid API key")
        return ConnectionResult(success=False, message=f"Error: HTTP {status}")

    # =========================================
    # Contacts
    # =========================================

    def sync_contact(self, email: str, first_name: str = "", last_name: str = "") -> str:
        """Create or update a contact by email.

        Returns:
            The contact id.

        Raises:
            NotConfiguredError: Missing URL or key.
            InvalidInputError: Malformed email.
            ApiError: Non-2xx status, transport failure, or no id in response.
        """
        self._require_configured()
        if not is_valid_email(email):
            raise InvalidInputError("Invalid email address", field="email")

        contact: dict[str, str] = {"email": email}
        if first_name:
            contact["firstName"] = first_name
        if last_name:
            contact["lastName"] = last_name

        status, body, text = self._request("POST", "/api/3/contact/sync", {"contact": contact})
        if status not in SUCCESS_CODES:
            self.logger.error("Contact sync failed", status_code=status, body=text[:500])
            raise ApiError(f"API error: HTTP {status}", upstream_status=status, response_body=text)

        contact = body.get("contact") if isinstance(body, dict) else None
        contact_id = contact.get("id") if isinstance(contact, dict) else None
        if not contact_id:
            self.logger.error("No contact id in sync response", body=text[:500])
            raise ApiError("No contact ID received", upstream_status=status, response_body=text)

        return str(contact_id)

    # =========================================
    # Tags
    # =========================================

    def find_tag(self, tag_name: str) -> str | None:
        """Look up a tag id by exact, case-insensitive name.

        Returns:
            Tag id or None when not found or the search fails.
        """
        try:
            status, body, _ = self._request("GET", "/api/3/tags", params={"search": tag_name})
        except ApiError:
            return None
        if status != 200 or not isinstance(body, dict):
            return None

        wanted = tag_name.lower()
        for tag in body.get("tags") or []:
            if not isinstance(tag, dict) or not tag.get("id"):
                continue
            if str(tag.get("tag", "")).lower() == wanted:
                return str(tag["id"])
        return None

    def ensure_tag(self, tag_name: str) -> str | None:
        """Create a tag, or recover the id of an existing one.

        Returns:
            Tag id, or None when no id could be determined.

        Raises:
            InvalidInputError: Empty tag name.
        """
        if not tag_name:
            raise InvalidInputError("Tag must not be empty", field="tag")

        payload = {"tag": {"tag": tag_name, "tagType": "contact"}}
        try:
            status, body, text = self._request("POST", "/api/3/tags", payload)
        except ApiError as e:
            self.logger.warning("Tag creation error", tag=tag_name, error=e.message)
            return None

        tag = body.get("tag") if isinstance(body, dict) else None
        tag_id = tag.get("id") if isinstance(tag, dict) else None
        if tag_id:
            return str(tag_id)

        if status == 422:
            # Most likely a duplicate name
            tag_id = self.find_tag(tag_name)
            if tag_id:
                return tag_id

        duplicate = _has_duplicate_error(body)
        if duplicate and duplicate.get("tag_id"):
            return str(duplicate["tag_id"])

        self.logger.warning("No tag id found", tag=tag_name, status_code=status, body=text[:500])
        return None

    def link_tag(self, contact_id: str, tag_id: str) -> bool:
        """Attach a tag to a contact; an existing link counts as success."""
        payload = {"contactTag": {"contact": contact_id, "tag": tag_id}}
        try:
            status, body, text = self._request("POST", "/api/3/contactTags", payload)
        except ApiError as e:
            self.logger.warning(
                "Tag assignment error",
                contact_id=contact_id,
                tag_id=tag_id,
                error=e.message,
            )
            return False

        if status in SUCCESS_CODES:
            return True
        if _has_duplicate_error(body):
            self.logger.debug("Tag already assigned", contact_id=contact_id, tag_id=tag_id)
            return True

        self.logger.warning(
            "Tag assignment failed",
            contact_id=contact_id,
            tag_id=tag_id,
            status_code=status,
            body=text[:500],
        )
        return False

    def assign_tag(self, contact_id: str, tag_name: str) -> bool:
        """Ensure a tag exists and link it to the contact."""
        tag_id = self.ensure_tag(tag_name)
        if not tag_id:
            return False
        return self.link_tag(contact_id, tag_id)

    # =========================================
    # Full sync
    # =========================================

    def sync(
        self,
        email: str,
        first_name: str = "",
        last_name: str = "",
        tags: Iterable[str] = (),
    ) -> SyncResult:
        """Upsert a contact and apply tags one at a time.

        Args:
            email: Contact email.
            first_name: Optional first name.
            last_name: Optional last name.
            tags: Tags to apply, in order.

        Returns:
            SyncResult. A failed result means the contact was not synced;
            individual tag failures are listed in failed_tags.
        """
        try:
            contact_id = self.sync_contact(email, first_name, last_name)
        except AcBridgeError as e:
            return SyncResult.failed(e.message, error_code=e.error_code)

        applied: list[str] = []
        failed: list[str] = []
        for tag in normalize_tags(tags):
            try:
                assigned = self.assign_tag(contact_id, tag)
            except Exception as e:
                # One bad tag must not stop the others
                self.logger.exception("Tag assignment crashed", contact_id=contact_id, tag=tag, error=str(e))
                assigned = False
            if assigned:
                applied.append(tag)
            else:
                failed.append(tag)

        self.logger.info(
            "Contact synced",
            contact_id=contact_id,
            applied_tags=applied,
            failed_tags=failed,
        )
        return SyncResult.synced(contact_id, applied_tags=applied, failed_tags=failed)
