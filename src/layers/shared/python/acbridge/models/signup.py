"""Signup event, sync and connection-test result models."""

import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel as PydanticBaseModel, field_validator

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def is_valid_email(email: str | None) -> bool:
    """Validate email format."""
    return bool(EMAIL_REGEX.match(email)) if email else False


class SignupUser(PydanticBaseModel):
    """The part of a MemberPress user record the bridge needs."""

    email: str
    first_name: str = ""
    last_name: str = ""

    @field_validator("email", "first_name", "last_name", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return str(v or "").strip()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "SignupUser":
        """Build from a signup webhook body.

        Accepts either a nested ``user`` object (``email``/``user_email``,
        ``first_name``, ``last_name``) or the flat MemberPress registration
        form fields ``user_email``, ``user_first_name``, ``user_last_name``.
        """
        user = payload.get("user")
        if isinstance(user, dict):
            return cls(
                email=user.get("email") or user.get("user_email") or "",
                first_name=user.get("first_name") or "",
                last_name=user.get("last_name") or "",
            )
        return cls(
            email=payload.get("user_email") or payload.get("email") or "",
            first_name=payload.get("user_first_name") or payload.get("first_name") or "",
            last_name=payload.get("user_last_name") or payload.get("last_name") or "",
        )


@dataclass
class SyncResult:
    """Outcome of one contact sync call."""

    success: bool
    contact_id: str | None = None
    message: str | None = None
    error_code: str | None = None
    applied_tags: list[str] = field(default_factory=list)
    failed_tags: list[str] = field(default_factory=list)

    @classmethod
    def synced(
        cls,
        contact_id: str,
        applied_tags: list[str] | None = None,
        failed_tags: list[str] | None = None,
    ) -> "SyncResult":
        """Contact upserted; tags applied as listed."""
        return cls(
            success=True,
            contact_id=contact_id,
            applied_tags=applied_tags or [],
            failed_tags=failed_tags or [],
        )

    @classmethod
    def failed(cls, message: str, error_code: str | None = None) -> "SyncResult":
        """Contact was not synced."""
        return cls(success=False, message=message, error_code=error_code)

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {
                "success": False,
                "message": self.message,
                "error_code": self.error_code,
            }
        return {
            "success": True,
            "contact_id": self.contact_id,
            "applied_tags": self.applied_tags,
            "failed_tags": self.failed_tags,
        }


@dataclass
class ConnectionResult:
    """Outcome of the admin connection test."""

    success: bool
    message: str
    username: str | None = None


@dataclass
class SignupOutcome:
    """What happened to one signup.

    status is one of ``synced``, ``failed`` or ``skipped``.
    """

    status: str
    reason: str | None = None
    tags: list[str] = field(default_factory=list)
    tag_source: str | None = None
    result: SyncResult | None = None
    # Set-Cookie values that expire the attribution cookies
    expired_cookies: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status, "tags": self.tags}
        if self.reason:
            data["reason"] = self.reason
        if self.tag_source:
            data["tag_source"] = self.tag_source
        if self.result is not None:
            data["result"] = self.result.to_dict()
        return data
