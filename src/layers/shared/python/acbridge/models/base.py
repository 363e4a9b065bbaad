"""Pydantic base for records kept in the bridge's DynamoDB table."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Self

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field
from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID string (used for visitor session ids)."""
    return str(ULID())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_item_value(value: Any) -> Any:
    # boto3 rejects floats, and None attributes are simply left out
    if isinstance(value, dict):
        return {k: _to_item_value(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_to_item_value(v) for v in value]
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def _from_item_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _from_item_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_item_value(v) for v in value]
    if isinstance(value, Decimal):
        return int(value) if value % 1 == 0 else float(value)
    return value


class BaseModel(PydanticBaseModel):
    """A table record with created/updated timestamps.

    Subclasses define their key layout with get_pk() and get_sk().
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_dynamodb(self) -> dict[str, Any]:
        """Item attributes, without keys (timestamps as ISO strings)."""
        return _to_item_value(self.model_dump(mode="json"))

    @classmethod
    def from_dynamodb(cls, item: dict[str, Any]) -> Self:
        """Build a model from a stored item; PK/SK attributes are ignored."""
        data = {k: v for k, v in item.items() if k not in ("PK", "SK")}
        return cls.model_validate(_from_item_value(data))

    def get_pk(self) -> str:
        raise NotImplementedError("Subclasses must implement get_pk()")

    def get_sk(self) -> str:
        raise NotImplementedError("Subclasses must implement get_sk()")

    def get_keys(self) -> dict[str, str]:
        return {"PK": self.get_pk(), "SK": self.get_sk()}

    def update_timestamp(self) -> None:
        self.updated_at = utc_now()
