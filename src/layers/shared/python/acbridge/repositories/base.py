"""DynamoDB access shared by the settings and session repositories."""

import os
from typing import Generic, TypeVar

import boto3
import structlog
from botocore.exceptions import ClientError

from acbridge.models.base import BaseModel

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """One record type in the bridge table.

    Records are addressed by PK/SK only; the bridge never queries or scans.
    """

    def __init__(self, model_class: type[T], table_name: str | None = None):
        """Initialize repository.

        Args:
            model_class: Model stored by this repository.
            table_name: Table name; TABLE_NAME env var when omitted.
        """
        self.model_class = model_class
        self.table_name = table_name or os.environ.get("TABLE_NAME", "acbridge-dev")
        self._table = None

    @property
    def table(self):
        """DynamoDB Table resource, created on first use."""
        if self._table is None:
            self._table = boto3.resource("dynamodb").Table(self.table_name)
        return self._table

    def get(self, pk: str, sk: str) -> T | None:
        """Load one record, or None when it does not exist."""
        try:
            item = self.table.get_item(Key={"PK": pk, "SK": sk}).get("Item")
        except ClientError as e:
            logger.error("Record read failed", table=self.table_name, pk=pk, error=str(e))
            raise
        return self.model_class.from_dynamodb(item) if item else None

    def put(self, record: T) -> T:
        """Write a record, replacing whatever was stored under its keys."""
        record.update_timestamp()
        db_item = record.to_dynamodb()
        db_item.update(record.get_keys())

        try:
            self.table.put_item(Item=db_item)
        except ClientError as e:
            logger.error("Record write failed", table=self.table_name, pk=db_item["PK"], error=str(e))
            raise

        logger.debug("Record written", pk=db_item["PK"], model=self.model_class.__name__)
        return record

    def delete(self, pk: str, sk: str) -> bool:
        """Delete a record.

        Returns:
            False when there was nothing to delete.
        """
        try:
            self.table.delete_item(
                Key={"PK": pk, "SK": sk},
                ConditionExpression="attribute_exists(PK)",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            logger.error("Record delete failed", table=self.table_name, pk=pk, error=str(e))
            raise

        logger.debug("Record deleted", pk=pk)
        return True
