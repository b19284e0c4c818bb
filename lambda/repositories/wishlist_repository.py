from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError


logger = logging.getLogger(__name__)

# Every row lives in the same partition. DynamoDB rejects empty key values,
# so the shared partition uses a fixed non-empty name.
PARTITION_KEY = "wishlist"

_endpoint_url = os.getenv("DYNAMODB_ENDPOINT_URL") or None
_table_name = os.getenv("WISHLIST_TABLE_NAME")
_create_table = os.getenv("WISHLIST_CREATE_TABLE", "false").lower() in ("1", "true", "yes")

if not _table_name:
    # Fail fast during cold start if the environment is misconfigured.
    raise RuntimeError("WISHLIST_TABLE_NAME environment variable is required")

_dynamodb = boto3.resource("dynamodb", endpoint_url=_endpoint_url)


class StorageError(Exception):
    """A table operation failed.

    ``reason`` is the human readable reason phrase reported by the store and
    ``code`` its machine error code (for example a botocore error code).
    """

    def __init__(self, reason: str, code: str = "") -> None:
        super().__init__(reason)
        self.reason = reason
        self.code = code

    @classmethod
    def from_client_error(cls, error: ClientError) -> "StorageError":
        details = error.response.get("Error", {})
        return cls(
            reason=details.get("Message") or str(error),
            code=details.get("Code", ""),
        )


class RowAlreadyExistsError(StorageError):
    pass


class RowNotFoundError(StorageError):
    pass


@dataclass(frozen=True)
class WishlistRow:
    partition_key: str
    row_key: str
    name: str
    url: str
    release_year: int
    last_modified: Optional[str] = None
    version_token: Optional[str] = None

    @classmethod
    def from_item(cls, data: Dict[str, Any]) -> "WishlistRow":
        """Build a row from a DynamoDB item as returned by the boto3 resource."""
        return cls(
            partition_key=data.get("partitionKey", PARTITION_KEY),
            row_key=data["rowKey"],
            name=data.get("name", ""),
            url=data.get("url", ""),
            # boto3 resource returns Decimal for every number attribute.
            release_year=int(data.get("releaseYear", 0)),
            last_modified=data.get("lastModified"),
            version_token=data.get("versionToken"),
        )

    def to_item(self) -> Dict[str, Any]:
        item = {
            "partitionKey": self.partition_key,
            "rowKey": self.row_key,
            "name": self.name,
            "url": self.url,
            "releaseYear": self.release_year,
        }
        if self.last_modified:
            item["lastModified"] = self.last_modified
        if self.version_token:
            item["versionToken"] = self.version_token
        return item


def ensure_table(dynamodb: Any, table_name: str) -> Any:
    """Create the wishlist table unless it already exists and return it."""
    try:
        table = dynamodb.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "partitionKey", "KeyType": "HASH"},
                {"AttributeName": "rowKey", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "partitionKey", "AttributeType": "S"},
                {"AttributeName": "rowKey", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        logger.info("Creating table %s", table_name)
        table.wait_until_exists()
        return table
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") != "ResourceInUseException":
            raise StorageError.from_client_error(e) from e
        return dynamodb.Table(table_name)


class WishlistRepository:
    """Data access layer for wishlist rows stored in DynamoDB.

    This is the only place that knows the table addressing scheme (one fixed
    partition key, the game id as row key) and the boto3/botocore result and
    error shapes. Everything else works with ``WishlistRow`` values and the
    four primitives below.
    """

    def __init__(self, table: Any = None) -> None:
        if table is None:
            if _create_table:
                table = ensure_table(_dynamodb, _table_name)
            else:
                table = _dynamodb.Table(_table_name)
        self._table = table

    @staticmethod
    def _key(item_id: str) -> Dict[str, str]:
        return {"partitionKey": PARTITION_KEY, "rowKey": item_id}

    def query_all(self) -> Iterator[WishlistRow]:
        """Yield every row in the wishlist partition, one page at a time."""
        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key("partitionKey").eq(PARTITION_KEY),
        }
        while True:
            try:
                response = self._table.query(**kwargs)
            except ClientError as e:
                raise StorageError.from_client_error(e) from e

            for item in response.get("Items", []):
                yield WishlistRow.from_item(item)

            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return
            kwargs["ExclusiveStartKey"] = last_key

    def exists(self, item_id: str) -> bool:
        try:
            response = self._table.get_item(
                Key=self._key(item_id),
                ProjectionExpression="rowKey",
            )
        except ClientError as e:
            raise StorageError.from_client_error(e) from e
        return "Item" in response

    def insert(self, row: WishlistRow) -> None:
        """Write a new row. Never overwrites an existing row key."""
        item = row.to_item()
        item.setdefault("lastModified", datetime.utcnow().isoformat() + "Z")
        item.setdefault("versionToken", uuid.uuid4().hex)

        try:
            self._table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(rowKey)",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise RowAlreadyExistsError("Conflict", code="EntityAlreadyExists") from e
            raise StorageError.from_client_error(e) from e

    def delete(self, item_id: str) -> None:
        # The condition makes DynamoDB report missing rows instead of
        # treating the delete as a silent no-op.
        try:
            self._table.delete_item(
                Key=self._key(item_id),
                ConditionExpression="attribute_exists(rowKey)",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise RowNotFoundError("Not Found", code="ResourceNotFound") from e
            raise StorageError.from_client_error(e) from e
