"""Pytest configuration and fixtures."""
import json
import os
import sys
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import pytest
from botocore.exceptions import ClientError

# Ensure lambda package is on path (lambda is a reserved name so we add the dir)
_lambda_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "lambda")
if _lambda_dir not in sys.path:
    sys.path.insert(0, _lambda_dir)

# Set before any lambda imports so boto3 has a region at import time (CI has no AWS config)
os.environ.setdefault("WISHLIST_TABLE_NAME", "test-wishlist-table")
os.environ["WISHLIST_CREATE_TABLE"] = "false"
if not os.environ.get("AWS_REGION") and not os.environ.get("AWS_DEFAULT_REGION"):
    os.environ["AWS_REGION"] = "us-east-1"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


class FakeTable:
    """In-memory stand-in for a boto3 DynamoDB Table resource.

    Honours the condition expressions the repository sends and pages query
    results through LastEvaluatedKey.
    """

    def __init__(self, page_size: int = 100) -> None:
        self.page_size = page_size
        self.rows: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.calls: List[str] = []
        self._failures: Dict[str, ClientError] = {}

    def fail_next(self, operation: str, code: str, message: str = "Service unavailable") -> None:
        self._failures[operation] = ClientError(
            {"Error": {"Code": code, "Message": message}, "ResponseMetadata": {"HTTPStatusCode": 500}},
            operation,
        )

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        error = self._failures.pop(operation, None)
        if error is not None:
            raise error

    @staticmethod
    def _conditional_failure(operation: str) -> ClientError:
        return ClientError(
            {
                "Error": {
                    "Code": "ConditionalCheckFailedException",
                    "Message": "The conditional request failed",
                },
                "ResponseMetadata": {"HTTPStatusCode": 400},
            },
            operation,
        )

    def query(self, KeyConditionExpression: Any, ExclusiveStartKey: Optional[Dict[str, str]] = None, **kwargs: Any) -> Dict[str, Any]:
        self._record("Query")
        partition = KeyConditionExpression.get_expression()["values"][1]
        keys = [k for k in self.rows if k[0] == partition]

        start = 0
        if ExclusiveStartKey:
            start = keys.index((ExclusiveStartKey["partitionKey"], ExclusiveStartKey["rowKey"])) + 1

        page = keys[start:start + self.page_size]
        result: Dict[str, Any] = {"Items": [dict(self.rows[k]) for k in page]}
        if start + self.page_size < len(keys):
            last = page[-1]
            result["LastEvaluatedKey"] = {"partitionKey": last[0], "rowKey": last[1]}
        return result

    def get_item(self, Key: Dict[str, str], **kwargs: Any) -> Dict[str, Any]:
        self._record("GetItem")
        row = self.rows.get((Key["partitionKey"], Key["rowKey"]))
        if row is None:
            return {}
        return {"Item": dict(row)}

    def put_item(self, Item: Dict[str, Any], ConditionExpression: Optional[str] = None, **kwargs: Any) -> Dict[str, Any]:
        self._record("PutItem")
        key = (Item["partitionKey"], Item["rowKey"])
        if ConditionExpression == "attribute_not_exists(rowKey)" and key in self.rows:
            raise self._conditional_failure("PutItem")
        # DynamoDB hands numbers back as Decimal
        self.rows[key] = {
            k: Decimal(v) if isinstance(v, int) and not isinstance(v, bool) else v
            for k, v in Item.items()
        }
        return {}

    def delete_item(self, Key: Dict[str, str], ConditionExpression: Optional[str] = None, **kwargs: Any) -> Dict[str, Any]:
        self._record("DeleteItem")
        key = (Key["partitionKey"], Key["rowKey"])
        if ConditionExpression == "attribute_exists(rowKey)" and key not in self.rows:
            raise self._conditional_failure("DeleteItem")
        self.rows.pop(key, None)
        return {}


@pytest.fixture
def fake_table():
    return FakeTable()


@pytest.fixture
def repository(fake_table):
    from repositories.wishlist_repository import WishlistRepository

    return WishlistRepository(table=fake_table)


@pytest.fixture
def service(repository):
    from services.wishlist_service import WishlistService

    return WishlistService(repository)


@pytest.fixture
def make_event():
    def _make_event(method: str, path: str, body: Any = None, path_parameters: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        event: Dict[str, Any] = {
            "rawPath": path,
            "requestContext": {"http": {"method": method, "path": path}},
            "pathParameters": path_parameters,
            "queryStringParameters": {"code": "function-key"},
            "isBase64Encoded": False,
        }
        if body is not None:
            event["body"] = body if isinstance(body, str) else json.dumps(body)
        return event

    return _make_event
