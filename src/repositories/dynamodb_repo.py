"""DynamoDB repository for single-partition-key tables."""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class ConditionalCheckFailed(Exception):
    """A conditional put or delete was rejected by DynamoDB."""


def is_conditional_check_failed(exc: Exception) -> bool:
    """Return True when exc is DynamoDB rejecting a condition expression."""
    if not isinstance(exc, ClientError):
        return False
    return exc.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


def _from_dynamodb(value: Any) -> Any:
    """Convert Decimals returned by the resource API into int/float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamodb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamodb(v) for v in value]
    return value


class DynamoDbRepository:
    """Key/value helpers with existence conditions on the partition key."""

    def __init__(self, table, key_name: str):
        self.table = table
        self.key_name = key_name

    def get(self, key_value: str) -> Optional[Dict[str, Any]]:
        """Fetch an item by partition key, or None."""
        resp = self.table.get_item(Key={self.key_name: key_value})
        item = resp.get("Item")
        return _from_dynamodb(item) if item else None

    def scan_all(self) -> List[Dict[str, Any]]:
        """Scan the whole table, following pagination."""
        items: List[Dict[str, Any]] = []
        kwargs: Dict[str, Any] = {}
        while True:
            resp = self.table.scan(**kwargs)
            items.extend(_from_dynamodb(item) for item in resp.get("Items") or [])
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def put_new(self, item: Dict[str, Any]) -> None:
        """Insert an item whose key must not exist yet."""
        self._put(item, f"attribute_not_exists({self.key_name})")

    def put_existing(self, item: Dict[str, Any]) -> None:
        """Overwrite an item whose key must already exist."""
        self._put(item, f"attribute_exists({self.key_name})")

    def delete_existing(self, key_value: str) -> None:
        """Delete an item whose key must exist."""
        try:
            self.table.delete_item(
                Key={self.key_name: key_value},
                ConditionExpression=f"attribute_exists({self.key_name})",
            )
        except ClientError as exc:
            if is_conditional_check_failed(exc):
                raise ConditionalCheckFailed(key_value) from exc
            raise

    def _put(self, item: Dict[str, Any], condition: str) -> None:
        try:
            self.table.put_item(Item=item, ConditionExpression=condition)
        except ClientError as exc:
            if is_conditional_check_failed(exc):
                raise ConditionalCheckFailed(item.get(self.key_name)) from exc
            raise
