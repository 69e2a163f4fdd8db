"""
Pytest configuration to ensure paths are set up correctly for tests.

This allows imports like `from services.ticket_store import TicketStore` to
work when running tests, simulating the Lambda environment where code is
deployed from the src/ directory.
"""

import copy
import os
import re
import sys
from decimal import Decimal
from pathlib import Path

import boto3
import pytest
from botocore.exceptions import ClientError


def _ensure_paths_on_sys_path() -> None:
    """Add src/ to sys.path if missing.

    The src/ directory is the Lambda asset root, so handlers import their
    siblings as top-level packages (from services import ...).
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_str = str(repo_root / "src")
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Ensure boto3 has offline-friendly defaults so tests do not require AWS access.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("ENVIRONMENT", "dev")

# Lambda environment variables used by handlers
os.environ.setdefault("MATCHMAKING_TICKET_TABLE_NAME", "test-matchmaking-ticket")
os.environ.setdefault("MATCHMAKING_CONFIGURATION_NAME", "test-matchmaking-config")

boto3.setup_default_session(region_name="eu-west-2")

FIXED_NOW = 1_700_000_000

_CONDITION = re.compile(r"^attribute_(not_)?exists\((\w+)\)$")


def _to_dynamodb(value):
    """Mimic the resource API: numbers come back as Decimal."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamodb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_dynamodb(v) for v in value]
    return value


def conditional_check_failed(operation: str = "PutItem") -> ClientError:
    return ClientError(
        {
            "Error": {
                "Code": "ConditionalCheckFailedException",
                "Message": "The conditional request failed",
            }
        },
        operation,
    )


class InMemoryTable:
    """Single partition key table honouring attribute_(not_)exists conditions."""

    def __init__(self, key_name: str = "ticketId", page_size: int = 0):
        self.key_name = key_name
        self.page_size = page_size
        self.items = {}
        self.put_calls = 0

    def _check(self, key_value, condition, operation):
        if not condition:
            return
        match = _CONDITION.match(condition)
        assert match, f"unsupported condition {condition!r}"
        must_be_absent = bool(match.group(1))
        exists = key_value in self.items
        if exists == must_be_absent:
            raise conditional_check_failed(operation)

    def get_item(self, Key):
        item = self.items.get(Key[self.key_name])
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def put_item(self, Item, ConditionExpression=None):
        self.put_calls += 1
        key_value = Item[self.key_name]
        self._check(key_value, ConditionExpression, "PutItem")
        self.items[key_value] = _to_dynamodb(copy.deepcopy(Item))
        return {}

    def delete_item(self, Key, ConditionExpression=None):
        key_value = Key[self.key_name]
        self._check(key_value, ConditionExpression, "DeleteItem")
        self.items.pop(key_value, None)
        return {}

    def scan(self, ExclusiveStartKey=None):
        keys = sorted(self.items)
        if ExclusiveStartKey is not None:
            keys = [k for k in keys if k > ExclusiveStartKey[self.key_name]]
        if self.page_size and len(keys) > self.page_size:
            page = keys[: self.page_size]
            return {
                "Items": [copy.deepcopy(self.items[k]) for k in page],
                "LastEvaluatedKey": {self.key_name: page[-1]},
            }
        return {"Items": [copy.deepcopy(self.items[k]) for k in keys]}


@pytest.fixture
def ticket_table():
    return InMemoryTable()


@pytest.fixture
def ticket_store(ticket_table):
    from config.settings import Settings
    from services.ticket_store import TicketStore

    return TicketStore(Settings(ticket_table_name="test-matchmaking-ticket"), table=ticket_table)


@pytest.fixture
def reconciler(ticket_store):
    from config.settings import Settings
    from services.event_reconciler import EventReconciler

    return EventReconciler(ticket_store, Settings(ticket_ttl_seconds=3600), clock=lambda: FIXED_NOW)
