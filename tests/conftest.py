"""Pytest configuration and fixtures for the billing webhook tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (all six billing tables)
- Sample records (customer mapping, profile, piece)
- Stripe event builders and real webhook signatures
"""

import hashlib
import hmac
import json
import os
import time
from typing import Any, Callable, Generator

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set before any service is constructed
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-piecefund")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_abc123xyz")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret_for_testing")

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

TEST_REGION = "eu-west-1"
TABLE_PREFIX = os.environ["DYNAMODB_TABLE_PREFIX"]
TEST_WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]

TEST_CUSTOMER_ID = "cus_TEST123"
TEST_USER_ID = "user-123-abc"
TEST_PIECE_ID = "piece-456-def"
TEST_SESSION_ID = "cs_test_abc123"

BILLING_TABLES: dict[str, str] = {
    "stripe-customers": "customer_id",
    "stripe-subscriptions": "customer_id",
    "stripe-orders": "checkout_session_id",
    "pieces": "id",
    "profiles": "id",
    "notifications": "notification_id",
}


# === Service Singletons ===


@pytest.fixture(autouse=True)
def reset_service_singletons() -> Generator[None, None, None]:
    """Reset cached services so each test builds them inside its own mock."""
    from piecefund.services.ssm_service import get_ssm_service
    from piecefund_api.dependencies import reset_services

    reset_services()
    get_ssm_service.cache_clear()
    yield
    reset_services()
    get_ssm_service.cache_clear()


# === DynamoDB Fixtures ===


@pytest.fixture
def billing_tables() -> Generator[Any, None, None]:
    """Create all billing tables in a mocked DynamoDB.

    Yields:
        boto3 DynamoDB resource bound to the mock
    """
    with mock_aws():
        client = boto3.client("dynamodb", region_name=TEST_REGION)
        for table, key in BILLING_TABLES.items():
            client.create_table(
                TableName=f"{TABLE_PREFIX}-{table}",
                KeySchema=[{"AttributeName": key, "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": key, "AttributeType": "S"}],
                BillingMode="PAY_PER_REQUEST",
            )
        yield boto3.resource("dynamodb", region_name=TEST_REGION)


@pytest.fixture
def db(billing_tables: Any):
    """DynamoDBService bound to the mocked tables."""
    from piecefund.services.dynamodb import DynamoDBService

    return DynamoDBService(environment="test")


@pytest.fixture
def table(billing_tables: Any) -> Callable[[str], Any]:
    """Return a function that resolves a short table name to a boto3 Table."""

    def _table(name: str) -> Any:
        return billing_tables.Table(f"{TABLE_PREFIX}-{name}")

    return _table


@pytest.fixture
def count_items(table: Callable[[str], Any]) -> Callable[[str], int]:
    """Return a function counting the items in a billing table."""

    def _count(name: str) -> int:
        return len(table(name).scan()["Items"])

    return _count


# === Sample Data Fixtures ===


@pytest.fixture
def customer_in_db(table: Callable[[str], Any]) -> dict[str, Any]:
    """Map TEST_CUSTOMER_ID to TEST_USER_ID."""
    item = {"customer_id": TEST_CUSTOMER_ID, "user_id": TEST_USER_ID}
    table("stripe-customers").put_item(Item=item)
    return item


@pytest.fixture
def profile_in_db(table: Callable[[str], Any]) -> dict[str, Any]:
    """A donor profile that has not donated yet."""
    item = {"id": TEST_USER_ID, "total_donated_amount": 0}
    table("profiles").put_item(Item=item)
    return item


@pytest.fixture
def piece_in_db(table: Callable[[str], Any]) -> dict[str, Any]:
    """A piece that has already raised 1000."""
    item = {"id": TEST_PIECE_ID, "title": "Morning Tide", "amount_raised": 1000}
    table("pieces").put_item(Item=item)
    return item


@pytest.fixture
def donor(customer_in_db, profile_in_db, piece_in_db) -> dict[str, Any]:
    """Customer mapping, profile and piece together."""
    return {"customer": customer_in_db, "profile": profile_in_db, "piece": piece_in_db}


# === Stripe Event Builders ===


def build_event(event_type: str, obj: dict[str, Any], event_id: str = "evt_1ABC123DEF456") -> dict[str, Any]:
    """Wrap a Stripe object in an event envelope."""
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": int(time.time()),
        "livemode": False,
        "api_version": "2024-06-20",
        "data": {"object": obj},
    }


def build_checkout_session(
    *,
    session_id: str = TEST_SESSION_ID,
    customer: str | None = TEST_CUSTOMER_ID,
    mode: str = "payment",
    payment_status: str = "paid",
    amount_total: int = 500,
    piece_id: str | None = TEST_PIECE_ID,
) -> dict[str, Any]:
    """A checkout.session object."""
    return {
        "id": session_id,
        "object": "checkout.session",
        "customer": customer,
        "mode": mode,
        "payment_status": payment_status,
        "payment_intent": "pi_3ABC123DEF456",
        "amount_subtotal": amount_total,
        "amount_total": amount_total,
        "currency": "usd",
        "metadata": {"piece_id": piece_id} if piece_id else {},
    }


def build_subscription(
    *,
    subscription_id: str = "sub_1ABC123",
    status: str = "active",
    price_id: str = "price_monthly",
    period_start: int = 1767225600,
    period_end: int = 1769904000,
    payment_method: str | dict[str, Any] | None = None,
) -> dict[str, Any]:
    """A subscription object as returned by the subscriptions list API."""
    return {
        "id": subscription_id,
        "object": "subscription",
        "customer": TEST_CUSTOMER_ID,
        "status": status,
        "cancel_at_period_end": False,
        "current_period_start": period_start,
        "current_period_end": period_end,
        "items": {"object": "list", "data": [{"id": "si_1", "price": {"id": price_id}}]},
        "default_payment_method": payment_method,
    }


def sign_payload(payload: bytes, secret: str = TEST_WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Create a valid Stripe-Signature header for a payload.

    Stripe signatures use HMAC-SHA256 with format: t={timestamp},v1={signature}
    """
    ts = str(timestamp if timestamp is not None else int(time.time()))
    signed_payload = f"{ts}.{payload.decode('utf-8')}"
    signature = hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={ts},v1={signature}"


def encode_event(event: dict[str, Any]) -> bytes:
    return json.dumps(event).encode("utf-8")
