"""Persistent record models for reconciled billing state.

Amounts are stored in minor currency units (cents). Stripe timestamps are
kept as integer epoch seconds, local timestamps as ISO 8601 strings.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import NotificationType, OrderStatus, SubscriptionStatus


class DynamoRecord(BaseModel):
    """Base for models that are written to DynamoDB as whole items."""

    def to_item(self) -> dict[str, Any]:
        """Serialize to a DynamoDB item, omitting unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


class CustomerRecord(DynamoRecord):
    """Mapping from a Stripe customer to an application user.

    Created at checkout time elsewhere; read-only for reconciliation.
    """

    customer_id: str = Field(..., description="Stripe customer ID (cus_xxx)")
    user_id: str = Field(..., description="Application user ID")
    deleted_at: str | None = Field(
        default=None, description="Soft-delete timestamp; a deleted mapping resolves to no user"
    )


class SubscriptionMirror(DynamoRecord):
    """Local mirror of a customer's most recent Stripe subscription.

    One row per customer, always written as a full replacement.
    """

    model_config = ConfigDict(strict=True)

    customer_id: str = Field(..., description="Stripe customer ID (upsert key)")
    subscription_id: str | None = Field(default=None, examples=["sub_1ABC123"])
    price_id: str | None = Field(default=None, examples=["price_1ABC123"])
    current_period_start: int | None = Field(default=None, description="Epoch seconds")
    current_period_end: int | None = Field(default=None, description="Epoch seconds")
    cancel_at_period_end: bool | None = None
    payment_method_brand: str | None = None
    payment_method_last4: str | None = None
    status: SubscriptionStatus
    updated_at: str = Field(..., description="When the mirror was last written")


class OrderRecord(DynamoRecord):
    """A completed one-time checkout. One row per checkout session."""

    model_config = ConfigDict(strict=True)

    checkout_session_id: str = Field(..., description="Checkout session ID (unique key)")
    payment_intent_id: str | None = None
    customer_id: str
    amount_subtotal: int | None = Field(default=None, ge=0)
    amount_total: int | None = Field(default=None, ge=0)
    currency: str | None = None
    payment_status: str
    status: OrderStatus
    piece_id: str | None = Field(default=None, description="Piece funded by this order")
    created_at: str


class Notification(DynamoRecord):
    """An append-only user notification."""

    model_config = ConfigDict(strict=True)

    notification_id: str
    user_id: str
    title: str
    message: str
    type: NotificationType
    action_url: str | None = None
    read: bool = False
    created_at: str
