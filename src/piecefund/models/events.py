"""Stripe event envelope, typed event objects and classified actions.

The envelope keeps ``data.object`` as a raw dict because its shape depends on
the event type. The classifier narrows it into one of the typed objects
below before any field is read, and produces a WebhookAction.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


def _reference_id(value: Any) -> str | None:
    """Return the ID of a Stripe reference that may be expanded.

    Values that are neither an ID nor an expanded object yield None.
    """
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        ref = value.get("id")
        return ref if isinstance(ref, str) and ref else None
    return None


class StripeEventData(BaseModel):
    """The ``data`` member of a Stripe event."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    object: dict[str, Any]
    previous_attributes: dict[str, Any] | None = None


class StripeEvent(BaseModel):
    """A verified Stripe event. Immutable and never persisted."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., description="Stripe event ID (evt_xxx)")
    type: str = Field(
        ...,
        description="Stripe event type",
        examples=["checkout.session.completed", "customer.subscription.updated"],
    )
    created: int | None = None
    livemode: bool = False
    api_version: str | None = None
    data: StripeEventData


# === Typed event objects ===


class StripeObject(BaseModel):
    """Fields common to every customer-bearing Stripe object."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | None = None
    customer: Any = None

    @property
    def customer_id(self) -> str | None:
        return _reference_id(self.customer)


class CheckoutSessionObject(StripeObject):
    """``checkout.session`` object."""

    mode: str | None = None
    payment_status: str | None = None
    payment_intent: str | dict[str, Any] | None = None
    amount_subtotal: int | None = None
    amount_total: int | None = None
    currency: str | None = None
    metadata: dict[str, Any] | None = None

    @property
    def payment_intent_id(self) -> str | None:
        return _reference_id(self.payment_intent)


class PaymentIntentObject(StripeObject):
    """``payment_intent`` object."""

    invoice: Any = None

    @property
    def invoice_id(self) -> str | None:
        return _reference_id(self.invoice)


class SubscriptionObject(StripeObject):
    """``subscription`` object as returned by the subscriptions list API.

    Newer API versions moved the billing period onto subscription items, so
    the period accessors fall back to the first item.
    """

    status: str
    cancel_at_period_end: bool = False
    current_period_start: int | None = None
    current_period_end: int | None = None
    items: dict[str, Any] = Field(default_factory=dict)
    default_payment_method: str | dict[str, Any] | None = None

    def _first_item(self) -> dict[str, Any]:
        data = self.items.get("data") or []
        return data[0] if data else {}

    @property
    def price_id(self) -> str | None:
        price = self._first_item().get("price")
        return _reference_id(price)

    @property
    def period_start(self) -> int | None:
        if self.current_period_start is not None:
            return self.current_period_start
        return self._first_item().get("current_period_start")

    @property
    def period_end(self) -> int | None:
        if self.current_period_end is not None:
            return self.current_period_end
        return self._first_item().get("current_period_end")

    def card_display(self) -> tuple[str | None, str | None] | None:
        """Return (brand, last4) when the payment method is expanded.

        Returns None when there is no payment method or only its ID.
        """
        method = self.default_payment_method
        if not isinstance(method, dict):
            return None
        card = method.get("card") or {}
        return card.get("brand"), card.get("last4")


# === Classified actions ===


class CheckoutSessionDetails(BaseModel):
    """The facts of a paid one-time checkout needed to record it."""

    model_config = ConfigDict(frozen=True)

    checkout_session_id: str
    payment_intent_id: str | None = None
    customer_id: str
    amount_subtotal: int | None = None
    amount_total: int | None = None
    currency: str | None = None
    payment_status: str
    piece_id: str | None = None


class IgnoreEvent(BaseModel):
    """The event needs no reconciliation."""

    model_config = ConfigDict(frozen=True)

    action: Literal["ignore"] = "ignore"
    reason: str


class SyncSubscription(BaseModel):
    """Re-fetch the customer's subscription and mirror it."""

    model_config = ConfigDict(frozen=True)

    action: Literal["sync_subscription"] = "sync_subscription"
    customer_id: str


class RecordPayment(BaseModel):
    """Record a completed one-time payment and its derived effects."""

    model_config = ConfigDict(frozen=True)

    action: Literal["record_payment"] = "record_payment"
    session: CheckoutSessionDetails


WebhookAction = Annotated[
    Union[IgnoreEvent, SyncSubscription, RecordPayment],
    Field(discriminator="action"),
]
