"""Enumeration types for piece funding billing models."""

from enum import Enum


class StripeEventType(str, Enum):
    """Stripe event types the reconciliation handler reasons about.

    Other customer-bearing event types are accepted and routed to a
    subscription sync; these are the ones with dedicated rules.
    """

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    CUSTOMER_SUBSCRIPTION_CREATED = "customer.subscription.created"
    CUSTOMER_SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    CUSTOMER_SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    CUSTOMER_SUBSCRIPTION_TRIAL_WILL_END = "customer.subscription.trial_will_end"


class CheckoutMode(str, Enum):
    """Checkout session mode."""

    PAYMENT = "payment"
    SETUP = "setup"
    SUBSCRIPTION = "subscription"


class CheckoutPaymentStatus(str, Enum):
    """Payment status of a checkout session."""

    PAID = "paid"
    UNPAID = "unpaid"
    NO_PAYMENT_REQUIRED = "no_payment_required"


class SubscriptionStatus(str, Enum):
    """Status of a mirrored subscription.

    NOT_STARTED is local: the customer exists but has no subscription.
    """

    NOT_STARTED = "not_started"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    PAUSED = "paused"


class OrderStatus(str, Enum):
    """Fulfillment status of a one-time order."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELED = "canceled"


class NotificationType(str, Enum):
    """Display type of a user notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class ReconciliationResult(str, Enum):
    """Outcome of a reconciliation attempt."""

    SUCCESS = "success"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    ERROR = "error"
