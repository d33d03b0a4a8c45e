"""Pydantic models for piece funding billing entities."""

from .enums import (
    CheckoutMode,
    CheckoutPaymentStatus,
    NotificationType,
    OrderStatus,
    ReconciliationResult,
    StripeEventType,
    SubscriptionStatus,
)
from .errors import (
    BillingError,
    ErrorCode,
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ToolError,
)
from .events import (
    CheckoutSessionDetails,
    CheckoutSessionObject,
    IgnoreEvent,
    PaymentIntentObject,
    RecordPayment,
    StripeEvent,
    StripeEventData,
    SubscriptionObject,
    SyncSubscription,
    WebhookAction,
)
from .records import CustomerRecord, Notification, OrderRecord, SubscriptionMirror

__all__ = [
    # Enums
    "CheckoutMode",
    "CheckoutPaymentStatus",
    "NotificationType",
    "OrderStatus",
    "ReconciliationResult",
    "StripeEventType",
    "SubscriptionStatus",
    # Errors
    "BillingError",
    "ErrorCode",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "ToolError",
    # Events
    "CheckoutSessionDetails",
    "CheckoutSessionObject",
    "IgnoreEvent",
    "PaymentIntentObject",
    "RecordPayment",
    "StripeEvent",
    "StripeEventData",
    "SubscriptionObject",
    "SyncSubscription",
    "WebhookAction",
    # Records
    "CustomerRecord",
    "Notification",
    "OrderRecord",
    "SubscriptionMirror",
]
