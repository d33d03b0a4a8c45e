"""Backend services for piece funding payment reconciliation."""

from .dynamodb import DuplicateKeyError, DynamoDBService, PersistenceError, get_dynamodb_service
from .event_classifier import classify_event
from .payment_reconciler import PaymentReconciler, PaymentReconciliation
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .stripe_service import (
    StripeService,
    StripeServiceError,
    WebhookPayloadError,
    WebhookSignatureError,
    get_stripe_service,
)
from .subscription_sync import SubscriptionSyncService
from .webhook_handler import WebhookHandler

__all__ = [
    "DuplicateKeyError",
    "DynamoDBService",
    "PersistenceError",
    "get_dynamodb_service",
    "classify_event",
    "PaymentReconciler",
    "PaymentReconciliation",
    "SSMService",
    "SSMServiceError",
    "get_ssm_service",
    "StripeService",
    "StripeServiceError",
    "WebhookPayloadError",
    "WebhookSignatureError",
    "get_stripe_service",
    "SubscriptionSyncService",
    "WebhookHandler",
]
