"""FastAPI dependency injection providers for shared services.

Each provider builds its service once per process with @lru_cache and
passes collaborators explicitly, so nothing below the API layer reaches for
module-level clients.

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
    StripeService (singleton via get_stripe_service)
        └── WebhookHandler
                ├── SubscriptionSyncService
                └── PaymentReconciler

Testing:
    Override get_webhook_handler via app.dependency_overrides, or call
    reset_services() between tests.
"""

from functools import lru_cache

from piecefund.services.dynamodb import get_dynamodb_service
from piecefund.services.payment_reconciler import PaymentReconciler
from piecefund.services.stripe_service import get_stripe_service
from piecefund.services.subscription_sync import SubscriptionSyncService
from piecefund.services.webhook_handler import WebhookHandler


@lru_cache
def get_webhook_handler() -> WebhookHandler:
    """Get cached WebhookHandler instance.

    Returns:
        WebhookHandler wired to the DynamoDB and Stripe singletons.
    """
    db = get_dynamodb_service()
    stripe = get_stripe_service()
    return WebhookHandler(
        db=db,
        stripe=stripe,
        subscriptions=SubscriptionSyncService(db, stripe),
        payments=PaymentReconciler(db),
    )


def reset_services() -> None:
    """Clear all cached service instances, including the DynamoDB singleton."""
    from piecefund.services.dynamodb import reset_dynamodb_service

    get_webhook_handler.cache_clear()
    get_stripe_service.cache_clear()
    reset_dynamodb_service()
