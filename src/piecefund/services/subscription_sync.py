"""Mirror a customer's Stripe subscription into DynamoDB.

The mirror is always rebuilt from the subscription Stripe returns now, never
from the event payload, so syncs converge regardless of delivery order.
"""

import datetime as dt

from piecefund.models.enums import SubscriptionStatus
from piecefund.models.events import SubscriptionObject
from piecefund.models.records import SubscriptionMirror
from piecefund.utils.logging import get_logger

from .dynamodb import DynamoDBService
from .stripe_service import StripeService

logger = get_logger(__name__)


class SubscriptionSyncService:
    """Upserts the ``stripe-subscriptions`` row for a customer."""

    SUBSCRIPTIONS_TABLE = "stripe-subscriptions"

    def __init__(self, db: DynamoDBService, stripe: StripeService) -> None:
        self._db = db
        self._stripe = stripe

    def sync_customer(self, customer_id: str) -> SubscriptionMirror:
        """Fetch the customer's latest subscription and store its mirror.

        A customer is assumed to hold at most one subscription. Without one,
        the mirror only records ``not_started``.

        Args:
            customer_id: Stripe customer ID

        Returns:
            The mirror row that was written

        Raises:
            StripeServiceError: If Stripe cannot be reached.
            PersistenceError: If the upsert fails.
        """
        logger.info("Starting subscription sync for customer: %s", customer_id)
        subscriptions = self._stripe.list_customer_subscriptions(customer_id, limit=1)

        if not subscriptions:
            logger.info("No subscriptions found for customer: %s", customer_id)
            mirror = SubscriptionMirror(
                customer_id=customer_id,
                status=SubscriptionStatus.NOT_STARTED,
                updated_at=_now(),
            )
        else:
            mirror = build_mirror(customer_id, subscriptions[0])

        self._db.upsert(self.SUBSCRIPTIONS_TABLE, mirror.to_item())
        logger.info(
            "Synced subscription for customer %s: status=%s",
            customer_id,
            mirror.status.value,
        )
        return mirror


def build_mirror(customer_id: str, subscription: SubscriptionObject) -> SubscriptionMirror:
    """Build the full mirror row for a fetched subscription.

    Payment method display fields are only filled from an expanded payment
    method object, never from a bare ID.
    """
    brand: str | None = None
    last4: str | None = None
    card = subscription.card_display()
    if card is not None:
        brand, last4 = card

    return SubscriptionMirror(
        customer_id=customer_id,
        subscription_id=subscription.id,
        price_id=subscription.price_id,
        current_period_start=subscription.period_start,
        current_period_end=subscription.period_end,
        cancel_at_period_end=subscription.cancel_at_period_end,
        payment_method_brand=brand,
        payment_method_last4=last4,
        status=SubscriptionStatus(subscription.status),
        updated_at=_now(),
    )


def _now() -> str:
    return dt.datetime.now(dt.UTC).isoformat()
