"""Webhook handler for processing Stripe events.

Provides business logic for handling webhook events separate from
HTTP routing concerns. The transport calls, in order:

- verify_event: authenticate the raw request
- classify: decide the reconciliation action
- dispatch: run the action, usually as a background task after the
  acknowledgment has been sent
"""

from pydantic import ValidationError

from piecefund.models.enums import ReconciliationResult
from piecefund.models.errors import BillingError, ErrorCode
from piecefund.models.events import (
    IgnoreEvent,
    RecordPayment,
    StripeEvent,
    SyncSubscription,
    WebhookAction,
)
from piecefund.utils.logging import correlation_scope, get_logger, log_webhook_event

from .dynamodb import DynamoDBService, PersistenceError
from .event_classifier import classify_event
from .payment_reconciler import PaymentReconciler
from .stripe_service import (
    StripeService,
    StripeServiceError,
    WebhookPayloadError,
    WebhookSignatureError,
)
from .subscription_sync import SubscriptionSyncService

logger = get_logger(__name__)

WEBHOOK_METHOD = "POST"
PREFLIGHT_METHOD = "OPTIONS"


class WebhookHandler:
    """Handler for processing Stripe webhook events.

    Holds no per-event state; every collaborator is injected at startup.
    """

    def __init__(
        self,
        db: DynamoDBService,
        stripe: StripeService,
        subscriptions: SubscriptionSyncService | None = None,
        payments: PaymentReconciler | None = None,
    ) -> None:
        self._stripe = stripe
        self._subscriptions = subscriptions or SubscriptionSyncService(db, stripe)
        self._payments = payments or PaymentReconciler(db)

    def verify_event(
        self,
        method: str,
        payload: bytes,
        signature: str | None,
    ) -> StripeEvent | None:
        """Authenticate an inbound webhook request.

        Args:
            method: HTTP method of the request
            payload: Raw, unparsed request body
            signature: Stripe-Signature header value, if any

        Returns:
            The verified event, or None for a preflight request that needs
            no processing.

        Raises:
            BillingError: METHOD_NOT_ALLOWED, MISSING_WEBHOOK_SIGNATURE,
                INVALID_WEBHOOK_SIGNATURE or INVALID_WEBHOOK_PAYLOAD.
        """
        method = method.upper()
        if method == PREFLIGHT_METHOD:
            return None
        if method != WEBHOOK_METHOD:
            raise BillingError(ErrorCode.METHOD_NOT_ALLOWED, details={"method": method})

        if not signature:
            logger.warning("Webhook request missing Stripe-Signature header")
            raise BillingError(ErrorCode.MISSING_WEBHOOK_SIGNATURE)

        try:
            return self._stripe.verify_webhook_signature(payload, signature)
        except WebhookSignatureError as e:
            logger.error("Webhook signature verification failed: %s", e)
            raise BillingError(
                ErrorCode.INVALID_WEBHOOK_SIGNATURE,
                details={"message": str(e)},
            ) from e
        except WebhookPayloadError as e:
            raise BillingError(
                ErrorCode.INVALID_WEBHOOK_PAYLOAD,
                details={"message": str(e)},
            ) from e
        except StripeServiceError as e:
            # Secret unavailable: a configuration fault, not a bad request
            logger.error("Webhook verification unavailable: %s", e)
            raise BillingError(ErrorCode.INTERNAL_ERROR) from e

    def classify(self, event: StripeEvent) -> WebhookAction:
        """Classify a verified event.

        Raises:
            BillingError: INVALID_WEBHOOK_PAYLOAD if the event object does
                not have the shape its type promises.
        """
        try:
            action = classify_event(event)
        except ValidationError as e:
            log_webhook_event(logger, event.type, event.id, result="error", error=str(e))
            raise BillingError(
                ErrorCode.INVALID_WEBHOOK_PAYLOAD,
                details={"event_id": event.id, "event_type": event.type},
            ) from e

        log_webhook_event(
            logger,
            event.type,
            event.id,
            customer_id=_action_customer(action),
            action=action.action,
            result="received",
        )
        return action

    def dispatch(
        self,
        event: StripeEvent,
        action: WebhookAction,
        correlation_id: str | None = None,
    ) -> ReconciliationResult:
        """Run the reconciliation for a classified event.

        Never raises: the acknowledgment has normally been sent already,
        so failures are only observable through the logs. Subscription
        failures are retried by the next event for the same customer.

        Args:
            event: The verified event
            action: Its classification
            correlation_id: ID of the delivery that scheduled this run

        Returns:
            Overall reconciliation result
        """
        with correlation_scope(correlation_id):
            return self._dispatch(event, action)

    def _dispatch(self, event: StripeEvent, action: WebhookAction) -> ReconciliationResult:
        customer_id = _action_customer(action)

        if isinstance(action, IgnoreEvent):
            log_webhook_event(
                logger,
                event.type,
                event.id,
                action=action.action,
                result="skipped",
                reason=action.reason,
            )
            return ReconciliationResult.SKIPPED

        try:
            if isinstance(action, SyncSubscription):
                self._subscriptions.sync_customer(action.customer_id)
                result = ReconciliationResult.SUCCESS
                error = None
            else:
                outcome = self._payments.record_payment(action.session)
                result = outcome.result
                error = outcome.error_message
        except StripeServiceError as e:
            result, error = ReconciliationResult.ERROR, f"{ErrorCode.PROVIDER_FETCH_FAILED.value}: {e}"
        except PersistenceError as e:
            result, error = ReconciliationResult.ERROR, f"{ErrorCode.PERSISTENCE_WRITE_FAILED.value}: {e}"
        except Exception as e:
            logger.exception("Unhandled error reconciling event %s", event.id)
            result, error = ReconciliationResult.ERROR, f"{ErrorCode.INTERNAL_ERROR.value}: {e}"

        log_webhook_event(
            logger,
            event.type,
            event.id,
            customer_id=customer_id,
            action=action.action,
            result=result.value,
            error=error,
        )
        return result


def _action_customer(action: WebhookAction) -> str | None:
    if isinstance(action, SyncSubscription):
        return action.customer_id
    if isinstance(action, RecordPayment):
        return action.session.customer_id
    return None
