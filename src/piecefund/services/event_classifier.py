"""Classify verified Stripe events into reconciliation actions.

Rules, applied in order:

1. No customer reference on the event object -> ignore.
2. payment_intent.succeeded not linked to an invoice -> ignore. One-time
   payments are recorded from checkout.session.completed instead.
3. checkout.session.completed -> subscription mode syncs the subscription,
   paid payment mode records the payment, anything else is ignored.
4. Every other customer-bearing event -> sync the subscription.
"""

from piecefund.models.enums import CheckoutMode, CheckoutPaymentStatus, StripeEventType
from piecefund.models.events import (
    CheckoutSessionDetails,
    CheckoutSessionObject,
    IgnoreEvent,
    PaymentIntentObject,
    RecordPayment,
    StripeEvent,
    StripeObject,
    SyncSubscription,
    WebhookAction,
)
from piecefund.utils.logging import get_logger

logger = get_logger(__name__)

# Metadata key carrying the funded piece on one-time checkouts
PIECE_METADATA_KEY = "piece_id"


def classify_event(event: StripeEvent) -> WebhookAction:
    """Decide how a verified event must be reconciled.

    Args:
        event: Verified Stripe event

    Returns:
        IgnoreEvent, SyncSubscription or RecordPayment
    """
    payload = event.data.object

    if "customer" not in payload:
        return IgnoreEvent(reason="Event object has no customer reference")

    if event.type == StripeEventType.PAYMENT_INTENT_SUCCEEDED.value:
        intent = PaymentIntentObject.model_validate(payload)
        if intent.invoice_id is None:
            return IgnoreEvent(
                reason="Payment intent is not linked to an invoice; "
                "one-time payments are handled on checkout completion"
            )

    customer_id = StripeObject.model_validate(payload).customer_id
    if customer_id is None:
        logger.error("No customer received on event %s (%s)", event.id, event.type)
        return IgnoreEvent(reason="Event customer is empty")

    if event.type == StripeEventType.CHECKOUT_SESSION_COMPLETED.value:
        return _classify_checkout_session(
            CheckoutSessionObject.model_validate(payload), customer_id
        )

    return SyncSubscription(customer_id=customer_id)


def _classify_checkout_session(
    session: CheckoutSessionObject,
    customer_id: str,
) -> WebhookAction:
    if session.mode == CheckoutMode.SUBSCRIPTION.value:
        logger.info("Processing subscription checkout session %s", session.id)
        return SyncSubscription(customer_id=customer_id)

    if (
        session.mode == CheckoutMode.PAYMENT.value
        and session.payment_status == CheckoutPaymentStatus.PAID.value
    ):
        if not session.id:
            return IgnoreEvent(reason="Checkout session has no ID")
        logger.info("Processing one-time payment checkout session %s", session.id)
        return RecordPayment(session=_session_details(session, customer_id))

    return IgnoreEvent(
        reason=f"Checkout session mode={session.mode} "
        f"payment_status={session.payment_status} needs no reconciliation"
    )


def _session_details(
    session: CheckoutSessionObject,
    customer_id: str,
) -> CheckoutSessionDetails:
    metadata = session.metadata or {}
    piece_id = metadata.get(PIECE_METADATA_KEY) or None

    return CheckoutSessionDetails(
        checkout_session_id=session.id,
        payment_intent_id=session.payment_intent_id,
        customer_id=customer_id,
        amount_subtotal=session.amount_subtotal,
        amount_total=session.amount_total,
        currency=session.currency,
        payment_status=session.payment_status,
        piece_id=str(piece_id) if piece_id else None,
    )
