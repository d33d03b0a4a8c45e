"""Unit tests for Stripe event classification."""

from typing import Any

import pytest
from pydantic import ValidationError

from conftest import (
    TEST_CUSTOMER_ID,
    TEST_PIECE_ID,
    TEST_SESSION_ID,
    build_checkout_session,
    build_event,
)
from piecefund.models.events import IgnoreEvent, RecordPayment, StripeEvent, SyncSubscription
from piecefund.services.event_classifier import classify_event


def _event(event_type: str, obj: dict[str, Any]) -> StripeEvent:
    return StripeEvent.model_validate(build_event(event_type, obj))


class TestIgnoredEvents:
    """Events that need no reconciliation."""

    def test_object_without_customer_field_is_ignored(self) -> None:
        """Objects that carry no customer reference at all are skipped."""
        event = _event("product.updated", {"id": "prod_123", "name": "Print"})

        action = classify_event(event)

        assert isinstance(action, IgnoreEvent)

    def test_payment_intent_without_invoice_is_ignored(self) -> None:
        """One-time payment intents are recorded from checkout instead."""
        event = _event(
            "payment_intent.succeeded",
            {"id": "pi_123", "customer": TEST_CUSTOMER_ID, "invoice": None},
        )

        action = classify_event(event)

        assert isinstance(action, IgnoreEvent)
        assert "invoice" in action.reason

    def test_payment_intent_missing_invoice_key_is_ignored(self) -> None:
        """An absent invoice field counts as not linked."""
        event = _event("payment_intent.succeeded", {"id": "pi_123", "customer": TEST_CUSTOMER_ID})

        assert isinstance(classify_event(event), IgnoreEvent)

    @pytest.mark.parametrize("customer", [None, "", 12345, ["cus_1"], {"object": "customer"}])
    def test_empty_or_unusable_customer_is_ignored(self, customer: Any) -> None:
        """A present but empty or non-ID customer cannot be reconciled."""
        event = _event("customer.subscription.updated", {"id": "sub_1", "customer": customer})

        assert isinstance(classify_event(event), IgnoreEvent)

    def test_unpaid_payment_checkout_is_ignored(self) -> None:
        """Payment-mode sessions that are not paid yet are skipped."""
        event = _event(
            "checkout.session.completed",
            build_checkout_session(payment_status="unpaid"),
        )

        assert isinstance(classify_event(event), IgnoreEvent)

    def test_setup_mode_checkout_is_ignored(self) -> None:
        """Setup-mode sessions neither pay nor subscribe."""
        event = _event(
            "checkout.session.completed",
            build_checkout_session(mode="setup", payment_status="no_payment_required"),
        )

        assert isinstance(classify_event(event), IgnoreEvent)


class TestSubscriptionSync:
    """Events that trigger a subscription re-sync."""

    @pytest.mark.parametrize(
        "event_type",
        [
            "customer.subscription.created",
            "customer.subscription.updated",
            "customer.subscription.deleted",
            "customer.subscription.trial_will_end",
            "invoice.paid",
        ],
    )
    def test_customer_bearing_events_sync(self, event_type: str) -> None:
        """Any other event with a customer re-syncs that customer."""
        event = _event(event_type, {"id": "obj_1", "customer": TEST_CUSTOMER_ID})

        action = classify_event(event)

        assert action == SyncSubscription(customer_id=TEST_CUSTOMER_ID)

    def test_invoice_linked_payment_intent_syncs(self) -> None:
        """Subscription renewals arrive as invoice-linked payment intents."""
        event = _event(
            "payment_intent.succeeded",
            {"id": "pi_123", "customer": TEST_CUSTOMER_ID, "invoice": "in_123"},
        )

        assert classify_event(event) == SyncSubscription(customer_id=TEST_CUSTOMER_ID)

    def test_subscription_mode_checkout_syncs(self) -> None:
        """A subscription checkout never records a one-time order."""
        event = _event(
            "checkout.session.completed",
            build_checkout_session(mode="subscription"),
        )

        assert classify_event(event) == SyncSubscription(customer_id=TEST_CUSTOMER_ID)

    def test_expanded_customer_is_reduced_to_id(self) -> None:
        """An expanded customer object resolves to its ID."""
        event = _event(
            "customer.subscription.updated",
            {"id": "sub_1", "customer": {"id": TEST_CUSTOMER_ID, "object": "customer"}},
        )

        assert classify_event(event) == SyncSubscription(customer_id=TEST_CUSTOMER_ID)


class TestRecordPayment:
    """Paid one-time checkouts."""

    def test_paid_payment_checkout_records_payment(self) -> None:
        """Paid payment-mode sessions carry every detail needed to record them."""
        event = _event("checkout.session.completed", build_checkout_session(amount_total=2500))

        action = classify_event(event)

        assert isinstance(action, RecordPayment)
        session = action.session
        assert session.checkout_session_id == TEST_SESSION_ID
        assert session.payment_intent_id == "pi_3ABC123DEF456"
        assert session.customer_id == TEST_CUSTOMER_ID
        assert session.amount_total == 2500
        assert session.currency == "usd"
        assert session.payment_status == "paid"
        assert session.piece_id == TEST_PIECE_ID

    def test_missing_piece_metadata_gives_no_piece(self) -> None:
        """Donations without a piece still record, with piece_id unset."""
        event = _event("checkout.session.completed", build_checkout_session(piece_id=None))

        action = classify_event(event)

        assert isinstance(action, RecordPayment)
        assert action.session.piece_id is None

    def test_malformed_checkout_object_raises(self) -> None:
        """Wrongly typed fields surface as a validation error."""
        obj = build_checkout_session()
        obj["amount_total"] = "lots"
        event = _event("checkout.session.completed", obj)

        with pytest.raises(ValidationError):
            classify_event(event)
