"""Stripe access for webhook verification and subscription lookups.

Uses the StripeClient API. The secret key and webhook signing secret come
from the environment or SSM Parameter Store, resolved on first use.
"""

import os
from functools import lru_cache
from typing import Any

import stripe
from pydantic import ValidationError
from stripe import StripeClient

from piecefund.models.events import StripeEvent, SubscriptionObject
from piecefund.utils.logging import get_logger

from .ssm_service import SSMService, SSMServiceError, get_ssm_service

logger = get_logger(__name__)


class StripeServiceError(Exception):
    """A Stripe call or Stripe credential lookup failed."""

    def __init__(self, message: str, stripe_error_code: str | None = None) -> None:
        super().__init__(message)
        self.stripe_error_code = stripe_error_code


class WebhookSignatureError(StripeServiceError):
    """The Stripe-Signature header does not match the payload."""


class WebhookPayloadError(StripeServiceError):
    """A correctly signed payload is not a Stripe event."""


class StripeService:
    """The two Stripe operations reconciliation depends on.

    - verify_webhook_signature: authenticate and parse a raw delivery
    - list_customer_subscriptions: fetch the subscription to mirror

    Usage:
        event = get_stripe_service().verify_webhook_signature(payload, signature)
    """

    def __init__(
        self,
        environment: str | None = None,
        ssm: SSMService | None = None,
    ) -> None:
        """Create the service; no credentials are read until first use.

        Args:
            environment: dev/prod, selecting the SSM path. Defaults to ENVIRONMENT.
            ssm: Secret resolver. Defaults to the shared SSMService.
        """
        self._environment = environment or os.environ.get("ENVIRONMENT", "dev")
        self._ssm = ssm or get_ssm_service()
        self._client: StripeClient | None = None
        self._webhook_secret: str | None = None

    def _secret(self, env_var: str, name: str) -> str:
        try:
            return self._ssm.get_secret(env_var, f"/piecefund/{self._environment}/stripe/{name}")
        except SSMServiceError as e:
            raise StripeServiceError(f"Stripe {name} unavailable: {e}") from e

    def _get_client(self) -> StripeClient:
        if self._client is None:
            self._client = StripeClient(self._secret("STRIPE_SECRET_KEY", "secret_key"))
            logger.info("Stripe client ready for environment: %s", self._environment)
        return self._client

    def _get_webhook_secret(self) -> str:
        if self._webhook_secret is None:
            self._webhook_secret = self._secret("STRIPE_WEBHOOK_SECRET", "webhook_secret")
        return self._webhook_secret

    def verify_webhook_signature(self, payload: bytes, signature: str) -> StripeEvent:
        """Verify a webhook signature and parse the event.

        The signature is checked against the exact bytes received; the body
        is only parsed after it has been authenticated.

        Args:
            payload: Raw request body bytes.
            signature: Stripe-Signature header value.

        Returns:
            The verified event.

        Raises:
            WebhookSignatureError: If the signature is invalid or stale.
            WebhookPayloadError: If the signed body is not a Stripe event.
            StripeServiceError: If the webhook secret is unavailable.
        """
        webhook_secret = self._get_webhook_secret()

        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                webhook_secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except UnicodeDecodeError as e:
            raise WebhookSignatureError("Webhook payload is not UTF-8") from e
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise WebhookSignatureError("Invalid webhook signature") from e

        try:
            event = StripeEvent.model_validate_json(payload)
        except ValidationError as e:
            logger.warning("Signed webhook payload is not a Stripe event: %s", e)
            raise WebhookPayloadError("Webhook payload is not a valid Stripe event") from e

        logger.info("Webhook signature verified for event: %s", event.id)
        return event

    def list_customer_subscriptions(
        self,
        customer_id: str,
        *,
        limit: int = 1,
    ) -> list[SubscriptionObject]:
        """List a customer's most recent subscriptions, any status.

        Args:
            customer_id: Stripe customer ID (cus_xxx).
            limit: Maximum number of subscriptions to return.

        Returns:
            Subscriptions, newest first, with default_payment_method expanded.

        Raises:
            StripeServiceError: If the Stripe API call fails.
        """
        client = self._get_client()

        params: dict[str, Any] = {
            "customer": customer_id,
            "limit": limit,
            "status": "all",
            "expand": ["data.default_payment_method"],
        }

        try:
            result = client.subscriptions.list(params=params)
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe subscription list failed for %s: %s (code: %s)",
                customer_id,
                str(e),
                error_code,
            )
            raise StripeServiceError(
                f"Failed to list subscriptions for {customer_id}: {e}",
                stripe_error_code=error_code,
            ) from e

        return [
            SubscriptionObject.model_validate(subscription.to_dict())
            for subscription in result.data
        ]


@lru_cache(maxsize=1)
def get_stripe_service() -> StripeService:
    """Get the shared StripeService instance."""
    return StripeService()
