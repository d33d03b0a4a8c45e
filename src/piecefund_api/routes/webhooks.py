"""Webhook endpoint for Stripe events.

Handles:
- checkout.session.completed: records one-time donations or syncs subscriptions
- customer.subscription.*: syncs the customer's subscription mirror
- payment_intent.succeeded: only when linked to an invoice

This endpoint does NOT require JWT authentication as it receives signed
payloads from Stripe. The response is sent as soon as the event is verified
and classified; reconciliation continues as a background task.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from starlette.status import HTTP_204_NO_CONTENT

from piecefund.models.errors import BillingError, ErrorCode
from piecefund.services.webhook_handler import WebhookHandler
from piecefund.utils.logging import get_correlation_id, get_logger
from piecefund_api.dependencies import get_webhook_handler
from piecefund_api.models.common import ToolError
from piecefund_api.models.webhooks import WebhookResponse

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

# Every method is routed here so that unsupported ones get the standard
# error body instead of the framework default.
_ROUTED_METHODS = ["POST", "OPTIONS", "GET", "HEAD", "PUT", "PATCH", "DELETE"]


@router.api_route(
    "/webhooks/stripe",
    methods=_ROUTED_METHODS,
    summary="Receive Stripe webhook events",
    description="""
Endpoint for Stripe webhook events.

**No authentication required** - the signature is verified against the raw
body using the Stripe webhook secret.

- `OPTIONS` answers a preflight with 204 and does nothing else.
- Any method other than `POST`/`OPTIONS` returns 405.
""",
    response_model=WebhookResponse,
    responses={
        200: {"description": "Event verified; reconciliation scheduled", "model": WebhookResponse},
        204: {"description": "Preflight"},
        400: {"description": "Missing or invalid signature, or malformed event", "model": ToolError},
        405: {"description": "Method not allowed", "model": ToolError},
        500: {"description": "Unhandled internal error", "model": ToolError},
    },
)
async def handle_stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    handler: WebhookHandler = Depends(get_webhook_handler),
) -> WebhookResponse | Response:
    """Verify and classify a Stripe event, then reconcile it in the background."""
    try:
        signature = request.headers.get("Stripe-Signature")
        # Raw bytes: the signature covers the body exactly as sent
        payload = await request.body()

        event = handler.verify_event(request.method, payload, signature)
        if event is None:
            return Response(status_code=HTTP_204_NO_CONTENT)

        action = handler.classify(event)
        background_tasks.add_task(
            handler.dispatch, event, action, correlation_id=get_correlation_id()
        )
    except BillingError:
        raise
    except Exception as e:
        logger.exception("Error processing webhook")
        raise BillingError(ErrorCode.INTERNAL_ERROR) from e

    return WebhookResponse(
        received=True,
        event_id=event.id,
        event_type=event.type,
        action=action.action,
    )
