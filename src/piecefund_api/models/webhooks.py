"""Response models for the webhook endpoint."""

from pydantic import BaseModel, Field


class WebhookResponse(BaseModel):
    """Acknowledgment returned once an event is verified and classified.

    Reconciliation continues after this response is sent, so the body only
    says what will be done, not whether it succeeded.
    """

    received: bool = True
    event_id: str | None = None
    event_type: str | None = None
    action: str | None = Field(
        default=None,
        description="Scheduled reconciliation: ignore, sync_subscription or record_payment",
        examples=["record_payment"],
    )
