"""Standard error codes for the billing webhook service.

Every error that reaches the HTTP transport is a BillingError carrying one of
these codes; the API layer maps codes to status codes.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes."""

    # Webhook verification (ERR_WEBHOOK_001-ERR_WEBHOOK_004)
    MISSING_WEBHOOK_SIGNATURE = "ERR_WEBHOOK_001"
    INVALID_WEBHOOK_SIGNATURE = "ERR_WEBHOOK_002"
    INVALID_WEBHOOK_PAYLOAD = "ERR_WEBHOOK_003"
    METHOD_NOT_ALLOWED = "ERR_WEBHOOK_004"

    # Reconciliation (ERR_RECON_001-ERR_RECON_002)
    PROVIDER_FETCH_FAILED = "ERR_RECON_001"
    PERSISTENCE_WRITE_FAILED = "ERR_RECON_002"

    INTERNAL_ERROR = "ERR_INTERNAL"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.MISSING_WEBHOOK_SIGNATURE: "No Stripe-Signature header found",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Webhook signature verification failed",
    ErrorCode.INVALID_WEBHOOK_PAYLOAD: "Webhook payload is not a valid Stripe event",
    ErrorCode.METHOD_NOT_ALLOWED: "Method not allowed",
    ErrorCode.PROVIDER_FETCH_FAILED: "Failed to fetch data from Stripe",
    ErrorCode.PERSISTENCE_WRITE_FAILED: "Failed to write to the database",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred",
}

# Recovery suggestions for operators and callers
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.MISSING_WEBHOOK_SIGNATURE: "Send the Stripe-Signature header with the request",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Verify webhook secret configuration",
    ErrorCode.INVALID_WEBHOOK_PAYLOAD: "Send the unmodified Stripe event body",
    ErrorCode.METHOD_NOT_ALLOWED: "Use POST to deliver webhook events",
    ErrorCode.PROVIDER_FETCH_FAILED: "The next event for this customer will retry the sync",
    ErrorCode.PERSISTENCE_WRITE_FAILED: "Check DynamoDB availability and IAM permissions",
    ErrorCode.INTERNAL_ERROR: "Please try again later or contact support",
}


class ToolError(BaseModel):
    """Standard error response body."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ToolError":
        """Create a ToolError from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            A ToolError with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class BillingError(Exception):
    """Exception raised for webhook and reconciliation failures.

    Converted to a ToolError JSON body by the API exception handlers.
    """

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        super().__init__(self.message)

    def to_tool_error(self) -> ToolError:
        """Convert this exception to a ToolError response body."""
        return ToolError.from_code(self.code, self.details)
