"""FastAPI exception handlers for converting BillingError to HTTP responses.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: missing/invalid signature, malformed payload
- 405 Method Not Allowed: anything but POST/OPTIONS on the webhook
- 500 Internal Server Error: everything the caller cannot fix
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_405_METHOD_NOT_ALLOWED,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from piecefund.models.errors import BillingError, ErrorCode, ToolError
from piecefund.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.MISSING_WEBHOOK_SIGNATURE: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_WEBHOOK_PAYLOAD: HTTP_400_BAD_REQUEST,
    ErrorCode.METHOD_NOT_ALLOWED: HTTP_405_METHOD_NOT_ALLOWED,
    ErrorCode.PROVIDER_FETCH_FAILED: HTTP_502_BAD_GATEWAY,
    ErrorCode.PERSISTENCE_WRITE_FAILED: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.INTERNAL_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode, defaulting to 500."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_500_INTERNAL_SERVER_ERROR)


async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    """Convert a BillingError into a ToolError JSON response.

    Args:
        request: The incoming request (unused but required by FastAPI)
        exc: The BillingError exception

    Returns:
        JSONResponse with error details and appropriate status code.
    """
    status_code = get_http_status_for_error(exc.code)
    tool_error = exc.to_tool_error()

    headers = None
    if exc.code == ErrorCode.METHOD_NOT_ALLOWED:
        headers = {"Allow": "POST, OPTIONS"}

    return JSONResponse(
        status_code=status_code,
        content=tool_error.model_dump(mode="json"),
        headers=headers,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic error response.

    Internal details are logged, never returned to the client.
    """
    logger.exception("Unhandled exception: %s", exc)

    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content=ToolError.from_code(ErrorCode.INTERNAL_ERROR).model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(BillingError, billing_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
