"""Logging with correlation IDs and key=value reconciliation context.

A correlation ID is bound per request by the API middleware and re-bound by
the background dispatcher, so every line about one webhook delivery carries
the same ID even after the acknowledgment has been sent.

Usage:
    from piecefund.utils.logging import correlation_scope, get_logger

    logger = get_logger(__name__)
    with correlation_scope(incoming_id):
        logger.info("Recording order", extra={"checkout_session_id": "cs_123"})
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

NO_CORRELATION_ID = "no-correlation-id"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Outcomes that are expected under at-least-once delivery
_QUIET_OUTCOMES = frozenset({"duplicate", "skipped"})


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def get_correlation_id() -> str | None:
    """Return the correlation ID bound to the current context, if any."""
    return _correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block.

    The previous binding is restored on exit, so scopes nest and a
    background task never leaks its ID into the next request.

    Args:
        correlation_id: ID to bind. A new one is generated when empty.

    Yields:
        The bound correlation ID
    """
    cid = correlation_id or generate_correlation_id()
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Stamps ``correlation_id`` onto every record that passes through."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Prefixes each line with ``[correlation_id]`` for grep-friendly output."""

    def format(self, record: logging.LogRecord) -> str:
        cid = getattr(record, "correlation_id", None) or get_correlation_id() or NO_CORRELATION_ID
        return f"[{cid}] {super().format(record)}"


def configure_logging(level: int = logging.INFO) -> None:
    """Install the structured formatter on the root logger.

    Idempotent: an existing structured handler is kept as is.
    """
    root = logging.getLogger()
    root.setLevel(level)

    if any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler.addFilter(CorrelationIdFilter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger that stamps correlation IDs on its records."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def _emit(
    logger: logging.Logger,
    headline: str,
    context: dict[str, Any],
    *,
    failed: bool,
    outcome: str | None,
) -> None:
    """Log ``headline | key=value | ...`` with the same keys in ``extra``.

    Failures go to ERROR, duplicates and skips to WARNING, the rest to INFO.
    """
    fields = {key: value for key, value in context.items() if value is not None}
    message = " | ".join([headline, *(f"{key}={value}" for key, value in fields.items())])

    if failed:
        level = logging.ERROR
    elif outcome in _QUIET_OUTCOMES:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.log(level, message, extra=fields)


def log_payment_operation(
    logger: logging.Logger,
    operation: str,
    *,
    checkout_session_id: str | None = None,
    customer_id: str | None = None,
    piece_id: str | None = None,
    amount: int | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log one step of a one-time payment reconciliation.

    Args:
        logger: Logger instance
        operation: Step name, e.g. "insert_order" or "increment_amount_raised"
        checkout_session_id: Checkout session the step belongs to
        customer_id: Stripe customer ID if known
        piece_id: Funded piece if any
        amount: Amount in minor units
        status: Step outcome ("completed", "updated", "duplicate", ...)
        error: Error message if the step failed
        **extra: Additional context fields
    """
    _emit(
        logger,
        f"Payment operation: {operation}",
        {
            "operation": operation,
            "checkout_session_id": checkout_session_id,
            "customer_id": customer_id,
            "piece_id": piece_id,
            "amount": amount,
            "status": status,
            "error": error,
            **extra,
        },
        failed=error is not None,
        outcome=status,
    )


def log_webhook_event(
    logger: logging.Logger,
    event_type: str,
    event_id: str,
    *,
    customer_id: str | None = None,
    action: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log the handling of a Stripe event.

    Args:
        logger: Logger instance
        event_type: Stripe event type
        event_id: Stripe event ID
        customer_id: Stripe customer the event refers to, if any
        action: Classified reconciliation action
        result: "received", "success", "duplicate", "skipped" or "error"
        error: Error message if processing failed
        **extra: Additional context fields
    """
    _emit(
        logger,
        f"Webhook event: {event_type} ({event_id})",
        {
            "event_type": event_type,
            "event_id": event_id,
            "action": action,
            "result": result,
            "customer_id": customer_id,
            "error": error,
            **extra,
        },
        failed=result == "error",
        outcome=result,
    )
