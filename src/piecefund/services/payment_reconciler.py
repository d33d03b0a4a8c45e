"""Record completed one-time payments and their derived effects.

Steps run in order and are fault-isolated:

1. Insert the order, once per checkout session. Failure stops here.
2. Add the amount to the piece's ``amount_raised``.
3. Add the amount to the donor's ``total_donated_amount``.
4. Notify the donor about the piece they funded.

Steps 2-4 are best effort: their failures are logged and never undo or
block the order record.
"""

import datetime as dt
import uuid

from pydantic import BaseModel

from piecefund.models.enums import NotificationType, OrderStatus, ReconciliationResult
from piecefund.models.events import CheckoutSessionDetails
from piecefund.models.records import Notification, OrderRecord
from piecefund.utils.logging import get_logger, log_payment_operation

from .dynamodb import DuplicateKeyError, DynamoDBService, PersistenceError

logger = get_logger(__name__)

DEFAULT_PIECE_TITLE = "Peace Piece"
DONATION_NOTIFICATION_TITLE = "Thank you for your donation!"


class PaymentReconciliation(BaseModel):
    """Which reconciliation steps took effect for one checkout session."""

    checkout_session_id: str
    result: ReconciliationResult
    order_recorded: bool = False
    piece_updated: bool = False
    donation_updated: bool = False
    notification_id: str | None = None
    error_message: str | None = None


class PaymentReconciler:
    """Applies a paid checkout session to orders, counters and notifications."""

    ORDERS_TABLE = "stripe-orders"
    PIECES_TABLE = "pieces"
    PROFILES_TABLE = "profiles"
    NOTIFICATIONS_TABLE = "notifications"

    def __init__(self, db: DynamoDBService) -> None:
        self._db = db

    def record_payment(self, session: CheckoutSessionDetails) -> PaymentReconciliation:
        """Reconcile one paid checkout session.

        Args:
            session: Details of the paid checkout session

        Returns:
            Outcome of each step. ``duplicate`` means the session was already
            recorded and nothing was applied again.
        """
        outcome = PaymentReconciliation(
            checkout_session_id=session.checkout_session_id,
            result=ReconciliationResult.SUCCESS,
        )

        try:
            self._insert_order(session)
        except DuplicateKeyError:
            log_payment_operation(
                logger,
                "insert_order",
                checkout_session_id=session.checkout_session_id,
                status="duplicate",
                detail="Order already recorded, skipping derived effects",
            )
            outcome.result = ReconciliationResult.DUPLICATE
            return outcome
        except PersistenceError as e:
            log_payment_operation(
                logger,
                "insert_order",
                checkout_session_id=session.checkout_session_id,
                customer_id=session.customer_id,
                amount=session.amount_total,
                error=str(e),
            )
            outcome.result = ReconciliationResult.ERROR
            outcome.error_message = f"Failed to insert order: {e}"
            return outcome

        outcome.order_recorded = True
        log_payment_operation(
            logger,
            "insert_order",
            checkout_session_id=session.checkout_session_id,
            customer_id=session.customer_id,
            piece_id=session.piece_id or "none",
            amount=session.amount_total,
            status="completed",
        )

        amount = session.amount_total or 0

        if session.piece_id and amount > 0:
            outcome.piece_updated = self._add_to_amount_raised(session.piece_id, amount)

        if amount > 0:
            outcome.donation_updated = self._add_to_total_donated(session.customer_id, amount)

        if session.piece_id:
            outcome.notification_id = self._notify_donor(session.customer_id, session.piece_id)

        return outcome

    def _insert_order(self, session: CheckoutSessionDetails) -> None:
        order = OrderRecord(
            checkout_session_id=session.checkout_session_id,
            payment_intent_id=session.payment_intent_id,
            customer_id=session.customer_id,
            amount_subtotal=session.amount_subtotal,
            amount_total=session.amount_total,
            currency=session.currency,
            payment_status=session.payment_status,
            status=OrderStatus.COMPLETED,
            piece_id=session.piece_id,
            created_at=dt.datetime.now(dt.UTC).isoformat(),
        )
        self._db.insert_once(self.ORDERS_TABLE, "checkout_session_id", order.to_item())

    def _add_to_amount_raised(self, piece_id: str, amount: int) -> bool:
        try:
            updated = self._db.increment(
                self.PIECES_TABLE, {"id": piece_id}, "amount_raised", amount
            )
        except Exception as e:
            log_payment_operation(
                logger, "increment_amount_raised", piece_id=piece_id, amount=amount, error=str(e)
            )
            return False

        if updated is None:
            log_payment_operation(
                logger,
                "increment_amount_raised",
                piece_id=piece_id,
                amount=amount,
                error="Piece not found",
            )
            return False

        log_payment_operation(
            logger, "increment_amount_raised", piece_id=piece_id, amount=amount, status="updated"
        )
        return True

    def _add_to_total_donated(self, customer_id: str, amount: int) -> bool:
        try:
            user_id = self._db.get_user_id_for_customer(customer_id)
            if user_id is None:
                logger.info("No user mapped to customer %s, donation total unchanged", customer_id)
                return False
            updated = self._db.increment(
                self.PROFILES_TABLE, {"id": user_id}, "total_donated_amount", amount
            )
        except Exception as e:
            log_payment_operation(
                logger,
                "increment_total_donated",
                customer_id=customer_id,
                amount=amount,
                error=str(e),
            )
            return False

        if updated is None:
            log_payment_operation(
                logger,
                "increment_total_donated",
                customer_id=customer_id,
                amount=amount,
                error=f"Profile {user_id} not found",
            )
            return False

        log_payment_operation(
            logger,
            "increment_total_donated",
            customer_id=customer_id,
            amount=amount,
            status="updated",
            user_id=user_id,
        )
        return True

    def _notify_donor(self, customer_id: str, piece_id: str) -> str | None:
        try:
            user_id = self._db.get_user_id_for_customer(customer_id)
            if user_id is None:
                logger.info("No user mapped to customer %s, skipping notification", customer_id)
                return None

            piece = self._db.get_item(self.PIECES_TABLE, {"id": piece_id}) or {}
            title = piece.get("title") or DEFAULT_PIECE_TITLE

            notification = Notification(
                notification_id=str(uuid.uuid4()),
                user_id=user_id,
                title=DONATION_NOTIFICATION_TITLE,
                message=(
                    f'Your donation to "{title}" was successful. You now have access '
                    "to view this piece and join the conversation."
                ),
                type=NotificationType.SUCCESS,
                action_url=f"/piece/{piece_id}",
                created_at=dt.datetime.now(dt.UTC).isoformat(),
            )
            self._db.insert_once(self.NOTIFICATIONS_TABLE, "notification_id", notification.to_item())
        except Exception as e:
            # A missing notification never blocks payment recording
            log_payment_operation(
                logger, "create_notification", customer_id=customer_id, piece_id=piece_id, error=str(e)
            )
            return None

        log_payment_operation(
            logger,
            "create_notification",
            customer_id=customer_id,
            piece_id=piece_id,
            status="created",
            user_id=user_id,
        )
        return notification.notification_id
