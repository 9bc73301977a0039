import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import Unauthorized
from models.order import Order, OrderProgress, PaymentSignal
from schemas.payment import MidtransNotification
from services import midtrans
from services.order_store import apply_transition

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = {"settlement", "capture"}
FAILURE_STATUSES = {"cancel", "deny", "expire", "failure"}


def map_transaction_status(transaction_status: str) -> tuple[PaymentSignal | None, OrderProgress | None]:
    """Translate a Midtrans transaction_status into (status, status_progress).

    ``None`` means "leave unchanged". Unknown gateway values keep the current
    status; they are still recorded verbatim in ``midtrans_status``.
    """
    value = (transaction_status or "").strip().lower()
    if value in SUCCESS_STATUSES:
        return PaymentSignal.SUCCESS, OrderProgress.PROCESSING
    if value in FAILURE_STATUSES:
        return PaymentSignal.FAILED, OrderProgress.CANCELLED
    try:
        return PaymentSignal(value), None
    except ValueError:
        return None, None


def reconcile_notification(db: Session, notification: MidtransNotification) -> Dict[str, Any]:
    """Apply a payment notification to its order.

    Only orders still in ``approved_awaiting_payment`` are touched; anything
    else (duplicates, stale retries, notifications for free orders) is
    acknowledged without writing so that redelivery is harmless.
    """
    order_id = midtrans.unwrap_order_id(notification.order_id)

    if settings.MIDTRANS_VERIFY_SIGNATURE and not midtrans.verify_signature(
        notification.order_id, notification.status_code, notification.gross_amount, notification.signature_key
    ):
        logger.warning("Rejected Midtrans notification for %s: bad signature", order_id)
        raise Unauthorized("Invalid notification signature")

    new_status, new_progress = map_transaction_status(notification.transaction_status)
    outcome: Dict[str, Any] = {"ignored": False}

    def decide(order: Order):
        outcome["ignored"] = False
        if order.status_progress != OrderProgress.APPROVED_AWAITING_PAYMENT:
            outcome["ignored"] = True
            return None
        values = {
            "midtrans_status": notification.transaction_status,
            "fraud_status": notification.fraud_status,
            "payment_type": notification.payment_type,
            "payment_status": notification.transaction_status,
        }
        if new_status is not None:
            values["status"] = new_status
        if new_progress is not None:
            values["status_progress"] = new_progress
        return values

    order = apply_transition(db, order_id, decide)

    if outcome["ignored"]:
        logger.info(
            "Midtrans notification %s for order %s ignored, order is %s",
            notification.transaction_status, order_id, order.status_progress.value,
        )
        message = "Notification ignored, order already past payment"
    else:
        logger.info(
            "Midtrans notification %s applied to order %s -> %s/%s",
            notification.transaction_status, order_id, order.status.value, order.status_progress.value,
        )
        message = "Order status updated"

    return {
        "order_id": order.id,
        "message": message,
        "ignored": outcome["ignored"],
        "status": order.status.value,
        "status_progress": order.status_progress.value,
    }
