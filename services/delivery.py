import logging
from datetime import date, datetime
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from core.exceptions import Conflict, Forbidden, InvalidOperation, ValidationError
from models.order import Order, OrderProgress
from services.order_store import apply_transition

logger = logging.getLogger(__name__)


def total_days(start: date, end: date) -> int:
    """Inclusive number of delivery days between start and end."""
    return (end - start).days + 1


def days_remaining(end: date, today: date | None = None) -> int:
    today = today or date.today()
    return max(0, (end - today).days)


def upsert_log(logs: List[Dict[str, Any]], entry: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Return a new log list with ``entry`` replacing any entry for the same date."""
    updated = [dict(log) for log in logs or []]
    for index, log in enumerate(updated):
        if log.get("deliveryDate") == entry["deliveryDate"]:
            updated[index] = entry
            return updated
    updated.append(entry)
    return updated


def build_summary(order: Order, logs: List[Dict[str, Any]] | None = None, today: date | None = None) -> Dict[str, Any]:
    logs = order.daily_delivery_logs if logs is None else logs
    if order.start_date and order.end_date:
        total = total_days(order.start_date, order.end_date)
        remaining = days_remaining(order.end_date, today)
    else:
        total, remaining = 1, 0
    return {
        "order_type": order.order_type,
        "package_type": order.package_type,
        "start_date": order.start_date,
        "end_date": order.end_date,
        "status_progress": order.status_progress,
        "total_days": total,
        "completed_days": len(logs or []),
        "days_remaining": remaining,
        "is_fully_completed": order.status_progress == OrderProgress.COMPLETED,
    }


def complete_daily_delivery(
    db: Session,
    seller_id: str,
    order_id: str,
    delivery_date: date,
    delivery_time: str | None = None,
    today: date | None = None,
) -> Dict[str, Any]:
    """Record one day's delivery of a recurring Rantangan order.

    Re-recording a date replaces that day's entry, so the count of completed
    days only grows with distinct dates. The order completes once every day
    of its range has an entry; otherwise it cycles back to ``processing``.
    """
    completed_at = datetime.utcnow().isoformat()
    entry = {
        "deliveryDate": delivery_date.isoformat(),
        "deliveryTime": delivery_time or completed_at,
        "completedTime": completed_at,
    }
    result: Dict[str, Any] = {}

    def decide(order: Order):
        if order.seller_id != seller_id:
            raise Forbidden("You can only manage your own orders")
        if not order.is_recurring:
            raise InvalidOperation("This endpoint is only for recurring Rantangan orders")
        if order.status_progress not in (OrderProgress.PROCESSING, OrderProgress.DELIVERY):
            raise Conflict(f"Cannot record a delivery while order is {order.status_progress.value}")
        if not (order.start_date <= delivery_date <= order.end_date):
            raise ValidationError("deliveryDate is outside the order's delivery period")

        logs = upsert_log(order.daily_delivery_logs, entry)
        required = total_days(order.start_date, order.end_date)
        new_progress = OrderProgress.COMPLETED if len(logs) >= required else OrderProgress.PROCESSING
        result["logs"] = logs
        return {"daily_delivery_logs": logs, "status_progress": new_progress}

    order = apply_transition(db, order_id, decide)
    logger.info(
        "Order %s delivery for %s recorded (%d/%d days), now %s",
        order.id, entry["deliveryDate"], len(result["logs"]), total_days(order.start_date, order.end_date),
        order.status_progress.value,
    )
    return {
        "new_status": order.status_progress,
        "delivery_log": entry,
        "daily_delivery_logs": order.daily_delivery_logs,
        "summary": build_summary(order, today=today),
    }
