"""Conditional writes against order records.

Every state change goes through :func:`apply_transition`: the order is read,
a decision function inspects it and returns the fields to write, and the write
only lands if the row's ``version`` is still the one that was read. A lost race
re-reads the order and asks the decision function again, so guards such as
"still awaiting seller approval" are re-checked against the newer state.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import Conflict, NotFound
from models.order import Order

logger = logging.getLogger(__name__)

Decision = Callable[[Order], Optional[Dict[str, Any]]]


def load_order(db: Session, order_id: str) -> Order:
    order = db.get(Order, order_id, populate_existing=True)
    if not order:
        raise NotFound("Order not found")
    return order


def list_orders(db: Session, buyer_id: str | None = None, seller_id: str | None = None) -> list[Order]:
    stmt = select(Order)
    if buyer_id is not None:
        stmt = stmt.where(Order.buyer_id == buyer_id)
    if seller_id is not None:
        stmt = stmt.where(Order.seller_id == seller_id)
    stmt = stmt.order_by(Order.created_at.desc())
    return list(db.scalars(stmt))


def conditional_update(db: Session, order: Order, values: Dict[str, Any]) -> bool:
    """Write ``values`` only if the row still has ``order.version``. Commits on success."""
    stmt = (
        update(Order)
        .where(Order.id == order.id, Order.version == order.version)
        .values(**values, version=order.version + 1, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount != 1:
        db.rollback()
        return False
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return True


def apply_transition(db: Session, order_id: str, decide: Decision) -> Order:
    """Run ``decide`` against the current order and persist its result atomically.

    ``decide`` returns the column values to write, or ``None`` when there is
    nothing to change. It raises an ``OrderError`` to refuse the transition.
    Objects it adds to the session are committed together with the update and
    discarded if the update loses a race.
    """
    attempts = max(1, settings.ORDER_UPDATE_RETRIES)
    for attempt in range(1, attempts + 1):
        order = load_order(db, order_id)
        try:
            values = decide(order)
        except Exception:
            db.rollback()
            raise
        if values is None:
            db.rollback()
            return order
        if conditional_update(db, order, values):
            return load_order(db, order_id)
        logger.info("Order %s changed concurrently, retrying (attempt %d/%d)", order_id, attempt, attempts)
    raise Conflict("Order was modified concurrently, please retry")
