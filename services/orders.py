import logging
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import Conflict, Forbidden, InvalidOperation, NotFound, ValidationError
from models.order import (
    Order,
    OrderProgress,
    OrderType,
    PaymentSignal,
    PAYMENT_NOT_REQUIRED,
    PAYMENT_PENDING,
    PROGRESS_RANK,
    TERMINAL_PROGRESS,
)
from models.user import Buyer, Seller
from schemas.order import OrderCreate
from services import email as email_service
from services import midtrans
from services.order_store import apply_transition, load_order
from services.pricing import distance_between, items_total

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Rejected by seller"


def create_order(db: Session, buyer: Buyer, data: OrderCreate) -> Order:
    if not data.seller_id or not data.items or data.total_amount is None:
        raise ValidationError("Seller ID, items, and total amount are required")
    if data.total_amount < 0:
        raise ValidationError("Total amount must not be negative")

    seller = db.get(Seller, data.seller_id)
    if not seller:
        raise NotFound("Seller not found")

    items = [item.model_dump(exclude_none=True) for item in data.items]
    computed = items_total(items, data.pax, per_pax=data.order_type == OrderType.CATERING)
    total = Decimal(str(data.total_amount))
    if computed != total:
        # totalAmount from the buyer stays authoritative
        logger.warning("Order for seller %s: totalAmount %s differs from items total %s", seller.id, total, computed)

    free = data.order_type == OrderType.BITE_ECO or total == 0
    order = Order(
        buyer_id=buyer.id,
        buyer_name=buyer.name,
        buyer_email=buyer.email,
        buyer_phone=buyer.phone,
        seller_id=seller.id,
        seller_name=seller.name,
        seller_address=seller.address,
        seller_phone=seller.phone,
        seller_latitude=seller.latitude,
        seller_longitude=seller.longitude,
        delivery_address=data.delivery_address,
        buyer_latitude=data.buyer_lat,
        buyer_longitude=data.buyer_lng,
        distance_km=distance_between(data.buyer_lat, data.buyer_lng, seller.latitude, seller.longitude),
        notes=data.notes,
        items=items,
        pax=data.pax,
        total_amount=total,
        items_total=computed,
        order_type=data.order_type,
        package_type=data.package_type,
        start_date=data.start_date,
        end_date=data.end_date,
        status=PaymentSignal.PENDING,
        status_progress=OrderProgress.AWAITING_SELLER_APPROVAL,
        payment_status=PAYMENT_NOT_REQUIRED if free else PAYMENT_PENDING,
        daily_delivery_logs=[],
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Order %s created by buyer %s for seller %s (%s)", order.id, buyer.id, seller.id, order.order_type.value)
    return order


def get_order_for(db: Session, order_id: str, buyer_id: str | None = None, seller_id: str | None = None) -> Order:
    """Load an order the caller is a party to."""
    order = load_order(db, order_id)
    if buyer_id is not None and order.buyer_id == buyer_id:
        return order
    if seller_id is not None and order.seller_id == seller_id:
        return order
    raise Forbidden("Order does not belong to you")


def _awaiting_approval_guard(order: Order, seller_id: str) -> None:
    if order.seller_id != seller_id:
        raise Forbidden("You can only manage your own orders")
    if order.status_progress != OrderProgress.AWAITING_SELLER_APPROVAL:
        raise Conflict("Order is not awaiting seller approval")


def _lease_is_live(order: Order, now: datetime) -> bool:
    if order.payment_claimed_at is None:
        return False
    return now - order.payment_claimed_at < timedelta(seconds=settings.APPROVAL_LEASE_SECONDS)


def reject_order(db: Session, seller_id: str, order_id: str, reason: str | None = None) -> Order:
    def decide(order: Order):
        _awaiting_approval_guard(order, seller_id)
        if _lease_is_live(order, datetime.utcnow()):
            raise Conflict("Order approval is already in progress")
        return {
            "status": PaymentSignal.CANCELLED,
            "status_progress": OrderProgress.CANCELLED,
            "rejection_reason": (reason or "").strip() or DEFAULT_REJECTION_REASON,
        }

    order = apply_transition(db, order_id, decide)
    logger.info("Order %s rejected by seller %s", order.id, seller_id)
    email_service.notify_order_rejected(order)
    return order


def approve_order(db: Session, seller_id: str, order_id: str) -> Order:
    """Approve an order: free orders go straight to processing, paid ones get a Snap session.

    The paid path claims a short lease before calling the gateway so that two
    concurrent approvals cannot both open a payment session. No database
    transaction is held while the gateway call is in flight.
    """
    order = load_order(db, order_id)
    free = order.is_free or order.payment_status == PAYMENT_NOT_REQUIRED
    db.rollback()

    if free:
        def approve_free(current: Order):
            _awaiting_approval_guard(current, seller_id)
            return {
                "status": PaymentSignal.PROCESSING,
                "status_progress": OrderProgress.PROCESSING,
                "payment_status": PAYMENT_NOT_REQUIRED,
                "approved_at": datetime.utcnow(),
            }

        order = apply_transition(db, order_id, approve_free)
        logger.info("Free order %s approved by seller %s, no payment required", order.id, seller_id)
        email_service.notify_order_approved(order)
        return order

    claimed_at = datetime.utcnow()

    def claim(current: Order):
        _awaiting_approval_guard(current, seller_id)
        if _lease_is_live(current, claimed_at):
            raise Conflict("Order approval is already in progress")
        return {"payment_claimed_at": claimed_at}

    order = apply_transition(db, order_id, claim)
    amount = float(order.total_amount)
    customer = {"name": order.buyer_name, "email": order.buyer_email, "phone": order.buyer_phone}
    # No transaction stays open across the gateway call
    db.rollback()

    try:
        session = midtrans.create_session(order_id, amount, customer)
    except Exception:
        logger.exception("Payment session for order %s could not be created", order_id)
        _release_claim(db, order_id, claimed_at)
        raise

    def attach_session(current: Order):
        if current.payment_claimed_at != claimed_at:
            raise Conflict("Order approval lease was lost")
        _awaiting_approval_guard(current, seller_id)
        if current.snap_token:
            raise Conflict("Payment session already exists for this order")
        return {
            "status_progress": OrderProgress.APPROVED_AWAITING_PAYMENT,
            "snap_token": session["token"],
            "snap_url": session["redirect_url"],
            "payment_claimed_at": None,
            "approved_at": datetime.utcnow(),
        }

    order = apply_transition(db, order_id, attach_session)
    logger.info("Order %s approved by seller %s, awaiting payment", order.id, seller_id)
    email_service.notify_order_approved(order)
    return order


def _release_claim(db: Session, order_id: str, claimed_at: datetime) -> None:
    def release(current: Order):
        if current.payment_claimed_at != claimed_at:
            return None
        return {"payment_claimed_at": None}

    try:
        apply_transition(db, order_id, release)
    except Exception:
        # The lease expires on its own after APPROVAL_LEASE_SECONDS
        logger.exception("Could not release approval lease on order %s", order_id)


def update_progress(db: Session, seller_id: str, order_id: str, target: OrderProgress) -> Order:
    """Seller-driven forward move for one-shot orders (processing -> delivery -> completed)."""

    def decide(order: Order):
        if order.seller_id != seller_id:
            raise Forbidden("You can only manage your own orders")
        if order.is_recurring:
            raise InvalidOperation("Recurring Rantangan orders are completed through daily deliveries")
        current = order.status_progress
        if current in TERMINAL_PROGRESS:
            raise Conflict(f"Order is already {current.value}")
        if current not in (OrderProgress.PROCESSING, OrderProgress.DELIVERY):
            raise Conflict("Order has not been approved and paid yet")
        if target not in (OrderProgress.DELIVERY, OrderProgress.COMPLETED):
            raise Conflict(f"Cannot move order from {current.value} to {target.value}")
        if PROGRESS_RANK[target] < PROGRESS_RANK[current]:
            raise Conflict(f"Cannot move order from {current.value} back to {target.value}")
        if target == current:
            return None
        return {"status_progress": target}

    order = apply_transition(db, order_id, decide)
    logger.info("Order %s moved to %s by seller %s", order.id, order.status_progress.value, seller_id)
    return order


def payment_summary(order: Order) -> dict:
    summary = {
        "order_id": order.id,
        "status": order.status,
        "status_progress": order.status_progress,
        "payment_status": order.payment_status,
        "total_amount": float(order.total_amount),
        "order_type": order.order_type,
        "approved_at": order.approved_at,
        "rejection_reason": order.rejection_reason,
    }
    if order.status_progress == OrderProgress.APPROVED_AWAITING_PAYMENT and order.snap_url:
        summary.update(
            payment_required=True,
            snap_url=order.snap_url,
            snap_token=order.snap_token,
            message="Order approved by seller. Please complete payment.",
        )
    elif order.status_progress == OrderProgress.CANCELLED and order.rejection_reason:
        summary["message"] = f"Order rejected: {order.rejection_reason}"
    elif order.status_progress == OrderProgress.AWAITING_SELLER_APPROVAL:
        summary["message"] = "Order is awaiting seller approval."
    elif order.payment_status == PAYMENT_NOT_REQUIRED:
        summary.update(payment_required=False, message="Order approved. No payment required.")
    else:
        summary["message"] = "Order status updated."
    return summary
