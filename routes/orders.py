from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.db import get_db
from core.exceptions import Forbidden, ValidationError
from models.user import Buyer, Seller
from schemas.order import (
    DailyDeliveryResult,
    DeliveryLogIn,
    DeliveryLogsOut,
    OrderCreate,
    OrderCreated,
    OrderOut,
    OrderPatch,
    PaymentSummary,
)
from security.dependencies import Identity, get_current_buyer, get_current_seller, get_identity
from services import delivery as delivery_service
from services import orders as order_service
from services.order_store import list_orders as query_orders

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderCreated, status_code=201)
def create_order(data: OrderCreate, buyer: Buyer = Depends(get_current_buyer), db: Session = Depends(get_db)):
    order = order_service.create_order(db, buyer, data)
    return {"order_id": order.id, "order": order}


@router.get("", response_model=List[OrderOut])
def list_orders(
    buyer_id: Optional[str] = Query(default=None, alias="buyerId"),
    seller_id: Optional[str] = Query(default=None, alias="sellerId"),
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    if buyer_id is None and seller_id is None:
        raise ValidationError("buyerId or sellerId is required")
    if buyer_id is not None and buyer_id != identity.buyer_id:
        raise Forbidden("You can only list your own orders")
    if seller_id is not None and seller_id != identity.seller_id:
        raise Forbidden("You can only list your own orders")
    return query_orders(db, buyer_id=buyer_id, seller_id=seller_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return order_service.get_order_for(db, order_id, buyer_id=identity.buyer_id, seller_id=identity.seller_id)


@router.get("/{order_id}/payment", response_model=PaymentSummary)
def get_payment_summary(order_id: str, buyer: Buyer = Depends(get_current_buyer), db: Session = Depends(get_db)):
    order = order_service.get_order_for(db, order_id, buyer_id=buyer.id)
    return order_service.payment_summary(order)


@router.patch("/{order_id}", response_model=OrderOut)
def patch_order(
    order_id: str,
    data: OrderPatch,
    seller: Seller = Depends(get_current_seller),
    db: Session = Depends(get_db),
):
    if data.delivery_log is not None:
        delivery_service.complete_daily_delivery(
            db, seller.id, order_id, data.delivery_log.delivery_date, data.delivery_log.delivery_time
        )
    if data.status_progress is not None:
        return order_service.update_progress(db, seller.id, order_id, data.status_progress)
    return order_service.get_order_for(db, order_id, seller_id=seller.id)


@router.post("/{order_id}/complete-daily-delivery", response_model=DailyDeliveryResult)
def complete_daily_delivery(
    order_id: str,
    data: DeliveryLogIn,
    seller: Seller = Depends(get_current_seller),
    db: Session = Depends(get_db),
):
    return delivery_service.complete_daily_delivery(db, seller.id, order_id, data.delivery_date, data.delivery_time)


@router.get("/{order_id}/delivery-logs", response_model=DeliveryLogsOut)
def get_delivery_logs(order_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    order = order_service.get_order_for(db, order_id, buyer_id=identity.buyer_id, seller_id=identity.seller_id)
    return {
        "daily_delivery_logs": order.daily_delivery_logs or [],
        "summary": delivery_service.build_summary(order),
    }
