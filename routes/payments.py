from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from schemas.payment import MidtransNotification, NotificationResult
from security.dependencies import Identity, get_identity
from services import midtrans
from services import orders as order_service
from services.payments import reconcile_notification

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/notification", response_model=NotificationResult)
def payment_notification(data: MidtransNotification, db: Session = Depends(get_db)):
    """Midtrans HTTP notification. No bearer token; unknown orders answer 404."""
    return reconcile_notification(db, data)


@router.get("/status/{order_id}")
def payment_status(order_id: str, identity: Identity = Depends(get_identity), db: Session = Depends(get_db)) -> Dict[str, Any]:
    order = order_service.get_order_for(db, order_id, buyer_id=identity.buyer_id, seller_id=identity.seller_id)
    return midtrans.get_status(order.id)
