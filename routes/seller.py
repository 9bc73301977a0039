from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from models.user import Seller
from schemas.order import ApprovalRequest, ApprovalResponse
from security.dependencies import get_current_seller
from services import orders as order_service

router = APIRouter(prefix="/seller", tags=["seller"])


@router.post("/orders/approve", response_model=ApprovalResponse)
def approve_or_reject(data: ApprovalRequest, seller: Seller = Depends(get_current_seller), db: Session = Depends(get_db)):
    if data.action == "reject":
        order = order_service.reject_order(db, seller.id, data.order_id, data.rejection_reason)
        return {
            "order_id": order.id,
            "message": "Order rejected successfully",
            "status_progress": order.status_progress,
        }

    order = order_service.approve_order(db, seller.id, data.order_id)
    if order.snap_url:
        return {
            "order_id": order.id,
            "message": "Order approved successfully. Payment link generated.",
            "status_progress": order.status_progress,
            "payment_required": True,
            "snap_url": order.snap_url,
            "snap_token": order.snap_token,
        }
    return {
        "order_id": order.id,
        "message": "Order approved successfully",
        "status_progress": order.status_progress,
        "payment_required": False,
    }
