from pydantic import BaseModel
from typing import Optional


class MidtransNotification(BaseModel):
    """Payload POSTed by Midtrans to the notification URL (snake_case on the wire)."""

    order_id: str
    transaction_status: str
    fraud_status: Optional[str] = None
    payment_type: Optional[str] = None
    status_code: Optional[str] = None
    gross_amount: Optional[str] = None
    signature_key: Optional[str] = None

    class Config:
        extra = "allow"


class NotificationResult(BaseModel):
    order_id: str
    message: str
    ignored: bool = False
    status: Optional[str] = None
    status_progress: Optional[str] = None
