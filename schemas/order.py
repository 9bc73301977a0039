from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from models.order import OrderProgress, OrderType, PackageType, PaymentSignal


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class OrderItemIn(CamelModel):
    id: Optional[str] = None
    name: Optional[str] = None
    price: float = Field(ge=0)
    quantity: int = Field(default=1, ge=1)


class OrderCreate(CamelModel):
    seller_id: str = Field(min_length=1)
    items: List[OrderItemIn] = Field(min_length=1)
    total_amount: float = Field(ge=0)
    pax: int = Field(default=1, ge=1)
    order_type: OrderType = OrderType.CATERING
    package_type: Optional[PackageType] = None
    delivery_address: str = ""
    notes: str = ""
    buyer_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    buyer_lng: Optional[float] = Field(default=None, ge=-180, le=180)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("order_type", mode="before")
    @classmethod
    def normalize_order_type(cls, v):
        # Older clients send "Bite Eco"
        if isinstance(v, str) and v.replace(" ", "").lower() == "biteeco":
            return OrderType.BITE_ECO
        return v

    @model_validator(mode="after")
    def check_package(self):
        if self.package_type is not None and self.order_type != OrderType.RANTANGAN:
            raise ValueError("packageType is only valid for Rantangan orders")
        if self.order_type == OrderType.RANTANGAN and self.package_type in (PackageType.MINGGUAN, PackageType.BULANAN):
            if not self.start_date or not self.end_date:
                raise ValueError("startDate and endDate are required for recurring Rantangan orders")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class DeliveryLogIn(CamelModel):
    delivery_date: date
    delivery_time: Optional[str] = None


class OrderPatch(CamelModel):
    status_progress: Optional[OrderProgress] = None
    delivery_log: Optional[DeliveryLogIn] = None

    @model_validator(mode="after")
    def check_not_empty(self):
        if self.status_progress is None and self.delivery_log is None:
            raise ValueError("statusProgress or deliveryLog is required")
        return self


class OrderOut(CamelModel):
    id: str
    buyer_id: str
    seller_id: str
    buyer_name: Optional[str] = None
    buyer_email: Optional[str] = None
    buyer_phone: Optional[str] = None
    seller_name: Optional[str] = None
    seller_address: Optional[str] = None
    seller_phone: Optional[str] = None
    seller_latitude: Optional[float] = None
    seller_longitude: Optional[float] = None
    delivery_address: str
    distance_km: Optional[float] = None
    notes: str = ""
    items: List[Dict[str, Any]]
    pax: int
    total_amount: float
    items_total: Optional[float] = None
    order_type: OrderType
    package_type: Optional[PackageType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: PaymentSignal
    status_progress: OrderProgress
    payment_status: str
    midtrans_status: Optional[str] = None
    fraud_status: Optional[str] = None
    payment_type: Optional[str] = None
    snap_token: Optional[str] = None
    snap_url: Optional[str] = None
    rejection_reason: Optional[str] = None
    daily_delivery_logs: List[Dict[str, Any]] = []
    ulasan: Optional[Dict[str, Any]] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class OrderCreated(CamelModel):
    order_id: str
    order: OrderOut


class ApprovalRequest(CamelModel):
    order_id: str = Field(min_length=1)
    action: Literal["approve", "reject"]
    rejection_reason: Optional[str] = None


class ApprovalResponse(CamelModel):
    order_id: str
    message: str
    status_progress: OrderProgress
    payment_required: Optional[bool] = None
    snap_url: Optional[str] = None
    snap_token: Optional[str] = None


class PaymentSummary(CamelModel):
    order_id: str
    status: PaymentSignal
    status_progress: OrderProgress
    payment_status: str
    total_amount: float
    order_type: OrderType
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    payment_required: Optional[bool] = None
    snap_url: Optional[str] = None
    snap_token: Optional[str] = None
    message: str


class DeliverySummary(CamelModel):
    order_type: Optional[OrderType] = None
    package_type: Optional[PackageType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status_progress: Optional[OrderProgress] = None
    total_days: int
    completed_days: int
    days_remaining: int
    is_fully_completed: bool


class DailyDeliveryResult(CamelModel):
    new_status: OrderProgress
    delivery_log: Dict[str, Any]
    daily_delivery_logs: List[Dict[str, Any]]
    summary: DeliverySummary


class DeliveryLogsOut(CamelModel):
    daily_delivery_logs: List[Dict[str, Any]]
    summary: DeliverySummary
