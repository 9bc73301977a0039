import enum
import uuid
from datetime import date, datetime

from sqlalchemy import String, DateTime, Date, Enum, Float, Integer, JSON, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base


class OrderType(str, enum.Enum):
    CATERING = "Catering"
    RANTANGAN = "Rantangan"
    BITE_ECO = "BiteEco"


class PackageType(str, enum.Enum):
    HARIAN = "Harian"
    MINGGUAN = "Mingguan"
    BULANAN = "Bulanan"


RECURRING_PACKAGES = {PackageType.MINGGUAN, PackageType.BULANAN}


class OrderProgress(str, enum.Enum):
    """Domain state of an order, the value buyers and sellers act on."""

    AWAITING_SELLER_APPROVAL = "awaiting_seller_approval"
    APPROVED_AWAITING_PAYMENT = "approved_awaiting_payment"
    PROCESSING = "processing"
    DELIVERY = "delivery"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_PROGRESS = {OrderProgress.COMPLETED, OrderProgress.CANCELLED}

# Forward order of the progress values; cancelled sits outside the ladder
PROGRESS_RANK = {
    OrderProgress.AWAITING_SELLER_APPROVAL: 0,
    OrderProgress.APPROVED_AWAITING_PAYMENT: 1,
    OrderProgress.PROCESSING: 2,
    OrderProgress.DELIVERY: 3,
    OrderProgress.COMPLETED: 4,
}


class PaymentSignal(str, enum.Enum):
    """Raw payment/delivery signal mirrored from the gateway or a seller action."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
    # Gateway vocabulary stored as-is
    AUTHORIZE = "authorize"
    REFUND = "refund"
    PARTIAL_REFUND = "partial_refund"
    CHARGEBACK = "chargeback"
    PARTIAL_CHARGEBACK = "partial_chargeback"


PAYMENT_NOT_REQUIRED = "not_required"
PAYMENT_PENDING = "pending"


def _new_id() -> str:
    return uuid.uuid4().hex


class Order(Base):
    __tablename__ = "orders"

    # Also sent to Midtrans as transaction_details.order_id
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    buyer_id: Mapped[str] = mapped_column(String(64), index=True)
    seller_id: Mapped[str] = mapped_column(String(64), index=True)

    # Snapshots taken at creation time
    buyer_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    buyer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    buyer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    seller_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    seller_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    seller_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    seller_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    seller_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    delivery_address: Mapped[str] = mapped_column(Text, default="")
    buyer_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    buyer_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    distance_km: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="")

    items: Mapped[list] = mapped_column(JSON, default=list)
    pax: Mapped[int] = mapped_column(Integer, default=1)
    total_amount: Mapped[float] = mapped_column(Numeric(14, 2))
    items_total: Mapped[float | None] = mapped_column(Numeric(14, 2), nullable=True)

    order_type: Mapped[OrderType] = mapped_column(Enum(OrderType, native_enum=False, length=20), default=OrderType.CATERING)
    package_type: Mapped[PackageType | None] = mapped_column(Enum(PackageType, native_enum=False, length=20), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[PaymentSignal] = mapped_column(
        Enum(PaymentSignal, native_enum=False, length=30), default=PaymentSignal.PENDING
    )
    status_progress: Mapped[OrderProgress] = mapped_column(
        Enum(OrderProgress, native_enum=False, length=40), default=OrderProgress.AWAITING_SELLER_APPROVAL, index=True
    )
    payment_status: Mapped[str] = mapped_column(String(40), default=PAYMENT_PENDING)
    midtrans_status: Mapped[str | None] = mapped_column(String(40), nullable=True)
    fraud_status: Mapped[str | None] = mapped_column(String(40), nullable=True)
    payment_type: Mapped[str | None] = mapped_column(String(60), nullable=True)

    snap_token: Mapped[str | None] = mapped_column(String(255), nullable=True)
    snap_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    payment_claimed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    daily_delivery_logs: Mapped[list] = mapped_column(JSON, default=list)
    ulasan: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Bumped by every conditional update in services.order_store
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    @property
    def is_free(self) -> bool:
        return self.order_type == OrderType.BITE_ECO or float(self.total_amount or 0) == 0

    @property
    def is_recurring(self) -> bool:
        return self.order_type == OrderType.RANTANGAN and self.package_type in RECURRING_PACKAGES
