import pytest
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from core.db import Base
from models.order import Order, OrderProgress, OrderType, PackageType, PaymentSignal
from models.review import Review
from models.user import Buyer, Seller


@pytest.fixture
def db_session():
    """Create a test database session"""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


def new_order(**overrides):
    fields = dict(buyer_id="B1", seller_id="S1", items=[{"price": 10000}], total_amount=Decimal("10000"))
    fields.update(overrides)
    return Order(**fields)


class TestOrder:
    """Test cases for Order model"""

    def test_order_defaults(self, db_session):
        """A fresh order waits for the seller"""
        order = new_order()
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)

        assert len(order.id) == 32
        assert order.order_type == OrderType.CATERING
        assert order.status == PaymentSignal.PENDING
        assert order.status_progress == OrderProgress.AWAITING_SELLER_APPROVAL
        assert order.payment_status == "pending"
        assert order.version == 1
        assert order.daily_delivery_logs == []
        assert order.ulasan is None
        assert isinstance(order.created_at, datetime)

    def test_enum_values_stored_as_strings(self, db_session):
        order = new_order(order_type=OrderType.RANTANGAN, package_type=PackageType.BULANAN,
                          start_date=date(2024, 1, 1), end_date=date(2024, 1, 30))
        db_session.add(order)
        db_session.commit()
        db_session.expire_all()

        stored = db_session.get(Order, order.id)
        assert stored.package_type is PackageType.BULANAN
        assert stored.start_date == date(2024, 1, 1)

    @pytest.mark.parametrize(
        "order_type,total,expected",
        [
            (OrderType.BITE_ECO, Decimal("0"), True),
            (OrderType.BITE_ECO, Decimal("5000"), True),
            (OrderType.CATERING, Decimal("0"), True),
            (OrderType.CATERING, Decimal("10000"), False),
        ],
    )
    def test_is_free(self, order_type, total, expected):
        assert new_order(order_type=order_type, total_amount=total).is_free is expected

    @pytest.mark.parametrize(
        "order_type,package,expected",
        [
            (OrderType.RANTANGAN, PackageType.MINGGUAN, True),
            (OrderType.RANTANGAN, PackageType.BULANAN, True),
            (OrderType.RANTANGAN, PackageType.HARIAN, False),
            (OrderType.RANTANGAN, None, False),
            (OrderType.CATERING, None, False),
        ],
    )
    def test_is_recurring(self, order_type, package, expected):
        assert new_order(order_type=order_type, package_type=package).is_recurring is expected


class TestSeller:
    def test_rating_defaults(self, db_session):
        seller = Seller(id="S1", name="Dapur Bu Sri", email="sri@example.com")
        db_session.add(seller)
        db_session.commit()
        db_session.refresh(seller)

        assert seller.rating == 0.0
        assert seller.rating_count == 0
        assert seller.latitude is None

    def test_email_unique(self, db_session):
        db_session.add(Buyer(name="A", email="same@example.com"))
        db_session.add(Buyer(name="B", email="same@example.com"))
        with pytest.raises(IntegrityError):
            db_session.commit()


class TestReview:
    def test_one_review_per_order(self, db_session):
        order = new_order()
        db_session.add(order)
        db_session.commit()

        db_session.add(Review(order_id=order.id, buyer_id="B1", seller_id="S1", rating=5, review="Enak"))
        db_session.commit()
        db_session.add(Review(order_id=order.id, buyer_id="B1", seller_id="S1", rating=1, review="Lagi"))
        with pytest.raises(IntegrityError):
            db_session.commit()
