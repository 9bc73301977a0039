from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from core.db import Base, get_db
from core import config as core_config
from core.exceptions import GatewayError
from models.order import Order, OrderProgress, OrderType, PackageType, PaymentSignal
from models.user import Buyer, Seller
from services import email as email_service
from services import midtrans
from security import jwt as jwt_utils
from security.jwt import BUYER_ROLE, SELLER_ROLE


@pytest.fixture(scope="session", autouse=True)
def test_settings():
    core_config.settings.JWT_SECRET = "test-secret"
    core_config.settings.MIDTRANS_MODE = "sandbox"
    core_config.settings.MIDTRANS_SANDBOX_SERVER_KEY = "SB-Mid-server-test"
    core_config.settings.MIDTRANS_VERIFY_SIGNATURE = False
    core_config.settings.ORDER_UPDATE_RETRIES = 3
    core_config.settings.APPROVAL_LEASE_SECONDS = 60
    core_config.settings.TESTING = True
    yield


@pytest.fixture()
def db_session_override():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    def _get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db
    try:
        yield db
    finally:
        db.close()
        app.dependency_overrides.clear()
        engine.dispose()


@pytest.fixture(autouse=True)
def mock_email_send(monkeypatch):
    sent = []

    def _fake_send(to_email: str, subject: str, body: str) -> None:
        sent.append({"to": to_email, "subject": subject, "body": body})

    monkeypatch.setattr(email_service, "send_email", _fake_send)
    return sent


class FakeGateway:
    """Stands in for the Midtrans client; records every session request."""

    def __init__(self):
        self.sessions = []
        self.status_calls = []
        self.fail_with = None
        self.on_create = None
        self.transaction_status = "pending"

    def create_session(self, order_id, amount, customer=None):
        self.sessions.append({"order_id": order_id, "amount": amount, "customer": customer})
        if self.on_create:
            self.on_create(order_id)
        if self.fail_with:
            raise self.fail_with
        n = len(self.sessions)
        return {"token": f"snap-token-{n}", "redirect_url": f"https://app.sandbox.midtrans.com/snap/v4/redirection/snap-token-{n}"}

    def get_status(self, order_id):
        self.status_calls.append(order_id)
        if self.fail_with:
            raise self.fail_with
        return {"order_id": order_id, "transaction_status": self.transaction_status, "status_code": "201"}


@pytest.fixture
def fake_gateway(monkeypatch):
    gateway = FakeGateway()
    monkeypatch.setattr(midtrans, "create_session", gateway.create_session)
    monkeypatch.setattr(midtrans, "get_status", gateway.get_status)
    return gateway


@pytest.fixture
def gateway_down(fake_gateway):
    fake_gateway.fail_with = GatewayError("Payment provider request failed: 503 Service Unavailable")
    return fake_gateway


@pytest.fixture
def client(db_session_override):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def seller(db_session_override):
    seller = Seller(
        id="S1",
        name="Dapur Bu Sri",
        email="sri@example.com",
        phone="081200000001",
        address="Jl. Kaliurang 5, Yogyakarta",
        latitude=-7.7956,
        longitude=110.3695,
    )
    db_session_override.add(seller)
    db_session_override.commit()
    return seller


@pytest.fixture
def other_seller(db_session_override):
    seller = Seller(id="S2", name="Warung Pak Budi", email="budi@example.com")
    db_session_override.add(seller)
    db_session_override.commit()
    return seller


@pytest.fixture
def buyer(db_session_override):
    buyer = Buyer(id="B1", name="Ayu", email="ayu@example.com", phone="081300000001")
    db_session_override.add(buyer)
    db_session_override.commit()
    return buyer


@pytest.fixture
def other_buyer(db_session_override):
    buyer = Buyer(id="B2", name="Dimas", email="dimas@example.com")
    db_session_override.add(buyer)
    db_session_override.commit()
    return buyer


def bearer(sub: str, role: str) -> dict:
    return {"Authorization": f"Bearer {jwt_utils.create_access_token(sub, role)}"}


@pytest.fixture
def buyer_headers(buyer):
    return bearer(buyer.id, BUYER_ROLE)


@pytest.fixture
def other_buyer_headers(other_buyer):
    return bearer(other_buyer.id, BUYER_ROLE)


@pytest.fixture
def seller_headers(seller):
    return bearer(seller.id, SELLER_ROLE)


@pytest.fixture
def other_seller_headers(other_seller):
    return bearer(other_seller.id, SELLER_ROLE)


@pytest.fixture
def make_order(db_session_override, buyer, seller):
    """Insert an order directly in a given state."""

    def _make(**overrides):
        fields = dict(
            buyer_id=buyer.id,
            buyer_name=buyer.name,
            buyer_email=buyer.email,
            buyer_phone=buyer.phone,
            seller_id=seller.id,
            seller_name=seller.name,
            delivery_address="Jl. Malioboro 1",
            items=[{"id": "m1", "name": "Nasi Box", "price": 10000, "quantity": 1}],
            pax=1,
            total_amount=Decimal("10000"),
            order_type=OrderType.CATERING,
            status=PaymentSignal.PENDING,
            status_progress=OrderProgress.AWAITING_SELLER_APPROVAL,
            payment_status="pending",
            daily_delivery_logs=[],
        )
        fields.update(overrides)
        order = Order(**fields)
        db_session_override.add(order)
        db_session_override.commit()
        return order

    return _make


@pytest.fixture
def weekly_order(make_order):
    return make_order(
        order_type=OrderType.RANTANGAN,
        package_type=PackageType.MINGGUAN,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 7),
        total_amount=Decimal("350000"),
        status=PaymentSignal.SUCCESS,
        status_progress=OrderProgress.PROCESSING,
        payment_status="settlement",
    )


def reload(db, order_id):
    return db.get(Order, order_id, populate_existing=True)


@pytest.fixture
def reload_order(db_session_override):
    def _reload(order_id):
        return reload(db_session_override, order_id)

    return _reload


@pytest.fixture
def token_for():
    """Build Authorization headers for an arbitrary subject and role."""
    return bearer
