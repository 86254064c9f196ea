"""
Shared fixtures. Uses an in-memory SQLite database per test and a dict-backed
redis stand-in, so no external services are needed.
"""
import os

# Set testing environment before importing app
os.environ["TESTING"] = "True"
os.environ["DEBUG"] = "False"
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")

import hashlib
import hmac
import json
import re
import time
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from core.db import Base, get_db
from core import config as core_config
from services import otp as otp_service
from services import sms as sms_service
from models.location import Location
from models.menu_category import MenuCategory
from models.menu_item import MenuItem
from models.user import User, UserRole
from security.password import hash_password
from security import jwt as jwt_utils

WEBHOOK_SECRET = "whsec_test_secret"


class FakeRedis:
    """Dict-backed stand-in for the handful of redis commands the app uses."""

    def __init__(self):
        self._store = {}
        self._exp = {}

    def _cleanup(self, key):
        exp = self._exp.get(key)
        if exp is not None and datetime.utcnow().timestamp() > exp:
            self._store.pop(key, None)
            self._exp.pop(key, None)

    def setex(self, key, ttl, value):
        self._store[key] = value
        self._exp[key] = datetime.utcnow().timestamp() + int(ttl)

    def get(self, key):
        self._cleanup(key)
        return self._store.get(key)

    def exists(self, key):
        self._cleanup(key)
        return 1 if key in self._store else 0

    def ttl(self, key):
        self._cleanup(key)
        if key not in self._store:
            return -2
        if key not in self._exp:
            return -1
        return max(int(self._exp[key] - datetime.utcnow().timestamp()), 0)

    def incr(self, key):
        self._cleanup(key)
        self._store[key] = int(self._store.get(key, 0)) + 1
        return self._store[key]

    def expire(self, key, ttl):
        if key in self._store:
            self._exp[key] = datetime.utcnow().timestamp() + int(ttl)
        return True

    def delete(self, key):
        self._store.pop(key, None)
        self._exp.pop(key, None)


@pytest.fixture(scope="session", autouse=True)
def test_settings():
    core_config.settings.OTP_TTL_SECONDS = 300
    core_config.settings.OTP_RESEND_INTERVAL_SECONDS = 0
    core_config.settings.JWT_SECRET = "test-secret"
    core_config.settings.REFRESH_SECRET = "test-refresh"
    core_config.settings.STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    core_config.settings.FRONTEND_URL = "http://frontend.test"
    core_config.settings.STRICT_ORDER_TOTALS = False
    core_config.settings.TESTING = True
    yield


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr(otp_service, "redis_client", client)
    return client


@pytest.fixture(autouse=True)
def sent_sms(monkeypatch):
    sent = []

    def _fake_send(to_phone: str, body: str) -> None:
        sent.append({"to": to_phone, "body": body})

    monkeypatch.setattr(sms_service, "send_sms", _fake_send)
    return sent


def otp_from(sent, phone):
    """Pull the most recent 6-digit code sent to a phone number."""
    for message in reversed(sent):
        if message["to"] == phone:
            return re.search(r"\b(\d{6})\b", message["body"]).group(1)
    raise AssertionError(f"No SMS sent to {phone}")


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


@pytest.fixture()
def db(db_session_override):
    return db_session_override


@pytest.fixture()
def client(db_session_override):
    with TestClient(app) as c:
        yield c


def _add(db, obj):
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@pytest.fixture
def location(db):
    return _add(db, Location(name="Main Branch", address="123 Main Street", city="Kathmandu"))


@pytest.fixture
def other_location(db):
    return _add(db, Location(name="Airport Branch", address="Tribhuvan Airport", city="Kathmandu"))


@pytest.fixture
def category(db):
    return _add(db, MenuCategory(name="MOMO", description="Dumplings"))


@pytest.fixture
def menu_item(db, category):
    return _add(db, MenuItem(name="Chicken Momo", price=Decimal("12.50"), category_id=category.id))


@pytest.fixture
def second_menu_item(db, category):
    return _add(db, MenuItem(name="Veg Momo", price=Decimal("8.00"), category_id=category.id))


@pytest.fixture
def customer(db):
    return _add(db, User(name="Asha Customer", phone_number="+9779800000001", role=UserRole.CUSTOMER.value))


@pytest.fixture
def other_customer(db):
    return _add(db, User(name="Bikash Customer", phone_number="+9779800000002", role=UserRole.CUSTOMER.value))


@pytest.fixture
def staff(db, location):
    return _add(
        db,
        User(
            name="Sita Staff",
            email="staff@example.com",
            password_hash=hash_password("Staff123"),
            role=UserRole.STAFF.value,
            location_id=location.id,
        ),
    )


@pytest.fixture
def admin(db):
    return _add(
        db,
        User(
            name="Ram Admin",
            email="admin@example.com",
            password_hash=hash_password("Admin123"),
            role=UserRole.ADMIN.value,
        ),
    )


def headers_for(user):
    return {"Authorization": f"Bearer {jwt_utils.create_access_token(user)}"}


@pytest.fixture
def customer_headers(customer):
    return headers_for(customer)


@pytest.fixture
def staff_headers(staff):
    return headers_for(staff)


@pytest.fixture
def admin_headers(admin):
    return headers_for(admin)


def stripe_signature(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the same way Stripe signs deliveries."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def checkout_completed_event(order_id, user_id, session_id="cs_test_123", amount_total=2500, payment_status="paid"):
    return {
        "id": f"evt_{session_id}",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "amount_total": amount_total,
                "currency": "usd",
                "payment_intent": f"pi_{session_id}",
                "payment_status": payment_status,
                "metadata": {"orderId": order_id, "userId": user_id, "locationId": "", "tableNumber": ""},
            }
        },
    }


def post_webhook(client, event, secret: str = WEBHOOK_SECRET):
    payload = json.dumps(event)
    return client.post(
        "/stripe/webhook",
        content=payload,
        headers={"Stripe-Signature": stripe_signature(payload, secret), "Content-Type": "application/json"},
    )


@pytest.fixture
def auth_headers_for():
    return headers_for


@pytest.fixture
def read_otp(sent_sms):
    return lambda phone: otp_from(sent_sms, phone)


@pytest.fixture
def completed_event():
    return checkout_completed_event


@pytest.fixture
def send_webhook(client):
    return lambda event, secret=WEBHOOK_SECRET: post_webhook(client, event, secret)


@pytest.fixture
def sign_payload():
    return stripe_signature
