import pytest
from datetime import datetime
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from core.db import Base
from models.location import Location
from models.menu_category import MenuCategory
from models.menu_item import MenuItem
from models.order import Order, OrderStatus
from models.order_item import OrderItem
from models.payment import Payment
from models.sale import Sale
from models.user import User, UserRole


@pytest.fixture
def db_session():
    """Create a test database session"""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def seeded(db_session):
    """A location, a category with one item, and a customer"""
    location = Location(name="Main Branch", address="123 Main Street", city="Kathmandu")
    category = MenuCategory(name="MOMO")
    db_session.add_all([location, category])
    db_session.flush()
    item = MenuItem(name="Chicken Momo", price=Decimal("12.50"), category_id=category.id)
    customer = User(name="Asha", phone_number="+9779800000001")
    db_session.add_all([item, customer])
    db_session.commit()
    return {"location": location, "category": category, "item": item, "customer": customer}


def _order(seeded, number="ORD-1-x"):
    return Order(
        user_id=seeded["customer"].id,
        location_id=seeded["location"].id,
        order_number=number,
        total_amount=Decimal("25.00"),
    )


class TestUser:
    """Test cases for User model"""

    def test_customer_defaults(self, db_session):
        """Customers have a phone number and no credentials"""
        user = User(name="Asha", phone_number="+9779800000001")
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)

        assert len(user.id) == 36
        assert user.role == UserRole.CUSTOMER.value
        assert user.email is None
        assert user.password_hash is None
        assert isinstance(user.created_at, datetime)

    def test_phone_number_unique(self, db_session):
        db_session.add(User(name="A", phone_number="+9779800000001"))
        db_session.commit()
        db_session.add(User(name="B", phone_number="+9779800000001"))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_email_unique(self, db_session):
        db_session.add(User(name="A", email="a@example.com", role=UserRole.STAFF.value))
        db_session.commit()
        db_session.add(User(name="B", email="a@example.com", role=UserRole.ADMIN.value))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_many_users_without_email(self, db_session):
        """NULL emails never collide"""
        db_session.add_all([User(name="A", phone_number="+1"), User(name="B", phone_number="+2")])
        db_session.commit()
        assert db_session.query(User).count() == 2


class TestOrder:
    """Test cases for Order and OrderItem models"""

    def test_order_defaults(self, db_session, seeded):
        order = _order(seeded)
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)

        assert order.status == OrderStatus.PENDING.value
        assert order.paid is False
        assert order.total_amount == Decimal("25.00")

    def test_order_number_unique(self, db_session, seeded):
        db_session.add(_order(seeded, "ORD-1-dup"))
        db_session.commit()
        db_session.add(_order(seeded, "ORD-1-dup"))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_items_deleted_with_order(self, db_session, seeded):
        order = _order(seeded)
        order.items.append(
            OrderItem(menu_item_id=seeded["item"].id, price=Decimal("12.50"), quantity=2, total=Decimal("25.00"))
        )
        db_session.add(order)
        db_session.commit()

        db_session.delete(order)
        db_session.commit()
        assert db_session.query(OrderItem).count() == 0

    def test_order_requires_existing_location(self, db_session, seeded):
        order = _order(seeded)
        order.location_id = "missing"
        db_session.add(order)
        with pytest.raises(IntegrityError):
            db_session.commit()


class TestPaymentAndSale:
    """Test cases for Payment and Sale models"""

    def test_payment_with_sale(self, db_session, seeded):
        order = _order(seeded)
        db_session.add(order)
        db_session.flush()
        payment = Payment(
            user_id=seeded["customer"].id,
            order_id=order.id,
            stripe_session_id="cs_test_1",
            amount=Decimal("25.00"),
            status="paid",
        )
        db_session.add(payment)
        db_session.flush()
        db_session.add(Sale(order_id=order.id, payment_id=payment.id, amount=Decimal("25.00")))
        db_session.commit()
        db_session.refresh(payment)

        assert payment.currency == "usd"
        assert payment.sale.amount == Decimal("25.00")

    def test_session_id_unique(self, db_session, seeded):
        order = _order(seeded)
        db_session.add(order)
        db_session.flush()
        for _ in range(2):
            db_session.add(
                Payment(
                    user_id=seeded["customer"].id,
                    order_id=order.id,
                    stripe_session_id="cs_test_dup",
                    amount=Decimal("25.00"),
                    status="paid",
                )
            )
        with pytest.raises(IntegrityError):
            db_session.commit()


class TestSeed:
    """Test cases for reference data seeding"""

    def test_seed_is_idempotent(self, db_session):
        import seed

        assert seed.seed_location(db_session) is True
        assert seed.seed_categories(db_session) == len(seed.MENU_CATEGORIES)
        assert seed.seed_restaurant_config(db_session) is True
        db_session.commit()

        assert seed.seed_location(db_session) is False
        assert seed.seed_categories(db_session) == 0
        assert seed.seed_restaurant_config(db_session) is False
        assert db_session.query(Location).one().country == "Nepal"
