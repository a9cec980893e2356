"""
Pytest fixtures for Bill Master backend tests.

Provides test database setup, acting users, stock items, customers and a
test client.
"""

from datetime import datetime

import pytest
from billmaster import create_app
from billmaster.extensions import db
from billmaster.models import Customer, Item
from billmaster.policy import Actor


# Fixed creation instant so due dates are predictable
CREATED_AT = datetime(2026, 10, 18, 10, 30)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ALLOW_NEGATIVE_STOCK': True,
        'INVOICE_PREFIX': 'INV',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture
def admin():
    return Actor(email="owner@shop.test", role="admin")


@pytest.fixture
def clerk():
    return Actor(email="clerk@shop.test", role="user")


@pytest.fixture
def admin_headers():
    return {"X-User-Email": "owner@shop.test", "X-User-Role": "admin"}


@pytest.fixture
def clerk_headers():
    return {"X-User-Email": "clerk@shop.test", "X-User-Role": "user"}


@pytest.fixture(scope='function')
def hammer(db_session):
    """Countable item (pcs) with 10 in stock."""
    item = Item(
        name="Claw Hammer",
        unit="pcs",
        hsn_code="8205",
        quantity_in_stock=10,
        minimum_stock_alert=2,
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def wire(db_session):
    """Measured item (mtr) with 20 in stock."""
    item = Item(
        name="Copper Wire 1.5mm",
        unit="mtr",
        hsn_code="8544",
        quantity_in_stock=20,
        minimum_stock_alert=5,
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(
        name="Sharma Constructions",
        phone="9800000001",
        address="12 Station Road",
        city="Pune",
        state="Maharashtra",
        pincode="411001",
        credit_eligible=True,
    )
    db_session.add(customer)
    db_session.commit()
    return customer


def line(item, quantity, rate) -> dict:
    """Helper to build an invoice line payload."""
    return {"item_id": item.id, "quantity": str(quantity), "rate": str(rate)}
