"""
Pytest fixtures for laundry ledger backend tests.

Provides test database setup, entity factories, and test client.
"""

import pytest
from laundry import create_app
from laundry.extensions import db
from laundry.models import User, Customer, Item, Order, OrderLine
from laundry.services import sequence_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'COMMIT_RETRY_BACKOFF': 0,
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


@pytest.fixture(scope='function')
def user(db_session):
    """Active operator."""
    user = User(username="cashier", name="Front Desk", role="staff", is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(
        customer_code=sequence_service.next_value(sequence_service.CUSTOMER_CODE),
        name="Ana Perez",
        phone="809-555-0101",
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def item(db_session):
    item = Item(
        item_name="Shirt",
        category="clothing",
        wash_price_cents=150,
        iron_price_cents=100,
        repair_price_cents=300,
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def make_order(db_session, user, customer, item):
    """Factory: persisted order with one line, nothing paid."""
    codes = iter(range(1000, 2000))

    def _make(total_amount_cents=10000, **overrides):
        order = Order(
            order_code=overrides.pop("order_code", next(codes)),
            customer_id=overrides.pop("customer_id", customer.id),
            created_by_user_id=overrides.pop("created_by_user_id", user.id),
            total_amount_cents=total_amount_cents,
            paid_cents=0,
            status="received",
            **overrides,
        )
        order.lines = [
            OrderLine(item_id=item.id, position=0, quantity=1, price_cents=total_amount_cents, services=["wash"]),
        ]
        db_session.add(order)
        db_session.commit()
        return order

    return _make


@pytest.fixture(scope='function')
def order(make_order):
    """Fresh order with total 10000 cents."""
    return make_order(10000)


@pytest.fixture(scope='function')
def headers(user):
    """Request headers identifying the acting operator."""
    return user_headers(user.id)


def user_headers(user_id: int) -> dict:
    """Helper to create X-User-Id headers."""
    return {'X-User-Id': str(user_id)}
