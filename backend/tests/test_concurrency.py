"""
Threaded concurrency tests against a file-backed SQLite database.

Verifies:
- Concurrent sequence allocations are unique and gap-free (1..N)
- Two cashiers paying the same order at once both land in order.paid
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from laundry import create_app
from laundry.extensions import db
from laundry.models import User, Customer, Item, Order, OrderLine
from laundry.services import invoice_service, sequence_service


@pytest.fixture
def file_app(tmp_path):
    db_path = tmp_path / "concurrency.db"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
        'COMMIT_RETRY_ATTEMPTS': 20,
        'COMMIT_RETRY_BACKOFF': 0.01,
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _seed_order(app, total_amount_cents=10000) -> int:
    with app.app_context():
        user = User(username="concurrent_user", name="Concurrent", is_active=True)
        customer = Customer(customer_code=1, name="Concurrent Customer", phone="000")
        item = Item(item_name="Shirt", category="clothing")
        db.session.add_all([user, customer, item])
        db.session.flush()

        order = Order(
            order_code=1,
            customer_id=customer.id,
            created_by_user_id=user.id,
            total_amount_cents=total_amount_cents,
            paid_cents=0,
            status="received",
        )
        order.lines = [OrderLine(item_id=item.id, quantity=1, price_cents=total_amount_cents, services=[])]
        db.session.add(order)
        db.session.commit()
        return order.id


def test_sequence_values_unique_under_concurrency(file_app):
    def worker(_):
        with file_app.app_context():
            try:
                return sequence_service.next_value("order_code")
            finally:
                db.session.remove()

    with ThreadPoolExecutor(max_workers=8) as pool:
        values = list(pool.map(worker, range(100)))

    assert sorted(values) == list(range(1, 101))

    with file_app.app_context():
        assert sequence_service.current_value("order_code") == 100


def test_concurrent_payments_on_same_order(file_app):
    order_id = _seed_order(file_app)
    barrier = threading.Barrier(2)
    errors = []
    lock = threading.Lock()

    def worker():
        with file_app.app_context():
            try:
                barrier.wait()
                invoice_service.create_invoice(
                    {"order_id": order_id, "total_cents": 10000, "paid_cents": 3000}
                )
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors

    with file_app.app_context():
        order = db.session.get(Order, order_id)
        assert order.paid_cents == 6000
        assert order.status == "completed"
        assert len(invoice_service.get_order_invoices(order_id)) == 2
