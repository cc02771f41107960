"""
Order service tests: creation with sequence codes, edits, cascade delete,
the operator reconcile and listing filters.
"""

from datetime import date, datetime, timedelta

import pytest

from laundry.errors import NotFoundError, ValidationError
from laundry.models import Invoice, Order, OrderLine
from laundry.services import invoice_service, order_service, sequence_service
from laundry.time_utils import utcnow


def _payload(customer, item, **overrides):
    payload = {
        "customer_id": customer.id,
        "total_amount_cents": 10000,
        "estimated_delivery": "2026-03-01",
        "lines": [
            {"item_id": item.id, "quantity": 2, "price_cents": 5000, "color": "blue", "services": ["wash", "iron", "wash"]},
        ],
    }
    payload.update(overrides)
    return payload


class TestCreateOrder:

    def test_creates_received_order_with_next_code(self, db_session, user, customer, item):
        order = order_service.create_order(_payload(customer, item), created_by_user_id=user.id)

        assert order.order_code == 1
        assert order.status == "received"
        assert order.paid_cents == 0
        assert order.created_by_user_id == user.id
        assert order.estimated_delivery == date(2026, 3, 1)
        assert len(order.lines) == 1
        assert order.lines[0].services == ["wash", "iron"]

        second = order_service.create_order(_payload(customer, item), created_by_user_id=user.id)
        assert second.order_code == 2

    def test_zero_total_order_is_delivered(self, db_session, user, customer, item):
        lines = [{"item_id": item.id, "quantity": 1, "price_cents": 0}]

        order = order_service.create_order(
            _payload(customer, item, total_amount_cents=0, lines=lines), created_by_user_id=user.id
        )

        assert order.paid_cents == 0
        assert order.status == "delivered"

    def test_missing_customer(self, db_session, user, customer, item):
        with pytest.raises(NotFoundError) as exc:
            order_service.create_order(_payload(customer, item, customer_id=9999), created_by_user_id=user.id)

        assert exc.value.entity == "customer"
        assert db_session.query(Order).count() == 0
        # No code was burnt
        assert sequence_service.current_value(sequence_service.ORDER_CODE) == 0

    def test_missing_item(self, db_session, user, customer, item):
        lines = [{"item_id": 9999, "quantity": 1, "price_cents": 100}]

        with pytest.raises(NotFoundError) as exc:
            order_service.create_order(_payload(customer, item, lines=lines), created_by_user_id=user.id)

        assert exc.value.entity == "item"
        assert db_session.query(Order).count() == 0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"lines": []},
            {"lines": [{"item_id": 1, "quantity": 0, "price_cents": 100}]},
            {"lines": [{"item_id": 1, "quantity": 1, "price_cents": 100, "services": ["dry-clean"]}]},
            {"total_amount_cents": -5},
            {"total_amount_cents": 99.5},
            {"paid_cents": 100},
            {"status": "delivered"},
        ],
    )
    def test_rejects_bad_payload(self, db_session, user, customer, item, overrides):
        with pytest.raises(ValidationError):
            order_service.create_order(_payload(customer, item, **overrides), created_by_user_id=user.id)

        assert db_session.query(Order).count() == 0


class TestUpdateOrder:

    def test_total_change_rederives_status(self, db_session, order):
        invoice = invoice_service.create_invoice({"order_id": order.id, "total_cents": 10000, "paid_cents": 6000})
        assert order.status == "completed"

        order_service.update_order(order.id, {"total_amount_cents": 6000})

        assert order.status == "delivered"
        assert order.paid_cents == 6000
        assert invoice.remain_cents == 0

    def test_explicit_status_overrides(self, db_session, order):
        order_service.update_order(order.id, {"status": "delivered", "total_amount_cents": 20000})

        assert order.status == "delivered"
        assert order.total_amount_cents == 20000
        assert order.paid_cents == 0

    def test_total_and_status_together_refresh_remains(self, db_session, order):
        invoice = invoice_service.create_invoice({"order_id": order.id, "total_cents": 10000, "paid_cents": 6000})
        assert invoice.remain_cents == 4000

        order_service.update_order(order.id, {"total_amount_cents": 20000, "status": "completed"})

        assert order.status == "completed"
        assert order.paid_cents == 6000
        assert invoice.remain_cents == 14000

    def test_status_override_applies_after_total_change(self, db_session, order):
        invoice_service.create_invoice({"order_id": order.id, "total_cents": 10000, "paid_cents": 6000})

        order_service.update_order(order.id, {"total_amount_cents": 6000, "status": "completed"})

        assert order.status == "completed"
        assert invoice_service.get_order_invoices(order.id)[0].remain_cents == 0

    def test_paid_is_not_writable(self, db_session, order):
        with pytest.raises(ValidationError) as exc:
            order_service.update_order(order.id, {"paid_cents": 10000})

        assert exc.value.field == "paid_cents"
        assert order.paid_cents == 0

    def test_invalid_status(self, db_session, order):
        with pytest.raises(ValidationError):
            order_service.update_order(order.id, {"status": "lost"})

    def test_lines_are_replaced(self, db_session, order, item):
        order_service.update_order(order.id, {
            "lines": [
                {"item_id": item.id, "quantity": 1, "price_cents": 300, "services": ["repair"]},
                {"item_id": item.id, "quantity": 3, "price_cents": 150},
            ],
        })

        assert [line.quantity for line in order.lines] == [1, 3]
        assert db_session.query(OrderLine).filter_by(order_id=order.id).count() == 2

    def test_missing_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.update_order(9999, {"status": "received"})


class TestDeleteOrder:

    def test_deletes_invoices_too(self, db_session, order):
        first = invoice_service.create_invoice({"order_id": order.id, "total_cents": 10000, "paid_cents": 100})
        second = invoice_service.create_invoice({"order_id": order.id, "total_cents": 10000, "paid_cents": 200})
        expected = [first.id, second.id]
        order_id = order.id

        snapshot = order_service.delete_order(order_id)

        assert snapshot["id"] == order_id
        assert sorted(snapshot["deleted_invoice_ids"]) == expected
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(OrderLine).count() == 0
        assert db_session.get(Order, order_id) is None

    def test_missing_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.delete_order(9999)


class TestReconcile:

    def _drift(self, db_session, order):
        invoice_service.create_invoice({"order_id": order.id, "total_cents": 10000, "paid_cents": 4000})
        order.paid_cents = 0
        order.status = "received"
        db_session.commit()

    def test_repairs_drifted_order(self, db_session, order):
        self._drift(db_session, order)

        result = order_service.reconcile(order.id)

        assert result.changed is True
        assert result.previous_paid_cents == 0
        assert result.paid_cents == 4000
        assert order.paid_cents == 4000
        assert order.status == "completed"

    def test_dry_run_writes_nothing(self, db_session, order):
        self._drift(db_session, order)

        result = order_service.reconcile(order.id, dry_run=True)

        assert result.paid_cents == 4000
        assert order.paid_cents == 0
        assert order.status == "received"

    def test_missing_order(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.reconcile(9999)


class TestListOrders:

    def test_filters_by_status(self, db_session, make_order):
        paid = make_order(1000)
        make_order(1000)
        invoice_service.create_invoice({"order_id": paid.id, "total_cents": 1000, "paid_cents": 1000})

        result = order_service.list_orders(status="delivered")

        assert [o["id"] for o in result["items"]] == [paid.id]
        assert result["items"][0]["customer"]["name"] == "Ana Perez"
        assert result["items"][0]["lines"][0]["item_name"] == "Shirt"

    def test_rejects_unknown_status(self, db_session):
        with pytest.raises(ValidationError):
            order_service.list_orders(status="lost")

    def test_filters_by_customer_and_code(self, db_session, make_order):
        first = make_order(1000, order_code=77)
        make_order(1000, order_code=78)

        assert order_service.list_orders(order_code=77)["items"][0]["id"] == first.id
        assert order_service.list_orders(customer_name="ana")["pagination"]["total"] == 2
        assert order_service.list_orders(customer_phone="0000")["pagination"]["total"] == 0

    def test_date_range_and_today(self, db_session, make_order):
        now = utcnow()
        old = make_order(1000, created_at=datetime(2025, 1, 15, 12, 0))
        recent = make_order(1000, created_at=now)

        ranged = order_service.list_orders(from_date=date(2025, 1, 15), to_date=date(2025, 1, 15))
        assert [o["id"] for o in ranged["items"]] == [old.id]

        today = order_service.list_orders(today=True)
        assert [o["id"] for o in today["items"]] == [recent.id]

        since = order_service.list_orders(from_date=(now - timedelta(days=1)).date())
        assert [o["id"] for o in since["items"]] == [recent.id]
