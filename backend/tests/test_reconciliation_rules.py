"""
Reconciliation engine rules: status tiers, remaining balance and the resum.
"""

import pytest

from laundry.models import Invoice
from laundry.services.reconciliation_service import (
    status_for_payment,
    remain_for,
    reconcile_order,
    refresh_invoice_remains,
)


@pytest.mark.parametrize(
    "paid,total,expected",
    [
        (0, 10000, "received"),
        (1, 10000, "completed"),
        (9999, 10000, "completed"),
        (10000, 10000, "delivered"),
        (12000, 10000, "delivered"),
        (0, 0, "delivered"),
    ],
)
def test_status_for_payment(paid, total, expected):
    assert status_for_payment(paid, total) == expected


@pytest.mark.parametrize(
    "total,paid,expected",
    [
        (10000, 0, 10000),
        (10000, 6000, 4000),
        (10000, 10000, 0),
        (10000, 15000, 0),
    ],
)
def test_remain_never_negative(total, paid, expected):
    assert remain_for(total, paid) == expected


def _add_invoice(db_session, order, paid_cents, total_cents=10000):
    invoice = Invoice(order_id=order.id, total_cents=total_cents, paid_cents=paid_cents, remain_cents=0)
    db_session.add(invoice)
    db_session.commit()
    return invoice


class TestReconcileOrder:

    def test_resums_from_invoices_not_cached_value(self, db_session, order):
        _add_invoice(db_session, order, 2500)
        _add_invoice(db_session, order, 1500)

        # Drifted cached value is ignored
        order.paid_cents = 999999
        order.status = "delivered"
        db_session.commit()

        result = reconcile_order(order)
        db_session.commit()

        assert result.previous_paid_cents == 999999
        assert result.paid_cents == 4000
        assert result.status == "completed"
        assert result.remain_cents == 6000
        assert result.changed is True
        assert order.paid_cents == 4000

    def test_no_invoices_means_received(self, db_session, order):
        result = reconcile_order(order)
        db_session.commit()

        assert result.paid_cents == 0
        assert result.status == "received"
        assert result.changed is False

    def test_touching_order_bumps_version(self, db_session, order):
        version = order.version_id
        reconcile_order(order)
        db_session.commit()

        assert order.version_id == version + 1

    def test_refresh_gives_every_invoice_the_same_remain(self, db_session, order):
        first = _add_invoice(db_session, order, 3000)
        second = _add_invoice(db_session, order, 2000)

        result = reconcile_order(order)
        invoices = refresh_invoice_remains(order, result.remain_cents)
        db_session.commit()

        assert {inv.id for inv in invoices} == {first.id, second.id}
        assert first.remain_cents == 5000
        assert second.remain_cents == 5000
