# Overview: Payment reconciliation rules shared by every invoice mutation.

"""
Order / Invoice Reconciliation

WHY: An order's paid balance, its invoices' remaining balance and its
delivery status must agree after every invoice create, edit or delete, even
with several partial payments per order and concurrent cashiers.

RULES (applied identically on every path):
- order.paid_cents   = SUM(invoice.paid_cents) over the order's invoices,
                       always resummed from the invoices, never adjusted by a
                       delta against a cached value
- invoice.remain     = max(0, order.total_amount_cents - order.paid_cents);
                       the order total is the one canonical amount due
- order.status       = delivered  if paid >= total
                       completed  if 0 < paid < total
                       received   if paid == 0
- order.paid_cents   never exceeds MAX_AMOUNT_CENTS; a mutation that would push
                       the sum past it is rejected with ValidationError

These functions never commit. Callers run them inside run_atomically() with
the order row locked, so the resum sees every committed invoice and the
version-checked order UPDATE rejects a stale concurrent writer.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import (
    Order,
    Invoice,
    ORDER_STATUS_RECEIVED,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_DELIVERED,
)
from ..validation import MAX_AMOUNT_CENTS
from laundry.time_utils import utcnow


@dataclass(frozen=True)
class ReconciliationResult:
    """Before/after view of one order reconciliation."""
    order_id: int
    previous_paid_cents: int
    paid_cents: int
    previous_status: str
    status: str
    remain_cents: int

    @property
    def changed(self) -> bool:
        return (
            self.previous_paid_cents != self.paid_cents
            or self.previous_status != self.status
        )

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "previous_paid_cents": self.previous_paid_cents,
            "paid_cents": self.paid_cents,
            "previous_status": self.previous_status,
            "status": self.status,
            "remain_cents": self.remain_cents,
            "changed": self.changed,
        }


def status_for_payment(paid_cents: int, total_amount_cents: int) -> str:
    """Three-tier status rule."""
    if paid_cents >= total_amount_cents:
        return ORDER_STATUS_DELIVERED
    if paid_cents > 0:
        return ORDER_STATUS_COMPLETED
    return ORDER_STATUS_RECEIVED


def remain_for(total_amount_cents: int, paid_cents: int) -> int:
    """Balance still due on the order, never negative."""
    return max(0, total_amount_cents - paid_cents)


def sum_invoice_payments(order_id: int) -> int:
    """Authoritative paid total: SUM(paid_cents) of the order's current invoices."""
    total = db.session.query(
        db.func.coalesce(db.func.sum(Invoice.paid_cents), 0)
    ).filter(
        Invoice.order_id == order_id,
    ).scalar()
    return int(total or 0)


def list_order_invoices(order_id: int) -> list[Invoice]:
    return (
        db.session.query(Invoice)
        .filter_by(order_id=order_id)
        .order_by(Invoice.created_at.asc(), Invoice.id.asc())
        .all()
    )


def reconcile_order(order: Order) -> ReconciliationResult:
    """
    Recompute order.paid_cents and order.status from the order's invoices.

    Pending invoice inserts/edits/deletes in the session are flushed by the
    SUM query, so the result includes the caller's own change.

    The order row is always touched (updated_at) so its version_id is bumped
    and checked even when the amounts did not move.
    """
    previous_paid = order.paid_cents or 0
    previous_status = order.status

    paid = sum_invoice_payments(order.id)
    if paid > MAX_AMOUNT_CENTS:
        raise ValidationError(
            f"Payments on order {order.id} would exceed {MAX_AMOUNT_CENTS} cents",
            field="paid_cents",
        )

    order.paid_cents = paid
    order.status = status_for_payment(paid, order.total_amount_cents)
    order.updated_at = utcnow()

    result = ReconciliationResult(
        order_id=order.id,
        previous_paid_cents=previous_paid,
        paid_cents=paid,
        previous_status=previous_status,
        status=order.status,
        remain_cents=remain_for(order.total_amount_cents, paid),
    )

    current_app.logger.debug(
        "Reconciled order %s: paid %s -> %s, status %s -> %s",
        order.id, previous_paid, paid, previous_status, order.status,
    )
    return result


def refresh_invoice_remains(order: Order, remain_cents: int | None = None) -> list[Invoice]:
    """
    Give every invoice of the order the same recomputed remain.

    Used after a delete (siblings) and by the operator reconcile command.
    """
    if remain_cents is None:
        remain_cents = remain_for(order.total_amount_cents, order.paid_cents)

    invoices = list_order_invoices(order.id)
    for invoice in invoices:
        if invoice.remain_cents != remain_cents:
            invoice.remain_cents = remain_cents
    return invoices
