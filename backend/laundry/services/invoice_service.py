# Overview: Invoice mutations and queries; every mutation reconciles the parent order.

"""
Invoice Service

WHY: Invoices are the only way money enters an order. Creating, editing or
deleting one must leave the order's paid total, every affected invoice's
remain and the order's status consistent, or change nothing at all.

DESIGN PRINCIPLES:
- One transaction per operation (run_atomically): invoice and order are
  written together or not at all
- Order row locked before reading its invoices; version_id catches the race
  where the backend ignores FOR UPDATE
- paid is always resummed from the invoices (reconciliation_service), never
  adjusted by a delta
- Amounts are validated before anything is loaded or written
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Invoice, Order, Customer
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_order_status
from laundry.time_utils import day_bounds, utcnow
from .concurrency import lock_for_update, run_atomically
from .pagination import paginate
from .reconciliation_service import (
    reconcile_order,
    refresh_invoice_remains,
    list_order_invoices,
)


INVOICE_MONEY_FIELDS = {
    "itbis_cents",
    "discount_cents",
    "total_cents",
    "paid_cents",
    "cash_amount_cents",
    "card_amount_cents",
    "bank_transfer_amount_cents",
}

INVOICE_POLICY = ModelValidationPolicy(
    writable_fields={
        "order_id",
        "ncf",
        "location",
        "delivery_date",
    } | INVOICE_MONEY_FIELDS,
    required_on_create={"order_id", "total_cents"},
    money_fields=INVOICE_MONEY_FIELDS,
)

# Fields copied from a validated patch onto the invoice row as-is
INVOICE_MUTABLE_FIELDS = (INVOICE_POLICY.writable_fields - {"order_id"})


@dataclass
class InvoiceDeletion:
    """Result of delete_invoice: what was removed and what was recomputed."""
    invoice: dict
    order: Order | None
    siblings: list[Invoice] = field(default_factory=list)


# =============================================================================
# LOOKUPS
# =============================================================================

def _get_order_locked(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if not order:
        raise NotFoundError("order", order_id)
    return order


def _get_invoice_locked(invoice_id: int) -> Invoice:
    invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
    if not invoice:
        raise NotFoundError("invoice", invoice_id)
    return invoice


def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError("invoice", invoice_id)
    return invoice


def get_order_invoices(order_id: int) -> list[Invoice]:
    if not db.session.get(Order, order_id):
        raise NotFoundError("order", order_id)
    return list_order_invoices(order_id)


# =============================================================================
# MUTATIONS
# =============================================================================

def create_invoice(payload: dict) -> Invoice:
    """
    Record a payment against an order.

    Args:
        payload: order_id and total_cents (required), paid_cents (default 0),
            itbis/discount/cash/card/bank_transfer cents, ncf, location,
            delivery_date

    Returns:
        Invoice, with remain_cents computed against the order total

    Raises:
        ValidationError: missing/non-integer/negative amounts (nothing written)
        NotFoundError: order does not exist (nothing written)
    """
    patch = validate_payload(model=Invoice, payload=payload, policy=INVOICE_POLICY, partial=False)
    order_id = patch.pop("order_id")

    def _op() -> Invoice:
        order = _get_order_locked(order_id)

        invoice = Invoice(order=order)
        invoice.itbis_cents = 0
        invoice.discount_cents = 0
        invoice.paid_cents = 0
        for key, value in patch.items():
            setattr(invoice, key, value)
        invoice.remain_cents = 0
        db.session.add(invoice)

        result = reconcile_order(order)
        invoice.remain_cents = result.remain_cents
        return invoice

    invoice = run_atomically(_op)
    current_app.logger.info(
        "Invoice %s created on order %s: paid=%s remain=%s",
        invoice.id, invoice.order_id, invoice.paid_cents, invoice.remain_cents,
    )
    return invoice


def update_invoice(invoice_id: int, payload: dict) -> Invoice:
    """
    Edit an invoice and reconcile its order.

    Only the fields present in payload change. Changing order_id moves the
    invoice to another order; both orders are reconciled.

    Raises:
        ValidationError: bad field values (nothing written)
        NotFoundError: invoice or target order does not exist (nothing written)
    """
    patch = validate_payload(model=Invoice, payload=payload, policy=INVOICE_POLICY, partial=True)

    def _op() -> Invoice:
        invoice = _get_invoice_locked(invoice_id)
        order = _get_order_locked(invoice.order_id)

        previous_order = None
        target_order_id = patch.get("order_id")
        if target_order_id is not None and target_order_id != order.id:
            previous_order = order
            order = _get_order_locked(target_order_id)
            invoice.order = order

        for key, value in patch.items():
            if key in INVOICE_MUTABLE_FIELDS:
                setattr(invoice, key, value)
        invoice.updated_at = utcnow()

        if previous_order is not None:
            reconcile_order(previous_order)

        result = reconcile_order(order)
        invoice.remain_cents = result.remain_cents
        return invoice

    invoice = run_atomically(_op)
    current_app.logger.info(
        "Invoice %s updated on order %s: paid=%s remain=%s",
        invoice.id, invoice.order_id, invoice.paid_cents, invoice.remain_cents,
    )
    return invoice


def delete_invoice(invoice_id: int) -> InvoiceDeletion:
    """
    Delete an invoice, then reconcile its order.

    Every remaining invoice of the order gets the same recomputed remain
    (one shared balance, not a per-invoice split).

    Raises:
        NotFoundError: invoice does not exist (nothing written)
    """
    def _op() -> InvoiceDeletion:
        invoice = _get_invoice_locked(invoice_id)
        snapshot = invoice.to_dict()

        order = lock_for_update(db.session.query(Order).filter_by(id=invoice.order_id)).first()
        db.session.delete(invoice)

        if order is None:
            return InvoiceDeletion(invoice=snapshot, order=None)

        result = reconcile_order(order)
        siblings = refresh_invoice_remains(order, result.remain_cents)
        return InvoiceDeletion(invoice=snapshot, order=order, siblings=siblings)

    deletion = run_atomically(_op)
    current_app.logger.info(
        "Invoice %s deleted from order %s", invoice_id, deletion.invoice["order_id"]
    )
    return deletion


# =============================================================================
# QUERIES
# =============================================================================

def list_invoices(
    *,
    order_id: int | None = None,
    customer_code: int | None = None,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    status: str | None = None,
    delivery_from: date | None = None,
    delivery_to: date | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    today: bool = False,
    page: int = 1,
    per_page: int | None = None,
) -> dict:
    """
    Filtered, paginated invoice listing, newest first.

    Customer and status filters go through the invoice's order. Date ranges
    are inclusive whole days (UTC). today=True overrides from_date/to_date.
    """
    query = db.session.query(Invoice).join(Order, Invoice.order_id == Order.id)

    if order_id is not None:
        query = query.filter(Invoice.order_id == order_id)

    if customer_code is not None or customer_name or customer_phone:
        query = query.join(Customer, Order.customer_id == Customer.id)
        if customer_code is not None:
            query = query.filter(Customer.customer_code == customer_code)
        if customer_name:
            query = query.filter(Customer.name.ilike(f"%{customer_name}%"))
        if customer_phone:
            query = query.filter(Customer.phone.ilike(f"%{customer_phone}%"))

    if status:
        enforce_rules_order_status({"status": status})
        query = query.filter(Order.status == status)

    if delivery_from:
        query = query.filter(Invoice.delivery_date >= delivery_from)
    if delivery_to:
        query = query.filter(Invoice.delivery_date <= delivery_to)

    if today:
        start, end = day_bounds(utcnow().date())
        query = query.filter(Invoice.created_at >= start, Invoice.created_at <= end)
    else:
        if from_date:
            query = query.filter(Invoice.created_at >= day_bounds(from_date)[0])
        if to_date:
            query = query.filter(Invoice.created_at <= day_bounds(to_date)[1])

    query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=serialize_invoice)


def serialize_invoice(invoice: Invoice) -> dict:
    """Invoice with its order populated (customer, creator, line item names)."""
    data = invoice.to_dict()
    data["order"] = invoice.order.to_dict(include_related=True) if invoice.order else None
    return data


def serialize_deletion(deletion: InvoiceDeletion) -> dict:
    return {
        "invoice": deletion.invoice,
        "order": deletion.order.to_dict() if deletion.order else None,
        "siblings": [inv.to_dict() for inv in deletion.siblings],
    }
