# Overview: Order lifecycle operations (create, edit, delete, list, reconcile).

"""
Order Service

WHY: Orders are the aggregate the payment ledger hangs off. This service owns
everything about an order except its paid balance, which only the
reconciliation engine writes.

RULES:
- order_code comes from the "order_code" sequence, allocated before the order
  transaction (a failed save leaves a gap, never a duplicate)
- paid_cents is never writable here
- a total change always reconciles the order and refreshes every invoice
  remain; an explicit status (operator escape hatch) is applied after that
- a new order starts with nothing paid, so a zero total is already delivered
- deleting an order deletes its invoices in the same transaction
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Order, OrderLine, Customer, Item, User
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    validate_order_lines,
    enforce_rules_order_status,
)
from laundry.time_utils import day_bounds, utcnow
from .concurrency import lock_for_update, run_atomically
from .pagination import paginate
from .reconciliation_service import (
    ReconciliationResult,
    reconcile_order,
    refresh_invoice_remains,
    status_for_payment,
)
from . import sequence_service


ORDER_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"customer_id", "total_amount_cents", "estimated_delivery"},
    required_on_create={"customer_id", "total_amount_cents"},
    money_fields={"total_amount_cents"},
)

ORDER_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"customer_id", "total_amount_cents", "estimated_delivery", "status"},
    money_fields={"total_amount_cents"},
)


def _split_lines(payload: dict | None) -> tuple[dict, object]:
    """Lines are validated separately from the column-backed fields."""
    payload = dict(payload or {})
    raw_lines = payload.pop("lines", None)
    return payload, raw_lines


def _require_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("customer", customer_id)
    return customer


def _build_lines(lines: list[dict]) -> list[OrderLine]:
    item_ids = {line["item_id"] for line in lines}
    found = {
        item.id
        for item in db.session.query(Item).filter(Item.id.in_(item_ids)).all()
    }
    for line in lines:
        if line["item_id"] not in found:
            raise NotFoundError("item", line["item_id"])

    return [
        OrderLine(
            item_id=line["item_id"],
            position=position,
            quantity=line["quantity"],
            price_cents=line["price_cents"],
            color=line["color"],
            services=line["services"],
        )
        for position, line in enumerate(lines)
    ]


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("order", order_id)
    return order


def create_order(payload: dict, *, created_by_user_id: int) -> Order:
    """
    Create a laundry order with nothing paid (status "received", or
    "delivered" when the total is zero).

    Args:
        payload: customer_id, total_amount_cents, lines (non-empty), and
            optional estimated_delivery
        created_by_user_id: acting user

    Raises:
        ValidationError: bad payload (nothing written)
        NotFoundError: customer, user or a line item does not exist
    """
    fields, raw_lines = _split_lines(payload)
    patch = validate_payload(model=Order, payload=fields, policy=ORDER_CREATE_POLICY, partial=False)
    lines = validate_order_lines(raw_lines)

    # Referenced rows are checked before a code is burnt
    _require_customer(patch["customer_id"])
    if not db.session.get(User, created_by_user_id):
        raise NotFoundError("user", created_by_user_id)
    _build_lines(lines)

    order_code = sequence_service.next_value(sequence_service.ORDER_CODE)

    def _op() -> Order:
        _require_customer(patch["customer_id"])
        order = Order(
            order_code=order_code,
            customer_id=patch["customer_id"],
            total_amount_cents=patch["total_amount_cents"],
            estimated_delivery=patch.get("estimated_delivery"),
            created_by_user_id=created_by_user_id,
            paid_cents=0,
            status=status_for_payment(0, patch["total_amount_cents"]),
        )
        order.lines = _build_lines(lines)
        db.session.add(order)
        return order

    order = run_atomically(_op)
    current_app.logger.info("Order %s created (code %s)", order.id, order.order_code)
    return order


def update_order(order_id: int, payload: dict) -> Order:
    """
    Edit an order.

    Lines, when given, replace the existing lines. A total change re-runs
    reconciliation and refreshes invoice remains; an explicit status is then
    applied on top of the payment-derived one.

    Raises:
        ValidationError: bad payload, including any attempt to set paid_cents
        NotFoundError: order, customer or a line item does not exist
    """
    fields, raw_lines = _split_lines(payload)
    patch = validate_payload(model=Order, payload=fields, policy=ORDER_UPDATE_POLICY, partial=True)
    enforce_rules_order_status(patch)
    lines = validate_order_lines(raw_lines) if raw_lines is not None else None

    def _op() -> Order:
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("order", order_id)

        if "customer_id" in patch and patch["customer_id"] != order.customer_id:
            _require_customer(patch["customer_id"])
            order.customer_id = patch["customer_id"]

        if lines is not None:
            order.lines = _build_lines(lines)

        if "estimated_delivery" in patch:
            order.estimated_delivery = patch["estimated_delivery"]

        total_changed = (
            "total_amount_cents" in patch
            and patch["total_amount_cents"] != order.total_amount_cents
        )
        if "total_amount_cents" in patch:
            order.total_amount_cents = patch["total_amount_cents"]

        if total_changed:
            result = reconcile_order(order)
            refresh_invoice_remains(order, result.remain_cents)
        if "status" in patch:
            order.status = patch["status"]

        order.updated_at = utcnow()
        return order

    order = run_atomically(_op)
    current_app.logger.info("Order %s updated", order.id)
    return order


def delete_order(order_id: int) -> dict:
    """Delete an order together with its lines and invoices. Returns a snapshot."""
    def _op() -> dict:
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("order", order_id)
        snapshot = order.to_dict()
        snapshot["deleted_invoice_ids"] = [inv.id for inv in order.invoices]
        db.session.delete(order)
        return snapshot

    snapshot = run_atomically(_op)
    current_app.logger.info(
        "Order %s deleted with %d invoice(s)", order_id, len(snapshot["deleted_invoice_ids"])
    )
    return snapshot


def reconcile(order_id: int, *, dry_run: bool = False) -> ReconciliationResult:
    """
    Operator repair: resum one order's invoices and refresh every remain.

    dry_run computes the result and rolls it back.
    """
    def _op() -> ReconciliationResult:
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError("order", order_id)
        result = reconcile_order(order)
        refresh_invoice_remains(order, result.remain_cents)
        return result

    if dry_run:
        try:
            return _op()
        finally:
            db.session.rollback()

    result = run_atomically(_op)
    if result.changed:
        current_app.logger.warning(
            "Order %s drifted: paid %s -> %s, status %s -> %s",
            order_id, result.previous_paid_cents, result.paid_cents,
            result.previous_status, result.status,
        )
    return result


def list_orders(
    *,
    status: str | None = None,
    created_by: int | None = None,
    order_code: int | None = None,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    today: bool = False,
    page: int = 1,
    per_page: int | None = None,
) -> dict:
    """Filtered, paginated order listing, newest first."""
    query = db.session.query(Order)

    if status:
        enforce_rules_order_status({"status": status})
        query = query.filter(Order.status == status)
    if order_code is not None:
        query = query.filter(Order.order_code == order_code)
    if created_by is not None:
        query = query.filter(Order.created_by_user_id == created_by)

    if customer_name or customer_phone:
        query = query.join(Customer, Order.customer_id == Customer.id)
        if customer_name:
            query = query.filter(Customer.name.ilike(f"%{customer_name}%"))
        if customer_phone:
            query = query.filter(Customer.phone.ilike(f"%{customer_phone}%"))

    if today:
        start, end = day_bounds(utcnow().date())
        query = query.filter(Order.created_at >= start, Order.created_at <= end)
    else:
        if from_date:
            query = query.filter(Order.created_at >= day_bounds(from_date)[0])
        if to_date:
            query = query.filter(Order.created_at <= day_bounds(to_date)[1])

    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(
        query,
        page=page,
        per_page=per_page,
        serialize=lambda order: order.to_dict(include_related=True),
    )
