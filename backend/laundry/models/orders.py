from __future__ import annotations

from ..extensions import db
from laundry.time_utils import to_utc_z, to_iso_date


ORDER_STATUS_RECEIVED = "received"
ORDER_STATUS_COMPLETED = "completed"
ORDER_STATUS_DELIVERED = "delivered"

ORDER_STATUSES = (ORDER_STATUS_RECEIVED, ORDER_STATUS_COMPLETED, ORDER_STATUS_DELIVERED)

SERVICE_TYPES = ("wash", "iron", "repair")


class Order(db.Model):
    """
    Laundry order: what the customer left, what it costs, what was paid.

    WHY: The order is the aggregate root of the payment ledger. Invoices are
    payment records against it; paid_cents is the authoritative running total
    of those payments and is written only by the reconciliation engine.

    LIFECYCLE:
        received -> completed -> delivered

    status is derived from paid_cents vs total_amount_cents after every invoice
    mutation. An explicit order update may override it (operator escape hatch).

    CONCURRENCY: version_id is an optimistic lock. Every reconciliation touches
    the row, so two writers racing on the same order cannot both commit from a
    stale read.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-facing code from the "order_code" sequence (assigned once)
    order_code = db.Column(db.Integer, nullable=False, unique=True, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    # Billed total; independent of line arithmetic
    total_amount_cents = db.Column(db.Integer, nullable=False)

    # Sum of invoice payments (reconciliation engine only)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_RECEIVED, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    estimated_delivery = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    lines = db.relationship(
        "OrderLine",
        back_populates="order",
        order_by="OrderLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    invoices = db.relationship(
        "Invoice",
        back_populates="order",
        order_by="Invoice.created_at",
        cascade="all, delete-orphan",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} code={self.order_code} status={self.status}>"

    def to_dict(self, include_related: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_code": self.order_code,
            "customer_id": self.customer_id,
            "total_amount_cents": self.total_amount_cents,
            "paid_cents": self.paid_cents,
            "status": self.status,
            "created_by_user_id": self.created_by_user_id,
            "estimated_delivery": to_iso_date(self.estimated_delivery),
            "lines": [line.to_dict(include_item=include_related) for line in self.lines],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_related:
            data["customer"] = self.customer.to_dict() if self.customer else None
            data["created_by"] = self.created_by.to_summary() if self.created_by else None
        return data


class OrderLine(db.Model):
    """One garment line on an order: item, quantity, agreed price, requested services."""
    __tablename__ = "order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    price_cents = db.Column(db.Integer, nullable=False)
    color = db.Column(db.String(64), nullable=True)
    services = db.Column(db.JSON, nullable=False, default=list)  # subset of SERVICE_TYPES

    order = db.relationship("Order", back_populates="lines")
    item = db.relationship("Item")

    def to_dict(self, include_item: bool = False) -> dict:
        data = {
            "id": self.id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "color": self.color,
            "services": list(self.services or []),
        }
        if include_item:
            data["item_name"] = self.item.item_name if self.item else None
        return data


class Invoice(db.Model):
    """
    Payment record against an order.

    WHY: Orders are frequently paid in several installments (deposit at
    drop-off, balance at pick-up). Each installment is an invoice.

    AMOUNTS (cents):
    - total_cents: amount this invoice bills
    - paid_cents: amount received on this invoice
    - remain_cents: order balance still due when this invoice was last
      reconciled; max(0, order.total_amount_cents - order.paid_cents)
    - itbis_cents / discount_cents: tax and discount, advisory only
    - cash/card/bank_transfer: how paid_cents was collected, informational
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.Index("ix_invoices_order_created", "order_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    # Fiscal receipt number and pick-up location (opaque passthrough)
    ncf = db.Column(db.String(64), nullable=True)
    location = db.Column(db.String(128), nullable=True)

    itbis_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)
    remain_cents = db.Column(db.Integer, nullable=False, default=0)

    cash_amount_cents = db.Column(db.Integer, nullable=True)
    card_amount_cents = db.Column(db.Integer, nullable=True)
    bank_transfer_amount_cents = db.Column(db.Integer, nullable=True)

    delivery_date = db.Column(db.Date, nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    order = db.relationship("Order", back_populates="invoices")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} order_id={self.order_id} paid={self.paid_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "ncf": self.ncf,
            "location": self.location,
            "itbis_cents": self.itbis_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "remain_cents": self.remain_cents,
            "cash_amount_cents": self.cash_amount_cents,
            "card_amount_cents": self.card_amount_cents,
            "bank_transfer_amount_cents": self.bank_transfer_amount_cents,
            "delivery_date": to_iso_date(self.delivery_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
