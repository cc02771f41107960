from __future__ import annotations

from ..extensions import db
from laundry.time_utils import to_utc_z


ITEM_CATEGORIES = ("clothing", "home", "accessories", "other")


class User(db.Model):
    """
    Operator identity.

    Authentication lives outside this service; the route layer only needs to
    know which active user is acting so orders can record created_by.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(128), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="staff")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role}


class Customer(db.Model):
    """
    Laundry customer.

    customer_code is allocated from the "customer_code" sequence at creation
    and never changes. Orders reference customers weakly: a customer with
    orders cannot be deleted, but its lifecycle is otherwise independent.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_phone", "phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_code = db.Column(db.Integer, nullable=False, unique=True, index=True)

    name = db.Column(db.String(128), nullable=False, unique=True)
    phone = db.Column(db.String(32), nullable=False)
    phone2 = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    rnc = db.Column(db.String(32), nullable=True)  # tax registration number
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Customer id={self.id} code={self.customer_code} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_code": self.customer_code,
            "name": self.name,
            "phone": self.phone,
            "phone2": self.phone2,
            "address": self.address,
            "email": self.email,
            "rnc": self.rnc,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class Item(db.Model):
    """Price-list entry: one garment type with a price per service (cents)."""
    __tablename__ = "items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    item_name = db.Column(db.String(128), nullable=False, index=True)
    category = db.Column(db.String(32), nullable=True, index=True)

    wash_price_cents = db.Column(db.Integer, nullable=False, default=0)
    iron_price_cents = db.Column(db.Integer, nullable=False, default=0)
    repair_price_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.item_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_name": self.item_name,
            "category": self.category,
            "wash_price_cents": self.wash_price_cents,
            "iron_price_cents": self.iron_price_cents,
            "repair_price_cents": self.repair_price_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
