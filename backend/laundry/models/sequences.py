from __future__ import annotations

from ..extensions import db
from laundry.time_utils import to_utc_z


class Sequence(db.Model):
    """
    Named monotonic counter (order_code, customer_code, ...).

    WHY: Human-facing codes must be unique and increasing across concurrent
    creations. The row is only ever changed by a single atomic
    UPDATE ... SET value = value + 1 (see sequence_service.next_value).
    """
    __tablename__ = "sequences"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    value = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Sequence name={self.name!r} value={self.value}>"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }
