# Overview: Named atomic counters for human-facing order and customer codes.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import ValidationError
from ..extensions import db
from ..models import Sequence
from .concurrency import run_atomically


ORDER_CODE = "order_code"
CUSTOMER_CODE = "customer_code"


def next_value(name: str) -> int:
    """
    Atomically allocate the next value of a named sequence.

    The increment and the read happen in one transaction behind a single
    UPDATE ... SET value = value + 1, so concurrent callers never see the same
    value. The first call for an unseen name starts the counter at 1.

    Commits on its own: a caller that fails after allocating leaves a gap,
    which is accepted. Never call this with unrelated pending changes in the
    session, they would be committed along with the counter.
    """
    if not name or not name.strip():
        raise ValidationError("sequence name is required", field="name")

    def _op() -> int:
        stmt = (
            update(Sequence)
            .where(Sequence.name == name)
            .values(value=Sequence.value + 1)
        )

        result = db.session.execute(stmt)
        if result.rowcount:
            return db.session.query(Sequence.value).filter_by(name=name).scalar()

        seq = Sequence(name=name, value=1)
        db.session.add(seq)
        try:
            db.session.flush()
            return 1
        except IntegrityError:
            # Another caller created the row first; fall back to the increment
            db.session.rollback()
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            return db.session.query(Sequence.value).filter_by(name=name).scalar()

    return run_atomically(_op)


def current_value(name: str) -> int:
    """Last value handed out for name (0 if never used)."""
    value = db.session.query(Sequence.value).filter_by(name=name).scalar()
    return value or 0


def list_sequences() -> list[Sequence]:
    return db.session.query(Sequence).order_by(Sequence.name.asc()).all()
