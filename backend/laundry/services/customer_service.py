# Overview: Customer directory; allocates customer codes and guards referenced customers.

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Customer, Order
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import lock_for_update, run_atomically
from .pagination import paginate
from . import sequence_service


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "phone2", "address", "email", "rnc", "note"},
    required_on_create={"name", "phone"},
)


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Customer.id).filter(Customer.name == name)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first():
        raise ConflictError("Customer with this name already exists", details={"field": "name"})


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("customer", customer_id)
    return customer


def create_customer(payload: dict) -> Customer:
    """Create a customer with the next customer_code. Duplicate names conflict."""
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    _ensure_unique_name(patch["name"])

    customer_code = sequence_service.next_value(sequence_service.CUSTOMER_CODE)

    def _op() -> Customer:
        _ensure_unique_name(patch["name"])
        customer = Customer(customer_code=customer_code, **patch)
        db.session.add(customer)
        return customer

    customer = run_atomically(_op)
    current_app.logger.info("Customer %s created (code %s)", customer.id, customer.customer_code)
    return customer


def update_customer(customer_id: int, payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)

    def _op() -> Customer:
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise NotFoundError("customer", customer_id)
        if "name" in patch and patch["name"] != customer.name:
            _ensure_unique_name(patch["name"], exclude_id=customer.id)
        for key, value in patch.items():
            setattr(customer, key, value)
        return customer

    return run_atomically(_op)


def delete_customer(customer_id: int) -> dict:
    """Delete a customer that no order references."""
    def _op() -> dict:
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise NotFoundError("customer", customer_id)

        order_count = db.session.query(Order).filter_by(customer_id=customer_id).count()
        if order_count:
            raise ConflictError(
                "Customer has orders and cannot be deleted",
                details={"order_count": order_count},
            )

        snapshot = customer.to_dict()
        db.session.delete(customer)
        return snapshot

    return run_atomically(_op)


def list_customers(*, search: str | None = None, page: int = 1, per_page: int | None = None) -> dict:
    """
    Paginated customers, newest first.

    search matches name or phone (case-insensitive substring), or the exact
    customer_code when it is numeric.
    """
    query = db.session.query(Customer)

    if search:
        term = search.strip()
        conditions = [
            Customer.name.ilike(f"%{term}%"),
            Customer.phone.ilike(f"%{term}%"),
        ]
        if term.isdigit():
            conditions.append(Customer.customer_code == int(term))
        query = query.filter(or_(*conditions))

    query = query.order_by(Customer.created_at.desc(), Customer.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda c: c.to_dict())
