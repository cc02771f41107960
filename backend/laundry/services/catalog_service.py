# Overview: Item price list (per-service prices in cents).

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Item, OrderLine
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_item, coerce_int
from .concurrency import lock_for_update, run_atomically
from .pagination import paginate


ITEM_PRICE_FIELDS = {"wash_price_cents", "iron_price_cents", "repair_price_cents"}

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"item_name", "category"} | ITEM_PRICE_FIELDS,
    required_on_create={"item_name"},
    money_fields=ITEM_PRICE_FIELDS,
)

BULK_PRICE_POLICY = ModelValidationPolicy(
    writable_fields={"category"} | ITEM_PRICE_FIELDS,
    money_fields=ITEM_PRICE_FIELDS,
)


def get_item(item_id: int) -> Item:
    item = db.session.get(Item, item_id)
    if not item:
        raise NotFoundError("item", item_id)
    return item


def create_item(payload: dict) -> Item:
    patch = validate_payload(model=Item, payload=payload, policy=ITEM_POLICY, partial=False)
    enforce_rules_item(patch)

    def _op() -> Item:
        item = Item(
            wash_price_cents=0,
            iron_price_cents=0,
            repair_price_cents=0,
        )
        for key, value in patch.items():
            setattr(item, key, value)
        db.session.add(item)
        return item

    return run_atomically(_op)


def update_item(item_id: int, payload: dict) -> Item:
    patch = validate_payload(model=Item, payload=payload, policy=ITEM_POLICY, partial=True)
    enforce_rules_item(patch)

    def _op() -> Item:
        item = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
        if not item:
            raise NotFoundError("item", item_id)
        for key, value in patch.items():
            setattr(item, key, value)
        return item

    return run_atomically(_op)


def bulk_update_prices(updates: list) -> list[Item]:
    """
    Update several items' prices in one transaction.

    Each entry identifies the item by "id" or, failing that, "item_name", and
    carries any of category / wash / iron / repair prices. One bad entry
    rejects the whole batch.
    """
    if not isinstance(updates, list) or not updates:
        raise ValidationError("updates must be a non-empty array", field="updates")

    prepared: list[tuple[int | None, str | None, dict]] = []
    for index, entry in enumerate(updates):
        if not isinstance(entry, dict):
            raise ValidationError(f"updates[{index}] must be an object", field="updates")
        entry = dict(entry)
        item_id = entry.pop("id", None)
        item_name = entry.pop("item_name", None)
        if item_id is None and not item_name:
            raise ValidationError(f"updates[{index}] must have an id or item_name", field="updates")
        patch = validate_payload(model=Item, payload=entry, policy=BULK_PRICE_POLICY, partial=True)
        enforce_rules_item(patch)
        prepared.append((coerce_int("id", item_id) if item_id is not None else None, item_name, patch))

    def _op() -> list[Item]:
        changed: list[Item] = []
        for item_id, item_name, patch in prepared:
            query = db.session.query(Item)
            if item_id is not None:
                query = query.filter_by(id=item_id)
            else:
                query = query.filter_by(item_name=item_name)
            item = lock_for_update(query).first()
            if not item:
                raise NotFoundError("item", item_id if item_id is not None else item_name)
            for key, value in patch.items():
                setattr(item, key, value)
            changed.append(item)
        return changed

    return run_atomically(_op)


def delete_item(item_id: int) -> dict:
    """Delete an item no order line uses."""
    def _op() -> dict:
        item = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
        if not item:
            raise NotFoundError("item", item_id)
        if db.session.query(OrderLine.id).filter_by(item_id=item_id).first():
            raise ConflictError("Item is used by orders and cannot be deleted")
        snapshot = item.to_dict()
        db.session.delete(item)
        return snapshot

    return run_atomically(_op)


def list_items(*, category: str | None = None, page: int = 1, per_page: int | None = None) -> dict:
    query = db.session.query(Item)
    if category:
        enforce_rules_item({"category": category})
        query = query.filter(Item.category == category)
    query = query.order_by(Item.created_at.desc(), Item.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda i: i.to_dict())
