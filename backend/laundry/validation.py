from __future__ import annotations

import re
from datetime import date, datetime
from laundry.time_utils import parse_iso_date, parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, Date, DateTime, JSON
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError, ConflictError  # noqa: F401  (re-exported for routes)
from .models import ITEM_CATEGORIES, ORDER_STATUSES, SERVICE_TYPES


# Largest amount a signed 32-bit Integer column holds ($21,474,836.47)
MAX_AMOUNT_CENTS = 2_147_483_647

# ASCII digits only: no "1_000", no non-Latin digits
_PLAIN_INT = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - money_fields: integer cents that must be >= 0 and <= MAX_AMOUNT_CENTS
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    money_fields: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    """
    Strict integer coercion for ids and cents.

    Rejects bools, floats, decimals in strings and scientific notation so a
    JSON 12.5 never silently becomes 12 cents.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer", field=key)
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)", field=key)
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)", field=key)
        if not _PLAIN_INT.fullmatch(stripped):
            raise ValidationError(f"{key} must be an integer", field=key)
        return int(stripped)
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal", field=key)
    # Other types
    raise ValidationError(f"{key} must be an integer", field=key)


def coerce_money(key: str, value: Any) -> int:
    """Integer cents, 0 <= value <= MAX_AMOUNT_CENTS."""
    cents = coerce_int(key, value)
    if cents < 0:
        raise ValidationError(f"{key} must be >= 0", field=key)
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT_CENTS}", field=key)
    return cents


def coerce_date(key: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)", field=key)
        if parsed is None:
            raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)", field=key)
        return parsed
    raise ValidationError(f"{key} must be a date", field=key)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except Exception:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", field=col.key)
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime", field=col.key)
            return dt
        raise ValidationError(f"{col.key} must be a datetime", field=col.key)

    if isinstance(coltype, Date):
        return coerce_date(col.key, value)

    if isinstance(coltype, JSON):
        return value

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    - money_fields (non-negative integer cents)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", field=missing[0])

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}", field=k)
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}", field=k)

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", field=k)
            patch[k] = None
            continue

        if k in policy.money_fields:
            patch[k] = coerce_money(k, raw)
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", field=k)

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", field=k)

        patch[k] = val

    return patch


# =============================================================================
# DOMAIN RULES
# =============================================================================

def enforce_rules_order_status(patch: dict) -> None:
    if "status" in patch and patch["status"] not in ORDER_STATUSES:
        raise ValidationError(
            f"Invalid status '{patch['status']}'. Must be one of: {', '.join(ORDER_STATUSES)}",
            field="status",
        )


def enforce_rules_item(patch: dict) -> None:
    category = patch.get("category")
    if category is not None and category not in ITEM_CATEGORIES:
        raise ValidationError(
            f"Invalid category '{category}'. Must be one of: {', '.join(ITEM_CATEGORIES)}",
            field="category",
        )


def validate_order_lines(raw_lines: Any) -> list[dict]:
    """
    Normalize the "lines" array of an order payload.

    Each line: {"item_id": int, "quantity": int >= 1, "price_cents": int >= 0,
    "color": str | None, "services": [subset of wash/iron/repair]}
    """
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("lines must be a non-empty array", field="lines")

    lines: list[dict] = []
    for index, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{index}] must be an object", field="lines")

        if raw.get("item_id") is None or raw.get("quantity") is None or raw.get("price_cents") is None:
            raise ValidationError(
                f"lines[{index}] must have item_id, quantity, and price_cents",
                field="lines",
            )

        quantity = coerce_int("quantity", raw["quantity"])
        if quantity < 1:
            raise ValidationError(f"lines[{index}].quantity must be >= 1", field="lines")

        services = raw.get("services") or []
        if not isinstance(services, list):
            raise ValidationError(f"lines[{index}].services must be an array", field="lines")
        invalid = [s for s in services if s not in SERVICE_TYPES]
        if invalid:
            raise ValidationError(
                f"Invalid services: {', '.join(map(str, invalid))}. Must be: {', '.join(SERVICE_TYPES)}",
                field="lines",
            )

        color = raw.get("color")
        lines.append({
            "item_id": coerce_int("item_id", raw["item_id"]),
            "quantity": quantity,
            "price_cents": coerce_money("price_cents", raw["price_cents"]),
            "color": str(color).strip() if color is not None else None,
            # Keep request order, drop duplicates
            "services": list(dict.fromkeys(services)),
        })
    return lines


# =============================================================================
# QUERY STRING PARAMETERS
# =============================================================================

def parse_query_int(name: str, raw: str | None) -> int | None:
    if raw is None or raw == "":
        return None
    return coerce_int(name, raw)


def parse_query_date(name: str, raw: str | None) -> date | None:
    if raw is None or raw == "":
        return None
    return coerce_date(name, raw)


def parse_query_bool(raw: str | None) -> bool:
    return (raw or "").strip().lower() in ("1", "true", "yes")
