# Overview: Typed domain errors shared by services, routes and the CLI.

"""
Error taxonomy for the ledger.

Services raise these; routes map them to HTTP through status_code and
to_dict(). Anything that is not a LaundryError is a bug and becomes a 500.

- NotFoundError:   404, entity + id missing
- ValidationError: 400, bad input (field + reason)
- ConflictError:   409, business rule conflict or commit conflict after retries
"""

from __future__ import annotations


class LaundryError(Exception):
    """Base class for errors that round-trip to an HTTP status."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        body.update(self.details)
        return body


class NotFoundError(LaundryError):
    """404-level: a referenced order, invoice, customer, item or user is missing."""
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(
            f"{entity.capitalize()} {entity_id} not found",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(LaundryError, ValueError):
    """400-level input problem."""
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, details={"field": field} if field else None)
        self.field = field
        self.reason = message


class ConflictError(LaundryError, ValueError):
    """409-level business rule conflict (duplicate name, referenced entity, lost commit race)."""
    status_code = 409
