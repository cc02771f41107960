# Overview: Flask API routes for invoices; parses input and returns JSON responses.

# backend/laundry/routes/invoices.py
"""
Invoice API Routes

WHY: Invoices are how payments are recorded against laundry orders. Every
create, edit and delete reconciles the parent order (paid total, status and
remaining balance) in the same transaction.

ERRORS:
- 400: invalid amounts or fields (nothing written)
- 404: invoice or order does not exist
- 409: concurrent update conflict after retries
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import LaundryError
from ..services import invoice_service
from ..validation import parse_query_int, parse_query_date, parse_query_bool
from ..decorators import require_user


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


# =============================================================================
# INVOICE MUTATIONS
# =============================================================================

@invoices_bp.post("")
@require_user
def create_invoice_route():
    """
    Record a payment against an order.

    Request body:
    {
        "order_id": 12,
        "total_cents": 10000,
        "paid_cents": 6000,
        "itbis_cents": 0,           (optional)
        "discount_cents": 0,        (optional)
        "cash_amount_cents": 6000,  (optional)
        "ncf": "B0100000001",       (optional)
        "location": "Front desk",   (optional)
        "delivery_date": "2026-03-01" (optional)
    }

    Returns:
        201: invoice (with populated order)
        400: invalid input
        404: order not found
    """
    try:
        invoice = invoice_service.create_invoice(request.get_json(silent=True))
        return jsonify({"invoice": invoice_service.serialize_invoice(invoice)}), 201

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.put("/<int:invoice_id>")
@require_user
def update_invoice_route(invoice_id: int):
    """
    Edit an invoice. Only the fields sent change; order_id moves the invoice.

    Returns:
        200: updated invoice
        400: invalid input
        404: invoice or target order not found
    """
    try:
        invoice = invoice_service.update_invoice(invoice_id, request.get_json(silent=True))
        return jsonify({"invoice": invoice_service.serialize_invoice(invoice)}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>")
@require_user
def delete_invoice_route(invoice_id: int):
    """
    Delete an invoice and reconcile its order.

    Returns:
        200: {"invoice": deleted snapshot, "order": ..., "siblings": [...]}
        404: invoice not found
    """
    try:
        deletion = invoice_service.delete_invoice(invoice_id)
        return jsonify(invoice_service.serialize_deletion(deletion)), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete invoice")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# INVOICE QUERIES
# =============================================================================

@invoices_bp.get("/<int:invoice_id>")
@require_user
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(invoice_id)
        return jsonify({"invoice": invoice_service.serialize_invoice(invoice)}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("")
@require_user
def list_invoices_route():
    """
    List invoices, newest first.

    Query params:
        order_id, customer_code, customer_name, customer_phone, status,
        delivery_from, delivery_to, from_date, to_date (YYYY-MM-DD),
        today (true/false), page, per_page
    """
    try:
        args = request.args
        result = invoice_service.list_invoices(
            order_id=parse_query_int("order_id", args.get("order_id")),
            customer_code=parse_query_int("customer_code", args.get("customer_code")),
            customer_name=args.get("customer_name") or None,
            customer_phone=args.get("customer_phone") or None,
            status=args.get("status") or None,
            delivery_from=parse_query_date("delivery_from", args.get("delivery_from")),
            delivery_to=parse_query_date("delivery_to", args.get("delivery_to")),
            from_date=parse_query_date("from_date", args.get("from_date")),
            to_date=parse_query_date("to_date", args.get("to_date")),
            today=parse_query_bool(args.get("today")),
            page=parse_query_int("page", args.get("page")) or 1,
            per_page=parse_query_int("per_page", args.get("per_page")),
        )
        return jsonify(result), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list invoices")
        return jsonify({"error": "Internal server error"}), 500
