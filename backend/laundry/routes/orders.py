# Overview: Flask API routes for laundry orders; parses input and returns JSON responses.

# backend/laundry/routes/orders.py
"""
Order API Routes

DESIGN:
- Create orders with garment lines; order_code is allocated automatically
- Edit orders (lines replace, explicit status overrides, paid is read-only)
- Delete orders together with their invoices
- Operator reconcile endpoint to repair a drifted paid total
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import LaundryError
from ..services import order_service, invoice_service
from ..validation import parse_query_int, parse_query_date, parse_query_bool
from ..decorators import require_user


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


# =============================================================================
# ORDER MUTATIONS
# =============================================================================

@orders_bp.post("")
@require_user
def create_order_route():
    """
    Create an order for a customer.

    Request body:
    {
        "customer_id": 3,
        "total_amount_cents": 10000,
        "estimated_delivery": "2026-03-01",  (optional)
        "lines": [
            {"item_id": 1, "quantity": 2, "price_cents": 5000,
             "color": "blue", "services": ["wash", "iron"]}
        ]
    }

    Returns:
        201: order (status "received", paid 0)
        400: invalid input
        404: customer or item not found
    """
    try:
        order = order_service.create_order(
            request.get_json(silent=True),
            created_by_user_id=g.current_user.id,
        )
        return jsonify({"order": order.to_dict(include_related=True)}), 201

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<int:order_id>")
@require_user
def update_order_route(order_id: int):
    try:
        order = order_service.update_order(order_id, request.get_json(silent=True))
        return jsonify({"order": order.to_dict(include_related=True)}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>")
@require_user
def delete_order_route(order_id: int):
    """Delete an order with its lines and invoices."""
    try:
        snapshot = order_service.delete_order(order_id)
        return jsonify({"order": snapshot}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/reconcile")
@require_user
def reconcile_order_route(order_id: int):
    """
    Resum an order's invoices and rewrite paid, status and every remain.

    Query params:
        dry_run=true: report what would change without writing
    """
    try:
        result = order_service.reconcile(
            order_id,
            dry_run=parse_query_bool(request.args.get("dry_run")),
        )
        return jsonify({"reconciliation": result.to_dict()}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reconcile order")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ORDER QUERIES
# =============================================================================

@orders_bp.get("/<int:order_id>")
@require_user
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
        return jsonify({"order": order.to_dict(include_related=True)}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/invoices")
@require_user
def get_order_invoices_route(order_id: int):
    """All invoices of an order, oldest first."""
    try:
        invoices = invoice_service.get_order_invoices(order_id)
        return jsonify({
            "invoices": [inv.to_dict() for inv in invoices],
            "count": len(invoices),
        }), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get order invoices")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_user
def list_orders_route():
    """
    List orders, newest first.

    Query params:
        status, order_code, created_by, customer_name, customer_phone,
        from_date, to_date (YYYY-MM-DD), today (true/false), page, per_page
    """
    try:
        args = request.args
        result = order_service.list_orders(
            status=args.get("status") or None,
            order_code=parse_query_int("order_code", args.get("order_code")),
            created_by=parse_query_int("created_by", args.get("created_by")),
            customer_name=args.get("customer_name") or None,
            customer_phone=args.get("customer_phone") or None,
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
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500
