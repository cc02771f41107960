# Overview: Flask API routes for the customer directory.

from flask import Blueprint, request, jsonify, current_app

from ..errors import LaundryError
from ..services import customer_service
from ..validation import parse_query_int
from ..decorators import require_user


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("")
@require_user
def create_customer_route():
    """
    Create a customer; customer_code is assigned automatically.

    Returns:
        201: customer
        400: invalid input
        409: a customer with this name already exists
    """
    try:
        customer = customer_service.create_customer(request.get_json(silent=True))
        return jsonify({"customer": customer.to_dict()}), 201

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("")
@require_user
def list_customers_route():
    """Query params: search (name, phone or exact code), page, per_page."""
    try:
        args = request.args
        result = customer_service.list_customers(
            search=args.get("search") or None,
            page=parse_query_int("page", args.get("page")) or 1,
            per_page=parse_query_int("per_page", args.get("per_page")),
        )
        return jsonify(result), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list customers")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
@require_user
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id)
        return jsonify({"customer": customer.to_dict()}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<int:customer_id>")
@require_user
def update_customer_route(customer_id: int):
    try:
        customer = customer_service.update_customer(customer_id, request.get_json(silent=True))
        return jsonify({"customer": customer.to_dict()}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
@require_user
def delete_customer_route(customer_id: int):
    """409 while the customer still has orders."""
    try:
        snapshot = customer_service.delete_customer(customer_id)
        return jsonify({"customer": snapshot}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500
