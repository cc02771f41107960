# Overview: Flask API routes for the item price list.

from flask import Blueprint, request, jsonify, current_app

from ..errors import LaundryError
from ..services import catalog_service
from ..validation import parse_query_int
from ..decorators import require_user


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.post("")
@require_user
def create_item_route():
    try:
        item = catalog_service.create_item(request.get_json(silent=True))
        return jsonify({"item": item.to_dict()}), 201

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.put("")
@require_user
def bulk_update_prices_route():
    """
    Update several items' prices at once (all or nothing).

    Request body:
    {
        "updates": [
            {"id": 1, "wash_price_cents": 250},
            {"item_name": "Shirt", "iron_price_cents": 150}
        ]
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        items = catalog_service.bulk_update_prices(data.get("updates"))
        return jsonify({
            "items": [item.to_dict() for item in items],
            "count": len(items),
        }), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to bulk update item prices")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.get("")
@require_user
def list_items_route():
    """Query params: category, page, per_page."""
    try:
        args = request.args
        result = catalog_service.list_items(
            category=args.get("category") or None,
            page=parse_query_int("page", args.get("page")) or 1,
            per_page=parse_query_int("per_page", args.get("per_page")),
        )
        return jsonify(result), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list items")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.get("/<int:item_id>")
@require_user
def get_item_route(item_id: int):
    try:
        item = catalog_service.get_item(item_id)
        return jsonify({"item": item.to_dict()}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.put("/<int:item_id>")
@require_user
def update_item_route(item_id: int):
    try:
        item = catalog_service.update_item(item_id, request.get_json(silent=True))
        return jsonify({"item": item.to_dict()}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.delete("/<int:item_id>")
@require_user
def delete_item_route(item_id: int):
    """409 while any order line uses the item."""
    try:
        snapshot = catalog_service.delete_item(item_id)
        return jsonify({"item": snapshot}), 200

    except LaundryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete item")
        return jsonify({"error": "Internal server error"}), 500
