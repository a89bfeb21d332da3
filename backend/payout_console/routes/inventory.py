# Overview: Flask API routes for inventory items; parses input and returns JSON responses.

"""
Inventory Routes

Every signed-in role may look an item up (the counter scans QR tokens);
adding and archiving items is for admin and manager.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..errors import ConsoleError, error_response
from ..models.auth import ROLE_ADMIN, ROLE_MANAGER
from ..services import catalog_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def list_inventory_route():
    """
    Query parameters:
    - q: case-insensitive match on item or brand name
    - include_archived: include archived items (default: false)
    """
    include_archived = request.args.get("include_archived", "false").lower() == "true"
    items = catalog_service.list_inventory(
        filter_text=request.args.get("q"),
        include_archived=include_archived,
    )
    return jsonify({"items": [i.to_dict() for i in items], "count": len(items)})


@inventory_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def add_item_route():
    """
    Request body:
    {
        "brand_id": 1,              // required
        "name": "Air Max",          // required
        "size": "UK 9",             // required
        "unit_price_cents": 500000, // optional, default 0
        "stock_count": 3,           // optional, omit to leave stock untracked
        "store_label": "Main Store" // optional
    }
    """
    try:
        item = catalog_service.add_inventory_item(
            request.get_json(silent=True) or {},
            default_store_label=current_app.config["DEFAULT_STORE_LABEL"],
        )
        return jsonify(item.to_dict()), 201
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/lookup/<code>")
@require_auth
def lookup_item_route(code: str):
    """Resolve a scanned QR token or typed numeric id."""
    try:
        item = catalog_service.find_inventory_item(code)
        return jsonify(item.to_dict()), 200
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to look up inventory item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:item_id>/archive")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def archive_item_route(item_id: int):
    try:
        item = catalog_service.archive_inventory_item(item_id)
        return jsonify(item.to_dict()), 200
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to archive inventory item")
        return jsonify({"error": "Internal server error"}), 500
