# Overview: Flask API routes for brand partners; parses input and returns JSON responses.

"""
Brand Routes

SECURITY: All routes require authentication.
- Listing brands is open to admin and manager
- Create/update/delete are admin only

Commission may be sent as commission_rate_bps (2000) or
commission_rate_percent ("20").
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..errors import ConsoleError, error_response
from ..models.auth import ROLE_ADMIN, ROLE_MANAGER
from ..services import catalog_service


brands_bp = Blueprint("brands", __name__, url_prefix="/api/brands")


@brands_bp.get("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def list_brands_route():
    """
    Query parameters:
    - include_inactive: include deactivated brands (default: false)
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    brands = catalog_service.list_brands(include_inactive=include_inactive)
    return jsonify({"items": [b.to_dict() for b in brands], "count": len(brands)})


@brands_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_brand_route():
    try:
        brand = catalog_service.create_brand(request.get_json(silent=True) or {})
        return jsonify(brand.to_dict()), 201
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create brand")
        return jsonify({"error": "Internal server error"}), 500


@brands_bp.patch("/<int:brand_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_brand_route(brand_id: int):
    try:
        brand = catalog_service.update_brand(brand_id, request.get_json(silent=True) or {})
        return jsonify(brand.to_dict()), 200
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update brand")
        return jsonify({"error": "Internal server error"}), 500


@brands_bp.delete("/<int:brand_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_brand_route(brand_id: int):
    """Deletes an unused brand; a brand with inventory or sales is deactivated."""
    try:
        outcome = catalog_service.delete_brand(brand_id)
        return jsonify({"id": brand_id, "outcome": outcome}), 200
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete brand")
        return jsonify({"error": "Internal server error"}), 500
