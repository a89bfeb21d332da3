# Overview: Flask API routes for partner payouts; parses input and returns JSON responses.

"""
Payout Routes

Aggregates are recomputed from the ledger snapshot on every request.
Settlement is admin only and takes the same filters the view used, so
what is settled is what was shown.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import ConsoleError, ValidationError, error_response
from ..models.auth import ROLE_ADMIN, ROLE_MANAGER
from ..services import aggregation_service, sales_service, settlement_service
from ..services.aggregation_service import SalesFilter
from ..time_utils import report_tz
from ..validation import json_object, optional_text


payouts_bp = Blueprint("payouts", __name__, url_prefix="/api/payouts")


@payouts_bp.get("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def list_payouts_route():
    """
    Per-brand totals.

    Query parameters: store, date, month, brand, and
    order ("insertion" or "payout", default "payout").
    """
    try:
        filters = SalesFilter.from_args(request.args)
        aggregates = aggregation_service.aggregate_by_brand(
            sales_service.list_sales(),
            filters,
            report_tz(),
            order=request.args.get("order", aggregation_service.ORDER_PAYOUT),
        )
        return jsonify({
            "items": [a.to_dict() for a in aggregates],
            "count": len(aggregates),
            "filters": filters.to_dict(),
        })
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to aggregate payouts")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.get("/dashboard")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def dashboard_route():
    """Revenue, commission, pending payouts and the top partners."""
    try:
        filters = SalesFilter.from_args(request.args)
        top = request.args.get("top", 4, type=int)
        if top < 1:
            top = 1
        summary = aggregation_service.summarize(sales_service.list_sales(), filters, report_tz(), top=top)
        return jsonify(summary.to_dict())
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.get("/<brand_name>/pending")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def pending_route(brand_name: str):
    """What a settlement with the same filters would transition."""
    try:
        filters = SalesFilter.from_args(request.args)
        records = settlement_service.pending_sales(brand_name, filters, report_tz())
        return jsonify({
            "brand_name": brand_name,
            "items": [r.to_dict() for r in records],
            "count": len(records),
            "pending_payout_cents": sum(r.payout_cents for r in records),
        })
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list pending sales")
        return jsonify({"error": "Internal server error"}), 500


@payouts_bp.post("/settle")
@require_auth
@require_role(ROLE_ADMIN)
def settle_route():
    """
    Request body:
    {
        "brand_name": "Nike",  // required
        "month": "2024-10",    // optional; also "date" and "store"
    }

    409 when nothing is pending for the selection.
    """
    try:
        data = json_object(request.get_json(silent=True))
        brand_name = optional_text(data, "brand_name")
        if not brand_name:
            raise ValidationError("brand_name is required")

        result = settlement_service.settle_brand(
            brand_name,
            filters=SalesFilter.from_args(data),
            tz=report_tz(),
            actor_user_id=g.current_user.id,
        )
        return jsonify(result.to_dict()), 200
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to settle payouts")
        return jsonify({"error": "Internal server error"}), 500
