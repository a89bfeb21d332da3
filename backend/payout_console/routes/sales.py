# Overview: Flask API routes for sales; parses input and returns JSON responses.

"""
Sales Routes

The cart lives in the client. POST /preview prices it without writing;
POST / records it as one all-or-nothing submission. The ledger views
(list, changes, export) are for admin and manager.
"""

from flask import Blueprint, Response, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..errors import ConsoleError, ValidationError, error_response
from ..models.auth import ROLE_ADMIN, ROLE_MANAGER
from ..services import export_service, sales_service
from ..services.aggregation_service import SalesFilter, filter_sales
from ..services.sales_service import DraftSale
from ..time_utils import local_date, report_tz, utcnow
from ..validation import optional_text


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/preview")
@require_auth
def preview_sale_route():
    """
    Price a draft cart.

    Request body:
    {
        "lines": [{"item_code": "<qr token or id>", "quantity": 1, "unit_price_cents": 500000}],
        "customer": {"name": "...", "phone": "...", "address": "..."}
    }
    """
    try:
        draft = DraftSale.from_payload(request.get_json(silent=True))
        priced = sales_service.price_draft(draft)
        return jsonify({
            "lines": [p.to_dict() for p in priced],
            "totals": sales_service.draft_totals(priced),
        }), 200
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to preview sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("")
@require_auth
def record_sale_route():
    """
    Record the draft: one PENDING sale record per line, stock decremented.

    Same body as /preview plus an optional "store_label". On a write
    failure nothing is saved and the 503 details list each line's status.
    """
    try:
        data = request.get_json(silent=True)
        draft = DraftSale.from_payload(data)
        store_label = optional_text(data, "store_label") or current_app.config["DEFAULT_STORE_LABEL"]

        records = sales_service.record_sale(
            draft,
            store_label=store_label,
            actor_user_id=g.current_user.id,
        )
        return jsonify({
            "submission_ref": records[0].submission_ref,
            "items": [r.to_dict() for r in records],
            "totals": {
                "gross_cents": sum(r.gross_cents for r in records),
                "commission_cents": sum(r.commission_cents for r in records),
                "payout_cents": sum(r.payout_cents for r in records),
            },
        }), 201
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def list_sales_route():
    """
    Ledger snapshot, newest first.

    Query parameters: store, date (YYYY-MM-DD), month (YYYY-MM), brand.
    """
    try:
        filters = SalesFilter.from_args(request.args)
        records = filter_sales(sales_service.list_sales(), filters, report_tz())
        return jsonify({
            "items": [r.to_dict() for r in records],
            "count": len(records),
            "filters": filters.to_dict(),
        })
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/changes")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def sales_changes_route():
    """
    Polling: records created or settled after ledger tick `since`.

    Returns a cursor to pass as `since` on the next call.
    """
    try:
        raw = (request.args.get("since") or "").strip()
        if raw and not (raw.isascii() and raw.isdigit()):
            raise ValidationError("since must be a cursor returned by this endpoint")
        since = int(raw) if raw else None

        records = sales_service.sales_changed_since(since)
        if records:
            cursor = max(r.change_seq for r in records)
        else:
            cursor = since or 0

        return jsonify({
            "items": [r.to_dict() for r in records],
            "count": len(records),
            "cursor": cursor,
        })
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to poll sales changes")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/export.csv")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def export_sales_route():
    """CSV of the (filtered) ledger; same query parameters as the list."""
    try:
        tz = report_tz()
        filters = SalesFilter.from_args(request.args)
        records = filter_sales(sales_service.list_sales(), filters, tz)
        body = export_service.sales_csv(records, tz)
        filename = export_service.export_filename(local_date(utcnow(), tz))
        return Response(
            body,
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to export sales")
        return jsonify({"error": "Internal server error"}), 500
