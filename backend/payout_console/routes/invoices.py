# Overview: Flask API routes for partner invoices and email delivery.

"""
Invoice Routes

- GET  /api/invoices/preview  rendered statement HTML for one brand
- POST /api/invoices/send     build the statement from the ledger and mail it
- POST /api/email             render caller-supplied statement data and mail it

Admin and manager only. Delivery failures answer 502 with `retryable`
telling the client whether sending again may succeed.
"""

from flask import Blueprint, Response, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..errors import ConsoleError, ValidationError, error_response
from ..models.auth import ROLE_ADMIN, ROLE_MANAGER
from ..services import email_service, invoice_service
from ..services.aggregation_service import SalesFilter
from ..time_utils import local_date, parse_iso_date, report_tz, utcnow
from ..validation import json_object, optional_text


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")
email_bp = Blueprint("email", __name__, url_prefix="/api/email")


def _invoice_date(raw, tz):
    try:
        parsed = parse_iso_date(raw)
    except ValueError:
        raise ValidationError("invoice_date must be YYYY-MM-DD")
    return parsed or local_date(utcnow(), tz)


def _brand_name(source) -> str:
    brand_name = optional_text(source, "brand_name")
    if not brand_name:
        raise ValidationError("brand_name is required")
    return brand_name


@invoices_bp.get("/preview")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def preview_invoice_route():
    """
    Query parameters: brand_name (required), store, date, month,
    invoice_date (YYYY-MM-DD, default today in the reporting zone).
    """
    try:
        tz = report_tz()
        statement = invoice_service.build_brand_statement(
            _brand_name(request.args),
            SalesFilter.from_args(request.args),
            tz,
            _invoice_date(request.args.get("invoice_date"), tz),
        )
        html = invoice_service.render_invoice_html(
            statement, invoice_service.SellerIdentity.from_config(current_app.config)
        )
        return Response(html, mimetype="text/html")
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to render invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/send")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def send_invoice_route():
    """
    Request body:
    {
        "brand_name": "Nike",          // required
        "month": "2024-10",            // optional; also "date" and "store"
        "to_email": "ops@nike.example",// optional, default the brand's contact email
        "subject": "...",              // optional
        "invoice_date": "2024-11-01"   // optional
    }
    """
    try:
        data = json_object(request.get_json(silent=True))
        tz = report_tz()
        statement, message_id = email_service.send_brand_statement(
            _brand_name(data),
            SalesFilter.from_args(data),
            tz,
            _invoice_date(data.get("invoice_date"), tz),
            to_email=optional_text(data, "to_email"),
            subject=optional_text(data, "subject"),
        )
        return jsonify({"id": message_id, "statement": statement.to_payload()}), 200
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to send invoice")
        return jsonify({"error": "Internal server error"}), 500


@email_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def send_email_route():
    """
    Request body: {to_email, to_name, subject, data}, where data carries
    invoice_date, invoice_period, items and totals in minor units.
    """
    try:
        payload = json_object(request.get_json(silent=True))
        message_id = email_service.send_invoice_email(
            optional_text(payload, "to_email"),
            optional_text(payload, "to_name"),
            optional_text(payload, "subject"),
            payload.get("data"),
        )
        return jsonify({"id": message_id}), 200
    except ConsoleError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to send email")
        return jsonify({"error": "Internal server error"}), 500
