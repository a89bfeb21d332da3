from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.catalog import VALID_PARTNERSHIP_TYPES
from .money import MAX_COMMISSION_BPS, percent_to_bps
from .time_utils import parse_iso_datetime


# Maximum unit price: 9,999,999.99 (999,999,999 minor units)
MAX_PRICE_CENTS = 999_999_999

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = frozenset()


BRAND_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_email", "partnership_type", "commission_rate_bps"},
    required_on_create={"name", "commission_rate_bps"},
)

INVENTORY_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"brand_id", "name", "size", "unit_price_cents", "stock_count", "store_label"},
    required_on_create={"brand_id", "name", "size"},
)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - reject floats, decimals and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValidationError(f"{col.key} must be a plain integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def json_object(data) -> dict:
    """Request body as a dict; a missing body is empty."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def optional_text(source, key: str) -> str | None:
    """Stripped string under `key`; None when absent or blank."""
    value = source.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip() or None


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}
    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def normalize_commission_input(payload: dict) -> dict:
    """
    Accept `commission_rate_percent` ("20", 12.5) in place of
    `commission_rate_bps` and convert it exactly.
    """
    if not isinstance(payload, dict) or "commission_rate_percent" not in payload:
        return payload
    data = dict(payload)
    pct = data.pop("commission_rate_percent")
    if "commission_rate_bps" in data:
        raise ValidationError("Give commission_rate_percent or commission_rate_bps, not both")
    data["commission_rate_bps"] = percent_to_bps(pct)
    return data


def enforce_rules_brand(patch: dict) -> None:
    if "commission_rate_bps" in patch:
        bps = patch["commission_rate_bps"]
        if bps is None or bps < 0 or bps > MAX_COMMISSION_BPS:
            raise ValidationError("commission rate must be between 0 and 100")

    if "partnership_type" in patch:
        ptype = (patch["partnership_type"] or "").upper().replace("-", "_")
        if ptype not in VALID_PARTNERSHIP_TYPES:
            raise ValidationError("partnership_type must be EXCLUSIVE or NON_EXCLUSIVE")
        patch["partnership_type"] = ptype

    email = patch.get("contact_email")
    if email == "":
        patch["contact_email"] = None
    elif email is not None and not EMAIL_RE.match(email):
        raise ValidationError("contact_email is not a valid email address")


def enforce_rules_inventory_item(patch: dict) -> None:
    price = patch.get("unit_price_cents")
    if price is not None:
        if price < 0:
            raise ValidationError("unit_price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"unit_price_cents cannot exceed {MAX_PRICE_CENTS}")

    stock = patch.get("stock_count")
    if stock is not None and stock < 0:
        raise ValidationError("stock_count must be >= 0 when adding an item")
