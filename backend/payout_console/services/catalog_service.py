# Overview: Service-layer operations for brands and inventory; encapsulates business logic and database work.

"""
Catalog Service

Brands carry the commission terms; inventory items snapshot the brand's
rate when they are added, so a later change to the brand only affects new
stock. Items are never deleted, only archived, because sale records keep
pointing at them.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import or_

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Brand, InventoryItem, SaleRecord
from ..models.catalog import ITEM_ACTIVE, ITEM_ARCHIVED
from ..validation import (
    BRAND_POLICY,
    INVENTORY_ITEM_POLICY,
    enforce_rules_brand,
    enforce_rules_inventory_item,
    normalize_commission_input,
    validate_payload,
)
from .concurrency import commit_or_raise

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Brands
# ---------------------------------------------------------------------------

def list_brands(include_inactive: bool = False) -> list[Brand]:
    q = db.session.query(Brand)
    if not include_inactive:
        q = q.filter(Brand.is_active.is_(True))
    return q.order_by(Brand.created_at.desc(), Brand.id.desc()).all()


def get_brand(brand_id: int) -> Brand:
    brand = db.session.get(Brand, brand_id)
    if not brand:
        raise NotFoundError(f"Brand {brand_id} not found")
    return brand


def get_brand_by_name(name: str) -> Brand:
    brand = db.session.query(Brand).filter(Brand.name == (name or "").strip()).first()
    if not brand:
        raise NotFoundError(f"Brand {name!r} not found")
    return brand


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Brand).filter(Brand.name == name)
    if exclude_id is not None:
        q = q.filter(Brand.id != exclude_id)
    if q.first():
        raise ConflictError(f"Brand '{name}' already exists")


def create_brand(payload: dict) -> Brand:
    """
    Create a brand from an API-shaped payload.

    Accepts commission as `commission_rate_bps` or `commission_rate_percent`.
    """
    patch = validate_payload(
        model=Brand,
        payload=normalize_commission_input(payload),
        policy=BRAND_POLICY,
        partial=False,
    )
    enforce_rules_brand(patch)
    _ensure_unique_name(patch["name"])

    brand = Brand(**patch)
    db.session.add(brand)
    commit_or_raise("Brand could not be saved")
    logger.info("Brand %s created (commission %s bps)", brand.name, brand.commission_rate_bps)
    return brand


def update_brand(brand_id: int, payload: dict) -> Brand:
    """
    Patch a brand. A rename is copied onto the brand's inventory items;
    sale records resolve the name through brand_id and need no update.
    """
    brand = get_brand(brand_id)
    patch = validate_payload(
        model=Brand,
        payload=normalize_commission_input(payload),
        policy=BRAND_POLICY,
        partial=True,
    )
    enforce_rules_brand(patch)

    new_name = patch.get("name")
    if new_name and new_name != brand.name:
        _ensure_unique_name(new_name, exclude_id=brand.id)
        db.session.query(InventoryItem).filter(
            InventoryItem.brand_id == brand.id
        ).update({InventoryItem.brand_name: new_name}, synchronize_session=False)

    for k, v in patch.items():
        setattr(brand, k, v)

    commit_or_raise("Brand could not be saved")
    return brand


def delete_brand(brand_id: int) -> str:
    """
    Remove a brand.

    Brands still referenced by inventory or sales are deactivated instead,
    so history keeps resolving their name. Returns "deleted" or
    "deactivated".
    """
    brand = get_brand(brand_id)

    referenced = (
        db.session.query(InventoryItem.id).filter_by(brand_id=brand.id).first() is not None
        or db.session.query(SaleRecord.id).filter_by(brand_id=brand.id).first() is not None
    )
    if referenced:
        brand.is_active = False
        outcome = "deactivated"
    else:
        db.session.delete(brand)
        outcome = "deleted"

    commit_or_raise("Brand could not be removed")
    logger.info("Brand %s %s", brand_id, outcome)
    return outcome


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

def add_inventory_item(payload: dict, default_store_label: str) -> InventoryItem:
    """
    Add a SKU under an active brand, snapshotting its commission rate.
    """
    patch = validate_payload(
        model=InventoryItem,
        payload=payload,
        policy=INVENTORY_ITEM_POLICY,
        partial=False,
    )
    enforce_rules_inventory_item(patch)

    brand = get_brand(patch["brand_id"])
    if not brand.is_active:
        raise ValidationError(f"Brand '{brand.name}' is inactive")

    item = InventoryItem(
        qr_token=uuid.uuid4().hex,
        name=patch["name"],
        brand_id=brand.id,
        brand_name=brand.name,
        size=patch["size"],
        unit_price_cents=patch.get("unit_price_cents") or 0,
        stock_count=patch.get("stock_count"),
        commission_rate_bps=brand.commission_rate_bps,
        status=ITEM_ACTIVE,
        store_label=patch.get("store_label") or default_store_label,
    )
    db.session.add(item)
    commit_or_raise("Inventory item could not be saved")
    return item


def find_inventory_item(code) -> InventoryItem:
    """
    Resolve a scanned QR token or a typed numeric id.

    Raises NotFoundError when nothing matches.
    """
    text = str(code if code is not None else "").strip()
    if not text:
        raise NotFoundError("Item code is required")

    item = db.session.query(InventoryItem).filter_by(qr_token=text).first()
    if item is None and text.isascii() and text.isdigit():
        item = db.session.get(InventoryItem, int(text))
    if item is None:
        raise NotFoundError(f"Item {text} not found. Check the code and try again.")
    return item


def archive_inventory_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if not item:
        raise NotFoundError(f"Item {item_id} not found")
    if item.status != ITEM_ARCHIVED:
        item.status = ITEM_ARCHIVED
        commit_or_raise("Inventory item could not be archived")
    return item


def list_inventory(filter_text: str | None = None, include_archived: bool = False) -> list[InventoryItem]:
    q = db.session.query(InventoryItem)
    if not include_archived:
        q = q.filter(InventoryItem.status == ITEM_ACTIVE)
    if filter_text and filter_text.strip():
        pattern = f"%{filter_text.strip()}%"
        q = q.filter(or_(InventoryItem.name.ilike(pattern), InventoryItem.brand_name.ilike(pattern)))
    return q.order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc()).all()
