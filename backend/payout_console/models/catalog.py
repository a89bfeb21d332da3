from __future__ import annotations

from ..extensions import db
from ..money import bps_to_percent
from ..time_utils import to_utc_z, utcnow

PARTNERSHIP_EXCLUSIVE = "EXCLUSIVE"
PARTNERSHIP_NON_EXCLUSIVE = "NON_EXCLUSIVE"
VALID_PARTNERSHIP_TYPES = {PARTNERSHIP_EXCLUSIVE, PARTNERSHIP_NON_EXCLUSIVE}

ITEM_ACTIVE = "ACTIVE"
ITEM_ARCHIVED = "ARCHIVED"


class Brand(db.Model):
    """
    Brand partner whose goods are sold on commission.

    commission_rate_bps is the operator's take (10000 = 100%). Items copy it
    at creation time, so editing a brand never reprices existing stock or
    past sales.
    """
    __tablename__ = "brands"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True, index=True)
    contact_email = db.Column(db.String(255), nullable=True)
    partnership_type = db.Column(db.String(16), nullable=False, default=PARTNERSHIP_NON_EXCLUSIVE)
    commission_rate_bps = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Brand id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_email": self.contact_email,
            "partnership_type": self.partnership_type,
            "commission_rate_bps": self.commission_rate_bps,
            "commission_rate_percent": bps_to_percent(self.commission_rate_bps),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryItem(db.Model):
    """
    One stock-tracked product variant (SKU).

    stock_count of None or 0 means the item is not stock-tracked; sales leave
    it untouched. Tracked counts may go negative. Items are archived, never
    deleted, so sale history keeps its item_id.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.Index("ix_inventory_items_brand_status", "brand_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # Value encoded on the printed QR tag
    qr_token = db.Column(db.String(32), nullable=False, unique=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=False, index=True)
    brand_name = db.Column(db.String(120), nullable=False)
    size = db.Column(db.String(32), nullable=False)

    unit_price_cents = db.Column(db.Integer, nullable=False)
    stock_count = db.Column(db.Integer, nullable=True)
    commission_rate_bps = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=ITEM_ACTIVE, index=True)
    store_label = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    brand = db.relationship("Brand", backref=db.backref("inventory_items", lazy=True))

    @property
    def tracks_stock(self) -> bool:
        return bool(self.stock_count)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "qr_token": self.qr_token,
            "name": self.name,
            "brand_id": self.brand_id,
            "brand_name": self.brand_name,
            "size": self.size,
            "unit_price_cents": self.unit_price_cents,
            "stock_count": self.stock_count,
            "commission_rate_bps": self.commission_rate_bps,
            "status": self.status,
            "store_label": self.store_label,
            "created_at": to_utc_z(self.created_at),
        }
