from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

PAYOUT_PENDING = "PENDING"
PAYOUT_SETTLED = "SETTLED"


class SaleRecord(db.Model):
    """
    One line of a completed checkout.

    Amounts are frozen at sale time: gross = unit price x quantity,
    commission from the item's rate snapshot, payout = gross - commission.
    Only the settlement fields ever change, PENDING -> SETTLED, once.

    The brand is referenced by id; brand_name is resolved through the
    relationship so renames show up on old records.
    """
    __tablename__ = "sale_records"
    __table_args__ = (
        db.Index("ix_sale_records_brand_status", "brand_id", "payout_status"),
        db.Index("ix_sale_records_created", "created_at"),
        db.Index("ix_sale_records_updated", "updated_at"),
        db.Index("ix_sale_records_change_seq", "change_seq"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # Shared by every line of one checkout
    submission_ref = db.Column(db.String(32), nullable=False, index=True)

    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    item_name = db.Column(db.String(255), nullable=False)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=False)
    size_label = db.Column(db.String(32), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    commission_rate_bps = db.Column(db.Integer, nullable=False)
    gross_cents = db.Column(db.Integer, nullable=False)
    commission_cents = db.Column(db.Integer, nullable=False)
    payout_cents = db.Column(db.Integer, nullable=False)

    payout_status = db.Column(db.String(16), nullable=False, default=PAYOUT_PENDING)

    customer_name = db.Column(db.String(120), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    customer_address = db.Column(db.String(255), nullable=True)

    store_label = db.Column(db.String(120), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    # Ledger clock tick of the transaction that last wrote this row
    change_seq = db.Column(db.Integer, nullable=False, default=0)
    settled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    settled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    brand = db.relationship("Brand", lazy="joined")
    item = db.relationship("InventoryItem")

    @property
    def brand_name(self) -> str | None:
        return self.brand.name if self.brand is not None else None

    @property
    def is_pending(self) -> bool:
        return self.payout_status == PAYOUT_PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "submission_ref": self.submission_ref,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "brand_id": self.brand_id,
            "brand_name": self.brand_name,
            "size_label": self.size_label,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "commission_rate_bps": self.commission_rate_bps,
            "gross_cents": self.gross_cents,
            "commission_cents": self.commission_cents,
            "payout_cents": self.payout_cents,
            "payout_status": self.payout_status,
            "customer": {
                "name": self.customer_name,
                "phone": self.customer_phone,
                "address": self.customer_address,
            },
            "store_label": self.store_label,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "change_seq": self.change_seq,
            "settled_at": to_utc_z(self.settled_at),
        }


class LedgerClock(db.Model):
    """
    Single-row counter ticked once by every transaction that writes sales.

    The UPDATE holds the row until commit, so writers take ticks one at a
    time and tick order is commit order. Pollers page on change_seq.
    """
    __tablename__ = "ledger_clock"

    id = db.Column(db.Integer, primary_key=True)
    seq = db.Column(db.Integer, nullable=False, default=0)
