"""
Sales Service - turns a cart into commission-split sale records

WHY: Every line sold on commission owes the brand a payout. The split is
frozen at sale time from the item's commission snapshot, so later edits to
the brand never rewrite history.

DESIGN:
- The in-progress cart is a DraftSale value object owned by the caller
  (browser session, CLI, test). This module never stores drafts.
- A submission is all-or-nothing: every line and every stock decrement is
  written in one transaction. If the store fails part-way, nothing is kept
  and the error reports which line failed.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, PersistenceError, ValidationError
from ..extensions import db
from ..models import InventoryItem, SaleRecord
from ..models.catalog import ITEM_ARCHIVED
from ..models.sales import PAYOUT_PENDING
from ..money import commission_cents
from ..time_utils import utcnow
from .catalog_service import find_inventory_item
from .concurrency import commit_or_raise, next_change_seq

logger = logging.getLogger(__name__)

LINE_ROLLED_BACK = "rolled_back"
LINE_FAILED = "failed"
LINE_NOT_ATTEMPTED = "not_attempted"


@dataclass(frozen=True)
class CustomerInfo:
    name: str | None = None
    phone: str | None = None
    address: str | None = None

    @classmethod
    def from_payload(cls, data: dict | None) -> "CustomerInfo":
        data = data or {}
        if not isinstance(data, dict):
            raise ValidationError("customer must be an object")

        def _clean(key):
            value = data.get(key)
            value = str(value).strip() if value is not None else ""
            return value or None

        return cls(name=_clean("name"), phone=_clean("phone"), address=_clean("address"))

    def to_payload(self) -> dict:
        return {"name": self.name, "phone": self.phone, "address": self.address}


@dataclass(frozen=True)
class CartLine:
    """
    One scanned item in the cart.

    item_code is the QR token or numeric id. unit_price_cents overrides the
    catalog price when the seller edits it at the counter.
    """
    item_code: str
    quantity: int = 1
    unit_price_cents: int | None = None

    def to_payload(self) -> dict:
        return {
            "item_code": self.item_code,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
        }


@dataclass(frozen=True)
class DraftSale:
    lines: tuple[CartLine, ...] = ()
    customer: CustomerInfo = field(default_factory=CustomerInfo)

    def with_line(self, line: CartLine) -> "DraftSale":
        return replace(self, lines=self.lines + (line,))

    def without_line(self, index: int) -> "DraftSale":
        if not 0 <= index < len(self.lines):
            raise ValidationError(f"Cart has no line {index}")
        return replace(self, lines=self.lines[:index] + self.lines[index + 1:])

    def with_customer(self, customer: CustomerInfo) -> "DraftSale":
        return replace(self, customer=customer)

    @classmethod
    def from_payload(cls, data: dict | None) -> "DraftSale":
        """
        Parse {"lines": [{"item_code", "quantity", "unit_price_cents"}],
        "customer": {...}}. `item_id` is accepted as an alias of item_code.
        """
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        raw_lines = data.get("lines") or []
        if not isinstance(raw_lines, list):
            raise ValidationError("lines must be a list")

        lines = []
        for i, raw in enumerate(raw_lines):
            if not isinstance(raw, dict):
                raise ValidationError(f"Line {i} must be an object")
            code = raw.get("item_code", raw.get("item_id"))
            if code is None or str(code).strip() == "":
                raise ValidationError(f"Line {i}: item_code is required")
            lines.append(CartLine(
                item_code=str(code).strip(),
                quantity=_parse_int(raw.get("quantity", 1), f"Line {i}: quantity"),
                unit_price_cents=(
                    None if raw.get("unit_price_cents") is None
                    else _parse_int(raw["unit_price_cents"], f"Line {i}: unit_price_cents")
                ),
            ))
        return cls(lines=tuple(lines), customer=CustomerInfo.from_payload(data.get("customer")))

    def to_payload(self) -> dict:
        return {
            "lines": [line.to_payload() for line in self.lines],
            "customer": self.customer.to_payload(),
        }


@dataclass(frozen=True)
class LineAmounts:
    gross_cents: int
    commission_cents: int
    payout_cents: int


@dataclass(frozen=True)
class PricedLine:
    index: int
    item: InventoryItem
    quantity: int
    unit_price_cents: int
    commission_rate_bps: int
    amounts: LineAmounts

    def to_dict(self) -> dict:
        return {
            "line": self.index,
            "item_id": self.item.id,
            "item_name": self.item.name,
            "brand_name": self.item.brand_name,
            "size_label": self.item.size,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "commission_rate_bps": self.commission_rate_bps,
            "gross_cents": self.amounts.gross_cents,
            "commission_cents": self.amounts.commission_cents,
            "payout_cents": self.amounts.payout_cents,
        }


def _parse_int(value, label: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{label} must be an integer")


def compute_line_amounts(unit_price_cents: int, quantity: int, commission_rate_bps: int) -> LineAmounts:
    """
    gross = price x qty; commission from the rate snapshot (half-up to the
    minor unit); payout = gross - commission. payout + commission == gross.
    """
    if quantity <= 0:
        raise ValidationError("quantity must be greater than 0")
    if unit_price_cents < 0:
        raise ValidationError("unit price cannot be negative")
    if not 0 <= commission_rate_bps <= 10_000:
        raise ValidationError("commission rate must be between 0 and 100")

    gross = unit_price_cents * quantity
    commission = commission_cents(gross, commission_rate_bps)
    return LineAmounts(gross_cents=gross, commission_cents=commission, payout_cents=gross - commission)


def price_draft(draft: DraftSale) -> list[PricedLine]:
    """
    Resolve and price every cart line without writing anything.

    Raises ValidationError for an empty cart, bad quantity/price or an
    archived item, NotFoundError for an unknown item code.
    """
    if not draft.lines:
        raise ValidationError("Cart is empty")

    priced = []
    for i, line in enumerate(draft.lines):
        item = find_inventory_item(line.item_code)
        if item.status == ITEM_ARCHIVED:
            raise ValidationError(f"Line {i}: {item.name} is archived and cannot be sold")

        unit_price = item.unit_price_cents if line.unit_price_cents is None else line.unit_price_cents
        try:
            amounts = compute_line_amounts(unit_price, line.quantity, item.commission_rate_bps)
        except ValidationError as exc:
            raise ValidationError(f"Line {i}: {exc.message}", details={"line": i}) from exc

        priced.append(PricedLine(
            index=i,
            item=item,
            quantity=line.quantity,
            unit_price_cents=unit_price,
            commission_rate_bps=item.commission_rate_bps,
            amounts=amounts,
        ))
    return priced


def draft_totals(priced: list[PricedLine]) -> dict:
    return {
        "gross_cents": sum(p.amounts.gross_cents for p in priced),
        "commission_cents": sum(p.amounts.commission_cents for p in priced),
        "payout_cents": sum(p.amounts.payout_cents for p in priced),
    }


def _line_report(priced: list[PricedLine], failed_index: int | None) -> dict:
    lines = []
    for p in priced:
        if failed_index is None or p.index < failed_index:
            status = LINE_ROLLED_BACK
        elif p.index == failed_index:
            status = LINE_FAILED
        else:
            status = LINE_NOT_ATTEMPTED
        lines.append({"line": p.index, "item_id": p.item.id, "status": status})
    return {"failed_line": failed_index, "lines": lines}


def _persist_line(
    priced: PricedLine,
    *,
    submission_ref: str,
    customer: CustomerInfo,
    store_label: str,
    actor_user_id: int | None,
    now: datetime,
    change_seq: int,
) -> SaleRecord:
    item = priced.item
    record = SaleRecord(
        submission_ref=submission_ref,
        item_id=item.id,
        item_name=item.name,
        brand_id=item.brand_id,
        size_label=item.size or "Free",
        quantity=priced.quantity,
        unit_price_cents=priced.unit_price_cents,
        commission_rate_bps=priced.commission_rate_bps,
        gross_cents=priced.amounts.gross_cents,
        commission_cents=priced.amounts.commission_cents,
        payout_cents=priced.amounts.payout_cents,
        payout_status=PAYOUT_PENDING,
        customer_name=customer.name,
        customer_phone=customer.phone,
        customer_address=customer.address,
        store_label=store_label,
        created_at=now,
        updated_at=now,
        change_seq=change_seq,
        created_by_user_id=actor_user_id,
    )
    db.session.add(record)

    # Untracked stock (NULL or 0) stays as is; tracked stock may go negative
    db.session.query(InventoryItem).filter(
        InventoryItem.id == item.id,
        InventoryItem.stock_count.isnot(None),
        InventoryItem.stock_count != 0,
    ).update(
        {InventoryItem.stock_count: InventoryItem.stock_count - priced.quantity},
        synchronize_session=False,
    )
    db.session.flush()
    return record


def record_sale(
    draft: DraftSale,
    *,
    store_label: str,
    actor_user_id: int | None = None,
    now: datetime | None = None,
) -> list[SaleRecord]:
    """
    Persist one PENDING SaleRecord per cart line and decrement stock.

    The whole draft is validated before the first write. Writes happen in a
    single transaction; on failure everything is rolled back and
    PersistenceError.details names the failing line.
    """
    priced = price_draft(draft)
    submission_ref = uuid.uuid4().hex
    now = now or utcnow()

    try:
        change_seq = next_change_seq()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Sale %s could not take a ledger tick", submission_ref)
        raise PersistenceError(
            "Sale could not be recorded; no lines were saved",
            details=_line_report(priced, 0),
            retryable=True,
        ) from exc

    records = []
    for p in priced:
        try:
            records.append(_persist_line(
                p,
                submission_ref=submission_ref,
                customer=draft.customer,
                store_label=store_label,
                actor_user_id=actor_user_id,
                now=now,
                change_seq=change_seq,
            ))
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Sale %s failed on line %s", submission_ref, p.index)
            raise PersistenceError(
                "Sale could not be recorded; no lines were saved",
                details=_line_report(priced, p.index),
                retryable=True,
            ) from exc

    commit_or_raise(
        "Sale could not be recorded; no lines were saved",
        details=_line_report(priced, None),
    )

    logger.info(
        "Recorded sale %s: %d line(s), gross %d",
        submission_ref, len(records), sum(r.gross_cents for r in records),
    )
    return records


def list_sales() -> list[SaleRecord]:
    """Ledger snapshot, newest first."""
    return (
        db.session.query(SaleRecord)
        .order_by(SaleRecord.created_at.desc(), SaleRecord.id.desc())
        .all()
    )


def sales_changed_since(cursor: int | None) -> list[SaleRecord]:
    """
    Polling interface: records created or settled after ledger tick `cursor`.

    None returns the full snapshot. Ticks follow commit order, so a record
    stamped early but committed late still lands after the cursor. Callers
    keep the highest change_seq seen and merge by id.
    """
    q = db.session.query(SaleRecord)
    if cursor is not None:
        q = q.filter(SaleRecord.change_seq > cursor)
    return q.order_by(SaleRecord.change_seq.asc(), SaleRecord.id.asc()).all()
