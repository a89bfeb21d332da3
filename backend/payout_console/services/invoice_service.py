# Overview: Builds partner payout statements and renders them to HTML.

"""
Invoice Service

Rendering is pure: the same statement and seller always give the same
HTML. The invoice date is an input; nothing reads the clock here.

The commission line shows the effective rate of the statement
(total commission / total gross), which is what the per-line rate
snapshots actually produced.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, tzinfo
from typing import Sequence

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

from ..errors import ValidationError
from ..money import effective_rate_percent, format_cents
from .aggregation_service import BrandAggregate, SalesFilter, aggregate_by_brand, filter_sales
from .catalog_service import get_brand_by_name
from .sales_service import list_sales

STATUS_PENDING = "PENDING"
STATUS_SETTLED = "SETTLED"
STATUS_PARTIAL = "PARTIAL"
STATUSES = (STATUS_PENDING, STATUS_SETTLED, STATUS_PARTIAL)

_env = Environment(
    loader=PackageLoader("payout_console", "templates"),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)


@dataclass(frozen=True)
class SellerIdentity:
    name: str
    tagline: str = ""
    address_lines: tuple[str, ...] = ()
    tax_id: str = ""
    footer: str = ""
    currency_symbol: str = "₹"

    @classmethod
    def from_config(cls, config) -> "SellerIdentity":
        address = config.get("SELLER_ADDRESS") or ""
        return cls(
            name=config.get("SELLER_NAME") or "",
            tagline=config.get("SELLER_TAGLINE") or "",
            address_lines=tuple(part.strip() for part in address.split("|") if part.strip()),
            tax_id=config.get("SELLER_TAX_ID") or "",
            footer=config.get("SELLER_FOOTER") or "",
            currency_symbol=config.get("CURRENCY_SYMBOL") or "",
        )


@dataclass(frozen=True)
class InvoiceLine:
    description: str
    unit_price_cents: int
    quantity: int
    amount_cents: int


@dataclass(frozen=True)
class InvoiceStatement:
    recipient_name: str
    invoice_date: str
    period_label: str
    lines: tuple[InvoiceLine, ...] = ()
    total_gross_cents: int = 0
    total_commission_cents: int = 0
    total_payout_cents: int = 0
    status: str = STATUS_PENDING
    recipient_email: str | None = None

    @property
    def effective_rate_percent(self) -> str:
        return effective_rate_percent(self.total_commission_cents, self.total_gross_cents)

    def to_payload(self) -> dict:
        """The `data` shape accepted by the email endpoint."""
        return {
            "to_name": self.recipient_name,
            "to_email": self.recipient_email,
            "invoice_date": self.invoice_date,
            "invoice_period": self.period_label,
            "items": [
                {
                    "desc": line.description,
                    "qty": line.quantity,
                    "price_cents": line.unit_price_cents,
                    "amount_cents": line.amount_cents,
                }
                for line in self.lines
            ],
            "totals": {
                "total_cents": self.total_gross_cents,
                "comm_cents": self.total_commission_cents,
                "payout_cents": self.total_payout_cents,
            },
            "status": self.status,
        }


def statement_status(aggregate: BrandAggregate) -> str:
    if aggregate.pending_payout_cents == 0 and aggregate.count:
        return STATUS_SETTLED
    if aggregate.pending_payout_cents == aggregate.total_payout_cents:
        return STATUS_PENDING
    return STATUS_PARTIAL


def period_label_for(filters: SalesFilter | None) -> str:
    if filters and filters.exact_date:
        return filters.exact_date.strftime("%d %b %Y")
    if filters and filters.year_month:
        year, month = filters.year_month
        return date(year, month, 1).strftime("%B %Y")
    return "All time"


def _line_description(record) -> str:
    size = (record.size_label or "").strip()
    return f"{record.item_name} ({size})" if size else record.item_name


def build_statement(
    aggregate: BrandAggregate,
    records: Sequence,
    period_label: str,
    invoice_date: date | str,
    recipient_email: str | None = None,
) -> InvoiceStatement:
    """One invoice line per contributing sale record, totals from the aggregate."""
    lines = tuple(
        InvoiceLine(
            description=_line_description(r),
            unit_price_cents=r.unit_price_cents,
            quantity=r.quantity,
            amount_cents=r.gross_cents,
        )
        for r in records
    )
    if isinstance(invoice_date, date):
        invoice_date = invoice_date.strftime("%d %b %Y")
    return InvoiceStatement(
        recipient_name=aggregate.brand_name,
        recipient_email=recipient_email,
        invoice_date=invoice_date,
        period_label=period_label,
        lines=lines,
        total_gross_cents=aggregate.total_gross_cents,
        total_commission_cents=aggregate.total_commission_cents,
        total_payout_cents=aggregate.total_payout_cents,
        status=statement_status(aggregate),
    )


def _require_int(value, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{label} must be an integer amount in minor units")
    return value


def statement_from_payload(data: dict, to_name: str, to_email: str | None = None) -> InvoiceStatement:
    """
    Parse the `data` object of an email request.

    Expected keys: invoice_date, invoice_period, items[{desc, qty,
    price_cents, amount_cents}], totals{total_cents, comm_cents,
    payout_cents}, status.
    """
    if not isinstance(data, dict):
        raise ValidationError("data must be an object")

    items = data.get("items") or []
    if not isinstance(items, list):
        raise ValidationError("data.items must be a list")
    lines = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"data.items[{i}] must be an object")
        lines.append(InvoiceLine(
            description=str(item.get("desc") or ""),
            unit_price_cents=_require_int(item.get("price_cents"), f"data.items[{i}].price_cents"),
            quantity=_require_int(item.get("qty"), f"data.items[{i}].qty"),
            amount_cents=_require_int(item.get("amount_cents"), f"data.items[{i}].amount_cents"),
        ))

    totals = data.get("totals") or {}
    if not isinstance(totals, dict):
        raise ValidationError("data.totals must be an object")
    gross = _require_int(totals.get("total_cents"), "data.totals.total_cents")
    commission = _require_int(totals.get("comm_cents"), "data.totals.comm_cents")
    payout = _require_int(totals.get("payout_cents", gross - commission), "data.totals.payout_cents")
    if payout != gross - commission:
        raise ValidationError(
            "data.totals.payout_cents must equal total_cents - comm_cents",
            details={"total_cents": gross, "comm_cents": commission, "payout_cents": payout},
        )

    status = data.get("status") or STATUS_PENDING
    if not isinstance(status, str) or status.upper() not in STATUSES:
        raise ValidationError(f"data.status must be one of {', '.join(STATUSES)}")
    status = status.upper()
    return InvoiceStatement(
        recipient_name=to_name,
        recipient_email=to_email,
        invoice_date=str(data.get("invoice_date") or ""),
        period_label=str(data.get("invoice_period") or ""),
        lines=tuple(lines),
        total_gross_cents=gross,
        total_commission_cents=commission,
        total_payout_cents=payout,
        status=status,
    )


def render_invoice_html(statement: InvoiceStatement, seller: SellerIdentity) -> str:
    symbol = seller.currency_symbol

    def money(cents: int) -> str:
        return format_cents(cents, symbol)

    template = _env.get_template("invoice.html")
    return template.render(statement=statement, seller=seller, money=money)


def render_invoice(
    aggregate: BrandAggregate,
    records: Sequence,
    period_label: str,
    *,
    invoice_date: date | str,
    seller: SellerIdentity,
) -> str:
    return render_invoice_html(build_statement(aggregate, records, period_label, invoice_date), seller)


def build_brand_statement(
    brand_name: str,
    filters: SalesFilter | None,
    tz: tzinfo,
    invoice_date: date | str,
) -> InvoiceStatement:
    """
    Statement for one brand from the current ledger snapshot, narrowed by
    the same filters as the payouts view.
    """
    brand = get_brand_by_name(brand_name)
    base = filters or SalesFilter()
    records = [r for r in list_sales() if r.brand_id == brand.id]
    contributing = sorted(filter_sales(records, base, tz), key=lambda r: (r.created_at, r.id))
    if not contributing:
        raise ValidationError(f"No sales for {brand.name} in {period_label_for(base)}")

    aggregate = aggregate_by_brand(contributing, None, tz)[0]
    return build_statement(
        aggregate,
        contributing,
        period_label_for(base),
        invoice_date,
        recipient_email=brand.contact_email,
    )
