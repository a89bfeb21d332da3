# Overview: Pure aggregation over a sale-ledger snapshot.

"""
Aggregation Service

Everything here is a pure function of the records passed in. Callers load a
fresh snapshot (sales_service.list_sales) for every request and recompute,
so sums never outlive the data they came from.

Calendar filters use the reporting zone: a sale stored at 20:00 UTC on
31 Oct belongs to 1 Nov in Asia/Kolkata. exact_date wins over year_month
when both are given.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Iterable, Sequence

from ..errors import ValidationError
from ..money import effective_rate_percent
from ..time_utils import parse_iso_date, parse_year_month, to_local
from ..validation import optional_text

ORDER_INSERTION = "insertion"
ORDER_PAYOUT = "payout"


@dataclass(frozen=True)
class SalesFilter:
    store_label: str | None = None
    exact_date: date | None = None
    year_month: tuple[int, int] | None = None
    brand_name_contains: str | None = None

    @classmethod
    def from_args(cls, args) -> "SalesFilter":
        """Build from request args / dict: store, date, month, brand."""
        if not hasattr(args, "get"):
            raise ValidationError("filters must be an object")
        try:
            exact_date = parse_iso_date(args.get("date"))
        except ValueError:
            raise ValidationError("date must be YYYY-MM-DD")
        try:
            year_month = parse_year_month(args.get("month"))
        except ValueError:
            raise ValidationError("month must be YYYY-MM")
        return cls(
            store_label=optional_text(args, "store"),
            exact_date=exact_date,
            year_month=year_month,
            brand_name_contains=optional_text(args, "brand"),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.store_label or self.exact_date or self.year_month or self.brand_name_contains)

    def to_dict(self) -> dict:
        return {
            "store": self.store_label,
            "date": self.exact_date.isoformat() if self.exact_date else None,
            "month": "%04d-%02d" % self.year_month if self.year_month else None,
            "brand": self.brand_name_contains,
        }


@dataclass
class BrandAggregate:
    brand_id: int
    brand_name: str
    count: int = 0
    total_gross_cents: int = 0
    total_commission_cents: int = 0
    total_payout_cents: int = 0
    pending_payout_cents: int = 0

    @property
    def effective_rate_percent(self) -> str:
        return effective_rate_percent(self.total_commission_cents, self.total_gross_cents)

    def add(self, record) -> None:
        self.count += 1
        self.total_gross_cents += record.gross_cents
        self.total_commission_cents += record.commission_cents
        self.total_payout_cents += record.payout_cents
        if record.is_pending:
            self.pending_payout_cents += record.payout_cents

    def to_dict(self) -> dict:
        return {
            "brand_id": self.brand_id,
            "brand_name": self.brand_name,
            "count": self.count,
            "total_gross_cents": self.total_gross_cents,
            "total_commission_cents": self.total_commission_cents,
            "total_payout_cents": self.total_payout_cents,
            "pending_payout_cents": self.pending_payout_cents,
            "effective_rate_percent": self.effective_rate_percent,
        }


@dataclass
class DashboardSummary:
    sales_count: int = 0
    total_gross_cents: int = 0
    total_commission_cents: int = 0
    total_payout_cents: int = 0
    pending_payout_cents: int = 0
    top_partners: list[BrandAggregate] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sales_count": self.sales_count,
            "total_gross_cents": self.total_gross_cents,
            "total_commission_cents": self.total_commission_cents,
            "total_payout_cents": self.total_payout_cents,
            "pending_payout_cents": self.pending_payout_cents,
            "take_rate_percent": effective_rate_percent(self.total_commission_cents, self.total_gross_cents),
            "top_partners": [a.to_dict() for a in self.top_partners],
        }


def matches(record, filters: SalesFilter, tz: tzinfo) -> bool:
    if filters.store_label and record.store_label != filters.store_label:
        return False

    if filters.brand_name_contains:
        name = record.brand_name or ""
        if filters.brand_name_contains.lower() not in name.lower():
            return False

    if filters.exact_date or filters.year_month:
        local = to_local(record.created_at, tz)
        if filters.exact_date:
            if local.date() != filters.exact_date:
                return False
        elif (local.year, local.month) != filters.year_month:
            return False

    return True


def filter_sales(records: Iterable, filters: SalesFilter | None, tz: tzinfo) -> list:
    if filters is None or filters.is_empty:
        return list(records)
    return [r for r in records if matches(r, filters, tz)]


def aggregate_by_brand(
    records: Iterable,
    filters: SalesFilter | None,
    tz: tzinfo,
    order: str = ORDER_INSERTION,
) -> list[BrandAggregate]:
    """
    One BrandAggregate per brand left after filtering.

    order="insertion" keeps first-seen order of the input; order="payout"
    sorts by total payout, largest first (ties by brand name).
    """
    if order not in (ORDER_INSERTION, ORDER_PAYOUT):
        raise ValidationError("order must be 'insertion' or 'payout'")

    groups: dict[int, BrandAggregate] = {}
    for record in filter_sales(records, filters, tz):
        agg = groups.get(record.brand_id)
        if agg is None:
            agg = groups[record.brand_id] = BrandAggregate(
                brand_id=record.brand_id,
                brand_name=record.brand_name or f"Brand {record.brand_id}",
            )
        agg.add(record)

    result = list(groups.values())
    if order == ORDER_PAYOUT:
        result.sort(key=lambda a: (-a.total_payout_cents, a.brand_name))
    return result


def top_partners(records: Iterable, tz: tzinfo, limit: int = 4, filters: SalesFilter | None = None) -> list[BrandAggregate]:
    return aggregate_by_brand(records, filters, tz, order=ORDER_PAYOUT)[:limit]


def summarize(records: Sequence, filters: SalesFilter | None, tz: tzinfo, top: int = 4) -> DashboardSummary:
    selected = filter_sales(records, filters, tz)
    summary = DashboardSummary(sales_count=len(selected))
    for r in selected:
        summary.total_gross_cents += r.gross_cents
        summary.total_commission_cents += r.commission_cents
        summary.total_payout_cents += r.payout_cents
        if r.is_pending:
            summary.pending_payout_cents += r.payout_cents
    summary.top_partners = top_partners(selected, tz, limit=top)
    return summary
