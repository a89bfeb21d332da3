"""
Aggregator tests.

These run on plain objects: the aggregator only reads the fields a
SaleRecord exposes and never touches the database.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

import pytest

from payout_console.errors import ValidationError
from payout_console.services.aggregation_service import (
    ORDER_PAYOUT,
    SalesFilter,
    aggregate_by_brand,
    filter_sales,
    summarize,
    top_partners,
)

IST = timezone(timedelta(hours=5, minutes=30))
UTC = timezone.utc


@dataclass
class Rec:
    brand_id: int
    brand_name: str
    gross_cents: int
    commission_cents: int
    created_at: datetime
    payout_status: str = "PENDING"
    store_label: str = "Main Store"

    @property
    def payout_cents(self):
        return self.gross_cents - self.commission_cents

    @property
    def is_pending(self):
        return self.payout_status == "PENDING"


def rec(brand_id, name, gross, rate_pct=20, when=datetime(2024, 10, 15, 6, 0), **kw):
    return Rec(brand_id, name, gross, gross * rate_pct // 100, when, **kw)


def test_totals_per_brand():
    records = [
        rec(1, "Nike", 1000),
        rec(2, "Adidas", 5000, rate_pct=15),
        rec(1, "Nike", 1500),
    ]
    aggs = aggregate_by_brand(records, None, UTC)

    assert [a.brand_name for a in aggs] == ["Nike", "Adidas"]
    nike = aggs[0]
    assert nike.count == 2
    assert nike.total_gross_cents == 2500
    assert nike.total_commission_cents == 500
    assert nike.total_payout_cents == 2000
    assert nike.pending_payout_cents == 2000


def test_mixed_rates_give_blended_effective_rate():
    records = [rec(1, "Nike", 10000, rate_pct=20), rec(1, "Nike", 10000, rate_pct=15)]
    agg = aggregate_by_brand(records, None, UTC)[0]
    assert agg.total_commission_cents == 3500
    assert agg.effective_rate_percent == "17.5"


def test_settled_records_count_in_totals_but_not_pending():
    records = [rec(1, "Nike", 1000), rec(1, "Nike", 1500, payout_status="SETTLED")]
    agg = aggregate_by_brand(records, None, UTC)[0]
    assert agg.total_payout_cents == 2000
    assert agg.pending_payout_cents == 800


def test_month_uses_reporting_zone():
    # 2024-10-31 20:00 UTC is 2024-11-01 01:30 in India
    late = rec(1, "Nike", 1000, when=datetime(2024, 10, 31, 20, 0))
    november = SalesFilter(year_month=(2024, 11))

    assert filter_sales([late], november, IST) == [late]
    assert filter_sales([late], november, UTC) == []


def test_exact_date_overrides_month():
    day = rec(1, "Nike", 1000, when=datetime(2024, 10, 5, 6, 0))
    filters = SalesFilter(exact_date=date(2024, 10, 5), year_month=(2024, 11))
    assert filter_sales([day], filters, UTC) == [day]


def test_store_and_brand_filters():
    records = [
        rec(1, "Nike", 1000, store_label="Main Store"),
        rec(1, "Nike", 2000, store_label="Pop-up"),
        rec(2, "Adidas", 3000, store_label="Pop-up"),
    ]
    selected = filter_sales(records, SalesFilter(store_label="Pop-up", brand_name_contains="nik"), UTC)
    assert [r.gross_cents for r in selected] == [2000]


def test_empty_filter_keeps_everything():
    records = [rec(1, "Nike", 1000), rec(2, "Adidas", 2000)]
    assert filter_sales(records, SalesFilter(), UTC) == records
    assert filter_sales(records, None, UTC) == records


def test_payout_order_with_name_tiebreak():
    records = [
        rec(3, "Puma", 1000),
        rec(1, "Nike", 5000),
        rec(2, "Adidas", 1000),
    ]
    aggs = aggregate_by_brand(records, None, UTC, order=ORDER_PAYOUT)
    assert [a.brand_name for a in aggs] == ["Nike", "Adidas", "Puma"]


def test_invalid_order_rejected():
    with pytest.raises(ValidationError):
        aggregate_by_brand([], None, UTC, order="random")


def test_aggregation_is_repeatable():
    records = [rec(1, "Nike", 1000), rec(2, "Adidas", 2000), rec(1, "Nike", 3000)]
    first = [a.to_dict() for a in aggregate_by_brand(records, None, UTC)]
    second = [a.to_dict() for a in aggregate_by_brand(records, None, UTC)]
    assert first == second


def test_top_partners_limit():
    records = [rec(i, f"Brand {i}", 1000 * i) for i in range(1, 7)]
    top = top_partners(records, UTC, limit=4)
    assert [a.brand_id for a in top] == [6, 5, 4, 3]


def test_summarize():
    records = [
        rec(1, "Nike", 10000),
        rec(2, "Adidas", 10000, rate_pct=15, payout_status="SETTLED"),
    ]
    summary = summarize(records, None, UTC).to_dict()
    assert summary["sales_count"] == 2
    assert summary["total_gross_cents"] == 20000
    assert summary["total_commission_cents"] == 3500
    assert summary["total_payout_cents"] == 16500
    assert summary["pending_payout_cents"] == 8000
    assert summary["take_rate_percent"] == "17.5"
    assert [p["brand_name"] for p in summary["top_partners"]] == ["Adidas", "Nike"]


def test_filter_from_args():
    filters = SalesFilter.from_args({"month": "2024-10", "store": " Main Store ", "brand": ""})
    assert filters.year_month == (2024, 10)
    assert filters.store_label == "Main Store"
    assert filters.brand_name_contains is None
    assert filters.to_dict()["month"] == "2024-10"


@pytest.mark.parametrize("args", [
    {"month": "2024-13"},
    {"month": "Oct 2024"},
    {"date": "2024-02-30"},
    {"month": 202410},
    {"date": 20241005},
    {"store": 3},
    {"brand": ["Nike"]},
    ["month", "2024-10"],
])
def test_filter_from_args_rejects_bad_values(args):
    with pytest.raises(ValidationError):
        SalesFilter.from_args(args)
