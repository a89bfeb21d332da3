from dataclasses import dataclass
from datetime import date, datetime

import pytest

from payout_console.errors import ValidationError
from payout_console.services.aggregation_service import BrandAggregate, SalesFilter
from payout_console.services.invoice_service import (
    STATUS_PARTIAL,
    STATUS_PENDING,
    STATUS_SETTLED,
    SellerIdentity,
    build_statement,
    period_label_for,
    render_invoice,
    render_invoice_html,
    statement_from_payload,
)

SELLER = SellerIdentity(
    name="Street Junkies India",
    tagline="Partner payout statement",
    address_lines=("New Delhi - 110048", "India"),
    footer="Not a valid tax invoice.",
    currency_symbol="₹",
)


@dataclass
class Rec:
    item_name: str
    size_label: str
    unit_price_cents: int
    quantity: int
    gross_cents: int
    commission_cents: int
    payout_status: str = "PENDING"
    created_at: datetime = datetime(2024, 10, 5)

    @property
    def payout_cents(self):
        return self.gross_cents - self.commission_cents

    @property
    def is_pending(self):
        return self.payout_status == "PENDING"


def aggregate_of(name, records):
    agg = BrandAggregate(brand_id=1, brand_name=name)
    for r in records:
        agg.add(r)
    return agg


def test_statement_lines_and_totals():
    records = [Rec("Air Max", "UK 9", 50000, 2, 100000, 20000)]
    statement = build_statement(aggregate_of("Nike", records), records, "October 2024", date(2024, 11, 1))

    assert statement.recipient_name == "Nike"
    assert statement.invoice_date == "01 Nov 2024"
    assert len(statement.lines) == 1
    assert statement.lines[0].description == "Air Max (UK 9)"
    assert statement.total_gross_cents == 100000
    assert statement.total_commission_cents == 20000
    assert statement.total_payout_cents == 80000
    assert statement.status == STATUS_PENDING


def test_rendered_invoice_shows_effective_rate_and_totals():
    records = [Rec("Air Max", "UK 9", 50000, 2, 100000, 20000)]
    html = render_invoice(
        aggregate_of("Nike", records), records, "October 2024",
        invoice_date="01 Nov 2024", seller=SELLER,
    )

    assert "Street Junkies India" in html
    assert "October 2024" in html
    assert "Commission (20%)" in html
    assert "₹1,000.00" in html
    assert "₹200.00" in html
    assert "₹800.00" in html
    assert html.count('class="line"') == 1


def test_mixed_rates_label_the_blended_rate():
    records = [
        Rec("Tee", "M", 10000, 1, 10000, 2000),
        Rec("Cap", "Free", 10000, 1, 10000, 1500),
    ]
    html = render_invoice(aggregate_of("Nike", records), records, "All time", invoice_date="x", seller=SELLER)
    assert "Commission (17.5%)" in html


def test_status_reflects_settlement():
    pending = Rec("Tee", "M", 1000, 1, 1000, 200)
    settled = Rec("Cap", "Free", 1000, 1, 1000, 200, payout_status="SETTLED")

    def status(records):
        return build_statement(aggregate_of("Nike", records), records, "", "").status

    assert status([pending]) == STATUS_PENDING
    assert status([settled]) == STATUS_SETTLED
    assert status([pending, settled]) == STATUS_PARTIAL


def test_rendering_is_deterministic_and_escaped():
    records = [Rec("<script>x</script>", "M", 1000, 1, 1000, 200)]
    agg = aggregate_of("A&B <Co>", records)
    first = render_invoice(agg, records, "October 2024", invoice_date="01 Nov 2024", seller=SELLER)
    second = render_invoice(agg, records, "October 2024", invoice_date="01 Nov 2024", seller=SELLER)

    assert first == second
    assert "<script>x</script>" not in first
    assert "&lt;script&gt;" in first
    assert "A&amp;B &lt;Co&gt;" in first


def test_empty_statement_renders_placeholder_row():
    statement = statement_from_payload(
        {"items": [], "totals": {"total_cents": 0, "comm_cents": 0}},
        to_name="Nike",
    )
    html = render_invoice_html(statement, SELLER)
    assert "No sales in this period." in html
    assert "Commission (0%)" in html


def test_statement_from_payload():
    statement = statement_from_payload(
        {
            "invoice_date": "01 Nov 2024",
            "invoice_period": "October 2024",
            "items": [{"desc": "Air Max (UK 9)", "qty": 2, "price_cents": 50000, "amount_cents": 100000}],
            "totals": {"total_cents": 100000, "comm_cents": 20000},
            "status": "pending",
        },
        to_name="Nike",
    )
    assert statement.total_payout_cents == 80000
    assert statement.status == STATUS_PENDING
    assert statement.lines[0].quantity == 2


@pytest.mark.parametrize("data", [
    None,
    {"items": "nope", "totals": {"total_cents": 0, "comm_cents": 0}},
    {"items": [{"desc": "x", "qty": 1, "price_cents": 10.5, "amount_cents": 10}], "totals": {"total_cents": 10, "comm_cents": 2}},
    {"items": [], "totals": {"total_cents": "100", "comm_cents": 2}},
    {"items": [], "totals": {"total_cents": 100000, "comm_cents": 20000, "payout_cents": 90000}},
    {"items": [], "totals": {"total_cents": 0, "comm_cents": 0}, "status": "PAID"},
    {"items": [], "totals": {"total_cents": 0, "comm_cents": 0}, "status": 1},
])
def test_statement_from_payload_rejects_bad_data(data):
    with pytest.raises(ValidationError):
        statement_from_payload(data, to_name="Nike")


def test_period_labels():
    assert period_label_for(None) == "All time"
    assert period_label_for(SalesFilter(year_month=(2024, 10))) == "October 2024"
    assert period_label_for(SalesFilter(exact_date=date(2024, 10, 5), year_month=(2024, 11))) == "05 Oct 2024"
