from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError

from payout_console.errors import NotFoundError, PersistenceError, ValidationError
from payout_console.extensions import db
from payout_console.models import InventoryItem, SaleRecord
from payout_console.models.sales import PAYOUT_PENDING, PAYOUT_SETTLED
from payout_console.services import catalog_service, sales_service
from payout_console.services.sales_service import (
    CartLine,
    CustomerInfo,
    DraftSale,
    LINE_FAILED,
    LINE_NOT_ATTEMPTED,
    LINE_ROLLED_BACK,
    compute_line_amounts,
    price_draft,
    record_sale,
)
from payout_console.services.settlement_service import settle_brand

from conftest import make_item


def draft_of(*lines, customer=None):
    return DraftSale(lines=tuple(lines), customer=customer or CustomerInfo())


def stock_of(item_id):
    return db.session.get(InventoryItem, item_id).stock_count


def test_compute_line_amounts_example():
    amounts = compute_line_amounts(50000, 2, 2000)
    assert amounts.gross_cents == 100000
    assert amounts.commission_cents == 20000
    assert amounts.payout_cents == 80000


@pytest.mark.parametrize("price, qty, bps", [(1000, 0, 2000), (1000, -1, 2000), (-1, 1, 2000), (1000, 1, 10001)])
def test_compute_line_amounts_rejects(price, qty, bps):
    with pytest.raises(ValidationError):
        compute_line_amounts(price, qty, bps)


def test_draft_is_a_value():
    empty = DraftSale()
    one = empty.with_line(CartLine("abc"))
    assert empty.lines == ()
    assert len(one.lines) == 1
    assert one.without_line(0).lines == ()
    with pytest.raises(ValidationError):
        one.without_line(3)


def test_draft_from_payload_accepts_item_id_alias():
    draft = DraftSale.from_payload({
        "lines": [{"item_id": 7, "quantity": "2"}, {"item_code": "abc", "unit_price_cents": 45000}],
        "customer": {"name": "  Asha ", "phone": ""},
    })
    assert draft.lines[0] == CartLine("7", 2, None)
    assert draft.lines[1] == CartLine("abc", 1, 45000)
    assert draft.customer == CustomerInfo(name="Asha")


@pytest.mark.parametrize("payload", [
    None,
    {"lines": "x"},
    {"lines": [{"quantity": 1}]},
    {"lines": [{"item_code": "a", "quantity": 1.5}]},
    {"lines": [{"item_code": "a"}], "customer": "Asha"},
])
def test_draft_from_payload_rejects(payload):
    with pytest.raises(ValidationError):
        DraftSale.from_payload(payload)


def test_record_sale_two_line_checkout(nike_item):
    draft = draft_of(CartLine(nike_item.qr_token, 2), customer=CustomerInfo(name="Asha", phone="98100"))
    records = record_sale(draft, store_label="Main Store")

    assert len(records) == 1
    r = records[0]
    assert r.gross_cents == 100000
    assert r.commission_cents == 20000
    assert r.payout_cents == 80000
    assert r.payout_status == PAYOUT_PENDING
    assert r.brand_name == "Nike"
    assert r.size_label == "UK 9"
    assert r.customer_name == "Asha"
    assert r.store_label == "Main Store"
    assert stock_of(nike_item.id) == 1


def test_one_record_per_line_sharing_a_submission(nike_item, adidas_item):
    draft = draft_of(CartLine(nike_item.qr_token, 1), CartLine(str(adidas_item.id), 1))
    records = record_sale(draft, store_label="Main Store")

    assert [r.brand_name for r in records] == ["Nike", "Adidas"]
    assert len({r.submission_ref for r in records}) == 1
    # Adidas is at 15%
    assert records[1].commission_cents == 3000


def test_price_override_and_rate_snapshot(nike, nike_item):
    catalog_service.update_brand(nike.id, {"commission_rate_percent": "30"})

    records = record_sale(draft_of(CartLine(nike_item.qr_token, 1, 45000)), store_label="Main Store")
    # The item kept the 20% it was created with
    assert records[0].unit_price_cents == 45000
    assert records[0].commission_rate_bps == 2000
    assert records[0].commission_cents == 9000


def test_untracked_stock_is_left_alone(adidas, nike):
    untracked = make_item(adidas, stock=None)
    zero = make_item(nike, name="Tee", stock=0)

    record_sale(draft_of(CartLine(untracked.qr_token, 2), CartLine(zero.qr_token, 1)), store_label="Main Store")

    assert stock_of(untracked.id) is None
    assert stock_of(zero.id) == 0


def test_tracked_stock_may_go_negative(nike):
    item = make_item(nike, stock=1)
    record_sale(draft_of(CartLine(item.qr_token, 3)), store_label="Main Store")
    assert stock_of(item.id) == -2


def test_empty_cart_rejected(db_session):
    with pytest.raises(ValidationError):
        record_sale(DraftSale(), store_label="Main Store")


def test_unknown_item_rejected_before_any_write(nike_item):
    draft = draft_of(CartLine(nike_item.qr_token, 1), CartLine("no-such-code", 1))
    with pytest.raises(NotFoundError):
        record_sale(draft, store_label="Main Store")
    assert db.session.query(SaleRecord).count() == 0
    assert stock_of(nike_item.id) == 3


def test_archived_item_rejected(nike_item):
    catalog_service.archive_inventory_item(nike_item.id)
    with pytest.raises(ValidationError):
        price_draft(draft_of(CartLine(nike_item.qr_token, 1)))


def test_failed_line_rolls_back_the_whole_sale(monkeypatch, nike_item, adidas_item):
    real_persist = sales_service._persist_line

    def flaky_persist(priced, **kwargs):
        if priced.index == 1:
            raise SQLAlchemyError("disk I/O error")
        return real_persist(priced, **kwargs)

    monkeypatch.setattr(sales_service, "_persist_line", flaky_persist)

    draft = draft_of(
        CartLine(nike_item.qr_token, 1),
        CartLine(adidas_item.qr_token, 1),
        CartLine(nike_item.qr_token, 1),
    )
    with pytest.raises(PersistenceError) as exc_info:
        record_sale(draft, store_label="Main Store")

    err = exc_info.value
    assert err.retryable is True
    assert err.details["failed_line"] == 1
    assert [line["status"] for line in err.details["lines"]] == [
        LINE_ROLLED_BACK, LINE_FAILED, LINE_NOT_ATTEMPTED,
    ]
    assert db.session.query(SaleRecord).count() == 0
    assert stock_of(nike_item.id) == 3


def test_changes_since_cursor(nike_item):
    record_sale(draft_of(CartLine(nike_item.qr_token, 1)), store_label="Main Store",
                now=datetime(2024, 10, 1, 10, 0))
    record_sale(draft_of(CartLine(nike_item.qr_token, 1)), store_label="Main Store",
                now=datetime(2024, 10, 2, 10, 0))

    everything = sales_service.sales_changed_since(None)
    assert len(everything) == 2
    first_tick = everything[0].change_seq
    changed = sales_service.sales_changed_since(first_tick)
    assert [r.created_at for r in changed] == [datetime(2024, 10, 2, 10, 0)]


def test_changes_follow_commit_order_not_timestamps(nike_item):
    # The second sale carries an earlier timestamp, as a writer that stamped
    # its rows and then waited on the database lock would
    record_sale(draft_of(CartLine(nike_item.qr_token, 1)), store_label="Main Store",
                now=datetime(2024, 10, 2, 10, 0))
    cursor = max(r.change_seq for r in sales_service.sales_changed_since(None))

    late = record_sale(draft_of(CartLine(nike_item.qr_token, 1)), store_label="Main Store",
                       now=datetime(2024, 10, 2, 9, 59))[0]

    changed = sales_service.sales_changed_since(cursor)
    assert [r.id for r in changed] == [late.id]
    assert late.change_seq > cursor


def test_settlement_shows_up_in_changes(nike_item):
    sale = record_sale(draft_of(CartLine(nike_item.qr_token, 1)), store_label="Main Store")[0]
    cursor = sale.change_seq
    assert sales_service.sales_changed_since(cursor) == []

    settle_brand("Nike", tz=timezone.utc)

    changed = sales_service.sales_changed_since(cursor)
    assert [(r.id, r.payout_status) for r in changed] == [(sale.id, PAYOUT_SETTLED)]


def test_list_sales_newest_first(nike_item):
    record_sale(draft_of(CartLine(nike_item.qr_token, 1)), store_label="Main Store",
                now=datetime(2024, 10, 1, 10, 0))
    record_sale(draft_of(CartLine(nike_item.qr_token, 1)), store_label="Main Store",
                now=datetime(2024, 10, 2, 10, 0))
    assert [r.created_at.day for r in sales_service.list_sales()] == [2, 1]
