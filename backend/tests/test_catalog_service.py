import pytest

from payout_console.errors import ConflictError, NotFoundError, ValidationError
from payout_console.models.catalog import ITEM_ARCHIVED, PARTNERSHIP_NON_EXCLUSIVE
from payout_console.services import catalog_service
from payout_console.services.sales_service import CartLine, DraftSale, record_sale

from conftest import make_item


def test_create_brand_with_percent(nike):
    assert nike.commission_rate_bps == 2000
    assert nike.to_dict()["commission_rate_percent"] == "20"
    assert nike.partnership_type == "EXCLUSIVE"


def test_partnership_type_defaults_and_normalizes(db_session):
    plain = catalog_service.create_brand({"name": "Puma", "commission_rate_bps": 1000})
    spelled = catalog_service.create_brand({
        "name": "Vans", "commission_rate_bps": 1000, "partnership_type": "Non-exclusive",
    })
    assert plain.partnership_type == PARTNERSHIP_NON_EXCLUSIVE
    assert spelled.partnership_type == PARTNERSHIP_NON_EXCLUSIVE


def test_duplicate_brand_name(nike):
    with pytest.raises(ConflictError):
        catalog_service.create_brand({"name": "Nike", "commission_rate_bps": 1000})


@pytest.mark.parametrize("payload", [
    {"name": "X", "commission_rate_bps": 10001},
    {"name": "X", "commission_rate_percent": "-5"},
    {"name": "X"},
    {"commission_rate_bps": 1000},
    {"name": "X", "commission_rate_bps": 1000, "contact_email": "not-an-email"},
    {"name": "X", "commission_rate_bps": 1000, "partnership_type": "SOMETIMES"},
    {"name": "X", "commission_rate_bps": 1000, "is_active": False},
])
def test_create_brand_rejects(db_session, payload):
    with pytest.raises(ValidationError):
        catalog_service.create_brand(payload)


def test_rename_carries_to_items_and_sales(nike, nike_item):
    sale = record_sale(DraftSale(lines=(CartLine(nike_item.qr_token, 1),)), store_label="Main Store")[0]

    catalog_service.update_brand(nike.id, {"name": "Nike India"})

    assert catalog_service.find_inventory_item(nike_item.qr_token).brand_name == "Nike India"
    assert sale.brand_name == "Nike India"


def test_rename_to_existing_name(nike, adidas):
    with pytest.raises(ConflictError):
        catalog_service.update_brand(adidas.id, {"name": "Nike"})


def test_delete_unused_brand(adidas):
    assert catalog_service.delete_brand(adidas.id) == "deleted"
    with pytest.raises(NotFoundError):
        catalog_service.get_brand(adidas.id)


def test_delete_referenced_brand_deactivates(nike, nike_item):
    assert catalog_service.delete_brand(nike.id) == "deactivated"
    assert [b.name for b in catalog_service.list_brands()] == []
    assert [b.name for b in catalog_service.list_brands(include_inactive=True)] == ["Nike"]

    with pytest.raises(ValidationError):
        make_item(nike, name="New Tee")


def test_item_gets_token_and_rate_snapshot(nike, nike_item):
    assert len(nike_item.qr_token) == 32
    assert nike_item.commission_rate_bps == 2000
    assert nike_item.brand_name == "Nike"
    assert nike_item.store_label == "Main Store"

    catalog_service.update_brand(nike.id, {"commission_rate_bps": 2500})
    assert catalog_service.find_inventory_item(nike_item.qr_token).commission_rate_bps == 2000


def test_find_by_token_or_id(nike_item):
    assert catalog_service.find_inventory_item(nike_item.qr_token).id == nike_item.id
    assert catalog_service.find_inventory_item(str(nike_item.id)).id == nike_item.id
    assert catalog_service.find_inventory_item(f"  {nike_item.id} ").id == nike_item.id


@pytest.mark.parametrize("code", ["", "   ", None, "nope", "999999", "\u00b2", "\u0661\u0662"])
def test_find_unknown_item(db_session, code):
    with pytest.raises(NotFoundError):
        catalog_service.find_inventory_item(code)


@pytest.mark.parametrize("payload", [
    {"name": "Tee", "size": "M"},
    {"brand_id": 1, "name": "Tee", "size": "M", "unit_price_cents": -1},
    {"brand_id": 1, "name": "Tee", "size": "M", "unit_price_cents": 10.5},
    {"brand_id": 1, "name": "Tee", "size": "M", "stock_count": -2},
    {"brand_id": 1, "name": "Tee", "size": "M", "commission_rate_bps": 0},
])
def test_add_item_rejects(db_session, payload):
    with pytest.raises(ValidationError):
        catalog_service.add_inventory_item(payload, default_store_label="Main Store")


def test_list_inventory_filter_and_archive(nike, adidas):
    tee = make_item(nike, name="Graphic Tee")
    make_item(adidas, name="Samba")

    assert [i.name for i in catalog_service.list_inventory("tee")] == ["Graphic Tee"]
    assert [i.name for i in catalog_service.list_inventory("ADIDAS")] == ["Samba"]

    archived = catalog_service.archive_inventory_item(tee.id)
    assert archived.status == ITEM_ARCHIVED
    assert [i.name for i in catalog_service.list_inventory()] == ["Samba"]
    assert len(catalog_service.list_inventory(include_archived=True)) == 2
