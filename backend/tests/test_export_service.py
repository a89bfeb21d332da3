import csv
import io
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from payout_console.services.export_service import CSV_HEADER, export_filename, sales_csv

IST = timezone(timedelta(hours=5, minutes=30))


@dataclass
class Rec:
    brand_name: str
    item_name: str
    customer_name: str | None
    gross_cents: int
    commission_cents: int
    payout_cents: int
    store_label: str
    created_at: datetime


def test_header_and_one_row_per_record():
    records = [
        Rec("Nike", "Air Max", "Asha", 100000, 20000, 80000, "Main Store", datetime(2024, 10, 5, 6, 0)),
        Rec("Adidas", "Samba", None, 20000, 3000, 17000, "Pop-up", datetime(2024, 10, 31, 20, 0)),
    ]
    rows = list(csv.reader(io.StringIO(sales_csv(records, IST))))

    assert rows[0] == CSV_HEADER
    assert len(rows) == 3
    assert rows[1] == ["2024-10-05", "Nike", "Air Max", "Asha", "1000.00", "200.00", "800.00", "Main Store"]
    # Reporting-zone date and a placeholder for a missing customer
    assert rows[2][0] == "2024-11-01"
    assert rows[2][3] == "-"


def test_empty_export_is_header_only():
    assert sales_csv([], IST) == ",".join(CSV_HEADER) + "\n"


def test_values_with_commas_are_quoted():
    records = [Rec("Nike", "Tee, white", "Rao, K", 100, 20, 80, "Main Store", datetime(2024, 10, 5))]
    rows = list(csv.reader(io.StringIO(sales_csv(records, timezone.utc))))
    assert rows[1][2] == "Tee, white"
    assert rows[1][3] == "Rao, K"


def test_export_filename():
    assert export_filename(date(2024, 11, 1)) == "Invoices_2024-11-01.csv"
