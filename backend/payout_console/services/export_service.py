# Overview: CSV export of the sale ledger.

from __future__ import annotations

import csv
import io
from datetime import tzinfo
from typing import Iterable

from ..money import cents_to_str
from ..time_utils import local_date

CSV_HEADER = ["Date", "Brand", "Item", "Customer", "Amount", "Commission", "Payout", "Store"]


def sales_csv(records: Iterable, tz: tzinfo) -> str:
    """
    One row per sale record, in the order given.

    Dates are calendar days in the reporting zone; amounts are plain
    decimals ("1000.00") so spreadsheets sum them without parsing symbols.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for r in records:
        writer.writerow([
            local_date(r.created_at, tz).isoformat(),
            r.brand_name or "",
            r.item_name,
            r.customer_name or "-",
            cents_to_str(r.gross_cents),
            cents_to_str(r.commission_cents),
            cents_to_str(r.payout_cents),
            r.store_label,
        ])
    return buf.getvalue()


def export_filename(today) -> str:
    return f"Invoices_{today.isoformat()}.csv"
