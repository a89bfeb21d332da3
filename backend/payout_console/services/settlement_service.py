# Overview: Service-layer operations for payout settlement; encapsulates business logic and database work.

"""
Settlement Service

PENDING -> SETTLED is the only transition and it is terminal. A brand is
settled as one batch: every selected record flips inside a single commit,
or none does.

The selection is the brand's PENDING records narrowed by the same filters
the payouts view used, so "settle October" settles exactly what the
October statement showed. Callers check pending_sales() before asking the
user to confirm; settling an empty selection raises NoPendingSalesError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo

from sqlalchemy.exc import SQLAlchemyError

from ..errors import NoPendingSalesError, PersistenceError
from ..extensions import db
from ..models import SaleRecord
from ..models.sales import PAYOUT_PENDING, PAYOUT_SETTLED
from ..time_utils import to_utc_z, utcnow
from .aggregation_service import SalesFilter, filter_sales
from .catalog_service import get_brand_by_name
from .concurrency import commit_or_raise, lock_for_update, next_change_seq

logger = logging.getLogger(__name__)


@dataclass
class SettlementResult:
    brand_id: int
    brand_name: str
    settled_at: datetime
    sale_ids: list[int] = field(default_factory=list)
    total_payout_cents: int = 0

    @property
    def count(self) -> int:
        return len(self.sale_ids)

    def to_dict(self) -> dict:
        return {
            "brand_id": self.brand_id,
            "brand_name": self.brand_name,
            "settled_at": to_utc_z(self.settled_at),
            "count": self.count,
            "sale_ids": self.sale_ids,
            "total_payout_cents": self.total_payout_cents,
        }


def _pending_query(brand_id: int):
    return (
        db.session.query(SaleRecord)
        .filter(SaleRecord.brand_id == brand_id, SaleRecord.payout_status == PAYOUT_PENDING)
        .order_by(SaleRecord.created_at.asc(), SaleRecord.id.asc())
    )


def pending_sales(brand_name: str, filters: SalesFilter | None, tz: tzinfo) -> list[SaleRecord]:
    """PENDING records that settle_brand would transition, without locking."""
    brand = get_brand_by_name(brand_name)
    return filter_sales(_pending_query(brand.id).all(), filters, tz)


def settle_brand(
    brand_name: str,
    *,
    as_of: datetime | None = None,
    filters: SalesFilter | None = None,
    tz: tzinfo,
    actor_user_id: int | None = None,
) -> SettlementResult:
    """
    Mark the brand's selected PENDING sales as SETTLED at `as_of`.

    Raises NotFoundError for an unknown brand, NoPendingSalesError when
    nothing is selected (no record is touched), PersistenceError when the
    batch commit fails (every record stays PENDING).
    """
    brand = get_brand_by_name(brand_name)
    as_of = as_of or utcnow()

    candidates = lock_for_update(_pending_query(brand.id)).all()
    selected = filter_sales(candidates, filters, tz)
    if not selected:
        db.session.rollback()
        raise NoPendingSalesError(
            f"No pending sales to settle for {brand.name}",
            details={"brand_name": brand.name, "filters": (filters or SalesFilter()).to_dict()},
        )

    try:
        change_seq = next_change_seq()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError(
            f"Settlement for {brand.name} failed; no sales were changed",
            details={"brand_name": brand.name},
            retryable=True,
        ) from exc

    result = SettlementResult(brand_id=brand.id, brand_name=brand.name, settled_at=as_of)
    for record in selected:
        record.payout_status = PAYOUT_SETTLED
        record.settled_at = as_of
        record.settled_by_user_id = actor_user_id
        record.change_seq = change_seq
        result.sale_ids.append(record.id)
        result.total_payout_cents += record.payout_cents

    commit_or_raise(
        f"Settlement for {brand.name} failed; no sales were changed",
        details={"brand_name": brand.name, "count": result.count},
    )

    logger.info(
        "Settled %d sale(s) for %s, payout %d",
        result.count, brand.name, result.total_payout_cents,
    )
    return result
