"""
Analytics & control panel.

Uniquement des regroupements / sommes sur des pertes DÉJÀ calculées
par backend.services.loss au moment de la réconciliation.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal

import pandas as pd
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from backend.app.db.models.models_v1 import (
    Order,
    Product,
    Reconciliation,
    ReconciliationItem,
    Supplier,
)
from backend.app.db.models.core_types import OrderStatus, ProductStatus, SupplierStatus

EXPORT_COLUMNS = [
    "Date",
    "Order Number",
    "Item Name",
    "Unit",
    "Ordered",
    "Received",
    "Missing",
    "Loss Value",
    "Notes",
]


def _clamp(value: int, lo: int, hi: int) -> int:
    return min(hi, max(lo, value))


def _month_key(d: date) -> str:
    return f"{d.year}-{d.month:02d}"


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def _sum_loss(db: Session, *, only_positive: bool = True) -> Decimal:
    stmt = select(func.coalesce(func.sum(Reconciliation.total_loss_value), 0))
    if only_positive:
        stmt = stmt.where(Reconciliation.total_loss_value > 0)
    return Decimal(str(db.execute(stmt).scalar_one()))


def overview(db: Session) -> dict:
    suppliers = db.execute(
        select(func.count(Supplier.id)).where(Supplier.status == SupplierStatus.active)
    ).scalar_one()
    products = db.execute(
        select(func.count(Product.id)).where(Product.status == ProductStatus.active)
    ).scalar_one()
    pending = db.execute(
        select(func.count(Order.id)).where(Order.status == OrderStatus.pending)
    ).scalar_one()

    return {
        "total_suppliers": int(suppliers),
        "total_products": int(products),
        "pending_orders": int(pending),
        "total_losses": float(_sum_loss(db)),
    }


def monthly_loss(db: Session, *, months: int = 6, today: date | None = None) -> list[dict]:
    """Total des pertes par mois sur les N derniers mois (mois courant inclus)."""
    months = _clamp(months, 1, 24)
    today = today or datetime.now(timezone.utc).date()

    buckets: "OrderedDict[str, Decimal]" = OrderedDict()
    for i in range(months - 1, -1, -1):
        y, m = _shift_month(today.year, today.month, -i)
        buckets[f"{y}-{m:02d}"] = Decimal("0")

    first_y, first_m = _shift_month(today.year, today.month, -(months - 1))
    start = datetime(first_y, first_m, 1, tzinfo=timezone.utc)
    end = datetime.combine(today, time.max, tzinfo=timezone.utc)

    rows = db.execute(
        select(Reconciliation.reconciliation_date, Reconciliation.total_loss_value)
        .where(Reconciliation.reconciliation_date >= start)
        .where(Reconciliation.reconciliation_date <= end)
    ).all()

    for rdate, total in rows:
        key = _month_key(rdate)
        if key in buckets:
            buckets[key] += Decimal(str(total))

    return [{"month": k, "total": float(v)} for k, v in buckets.items()]


@dataclass
class ItemLossTotals:
    name: str
    unit: str
    total_loss_value: Decimal
    total_missing_qty: int

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "unit": self.unit,
            "total_loss_value": float(self.total_loss_value),
            "total_missing_qty": self.total_missing_qty,
        }


def top_items(db: Session, *, limit: int = 5) -> dict:
    limit = _clamp(limit, 1, 20)
    rows = db.execute(
        select(
            ReconciliationItem.name,
            ReconciliationItem.unit,
            ReconciliationItem.loss_value,
            ReconciliationItem.missing_qty,
        ).where(ReconciliationItem.loss_value > 0)
    ).all()

    grouped: dict[tuple[str, str], ItemLossTotals] = {}
    for name, unit, loss_value, missing_qty in rows:
        cur = grouped.setdefault((name, unit), ItemLossTotals(name, unit, Decimal("0"), 0))
        cur.total_loss_value += Decimal(str(loss_value))
        cur.total_missing_qty += int(missing_qty)

    values = list(grouped.values())
    by_loss = sorted(values, key=lambda t: t.total_loss_value, reverse=True)[:limit]
    by_missing = sorted(values, key=lambda t: t.total_missing_qty, reverse=True)[:limit]
    return {
        "by_loss_value": [t.as_dict() for t in by_loss],
        "by_missing_qty": [t.as_dict() for t in by_missing],
    }


def loss_rate(db: Session) -> dict:
    with_loss = db.execute(
        select(func.count(Reconciliation.id)).where(Reconciliation.total_loss_value > 0)
    ).scalar_one()
    total = db.execute(select(func.count(Reconciliation.id))).scalar_one()
    total_loss = _sum_loss(db)

    return {
        "incidents_ratio": (with_loss / total) if total else 0.0,
        "total_reconciled": int(total),
        "incidents_with_loss": int(with_loss),
        "average_loss_per_incident": float(total_loss / with_loss) if with_loss else 0.0,
    }


# ---------- CONTROL PANEL ----------
def _incidents(db: Session) -> list[Reconciliation]:
    return list(
        db.execute(
            select(Reconciliation)
            .where(Reconciliation.total_loss_value > 0)
            .options(selectinload(Reconciliation.items), selectinload(Reconciliation.order))
            .order_by(Reconciliation.created_at.desc(), Reconciliation.id.desc())
        )
        .scalars()
        .all()
    )


def control_summary(db: Session) -> dict:
    incidents = _incidents(db)
    total_missing = sum(it.missing_qty for inc in incidents for it in inc.items)
    total_loss = sum((Decimal(str(inc.total_loss_value)) for inc in incidents), Decimal("0"))
    return {
        "incident_count": len(incidents),
        "total_items_missing": total_missing,
        "total_loss_sum": float(total_loss),
    }


def incidents(db: Session) -> list[Reconciliation]:
    return _incidents(db)


def export_incidents_csv(db: Session) -> str:
    """CSV des lignes en perte (une ligne par article manquant)."""
    recs = db.execute(
        select(Reconciliation)
        .where(Reconciliation.total_loss_value > 0)
        .options(selectinload(Reconciliation.items), selectinload(Reconciliation.order))
        .order_by(Reconciliation.reconciliation_date.desc(), Reconciliation.id.desc())
    ).scalars().all()

    rows = []
    for r in recs:
        for it in r.items:
            if it.loss_value <= 0:
                continue
            rows.append(
                {
                    "Date": r.reconciliation_date.date().isoformat(),
                    "Order Number": r.order.order_number,
                    "Item Name": it.name,
                    "Unit": it.unit,
                    "Ordered": it.ordered_qty,
                    "Received": it.received_qty,
                    "Missing": it.missing_qty,
                    "Loss Value": f"{Decimal(str(it.loss_value)):.2f}",
                    "Notes": r.notes or "",
                }
            )

    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    return df.to_csv(index=False, lineterminator="\n")
