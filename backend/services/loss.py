"""
Loss computation for order / delivery reconciliation.

Pure functions only: no DB, no clock, no I/O.

Règles métier par ligne :
    missing_qty = max(ordered_qty - received_qty, 0)
    loss_value  = missing_qty * unit_price
    status      = MISSING si missing_qty > 0
                  sinon EXCESS si received_qty > ordered_qty
                  sinon COMPLETE

Les montants sont des Decimal (jamais de float dans les totaux).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping, Protocol

from backend.app.db.models.core_types import ReconciliationStatus


Number = int | float | str | Decimal


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() evite la representation binaire des floats (0.1 -> 0.1000000000000000055...)
    return Decimal(str(value))


class LineItemSnapshot(Protocol):
    """Anything that looks like an order line (ORM OrderItem, dataclass, ...)."""

    id: int
    name: str
    unit: str
    price: Number
    quantity: int


@dataclass(frozen=True)
class OrderLine:
    id: int
    name: str
    unit: str
    price: Decimal
    quantity: int


@dataclass(frozen=True)
class LineItemLoss:
    missing_qty: int
    loss_value: Decimal
    status: ReconciliationStatus


@dataclass(frozen=True)
class ReconciledItem:
    order_item_id: int
    name: str
    unit: str
    price: Decimal
    ordered_qty: int
    received_qty: int
    missing_qty: int
    loss_value: Decimal
    status: ReconciliationStatus


@dataclass(frozen=True)
class ReconciliationResult:
    items: tuple[ReconciledItem, ...]
    total_loss_value: Decimal

    @property
    def has_discrepancies(self) -> bool:
        return any(it.status != ReconciliationStatus.complete for it in self.items)


def compute_line_item(ordered_qty: int, received_qty: int, unit_price: Number) -> LineItemLoss:
    missing_qty = max(ordered_qty - received_qty, 0)
    loss_value = missing_qty * to_decimal(unit_price)

    # L'ordre des tests est volontaire : MISSING prime sur EXCESS
    if missing_qty > 0:
        status = ReconciliationStatus.missing
    elif received_qty > ordered_qty:
        status = ReconciliationStatus.excess
    else:
        status = ReconciliationStatus.complete

    return LineItemLoss(missing_qty=missing_qty, loss_value=loss_value, status=status)


def compute_reconciliation(
    order_items: Iterable[LineItemSnapshot],
    received_by_item_id: Mapping[int, int],
    price_override_per_item: Mapping[int, Number] | None = None,
) -> ReconciliationResult:
    """
    Compare commandé vs reçu pour toutes les lignes d'une commande.

    - une ligne de sortie par ligne de commande, dans le même ordre
    - id absent de `received_by_item_id` -> reçu = 0
    - `price_override_per_item` remplace le prix snapshot pour les ids listés
    - name/unit/price sont copiés depuis la ligne (snapshot historique)
    """

    overrides = price_override_per_item or {}
    items: list[ReconciledItem] = []
    total = Decimal("0")

    for oi in order_items:
        received_qty = int(received_by_item_id.get(oi.id, 0))
        price = to_decimal(overrides[oi.id]) if oi.id in overrides else to_decimal(oi.price)

        res = compute_line_item(oi.quantity, received_qty, price)
        total += res.loss_value

        items.append(
            ReconciledItem(
                order_item_id=oi.id,
                name=oi.name,
                unit=oi.unit,
                price=price,
                ordered_qty=oi.quantity,
                received_qty=received_qty,
                missing_qty=res.missing_qty,
                loss_value=res.loss_value,
                status=res.status,
            )
        )

    return ReconciliationResult(items=tuple(items), total_loss_value=total)


__all__ = [
    "OrderLine",
    "LineItemLoss",
    "ReconciledItem",
    "ReconciliationResult",
    "compute_line_item",
    "compute_reconciliation",
    "to_decimal",
]
