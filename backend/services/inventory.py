"""
Inventory audit trail.

Les ajustements manuels sont JOURNALISÉS uniquement : pas de stock
physique tenu ici. Le contrôle anti-perte repose sur commandé vs reçu
(voir backend.services.reconciliation).
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backend.app.db.models.models_v1 import InventoryMovement, Product
from backend.app.db.models.core_types import MovementType
from backend.services.errors import NotFound, ProcurementError

logger = logging.getLogger(__name__)

MOVEMENTS_LIMIT_MAX = 100


def record_adjustment(
    db: Session,
    *,
    product_id: int,
    delta_qty: int,
    reason: str,
) -> InventoryMovement:
    product = db.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")

    reason = (reason or "").strip()
    if not reason:
        raise ProcurementError("Reason is required")
    if delta_qty == 0:
        raise ProcurementError("delta_qty must not be zero")

    mv = InventoryMovement(
        product_id=product.id,
        type=MovementType.manual_adjust,
        delta_qty=delta_qty,
        reason=reason,
    )
    db.add(mv)
    db.flush()

    logger.info(
        "inventory adjusted",
        extra={"extra": {"product_id": product.id, "delta_qty": delta_qty, "movement_id": mv.id}},
    )
    return mv


def list_movements(db: Session, *, limit: int = 50) -> list[InventoryMovement]:
    limit = min(MOVEMENTS_LIMIT_MAX, max(1, limit))
    return list(
        db.execute(
            select(InventoryMovement)
            .options(selectinload(InventoryMovement.product))
            .order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
            .limit(limit)
        )
        .scalars()
        .all()
    )
