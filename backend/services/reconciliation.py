"""
Reconciliation service.

Orchestration autour du moteur pur (backend.services.loss) :
    - préconditions (commande existe, pas encore réconciliée, lignes connues)
    - persistance atomique Reconciliation + lignes
    - passage de la commande en RECONCILED

Règle : UNE réconciliation par commande.
    - contrôle applicatif avant calcul
    - contrainte UNIQUE sur reconciliations.order_id (course entre 2 requêtes)
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from backend.app.db.models.models_v1 import Order, Reconciliation, ReconciliationItem
from backend.app.db.models.core_types import OrderStatus
from backend.app.schemas.reconciliation import ReconciliationItemIn
from backend.services.errors import (
    NotFound,
    OrderAlreadyReconciled,
    OrderNotFound,
    UnknownOrderItem,
)
from backend.services.loss import compute_reconciliation

logger = logging.getLogger(__name__)

RECENT_LIMIT_MAX = 20


def _as_datetime(d: date | datetime | None, now: datetime) -> datetime:
    if d is None:
        return now
    if isinstance(d, datetime):
        return d
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def reconcile_order(
    db: Session,
    *,
    order_id: int,
    items: Iterable[ReconciliationItemIn],
    reconciliation_date: date | datetime | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Reconciliation:
    order = db.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items), selectinload(Order.reconciliation))
        .with_for_update()
    ).scalar_one_or_none()
    if not order:
        raise OrderNotFound(order_id)
    if order.reconciliation is not None or order.status == OrderStatus.reconciled:
        raise OrderAlreadyReconciled(order_id)

    known_ids = {oi.id for oi in order.items}
    received: dict[int, int] = {}
    for it in items:
        if it.order_item_id not in known_ids:
            raise UnknownOrderItem(it.order_item_id)
        received[it.order_item_id] = it.received_qty

    result = compute_reconciliation(order.items, received)

    recon = Reconciliation(
        order=order,
        reconciliation_date=_as_datetime(reconciliation_date, now or datetime.now(timezone.utc)),
        notes=notes,
        total_loss_value=result.total_loss_value,
    )
    recon.items = [
        ReconciliationItem(
            position=pos,
            order_item_id=ri.order_item_id,
            name=ri.name,
            unit=ri.unit,
            price=ri.price,
            ordered_qty=ri.ordered_qty,
            received_qty=ri.received_qty,
            missing_qty=ri.missing_qty,
            loss_value=ri.loss_value,
            status=ri.status,
        )
        for pos, ri in enumerate(result.items)
    ]
    db.add(recon)

    # Concurrence : une autre requête a pu insérer entre le check et le flush
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        existing = db.execute(
            select(Reconciliation.id).where(Reconciliation.order_id == order_id)
        ).scalar_one_or_none()
        if existing is not None:
            raise OrderAlreadyReconciled(order_id)
        raise

    order.status = OrderStatus.reconciled
    db.flush()

    logger.info(
        "reconciliation created",
        extra={
            "extra": {
                "order_id": order.id,
                "reconciliation_id": recon.id,
                "total_loss_value": str(result.total_loss_value),
                "discrepancies": result.has_discrepancies,
            }
        },
    )
    return recon


def get_reconciliation(db: Session, reconciliation_id: int) -> Reconciliation:
    recon = db.execute(
        select(Reconciliation)
        .where(Reconciliation.id == reconciliation_id)
        .options(selectinload(Reconciliation.items), selectinload(Reconciliation.order))
    ).scalar_one_or_none()
    if not recon:
        raise NotFound("Reconciliation not found")
    return recon


def list_reconciliations(db: Session) -> list[Reconciliation]:
    return list(
        db.execute(
            select(Reconciliation)
            .options(selectinload(Reconciliation.order))
            .order_by(Reconciliation.created_at.desc(), Reconciliation.id.desc())
        )
        .scalars()
        .all()
    )


def recent_reconciliations(
    db: Session,
    *,
    limit: int = 5,
    only_with_discrepancies: bool = False,
) -> list[Reconciliation]:
    limit = min(RECENT_LIMIT_MAX, max(1, limit))
    stmt = (
        select(Reconciliation)
        .options(selectinload(Reconciliation.items), selectinload(Reconciliation.order))
        .order_by(Reconciliation.created_at.desc(), Reconciliation.id.desc())
        .limit(limit)
    )
    if only_with_discrepancies:
        stmt = stmt.where(Reconciliation.total_loss_value > 0)
    return list(db.execute(stmt).scalars().all())


def to_document(recon: Reconciliation) -> dict:
    """Document de sortie : { order_id, reconciliation_date, notes, total_loss_value, items[...] }"""
    return {
        "id": recon.id,
        "order_id": recon.order_id,
        "reconciliation_date": recon.reconciliation_date,
        "notes": recon.notes,
        "total_loss_value": float(recon.total_loss_value),
        "created_at": recon.created_at,
        "items": [
            {
                "order_item_id": it.order_item_id,
                "name": it.name,
                "unit": it.unit,
                "price": float(it.price),
                "ordered_qty": it.ordered_qty,
                "received_qty": it.received_qty,
                "missing_qty": it.missing_qty,
                "loss_value": float(it.loss_value),
                "status": it.status.value,
            }
            for it in recon.items
        ],
    }
