from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.core.logging import log_with_correlation
from backend.app.schemas.reconciliation import ReconciliationCreate
from backend.services.errors import ProcurementError
from backend.services.procurement import (
    get_reconciliation,
    list_reconciliations,
    recent_reconciliations,
    reconcile_order,
    to_document,
)

router = APIRouter(prefix="/reconciliations")
logger = logging.getLogger(__name__)


@router.post("", status_code=201)
def create_reconciliation(payload: ReconciliationCreate, request: Request, db: Session = Depends(get_db)):
    """Réconciliation commandé vs reçu (une seule fois par commande)."""
    try:
        recon = reconcile_order(
            db,
            order_id=payload.order_id,
            items=payload.items,
            reconciliation_date=payload.reconciliation_date,
            notes=payload.notes,
        )
        db.commit()
    except ProcurementError as e:
        db.rollback()
        log_with_correlation(
            logger,
            request,
            logging.WARNING,
            "reconciliation rejected",
            order_id=payload.order_id,
            detail=e.detail,
        )
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("POST /reconciliations failed")
        raise HTTPException(status_code=500, detail="Failed to create reconciliation")

    return to_document(get_reconciliation(db, recon.id))


@router.get("/recent")
def recent(
    limit: int = 5,
    only_with_discrepancies: bool = False,
    db: Session = Depends(get_db),
):
    rows = recent_reconciliations(db, limit=limit, only_with_discrepancies=only_with_discrepancies)
    return [
        {**to_document(r), "order_number": r.order.order_number, "supplier_name": r.order.supplier_name}
        for r in rows
    ]


@router.get("")
def list_all(db: Session = Depends(get_db)):
    return [
        {
            "id": r.id,
            "order_id": r.order_id,
            "order_number": r.order.order_number,
            "supplier_name": r.order.supplier_name,
            "reconciliation_date": r.reconciliation_date,
            "total_loss_value": float(r.total_loss_value),
            "notes": r.notes,
            "created_at": r.created_at,
        }
        for r in list_reconciliations(db)
    ]


@router.get("/{reconciliation_id}")
def get_one(reconciliation_id: int, db: Session = Depends(get_db)):
    try:
        recon = get_reconciliation(db, reconciliation_id)
    except ProcurementError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    return {**to_document(recon), "order_number": recon.order.order_number}
