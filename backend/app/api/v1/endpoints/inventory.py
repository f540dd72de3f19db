from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.db.models.core_types import MAX_QTY
from backend.services.errors import ProcurementError
from backend.services.inventory import list_movements, record_adjustment

router = APIRouter(prefix="/inventory")


class AdjustCreate(BaseModel):
    product_id: int
    delta_qty: int = Field(ge=-MAX_QTY, le=MAX_QTY)
    reason: str = Field(min_length=1, max_length=255)


@router.post("/adjust")
def adjust(payload: AdjustCreate, db: Session = Depends(get_db)):
    """Ajustement manuel : journal d'audit seulement (pas de stock physique)."""
    try:
        mv = record_adjustment(
            db,
            product_id=payload.product_id,
            delta_qty=payload.delta_qty,
            reason=payload.reason,
        )
        db.commit()
    except ProcurementError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    return {
        "id": mv.id,
        "product_id": mv.product_id,
        "type": mv.type,
        "delta_qty": mv.delta_qty,
        "reason": mv.reason,
        "created_at": mv.created_at,
    }


@router.get("/movements")
def movements(limit: int = 50, db: Session = Depends(get_db)):
    return [
        {
            "id": mv.id,
            "product_id": mv.product_id,
            "product_name": mv.product.name,
            "measurement_unit": mv.product.measurement_unit,
            "type": mv.type,
            "delta_qty": mv.delta_qty,
            "reason": mv.reason,
            "created_at": mv.created_at,
        }
        for mv in list_movements(db, limit=limit)
    ]
