from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.services import analytics

router = APIRouter(prefix="/control")


@router.get("/summary")
def summary(db: Session = Depends(get_db)):
    return analytics.control_summary(db)


@router.get("/incidents")
def incidents(db: Session = Depends(get_db)):
    return [
        {
            "id": r.id,
            "order_id": r.order_id,
            "order_number": r.order.order_number,
            "supplier_name": r.order.supplier_name,
            "reconciliation_date": r.reconciliation_date,
            "total_loss_value": float(r.total_loss_value),
            "missing_items": sum(it.missing_qty for it in r.items),
            "notes": r.notes,
        }
        for r in analytics.incidents(db)
    ]


@router.get("/export.csv")
def export_csv(db: Session = Depends(get_db)):
    return Response(
        content=analytics.export_incidents_csv(db),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="control-panel-export.csv"'},
    )
