from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.core.config import get_settings
from backend.app.db.models.models_v1 import Order
from backend.app.db.models.core_types import OrderStatus
from backend.app.schemas.order import OrderCreate, OrderStatusUpdate
from backend.services.errors import ProcurementError
from backend.services.pdf import render_order_pdf
from backend.services.procurement import (
    create_order,
    get_order,
    list_orders,
    to_document,
    update_order_status,
)

router = APIRouter(prefix="/orders")
logger = logging.getLogger(__name__)


def _order_dict(o: Order, *, with_items: bool = True) -> dict:
    data = {
        "id": o.id,
        "order_number": o.order_number,
        "order_date": o.order_date,
        "supplier_id": o.supplier_id,
        "supplier_name": o.supplier_name,
        "total_amount": float(o.total_amount),
        "status": o.status,
        "notes": o.notes,
        "created_at": o.created_at,
        "has_reconciliation": o.reconciliation is not None,
    }
    if with_items:
        data["items"] = [
            {
                "id": it.id,
                "product_id": it.product_id,
                "name": it.name,
                "unit": it.unit,
                "price": float(it.price),
                "quantity": it.quantity,
            }
            for it in o.items
        ]
    return data


@router.get("")
def list_all(
    status: OrderStatus | None = None,
    search: str | None = None,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    supplier_id: int | None = None,
    db: Session = Depends(get_db),
):
    listing = list_orders(
        db,
        status=status,
        search=search,
        date_from=date_from,
        date_to=date_to,
        supplier_id=supplier_id,
    )
    return {
        "list": [_order_dict(o) for o in listing.orders],
        "summary": {
            "total_spend": float(listing.total_spend),
            "total_count": listing.total_count,
        },
    }


@router.post("", status_code=201)
def create(payload: OrderCreate, db: Session = Depends(get_db)):
    try:
        order = create_order(db, payload)
        db.commit()
    except ProcurementError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("POST /orders failed")
        raise HTTPException(status_code=500, detail="Failed to create order")

    return _order_dict(get_order(db, order.id))


@router.get("/{order_id}/pdf")
def order_pdf(order_id: int, db: Session = Depends(get_db)):
    try:
        order = get_order(db, order_id)
    except ProcurementError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    try:
        content = render_order_pdf(order, get_settings())
    except Exception as e:
        logger.exception("GET /orders/{id}/pdf failed")
        raise HTTPException(status_code=500, detail=f"Failed to generate PDF: {e}")

    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="order-{order.order_number}.pdf"'},
    )


@router.put("/{order_id}/status")
def set_status(order_id: int, payload: OrderStatusUpdate, db: Session = Depends(get_db)):
    try:
        order = update_order_status(db, order_id, payload.status)
        db.commit()
    except ProcurementError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    return {"id": order.id, "status": order.status}


@router.get("/{order_id}")
def get_one(order_id: int, db: Session = Depends(get_db)):
    try:
        order = get_order(db, order_id)
    except ProcurementError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    data = _order_dict(order)
    data["reconciliation"] = to_document(order.reconciliation) if order.reconciliation else None
    return data
