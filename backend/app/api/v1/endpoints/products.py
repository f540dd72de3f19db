from __future__ import annotations

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.db.models.models_v1 import Order, OrderItem, Product
from backend.app.db.models.core_types import MEASUREMENT_UNITS, ProductStatus

router = APIRouter(prefix="/products")
logger = logging.getLogger(__name__)


def _check_unit(v: str | None) -> str | None:
    if v is not None and v not in MEASUREMENT_UNITS:
        raise ValueError(f"measurement_unit must be one of {', '.join(MEASUREMENT_UNITS)}")
    return v


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=128)
    measurement_unit: str
    price: Decimal = Field(ge=0, max_digits=14, decimal_places=2)
    status: ProductStatus = ProductStatus.active

    @field_validator("measurement_unit")
    @classmethod
    def _unit(cls, v: str) -> str:
        return _check_unit(v)


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, min_length=1, max_length=128)
    measurement_unit: str | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    status: ProductStatus | None = None

    @field_validator("measurement_unit")
    @classmethod
    def _unit(cls, v: str | None) -> str | None:
        return _check_unit(v)


def _as_dict(p: Product) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "category": p.category,
        "measurement_unit": p.measurement_unit,
        "price": float(p.price),
        "status": p.status,
        "created_at": p.created_at,
    }


@router.get("")
def list_products(db: Session = Depends(get_db)):
    rows = db.execute(select(Product).order_by(Product.category, Product.name)).scalars().all()
    return [_as_dict(p) for p in rows]


@router.get("/recent")
def recent_products(
    limit: int = 5,
    mode: str = "created",
    db: Session = Depends(get_db),
):
    """
    mode=created : derniers produits créés (actifs)
    mode=ordered : derniers produits commandés (20 dernières commandes, actifs)
    """
    limit = min(20, max(1, limit))

    if mode.lower() != "ordered":
        rows = (
            db.execute(
                select(Product)
                .where(Product.status == ProductStatus.active)
                .order_by(Product.created_at.desc(), Product.id.desc())
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return [_as_dict(p) for p in rows]

    recent_order_ids = (
        db.execute(select(Order.id).order_by(Order.created_at.desc(), Order.id.desc()).limit(20)).scalars().all()
    )
    if not recent_order_ids:
        return []

    product_ids = db.execute(
        select(OrderItem.product_id)
        .join(Order, Order.id == OrderItem.order_id)
        .where(OrderItem.order_id.in_(recent_order_ids))
        .where(OrderItem.product_id.is_not(None))
        .order_by(Order.created_at.desc(), Order.id.desc(), OrderItem.position)
    ).scalars().all()

    ids: list[int] = []
    for pid in product_ids:
        if pid not in ids:
            ids.append(pid)
        if len(ids) >= limit:
            break
    if not ids:
        return []

    products = {
        p.id: p
        for p in db.execute(
            select(Product).where(Product.id.in_(ids)).where(Product.status == ProductStatus.active)
        ).scalars()
    }
    return [_as_dict(products[pid]) for pid in ids if pid in products]


@router.get("/search")
def search_products(
    q: str = "",
    limit: int = Query(default=20),
    db: Session = Depends(get_db),
):
    q = q.strip()
    limit = min(50, max(1, limit))
    if not q:
        return []

    pattern = f"%{q}%"
    rows = (
        db.execute(
            select(Product)
            .where(Product.status == ProductStatus.active)
            .where(or_(Product.name.ilike(pattern), Product.category.ilike(pattern)))
            .order_by(Product.category, Product.name)
            .limit(limit)
        )
        .scalars()
        .all()
    )
    return [_as_dict(p) for p in rows]


@router.post("", status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    try:
        p = Product(**payload.model_dump())
        db.add(p)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("POST /products failed")
        raise HTTPException(status_code=500, detail="Failed to create product")

    db.refresh(p)
    return _as_dict(p)


@router.put("/{product_id}")
def update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    p = db.get(Product, product_id)
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")

    data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    try:
        for key, value in data.items():
            setattr(p, key, value)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("PUT /products/{id} failed")
        raise HTTPException(status_code=500, detail="Failed to update product")

    db.refresh(p)
    return _as_dict(p)


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    p = db.get(Product, product_id)
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")

    # Les lignes de commande sont des snapshots : product_id passe à NULL
    try:
        db.delete(p)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("DELETE /products/{id} failed")
        raise HTTPException(status_code=500, detail="Failed to delete product")

    return {"ok": True}
