from __future__ import annotations

import logging
import re

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.db.models.models_v1 import Order, Supplier
from backend.app.db.models.core_types import SupplierStatus

router = APIRouter(prefix="/suppliers")
logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^\+?[0-9\s]+$")


class SupplierCreate(BaseModel):
    company_name: str = Field(min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=64)
    location: str | None = Field(default=None, max_length=255)
    status: SupplierStatus = SupplierStatus.active

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if not PHONE_RE.match(v.strip()):
            raise ValueError("Invalid phone")
        return v.strip()


class SupplierUpdate(SupplierCreate):
    company_name: str | None = Field(default=None, min_length=1, max_length=255)
    status: SupplierStatus | None = None


def _as_dict(s: Supplier) -> dict:
    return {
        "id": s.id,
        "company_name": s.company_name,
        "contact_person": s.contact_person,
        "phone": s.phone,
        "location": s.location,
        "status": s.status,
        "created_at": s.created_at,
    }


@router.get("")
def list_suppliers(db: Session = Depends(get_db)):
    rows = db.execute(select(Supplier).order_by(Supplier.company_name)).scalars().all()
    return [_as_dict(s) for s in rows]


@router.post("", status_code=201)
def create_supplier(payload: SupplierCreate, db: Session = Depends(get_db)):
    try:
        s = Supplier(**payload.model_dump())
        db.add(s)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("POST /suppliers failed")
        raise HTTPException(status_code=500, detail="Failed to create supplier")

    db.refresh(s)
    return _as_dict(s)


@router.put("/{supplier_id}")
def update_supplier(supplier_id: int, payload: SupplierUpdate, db: Session = Depends(get_db)):
    s = db.get(Supplier, supplier_id)
    if not s:
        raise HTTPException(status_code=404, detail="Supplier not found")

    try:
        for key, value in payload.model_dump(exclude_unset=True).items():
            if key in {"company_name", "status"} and value is None:
                continue
            setattr(s, key, value)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("PUT /suppliers/{id} failed")
        raise HTTPException(status_code=500, detail="Failed to update supplier")

    db.refresh(s)
    return _as_dict(s)


@router.delete("/{supplier_id}")
def delete_supplier(supplier_id: int, db: Session = Depends(get_db)):
    s = db.get(Supplier, supplier_id)
    if not s:
        raise HTTPException(status_code=404, detail="Supplier not found")

    # Les commandes gardent un lien vers le fournisseur : on désactive plutôt
    has_orders = db.execute(select(Order.id).where(Order.supplier_id == supplier_id).limit(1)).first()
    if has_orders:
        raise HTTPException(status_code=409, detail="Supplier has orders; set it INACTIVE instead")

    try:
        db.delete(s)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("DELETE /suppliers/{id} failed")
        raise HTTPException(status_code=500, detail="Failed to delete supplier")

    return {"ok": True}
