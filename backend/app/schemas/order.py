from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from backend.app.db.models.core_types import MAX_QTY, OrderStatus


class OrderItemCreate(BaseModel):
    product_id: int | None = None
    name: str = Field(min_length=1, max_length=255)
    unit: str = Field(min_length=1, max_length=16)
    price: Decimal = Field(ge=0, max_digits=14, decimal_places=2)
    quantity: int = Field(gt=0, le=MAX_QTY)

    @field_validator("name", "unit")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class OrderCreate(BaseModel):
    supplier_id: int
    order_date: date
    items: list[OrderItemCreate] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=2000)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
