from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, field_validator

from backend.app.db.models.core_types import MAX_QTY


class ReconciliationItemIn(BaseModel):
    order_item_id: int
    received_qty: int = Field(ge=0, le=MAX_QTY)


class ReconciliationCreate(BaseModel):
    order_id: int
    reconciliation_date: date | None = None
    notes: str | None = Field(default=None, max_length=2000)
    items: list[ReconciliationItemIn] = Field(min_length=1)

    @field_validator("items")
    @classmethod
    def _no_duplicate_items(cls, items: list[ReconciliationItemIn]) -> list[ReconciliationItemIn]:
        seen: set[int] = set()
        for it in items:
            if it.order_item_id in seen:
                raise ValueError(f"duplicate order_item_id {it.order_item_id}")
            seen.add(it.order_item_id)
        return items
