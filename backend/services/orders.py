"""
Order service.

Création des commandes (lignes figées = snapshot), filtrage de la liste,
et cycle de vie du statut.

Aucune logique de perte ici : voir backend.services.loss
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backend.app.db.models.models_v1 import Order, OrderItem, Product, Supplier
from backend.app.db.models.core_types import (
    MANUAL_STATUS_TRANSITIONS,
    MAX_QTY,
    OrderStatus,
    ProductStatus,
    SupplierStatus,
)
from backend.app.schemas.order import OrderCreate, OrderItemCreate
from backend.services.errors import (
    InvalidStatusTransition,
    OrderNotFound,
    ProcurementError,
    ProductInactive,
    ProductNotFound,
    SupplierUnavailable,
)

logger = logging.getLogger(__name__)

ORDER_NUMBER_ALPHABET = string.digits + string.ascii_uppercase
ORDER_NUMBER_LENGTH = 10


def generate_order_number() -> str:
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(ORDER_NUMBER_LENGTH))
    return f"ORD-{suffix}"


def normalize_items(items: Iterable[OrderItemCreate]) -> list[OrderItemCreate]:
    """
    Fusionne les lignes identiques.

    Clé : product_id si présent, sinon (name, unit, price).
    Les quantités sont additionnées, la première occurrence garde sa place.
    """
    merged: dict[object, OrderItemCreate] = {}
    for it in items:
        key = ("product", it.product_id) if it.product_id is not None else ("free", it.name, it.unit, it.price)
        existing = merged.get(key)
        if existing:
            merged[key] = existing.model_copy(update={"quantity": existing.quantity + it.quantity})
        else:
            merged[key] = it.model_copy()
    return list(merged.values())


def create_order(db: Session, payload: OrderCreate) -> Order:
    supplier = db.get(Supplier, payload.supplier_id)
    if not supplier or supplier.status != SupplierStatus.active:
        raise SupplierUnavailable(payload.supplier_id)

    items = normalize_items(payload.items)
    for it in items:
        if it.quantity > MAX_QTY:
            raise ProcurementError(f"Quantity too large: {it.name}")

    # FK checks (fail fast, message clair)
    for it in items:
        if it.product_id is None:
            continue
        product = db.get(Product, it.product_id)
        if not product:
            raise ProductNotFound(it.name)
        if product.status != ProductStatus.active:
            raise ProductInactive(product.name)

    total = sum((it.price * it.quantity for it in items), Decimal("0"))

    order = Order(
        order_number=generate_order_number(),
        order_date=payload.order_date,
        supplier_id=supplier.id,
        supplier_name=supplier.company_name,
        total_amount=total,
        status=OrderStatus.pending,
        notes=payload.notes,
    )
    order.items = [
        OrderItem(
            position=pos,
            product_id=it.product_id,
            name=it.name,
            unit=it.unit,
            price=it.price,
            quantity=it.quantity,
        )
        for pos, it in enumerate(items)
    ]
    db.add(order)
    db.flush()

    logger.info(
        "order created",
        extra={"extra": {"order_id": order.id, "order_number": order.order_number, "total_amount": str(total)}},
    )
    return order


def get_order(db: Session, order_id: int) -> Order:
    order = db.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items), selectinload(Order.reconciliation))
    ).scalar_one_or_none()
    if not order:
        raise OrderNotFound(order_id)
    return order


@dataclass
class OrderListing:
    orders: list[Order]
    total_spend: Decimal

    @property
    def total_count(self) -> int:
        return len(self.orders)


def list_orders(
    db: Session,
    *,
    status: OrderStatus | None = None,
    search: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    supplier_id: int | None = None,
) -> OrderListing:
    stmt = (
        select(Order)
        .options(selectinload(Order.items), selectinload(Order.reconciliation))
        .order_by(Order.order_date.desc(), Order.id.desc())
    )
    if status is not None:
        stmt = stmt.where(Order.status == status)
    if supplier_id is not None:
        stmt = stmt.where(Order.supplier_id == supplier_id)
    if date_from is not None:
        stmt = stmt.where(Order.order_date >= date_from)
    if date_to is not None:
        # borne haute inclusive (toute la journée)
        stmt = stmt.where(Order.order_date <= date_to)

    orders = list(db.execute(stmt).scalars().all())

    q = (search or "").strip().lower()
    if q:
        orders = [o for o in orders if q in o.supplier_name.lower() or q in o.order_number.lower()]

    total_spend = sum((Decimal(o.total_amount) for o in orders), Decimal("0"))
    return OrderListing(orders=orders, total_spend=total_spend)


def update_order_status(db: Session, order_id: int, status: OrderStatus) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise OrderNotFound(order_id)

    allowed = MANUAL_STATUS_TRANSITIONS.get(order.status, set())
    if status not in allowed:
        raise InvalidStatusTransition(order.status.value, status.value)

    order.status = status
    db.flush()
    return order
