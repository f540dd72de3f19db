from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select

from backend.app.core.logging import configure_logging
from backend.app.db.session import SessionLocal
from backend.app.db.models.models_v1 import Product, Supplier
from backend.app.db.models.core_types import ProductStatus, SupplierStatus

logger = logging.getLogger(__name__)

SUPPLIERS = [
    {"company_name": "Beton Gostivar DOOEL", "contact_person": "A. Ramadani", "phone": "+389 70 111 222", "location": "Gostivar"},
    {"company_name": "Gradezni Materijali Tetovo", "contact_person": None, "phone": None, "location": "Tetovo"},
]

PRODUCTS = [
    {"name": "Cement CEM II 42.5", "category": "Cement", "measurement_unit": "torba", "price": Decimal("390")},
    {"name": "Armature B500 Ø12", "category": "Steel", "measurement_unit": "ton", "price": Decimal("52000")},
    {"name": "Sand 0-4", "category": "Aggregates", "measurement_unit": "m³", "price": Decimal("1200")},
    {"name": "Ceramic tiles 30x60", "category": "Finishing", "measurement_unit": "m²", "price": Decimal("650")},
]


def run_seed():
    db = SessionLocal()
    try:
        for data in SUPPLIERS:
            if not db.scalar(select(Supplier).where(Supplier.company_name == data["company_name"])):
                db.add(Supplier(status=SupplierStatus.active, **data))

        for data in PRODUCTS:
            if not db.scalar(select(Product).where(Product.name == data["name"])):
                db.add(Product(status=ProductStatus.active, **data))

        db.commit()
        logger.info("seed ok", extra={"extra": {"suppliers": len(SUPPLIERS), "products": len(PRODUCTS)}})
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging()
    run_seed()
