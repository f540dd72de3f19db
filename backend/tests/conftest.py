import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backend.app.api.deps import get_db  # noqa: E402
from backend.app.db.base import Base  # noqa: E402
from backend.app.db.models.models_v1 import Order, OrderItem, Product, Supplier  # noqa: E402
from backend.app.db.models.core_types import OrderStatus, ProductStatus, SupplierStatus  # noqa: E402
from backend.app.main import app  # noqa: E402


@pytest.fixture(scope="function")
def engine():
    """
    Base SQLite en mémoire, recréée pour chaque test.

    StaticPool : une seule connexion partagée (TestClient tourne dans un autre thread).
    """
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _enable_fk(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def supplier(db_session) -> Supplier:
    s = Supplier(company_name="Beton Gostivar", location="Gostivar", status=SupplierStatus.active)
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture
def product(db_session) -> Product:
    p = Product(
        name="Cement CEM II",
        category="Cement",
        measurement_unit="torba",
        price=Decimal("5"),
        status=ProductStatus.active,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture
def make_order(db_session, supplier):
    """Crée une commande PENDING à partir de tuples (name, unit, price, quantity)."""

    counter = {"n": 0}

    def _make(lines, *, order_date=date(2026, 10, 1), notes=None) -> Order:
        counter["n"] += 1
        total = sum((Decimal(str(price)) * qty for _, _, price, qty in lines), Decimal("0"))
        order = Order(
            order_number=f"ORD-TEST{counter['n']:06d}",
            order_date=order_date,
            supplier_id=supplier.id,
            supplier_name=supplier.company_name,
            total_amount=total,
            status=OrderStatus.pending,
            notes=notes,
        )
        order.items = [
            OrderItem(position=i, name=name, unit=unit, price=Decimal(str(price)), quantity=qty)
            for i, (name, unit, price, qty) in enumerate(lines)
        ]
        db_session.add(order)
        db_session.commit()
        return order

    return _make
