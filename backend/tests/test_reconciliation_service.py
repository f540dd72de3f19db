from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError

from backend.app.db.models.models_v1 import Order, Reconciliation, ReconciliationItem
from backend.app.db.models.core_types import OrderStatus, ReconciliationStatus
from backend.app.schemas.reconciliation import ReconciliationItemIn
from backend.services.errors import OrderAlreadyReconciled, OrderNotFound, UnknownOrderItem
from backend.services.reconciliation import reconcile_order, recent_reconciliations, to_document

LINES = [
    ("Cement", "torba", 5, 10),
    ("Sand", "m³", 10, 5),
    ("Rebar", "ton", 100, 2),
]


def _received(order, quantities):
    return [ReconciliationItemIn(order_item_id=oi.id, received_qty=q) for oi, q in zip(order.items, quantities)]


def test_reconcile_order_persists_items_and_marks_order(db_session, make_order):
    """
    GIVEN une commande de 3 lignes (10 x 5, 5 x 10, 2 x 100)
    WHEN reçu = 8, 5, 0
    THEN pertes 10, 0, 200 ; total 210 ; commande RECONCILED
    """
    order = make_order(LINES)
    now = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)

    recon = reconcile_order(
        db_session,
        order_id=order.id,
        items=_received(order, [8, 5, 0]),
        notes="camion incomplet",
        now=now,
    )
    db_session.commit()

    stored = db_session.execute(select(Reconciliation).where(Reconciliation.id == recon.id)).scalar_one()
    assert stored.total_loss_value == Decimal("210")
    assert stored.notes == "camion incomplet"
    assert stored.reconciliation_date.replace(tzinfo=None) == now.replace(tzinfo=None)
    assert [it.loss_value for it in stored.items] == [Decimal("10"), Decimal("0"), Decimal("200")]
    assert [it.status for it in stored.items] == [
        ReconciliationStatus.missing,
        ReconciliationStatus.complete,
        ReconciliationStatus.missing,
    ]
    assert [it.order_item_id for it in stored.items] == [oi.id for oi in order.items]

    assert db_session.get(Order, order.id).status == OrderStatus.reconciled


def test_unreported_items_count_as_not_received(db_session, make_order):
    order = make_order(LINES)
    first = order.items[0]

    recon = reconcile_order(
        db_session,
        order_id=order.id,
        items=[ReconciliationItemIn(order_item_id=first.id, received_qty=10)],
    )

    assert [it.received_qty for it in recon.items] == [10, 0, 0]
    assert recon.total_loss_value == Decimal(5 * 10 + 2 * 100)


def test_reconciliation_date_given_as_day(db_session, make_order):
    order = make_order(LINES)
    recon = reconcile_order(
        db_session,
        order_id=order.id,
        items=_received(order, [10, 5, 2]),
        reconciliation_date=date(2026, 9, 30),
    )
    db_session.commit()

    assert recon.reconciliation_date.date() == date(2026, 9, 30)
    assert recon.total_loss_value == 0


def test_second_reconciliation_is_rejected_and_first_kept(db_session, make_order):
    order = make_order(LINES)
    first = reconcile_order(db_session, order_id=order.id, items=_received(order, [8, 5, 0]))
    db_session.commit()

    with pytest.raises(OrderAlreadyReconciled):
        reconcile_order(db_session, order_id=order.id, items=_received(order, [10, 5, 2]))
    db_session.rollback()

    rows = db_session.execute(select(Reconciliation).where(Reconciliation.order_id == order.id)).scalars().all()
    assert [r.id for r in rows] == [first.id]
    assert rows[0].total_loss_value == Decimal("210")
    count = db_session.execute(
        select(func.count(ReconciliationItem.id)).where(ReconciliationItem.reconciliation_id == first.id)
    ).scalar_one()
    assert count == 3


def test_unknown_order_is_rejected(db_session):
    with pytest.raises(OrderNotFound) as exc:
        reconcile_order(db_session, order_id=424242, items=[ReconciliationItemIn(order_item_id=1, received_qty=1)])
    assert exc.value.detail == "Order not found"


def test_item_from_another_order_is_rejected(db_session, make_order):
    order = make_order(LINES)
    other = make_order([("Tiles", "m²", 650, 4)])

    with pytest.raises(UnknownOrderItem):
        reconcile_order(
            db_session,
            order_id=order.id,
            items=[ReconciliationItemIn(order_item_id=other.items[0].id, received_qty=4)],
        )
    db_session.rollback()

    assert db_session.get(Order, order.id).status == OrderStatus.pending
    assert db_session.execute(select(func.count(Reconciliation.id))).scalar_one() == 0


def test_unique_constraint_guards_one_reconciliation_per_order(db_session, make_order):
    order = make_order(LINES)
    values = {
        "order_id": order.id,
        "reconciliation_date": datetime(2026, 10, 1, tzinfo=timezone.utc),
        "total_loss_value": Decimal("0"),
        "created_at": datetime(2026, 10, 1, tzinfo=timezone.utc),
    }
    db_session.execute(insert(Reconciliation).values(**values))
    db_session.commit()

    with pytest.raises(IntegrityError):
        db_session.execute(insert(Reconciliation).values(**values))
    db_session.rollback()


def test_concurrent_insert_is_reported_as_already_reconciled(db_session, make_order):
    """
    Simule une course : une autre transaction a inséré la réconciliation
    après que la commande a été chargée (reconciliation = None en cache).
    """
    order = make_order(LINES)
    assert order.reconciliation is None

    db_session.execute(
        insert(Reconciliation).values(
            order_id=order.id,
            reconciliation_date=datetime(2026, 10, 1, tzinfo=timezone.utc),
            total_loss_value=Decimal("0"),
            created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
        )
    )
    db_session.commit()

    with pytest.raises(OrderAlreadyReconciled):
        reconcile_order(db_session, order_id=order.id, items=_received(order, [1, 1, 1]))


def test_recent_filters_discrepancies_and_clamps_limit(db_session, make_order):
    clean = make_order(LINES)
    lossy = make_order(LINES)
    reconcile_order(db_session, order_id=clean.id, items=_received(clean, [10, 5, 2]))
    reconcile_order(db_session, order_id=lossy.id, items=_received(lossy, [9, 5, 2]))
    db_session.commit()

    assert len(recent_reconciliations(db_session, limit=500)) == 2
    only_loss = recent_reconciliations(db_session, limit=0, only_with_discrepancies=True)
    assert [r.order_id for r in only_loss] == [lossy.id]


def test_to_document_shape(db_session, make_order):
    order = make_order(LINES)
    recon = reconcile_order(db_session, order_id=order.id, items=_received(order, [12, 5, 2]), notes=None)
    db_session.commit()

    doc = to_document(recon)
    assert doc["order_id"] == order.id
    assert doc["total_loss_value"] == 0
    assert set(doc["items"][0]) == {
        "order_item_id",
        "name",
        "unit",
        "price",
        "ordered_qty",
        "received_qty",
        "missing_qty",
        "loss_value",
        "status",
    }
    assert doc["items"][0]["status"] == "EXCESS"
