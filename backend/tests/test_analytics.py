from datetime import date

import pytest

from backend.app.schemas.reconciliation import ReconciliationItemIn
from backend.services import analytics
from backend.services.reconciliation import reconcile_order


@pytest.fixture
def reconciled(db_session, make_order):
    """
    Trois commandes réconciliées :
    - août   : Cement 10 x 5, reçu 8       -> perte 10
    - octobre: Rebar 2 x 100, reçu 0 ; Sand 5 x 10, reçu 5 -> perte 200
    - octobre: Cement 4 x 5, reçu 4        -> aucune perte
    """

    def _reconcile(lines, received, when, notes=None):
        order = make_order(lines)
        reconcile_order(
            db_session,
            order_id=order.id,
            items=[ReconciliationItemIn(order_item_id=oi.id, received_qty=q) for oi, q in zip(order.items, received)],
            reconciliation_date=when,
            notes=notes,
        )
        db_session.commit()
        return order

    return [
        _reconcile([("Cement", "torba", 5, 10)], [8], date(2026, 8, 14), notes="2 torbi skinati"),
        _reconcile([("Rebar", "ton", 100, 2), ("Sand", "m³", 10, 5)], [0, 5], date(2026, 10, 3)),
        _reconcile([("Cement", "torba", 5, 4)], [4], date(2026, 10, 10)),
    ]


def test_overview_counts_active_master_data_and_losses(db_session, product, reconciled, make_order):
    make_order([("Sand", "m³", 10, 1)])

    data = analytics.overview(db_session)

    assert data["total_suppliers"] == 1
    assert data["total_products"] == 1
    assert data["pending_orders"] == 1
    assert data["total_losses"] == 210.0


def test_monthly_loss_buckets_include_empty_months(db_session, reconciled):
    """
    GIVEN today = 2026-10-19, months = 4
    THEN 2026-07 .. 2026-10 ascendants, mois vides à 0
    """
    rows = analytics.monthly_loss(db_session, months=4, today=date(2026, 10, 19))

    assert rows == [
        {"month": "2026-07", "total": 0.0},
        {"month": "2026-08", "total": 10.0},
        {"month": "2026-09", "total": 0.0},
        {"month": "2026-10", "total": 200.0},
    ]


def test_monthly_loss_crosses_year_boundary_and_clamps(db_session, reconciled):
    rows = analytics.monthly_loss(db_session, months=3, today=date(2027, 1, 5))
    assert [r["month"] for r in rows] == ["2026-11", "2026-12", "2027-01"]
    assert all(r["total"] == 0.0 for r in rows)

    assert len(analytics.monthly_loss(db_session, months=0, today=date(2026, 10, 19))) == 1
    assert len(analytics.monthly_loss(db_session, months=99, today=date(2026, 10, 19))) == 24


def test_top_items_rankings(db_session, reconciled):
    data = analytics.top_items(db_session, limit=5)

    assert [(r["name"], r["total_loss_value"]) for r in data["by_loss_value"]] == [
        ("Rebar", 200.0),
        ("Cement", 10.0),
    ]
    # COMPLETE lines (Sand) are never counted
    assert {r["name"] for r in data["by_missing_qty"]} == {"Rebar", "Cement"}
    rebar = next(r for r in data["by_missing_qty"] if r["name"] == "Rebar")
    assert rebar == {
        "name": "Rebar",
        "unit": "ton",
        "total_loss_value": 200.0,
        "total_missing_qty": 2,
    }

    assert len(analytics.top_items(db_session, limit=1)["by_loss_value"]) == 1


def test_loss_rate(db_session, reconciled):
    data = analytics.loss_rate(db_session)

    assert data["total_reconciled"] == 3
    assert data["incidents_with_loss"] == 2
    assert data["incidents_ratio"] == pytest.approx(2 / 3)
    assert data["average_loss_per_incident"] == pytest.approx(105.0)


def test_loss_rate_without_reconciliations(db_session):
    assert analytics.loss_rate(db_session) == {
        "incidents_ratio": 0.0,
        "total_reconciled": 0,
        "incidents_with_loss": 0,
        "average_loss_per_incident": 0.0,
    }


def test_control_summary_and_incidents(db_session, reconciled):
    summary = analytics.control_summary(db_session)
    assert summary == {"incident_count": 2, "total_items_missing": 4, "total_loss_sum": 210.0}

    ids = {r.order_id for r in analytics.incidents(db_session)}
    assert ids == {reconciled[0].id, reconciled[1].id}


def test_export_incidents_csv_one_row_per_lost_line(db_session, reconciled):
    csv = analytics.export_incidents_csv(db_session)
    lines = csv.strip().split("\n")

    assert lines[0] == "Date,Order Number,Item Name,Unit,Ordered,Received,Missing,Loss Value,Notes"
    assert len(lines) == 3
    # plus récent en premier
    assert lines[1] == f"2026-10-03,{reconciled[1].order_number},Rebar,ton,2,0,2,200.00,"
    assert lines[2] == f"2026-08-14,{reconciled[0].order_number},Cement,torba,10,8,2,10.00,2 torbi skinati"


def test_export_incidents_csv_header_only_when_no_loss(db_session):
    assert analytics.export_incidents_csv(db_session) == (
        "Date,Order Number,Item Name,Unit,Ordered,Received,Missing,Loss Value,Notes\n"
    )
