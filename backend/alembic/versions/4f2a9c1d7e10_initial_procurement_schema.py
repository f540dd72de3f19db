"""initial procurement schema (suppliers, products, orders, reconciliations)

Revision ID: 4f2a9c1d7e10
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4f2a9c1d7e10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
FK = sa.BigInteger()

supplier_status = sa.Enum("ACTIVE", "INACTIVE", name="supplier_status")
product_status = sa.Enum("ACTIVE", "INACTIVE", name="product_status")
order_status = sa.Enum("PENDING", "DELIVERED", "RECONCILED", name="order_status")
reconciliation_status = sa.Enum("COMPLETE", "MISSING", "EXCESS", name="reconciliation_status")
movement_type = sa.Enum("MANUAL_ADJUST", name="movement_type")


def upgrade() -> None:
    op.create_table(
        "suppliers",
        sa.Column("id", PK, primary_key=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("contact_person", sa.String(255)),
        sa.Column("phone", sa.String(64)),
        sa.Column("location", sa.String(255)),
        sa.Column("status", supplier_status, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "products",
        sa.Column("id", PK, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(128), nullable=False),
        sa.Column("measurement_unit", sa.String(16), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("status", product_status, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("price >= 0", name="ck_product_price_nonneg"),
    )
    op.create_index("ix_products_category_name", "products", ["category", "name"])

    op.create_table(
        "orders",
        sa.Column("id", PK, primary_key=True),
        sa.Column("order_number", sa.String(32), nullable=False, unique=True),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("supplier_id", FK, sa.ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("supplier_name", sa.String(255), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("status", order_status, nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("total_amount >= 0", name="ck_order_total_nonneg"),
    )
    op.create_index("ix_orders_order_date", "orders", ["order_date"])

    op.create_table(
        "order_items",
        sa.Column("id", PK, primary_key=True),
        sa.Column("order_id", FK, sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("product_id", FK, sa.ForeignKey("products.id", ondelete="SET NULL")),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("unit", sa.String(16), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_order_item_qty_pos"),
        sa.CheckConstraint("price >= 0", name="ck_order_item_price_nonneg"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "reconciliations",
        sa.Column("id", PK, primary_key=True),
        sa.Column("order_id", FK, sa.ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, unique=True),
        sa.Column("reconciliation_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("total_loss_value", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("total_loss_value >= 0", name="ck_recon_total_loss_nonneg"),
    )
    op.create_index("ix_reconciliations_reconciliation_date", "reconciliations", ["reconciliation_date"])

    op.create_table(
        "reconciliation_items",
        sa.Column("id", PK, primary_key=True),
        sa.Column(
            "reconciliation_id",
            FK,
            sa.ForeignKey("reconciliations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("order_item_id", FK, sa.ForeignKey("order_items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("unit", sa.String(16), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("ordered_qty", sa.Integer(), nullable=False),
        sa.Column("received_qty", sa.Integer(), nullable=False),
        sa.Column("missing_qty", sa.Integer(), nullable=False),
        sa.Column("loss_value", sa.Numeric(14, 2), nullable=False),
        sa.Column("status", reconciliation_status, nullable=False),
        sa.CheckConstraint("ordered_qty >= 0", name="ck_recon_item_ordered_nonneg"),
        sa.CheckConstraint("received_qty >= 0", name="ck_recon_item_received_nonneg"),
        sa.CheckConstraint("missing_qty >= 0", name="ck_recon_item_missing_nonneg"),
        sa.CheckConstraint("loss_value >= 0", name="ck_recon_item_loss_nonneg"),
    )
    op.create_index("ix_reconciliation_items_reconciliation_id", "reconciliation_items", ["reconciliation_id"])

    op.create_table(
        "inventory_movements",
        sa.Column("id", PK, primary_key=True),
        sa.Column("product_id", FK, sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", movement_type, nullable=False),
        sa.Column("delta_qty", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("delta_qty <> 0", name="ck_inventory_movement_delta_nonzero"),
    )
    op.create_index("ix_inventory_movements_product_id", "inventory_movements", ["product_id"])
    op.create_index("ix_inventory_movements_created", "inventory_movements", ["created_at"])


def downgrade() -> None:
    op.drop_table("inventory_movements")
    op.drop_table("reconciliation_items")
    op.drop_table("reconciliations")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("products")
    op.drop_table("suppliers")

    bind = op.get_bind()
    for enum in (movement_type, reconciliation_status, order_status, product_status, supplier_status):
        enum.drop(bind, checkfirst=True)
