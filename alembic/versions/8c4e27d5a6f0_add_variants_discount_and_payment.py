"""add menu item variants, discount and payment amounts

Revision ID: 8c4e27d5a6f0
Revises: 3a1f0c2b9d41
Create Date: 2026-10-17 11:40:02.503917

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c4e27d5a6f0'
down_revision: Union[str, Sequence[str], None] = '3a1f0c2b9d41'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # размеры и цены вариантов (16oz / 22oz)
    op.create_table(
        "menu_item_variants",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("menu_item_id", sa.Integer, sa.ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("variant_name", sa.String(100), nullable=False),
        sa.Column("size_label", sa.String(20), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_menu_item_variants_menu_item_id", "menu_item_variants", ["menu_item_id"])

    op.add_column(
        "order_items",
        sa.Column(
            "menu_item_variant_id",
            sa.Integer,
            sa.ForeignKey("menu_item_variants.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.add_column("order_items", sa.Column("variant_name", sa.String(100), nullable=True))
    op.add_column("order_items", sa.Column("size_label", sa.String(20), nullable=True))

    # скидка и расчёт наличными
    op.add_column("orders", sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False, server_default="0"))
    op.add_column("orders", sa.Column("cash_received", sa.Numeric(10, 2), nullable=False, server_default="0"))
    op.add_column("orders", sa.Column("change_amount", sa.Numeric(10, 2), nullable=False, server_default="0"))


def downgrade() -> None:
    op.drop_column("orders", "change_amount")
    op.drop_column("orders", "cash_received")
    op.drop_column("orders", "discount_amount")
    op.drop_column("order_items", "size_label")
    op.drop_column("order_items", "variant_name")
    op.drop_column("order_items", "menu_item_variant_id")
    op.drop_index("ix_menu_item_variants_menu_item_id", table_name="menu_item_variants")
    op.drop_table("menu_item_variants")
