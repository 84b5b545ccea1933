"""Initial storefront schema: app settings and charcoal ledger

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(length=128), nullable=False),
        sa.Column("value", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key", name="uq_app_settings_key"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "coal_inventory_transactions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("transaction_type", sa.String(length=16), nullable=False),
        sa.Column("quantity_kg", sa.Float(), nullable=False),
        sa.Column("source_destination", sa.String(length=255), nullable=False),
        sa.Column("vehicle_info", sa.String(length=255), nullable=True),
        sa.Column("driver_name", sa.String(length=255), nullable=True),
        sa.Column("price_per_kg", sa.Float(), nullable=True),
        sa.Column("total_amount", sa.Float(), nullable=True),
        sa.Column("quality_grade", sa.String(length=16), nullable=True),
        sa.Column("moisture_content", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("document_reference", sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_coal_tx_date", "coal_inventory_transactions", ["transaction_date"], unique=False)
    op.create_index("ix_coal_tx_document_reference", "coal_inventory_transactions", ["document_reference"], unique=False)
    op.create_index(
        "ix_coal_tx_type_reference",
        "coal_inventory_transactions",
        ["transaction_type", "document_reference"],
        unique=False,
    )

    op.create_table(
        "coal_inventory_summary",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("total_incoming_kg", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_outgoing_kg", sa.Float(), nullable=False, server_default="0"),
        sa.Column("current_stock_kg", sa.Float(), nullable=False, server_default="0"),
        sa.Column("average_price_per_kg", sa.Float(), nullable=False, server_default="0"),
        sa.Column("last_transaction_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stock_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("premium_stock_kg", sa.Float(), nullable=False, server_default="0"),
        sa.Column("standard_stock_kg", sa.Float(), nullable=False, server_default="0"),
        sa.Column("economy_stock_kg", sa.Float(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade():
    op.drop_table("coal_inventory_summary")
    op.drop_index("ix_coal_tx_type_reference", table_name="coal_inventory_transactions")
    op.drop_index("ix_coal_tx_document_reference", table_name="coal_inventory_transactions")
    op.drop_index("ix_coal_tx_date", table_name="coal_inventory_transactions")
    op.drop_table("coal_inventory_transactions")
    op.drop_table("app_settings")
