"""Explicit transaction_reason on charcoal ledger rows

Cancellation returns used to be flagged by vehicle_info = 'cancelled_order_return'.
The reason column replaces that flag; legacy rows are back-filled and their
vehicle_info cleared. Order depletions are recognised by the
"Order #<first 8 chars of document_reference>" label the order hook writes;
manual outgoing rows that merely carry a document number stay MANUAL.

Revision ID: 20261015_coal_reason
Revises: 20261001_initial
Create Date: 2026-10-15 10:30:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261015_coal_reason"
down_revision = "20261001_initial"
branch_labels = None
depends_on = None


LEGACY_RETURN_FLAG = "cancelled_order_return"


def upgrade():
    with op.batch_alter_table("coal_inventory_transactions", schema=None) as batch_op:
        batch_op.add_column(
            sa.Column("transaction_reason", sa.String(length=32), nullable=False, server_default="MANUAL")
        )

    bind = op.get_bind()
    bind.execute(
        sa.text(
            "UPDATE coal_inventory_transactions "
            "SET transaction_reason = 'ORDER_CANCELLATION_RETURN', vehicle_info = NULL "
            "WHERE transaction_type = 'incoming' AND vehicle_info = :flag"
        ),
        {"flag": LEGACY_RETURN_FLAG},
    )
    bind.execute(
        sa.text(
            "UPDATE coal_inventory_transactions "
            "SET transaction_reason = 'ORDER_DEPLETION' "
            "WHERE transaction_type = 'outgoing' AND document_reference IS NOT NULL "
            "AND source_destination = 'Order #' || substr(document_reference, 1, 8)"
        )
    )


def downgrade():
    bind = op.get_bind()
    bind.execute(
        sa.text(
            "UPDATE coal_inventory_transactions "
            "SET vehicle_info = :flag "
            "WHERE transaction_reason = 'ORDER_CANCELLATION_RETURN'"
        ),
        {"flag": LEGACY_RETURN_FLAG},
    )
    with op.batch_alter_table("coal_inventory_transactions", schema=None) as batch_op:
        batch_op.drop_column("transaction_reason")
