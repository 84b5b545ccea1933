from __future__ import annotations

from enum import Enum

from ..extensions import db
from app.time_utils import to_utc_z


TRANSACTION_TYPE_INCOMING = "incoming"
TRANSACTION_TYPE_OUTGOING = "outgoing"
TRANSACTION_TYPES = {TRANSACTION_TYPE_INCOMING, TRANSACTION_TYPE_OUTGOING}

GRADE_PREMIUM = "premium"
GRADE_STANDARD = "standard"
GRADE_ECONOMY = "economy"
QUALITY_GRADES = {GRADE_PREMIUM, GRADE_STANDARD, GRADE_ECONOMY}


class TransactionReason(str, Enum):
    """Why a ledger row exists."""

    MANUAL = "MANUAL"
    ORDER_DEPLETION = "ORDER_DEPLETION"
    ORDER_CANCELLATION_RETURN = "ORDER_CANCELLATION_RETURN"


class CoalInventoryTransaction(db.Model):
    """
    Charcoal stock movement.

    Stock is ledger-derived: the summary row is always recomputed from the
    full set of these rows, never patched incrementally.

    transaction_reason separates cancellation returns (which restore stock
    but are not new supply) from genuine incoming stock. vehicle_info only
    ever describes the delivery vehicle.
    """
    __tablename__ = "coal_inventory_transactions"
    __table_args__ = (
        db.Index("ix_coal_tx_date", "transaction_date"),
        db.Index("ix_coal_tx_document_reference", "document_reference"),
        db.Index("ix_coal_tx_type_reference", "transaction_type", "document_reference"),
    )

    id = db.Column(db.String(36), primary_key=True)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False)
    transaction_type = db.Column(db.String(16), nullable=False)  # incoming/outgoing
    quantity_kg = db.Column(db.Float, nullable=False)
    source_destination = db.Column(db.String(255), nullable=False)

    vehicle_info = db.Column(db.String(255), nullable=True)
    driver_name = db.Column(db.String(255), nullable=True)
    price_per_kg = db.Column(db.Float, nullable=True)
    # price_per_kg * quantity_kg, written by the service
    total_amount = db.Column(db.Float, nullable=True)
    quality_grade = db.Column(db.String(16), nullable=True)  # premium/standard/economy
    moisture_content = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    # External order id for order-driven rows
    document_reference = db.Column(db.String(64), nullable=True)
    transaction_reason = db.Column(db.String(32), nullable=False, default=TransactionReason.MANUAL.value)

    def __repr__(self) -> str:
        return (
            f"<CoalInventoryTransaction id={self.id} type={self.transaction_type} "
            f"qty={self.quantity_kg} reason={self.transaction_reason}>"
        )

    @property
    def is_cancellation_return(self) -> bool:
        return (
            self.transaction_type == TRANSACTION_TYPE_INCOMING
            and self.transaction_reason == TransactionReason.ORDER_CANCELLATION_RETURN.value
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_date": to_utc_z(self.transaction_date),
            "transaction_type": self.transaction_type,
            "quantity_kg": self.quantity_kg,
            "source_destination": self.source_destination,
            "vehicle_info": self.vehicle_info,
            "driver_name": self.driver_name,
            "price_per_kg": self.price_per_kg,
            "total_amount": self.total_amount,
            "quality_grade": self.quality_grade,
            "moisture_content": self.moisture_content,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "document_reference": self.document_reference,
            "transaction_reason": self.transaction_reason,
        }


class CoalInventorySummary(db.Model):
    """
    Single-row derived summary of the charcoal ledger.

    Written only by coal_inventory_service.update_inventory_summary().
    """
    __tablename__ = "coal_inventory_summary"

    id = db.Column(db.String(36), primary_key=True)

    total_incoming_kg = db.Column(db.Float, nullable=False, default=0)
    total_outgoing_kg = db.Column(db.Float, nullable=False, default=0)
    current_stock_kg = db.Column(db.Float, nullable=False, default=0)
    average_price_per_kg = db.Column(db.Float, nullable=False, default=0)
    last_transaction_date = db.Column(db.DateTime(timezone=True), nullable=True)
    stock_value = db.Column(db.Float, nullable=False, default=0)

    premium_stock_kg = db.Column(db.Float, nullable=False, default=0)
    standard_stock_kg = db.Column(db.Float, nullable=False, default=0)
    economy_stock_kg = db.Column(db.Float, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "total_incoming_kg": self.total_incoming_kg,
            "total_outgoing_kg": self.total_outgoing_kg,
            "current_stock_kg": self.current_stock_kg,
            "average_price_per_kg": self.average_price_per_kg,
            "last_transaction_date": to_utc_z(self.last_transaction_date),
            "stock_value": self.stock_value,
            "premium_stock_kg": self.premium_stock_kg,
            "standard_stock_kg": self.standard_stock_kg,
            "economy_stock_kg": self.economy_stock_kg,
            "updated_at": to_utc_z(self.updated_at),
        }
