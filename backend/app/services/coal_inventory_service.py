# Overview: Service-layer operations for the charcoal stock ledger; encapsulates business logic and database work.

# backend/app/services/coal_inventory_service.py

from __future__ import annotations

"""
Charcoal Ledger Invariants (authoritative)

Ledger model:
- Stock is derived from CoalInventoryTransaction rows; the summary row is a cache of
  that derivation and is fully recomputed after every create/update/delete.
- current_stock_kg = total_incoming_kg - total_outgoing_kg + cancellation returns.
- Cancellation returns (transaction_reason=ORDER_CANCELLATION_RETURN) restore stock and
  tier stock but are NOT counted in total_incoming_kg or the average price.
- average_price_per_kg = sum(qty * price) / sum(qty) over genuine incoming rows with
  price_per_kg > 0; 0 when there are none. stock_value = current_stock_kg * average.

Tiers:
- Incoming stock lands in its quality_grade bucket (ungraded -> standard).
- Outgoing stock depletes economy, then standard, then premium, each capped at what the
  bucket holds. Buckets never go negative.

Order hooks:
- Order lines whose product name contains "arang" (case-insensitive) are charcoal; the
  line quantity is kilograms.
- Cancelling an order only restores stock when a depletion exists for that order, and
  only once.

Error handling:
- Public functions never raise. They return CrudResult(data, error) or bool.
- A mutation and its summary recompute commit as one transaction; on failure both
  are rolled back, so an error result means nothing was written.
- Concurrent mutations are not serialized; the last recompute reads the whole table and wins.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import CoalInventoryTransaction, CoalInventorySummary, TransactionReason
from ..models.coal_inventory import (
    GRADE_ECONOMY,
    GRADE_PREMIUM,
    GRADE_STANDARD,
    QUALITY_GRADES,
    TRANSACTION_TYPE_INCOMING,
    TRANSACTION_TYPE_OUTGOING,
    TRANSACTION_TYPES,
)
from app.time_utils import utcnow, parse_iso_datetime


logger = logging.getLogger(__name__)


CHARCOAL_MARKER = "arang"
REQUIRED_FIELDS = ("transaction_date", "transaction_type", "quantity_kg", "source_destination", "created_by")
WRITABLE_FIELDS = {
    "id",
    "transaction_date",
    "transaction_type",
    "quantity_kg",
    "source_destination",
    "vehicle_info",
    "driver_name",
    "price_per_kg",
    "quality_grade",
    "moisture_content",
    "notes",
    "created_by",
    "created_at",
    "document_reference",
    "transaction_reason",
}
# Depletion order for outgoing stock
DEPLETION_ORDER = (GRADE_ECONOMY, GRADE_STANDARD, GRADE_PREMIUM)


class CoalInventoryError(ValueError):
    pass


class CoalInventoryValidationError(CoalInventoryError):
    pass


class CoalInventoryNotFoundError(CoalInventoryError):
    pass


@dataclass
class CrudResult:
    data: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class OrderItem:
    product_name: str
    quantity: float

    def __post_init__(self):
        if not math.isfinite(self.quantity):
            raise CoalInventoryValidationError("order item quantity must be a finite number")

    @classmethod
    def from_dict(cls, data: dict) -> "OrderItem":
        name = data.get("product_name", data.get("productName"))
        if name is None:
            raise CoalInventoryValidationError("order item requires productName")
        try:
            quantity = float(data.get("quantity", 0))
        except (TypeError, ValueError, OverflowError):
            raise CoalInventoryValidationError("order item quantity must be a number")
        return cls(product_name=str(name), quantity=quantity)

    @property
    def is_charcoal(self) -> bool:
        return CHARCOAL_MARKER in self.product_name.lower()


def charcoal_quantity(items: Iterable[OrderItem]) -> float:
    """Total kilograms of charcoal across order lines."""
    return sum(item.quantity for item in items if item.is_charcoal)


# =============================================================================
# Validation / normalization
# =============================================================================

def _parse_dt(value, field_name: str) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return parse_iso_datetime(value.isoformat())
        return value
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            dt = None
        if dt is None:
            raise CoalInventoryValidationError(f"{field_name} must be an ISO-8601 datetime")
        return dt
    raise CoalInventoryValidationError(f"{field_name} must be a datetime")


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _normalize(patch: dict) -> dict:
    """Type-check and normalize the fields present in patch."""
    unknown = set(patch) - WRITABLE_FIELDS - {"total_amount"}
    if unknown:
        raise CoalInventoryValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    clean = dict(patch)

    for field_name in ("transaction_date", "created_at"):
        if clean.get(field_name) is not None:
            clean[field_name] = _parse_dt(clean[field_name], field_name)

    if "transaction_type" in clean and clean["transaction_type"] not in TRANSACTION_TYPES:
        raise CoalInventoryValidationError("transaction_type must be incoming or outgoing")

    if clean.get("quality_grade") is not None and clean["quality_grade"] not in QUALITY_GRADES:
        raise CoalInventoryValidationError("quality_grade must be premium, standard or economy")

    if "transaction_reason" in clean:
        reason = clean["transaction_reason"]
        if isinstance(reason, TransactionReason):
            reason = reason.value
        if reason not in {r.value for r in TransactionReason}:
            raise CoalInventoryValidationError("transaction_reason is invalid")
        clean["transaction_reason"] = reason

    for field_name in ("quantity_kg", "price_per_kg", "moisture_content"):
        if clean.get(field_name) is None:
            continue
        value = clean[field_name]
        if isinstance(value, bool):
            raise CoalInventoryValidationError(f"{field_name} must be a number")
        try:
            clean[field_name] = float(value)
        except (TypeError, ValueError, OverflowError):
            raise CoalInventoryValidationError(f"{field_name} must be a number")
        if not math.isfinite(clean[field_name]):
            raise CoalInventoryValidationError(f"{field_name} must be a finite number")

    if "quantity_kg" in clean and (clean["quantity_kg"] is None or clean["quantity_kg"] <= 0):
        raise CoalInventoryValidationError("quantity_kg must be > 0")
    if clean.get("price_per_kg") is not None and clean["price_per_kg"] < 0:
        raise CoalInventoryValidationError("price_per_kg must be >= 0")

    return clean


def _derive_total_amount(row: CoalInventoryTransaction) -> None:
    if row.price_per_kg and row.quantity_kg:
        row.total_amount = row.price_per_kg * row.quantity_kg


# =============================================================================
# Summary computation
# =============================================================================

def compute_inventory_summary(transactions: Iterable[CoalInventoryTransaction]) -> dict:
    """
    Fold the ledger (oldest first) into summary figures.

    Pure function: no database access, so it can be exercised on plain rows.
    """
    total_incoming = 0.0
    total_outgoing = 0.0
    cancelled_order_stock = 0.0
    priced_value = 0.0
    priced_quantity = 0.0
    tiers = {GRADE_PREMIUM: 0.0, GRADE_STANDARD: 0.0, GRADE_ECONOMY: 0.0}
    last_transaction_date = None

    for tx in transactions:
        quantity = tx.quantity_kg or 0.0

        if tx.transaction_type == TRANSACTION_TYPE_INCOMING:
            grade = tx.quality_grade if tx.quality_grade in tiers else GRADE_STANDARD
            tiers[grade] += quantity

            if tx.is_cancellation_return:
                cancelled_order_stock += quantity
            else:
                total_incoming += quantity
                if tx.price_per_kg and tx.price_per_kg > 0:
                    priced_value += tx.price_per_kg * quantity
                    priced_quantity += quantity

        elif tx.transaction_type == TRANSACTION_TYPE_OUTGOING:
            total_outgoing += quantity
            remaining = quantity
            for grade in DEPLETION_ORDER:
                if remaining <= 0:
                    break
                reduction = min(tiers[grade], remaining)
                if reduction > 0:
                    tiers[grade] -= reduction
                    remaining -= reduction

        if tx.transaction_date is not None and (
            last_transaction_date is None or tx.transaction_date > last_transaction_date
        ):
            last_transaction_date = tx.transaction_date

    current_stock = total_incoming - total_outgoing + cancelled_order_stock
    average_price = priced_value / priced_quantity if priced_quantity > 0 else 0.0

    return {
        "total_incoming_kg": total_incoming,
        "total_outgoing_kg": total_outgoing,
        "current_stock_kg": current_stock,
        "average_price_per_kg": average_price,
        "last_transaction_date": last_transaction_date,
        "stock_value": current_stock * average_price,
        "premium_stock_kg": max(0.0, tiers[GRADE_PREMIUM]),
        "standard_stock_kg": max(0.0, tiers[GRADE_STANDARD]),
        "economy_stock_kg": max(0.0, tiers[GRADE_ECONOMY]),
    }


def _recompute_summary() -> CoalInventorySummary:
    """
    Recompute and upsert the summary row inside the caller's transaction.

    Does not commit. Raises SQLAlchemyError; caller rolls back so the ledger
    change and its summary land together or not at all.
    """
    transactions = (
        db.session.query(CoalInventoryTransaction)
        .order_by(
            CoalInventoryTransaction.transaction_date.asc(),
            CoalInventoryTransaction.created_at.asc(),
        )
        .all()
    )
    figures = compute_inventory_summary(transactions)
    logger.debug("Coal inventory summary recomputed over %d rows: %s", len(transactions), figures)

    summary = db.session.query(CoalInventorySummary).first()
    if summary is None:
        summary = CoalInventorySummary(id=str(uuid.uuid4()))
        db.session.add(summary)
    for key, value in figures.items():
        setattr(summary, key, value)
    db.session.flush()
    return summary


# =============================================================================
# Queries
# =============================================================================

def get_transactions(
    limit: int = 100,
    offset: int = 0,
    *,
    transaction_type: str | None = None,
    from_date=None,
    to_date=None,
    search: str | None = None,
) -> CrudResult:
    """Newest-first page of ledger rows with optional filters."""
    try:
        query = db.session.query(CoalInventoryTransaction)
        if transaction_type:
            query = query.filter(CoalInventoryTransaction.transaction_type == transaction_type)
        if from_date is not None:
            query = query.filter(CoalInventoryTransaction.transaction_date >= _parse_dt(from_date, "from_date"))
        if to_date is not None:
            query = query.filter(CoalInventoryTransaction.transaction_date <= _parse_dt(to_date, "to_date"))
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    CoalInventoryTransaction.source_destination.ilike(pattern),
                    CoalInventoryTransaction.document_reference.ilike(pattern),
                    CoalInventoryTransaction.notes.ilike(pattern),
                )
            )
        rows = (
            query.order_by(CoalInventoryTransaction.transaction_date.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return CrudResult(data=rows)
    except CoalInventoryValidationError as exc:
        return CrudResult(error=exc)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error fetching coal inventory transactions")
        return CrudResult(error=exc)


def get_summary() -> CrudResult:
    """Stored summary row (data is None until the first recompute)."""
    try:
        return CrudResult(data=db.session.query(CoalInventorySummary).first())
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error fetching coal inventory summary")
        return CrudResult(error=exc)


# =============================================================================
# Mutations
# =============================================================================

def add_transaction(payload: dict) -> CrudResult:
    """
    Record a stock movement and recompute the summary.

    Required: transaction_date, transaction_type, quantity_kg, source_destination, created_by.
    """
    try:
        missing = [f for f in REQUIRED_FIELDS if _is_blank(payload.get(f))]
        if missing:
            raise CoalInventoryValidationError(f"Missing required fields: {', '.join(missing)}")
        clean = _normalize(payload)
    except CoalInventoryValidationError as exc:
        logger.info("Rejected coal inventory transaction: %s", exc)
        return CrudResult(error=exc)

    clean.pop("total_amount", None)
    clean.setdefault("id", None)
    if not clean["id"]:
        clean["id"] = str(uuid.uuid4())
    if not clean.get("created_at"):
        clean["created_at"] = utcnow()
    if not clean.get("transaction_reason"):
        clean["transaction_reason"] = TransactionReason.MANUAL.value

    try:
        tx = CoalInventoryTransaction(**clean)
        _derive_total_amount(tx)
        db.session.add(tx)
        db.session.flush()
        _recompute_summary()
        db.session.commit()
        logger.info(
            "Coal inventory %s %.2f kg recorded (%s)", tx.transaction_type, tx.quantity_kg, tx.id
        )
        return CrudResult(data=tx)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error adding coal inventory transaction")
        return CrudResult(error=exc)


def update_transaction(transaction_id: str, patch: dict) -> CrudResult:
    try:
        clean = _normalize(patch)
    except CoalInventoryValidationError as exc:
        return CrudResult(error=exc)
    clean.pop("id", None)
    clean.pop("total_amount", None)

    for field_name in REQUIRED_FIELDS:
        if field_name in clean and _is_blank(clean[field_name]):
            return CrudResult(error=CoalInventoryValidationError(f"{field_name} cannot be blank"))

    try:
        tx = db.session.query(CoalInventoryTransaction).filter_by(id=transaction_id).first()
        if tx is None:
            return CrudResult(error=CoalInventoryNotFoundError(f"transaction {transaction_id} not found"))
        for key, value in clean.items():
            setattr(tx, key, value)
        if "price_per_kg" in clean and not clean["price_per_kg"]:
            tx.total_amount = None
        _derive_total_amount(tx)
        db.session.flush()
        _recompute_summary()
        db.session.commit()
        return CrudResult(data=tx)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error updating coal inventory transaction %s", transaction_id)
        return CrudResult(error=exc)


def delete_transaction(transaction_id: str) -> CrudResult:
    try:
        tx = db.session.query(CoalInventoryTransaction).filter_by(id=transaction_id).first()
        if tx is None:
            return CrudResult(error=CoalInventoryNotFoundError(f"transaction {transaction_id} not found"))
        db.session.delete(tx)
        db.session.flush()
        _recompute_summary()
        db.session.commit()
        logger.info("Coal inventory transaction %s deleted", transaction_id)
        return CrudResult()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error deleting coal inventory transaction %s", transaction_id)
        return CrudResult(error=exc)


def update_inventory_summary() -> CrudResult:
    """Full recompute of the summary row from every ledger row."""
    try:
        summary = _recompute_summary()
        db.session.commit()
        return CrudResult(data=summary)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Error updating coal inventory summary")
        return CrudResult(error=exc)


# =============================================================================
# Order lifecycle hooks
# =============================================================================

def reduce_stock_from_order(order_id: str, items: Iterable[OrderItem], user_id: str) -> bool:
    """
    Deplete charcoal stock for a placed order.

    Returns False only when the ledger could not be written.
    """
    total = charcoal_quantity(items)
    if total <= 0:
        return True

    now = utcnow()
    short_id = order_id[:8]
    try:
        db.session.add(
            CoalInventoryTransaction(
                id=str(uuid.uuid4()),
                transaction_date=now,
                transaction_type=TRANSACTION_TYPE_OUTGOING,
                quantity_kg=total,
                source_destination=f"Order #{short_id}",
                notes=f"Pengurangan stok otomatis untuk pesanan #{short_id}",
                created_by=user_id,
                created_at=now,
                document_reference=order_id,
                transaction_reason=TransactionReason.ORDER_DEPLETION.value,
            )
        )
        db.session.flush()
        _recompute_summary()
        db.session.commit()
        logger.info("Reduced %.2f kg charcoal for order %s", total, order_id)
        return True
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error reducing coal stock for order %s", order_id)
        return False


def restore_stock_from_cancelled_order(order_id: str, items: Iterable[OrderItem], user_id: str) -> bool:
    """
    Return charcoal stock for a cancelled order.

    No-op (True) when the order has no charcoal, was never depleted, or was
    already restored. Returns False only when the ledger could not be written.
    """
    total = charcoal_quantity(items)
    if total <= 0:
        return True

    try:
        depleted = (
            db.session.query(CoalInventoryTransaction.id)
            .filter(
                CoalInventoryTransaction.document_reference == order_id,
                CoalInventoryTransaction.transaction_type == TRANSACTION_TYPE_OUTGOING,
            )
            .first()
        )
        if depleted is None:
            logger.info("No previous stock reduction found for order %s", order_id)
            return True

        already_returned = (
            db.session.query(CoalInventoryTransaction.id)
            .filter(
                CoalInventoryTransaction.document_reference == order_id,
                CoalInventoryTransaction.transaction_reason
                == TransactionReason.ORDER_CANCELLATION_RETURN.value,
            )
            .first()
        )
        if already_returned is not None:
            logger.info("Stock for cancelled order %s was already restored", order_id)
            return True

        now = utcnow()
        short_id = order_id[:8]
        db.session.add(
            CoalInventoryTransaction(
                id=str(uuid.uuid4()),
                transaction_date=now,
                transaction_type=TRANSACTION_TYPE_INCOMING,
                quantity_kg=total,
                source_destination=f"Cancelled Order #{short_id}",
                notes=f"Pengembalian stok otomatis untuk pesanan #{short_id} yang dibatalkan",
                created_by=user_id,
                created_at=now,
                document_reference=order_id,
                quality_grade=GRADE_STANDARD,
                transaction_reason=TransactionReason.ORDER_CANCELLATION_RETURN.value,
            )
        )
        db.session.flush()
        _recompute_summary()
        db.session.commit()
        logger.info("Restored %.2f kg charcoal for cancelled order %s", total, order_id)
        return True
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error restoring coal stock for order %s", order_id)
        return False
