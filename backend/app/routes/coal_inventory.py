# backend/app/routes/coal_inventory.py
"""
Charcoal stock ledger routes.

- Manual ledger CRUD for the admin back office
- Summary read / forced recompute
- Order lifecycle hooks (placement depletes stock, cancellation restores it)

Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- from/to filtering is inclusive.
"""
from flask import Blueprint, current_app, request

from ..models import CoalInventoryTransaction
from ..services import coal_inventory_service
from ..services.coal_inventory_service import (
    CoalInventoryNotFoundError,
    CoalInventoryValidationError,
    OrderItem,
)
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_coal_transaction,
    validate_payload,
)


coal_inventory_bp = Blueprint("coal_inventory", __name__, url_prefix="/api/coal-inventory")

COAL_TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={
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
        "document_reference",
    },
    required_on_create={
        "transaction_date",
        "transaction_type",
        "quantity_kg",
        "source_destination",
        "created_by",
    },
)


def _error_response(error: Exception):
    if isinstance(error, CoalInventoryValidationError):
        return {"error": str(error)}, 400
    if isinstance(error, CoalInventoryNotFoundError):
        return {"error": str(error)}, 404
    return {"error": "Database error"}, 500


def _parse_items(payload: dict) -> list[OrderItem]:
    items = payload.get("items")
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    try:
        return [OrderItem.from_dict(item) for item in items if isinstance(item, dict)]
    except CoalInventoryValidationError as e:
        raise ValidationError(str(e))


@coal_inventory_bp.get("/transactions")
def list_transactions_route():
    result = coal_inventory_service.get_transactions(
        limit=min(request.args.get("limit", default=100, type=int), 500),
        offset=request.args.get("offset", default=0, type=int),
        transaction_type=request.args.get("type"),
        from_date=request.args.get("from"),
        to_date=request.args.get("to"),
        search=request.args.get("q"),
    )
    if result.error is not None:
        return _error_response(result.error)
    items = [tx.to_dict() for tx in result.data]
    return {"items": items, "count": len(items)}


@coal_inventory_bp.post("/transactions")
def create_transaction_route():
    """Record a manual stock movement."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=CoalInventoryTransaction,
            payload=payload,
            policy=COAL_TRANSACTION_POLICY,
            partial=False,
        )
        enforce_rules_coal_transaction(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    result = coal_inventory_service.add_transaction(patch)
    if result.error is not None:
        return _error_response(result.error)

    summary = coal_inventory_service.get_summary().data
    return {
        "transaction": result.data.to_dict(),
        "summary": summary.to_dict() if summary else None,
    }, 201


@coal_inventory_bp.patch("/transactions/<transaction_id>")
def update_transaction_route(transaction_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=CoalInventoryTransaction,
            payload=payload,
            policy=COAL_TRANSACTION_POLICY,
            partial=True,
        )
        enforce_rules_coal_transaction(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    result = coal_inventory_service.update_transaction(transaction_id, patch)
    if result.error is not None:
        return _error_response(result.error)
    return {"transaction": result.data.to_dict()}


@coal_inventory_bp.delete("/transactions/<transaction_id>")
def delete_transaction_route(transaction_id: str):
    result = coal_inventory_service.delete_transaction(transaction_id)
    if result.error is not None:
        return _error_response(result.error)
    return {"deleted": transaction_id}


@coal_inventory_bp.get("/summary")
def get_summary_route():
    result = coal_inventory_service.get_summary()
    if result.error is not None:
        return _error_response(result.error)
    return {"summary": result.data.to_dict() if result.data else None}


@coal_inventory_bp.post("/summary/recompute")
def recompute_summary_route():
    result = coal_inventory_service.update_inventory_summary()
    if result.error is not None:
        return _error_response(result.error)
    return {"summary": result.data.to_dict()}


def _order_hook(order_id: str, action):
    payload = request.get_json(silent=True) or {}
    try:
        items = _parse_items(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400

    user_id = payload.get("user_id")
    if not user_id:
        return {"error": "user_id is required"}, 400

    try:
        ok = action(order_id, items, str(user_id))
    except Exception:
        current_app.logger.exception("Order stock hook failed for %s", order_id)
        return {"error": "Internal server error"}, 500

    if not ok:
        return {"success": False, "error": "Failed to update charcoal stock"}, 500
    return {"success": True, "order_id": order_id}


@coal_inventory_bp.post("/orders/<order_id>/reduce")
def reduce_stock_route(order_id: str):
    """Called when an order is placed."""
    return _order_hook(order_id, coal_inventory_service.reduce_stock_from_order)


@coal_inventory_bp.post("/orders/<order_id>/restore")
def restore_stock_route(order_id: str):
    """Called when an order is cancelled."""
    return _order_hook(order_id, coal_inventory_service.restore_stock_from_cancelled_order)
