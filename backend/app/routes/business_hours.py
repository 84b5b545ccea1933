# backend/app/routes/business_hours.py
"""
Business hours routes.

The storefront polls /status to decide whether to show the "closed" overlay;
the admin settings page reads and replaces the whole schedule.

Time semantics:
- as_of accepts ISO-8601 with Z/offsets; naive values are UTC.
- Open/closed is always evaluated on the operating timezone's wall clock.
"""
from flask import Blueprint, current_app, request

from app.time_utils import parse_as_of
from ..services.business_hours_service import (
    BusinessHoursSettings,
    get_business_hours_service,
)
from ..validation import ValidationError, validate_business_hours_payload


business_hours_bp = Blueprint("business_hours", __name__, url_prefix="/api/business-hours")


@business_hours_bp.get("")
def get_business_hours_route():
    settings = get_business_hours_service().get_business_hours()
    return {"settings": settings.to_dict()}


@business_hours_bp.put("")
def update_business_hours_route():
    """
    Replace the whole schedule.

    success=false means the change is live in this process and kept in the
    local fallback, but the database write failed.
    """
    payload = request.get_json(silent=True)

    try:
        document = validate_business_hours_payload(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400

    service = get_business_hours_service()
    settings = BusinessHoursSettings.from_dict(document, default_timezone=service.default_timezone)
    result = service.update_business_hours(settings)
    if not result.success:
        current_app.logger.warning("Business hours saved locally only: %s", result.message)
    return {**result.to_dict(), "settings": settings.to_dict()}


@business_hours_bp.get("/status")
def get_status_route():
    try:
        as_of = parse_as_of(request.args.get("as_of"))
    except ValueError:
        return {"error": "as_of must be an ISO-8601 datetime"}, 400

    status = get_business_hours_service().get_current_status(as_of)
    return status.to_dict()


@business_hours_bp.post("/reset")
def reset_business_hours_route():
    service = get_business_hours_service()
    result = service.reset_to_default()
    return {**result.to_dict(), "settings": service.get_business_hours().to_dict()}
