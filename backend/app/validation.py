from __future__ import annotations
from datetime import datetime
from app.time_utils import parse_iso_datetime

import math
import re
from dataclasses import dataclass
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import Float, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Upper bound on a single ledger movement (kg); larger values are data entry errors
MAX_QUANTITY_KG = 1_000_000

TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
OFF_WORK_MESSAGE_MIN = 10
OFF_WORK_MESSAGE_MAX = 500


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Kilograms, prices and moisture are decimals
    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        if not isinstance(value, (int, float, str)):
            raise ValidationError(f"{col.key} must be a number")
        try:
            number = float(value.strip() if isinstance(value, str) else value)
        except (ValueError, OverflowError):
            raise ValidationError(f"{col.key} must be a number")
        # float() accepts "nan" and "inf"
        if not math.isfinite(number):
            raise ValidationError(f"{col.key} must be a finite number")
        return number

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except Exception:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_coal_transaction(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "transaction_type" in patch and patch["transaction_type"] not in ("incoming", "outgoing"):
        raise ValidationError("transaction_type must be incoming or outgoing")

    if "quantity_kg" in patch:
        qty = patch["quantity_kg"]
        if qty is None or qty <= 0:
            raise ValidationError("quantity_kg must be > 0")
        if qty > MAX_QUANTITY_KG:
            raise ValidationError(f"quantity_kg cannot exceed {MAX_QUANTITY_KG:,}")

    if patch.get("price_per_kg") is not None and patch["price_per_kg"] < 0:
        raise ValidationError("price_per_kg must be >= 0")

    grade = patch.get("quality_grade")
    if grade is not None and grade not in ("premium", "standard", "economy"):
        raise ValidationError("quality_grade must be premium, standard or economy")

    moisture = patch.get("moisture_content")
    if moisture is not None and not (0 <= moisture <= 100):
        raise ValidationError("moisture_content must be between 0 and 100")


def validate_business_hours_payload(payload: Any) -> dict:
    """
    Validate the admin business hours form.

    Returns the camelCase document with defaults applied. The gate itself
    accepts any shape; this is the HTTP boundary only.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    is_enabled = payload.get("isEnabled", False)
    if not isinstance(is_enabled, bool):
        raise ValidationError("isEnabled must be a boolean")

    days = payload.get("workingDays")
    if not isinstance(days, list):
        raise ValidationError("workingDays must be a list")

    seen: set[str] = set()
    clean_days = []
    for entry in days:
        if not isinstance(entry, dict):
            raise ValidationError("workingDays entries must be objects")
        day = entry.get("day")
        if day not in WEEKDAY_NAMES:
            raise ValidationError(f"Invalid day: {day}")
        if day in seen:
            raise ValidationError(f"Duplicate day: {day}")
        seen.add(day)

        is_active = entry.get("isActive", True)
        if not isinstance(is_active, bool):
            raise ValidationError(f"isActive for {day} must be a boolean")

        for key in ("openTime", "closeTime"):
            value = entry.get(key)
            if not isinstance(value, str) or not TIME_RE.match(value):
                raise ValidationError(f"{key} for {day} must be HH:MM (24 hour)")

        clean_days.append(
            {
                "day": day,
                "isActive": is_active,
                "openTime": entry["openTime"],
                "closeTime": entry["closeTime"],
            }
        )

    missing = [d for d in WEEKDAY_NAMES if d not in seen]
    if missing:
        raise ValidationError(f"Missing days: {', '.join(missing)}")

    message = payload.get(
        "offWorkMessage",
        "Maaf, kami sedang tutup. Silakan kembali pada jam operasional kami.",
    )
    if not isinstance(message, str):
        raise ValidationError("offWorkMessage must be a string")
    if len(message) < OFF_WORK_MESSAGE_MIN:
        raise ValidationError(f"offWorkMessage must be at least {OFF_WORK_MESSAGE_MIN} characters")
    if len(message) > OFF_WORK_MESSAGE_MAX:
        raise ValidationError(f"offWorkMessage cannot exceed {OFF_WORK_MESSAGE_MAX} characters")

    document = {
        "isEnabled": is_enabled,
        "workingDays": clean_days,
        "offWorkMessage": message,
    }

    timezone_name = payload.get("operatingTimezone")
    if timezone_name is not None:
        if not isinstance(timezone_name, str) or not timezone_name:
            raise ValidationError("operatingTimezone must be a timezone name")
        try:
            ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationError(f"Unknown timezone: {timezone_name}")
        document["operatingTimezone"] = timezone_name

    return document
