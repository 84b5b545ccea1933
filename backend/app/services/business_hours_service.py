# Overview: Business hours gate; decides whether the storefront is open using a weekly schedule.

from __future__ import annotations

"""
Business hours gate (authoritative semantics)

Data sourcing for reads, in order:
1. In-memory cache (per service instance), valid for ttl_seconds.
2. Remote settings store (app_settings row "business_hours").
3. Local fallback store ("business_hours_settings"), refreshed on every good remote read/write.
4. Built-in default schedule.

Writes always go to the remote store first. When that fails the local fallback
and the cache are still updated so the admin sees their change, and the caller
gets success=False.

Time semantics:
- Weekday and time of day come from the civil clock of settings.operating_timezone,
  never the host's local zone.
- Same-day window: open <= now <= close (both ends inclusive).
- Overnight window (close < open, e.g. 20:00-02:00): now >= open OR now <= close,
  evaluated against the weekday of "now".

Failure policy:
- Every public method is total. Reads fail open: a broken gate reports "open"
  rather than locking customers out.
"""

import json
import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from flask import current_app

from app.time_utils import civil_time, minutes_since_midnight, utcnow
from .settings_store import DatabaseSettingsStore, LocalFallbackStore


logger = logging.getLogger(__name__)


REMOTE_SETTINGS_KEY = "business_hours"
LOCAL_SETTINGS_KEY = "business_hours_settings"

DEFAULT_TIMEZONE = "Asia/Jakarta"
DEFAULT_CACHE_TTL_SECONDS = 5 * 60
DEFAULT_OFF_WORK_MESSAGE = "Maaf, kami sedang tutup. Silakan kembali pada jam operasional kami."

# date.weekday() order
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DAY_NAMES_ID = {
    "monday": "Senin",
    "tuesday": "Selasa",
    "wednesday": "Rabu",
    "thursday": "Kamis",
    "friday": "Jumat",
    "saturday": "Sabtu",
    "sunday": "Minggu",
}


@dataclass
class WorkingDay:
    day: str
    is_active: bool
    open_time: str
    close_time: str

    @classmethod
    def from_dict(cls, data: dict) -> "WorkingDay":
        is_active = data.get("isActive", True)
        return cls(
            day=str(data["day"]),
            # Only a real boolean true opens the day; "false", 1, etc. stay closed
            is_active=is_active is True,
            open_time=str(data["openTime"]),
            close_time=str(data["closeTime"]),
        )

    def to_dict(self) -> dict:
        return {
            "day": self.day,
            "isActive": self.is_active,
            "openTime": self.open_time,
            "closeTime": self.close_time,
        }


@dataclass
class BusinessHoursSettings:
    is_enabled: bool
    working_days: list[WorkingDay]
    off_work_message: str = DEFAULT_OFF_WORK_MESSAGE
    operating_timezone: str = DEFAULT_TIMEZONE

    def day(self, name: str) -> Optional[WorkingDay]:
        for working_day in self.working_days:
            if working_day.day == name:
                return working_day
        return None

    @classmethod
    def from_dict(cls, data: dict, *, default_timezone: str = DEFAULT_TIMEZONE) -> "BusinessHoursSettings":
        """Build settings from the stored camelCase document. Raises on malformed input."""
        if not isinstance(data, dict):
            raise TypeError("business hours settings must be an object")
        days = data.get("workingDays") or []
        if not isinstance(days, list):
            raise TypeError("workingDays must be a list")
        return cls(
            is_enabled=data.get("isEnabled", False) is True,
            working_days=[WorkingDay.from_dict(d) for d in days],
            off_work_message=data.get("offWorkMessage") or DEFAULT_OFF_WORK_MESSAGE,
            operating_timezone=data.get("operatingTimezone") or default_timezone,
        )

    def to_dict(self) -> dict:
        return {
            "isEnabled": self.is_enabled,
            "workingDays": [d.to_dict() for d in self.working_days],
            "offWorkMessage": self.off_work_message,
            "operatingTimezone": self.operating_timezone,
        }


def default_business_hours(timezone_name: str = DEFAULT_TIMEZONE) -> BusinessHoursSettings:
    """Fresh copy of the built-in schedule (disabled; Mon-Fri 08-17, Sat 08-15, Sun off)."""
    weekdays = [WorkingDay(day, True, "08:00", "17:00") for day in WEEKDAYS[:5]]
    return BusinessHoursSettings(
        is_enabled=False,
        working_days=weekdays + [
            WorkingDay("saturday", True, "08:00", "15:00"),
            WorkingDay("sunday", False, "08:00", "15:00"),
        ],
        off_work_message=DEFAULT_OFF_WORK_MESSAGE,
        operating_timezone=timezone_name,
    )


@dataclass
class BusinessHoursStatus:
    is_open: bool
    message: str = ""

    def to_dict(self) -> dict:
        return {"isOpen": self.is_open, "message": self.message}


@dataclass
class UpdateResult:
    success: bool
    message: str

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message}


@dataclass
class SettingsCache:
    """Cached settings plus the monotonic time they were fetched."""
    value: Optional[BusinessHoursSettings] = None
    fetched_at: Optional[float] = field(default=None)

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        if self.value is None or self.fetched_at is None:
            return False
        return (now - self.fetched_at) < ttl_seconds

    def store(self, value: BusinessHoursSettings, now: float) -> None:
        self.value = value
        self.fetched_at = now

    def clear(self) -> None:
        self.value = None
        self.fetched_at = None


def format_time_id(hhmm: str) -> str:
    """'8:00' -> '08.00' (Indonesian clock notation)."""
    hours, minutes = hhmm.split(":")
    return f"{int(hours):02d}.{int(minutes):02d}"


def is_open_at(settings: BusinessHoursSettings, civil_now: datetime) -> bool:
    """
    Evaluate the schedule at a civil (wall-clock) time.

    Ignores settings.is_enabled; callers decide whether the gate applies.
    """
    today = WEEKDAYS[civil_now.weekday()]
    today_setting = settings.day(today)
    if today_setting is None or not today_setting.is_active:
        return False

    current = civil_now.hour * 60 + civil_now.minute
    open_at = minutes_since_midnight(today_setting.open_time)
    close_at = minutes_since_midnight(today_setting.close_time)

    if close_at < open_at:
        # Overnight, e.g. 20:00-02:00
        return current >= open_at or current <= close_at
    return open_at <= current <= close_at


def next_opening_message(settings: BusinessHoursSettings, civil_now: datetime) -> str:
    """Suffix telling a customer when the store opens again ('' if never)."""
    index = civil_now.weekday()
    today_setting = settings.day(WEEKDAYS[index])
    current = civil_now.hour * 60 + civil_now.minute

    if (
        today_setting is not None
        and today_setting.is_active
        and current < minutes_since_midnight(today_setting.open_time)
    ):
        return f" Kami akan buka hari ini pukul {format_time_id(today_setting.open_time)}."

    tomorrow = WEEKDAYS[(index + 1) % 7]
    tomorrow_setting = settings.day(tomorrow)
    if tomorrow_setting is not None and tomorrow_setting.is_active:
        return (
            f" Kami akan buka besok ({DAY_NAMES_ID[tomorrow]}) "
            f"pukul {format_time_id(tomorrow_setting.open_time)}."
        )

    # Offset 7 is today next week
    for offset in range(2, 8):
        name = WEEKDAYS[(index + offset) % 7]
        candidate = settings.day(name)
        if candidate is not None and candidate.is_active:
            return (
                f" Kami akan buka kembali pada hari {DAY_NAMES_ID[name]} "
                f"pukul {format_time_id(candidate.open_time)} {civil_now.tzname()}."
            )
    return ""


class BusinessHoursService:
    """
    Business hours gate bound to one remote store, one local fallback and one cache.

    remote_store needs get(key) and upsert(key, value, updated_at);
    fallback_store needs get(key) -> str | None and set(key, str).
    """

    def __init__(
        self,
        remote_store: Any,
        fallback_store: Any,
        *,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        default_timezone: str = DEFAULT_TIMEZONE,
        cache: Optional[SettingsCache] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.remote_store = remote_store
        self.fallback_store = fallback_store
        self.ttl_seconds = ttl_seconds
        self.default_timezone = default_timezone
        self.cache = cache if cache is not None else SettingsCache()
        self.clock = clock

    # -- reads -------------------------------------------------------------

    def get_business_hours(self) -> BusinessHoursSettings:
        now = self.clock()
        if self.cache.is_fresh(now, self.ttl_seconds):
            logger.debug("Using cached business hours")
            return self.cache.value

        settings = self._read_remote()
        if settings is not None:
            self.cache.store(settings, now)
            self._write_fallback(settings)
            return settings

        settings = self._read_fallback()
        if settings is not None:
            self.cache.store(settings, now)
            return settings

        logger.debug("No stored business hours, using built-in default")
        settings = default_business_hours(self.default_timezone)
        self.cache.store(settings, now)
        return settings

    def is_within_business_hours(self, as_of: Optional[datetime] = None) -> bool:
        settings = self.get_business_hours()
        if not settings.is_enabled:
            return True

        try:
            civil_now = civil_time(as_of, settings.operating_timezone)
            is_open = is_open_at(settings, civil_now)
        except Exception:
            logger.exception("Business hours evaluation failed, treating store as open")
            return True

        logger.debug(
            "Business hours check at %s (%s): %s",
            civil_now.strftime("%A %H:%M"),
            settings.operating_timezone,
            "OPEN" if is_open else "CLOSED",
        )
        return is_open

    def get_current_status(self, as_of: Optional[datetime] = None) -> BusinessHoursStatus:
        try:
            settings = self.get_business_hours()
            if not settings.is_enabled:
                return BusinessHoursStatus(is_open=True)

            civil_now = civil_time(as_of, settings.operating_timezone)
            if is_open_at(settings, civil_now):
                return BusinessHoursStatus(is_open=True)

            message = settings.off_work_message + next_opening_message(settings, civil_now)
            return BusinessHoursStatus(is_open=False, message=message)
        except Exception:
            logger.exception("Error getting business hours status, defaulting to open")
            return BusinessHoursStatus(is_open=True)

    # -- writes ------------------------------------------------------------

    def update_business_hours(self, settings: BusinessHoursSettings) -> UpdateResult:
        try:
            document = settings.to_dict()
        except (AttributeError, TypeError) as exc:
            logger.error("Refusing to save malformed business hours: %s", exc)
            return UpdateResult(False, f"Pengaturan jam kerja tidak valid: {exc}")

        try:
            self.remote_store.upsert(REMOTE_SETTINGS_KEY, document, utcnow())
        except Exception as exc:
            logger.error("Error updating business hours in remote store: %s", exc)
            self._write_fallback(settings)
            self.cache.store(settings, self.clock())
            return UpdateResult(
                False,
                f"Gagal menyimpan ke database: {exc}. Data disimpan lokal sebagai cadangan.",
            )

        self.cache.store(settings, self.clock())
        self._write_fallback(settings)
        logger.info("Business hours saved (enabled=%s)", settings.is_enabled)
        return UpdateResult(True, "Pengaturan jam kerja berhasil disimpan ke database.")

    def reset_to_default(self) -> UpdateResult:
        logger.info("Resetting business hours to default")
        return self.update_business_hours(default_business_hours(self.default_timezone))

    def invalidate_cache(self) -> None:
        self.cache.clear()

    # -- helpers -----------------------------------------------------------

    def _read_remote(self) -> Optional[BusinessHoursSettings]:
        try:
            raw = self.remote_store.get(REMOTE_SETTINGS_KEY)
        except Exception as exc:
            logger.debug("Remote business hours unavailable, trying local fallback: %s", exc)
            return None
        if raw is None:
            return None
        try:
            return BusinessHoursSettings.from_dict(raw, default_timezone=self.default_timezone)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring malformed business hours record: %s", exc)
            return None

    def _read_fallback(self) -> Optional[BusinessHoursSettings]:
        try:
            raw = self.fallback_store.get(LOCAL_SETTINGS_KEY)
            if not raw:
                return None
            settings = BusinessHoursSettings.from_dict(
                json.loads(raw), default_timezone=self.default_timezone
            )
        except Exception as exc:
            logger.debug("Error reading business hours from local fallback: %s", exc)
            return None
        logger.debug("Loaded business hours from local fallback")
        return settings

    def _write_fallback(self, settings: BusinessHoursSettings) -> None:
        try:
            self.fallback_store.set(LOCAL_SETTINGS_KEY, json.dumps(settings.to_dict()))
        except Exception as exc:
            logger.debug("Error saving business hours to local fallback: %s", exc)


def get_business_hours_service() -> BusinessHoursService:
    """The app-wide gate, built on first use from the Flask config."""
    service = current_app.extensions.get("business_hours")
    if service is None:
        fallback_path = current_app.config.get("BUSINESS_HOURS_FALLBACK_PATH") or os.path.join(
            current_app.instance_path, "business_hours_fallback.json"
        )
        service = BusinessHoursService(
            DatabaseSettingsStore(),
            LocalFallbackStore(fallback_path),
            ttl_seconds=current_app.config.get("BUSINESS_HOURS_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS),
            default_timezone=current_app.config.get("OPERATING_TIMEZONE", DEFAULT_TIMEZONE),
        )
        current_app.extensions["business_hours"] = service
    return service
