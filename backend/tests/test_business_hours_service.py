# Overview: Pytest coverage for the business hours gate (schedule evaluation, sourcing, messages).

"""
Business Hours Gate Tests

The gate is exercised without Flask: stores and the monotonic clock are
in-memory fakes, and every instant is explicit so the host zone never matters.

2026-10-19 is a Monday. Asia/Jakarta is UTC+7 (WIB) all year.
"""

import json
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from app.services.business_hours_service import (
    LOCAL_SETTINGS_KEY,
    REMOTE_SETTINGS_KEY,
    WEEKDAYS,
    BusinessHoursService,
    BusinessHoursSettings,
    WorkingDay,
    default_business_hours,
    format_time_id,
    is_open_at,
)


JAKARTA = ZoneInfo("Asia/Jakarta")
MESSAGE = "Toko sedang tutup, silakan pesan lagi nanti."


class FakeRemoteStore:
    def __init__(self, value=None):
        self.value = value
        self.reads = 0
        self.fail_reads = False
        self.fail_writes = False

    def get(self, key):
        assert key == REMOTE_SETTINGS_KEY
        self.reads += 1
        if self.fail_reads:
            raise RuntimeError("connection refused")
        return self.value

    def upsert(self, key, value, updated_at):
        if self.fail_writes:
            raise RuntimeError("connection refused")
        self.value = value


class FakeFallbackStore:
    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def jakarta(day, hour, minute=0):
    return datetime(2026, 10, day, hour, minute, tzinfo=JAKARTA)


def schedule(open_time="08:00", close_time="17:00", *, inactive=(), missing=(), enabled=True):
    return BusinessHoursSettings(
        is_enabled=enabled,
        working_days=[
            WorkingDay(day, day not in inactive, open_time, close_time)
            for day in WEEKDAYS
            if day not in missing
        ],
        off_work_message=MESSAGE,
        operating_timezone="Asia/Jakarta",
    )


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def fallback():
    return FakeFallbackStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(remote, fallback, clock):
    return BusinessHoursService(remote, fallback, ttl_seconds=300, clock=clock)


class TestScheduleEvaluation:
    """is_open_at on civil times."""

    def test_same_day_window_is_inclusive(self):
        settings = schedule("08:00", "17:00")
        assert is_open_at(settings, jakarta(19, 8, 0))
        assert is_open_at(settings, jakarta(19, 17, 0))
        assert is_open_at(settings, jakarta(19, 12, 30))
        assert not is_open_at(settings, jakarta(19, 7, 59))
        assert not is_open_at(settings, jakarta(19, 17, 1))

    def test_overnight_window_open_late_evening(self):
        settings = schedule("20:00", "02:00")
        assert is_open_at(settings, jakarta(19, 23, 0))
        assert is_open_at(settings, jakarta(19, 20, 0))

    def test_overnight_window_open_early_morning(self):
        settings = schedule("20:00", "02:00")
        assert is_open_at(settings, jakarta(19, 1, 30))
        assert is_open_at(settings, jakarta(19, 2, 0))

    def test_overnight_window_closed_in_the_gap(self):
        settings = schedule("20:00", "02:00")
        assert not is_open_at(settings, jakarta(19, 3, 0))
        assert not is_open_at(settings, jakarta(19, 19, 59))

    def test_overnight_early_morning_uses_todays_entry(self):
        # Tuesday 01:30: Monday's late shift is not consulted
        settings = schedule("20:00", "02:00", inactive=("tuesday",))
        assert not is_open_at(settings, jakarta(20, 1, 30))

    def test_inactive_day_is_closed(self):
        settings = schedule(inactive=("monday",))
        assert not is_open_at(settings, jakarta(19, 10, 0))

    def test_missing_day_is_closed(self):
        settings = schedule(missing=("monday",))
        assert not is_open_at(settings, jakarta(19, 10, 0))

    @pytest.mark.parametrize("flag", ["false", "true", 1, None])
    def test_non_boolean_is_active_is_closed(self, flag):
        document = schedule().to_dict()
        document["workingDays"][0]["isActive"] = flag
        settings = BusinessHoursSettings.from_dict(document)
        assert settings.day("monday").is_active is False
        assert not is_open_at(settings, jakarta(19, 10, 0))

    def test_is_active_defaults_to_true_when_absent(self):
        document = schedule().to_dict()
        del document["workingDays"][0]["isActive"]
        assert BusinessHoursSettings.from_dict(document).day("monday").is_active is True


class TestGate:
    """is_within_business_hours / get_current_status."""

    def test_disabled_gate_is_always_open(self, service, remote):
        remote.value = schedule(inactive=tuple(WEEKDAYS), enabled=False).to_dict()
        assert service.is_within_business_hours(jakarta(19, 3, 0)) is True
        status = service.get_current_status(jakarta(19, 3, 0))
        assert status.is_open is True
        assert status.message == ""

    def test_evaluates_on_operating_timezone_clock(self, service, remote):
        remote.value = schedule("08:00", "17:00").to_dict()
        # 01:30 UTC is 08:30 in Jakarta
        assert service.is_within_business_hours(datetime(2026, 10, 19, 1, 30, tzinfo=timezone.utc))
        # 11:00 UTC is 18:00 in Jakarta
        assert not service.is_within_business_hours(datetime(2026, 10, 19, 11, 0, tzinfo=timezone.utc))

    def test_naive_instant_is_utc(self, service, remote):
        remote.value = schedule("08:00", "17:00").to_dict()
        assert service.is_within_business_hours(datetime(2026, 10, 19, 1, 30))

    def test_stored_string_flag_keeps_day_closed(self, service, remote):
        document = schedule().to_dict()
        document["workingDays"][0]["isActive"] = "false"
        remote.value = document
        assert service.is_within_business_hours(jakarta(19, 10, 0)) is False

    def test_overnight_status(self, service, remote):
        remote.value = schedule("20:00", "02:00").to_dict()
        assert service.get_current_status(jakarta(19, 23, 0)).is_open is True
        assert service.get_current_status(jakarta(19, 1, 30)).is_open is True
        assert service.get_current_status(jakarta(19, 3, 0)).is_open is False

    def test_broken_schedule_fails_open(self, service, remote):
        settings = schedule()
        settings.working_days[0].open_time = "not-a-time"
        remote.value = settings.to_dict()
        assert service.is_within_business_hours(jakarta(19, 3, 0)) is True
        assert service.get_current_status(jakarta(19, 3, 0)).is_open is True

    def test_unknown_timezone_fails_open(self, service, remote):
        settings = schedule()
        settings.operating_timezone = "Mars/Olympus_Mons"
        remote.value = settings.to_dict()
        assert service.is_within_business_hours(jakarta(19, 3, 0)) is True
        assert service.get_current_status(jakarta(19, 3, 0)).is_open is True


class TestClosedMessages:
    """Customer message appended to the off-work message."""

    def test_opens_later_today(self, service, remote):
        remote.value = schedule("08:00", "17:00").to_dict()
        status = service.get_current_status(jakarta(19, 6, 0))
        assert status.is_open is False
        assert status.message == MESSAGE + " Kami akan buka hari ini pukul 08.00."

    def test_opens_tomorrow(self, service, remote):
        remote.value = schedule("08:00", "17:00").to_dict()
        status = service.get_current_status(jakarta(19, 18, 0))
        assert status.message == MESSAGE + " Kami akan buka besok (Selasa) pukul 08.00."

    def test_opens_after_a_closed_day(self, service, remote):
        settings = default_business_hours()
        settings.is_enabled = True
        settings.off_work_message = MESSAGE
        remote.value = settings.to_dict()
        # Saturday after closing; Sunday is off
        status = service.get_current_status(jakarta(24, 16, 0))
        assert status.message == MESSAGE + " Kami akan buka kembali pada hari Senin pukul 08.00 WIB."

    def test_opens_same_weekday_next_week(self, service, remote):
        others = tuple(day for day in WEEKDAYS if day != "monday")
        remote.value = schedule("09:30", "17:00", inactive=others).to_dict()
        status = service.get_current_status(jakarta(19, 18, 0))
        assert status.message == MESSAGE + " Kami akan buka kembali pada hari Senin pukul 09.30 WIB."

    def test_never_opens(self, service, remote):
        remote.value = schedule(inactive=tuple(WEEKDAYS)).to_dict()
        status = service.get_current_status(jakarta(19, 10, 0))
        assert status.is_open is False
        assert status.message == MESSAGE

    def test_format_time_id(self):
        assert format_time_id("8:00") == "08.00"
        assert format_time_id("20:30") == "20.30"


class TestSettingsSourcing:
    """cache -> remote -> local fallback -> default."""

    def test_cache_serves_reads_within_ttl(self, service, remote, clock):
        remote.value = schedule().to_dict()
        service.get_business_hours()
        clock.now += 299
        service.get_business_hours()
        assert remote.reads == 1

    def test_cache_expires_after_ttl(self, service, remote, clock):
        remote.value = schedule().to_dict()
        service.get_business_hours()
        clock.now += 300
        service.get_business_hours()
        assert remote.reads == 2

    def test_invalidate_cache_forces_reload(self, service, remote):
        remote.value = schedule().to_dict()
        service.get_business_hours()
        service.invalidate_cache()
        service.get_business_hours()
        assert remote.reads == 2

    def test_remote_read_is_mirrored_to_fallback(self, service, remote, fallback):
        remote.value = schedule("09:00", "18:00").to_dict()
        service.get_business_hours()
        assert json.loads(fallback.data[LOCAL_SETTINGS_KEY]) == remote.value

    def test_remote_failure_uses_fallback(self, service, remote, fallback):
        fallback.data[LOCAL_SETTINGS_KEY] = json.dumps(schedule("10:00", "11:00").to_dict())
        remote.fail_reads = True
        settings = service.get_business_hours()
        assert settings.day("monday").open_time == "10:00"

    def test_absent_remote_record_uses_fallback(self, service, fallback):
        fallback.data[LOCAL_SETTINGS_KEY] = json.dumps(schedule("10:00", "11:00").to_dict())
        assert service.get_business_hours().day("monday").close_time == "11:00"

    def test_malformed_remote_record_uses_fallback(self, service, remote, fallback):
        remote.value = {"workingDays": [{"day": "monday"}]}
        fallback.data[LOCAL_SETTINGS_KEY] = json.dumps(schedule("10:00", "11:00").to_dict())
        assert service.get_business_hours().day("monday").open_time == "10:00"

    def test_unreadable_fallback_uses_default(self, service, remote, fallback):
        remote.fail_reads = True
        fallback.data[LOCAL_SETTINGS_KEY] = "{not json"
        settings = service.get_business_hours()
        assert settings.to_dict() == default_business_hours().to_dict()

    def test_nothing_stored_uses_default(self, service):
        settings = service.get_business_hours()
        assert settings.is_enabled is False
        assert settings.day("saturday").close_time == "15:00"
        assert settings.day("sunday").is_active is False
        assert settings.operating_timezone == "Asia/Jakarta"

    def test_default_is_a_fresh_copy(self):
        first = default_business_hours()
        first.working_days[0].open_time = "00:00"
        assert default_business_hours().working_days[0].open_time == "08:00"

    def test_stored_timezone_defaults_to_configured(self, remote, fallback, clock):
        document = schedule().to_dict()
        del document["operatingTimezone"]
        remote.value = document
        service = BusinessHoursService(remote, fallback, default_timezone="Asia/Makassar", clock=clock)
        assert service.get_business_hours().operating_timezone == "Asia/Makassar"


class TestUpdates:
    """update_business_hours / reset_to_default."""

    def test_update_saves_everywhere(self, service, remote, fallback):
        settings = schedule("07:00", "21:00")
        result = service.update_business_hours(settings)
        assert result.success is True
        assert result.message == "Pengaturan jam kerja berhasil disimpan ke database."
        assert remote.value == settings.to_dict()
        assert json.loads(fallback.data[LOCAL_SETTINGS_KEY]) == settings.to_dict()
        assert service.get_business_hours() is settings
        assert remote.reads == 0

    def test_remote_write_failure_keeps_change_locally(self, service, remote, fallback):
        remote.fail_writes = True
        settings = schedule("07:00", "21:00")
        result = service.update_business_hours(settings)
        assert result.success is False
        assert result.message.startswith("Gagal menyimpan ke database: connection refused")
        assert "Data disimpan lokal sebagai cadangan." in result.message
        assert json.loads(fallback.data[LOCAL_SETTINGS_KEY]) == settings.to_dict()
        assert service.get_business_hours().day("monday").open_time == "07:00"

    def test_change_survives_remote_outage_after_cache_expiry(self, service, remote, clock):
        remote.fail_writes = True
        service.update_business_hours(schedule("07:00", "21:00"))
        remote.fail_reads = True
        clock.now += 301
        assert service.get_business_hours().day("monday").open_time == "07:00"

    def test_reset_to_default(self, service, remote):
        service.update_business_hours(schedule("07:00", "21:00"))
        result = service.reset_to_default()
        assert result.success is True
        assert remote.value == default_business_hours().to_dict()
        assert service.get_business_hours().is_enabled is False
