"""
HTTP tests for the storefront API.

Verifies:
- Business hours read/replace/status/reset endpoints and payload validation
- Charcoal ledger CRUD, summary and order hooks
- /health reports both data stores
"""

import pytest

from app.services.business_hours_service import WEEKDAYS


def week(open_time="08:00", close_time="17:00", **extra):
    payload = {
        "isEnabled": True,
        "workingDays": [
            {"day": day, "isActive": True, "openTime": open_time, "closeTime": close_time}
            for day in WEEKDAYS
        ],
        "offWorkMessage": "Maaf, toko sedang tutup.",
    }
    payload.update(extra)
    return payload


# =============================================================================
# BUSINESS HOURS
# =============================================================================


class TestBusinessHoursRoutes:
    """/api/business-hours"""

    def test_default_schedule(self, client):
        response = client.get("/api/business-hours")
        assert response.status_code == 200
        settings = response.json["settings"]
        assert settings["isEnabled"] is False
        assert settings["operatingTimezone"] == "Asia/Jakarta"
        assert len(settings["workingDays"]) == 7

    def test_replace_schedule(self, client):
        response = client.put("/api/business-hours", json=week("20:00", "02:00"))
        assert response.status_code == 200
        assert response.json["success"] is True
        assert response.json["settings"]["workingDays"][0]["openTime"] == "20:00"

        stored = client.get("/api/business-hours").json["settings"]
        assert stored["isEnabled"] is True
        assert stored["offWorkMessage"] == "Maaf, toko sedang tutup."

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            {"isEnabled": "yes", "workingDays": []},
            week(offWorkMessage="tutup"),
            week(operatingTimezone="Nowhere/City"),
            {**week(), "workingDays": week()["workingDays"][:6]},
            {**week(), "workingDays": week()["workingDays"] + [week()["workingDays"][0]]},
        ],
    )
    def test_rejects_invalid_payload(self, client, payload):
        response = client.put("/api/business-hours", json=payload)
        assert response.status_code == 400
        assert "error" in response.json

    def test_rejects_bad_time(self, client):
        response = client.put("/api/business-hours", json=week("24:00", "02:00"))
        assert response.status_code == 400
        assert "openTime" in response.json["error"]

    def test_status_overnight(self, client):
        client.put("/api/business-hours", json=week("20:00", "02:00"))

        late = client.get("/api/business-hours/status?as_of=2026-10-19T23:00:00%2B07:00")
        assert late.json == {"isOpen": True, "message": ""}

        early = client.get("/api/business-hours/status?as_of=2026-10-19T01:30:00%2B07:00")
        assert early.json["isOpen"] is True

        gap = client.get("/api/business-hours/status?as_of=2026-10-19T03:00:00%2B07:00")
        assert gap.json["isOpen"] is False
        assert gap.json["message"] == "Maaf, toko sedang tutup. Kami akan buka hari ini pukul 20.00."

    def test_status_accepts_utc(self, client):
        client.put("/api/business-hours", json=week("08:00", "17:00"))
        # 01:30Z is 08:30 WIB
        response = client.get("/api/business-hours/status?as_of=2026-10-19T01:30:00Z")
        assert response.json["isOpen"] is True

    def test_status_rejects_bad_as_of(self, client):
        response = client.get("/api/business-hours/status?as_of=tomorrow")
        assert response.status_code == 400

    def test_reset(self, client):
        client.put("/api/business-hours", json=week("20:00", "02:00"))
        response = client.post("/api/business-hours/reset")
        assert response.status_code == 200
        assert response.json["success"] is True
        assert response.json["settings"]["isEnabled"] is False
        assert response.json["settings"]["workingDays"][0]["openTime"] == "08:00"


# =============================================================================
# CHARCOAL LEDGER
# =============================================================================


class TestCoalInventoryRoutes:
    """/api/coal-inventory"""

    def create(self, client, **overrides):
        payload = {
            "transaction_date": "2026-10-01T08:00:00Z",
            "transaction_type": "incoming",
            "quantity_kg": 100,
            "source_destination": "Supplier Arang Jaya",
            "created_by": "admin-1",
            "price_per_kg": 2500,
        }
        payload.update(overrides)
        return client.post("/api/coal-inventory/transactions", json=payload)

    def test_create_returns_transaction_and_summary(self, client):
        response = self.create(client, quality_grade="premium")
        assert response.status_code == 201
        tx = response.json["transaction"]
        assert tx["total_amount"] == 250000
        assert tx["transaction_date"] == "2026-10-01T08:00:00Z"
        assert tx["transaction_reason"] == "MANUAL"
        assert response.json["summary"]["premium_stock_kg"] == 100

    def test_create_missing_fields(self, client):
        response = client.post("/api/coal-inventory/transactions", json={"quantity_kg": 5})
        assert response.status_code == 400
        assert response.json["error"].startswith("Missing required fields:")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"quantity_kg": 0},
            {"quantity_kg": 2_000_000},
            {"moisture_content": 120},
            {"quality_grade": "gold"},
            {"total_amount": 5},
        ],
    )
    def test_create_rejects_invalid(self, client, overrides):
        assert self.create(client, **overrides).status_code == 400

    @pytest.mark.parametrize("field", ["quantity_kg", "price_per_kg", "moisture_content"])
    @pytest.mark.parametrize("token", ["Infinity", "-Infinity", "NaN", "\"inf\"", "\"nan\""])
    def test_create_rejects_non_finite_numbers(self, client, field, token):
        body = (
            '{"transaction_date": "2026-10-01T08:00:00Z", "transaction_type": "incoming", '
            '"quantity_kg": 100, "source_destination": "Supplier Arang Jaya", "created_by": "admin-1", '
            f'"{field}": {token}}}'
        )
        response = client.post(
            "/api/coal-inventory/transactions", data=body, content_type="application/json"
        )
        assert response.status_code == 400
        assert "finite" in response.json["error"]
        assert client.get("/api/coal-inventory/transactions").json["count"] == 0

    def test_order_hook_rejects_non_finite_quantity(self, client):
        body = '{"user_id": "u", "items": [{"productName": "Arang Batok", "quantity": Infinity}]}'
        response = client.post(
            "/api/coal-inventory/orders/o1/reduce", data=body, content_type="application/json"
        )
        assert response.status_code == 400

    def test_list_and_filter(self, client):
        self.create(client, source_destination="Gudang Bogor")
        self.create(client, transaction_type="outgoing", quantity_kg=10, source_destination="Pelanggan Depok",
                    transaction_date="2026-10-02T08:00:00Z")

        response = client.get("/api/coal-inventory/transactions")
        assert response.json["count"] == 2
        assert response.json["items"][0]["source_destination"] == "Pelanggan Depok"

        response = client.get("/api/coal-inventory/transactions?type=incoming")
        assert [i["source_destination"] for i in response.json["items"]] == ["Gudang Bogor"]

        response = client.get("/api/coal-inventory/transactions?q=depok")
        assert response.json["count"] == 1

    def test_patch_and_delete(self, client):
        tx_id = self.create(client).json["transaction"]["id"]

        response = client.patch(f"/api/coal-inventory/transactions/{tx_id}", json={"quantity_kg": 40})
        assert response.status_code == 200
        assert response.json["transaction"]["total_amount"] == 100000
        assert client.get("/api/coal-inventory/summary").json["summary"]["current_stock_kg"] == 40

        response = client.delete(f"/api/coal-inventory/transactions/{tx_id}")
        assert response.status_code == 200
        assert client.get("/api/coal-inventory/summary").json["summary"]["current_stock_kg"] == 0

    def test_unknown_transaction(self, client):
        assert client.patch("/api/coal-inventory/transactions/nope", json={"notes": "x"}).status_code == 404
        assert client.delete("/api/coal-inventory/transactions/nope").status_code == 404

    def test_summary_before_any_recompute(self, client):
        assert client.get("/api/coal-inventory/summary").json == {"summary": None}

    def test_recompute(self, client):
        response = client.post("/api/coal-inventory/summary/recompute")
        assert response.status_code == 200
        assert response.json["summary"]["current_stock_kg"] == 0

    def test_order_round_trip(self, client):
        self.create(client)
        order = {
            "user_id": "cust-42",
            "items": [
                {"productName": "Arang Batok Kelapa", "quantity": 12},
                {"productName": "Kopi Bubuk", "quantity": 3},
            ],
        }

        response = client.post("/api/coal-inventory/orders/ORD-20261019-01/reduce", json=order)
        assert response.json == {"success": True, "order_id": "ORD-20261019-01"}
        assert client.get("/api/coal-inventory/summary").json["summary"]["current_stock_kg"] == 88

        for _ in range(2):
            response = client.post("/api/coal-inventory/orders/ORD-20261019-01/restore", json=order)
            assert response.json["success"] is True
        summary = client.get("/api/coal-inventory/summary").json["summary"]
        assert summary["current_stock_kg"] == 100
        assert summary["total_incoming_kg"] == 100

    def test_order_hook_validation(self, client):
        response = client.post("/api/coal-inventory/orders/o1/reduce", json={"items": []})
        assert response.status_code == 400
        response = client.post("/api/coal-inventory/orders/o1/reduce", json={"user_id": "u"})
        assert response.status_code == 400


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystemRoutes:

    def test_health_reports_checks(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        checks = response.json["checks"]
        assert checks["database"]["status"] == "healthy"
        # Nothing saved yet: the gate runs on the built-in default
        assert checks["business_hours"]["status"] == "degraded"
        assert checks["business_hours"]["details"]["stored_in_database"] is False

    def test_health_after_saving_schedule(self, client):
        client.put("/api/business-hours", json=week())
        response = client.get("/health")
        assert response.json["status"] == "healthy"

    def test_version(self, client):
        assert client.get("/version").json["api_version"] == "1.0.0"
