from datetime import date

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from output_tracker.api.v1.api import api_router


DAY = "2024-01-01"

TARGET_BODY = {
    "targetDate": DAY,
    "workcenter": "WC1",
    "shift": "Morning",
    "planQty": 480,
    "hours": 8,
    "teamMemberCount": 5,
    "smv": 1.2,
    "createdBy": "planner01",
}


@pytest.fixture
def seeded(store):
    store.add_production("Morning", "05:30-06:00", "WC1", 30)
    store.add_production("Morning", "Other", "WC1", 5)
    store.add_production("Evening", "13:30-14:00", "WC2", 12)
    store.add_production("Morning", "06:00-07:00", "WC3", 1, day=date(2024, 1, 2))
    return store


class TestTargets:

    def test_create_then_update(self, client):
        first = client.post("/api/targets", json=TARGET_BODY)
        assert first.status_code == 200
        body = first.json()
        assert body["success"] is True
        assert body["updated"] is False
        assert body["message"] == "Target created successfully"

        second = client.post("/api/targets", json={**TARGET_BODY, "planQty": 960})
        assert second.status_code == 200
        assert second.json()["id"] == body["id"]
        assert second.json()["updated"] is True

    def test_get_targets_for_date(self, client):
        client.post("/api/targets", json={**TARGET_BODY, "shift": "Evening"})
        client.post("/api/targets", json={**TARGET_BODY, "timeSlotTargets": [{"position": 3, "targetQty": 75}]})

        response = client.get(f"/api/targets/{DAY}")
        assert response.status_code == 200
        targets = response.json()

        assert [t["shift"] for t in targets] == ["Evening", "Morning"]
        morning = targets[1]
        assert morning["targetDate"] == DAY
        assert morning["planQty"] == 480
        assert morning["teamMemberCount"] == 5
        assert morning["createdBy"] == "planner01"
        assert [s["targetQty"] for s in morning["timeSlotTargets"]] == [30, 60, 75, 90, 60, 60, 60, 60]
        assert morning["timeSlotTargets"][0] == {"timeSlot": "05:30-06:00", "targetQty": 30, "position": 1}

    def test_defaults_applied(self, client):
        response = client.post(
            "/api/targets",
            json={"targetDate": DAY, "workcenter": "WC9", "shift": "Evening", "planQty": 100},
        )
        assert response.status_code == 200

        target = client.get(f"/api/targets/{DAY}").json()[0]
        assert target["hours"] == 8
        assert target["teamMemberCount"] == 1
        assert target["smv"] == 0
        assert target["createdBy"] == "system"

    def test_hourly_targets_grid(self, client, seeded):
        client.post("/api/targets", json=TARGET_BODY)

        body = client.get(f"/api/hourly-targets/{DAY}").json()
        assert body["workcenters"] == ["WC1", "WC2"]
        assert body["data"]["Morning"][3] == {"WC1": 90, "WC2": 0}
        assert body["data"]["Evening"][0] == {"WC1": 0, "WC2": 0}

    @pytest.mark.parametrize(
        "override",
        [
            {"shift": "Night"},
            {"targetDate": "2024-13-01"},
            {"planQty": -5},
            {"hours": 0},
            {"workcenter": ""},
            {"timeSlotTargets": [{"position": 0, "targetQty": 1}]},
            {"timeSlotTargets": [{"position": 3, "targetQty": -1.5}]},
        ],
    )
    def test_invalid_payload(self, client, store, override):
        response = client.post("/api/targets", json={**TARGET_BODY, **override})
        assert response.status_code == 422
        assert store.targets == {}

    def test_fractional_slot_target(self, client):
        response = client.post(
            "/api/targets",
            json={**TARGET_BODY, "timeSlotTargets": [{"position": 3, "targetQty": 12.5}]},
        )
        assert response.status_code == 200

        target = client.get(f"/api/targets/{DAY}").json()[0]
        assert target["timeSlotTargets"][2]["targetQty"] == 12.5
        assert target["timeSlotTargets"][1]["targetQty"] == 60

    def test_storage_failure_is_500(self, client, store):
        store.fail_on = "insert_time_slot_targets"
        response = client.post("/api/targets", json=TARGET_BODY)

        assert response.status_code == 500
        assert response.json()["detail"].startswith("Failed to set target")
        assert store.targets == {}


class TestProduction:

    def test_grid_for_date(self, client, seeded):
        response = client.get(f"/api/production/{DAY}")
        assert response.status_code == 200
        body = response.json()

        assert body["workcenters"] == ["WC1", "WC2"]
        assert body["data"]["Morning"][0] == {"WC1": 30, "WC2": 0}
        assert body["data"]["Morning"][7] == {"WC1": 5, "WC2": 0}
        assert body["data"]["Evening"][0] == {"WC1": 0, "WC2": 12}

    def test_empty_date(self, client, seeded):
        body = client.get("/api/production/2023-06-01").json()
        assert body["workcenters"] == []
        assert len(body["data"]["Morning"]) == 8

    def test_malformed_date(self, client):
        response = client.get("/api/production/2024-1-01x")
        assert response.status_code == 400
        assert "YYYY-MM-DD" in response.json()["detail"]

    def test_current(self, client, store, monkeypatch):
        monkeypatch.setattr(
            "output_tracker.modules.production.production_service.get_plant_today",
            lambda: date(2024, 1, 2),
        )
        store.add_production("Evening", "20:30-21:30", "WC4", 7, day=date(2024, 1, 2))

        body = client.get("/api/production/current").json()
        assert body["workcenters"] == ["WC4"]
        assert body["data"]["Evening"][7] == {"WC4": 7}

    def test_dates(self, client, seeded):
        assert client.get("/api/production/dates").json() == ["2024-01-02", "2024-01-01"]

    def test_workcenters(self, client, seeded):
        assert client.get("/api/production/workcenters").json() == ["WC1", "WC2", "WC3"]

    def test_read_failure_is_500(self, client, store):
        store.fail_reads = True
        response = client.get(f"/api/production/{DAY}")
        assert response.status_code == 500


class TestReconciliation:

    def test_production_targets(self, client, seeded):
        client.post("/api/targets", json=TARGET_BODY)

        body = client.get(f"/api/production-targets/{DAY}").json()
        assert body["workcenters"] == ["WC1", "WC2"]
        assert body["actualData"]["Morning"][0]["WC1"] == 30
        assert body["targetData"]["Morning"][0]["WC1"] == {"target": 30, "efficiency": 24.0, "status": "green"}
        assert body["targetData"]["Evening"][0]["WC2"]["status"] == "grey"

    def test_efficiency(self, client, seeded):
        client.post("/api/targets", json=TARGET_BODY)

        rows = client.get(f"/api/efficiency/{DAY}").json()
        assert [(r["shift"], r["workcenter"]) for r in rows] == [("Evening", "WC2"), ("Morning", "WC1")]
        assert rows[1]["totalOutput"] == 35
        assert rows[1]["totalTarget"] == 480
        assert rows[1]["totalWorkMinutes"] == 480
        assert rows[1]["achievementPercentage"] == 7
        assert rows[1]["productionDate"] == DAY

    def test_malformed_date(self, client):
        assert client.get("/api/efficiency/yesterday").status_code == 400
        assert client.get("/api/production-targets/2024-02-31").status_code == 400


class TestRealtime:

    def test_initial_message(self, client, store, monkeypatch):
        monkeypatch.setattr(
            "output_tracker.modules.production.production_service.get_plant_today",
            lambda: date(2024, 1, 1),
        )
        store.add_production("Morning", "05:30-06:00", "WC1", 30)

        with client.websocket_connect("/api/ws/production") as websocket:
            message = websocket.receive_json()

        assert message["event"] == "productionData"
        assert message["data"]["workcenters"] == ["WC1"]
        assert message["data"]["data"]["Morning"][0] == {"WC1": 30}

    def test_change_is_pushed_to_connected_client(self, app, client, store, monkeypatch):
        monkeypatch.setattr(
            "output_tracker.modules.production.production_service.get_plant_today",
            lambda: date(2024, 1, 1),
        )
        poller = app.state.poller
        store.add_production("Morning", "05:30-06:00", "WC1", 30)
        client.portal.call(poller.check)

        with client.websocket_connect("/api/ws/production") as websocket:
            initial = websocket.receive_json()
            assert poller.subscriber_count == 1

            store.add_production("Morning", "05:30-06:00", "WC1", 5)
            assert client.portal.call(poller.check) is True
            update = websocket.receive_json()

        assert initial["data"]["data"]["Morning"][0] == {"WC1": 30}
        assert update["event"] == "productionData"
        assert update["data"]["data"]["Morning"][0] == {"WC1": 35}


def test_store_not_initialized_is_503():
    app = FastAPI()
    app.include_router(api_router, prefix="/api")

    with TestClient(app) as client:
        response = client.get("/api/production/workcenters")

    assert response.status_code == 503
