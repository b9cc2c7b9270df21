"""
Integration tests for POST /book-service and the read endpoints.

The real app runs over ASGITransport against a SQLite file; the center
directory is either the database backend (seeded centers) or replaced by a
fake through dependency_overrides.
"""

import pytest

from core.dependencies import get_center_directory
from schemas.service_center import CenterRecord
from services.exceptions import LookupFailure


class StaticDirectory:
    def __init__(self, centers):
        self.centers = centers
        self.calls = []

    async def list_candidates(self, scope=None):
        self.calls.append(scope)
        return [CenterRecord.model_validate(c) for c in self.centers]


class FailingDirectory:
    async def list_candidates(self, scope=None):
        raise LookupFailure("Center directory timed out after 30.0s")


def booking_payload(vehicle_id="CAR_1", center_id="", is_scheduled=True, confirmation="CONF-1", status="CONFIRMED"):
    return {
        "vehicleId": vehicle_id,
        "confirmationCode": confirmation,
        "status": status,
        "scheduledService": {
            "isScheduled": is_scheduled,
            "serviceCenterId": center_id,
            "dateTime": "2025-01-01T10:00:00Z",
        },
    }


async def get_booking(client, vehicle_id):
    response = await client.get("/bookings")
    assert response.status_code == 200
    return next(b for b in response.json() if b["vehicleId"] == vehicle_id)


async def get_logs(client, vehicle_id):
    response = await client.get("/logs")
    assert response.status_code == 200
    return [entry for entry in response.json() if entry["vehicleId"] == vehicle_id]


@pytest.mark.asyncio
async def test_explicit_center_booking(async_client, task_pool):
    """Scenario A: caller picks the center"""
    resp = await async_client.post("/book-service", json=booking_payload(center_id="CENTER_7"))

    assert resp.status_code == 200
    body = resp.json()
    assert body["bookingStatus"] == "Confirmed"
    assert body["assignedCenter"] == "CENTER_7"
    assert body["message"] == "Successfully saved"
    assert body["generatedLogId"].startswith("LOG_")

    booking = await get_booking(async_client, "CAR_1")
    assert booking["scheduledService"]["serviceCenterId"] == "CENTER_7"
    assert booking["scheduledService"]["isScheduled"] is True
    assert booking["userId"] == "USR_CAR_1"

    logs = await get_logs(async_client, "CAR_1")
    assert [entry["data"]["action"] for entry in logs] == ["CREATED"]
    assert logs[0]["logId"] == body["generatedLogId"]
    assert logs[0]["logType"] == "BOOKING"

    # Unknown center: the detached mirror update fails quietly
    await task_pool.join()


@pytest.mark.asyncio
async def test_auto_assignment_picks_least_loaded(async_client, test_app):
    """Scenario B: empty serviceCenterId, directory answers two centers"""
    directory = StaticDirectory([
        {"id": "C1", "bookings": []},
        {"id": "C2", "bookings": ["a", "b"]},
    ])
    test_app.dependency_overrides[get_center_directory] = lambda: directory

    resp = await async_client.post("/book-service", json=booking_payload(vehicle_id="PQR_999"))

    assert resp.status_code == 200
    assert resp.json()["assignedCenter"] == "C1"
    assert directory.calls == ["PQR"]

    logs = await get_logs(async_client, "PQR_999")
    assert logs[0]["data"]["action"] == "AUTO_ASSIGNED_CREATED"


@pytest.mark.asyncio
async def test_directory_failure_uses_fallback_center(async_client, test_app):
    """Scenario C: discovery times out, the fixed fallback center is used"""
    test_app.dependency_overrides[get_center_directory] = lambda: FailingDirectory()

    resp = await async_client.post("/book-service", json=booking_payload())

    assert resp.status_code == 200
    assert resp.json()["assignedCenter"] == "SC_DEFAULT"

    logs = await get_logs(async_client, "CAR_1")
    assert logs[0]["data"]["action"] == "AUTO_ASSIGNED_CREATED"


@pytest.mark.asyncio
async def test_directory_failure_without_fallback_is_bad_gateway(async_client, test_app, monkeypatch):
    monkeypatch.setenv("FALLBACK_CENTER_ID", "")
    test_app.dependency_overrides[get_center_directory] = lambda: FailingDirectory()

    resp = await async_client.post("/book-service", json=booking_payload())

    assert resp.status_code == 502
    assert "error" in resp.json()
    assert (await async_client.get("/bookings")).json() == []


@pytest.mark.asyncio
async def test_no_eligible_center_is_not_found(async_client, seed_centers):
    await seed_centers([{"center_id": "SC_1", "name": "PQR Closed", "is_active": False}])

    resp = await async_client.post("/book-service", json=booking_payload(vehicle_id="PQR_1"))

    assert resp.status_code == 404
    assert resp.json() == {"error": "No eligible service center available for assignment"}
    assert (await async_client.get("/bookings")).json() == []
    assert (await async_client.get("/logs")).json() == []


@pytest.mark.asyncio
async def test_database_directory_assigns_and_mirrors(async_client, seed_centers, read_center, task_pool):
    await seed_centers([
        {"center_id": "SC_1", "name": "PQR North", "capacity": 5, "bookings": [{"vehicleId": "PQR_0"}]},
        {"center_id": "SC_2", "name": "PQR South", "capacity": 5, "bookings": []},
        {"center_id": "SC_3", "name": "XYZ Garage", "capacity": 5, "bookings": []},
    ])

    resp = await async_client.post("/book-service", json=booking_payload(vehicle_id="PQR_7"))

    assert resp.status_code == 200
    assert resp.json()["assignedCenter"] == "SC_2"

    booking = await get_booking(async_client, "PQR_7")
    assert booking["scheduledService"]["serviceCenterName"] == "PQR South"

    await task_pool.join()
    center = await read_center("SC_2")
    assert [b["vehicleId"] for b in center.bookings] == ["PQR_7"]


@pytest.mark.asyncio
async def test_max_free_capacity_policy(async_client, seed_centers, monkeypatch):
    monkeypatch.setenv("CENTER_SELECTION_POLICY", "max_free_capacity")
    await seed_centers([
        {"center_id": "SC_1", "name": "PQR North", "capacity": 2, "bookings": []},
        {"center_id": "SC_2", "name": "PQR South", "capacity": 10, "bookings": [{}, {}]},
    ])

    resp = await async_client.post("/book-service", json=booking_payload(vehicle_id="PQR_8"))

    assert resp.json()["assignedCenter"] == "SC_2"


@pytest.mark.asyncio
async def test_scheduled_booking_is_not_overwritten(async_client):
    first = await async_client.post("/book-service", json=booking_payload(center_id="CENTER_7"))
    assert first.status_code == 200
    before = await get_booking(async_client, "CAR_1")

    second = await async_client.post(
        "/book-service",
        json=booking_payload(center_id="CENTER_9", confirmation="CONF-2", status="RESCHEDULE")
    )

    assert second.status_code == 200
    body = second.json()
    assert body["message"] == "already booked"
    assert body["assignedCenter"] == "CENTER_7"
    assert body["bookingStatus"] == "CONFIRMED"

    assert await get_booking(async_client, "CAR_1") == before
    # the already-booked log id is not persisted
    log_ids = [entry["logId"] for entry in await get_logs(async_client, "CAR_1")]
    assert len(log_ids) == 1


@pytest.mark.asyncio
async def test_unscheduled_booking_is_replaced(async_client):
    first = await async_client.post(
        "/book-service",
        json=booking_payload(center_id="CENTER_7", is_scheduled=False, confirmation="CONF-1", status="PENDING")
    )
    assert first.status_code == 200

    second = await async_client.post(
        "/book-service",
        json=booking_payload(center_id="CENTER_7", is_scheduled=False, confirmation="CONF-2", status="WAITING")
    )

    assert second.status_code == 200
    booking = await get_booking(async_client, "CAR_1")
    assert booking["confirmationCode"] == "CONF-2"
    assert booking["status"] == "WAITING"

    actions = [entry["data"]["action"] for entry in await get_logs(async_client, "CAR_1")]
    assert actions == ["CREATED", "UPDATED_SCHEDULE"]
    assert len((await async_client.get("/bookings")).json()) == 1


@pytest.mark.asyncio
async def test_malformed_json_is_bad_request(async_client):
    resp = await async_client.post(
        "/book-service",
        content=b'{"vehicleId": "CAR_1", ',
        headers={"Content-Type": "application/json"}
    )

    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Invalid JSON")


@pytest.mark.asyncio
async def test_missing_vehicle_id_is_bad_request(async_client):
    resp = await async_client.post("/book-service", json={"confirmationCode": "CONF-1"})

    assert resp.status_code == 400
    assert "vehicleId" in resp.json()["error"]


@pytest.mark.asyncio
async def test_null_scheduled_service_is_auto_assigned(async_client, test_app):
    test_app.dependency_overrides[get_center_directory] = lambda: StaticDirectory([{"id": "C1", "bookings": []}])

    resp = await async_client.post("/book-service", json={"vehicleId": "PQR_5", "scheduledService": None})

    assert resp.status_code == 200
    assert resp.json()["assignedCenter"] == "C1"
    booking = await get_booking(async_client, "PQR_5")
    assert booking["scheduledService"]["isScheduled"] is False


@pytest.mark.asyncio
async def test_null_is_scheduled_means_unscheduled(async_client):
    resp = await async_client.post(
        "/book-service",
        json={"vehicleId": "CAR_2", "scheduledService": {"isScheduled": None, "serviceCenterId": "CENTER_7"}}
    )

    assert resp.status_code == 200
    booking = await get_booking(async_client, "CAR_2")
    assert booking["scheduledService"]["isScheduled"] is False
    assert booking["scheduledService"]["serviceCenterId"] == "CENTER_7"
