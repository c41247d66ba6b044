"""
HTTP-level tests: role guards, the error envelope, pagination and a full
trip lifecycle driven through the API.
"""

from datetime import date, timedelta

import pytest

from backend.app.core.permissions import Action, PERMISSIONS, has_permission
from backend.app.models.enums import UserRole

FM = UserRole.FLEET_MANAGER
DISPATCHER = UserRole.DISPATCHER
SAFETY = UserRole.SAFETY_OFFICER
ANALYST = UserRole.FINANCIAL_ANALYST


def test_unknown_roles_are_denied():
    assert has_permission(FM, Action.VEHICLES_DELETE)
    assert not has_permission("Admin", Action.VEHICLES_READ)
    assert not has_permission(None, Action.TRIPS_READ)
    # Every action is granted to at least the fleet manager
    assert all(FM in roles for roles in PERMISSIONS.values())
    assert set(PERMISSIONS) == set(Action)


async def _create_vehicle(client, headers, plate="API-001", **extra):
    payload = {
        "name": "API Truck",
        "license_plate": plate,
        "vehicle_type": "Truck",
        "max_capacity": 1000,
        "odometer": 100,
    }
    payload.update(extra)
    response = await client.post("/v1/vehicles", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _create_driver(client, headers, license_number="API-DL-1"):
    response = await client.post("/v1/drivers", json={
        "name": "API Driver",
        "license_category": "c",
        "license_number": license_number,
        "license_expiry_date": (date.today() + timedelta(days=365)).isoformat(),
    }, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["redis"] == "up"
    assert "X-Correlation-ID" in response.headers


@pytest.mark.asyncio
async def test_correlation_id_echoed(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "trace-42"})

    assert response.headers["X-Correlation-ID"] == "trace-42"


@pytest.mark.asyncio
@pytest.mark.parametrize("role,method,path", [
    (DISPATCHER, "POST", "/v1/vehicles"),
    (SAFETY, "DELETE", "/v1/vehicles/1"),
    (ANALYST, "GET", "/v1/drivers"),
    (DISPATCHER, "GET", "/v1/drivers/expiring"),
    (SAFETY, "POST", "/v1/trips"),
    (ANALYST, "PATCH", "/v1/trips/1/status"),
    (DISPATCHER, "GET", "/v1/maintenance"),
    (ANALYST, "POST", "/v1/maintenance"),
    (SAFETY, "GET", "/v1/fuel"),
    (ANALYST, "POST", "/v1/fuel"),
    (DISPATCHER, "GET", "/v1/analytics/dashboard"),
    (SAFETY, "GET", "/v1/analytics/fuel-efficiency"),
])
async def test_forbidden_roles(client, auth_headers, role, method, path):
    headers = await auth_headers(role)

    response = await client.request(method, path, headers=headers, json={})

    assert response.status_code == 403
    body = response.json()
    assert body["error_code"] == "ERR_PERMISSION"
    assert body["details"]["role"] == role.value


@pytest.mark.asyncio
@pytest.mark.parametrize("role,path", [
    (ANALYST, "/v1/vehicles"),
    (ANALYST, "/v1/trips"),
    (ANALYST, "/v1/maintenance"),
    (ANALYST, "/v1/fuel"),
    (ANALYST, "/v1/analytics/dashboard"),
    (SAFETY, "/v1/drivers/expiring"),
    (DISPATCHER, "/v1/drivers"),
    (DISPATCHER, "/v1/fuel"),
])
async def test_allowed_reads(client, auth_headers, role, path):
    response = await client.get(path, headers=await auth_headers(role))

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_not_found_envelope(client, auth_headers):
    response = await client.get("/v1/vehicles/999", headers=await auth_headers(FM))

    assert response.status_code == 404
    assert response.json() == {
        "error_code": "ERR_NOT_FOUND",
        "message": "Vehicle with ID 999 not found",
        "details": {"resource": "Vehicle", "id": 999},
    }


@pytest.mark.asyncio
async def test_request_validation_envelope(client, auth_headers):
    response = await client.post("/v1/vehicles", json={
        "name": "Bad",
        "license_plate": "BAD-1",
        "vehicle_type": "Spaceship",
        "max_capacity": 10,
    }, headers=await auth_headers(FM))

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"
    assert response.json()["details"]["errors"]


@pytest.mark.asyncio
async def test_vehicle_pagination(client, auth_headers):
    headers = await auth_headers(FM)
    for n in range(5):
        await _create_vehicle(client, headers, plate=f"PG-{n}")

    response = await client.get("/v1/vehicles?page=2&page_size=2", headers=headers)

    body = response.json()
    assert body["total"] == 5
    assert body["pages"] == 3
    assert body["page"] == 2
    assert len(body["items"]) == 2


@pytest.mark.asyncio
async def test_vehicle_update_and_delete(client, auth_headers):
    headers = await auth_headers(FM)
    vehicle = await _create_vehicle(client, headers, plate="upd-1")
    assert vehicle["license_plate"] == "UPD-1"

    updated = await client.put(f"/v1/vehicles/{vehicle['id']}", json={"max_capacity": 1500}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["max_capacity"] == 1500
    assert updated.json()["name"] == "API Truck"

    deleted = await client.delete(f"/v1/vehicles/{vehicle['id']}", headers=headers)
    assert deleted.status_code == 200
    assert "deleted" in deleted.json()["message"]

    assert (await client.get(f"/v1/vehicles/{vehicle['id']}", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_driver_expired_license_over_http(client, auth_headers):
    headers = await auth_headers(FM)

    response = await client.post("/v1/drivers", json={
        "name": "Lapsed",
        "license_category": "B",
        "license_number": "OLD-1",
        "license_expiry_date": (date.today() - timedelta(days=3)).isoformat(),
    }, headers=headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_RULE"


@pytest.mark.asyncio
async def test_trip_lifecycle_over_http(client, auth_headers):
    manager = await auth_headers(FM)
    dispatcher = await auth_headers(DISPATCHER)
    vehicle = await _create_vehicle(client, manager)
    driver = await _create_driver(client, manager)

    trip_payload = {
        "vehicle_id": vehicle["id"],
        "driver_id": driver["id"],
        "cargo_weight": 500,
        "from_location": "North Depot",
        "to_location": "South Depot",
        "start_odometer": 100,
        "revenue": 750,
    }

    too_heavy = await client.post("/v1/trips", json=dict(trip_payload, cargo_weight=5000), headers=dispatcher)
    assert too_heavy.status_code == 400
    assert too_heavy.json()["error_code"] == "ERR_CAPACITY_EXCEEDED"
    assert too_heavy.json()["details"]["field"] == "cargo_weight"

    created = await client.post("/v1/trips", json=trip_payload, headers=dispatcher)
    assert created.status_code == 201
    trip_id = created.json()["id"]
    assert created.json()["status"] == "Draft"

    status_url = f"/v1/trips/{trip_id}/status"
    skipped = await client.patch(status_url, json={"status": "Completed", "end_odometer": 200}, headers=dispatcher)
    assert skipped.status_code == 400
    assert skipped.json()["error_code"] == "ERR_INVALID_TRANSITION"
    assert skipped.json()["details"]["allowed"] == ["Cancelled", "Dispatched"]

    dispatched = await client.patch(status_url, json={"status": "Dispatched"}, headers=dispatcher)
    assert dispatched.status_code == 200

    busy = await client.delete(f"/v1/vehicles/{vehicle['id']}", headers=manager)
    assert busy.status_code == 409

    shop = await client.post("/v1/maintenance", json={
        "vehicle_id": vehicle["id"], "description": "Tyres", "cost": 80
    }, headers=manager)
    assert shop.status_code == 409

    missing = await client.patch(status_url, json={"status": "Completed"}, headers=dispatcher)
    assert missing.status_code == 400
    assert missing.json()["error_code"] == "ERR_MISSING_FIELD"

    completed = await client.patch(status_url, json={"status": "Completed", "end_odometer": 260}, headers=dispatcher)
    assert completed.status_code == 200
    assert completed.json()["distance_traveled"] == 160

    vehicle_now = (await client.get(f"/v1/vehicles/{vehicle['id']}", headers=manager)).json()
    assert vehicle_now["status"] == "Available"
    assert vehicle_now["odometer"] == 260

    driver_now = (await client.get(f"/v1/drivers/{driver['id']}", headers=manager)).json()
    assert driver_now["status"] == "Available"

    dashboard = (await client.get("/v1/analytics/dashboard", headers=manager)).json()
    assert dashboard["trips"]["completed"]["total_revenue"] == 750


@pytest.mark.asyncio
async def test_maintenance_over_http(client, auth_headers):
    manager = await auth_headers(FM)
    safety = await auth_headers(SAFETY)
    vehicle = await _create_vehicle(client, manager)

    created = await client.post("/v1/maintenance", json={
        "vehicle_id": vehicle["id"], "description": "Brake pads", "cost": 220
    }, headers=safety)
    assert created.status_code == 201
    log_id = created.json()["id"]

    in_shop = (await client.get(f"/v1/vehicles/{vehicle['id']}", headers=manager)).json()
    assert in_shop["status"] == "InShop"

    completed = await client.patch(f"/v1/maintenance/{log_id}/complete", headers=safety)
    assert completed.status_code == 200
    assert completed.json()["vehicle"]["status"] == "Available"


@pytest.mark.asyncio
async def test_fuel_over_http(client, auth_headers):
    manager = await auth_headers(FM)
    dispatcher = await auth_headers(DISPATCHER)
    vehicle = await _create_vehicle(client, manager)

    too_little = await client.post("/v1/fuel", json={
        "vehicle_id": vehicle["id"], "liters": 0, "cost": 5
    }, headers=dispatcher)
    assert too_little.status_code == 422

    created = await client.post("/v1/fuel", json={
        "vehicle_id": vehicle["id"], "liters": 42.5, "cost": 61
    }, headers=dispatcher)
    assert created.status_code == 201

    listing = (await client.get(f"/v1/fuel?vehicle_id={vehicle['id']}", headers=manager)).json()
    assert listing["total"] == 1
