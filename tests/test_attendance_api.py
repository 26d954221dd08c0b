from datetime import datetime

from attendance_api.services.attendance import LedgerPolicy

from conftest import use_policy


async def test_check_in_check_out_cycle(client, employee_headers, employee_id):
    response = await client.post(
        "/api/attendance/check-in",
        json={"latitude": 12.9716, "longitude": 77.5946},
        headers=employee_headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Check-in successful"
    record = body["record"]
    assert record["userId"] == employee_id
    assert record["checkInLatitude"] == 12.9716
    assert record["checkInLongitude"] == 77.5946
    assert record["checkOutTime"] is None

    response = await client.post("/api/attendance/check-in", json={}, headers=employee_headers)
    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "You are already checked in. Please check out first.",
    }

    response = await client.get("/api/attendance/status", headers=employee_headers)
    assert response.json()["isCheckedIn"] is True
    assert response.json()["currentRecord"]["id"] == record["id"]

    response = await client.post(
        "/api/attendance/check-out",
        json={"latitude": 12.9717, "longitude": 77.5947},
        headers=employee_headers,
    )
    assert response.status_code == 200
    closed = response.json()["record"]
    assert closed["id"] == record["id"]
    assert closed["checkOutLatitude"] == 12.9717
    assert datetime.fromisoformat(closed["checkOutTime"]) >= datetime.fromisoformat(closed["checkInTime"])

    response = await client.post("/api/attendance/check-out", headers=employee_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "No active check-in found. Please check in first."

    response = await client.get("/api/attendance/status", headers=employee_headers)
    assert response.json() == {"success": True, "isCheckedIn": False, "currentRecord": None}


async def test_check_in_without_body(client, employee_headers):
    response = await client.post("/api/attendance/check-in", headers=employee_headers)

    assert response.status_code == 201
    assert response.json()["record"]["checkInLatitude"] is None


async def test_check_in_rejects_bad_location(client, employee_headers):
    response = await client.post(
        "/api/attendance/check-in", json={"latitude": 95, "longitude": 10}, headers=employee_headers
    )
    assert response.status_code == 400

    response = await client.post("/api/attendance/check-in", json={"latitude": 10}, headers=employee_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Latitude and longitude must be provided together"

    response = await client.get("/api/attendance/status", headers=employee_headers)
    assert response.json()["isCheckedIn"] is False


async def test_require_location_policy(client, employee_headers):
    use_policy(LedgerPolicy(require_location=True))

    response = await client.post("/api/attendance/check-in", json={}, headers=employee_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Location is required"


async def test_one_check_in_per_day_policy(client, employee_headers):
    use_policy(LedgerPolicy(one_check_in_per_day=True))
    await client.post("/api/attendance/check-in", headers=employee_headers)
    await client.post("/api/attendance/check-out", headers=employee_headers)

    response = await client.post("/api/attendance/check-in", headers=employee_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "You have already completed attendance for today."


async def test_attendance_requires_token(client):
    for method, path in [
        ("POST", "/api/attendance/check-in"),
        ("POST", "/api/attendance/check-out"),
        ("GET", "/api/attendance/status"),
        ("GET", "/api/attendance/me"),
    ]:
        response = await client.request(method, path)
        assert response.status_code == 401
        assert response.json()["success"] is False


async def test_my_attendance_history_and_summary(client, employee_headers, admin_headers):
    await client.post("/api/attendance/check-in", headers=employee_headers)
    await client.post("/api/attendance/check-out", headers=employee_headers)
    await client.post("/api/attendance/check-in", headers=employee_headers)
    await client.post("/api/attendance/check-in", headers=admin_headers)

    response = await client.get("/api/attendance/me", headers=employee_headers)

    assert response.status_code == 200
    body = response.json()
    records = body["records"]
    assert len(records) == 2
    assert records[0]["checkOutTime"] is None
    assert records[1]["checkOutTime"] is not None
    assert records[0]["checkInTime"] >= records[1]["checkInTime"]
    assert body["summary"]["totalRecords"] == 2
    assert body["summary"]["completedRecords"] == 1
    assert body["summary"]["lastCheckIn"] == records[0]["checkInTime"]


async def test_my_attendance_date_filters(client, employee_headers):
    await client.post("/api/attendance/check-in", headers=employee_headers)
    today = datetime.now().date().isoformat()

    response = await client.get("/api/attendance/me", params={"from": today, "to": today}, headers=employee_headers)
    assert response.json()["summary"]["totalRecords"] == 1

    response = await client.get("/api/attendance/me", params={"to": "2000-01-01"}, headers=employee_headers)
    assert response.json()["records"] == []
    assert response.json()["summary"] == {
        "totalRecords": 0,
        "completedRecords": 0,
        "firstCheckIn": None,
        "lastCheckIn": None,
    }

    response = await client.get("/api/attendance/me", params={"from": "not-a-date"}, headers=employee_headers)
    assert response.status_code == 400
    assert response.json()["message"] == 'Invalid "from" date format'
