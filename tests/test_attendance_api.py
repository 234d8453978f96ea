import pytest
from datetime import timedelta
from fastapi import status

from app.core.timeutils import utcnow
from app.models.attendance import AttendanceEvent


def clock_in_payload(lat=-6.200, lon=106.816, kind="CLOCK_IN"):
    return {"latitude": lat, "longitude": lon, "accuracy": 10, "type": kind}


def test_clock_in_returns_created_event(client, staff_user, auth_headers):
    response = client.post("/api/attendance", json=clock_in_payload(), headers=auth_headers(staff_user))

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["employee_id"] == staff_user.id
    assert data["kind"] == "CLOCK_IN"
    assert data["is_suspicious"] is False


def test_impossible_travel_is_a_successful_flagged_write(client, staff_user, auth_headers, db_session):
    db_session.add(AttendanceEvent(
        employee_id=staff_user.id,
        kind="CLOCK_IN",
        server_timestamp=utcnow() - timedelta(minutes=5),
        latitude=-6.200,
        longitude=106.816,
    ))
    db_session.commit()

    response = client.post(
        "/api/attendance",
        json=clock_in_payload(lat=-6.9, lon=107.6),
        headers=auth_headers(staff_user),
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["is_suspicious"] is True
    assert response.json()["implied_speed_kmh"] > 800


def test_client_supplied_time_is_ignored(client, staff_user, auth_headers):
    payload = clock_in_payload()
    payload["timestamp"] = "2001-01-01T00:00:00Z"
    response = client.post("/api/attendance", json=payload, headers=auth_headers(staff_user))

    assert response.status_code == status.HTTP_201_CREATED
    assert not response.json()["server_timestamp"].startswith("2001")


def test_disabled_attendance_returns_403(client, make_user, auth_headers):
    user = make_user(attendance_enabled=False)
    response = client.post("/api/attendance", json=clock_in_payload(), headers=auth_headers(user))

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["errors"][0]["code"] == "FEATURE_DISABLED"


def test_requires_authentication(client):
    response = client.post("/api/attendance", json=clock_in_payload())
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.parametrize("payload", [
    {"latitude": 91, "longitude": 106.8, "type": "CLOCK_IN"},
    {"latitude": -6.2, "longitude": 181, "type": "CLOCK_IN"},
    {"latitude": -6.2, "longitude": 106.8, "type": "LUNCH"},
    {"longitude": 106.8, "type": "CLOCK_IN"},
])
def test_invalid_payload_returns_422(client, staff_user, auth_headers, payload):
    response = client.post("/api/attendance", json=payload, headers=auth_headers(staff_user))
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["success"] is False


def test_history_is_most_recent_first(client, staff_user, auth_headers):
    headers = auth_headers(staff_user)
    client.post("/api/attendance", json=clock_in_payload(), headers=headers)
    client.post("/api/attendance", json=clock_in_payload(kind="CLOCK_OUT"), headers=headers)

    response = client.get("/api/attendance", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    kinds = [e["kind"] for e in response.json()]
    assert kinds == ["CLOCK_OUT", "CLOCK_IN"]


def test_staff_cannot_read_someone_elses_history(client, staff_user, make_user, auth_headers):
    other = make_user()
    response = client.get(f"/api/attendance?userId={other.id}", headers=auth_headers(staff_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_admin_can_read_any_history(client, staff_user, admin_user, auth_headers):
    client.post("/api/attendance", json=clock_in_payload(), headers=auth_headers(staff_user))

    response = client.get(f"/api/attendance?userId={staff_user.id}", headers=auth_headers(admin_user))
    assert response.status_code == status.HTTP_200_OK
    assert len(response.json()) == 1


def test_next_kind_endpoint(client, staff_user, auth_headers):
    headers = auth_headers(staff_user)
    assert client.get("/api/attendance/next-kind", headers=headers).json()["next_kind"] == "CLOCK_IN"

    client.post("/api/attendance", json=clock_in_payload(), headers=headers)
    assert client.get("/api/attendance/next-kind", headers=headers).json()["next_kind"] == "CLOCK_OUT"


def test_admin_sees_notice_for_suspicious_event(client, staff_user, admin_user, auth_headers, db_session):
    db_session.add(AttendanceEvent(
        employee_id=staff_user.id,
        kind="CLOCK_IN",
        server_timestamp=utcnow() - timedelta(minutes=5),
        latitude=-6.200,
        longitude=106.816,
    ))
    db_session.commit()
    client.post("/api/attendance", json=clock_in_payload(lat=-6.9, lon=107.6), headers=auth_headers(staff_user))

    response = client.get("/api/notifications/", headers=auth_headers(admin_user))
    assert response.status_code == status.HTTP_200_OK
    assert [n["title"] for n in response.json()] == ["Suspicious attendance"]
