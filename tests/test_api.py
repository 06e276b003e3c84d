"""HTTP API tests: routing, auth, and error rendering."""

from datetime import timedelta

from clinic_scheduler.auth import create_access_token

from conftest import ADMIN, OTHER_PROVIDER, PATIENT_A, PATIENT_B, PROVIDER, auth_headers

P = PROVIDER.user_id

SCHEDULE = {
    "weeklySchedule": [
        {"day": "monday", "enabled": True, "ranges": [{"start": "09:00", "end": "11:00"}]},
        {"day": "tuesday", "enabled": False, "ranges": []},
    ]
}


def put_schedule(client, body=SCHEDULE, actor=PROVIDER, provider_id=P):
    return client.put(f"/availability/{provider_id}", json=body, headers=auth_headers(actor))


def book(client, actor=PATIENT_A, slot_index=1, **extra):
    body = {"providerId": P, "day": "monday", "slotIndex": slot_index, "reason": "Checkup", **extra}
    return client.post("/appointments", json=body, headers=auth_headers(actor))


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}


def test_health_redis_disabled(client):
    resp = client.get("/health/redis")
    assert resp.status_code == 200
    assert resp.json()["status"] == "disabled"


def test_requires_bearer_token(client):
    assert client.get("/appointments/patient").status_code == 401
    resp = client.get("/appointments/patient", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_expired_token(client):
    token = create_access_token(PATIENT_A.user_id, PATIENT_A.role, expires_delta=timedelta(minutes=-5))
    resp = client.get("/appointments/patient", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_security_headers(client):
    resp = client.get("/")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["Cache-Control"] == "no-store"


def test_set_and_get_schedule(client):
    resp = put_schedule(client)
    assert resp.status_code == 200
    assert resp.json()["weeklySchedule"] == [
        {"day": "monday", "enabled": True, "ranges": [{"start": "09:00", "end": "11:00"}]},
        {"day": "tuesday", "enabled": False, "ranges": []},
    ]

    resp = client.get(f"/availability/{P}", headers=auth_headers(PATIENT_A))
    assert resp.status_code == 200
    assert resp.json()["providerId"] == P

    resp = client.get("/availability/me", headers=auth_headers(PROVIDER))
    assert resp.status_code == 200

    resp = client.get("/availability", headers=auth_headers(PATIENT_A))
    assert resp.json() == [P]


def test_schedule_errors(client):
    resp = client.get(f"/availability/{P}", headers=auth_headers(PATIENT_A))
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "not_found"

    resp = put_schedule(
        client, {"weeklySchedule": [{"day": "sunday", "enabled": True, "ranges": []}]}
    )
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "invalid_day"

    resp = put_schedule(
        client,
        {
            "weeklySchedule": [
                {
                    "day": "monday",
                    "enabled": True,
                    "ranges": [{"start": "09:00", "end": "11:00"}, {"start": "10:00", "end": "12:00"}],
                }
            ]
        },
    )
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "overlapping_ranges"

    assert put_schedule(client, actor=OTHER_PROVIDER).status_code == 403
    assert put_schedule(client, actor=PATIENT_A).status_code == 403
    assert put_schedule(client, actor=ADMIN).status_code == 200


def test_slots_endpoint(client):
    put_schedule(client)
    book(client, slot_index=1)

    resp = client.get(f"/availability/{P}/slots", params={"day": "monday"}, headers=auth_headers(PATIENT_B))
    assert resp.status_code == 200
    body = resp.json()
    assert body["date"] == "2026-10-19"
    assert body["availableSlots"] == [0, 1, 2, 3]
    assert body["bookableSlots"] == [0, 2, 3]
    assert body["slots"][0]["label"] == "9:00 AM – 9:30 AM"

    resp = client.get(f"/availability/{P}/slots", params={"day": "sunday"}, headers=auth_headers(PATIENT_B))
    assert resp.json()["availableSlots"] == []


def test_week_endpoint(client):
    put_schedule(client)

    resp = client.get(f"/availability/{P}/week", headers=auth_headers(PATIENT_A))
    assert resp.status_code == 200
    statuses = {day["day"]: day["status"] for day in resp.json()}
    assert statuses["monday"] == "available"
    assert statuses["tuesday"] == "not_configured"
    assert len(statuses) == 6


def test_booking_lifecycle(client):
    put_schedule(client)

    resp = book(client)
    assert resp.status_code == 201
    appointment = resp.json()
    assert appointment["status"] == "scheduled"
    assert appointment["patientId"] == PATIENT_A.user_id
    assert appointment["appointmentDate"] == "2026-10-19"
    assert appointment["startTime"] == "09:30"
    assert appointment["slotLabel"] == "9:30 AM – 10:00 AM"

    conflict = book(client, actor=PATIENT_B)
    assert conflict.status_code == 409
    assert conflict.json()["detail"]["code"] == "slot_taken"

    appointment_id = appointment["id"]
    resp = client.patch(f"/appointments/{appointment_id}/complete", headers=auth_headers(PROVIDER))
    assert resp.status_code == 409
    assert resp.json()["detail"] == {
        "code": "invalid_transition",
        "message": "Cannot move appointment from 'scheduled' to 'completed'",
        "current_status": "scheduled",
        "requested_status": "completed",
    }

    resp = client.patch(f"/appointments/{appointment_id}/confirm", headers=auth_headers(PATIENT_A))
    assert resp.status_code == 403

    resp = client.patch(f"/appointments/{appointment_id}/confirm", headers=auth_headers(PROVIDER))
    assert resp.json()["status"] == "confirmed"

    resp = client.patch(f"/appointments/{appointment_id}/complete", headers=auth_headers(PROVIDER))
    assert resp.json()["status"] == "completed"


def test_booking_validation_errors(client):
    put_schedule(client)

    assert book(client, slot_index=5).json()["detail"]["code"] == "slot_not_offered"
    assert book(client, slot_index=99).json()["detail"]["code"] == "out_of_range"
    assert book(client, reason="   ").json()["detail"]["code"] == "invalid_reason"
    assert book(client, day="sunday").json()["detail"]["code"] == "invalid_day"
    assert book(client, actor=PROVIDER).status_code == 403
    assert book(client, patientId=PATIENT_B.user_id).status_code == 403

    resp = client.post("/appointments", json={"providerId": P}, headers=auth_headers(PATIENT_A))
    assert resp.status_code == 422


def test_admin_booking_requires_patient(client):
    put_schedule(client)

    resp = book(client, actor=ADMIN)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "forbidden"
    assert book(client, actor=ADMIN, patientId=ADMIN.user_id).status_code == 403

    resp = book(client, actor=ADMIN, patientId=PATIENT_A.user_id)
    assert resp.status_code == 201
    assert resp.json()["patientId"] == PATIENT_A.user_id


def test_cancel_and_reschedule(client):
    put_schedule(client)
    first = book(client, slot_index=0).json()
    book(client, actor=PATIENT_B, slot_index=2)

    resp = client.post(
        f"/appointments/{first['id']}/reschedule",
        json={"day": "monday", "slotIndex": 2},
        headers=auth_headers(PATIENT_A),
    )
    assert resp.status_code == 409

    resp = client.post(
        f"/appointments/{first['id']}/reschedule",
        json={"day": "monday", "slotIndex": 3},
        headers=auth_headers(PATIENT_A),
    )
    assert resp.status_code == 200
    moved = resp.json()
    assert moved["slotIndex"] == 3
    assert moved["rescheduledFromId"] == first["id"]

    original = client.get(f"/appointments/{first['id']}", headers=auth_headers(PATIENT_A)).json()
    assert original["status"] == "cancelled"

    resp = client.patch(f"/appointments/{moved['id']}/cancel", headers=auth_headers(PROVIDER))
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["cancelledBy"] == P


def test_listing_and_stats(client):
    put_schedule(client)
    a = book(client, slot_index=0).json()
    book(client, actor=PATIENT_B, slot_index=1)
    client.patch(f"/appointments/{a['id']}/confirm", headers=auth_headers(PROVIDER))

    resp = client.get("/appointments/patient", headers=auth_headers(PATIENT_A))
    assert [item["id"] for item in resp.json()] == [a["id"]]

    resp = client.get("/appointments/provider", params={"status": "scheduled"}, headers=auth_headers(PROVIDER))
    assert [item["patientId"] for item in resp.json()] == [PATIENT_B.user_id]

    resp = client.get("/appointments/provider", params={"provider_id": P}, headers=auth_headers(PATIENT_A))
    assert resp.status_code == 403

    resp = client.get("/appointments", headers=auth_headers(ADMIN))
    assert len(resp.json()) == 2
    assert client.get("/appointments", headers=auth_headers(PATIENT_A)).status_code == 403

    stats = client.get("/appointments/stats", headers=auth_headers(PROVIDER)).json()
    assert stats == {"scheduled": 1, "confirmed": 1, "completed": 0, "cancelled": 0, "total": 2, "active": 2}

    stats = client.get("/appointments/stats", headers=auth_headers(PATIENT_B)).json()
    assert stats["total"] == 1


def test_get_appointment_not_found(client):
    resp = client.get("/appointments/12345", headers=auth_headers(ADMIN))
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "not_found"
