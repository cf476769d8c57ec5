"""Tests for doctor endpoints."""

import pytest
from httpx import AsyncClient


@pytest.fixture
def sample_doctor_data() -> dict:
    """Sample doctor payload."""
    return {
        "name": "Dr. Priya Raman",
        "specialty": "Pediatrics",
        "consultation_fee": "35.50",
        "available_days": ["Monday", "Wednesday"],
        "available_hours": {"start": "10:00", "end": "14:00"},
    }


@pytest.mark.asyncio
async def test_add_and_list_doctors(client: AsyncClient, clinic, clinic_headers, sample_doctor_data):
    created = await client.post("/api/v1/doctors", json=sample_doctor_data, headers=clinic_headers)

    assert created.status_code == 201
    doctor = created.json()
    assert doctor["clinic_id"] == str(clinic["id"])
    assert doctor["consultation_fee"] == 35.5
    assert doctor["available_days"] == ["Monday", "Wednesday"]
    assert doctor["available_start"] == "10:00"
    assert doctor["is_available"] is True

    listed = await client.get("/api/v1/doctors", headers=clinic_headers)
    assert [d["id"] for d in listed.json()] == [doctor["id"]]

    public = await client.get(f"/api/v1/clinics/{clinic['id']}/doctors/public")
    assert public.status_code == 200
    assert public.json()[0]["name"] == "Dr. Priya Raman"
    assert "is_active" not in public.json()[0]


@pytest.mark.asyncio
async def test_add_doctor_defaults(client: AsyncClient, clinic, clinic_headers):
    response = await client.post(
        "/api/v1/doctors",
        json={"name": "Dr. Lee", "specialty": "General Practice"},
        headers=clinic_headers,
    )

    assert response.status_code == 201
    assert response.json()["available_days"] == ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    assert response.json()["available_start"] == "09:00"
    assert response.json()["available_end"] == "17:00"


@pytest.mark.asyncio
async def test_update_doctor(client: AsyncClient, doctor, clinic_headers):
    response = await client.patch(
        f"/api/v1/doctors/{doctor['id']}",
        json={"specialty": "Cardiology", "available_hours": {"start": "11:00", "end": "15:00"}},
        headers=clinic_headers,
    )

    assert response.status_code == 200
    assert response.json()["specialty"] == "Cardiology"
    assert response.json()["available_end"] == "15:00"


@pytest.mark.asyncio
async def test_other_clinic_cannot_see_doctor(client: AsyncClient, doctor, other_clinic, headers_for):
    response = await client.get(f"/api/v1/doctors/{doctor['id']}", headers=headers_for(other_clinic["id"], "clinic"))

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_availability_toggle_cancels_waiting(
    client: AsyncClient, clock, clinic, doctor, clinic_headers, patient_headers
):
    await client.post(
        "/api/v1/queue/book",
        json={"clinic_id": str(clinic["id"]), "doctor_id": str(doctor["id"])},
        headers=patient_headers,
    )
    clock.advance(minutes=1)

    response = await client.put(
        f"/api/v1/doctors/{doctor['id']}/availability",
        json={"is_available": False},
        headers=clinic_headers,
    )

    assert response.status_code == 200
    assert response.json()["is_available"] is False
    assert response.json()["cancelled_count"] == 1

    status_response = await client.get("/api/v1/patients/me/queue", headers=patient_headers)
    assert status_response.status_code == 404

    queue = await client.get(f"/api/v1/doctors/{doctor['id']}/queue", headers=clinic_headers)
    assert queue.json()["doctor_available"] is False
    assert queue.json()["total_waiting"] == 0


@pytest.mark.asyncio
async def test_delete_doctor(client: AsyncClient, doctor, clinic_headers):
    response = await client.delete(f"/api/v1/doctors/{doctor['id']}", headers=clinic_headers)
    assert response.status_code == 204

    missing = await client.get(f"/api/v1/doctors/{doctor['id']}", headers=clinic_headers)
    assert missing.status_code == 404
