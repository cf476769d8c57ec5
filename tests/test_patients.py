"""Tests for patient endpoints and walk-in registration."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_patient_profile_and_fcm_token(client: AsyncClient, queue_patients, patient_headers):
    profile = await client.get("/api/v1/patients/me", headers=patient_headers)
    assert profile.status_code == 200
    assert profile.json()["name"] == "Patient 1"

    token = await client.put("/api/v1/patients/me/fcm-token", json={"token": "device-1"}, headers=patient_headers)
    assert token.status_code == 200

    renamed = await client.patch("/api/v1/patients/me", json={"name": "Patient One"}, headers=patient_headers)
    assert renamed.json()["name"] == "Patient One"


@pytest.mark.asyncio
async def test_patient_queue_status_and_cancel(
    client: AsyncClient, clinic, doctor, queue_patients, patient_headers, headers_for
):
    """Position and wait come from the serving number; cancelling files the ticket in history."""
    second_headers = headers_for(queue_patients[1]["id"], "patient")
    body = {"clinic_id": str(clinic["id"]), "doctor_id": str(doctor["id"])}
    await client.post("/api/v1/queue/book", json=body, headers=patient_headers)
    await client.post("/api/v1/queue/book", json=body, headers=second_headers)

    status_response = await client.get("/api/v1/patients/me/queue", headers=second_headers)
    assert status_response.status_code == 200
    data = status_response.json()
    assert data["queue_number"] == 2
    assert data["current_serving"] == 0
    assert data["position_in_queue"] == 2
    assert data["estimated_wait"] == 20
    assert data["clinic_name"] == "Riverside Clinic"
    assert data["doctor_name"] == "Dr. Ada Moss"

    cancelled = await client.delete("/api/v1/patients/me/queue", headers=second_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["cancelled_number"] == 2

    again = await client.delete("/api/v1/patients/me/queue", headers=second_headers)
    assert again.status_code == 404
    assert again.json()["kind"] == "NotFoundOrAlreadyProcessed"

    history = await client.get("/api/v1/patients/me/history", headers=second_headers)
    assert history.status_code == 200
    assert [(h["number"], h["status"]) for h in history.json()] == [(2, "cancelled")]
    assert history.json()[0]["clinic_name"] == "Riverside Clinic"


@pytest.mark.asyncio
async def test_no_active_queue(client: AsyncClient, queue_patients, patient_headers):
    response = await client.get("/api/v1/patients/me/queue", headers=patient_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "No active queue found"


@pytest.mark.asyncio
async def test_walk_in_registers_and_books(client: AsyncClient, clinic, doctor, clinic_headers):
    response = await client.post(
        "/api/v1/patients/walk-in",
        json={"name": "Walk In", "phone": "+15550777777", "doctor_id": str(doctor["id"])},
        headers=clinic_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["queue_number"] == 1
    assert data["estimated_wait"] == 10
    assert data["patient"]["name"] == "Walk In"
    assert data["patient"]["current_queue_id"] is not None


@pytest.mark.asyncio
async def test_walk_in_reuses_patient_by_phone(client: AsyncClient, clinic, doctor, queue_patients, clinic_headers):
    """An existing phone number books the existing patient, keeping their name."""
    existing = queue_patients[2]

    response = await client.post(
        "/api/v1/patients/walk-in",
        json={"name": "Someone Else", "phone": existing["phone"], "doctor_id": str(doctor["id"])},
        headers=clinic_headers,
    )

    assert response.status_code == 201
    assert response.json()["patient"]["id"] == str(existing["id"])
    assert response.json()["patient"]["name"] == existing["name"]
