"""Tests for queue endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_book_and_call_next(client: AsyncClient, clinic, doctor, patient_headers, clinic_headers):
    """Patient books, clinic calls them, the queue is then empty."""
    booking = await client.post(
        "/api/v1/queue/book",
        json={"clinic_id": str(clinic["id"]), "doctor_id": str(doctor["id"])},
        headers=patient_headers,
    )
    assert booking.status_code == 201
    assert booking.json()["ticket_number"] == 1
    assert booking.json()["estimated_wait"] == 10
    assert booking.json()["ticket"]["status"] == "waiting"

    advanced = await client.post(
        "/api/v1/queue/next",
        json={"doctor_id": str(doctor["id"]), "action": "next"},
        headers=clinic_headers,
    )
    assert advanced.status_code == 200
    data = advanced.json()
    assert data["success"] is True
    assert data["current_number"] == 1
    assert data["served"] == 1
    assert data["has_next_patient"] is False

    empty = await client.post(
        "/api/v1/queue/next",
        json={"doctor_id": str(doctor["id"])},
        headers=clinic_headers,
    )
    assert empty.status_code == 400
    assert empty.json()["kind"] == "NoMoreInScope"
    assert empty.json()["current_number"] == 1


@pytest.mark.asyncio
async def test_book_twice_returns_already_queued(client: AsyncClient, clinic, doctor, patient_headers):
    body = {"clinic_id": str(clinic["id"]), "doctor_id": str(doctor["id"])}
    await client.post("/api/v1/queue/book", json=body, headers=patient_headers)

    response = await client.post("/api/v1/queue/book", json=body, headers=patient_headers)

    assert response.status_code == 400
    assert response.json()["kind"] == "AlreadyQueued"


@pytest.mark.asyncio
async def test_clinic_cannot_book(client: AsyncClient, clinic, doctor, clinic_headers):
    response = await client.post(
        "/api/v1/queue/book",
        json={"clinic_id": str(clinic["id"]), "doctor_id": str(doctor["id"])},
        headers=clinic_headers,
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_specific_requires_number(client: AsyncClient, doctor, clinic_headers):
    response = await client.post(
        "/api/v1/queue/next",
        json={"doctor_id": str(doctor["id"]), "action": "specific"},
        headers=clinic_headers,
    )

    assert response.status_code == 422
    assert response.json()["kind"] == "ValidationError"


@pytest.mark.asyncio
async def test_public_snapshot_hides_patients(client: AsyncClient, clinic, doctor, patient_headers):
    """The unauthenticated display only sees numbers."""
    await client.post(
        "/api/v1/queue/book",
        json={"clinic_id": str(clinic["id"]), "doctor_id": str(doctor["id"])},
        headers=patient_headers,
    )

    response = await client.get(f"/api/v1/queue/public/{clinic['id']}/{doctor['id']}")

    assert response.status_code == 200
    data = response.json()
    assert data["current_number"] == 0
    assert data["upcoming"] == [{"number": 1}]
    assert data["total_waiting"] == 1
    assert data["is_open"] is True
    assert "clinic_status" not in data


@pytest.mark.asyncio
async def test_clinic_snapshot_includes_patients(
    client: AsyncClient, clinic, doctor, patient_headers, clinic_headers
):
    await client.post(
        "/api/v1/queue/book",
        json={"clinic_id": str(clinic["id"]), "doctor_id": str(doctor["id"])},
        headers=patient_headers,
    )

    response = await client.get(f"/api/v1/queue/snapshot/{doctor['id']}", headers=clinic_headers)

    assert response.status_code == 200
    upcoming = response.json()["upcoming"]
    assert upcoming[0]["patient_name"] == "Patient 1"
    assert upcoming[0]["patient_phone"] == "+15550100001"


@pytest.mark.asyncio
async def test_snapshot_of_other_clinics_doctor(client: AsyncClient, doctor, other_clinic, headers_for):
    response = await client.get(
        f"/api/v1/queue/snapshot/{doctor['id']}",
        headers=headers_for(other_clinic["id"], "clinic"),
    )

    assert response.status_code == 404
    assert response.json()["kind"] == "NotFound"


@pytest.mark.asyncio
async def test_clinic_cancels_ticket(
    client: AsyncClient, clinic, other_clinic, doctor, patient_headers, clinic_headers, headers_for
):
    booking = await client.post(
        "/api/v1/queue/book",
        json={"clinic_id": str(clinic["id"]), "doctor_id": str(doctor["id"])},
        headers=patient_headers,
    )
    ticket_id = booking.json()["ticket"]["id"]

    foreign = await client.post(
        f"/api/v1/queue/cancel/{ticket_id}",
        headers=headers_for(other_clinic["id"], "clinic"),
    )
    assert foreign.status_code == 404
    assert foreign.json()["kind"] == "NotFoundOrAlreadyProcessed"

    response = await client.post(f"/api/v1/queue/cancel/{ticket_id}", headers=clinic_headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "cancelled_number": 1}

    again = await client.post(f"/api/v1/queue/cancel/{ticket_id}", headers=clinic_headers)
    assert again.status_code == 404
