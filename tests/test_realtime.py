"""Tests for realtime channel naming, authorization and signing."""

import hashlib
import hmac
from uuid import uuid4

import pytest
from httpx import AsyncClient

from app.config import settings
from app.core.security import ROLE_CLINIC, ROLE_PATIENT, sign_channel_subscription
from app.services.broadcast_service import (
    Identity,
    authorize_channel,
    private_channel,
    public_channel,
)


def test_channel_names():
    clinic_id, doctor_id = uuid4(), uuid4()

    assert private_channel(clinic_id) == f"private-clinic-{clinic_id}"
    assert public_channel(clinic_id, doctor_id) == f"public-clinic-{clinic_id}-doctor-{doctor_id}"


def test_authorize_channel():
    """Private channels belong to their clinic; public ones to everyone."""
    clinic_id, other_id, doctor_id = uuid4(), uuid4(), uuid4()
    owner = Identity(subject_id=clinic_id, role=ROLE_CLINIC)
    stranger = Identity(subject_id=other_id, role=ROLE_CLINIC)
    patient = Identity(subject_id=clinic_id, role=ROLE_PATIENT)

    assert authorize_channel(owner, private_channel(clinic_id, doctor_id)) is True
    assert authorize_channel(owner, private_channel(clinic_id)) is True
    assert authorize_channel(stranger, private_channel(clinic_id, doctor_id)) is False
    assert authorize_channel(patient, private_channel(clinic_id)) is False
    assert authorize_channel(None, private_channel(clinic_id)) is False

    assert authorize_channel(None, public_channel(clinic_id, doctor_id)) is True
    assert authorize_channel(stranger, public_channel(clinic_id)) is True

    assert authorize_channel(owner, "presence-lobby") is False


def test_sign_channel_subscription():
    """Grant is key:hmac-sha256(socket_id:channel)."""
    expected = hmac.new(
        settings.realtime_secret.encode(),
        b"123.456:private-clinic-x",
        hashlib.sha256,
    ).hexdigest()

    assert sign_channel_subscription("123.456", "private-clinic-x") == f"{settings.realtime_key}:{expected}"


@pytest.mark.asyncio
async def test_realtime_auth_own_private_channel(client: AsyncClient, clinic, clinic_headers):
    channel = private_channel(clinic["id"])
    response = await client.post(
        "/api/v1/realtime/auth",
        json={"socket_id": "1.2", "channel_name": channel},
        headers=clinic_headers,
    )

    assert response.status_code == 200
    assert response.json()["auth"] == sign_channel_subscription("1.2", channel)


@pytest.mark.asyncio
async def test_realtime_auth_other_clinic_denied(client: AsyncClient, clinic, other_clinic, clinic_headers):
    response = await client.post(
        "/api/v1/realtime/auth",
        json={"socket_id": "1.2", "channel_name": private_channel(other_clinic["id"])},
        headers=clinic_headers,
    )

    assert response.status_code == 403
    assert response.json()["kind"] == "Forbidden"


@pytest.mark.asyncio
async def test_realtime_auth_public_channel_anonymous(client: AsyncClient, clinic, doctor):
    response = await client.post(
        "/api/v1/realtime/auth",
        json={"socket_id": "1.2", "channel_name": public_channel(clinic["id"], doctor["id"])},
    )

    assert response.status_code == 200
    assert response.json()["auth"].startswith(f"{settings.realtime_key}:")
