"""Tests for push notifications and background delivery."""

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from app.core.background import BackgroundDispatcher
from app.services.notification_service import NotificationService


@pytest.mark.asyncio
async def test_notify_skipped_without_token_or_firebase(background):
    notifier = NotificationService(background)

    assert notifier.notify_token(None, "Title", "Body") is False
    assert notifier.notify_token("device-1", "Title", "Body") is False
    assert background.pending == 0


@pytest.mark.asyncio
async def test_booking_confirmed_message(background):
    notifier = NotificationService(background)
    ticket = {"id": uuid4(), "number": 5}

    with (
        patch("app.services.notification_service.is_firebase_initialized", return_value=True),
        patch.object(NotificationService, "send_push_notification", return_value="msg-1") as send,
    ):
        assert notifier.booking_confirmed("device-1", ticket) is True
        await background.drain()

    token, title, body, data = send.call_args.args
    assert (token, title, body) == ("device-1", "Booking Confirmed", "Your queue number is 5")
    assert data == {"type": "booking_confirmed", "ticket_id": str(ticket["id"]), "number": "5"}


@pytest.mark.asyncio
async def test_notify_patient_looks_up_token(db_session, background, create_patient):
    notifier = NotificationService(background)
    with_token = await create_patient("Has Token", "+15550880001", "device-9")
    without_token = await create_patient("No Token", "+15550880002")

    with (
        patch("app.services.notification_service.is_firebase_initialized", return_value=True),
        patch.object(NotificationService, "send_push_notification", return_value="msg-1") as send,
    ):
        assert await notifier.notify_patient(db_session, with_token["id"], "Hi", "There") is True
        assert await notifier.notify_patient(db_session, without_token["id"], "Hi", "There") is False
        await background.drain()

    assert send.call_count == 1
    assert send.call_args.args[0] == "device-9"


@pytest.mark.asyncio
async def test_failed_delivery_is_logged_not_raised():
    dispatcher = BackgroundDispatcher()
    failing = MagicMock(side_effect=RuntimeError("fcm down"))

    dispatcher.submit("push_notification_failed", failing, "token")
    await dispatcher.drain()

    failing.assert_called_once_with("token")
    assert dispatcher.pending == 0
