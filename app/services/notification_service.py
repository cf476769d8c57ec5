"""Notification service for sending push notifications via FCM."""

from typing import Any
from uuid import UUID

import structlog
from firebase_admin import messaging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.background import BackgroundDispatcher
from app.core.firebase import is_firebase_initialized
from app.models.patients import patients

logger = structlog.get_logger(__name__)


class NotificationService:
    """Best-effort push notifications to patients."""

    def __init__(self, dispatcher: BackgroundDispatcher):
        """Initialize service with the background dispatcher used for delivery."""
        self.dispatcher = dispatcher

    @staticmethod
    def send_push_notification(
        token: str,
        title: str,
        body: str,
        data: dict[str, str] | None = None,
    ) -> str:
        """
        Send a push notification to one device. Blocking.

        Args:
            token: FCM token
            title: Notification title
            body: Notification body
            data: Optional data payload

        Returns:
            FCM message ID
        """
        message = messaging.Message(
            notification=messaging.Notification(
                title=title,
                body=body,
            ),
            data=data or {},
            token=token,
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(
                        sound="default",
                        badge=1,
                    ),
                ),
            ),
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(
                    sound="default",
                    priority="high",
                ),
            ),
        )

        message_id = messaging.send(message)
        logger.info("push_notification_sent", title=title, message_id=message_id)
        return message_id

    def notify_token(
        self,
        token: str | None,
        title: str,
        body: str,
        data: dict[str, str] | None = None,
    ) -> bool:
        """
        Queue a notification for a known token.

        Returns:
            True if a delivery was scheduled
        """
        if not token:
            return False

        if not is_firebase_initialized():
            logger.debug("push_notification_skipped", reason="firebase_not_initialized", title=title)
            return False

        self.dispatcher.submit(
            "push_notification_failed",
            self.send_push_notification,
            token,
            title,
            body,
            data,
            title=title,
        )
        return True

    async def notify_patient(
        self,
        db: AsyncSession,
        patient_id: UUID,
        title: str,
        body: str,
        data: dict[str, str] | None = None,
    ) -> bool:
        """
        Look up a patient's device token and queue a notification.

        Patients without a registered token are skipped.

        Args:
            db: Database session
            patient_id: Patient ID
            title: Notification title
            body: Notification body
            data: Optional data payload

        Returns:
            True if a delivery was scheduled
        """
        result = await db.execute(select(patients.c.fcm_token).where(patients.c.id == patient_id))
        token = result.scalar()
        if not token:
            logger.debug("no_fcm_token_for_patient", patient_id=str(patient_id))
            return False

        return self.notify_token(token, title, body, data)

    def booking_confirmed(self, token: str | None, ticket: dict[str, Any]) -> bool:
        """Tell a patient their queue number."""
        return self.notify_token(
            token,
            "Booking Confirmed",
            f"Your queue number is {ticket['number']}",
            data={
                "type": "booking_confirmed",
                "ticket_id": str(ticket["id"]),
                "number": str(ticket["number"]),
            },
        )

    def turn_approaching(self, token: str | None, ticket: dict[str, Any], position: int) -> bool:
        """Warn a patient that only a few people are ahead of them."""
        return self.notify_token(
            token,
            "Queue Update",
            f"Your turn is coming up! Position: {position}",
            data={
                "type": "queue_update",
                "ticket_id": str(ticket["id"]),
                "position": str(position),
            },
        )

    def queue_cancelled(self, token: str | None, ticket: dict[str, Any], reason: str) -> bool:
        """Tell a patient their ticket was cancelled by the clinic."""
        return self.notify_token(
            token,
            "Queue Cancelled",
            reason,
            data={
                "type": "queue_cancelled",
                "ticket_id": str(ticket["id"]),
            },
        )
