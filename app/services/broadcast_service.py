"""Realtime broadcast of queue snapshots over Redis pub/sub."""

import json
import re
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import redis
import structlog

from app.core.background import BackgroundDispatcher
from app.core.security import ROLE_CLINIC
from app.schemas.queue import PublicQueueSnapshot, QueueSnapshot

logger = structlog.get_logger(__name__)

QUEUE_UPDATE_EVENT = "queue-update"
CLINIC_STATUS_EVENT = "clinic-status-update"

CHANNEL_PATTERN = re.compile(
    r"^(?P<visibility>private|public)-clinic-(?P<clinic_id>[0-9a-fA-F-]{36})"
    r"(?:-doctor-(?P<doctor_id>[0-9a-fA-F-]{36}))?$"
)


def private_channel(clinic_id: UUID | str, doctor_id: UUID | str | None = None) -> str:
    """Dashboard channel for a clinic or one of its doctor queues."""
    if doctor_id is None:
        return f"private-clinic-{clinic_id}"
    return f"private-clinic-{clinic_id}-doctor-{doctor_id}"


def public_channel(clinic_id: UUID | str, doctor_id: UUID | str | None = None) -> str:
    """Unauthenticated display channel mirroring the private one."""
    if doctor_id is None:
        return f"public-clinic-{clinic_id}"
    return f"public-clinic-{clinic_id}-doctor-{doctor_id}"


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as carried in the JWT."""

    subject_id: UUID
    role: str


def authorize_channel(identity: Identity | None, channel_name: str) -> bool:
    """
    Decide whether a caller may subscribe to a channel.

    Public channels are open to anyone, private channels only to the
    clinic that owns them. Unknown channel names are denied.
    """
    match = CHANNEL_PATTERN.match(channel_name)
    if match is None:
        return False

    if match.group("visibility") == "public":
        return True

    if identity is None or identity.role != ROLE_CLINIC:
        return False

    try:
        return UUID(match.group("clinic_id")) == identity.subject_id
    except ValueError:
        return False


class QueueBroadcaster:
    """Publishes queue and clinic events; delivery never blocks the caller."""

    def __init__(self, redis_client: redis.Redis, dispatcher: BackgroundDispatcher):
        """Initialize broadcaster with Redis client and background dispatcher."""
        self.redis = redis_client
        self.dispatcher = dispatcher

    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> int:
        """
        Publish one event synchronously.

        Returns:
            Number of subscribers that received the message
        """
        message = json.dumps({"event": event, "data": payload}, default=str)
        receivers = self.redis.publish(channel, message)
        logger.debug("event_published", channel=channel, event_name=event, receivers=receivers)
        return receivers

    def dispatch_snapshot(self, snapshot: QueueSnapshot, extra: dict[str, Any] | None = None) -> None:
        """
        Send a queue snapshot to the private and public doctor channels.

        Args:
            snapshot: Snapshot taken after the triggering change committed
            extra: Event-specific fields (e.g. ``cancelled_number``)
        """
        extra = extra or {}
        private_payload = {**snapshot.model_dump(mode="json"), **extra}
        public_payload = {**PublicQueueSnapshot.from_snapshot(snapshot).model_dump(mode="json"), **extra}

        for channel, payload in (
            (private_channel(snapshot.clinic_id, snapshot.doctor_id), private_payload),
            (public_channel(snapshot.clinic_id, snapshot.doctor_id), public_payload),
        ):
            self.dispatcher.submit(
                "broadcast_failed",
                self.publish,
                channel,
                QUEUE_UPDATE_EVENT,
                payload,
                channel=channel,
            )

    def dispatch_clinic_status(self, clinic_id: UUID, is_open: bool, status: dict[str, Any]) -> None:
        """Announce a clinic opening or closing; the public channel only learns open/closed."""
        self.dispatcher.submit(
            "broadcast_failed",
            self.publish,
            private_channel(clinic_id),
            CLINIC_STATUS_EVENT,
            {"is_open": is_open, **status},
            channel=private_channel(clinic_id),
        )
        self.dispatcher.submit(
            "broadcast_failed",
            self.publish,
            public_channel(clinic_id),
            CLINIC_STATUS_EVENT,
            {"is_open": is_open},
            channel=public_channel(clinic_id),
        )
