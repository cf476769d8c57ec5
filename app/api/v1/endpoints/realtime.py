"""Realtime channel subscription endpoint."""

import structlog
from fastapi import APIRouter, status

from app.core.exceptions import ForbiddenException
from app.core.security import sign_channel_subscription
from app.dependencies import OptionalIdentity
from app.schemas.realtime import ChannelAuthRequest, ChannelAuthResponse
from app.services.broadcast_service import authorize_channel

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/auth",
    response_model=ChannelAuthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Realtime"],
    summary="Authorize a channel subscription",
)
async def authorize_subscription(data: ChannelAuthRequest, identity: OptionalIdentity) -> ChannelAuthResponse:
    """
    Sign a socket's subscription to a queue channel.

    Public channels are granted to anyone; private channels only to the
    clinic that owns them.

    Raises:
        ForbiddenException: If the caller may not subscribe
    """
    if not authorize_channel(identity, data.channel_name):
        logger.info(
            "channel_subscription_denied",
            channel=data.channel_name,
            subject_id=str(identity.subject_id) if identity else None,
        )
        raise ForbiddenException("Not authorized for this channel")

    return ChannelAuthResponse(auth=sign_channel_subscription(data.socket_id, data.channel_name))
