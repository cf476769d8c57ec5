"""Realtime channel subscription schemas."""

from pydantic import BaseModel, Field


class ChannelAuthRequest(BaseModel):
    """Subscription request from a dashboard or display socket."""

    socket_id: str = Field(..., min_length=1, max_length=200)
    channel_name: str = Field(..., min_length=1, max_length=200)


class ChannelAuthResponse(BaseModel):
    """Signed subscription grant."""

    auth: str
    channel_data: str | None = None
