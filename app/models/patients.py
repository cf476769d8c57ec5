"""Patient table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Table, Text, Uuid, func

from app.models.base import metadata

patients = Table(
    "patients",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", String(200), nullable=False),
    Column("phone", String(20), nullable=False, unique=True, index=True),
    Column("fcm_token", Text),
    # At most one waiting ticket per patient; application-maintained, no FK
    Column("current_queue_id", Uuid),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
