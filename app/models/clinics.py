"""Clinic account table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from app.models.base import metadata

clinics = Table(
    "clinics",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Identity and credentials
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True, index=True),
    Column("password_hash", Text, nullable=False),
    Column("phone", String(20), nullable=False, unique=True),
    Column("address", Text, nullable=False),
    Column("services", JSON),
    # Example: ["General Consultation", "Pediatrics"]
    # Operating hours, "HH:MM" in the clinic's timezone
    Column("opening_time", String(5), nullable=False, server_default=text("'09:00'")),
    Column("closing_time", String(5), nullable=False, server_default=text("'17:00'")),
    Column("timezone", String(64), nullable=False, server_default=text("'UTC'")),
    # Queue tuning
    Column("average_process_time", Integer, nullable=False, server_default=text("15")),
    Column("max_active_queues", Integer, nullable=False, server_default=text("50")),
    # Open/closed session state
    Column("is_open", Boolean, nullable=False, server_default=text("false")),
    Column("last_status_change", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
