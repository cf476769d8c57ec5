"""Doctor table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Table,
    Uuid,
    func,
    text,
)

from app.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "clinic_id",
        Uuid,
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("name", String(200), nullable=False),
    Column("specialty", String(200), nullable=False),
    Column("consultation_fee", Numeric(10, 2), nullable=False, server_default=text("0")),
    # Availability
    Column("available_days", JSON),
    Column("available_start", String(5), nullable=False, server_default=text("'09:00'")),
    Column("available_end", String(5), nullable=False, server_default=text("'17:00'")),
    # Administrative switch vs. real-time toggle
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("is_available", Boolean, nullable=False, server_default=text("true")),
    Column("last_status_change", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

Index("idx_doctors_clinic_status", doctors.c.clinic_id, doctors.c.is_active, doctors.c.is_available)
