"""Queue ticket table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    UniqueConstraint,
    Uuid,
    text,
)

from app.models.base import metadata

queue_entries = Table(
    "queue_entries",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Scope
    Column("clinic_id", Uuid, ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False),
    Column("doctor_id", Uuid, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False),
    Column("patient_id", Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False),
    # Ticket
    Column("number", Integer, nullable=False),
    Column("status", String(20), nullable=False, server_default=text("'waiting'")),
    # Numbering session the ticket was issued in
    Column("session_started_at", DateTime(timezone=True), nullable=False),
    # Lifecycle timestamps
    Column("booked_at", DateTime(timezone=True), nullable=False),
    Column("served_at", DateTime(timezone=True)),
    Column("missed_at", DateTime(timezone=True)),
    Column("cancelled_at", DateTime(timezone=True)),
    # Constraints
    CheckConstraint(
        "status IN ('waiting', 'served', 'missed', 'cancelled')",
        name="queue_entries_status_check",
    ),
    UniqueConstraint(
        "doctor_id",
        "session_started_at",
        "number",
        name="queue_entries_doctor_session_number_key",
    ),
)

Index(
    "idx_queue_entries_scope",
    queue_entries.c.clinic_id,
    queue_entries.c.doctor_id,
    queue_entries.c.status,
    queue_entries.c.number,
)
Index("idx_queue_entries_patient", queue_entries.c.patient_id, queue_entries.c.clinic_id)
