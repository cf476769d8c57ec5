"""Association table holding each patient's past tickets."""

from sqlalchemy import Column, DateTime, ForeignKey, Table, Uuid, func

from app.models.base import metadata

patient_queue_history = Table(
    "patient_queue_history",
    metadata,
    Column(
        "patient_id",
        Uuid,
        ForeignKey("patients.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "queue_entry_id",
        Uuid,
        ForeignKey("queue_entries.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("added_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
