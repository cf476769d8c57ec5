"""Create clinic queue tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Enable pgcrypto extension
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # Clinics
    op.create_table(
        "clinics",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("services", postgresql.JSON(), nullable=True),
        sa.Column("opening_time", sa.String(length=5), server_default="09:00", nullable=False),
        sa.Column("closing_time", sa.String(length=5), server_default="17:00", nullable=False),
        sa.Column("timezone", sa.String(length=64), server_default="UTC", nullable=False),
        sa.Column("average_process_time", sa.Integer(), server_default="15", nullable=False),
        sa.Column("max_active_queues", sa.Integer(), server_default="50", nullable=False),
        sa.Column("is_open", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column(
            "last_status_change",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="clinics_email_key"),
        sa.UniqueConstraint("phone", name="clinics_phone_key"),
    )
    op.create_index("ix_clinics_email", "clinics", ["email"])

    # Doctors
    op.create_table(
        "doctors",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("clinic_id", postgresql.UUID(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("specialty", sa.String(length=200), nullable=False),
        sa.Column("consultation_fee", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("available_days", postgresql.JSON(), nullable=True),
        sa.Column("available_start", sa.String(length=5), server_default="09:00", nullable=False),
        sa.Column("available_end", sa.String(length=5), server_default="17:00", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_available", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column(
            "last_status_change",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["clinic_id"], ["clinics.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_doctors_clinic_id", "doctors", ["clinic_id"])
    op.create_index(
        "idx_doctors_clinic_status", "doctors", ["clinic_id", "is_active", "is_available"]
    )

    # Patients
    op.create_table(
        "patients",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("fcm_token", sa.Text(), nullable=True),
        sa.Column("current_queue_id", postgresql.UUID(), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_patients_phone", "patients", ["phone"], unique=True)

    # Queue entries
    op.create_table(
        "queue_entries",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("clinic_id", postgresql.UUID(), nullable=False),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("patient_id", postgresql.UUID(), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="waiting", nullable=False),
        sa.Column("session_started_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("booked_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("served_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("missed_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("cancelled_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('waiting', 'served', 'missed', 'cancelled')",
            name="queue_entries_status_check",
        ),
        sa.ForeignKeyConstraint(["clinic_id"], ["clinics.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "doctor_id",
            "session_started_at",
            "number",
            name="queue_entries_doctor_session_number_key",
        ),
    )
    op.create_index(
        "idx_queue_entries_scope", "queue_entries", ["clinic_id", "doctor_id", "status", "number"]
    )
    op.create_index("idx_queue_entries_patient", "queue_entries", ["patient_id", "clinic_id"])

    # Patient ticket history
    op.create_table(
        "patient_queue_history",
        sa.Column("patient_id", postgresql.UUID(), nullable=False),
        sa.Column("queue_entry_id", postgresql.UUID(), nullable=False),
        sa.Column(
            "added_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["queue_entry_id"], ["queue_entries.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("patient_id", "queue_entry_id"),
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("patient_queue_history")

    op.drop_index("idx_queue_entries_patient", table_name="queue_entries")
    op.drop_index("idx_queue_entries_scope", table_name="queue_entries")
    op.drop_table("queue_entries")

    op.drop_index("ix_patients_phone", table_name="patients")
    op.drop_table("patients")

    op.drop_index("idx_doctors_clinic_status", table_name="doctors")
    op.drop_index("ix_doctors_clinic_id", table_name="doctors")
    op.drop_table("doctors")

    op.drop_index("ix_clinics_email", table_name="clinics")
    op.drop_table("clinics")
