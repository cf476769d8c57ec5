"""Database models."""

from app.models.base import metadata
from app.models.clinics import clinics
from app.models.doctors import doctors
from app.models.patient_queue_history import patient_queue_history
from app.models.patients import patients
from app.models.queue_entries import queue_entries

__all__ = [
    "clinics",
    "doctors",
    "metadata",
    "patient_queue_history",
    "patients",
    "queue_entries",
]
