"""Queue schemas for booking, progression and broadcast snapshots."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class TicketStatus(str, Enum):
    """Ticket status enumeration. Only ``waiting`` is non-terminal."""

    WAITING = "waiting"
    SERVED = "served"
    MISSED = "missed"
    CANCELLED = "cancelled"


class AdvanceAction(str, Enum):
    """How the serving number moves forward."""

    NEXT = "next"
    SPECIFIC = "specific"


# ============================================================================
# Requests
# ============================================================================


class BookTicketRequest(BaseModel):
    """Patient booking request."""

    clinic_id: UUID
    doctor_id: UUID


class AdvanceQueueRequest(BaseModel):
    """Clinic request to call the next patient or jump to a number."""

    doctor_id: UUID
    action: AdvanceAction = AdvanceAction.NEXT
    new_number: int | None = Field(None, ge=1)

    @model_validator(mode="after")
    def validate_specific(self) -> "AdvanceQueueRequest":
        """A specific jump needs a target number."""
        if self.action == AdvanceAction.SPECIFIC and self.new_number is None:
            raise ValueError("new_number is required for the 'specific' action")
        return self


# ============================================================================
# Tickets
# ============================================================================


class TicketResponse(BaseModel):
    """A queue entry."""

    id: UUID
    clinic_id: UUID
    doctor_id: UUID
    patient_id: UUID
    number: int
    status: TicketStatus
    booked_at: datetime
    served_at: datetime | None = None
    missed_at: datetime | None = None
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}


class UpcomingTicket(BaseModel):
    """Waiting ticket with the patient populated."""

    id: UUID
    number: int
    booked_at: datetime
    patient_id: UUID
    patient_name: str | None = None
    patient_phone: str | None = None


class PublicUpcomingTicket(BaseModel):
    """Waiting ticket as shown on public displays."""

    number: int


# ============================================================================
# Results
# ============================================================================


class BookingResponse(BaseModel):
    """Issued ticket with its wait estimate."""

    ticket: TicketResponse
    ticket_number: int
    estimated_wait: int = Field(..., description="Estimated wait in minutes")


class AdvanceResponse(BaseModel):
    """Outcome of moving the serving number."""

    success: bool = True
    current_number: int
    served: int
    missed: int
    upcoming: list[UpcomingTicket]
    wait_time: int = Field(..., description="Total estimated wait in minutes")
    has_next_patient: bool


class CancelResponse(BaseModel):
    """Cancellation acknowledgement."""

    success: bool = True
    cancelled_number: int


class ClinicStatusSnapshot(BaseModel):
    """Clinic status embedded in queue snapshots."""

    is_open: bool
    operating_hours: dict[str, str]


class QueueSnapshot(BaseModel):
    """Consistent view of one doctor's queue."""

    clinic_id: UUID
    doctor_id: UUID
    is_doctor_queue: bool = True
    current_number: int
    upcoming: list[UpcomingTicket]
    total_waiting: int
    avg_wait_time: int = Field(..., description="Minutes per patient")
    estimated_wait: int = Field(..., description="Minutes until the last waiting patient")
    has_next_patient: bool
    doctor_available: bool
    clinic_status: ClinicStatusSnapshot


class PublicQueueSnapshot(BaseModel):
    """Reduced snapshot for unauthenticated displays."""

    clinic_id: UUID
    doctor_id: UUID
    is_doctor_queue: bool = True
    current_number: int
    upcoming: list[PublicUpcomingTicket]
    total_waiting: int
    avg_wait_time: int
    has_next_patient: bool
    is_open: bool

    @classmethod
    def from_snapshot(cls, snapshot: QueueSnapshot) -> "PublicQueueSnapshot":
        """Drop patient identities and clinic-internal status."""
        return cls(
            clinic_id=snapshot.clinic_id,
            doctor_id=snapshot.doctor_id,
            is_doctor_queue=snapshot.is_doctor_queue,
            current_number=snapshot.current_number,
            upcoming=[PublicUpcomingTicket(number=t.number) for t in snapshot.upcoming],
            total_waiting=snapshot.total_waiting,
            avg_wait_time=snapshot.avg_wait_time,
            has_next_patient=snapshot.has_next_patient,
            is_open=snapshot.clinic_status.is_open,
        )


class PatientQueueStatus(BaseModel):
    """A patient's view of their current ticket."""

    ticket_id: UUID
    clinic_name: str
    clinic_address: str
    doctor_name: str
    queue_number: int
    current_serving: int
    position_in_queue: int
    estimated_wait: int
    status: TicketStatus


class AnalyticsTicket(BaseModel):
    """Ticket row in the clinic analytics lists."""

    id: UUID
    number: int
    status: TicketStatus
    doctor_id: UUID
    booked_at: datetime
    served_at: datetime | None = None
    missed_at: datetime | None = None
    cancelled_at: datetime | None = None
    name: str | None = None
    phone: str | None = None


class QueueAnalytics(BaseModel):
    """Per-status ticket lists for the clinic dashboard."""

    waiting: list[AnalyticsTicket]
    served: list[AnalyticsTicket]
    missed: list[AnalyticsTicket]
    cancelled: list[AnalyticsTicket]
    historical_avg_wait_minutes: float | None = None
