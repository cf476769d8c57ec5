"""FastAPI dependencies."""

from typing import Annotated, Any
from uuid import UUID

import redis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.background import BackgroundDispatcher, dispatcher
from app.core.exceptions import NotFoundException
from app.core.locks import ScopeGuard, scope_guard
from app.core.redis_client import CounterStore, get_redis_client
from app.core.security import ROLE_CLINIC, ROLE_PATIENT, decode_access_token
from app.database import get_db
from app.services.broadcast_service import Identity, QueueBroadcaster
from app.services.clinic_service import ClinicService
from app.services.doctor_service import DoctorService
from app.services.notification_service import NotificationService
from app.services.patient_service import PatientService
from app.services.queue_service import QueueService

# Security
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _identity_from_token(token: str) -> Identity:
    payload = decode_access_token(token)
    if payload is None:
        raise _credentials_error()

    subject = payload.get("sub")
    role = payload.get("role")
    if not isinstance(subject, str) or role not in (ROLE_CLINIC, ROLE_PATIENT):
        raise _credentials_error()

    try:
        return Identity(subject_id=UUID(subject), role=role)
    except ValueError:
        raise _credentials_error("Invalid subject ID format")


async def get_identity(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Identity:
    """
    Extract and validate the caller's identity from the JWT.

    Raises:
        HTTPException: If token is invalid or expired
    """
    return _identity_from_token(credentials.credentials)


async def get_optional_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_security)],
) -> Identity | None:
    """Identity if a bearer token was sent, None for anonymous callers."""
    if credentials is None:
        return None
    return _identity_from_token(credentials.credentials)


async def get_current_clinic_id(identity: Annotated[Identity, Depends(get_identity)]) -> UUID:
    """Clinic ID of a clinic caller; patients are refused."""
    if identity.role != ROLE_CLINIC:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Clinic access required")
    return identity.subject_id


async def get_current_patient_id(identity: Annotated[Identity, Depends(get_identity)]) -> UUID:
    """Patient ID of a patient caller; clinics are refused."""
    if identity.role != ROLE_PATIENT:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Patient access required")
    return identity.subject_id


# ============================================================================
# Queue collaborators
# ============================================================================


def get_dispatcher() -> BackgroundDispatcher:
    """Process-wide background dispatcher."""
    return dispatcher


def get_scope_guard() -> ScopeGuard:
    """Process-wide scope guard."""
    return scope_guard


def get_counter_store(redis_client: Annotated[redis.Redis, Depends(get_redis_client)]) -> CounterStore:
    """Serving-number counter backed by Redis."""
    return CounterStore(redis_client)


def get_broadcaster(
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
    background: Annotated[BackgroundDispatcher, Depends(get_dispatcher)],
) -> QueueBroadcaster:
    """Queue event publisher."""
    return QueueBroadcaster(redis_client, background)


def get_notifier(background: Annotated[BackgroundDispatcher, Depends(get_dispatcher)]) -> NotificationService:
    """Push notifier."""
    return NotificationService(background)


def get_queue_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    counter: Annotated[CounterStore, Depends(get_counter_store)],
    broadcaster: Annotated[QueueBroadcaster, Depends(get_broadcaster)],
    notifier: Annotated[NotificationService, Depends(get_notifier)],
    guard: Annotated[ScopeGuard, Depends(get_scope_guard)],
) -> QueueService:
    """Queue service bound to the request's session."""
    return QueueService(db, counter, broadcaster, notifier, guard=guard)


def get_clinic_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    queue: Annotated[QueueService, Depends(get_queue_service)],
) -> ClinicService:
    """Clinic service bound to the request's session."""
    return ClinicService(db, queue)


def get_doctor_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    queue: Annotated[QueueService, Depends(get_queue_service)],
) -> DoctorService:
    """Doctor service bound to the request's session."""
    return DoctorService(db, queue)


def get_patient_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    queue: Annotated[QueueService, Depends(get_queue_service)],
) -> PatientService:
    """Patient service bound to the request's session."""
    return PatientService(db, queue)


async def get_current_clinic(
    clinic_id: Annotated[UUID, Depends(get_current_clinic_id)],
    service: Annotated[ClinicService, Depends(get_clinic_service)],
) -> dict[str, Any]:
    """Clinic record of the caller; a token for a deleted clinic is rejected."""
    try:
        return await service.get_clinic(clinic_id)
    except NotFoundException:
        raise _credentials_error("Clinic not found")


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentIdentity = Annotated[Identity, Depends(get_identity)]
OptionalIdentity = Annotated[Identity | None, Depends(get_optional_identity)]
CurrentClinicId = Annotated[UUID, Depends(get_current_clinic_id)]
CurrentClinic = Annotated[dict[str, Any], Depends(get_current_clinic)]
CurrentPatientId = Annotated[UUID, Depends(get_current_patient_id)]
Queue = Annotated[QueueService, Depends(get_queue_service)]
Clinics = Annotated[ClinicService, Depends(get_clinic_service)]
Doctors = Annotated[DoctorService, Depends(get_doctor_service)]
Patients = Annotated[PatientService, Depends(get_patient_service)]
RedisClient = Annotated[redis.Redis, Depends(get_redis_client)]
