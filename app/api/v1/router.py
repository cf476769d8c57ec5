"""API v1 router configuration."""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    clinics,
    doctors,
    health,
    patients,
    queue,
    realtime,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(clinics.router, tags=["Clinics"])
api_router.include_router(doctors.router, tags=["Doctors"])
api_router.include_router(patients.router, tags=["Patients"])
api_router.include_router(queue.router, prefix="/queue", tags=["Queue"])
api_router.include_router(realtime.router, prefix="/realtime", tags=["Realtime"])
