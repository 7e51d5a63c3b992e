"""Appointment router - FastAPI endpoints for booking operations"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from ...auth import Principal, get_current_principal, require_roles
from ...database import get_db
from ...models import ADMIN_ROLE, CLIENT_ROLE, STAFF_ROLE
from .schemas import AppointmentCreate, AppointmentResponse, AppointmentUpdate, BookingResult
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_booking_service(request: Request, db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    state = request.app.state
    return BookingService(
        db,
        state.dispatcher,
        validator=getattr(state, "booking_validator", None),
        locks=getattr(state, "staff_locks", None),
    )


# Handlers are sync so each booking runs on its own threadpool worker


@router.post("", response_model=BookingResult)
def create_appointment(
    data: AppointmentCreate,
    principal: Principal = Depends(require_roles(CLIENT_ROLE)),
    service: BookingService = Depends(get_booking_service),
):
    """Validate and book a new appointment"""
    appointment = service.create_appointment(principal, data)
    return BookingResult(id=appointment.id, message="Appointment created successfully")


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    principal: Principal = Depends(get_current_principal),
    service: BookingService = Depends(get_booking_service),
):
    """Get an appointment (client, assigned staff or admin)"""
    return service.get_appointment(appointment_id, principal)


@router.put("/{appointment_id}", response_model=BookingResult)
def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    principal: Principal = Depends(require_roles(CLIENT_ROLE)),
    service: BookingService = Depends(get_booking_service),
):
    """Reschedule an appointment, re-validating it against the staff's other bookings"""
    appointment = service.update_appointment(principal, appointment_id, data)
    return BookingResult(id=appointment.id, message="Appointment updated successfully")


@router.patch("/{appointment_id}/cancel", status_code=204)
def cancel_appointment(
    appointment_id: int,
    principal: Principal = Depends(require_roles(CLIENT_ROLE, STAFF_ROLE, ADMIN_ROLE)),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel an appointment (status change, the record is kept)"""
    service.cancel_appointment(principal, appointment_id)
    return Response(status_code=204)
