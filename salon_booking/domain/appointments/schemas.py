"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...models import Appointment
from ...shared.validators import to_service_time, validate_positive_id
from ..scheduling.status import AppointmentStatus


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment"""

    staffId: int
    serviceId: int
    startTime: datetime
    endTime: datetime

    @field_validator("staffId", "serviceId")
    @classmethod
    def validate_ids(cls, v):
        return validate_positive_id(v)

    @field_validator("startTime", "endTime")
    @classmethod
    def normalize_timezone(cls, v):
        return to_service_time(v)


class AppointmentUpdate(AppointmentCreate):
    """Schema for rescheduling / modifying an appointment"""

    status: Optional[AppointmentStatus] = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response, also the realtime event payload"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    clientId: int
    staffId: int
    serviceId: int
    startTime: datetime
    endTime: datetime
    status: AppointmentStatus

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            clientId=appointment.client_id,
            staffId=appointment.staff_id,
            serviceId=appointment.service_id,
            startTime=appointment.start_time,
            endTime=appointment.end_time,
            status=appointment.status,
        )


class BookingResult(BaseModel):
    id: int
    message: str


class AppointmentCancelledPayload(BaseModel):
    appointmentId: int
    clientId: int
    staffId: int
