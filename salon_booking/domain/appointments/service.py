"""Booking service - Business logic for appointment booking"""

import logging
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy.orm import Session

from ...auth import Principal
from ...config import BOOKING_MAX_ATTEMPTS, BOOKING_RETRY_BACKOFF_SECONDS
from ...exceptions import (
    AuthorizationError,
    ConflictError,
    IllegalTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from ...identity import recipients_for, resolve_client_id, resolve_staff_id
from ...models import ADMIN_ROLE, CLIENT_ROLE, STAFF_ROLE, Appointment
from ...realtime.dispatcher import EventKind, NotificationDispatcher
from ..scheduling.status import AppointmentStatus, transition
from ..scheduling.validator import BookingValidator, Conflict, Rejected
from .locks import StaffScheduleLocks
from .repository import AppointmentStore
from .schemas import (
    AppointmentCancelledPayload,
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Shared by every BookingService in the process; the mutex must outlive a request
default_staff_locks = StaffScheduleLocks()


class BookingService:
    """
    Composition root for booking requests.

    Every write runs validate -> write -> commit inside the staff member's
    critical section, and notifications go out only after the commit.
    """

    def __init__(
        self,
        db: Session,
        dispatcher: NotificationDispatcher,
        validator: Optional[BookingValidator] = None,
        locks: Optional[StaffScheduleLocks] = None,
        store: type[AppointmentStore] = AppointmentStore,
        max_attempts: int = BOOKING_MAX_ATTEMPTS,
        retry_backoff: float = BOOKING_RETRY_BACKOFF_SECONDS,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.store = store
        self.validator = validator or BookingValidator(store=store)
        self.locks = locks or default_staff_locks
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff = retry_backoff

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: int, principal: Principal) -> AppointmentResponse:
        appointment = self._get_or_404(appointment_id)
        self._authorize_party(principal, appointment)
        return AppointmentResponse.from_appointment(appointment)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_appointment(self, principal: Principal, data: AppointmentCreate) -> AppointmentResponse:
        """Validate and book a new Scheduled appointment for the calling client"""
        client_id = resolve_client_id(self.db, principal)
        self._require_references(data.staffId, data.serviceId)
        logger.info(
            f"📥 Booking request: client {client_id}, staff {data.staffId}, "
            f"{data.startTime} - {data.endTime}"
        )

        def attempt() -> tuple[AppointmentResponse, set[str]]:
            with self.locks.hold(data.staffId):
                try:
                    self.store.lock_staff_schedule(self.db, data.staffId)
                    self._ensure_bookable(data.staffId, data.startTime, data.endTime)

                    appointment = Appointment(
                        client_id=client_id,
                        staff_id=data.staffId,
                        service_id=data.serviceId,
                        start_time=data.startTime,
                        end_time=data.endTime,
                        status=AppointmentStatus.SCHEDULED,
                    )
                    self.store.insert(self.db, appointment)
                    result = AppointmentResponse.from_appointment(appointment)
                    recipients = recipients_for(self.db, appointment)
                    self.store.commit(self.db)
                    return result, recipients
                except Exception:
                    self.store.rollback(self.db)
                    raise

        result, recipients = self._with_retry(attempt, "create appointment")
        logger.info(f"✅ Appointment {result.id} booked for staff {result.staffId}")

        self._notify(EventKind.APPOINTMENT_CREATED, result.model_dump(mode="json"), recipients)
        return result

    def update_appointment(
        self, principal: Principal, appointment_id: int, data: AppointmentUpdate
    ) -> AppointmentResponse:
        """Reschedule / modify an appointment, re-validating against the other bookings"""
        appointment = self._get_or_404(appointment_id)
        client_id = resolve_client_id(self.db, principal)
        if appointment.client_id != client_id:
            raise AuthorizationError("You can only modify your own appointments")
        self._require_references(data.staffId, data.serviceId)

        target_status = data.status or AppointmentStatus.SCHEDULED

        def attempt() -> tuple[AppointmentResponse, set[str]]:
            # Moving to another staff member touches both schedules
            staff_id = self._get_or_404(appointment_id).staff_id
            with self.locks.hold_many(staff_id, data.staffId):
                try:
                    self.store.lock_staff_schedule(self.db, data.staffId)
                    current = self._reload_locked(appointment_id, staff_id)
                    if current.status != AppointmentStatus.SCHEDULED:
                        raise IllegalTransitionError(
                            f"Only scheduled appointments can be modified (status is {current.status.value})"
                        )
                    transition(current.status, target_status)

                    if target_status == AppointmentStatus.SCHEDULED:
                        self._ensure_bookable(
                            data.staffId, data.startTime, data.endTime, exclude_id=appointment_id
                        )
                    elif data.startTime >= data.endTime:
                        raise ValidationError("Start time must be before end time")

                    self.store.update(
                        self.db,
                        current,
                        staff_id=data.staffId,
                        service_id=data.serviceId,
                        start_time=data.startTime,
                        end_time=data.endTime,
                        status=target_status,
                    )
                    result = AppointmentResponse.from_appointment(current)
                    recipients = recipients_for(self.db, current)
                    self.store.commit(self.db)
                    return result, recipients
                except Exception:
                    self.store.rollback(self.db)
                    raise

        result, recipients = self._with_retry(attempt, "update appointment")
        logger.info(f"✅ Appointment {appointment_id} updated ({result.status.value})")

        if result.status == AppointmentStatus.CANCELLED:
            self._notify(
                EventKind.APPOINTMENT_CANCELLED, self._cancelled_payload(result), recipients
            )
        else:
            self._notify(EventKind.APPOINTMENT_UPDATED, result.model_dump(mode="json"), recipients)
        return result

    def cancel_appointment(self, principal: Principal, appointment_id: int) -> AppointmentResponse:
        """
        Mark an appointment Cancelled.

        Cancelling an already cancelled appointment is a no-op and sends no
        notification. The row is kept; cancellation never deletes.
        """
        appointment = self._get_or_404(appointment_id)
        self._authorize_party(principal, appointment)

        def attempt() -> tuple[AppointmentResponse, set[str], bool]:
            staff_id = self._get_or_404(appointment_id).staff_id
            with self.locks.hold(staff_id):
                try:
                    current = self._reload_locked(appointment_id, staff_id)
                    changed = transition(current.status, AppointmentStatus.CANCELLED)
                    if changed:
                        self.store.set_status(self.db, current, AppointmentStatus.CANCELLED)
                    result = AppointmentResponse.from_appointment(current)
                    recipients = recipients_for(self.db, current)
                    self.store.commit(self.db)
                    return result, recipients, changed
                except Exception:
                    self.store.rollback(self.db)
                    raise

        result, recipients, changed = self._with_retry(attempt, "cancel appointment")
        if not changed:
            logger.info(f"ℹ️ Appointment {appointment_id} already cancelled, nothing to do")
            return result

        logger.info(f"✅ Appointment {appointment_id} cancelled by {principal.user_id}")
        self._notify(EventKind.APPOINTMENT_CANCELLED, self._cancelled_payload(result), recipients)
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure_bookable(self, staff_id, start, end, exclude_id: Optional[int] = None) -> None:
        outcome = self.validator.validate(
            self.db, staff_id, start, end, exclude_appointment_id=exclude_id
        )
        if isinstance(outcome, Rejected):
            raise ValidationError(outcome.reason)
        if isinstance(outcome, Conflict):
            raise ConflictError(
                "Staff member is not available for the requested time",
                suggested_start=outcome.suggested_start,
                suggested_end=outcome.suggested_end,
            )

    def _with_retry(self, operation: Callable[[], T], action: str) -> T:
        """Run the whole validate-and-commit sequence, retrying transient store failures"""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return operation()
            except PersistenceError as e:
                if not e.retryable or attempt >= self.max_attempts:
                    logger.error(f"❌ Failed to {action} after {attempt} attempt(s): {e.detail}")
                    raise
                logger.warning(f"🔄 Retrying {action} (attempt {attempt + 1}/{self.max_attempts}): {e.detail}")
                time.sleep(self.retry_backoff * attempt)
        raise PersistenceError(f"Failed to {action}")

    def _get_or_404(self, appointment_id: int) -> Appointment:
        appointment = self.store.get(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def _reload_locked(self, appointment_id: int, staff_id: int) -> Appointment:
        """Row-lock the appointment; it must still belong to the staff whose lock is held"""
        appointment = self.store.get_for_update(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        if appointment.staff_id != staff_id:
            logger.warning(
                f"🔄 Appointment {appointment_id} moved from staff {staff_id} to "
                f"{appointment.staff_id} while waiting for the lock"
            )
            raise PersistenceError("Appointment was rescheduled concurrently", retryable=True)
        return appointment

    def _require_references(self, staff_id: int, service_id: int) -> None:
        if not self.store.get_staff(self.db, staff_id):
            raise NotFoundError("Staff member not found")
        if not self.store.get_service(self.db, service_id):
            raise NotFoundError("Service not found")

    def _authorize_party(self, principal: Principal, appointment: Appointment) -> None:
        """Admins, the booking client and the assigned staff member may act on an appointment"""
        if principal.role == ADMIN_ROLE:
            return
        if principal.role == CLIENT_ROLE and resolve_client_id(self.db, principal) == appointment.client_id:
            return
        if principal.role == STAFF_ROLE and resolve_staff_id(self.db, principal) == appointment.staff_id:
            return
        raise AuthorizationError("You are not a party to this appointment")

    @staticmethod
    def _cancelled_payload(result: AppointmentResponse) -> dict:
        return AppointmentCancelledPayload(
            appointmentId=result.id, clientId=result.clientId, staffId=result.staffId
        ).model_dump()

    def _notify(self, event_kind: EventKind, payload: dict, recipients: set[str]) -> None:
        # Runs after commit: a dispatch failure must not fail the booking
        try:
            self.dispatcher.notify(event_kind, payload, recipients)
        except Exception as e:
            logger.error(f"❌ Failed to dispatch {event_kind.value}: {e}")
