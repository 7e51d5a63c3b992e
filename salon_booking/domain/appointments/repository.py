"""Appointment store - Database operations for appointments"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...exceptions import PersistenceError
from ...models import Appointment, Service, Staff
from ..scheduling.status import AppointmentStatus

logger = logging.getLogger(__name__)


def _persistence_error(action: str, e: SQLAlchemyError) -> PersistenceError:
    # OperationalError covers serialization failures, deadlocks and "database is locked"
    retryable = isinstance(e, OperationalError)
    logger.error(f"❌ Appointment store failed to {action}: {e}")
    return PersistenceError(f"Appointment store failed to {action}", retryable=retryable)


class AppointmentStore:
    """Repository for appointment database operations"""

    @staticmethod
    def get(db: Session, appointment_id: int) -> Optional[Appointment]:
        try:
            # Overwrite rows already in the session with the stored state
            return (
                db.query(Appointment)
                .filter(Appointment.id == appointment_id)
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            raise _persistence_error("load appointment", e) from e

    @staticmethod
    def get_for_update(db: Session, appointment_id: int) -> Optional[Appointment]:
        """Reload an appointment and row-lock it for the rest of the transaction"""
        try:
            return (
                db.query(Appointment)
                .filter(Appointment.id == appointment_id)
                .populate_existing()
                .with_for_update()
                .first()
            )
        except SQLAlchemyError as e:
            raise _persistence_error("lock appointment", e) from e

    @staticmethod
    def find_scheduled_overlaps(
        db: Session,
        staff_id: int,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> list[Appointment]:
        """
        Scheduled appointments of a staff member overlapping [start, end).

        Must be called inside the staff's critical section so the result is
        still true when the following write commits.
        """
        try:
            query = db.query(Appointment).filter(
                Appointment.staff_id == staff_id,
                Appointment.status == AppointmentStatus.SCHEDULED,
                Appointment.start_time < end,
                Appointment.end_time > start,
            )
            if exclude_id is not None:
                query = query.filter(Appointment.id != exclude_id)
            return query.order_by(Appointment.start_time).all()
        except SQLAlchemyError as e:
            raise _persistence_error("read staff schedule", e) from e

    @staticmethod
    def lock_staff_schedule(db: Session, staff_id: int) -> Optional[Staff]:
        """Row-lock the staff record for the rest of the transaction (no-op on SQLite)"""
        try:
            return db.query(Staff).filter(Staff.id == staff_id).with_for_update().first()
        except SQLAlchemyError as e:
            raise _persistence_error("lock staff schedule", e) from e

    @staticmethod
    def insert(db: Session, appointment: Appointment) -> int:
        try:
            db.add(appointment)
            db.flush()
            return appointment.id
        except SQLAlchemyError as e:
            raise _persistence_error("insert appointment", e) from e

    @staticmethod
    def update(db: Session, appointment: Appointment, **fields) -> Appointment:
        """Update an appointment with provided fields"""
        try:
            for key, value in fields.items():
                if value is not None and hasattr(appointment, key):
                    setattr(appointment, key, value)
            db.flush()
            return appointment
        except SQLAlchemyError as e:
            raise _persistence_error("update appointment", e) from e

    @staticmethod
    def set_status(db: Session, appointment: Appointment, status: AppointmentStatus) -> Appointment:
        try:
            appointment.status = status
            db.flush()
            return appointment
        except SQLAlchemyError as e:
            raise _persistence_error("update appointment status", e) from e

    @staticmethod
    def commit(db: Session) -> None:
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise _persistence_error("commit", e) from e

    @staticmethod
    def rollback(db: Session) -> None:
        try:
            db.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"⚠️ Rollback failed: {e}")

    # Reference lookups
    @staticmethod
    def get_staff(db: Session, staff_id: int) -> Optional[Staff]:
        try:
            return db.query(Staff).filter(Staff.id == staff_id, Staff.is_active.is_(True)).first()
        except SQLAlchemyError as e:
            raise _persistence_error("load staff", e) from e

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        try:
            return db.query(Service).filter(Service.id == service_id).first()
        except SQLAlchemyError as e:
            raise _persistence_error("load service", e) from e
