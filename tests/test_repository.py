"""Tests for AppointmentStore against SQLite."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from salon_booking.domain.appointments.repository import AppointmentStore
from salon_booking.domain.scheduling.status import AppointmentStatus
from salon_booking.exceptions import PersistenceError
from salon_booking.models import Appointment

from .conftest import TUESDAY, at


def add_appointment(db, directory, start, end, status=AppointmentStatus.SCHEDULED, staff_id=None):
    appointment = Appointment(
        client_id=directory.client_id,
        staff_id=staff_id or directory.staff_id,
        service_id=directory.service_id,
        start_time=start,
        end_time=end,
        status=status,
    )
    AppointmentStore.insert(db, appointment)
    AppointmentStore.commit(db)
    return appointment


class TestFindScheduledOverlaps:
    def test_returns_overlapping_scheduled_rows(self, db_session, directory):
        hit = add_appointment(db_session, directory, at(TUESDAY, 9), at(TUESDAY, 9, 45))
        add_appointment(db_session, directory, at(TUESDAY, 9, 45), at(TUESDAY, 10, 30))
        add_appointment(db_session, directory, at(TUESDAY, 11), at(TUESDAY, 11, 45))

        rows = AppointmentStore.find_scheduled_overlaps(
            db_session, directory.staff_id, at(TUESDAY, 9, 15), at(TUESDAY, 9, 45)
        )
        assert [r.id for r in rows] == [hit.id]

    def test_ignores_cancelled_and_completed(self, db_session, directory):
        add_appointment(db_session, directory, at(TUESDAY, 9), at(TUESDAY, 9, 45), AppointmentStatus.CANCELLED)
        add_appointment(db_session, directory, at(TUESDAY, 9), at(TUESDAY, 9, 45), AppointmentStatus.COMPLETED)
        rows = AppointmentStore.find_scheduled_overlaps(
            db_session, directory.staff_id, at(TUESDAY, 9), at(TUESDAY, 9, 45)
        )
        assert rows == []

    def test_scoped_to_staff_member(self, db_session, directory):
        add_appointment(db_session, directory, at(TUESDAY, 9), at(TUESDAY, 9, 45), staff_id=directory.other_staff_id)
        rows = AppointmentStore.find_scheduled_overlaps(
            db_session, directory.staff_id, at(TUESDAY, 9), at(TUESDAY, 9, 45)
        )
        assert rows == []

    def test_exclude_id(self, db_session, directory):
        own = add_appointment(db_session, directory, at(TUESDAY, 9), at(TUESDAY, 9, 45))
        rows = AppointmentStore.find_scheduled_overlaps(
            db_session, directory.staff_id, at(TUESDAY, 9, 30), at(TUESDAY, 10, 15), exclude_id=own.id
        )
        assert rows == []


class TestWrites:
    def test_status_round_trips_as_enum(self, db_session, session_factory, directory):
        appointment = add_appointment(db_session, directory, at(TUESDAY, 9), at(TUESDAY, 9, 45))
        AppointmentStore.set_status(db_session, appointment, AppointmentStatus.CANCELLED)
        AppointmentStore.commit(db_session)

        other = session_factory()
        try:
            stored = AppointmentStore.get(other, appointment.id)
            assert stored.status is AppointmentStatus.CANCELLED
        finally:
            other.close()

    def test_update_skips_none_fields(self, db_session, directory):
        appointment = add_appointment(db_session, directory, at(TUESDAY, 9), at(TUESDAY, 9, 45))
        AppointmentStore.update(db_session, appointment, start_time=at(TUESDAY, 10), end_time=at(TUESDAY, 10, 45), status=None)
        assert appointment.start_time == at(TUESDAY, 10)
        assert appointment.status is AppointmentStatus.SCHEDULED

    def test_get_reloads_stale_rows(self, db_session, session_factory, directory):
        appointment = add_appointment(db_session, directory, at(TUESDAY, 9), at(TUESDAY, 9, 45))
        AppointmentStore.get(db_session, appointment.id)

        other = session_factory()
        try:
            row = AppointmentStore.get(other, appointment.id)
            AppointmentStore.set_status(other, row, AppointmentStatus.CANCELLED)
            AppointmentStore.commit(other)
        finally:
            other.close()

        assert AppointmentStore.get(db_session, appointment.id).status is AppointmentStatus.CANCELLED

    def test_get_for_update_reloads_stale_rows(self, db_session, session_factory, directory):
        appointment = add_appointment(db_session, directory, at(TUESDAY, 9), at(TUESDAY, 9, 45))
        AppointmentStore.get(db_session, appointment.id)

        other = session_factory()
        try:
            row = AppointmentStore.get(other, appointment.id)
            AppointmentStore.update(other, row, staff_id=directory.other_staff_id)
            AppointmentStore.commit(other)
        finally:
            other.close()

        locked = AppointmentStore.get_for_update(db_session, appointment.id)
        assert locked.staff_id == directory.other_staff_id
        assert AppointmentStore.get_for_update(db_session, 999) is None

    def test_inactive_staff_is_not_found(self, db_session, directory):
        staff = AppointmentStore.get_staff(db_session, directory.other_staff_id)
        staff.is_active = False
        db_session.commit()
        assert AppointmentStore.get_staff(db_session, directory.other_staff_id) is None


class TestErrorMapping:
    def test_operational_error_is_retryable(self):
        db = MagicMock()
        db.commit.side_effect = OperationalError("COMMIT", {}, Exception("database is locked"))
        with pytest.raises(PersistenceError) as exc:
            AppointmentStore.commit(db)
        assert exc.value.retryable is True
        db.rollback.assert_called_once()

    def test_integrity_error_is_not_retryable(self):
        db = MagicMock()
        db.flush.side_effect = IntegrityError("INSERT", {}, Exception("constraint failed"))
        with pytest.raises(PersistenceError) as exc:
            AppointmentStore.insert(db, MagicMock())
        assert exc.value.retryable is False
        assert exc.value.status_code == 503

    def test_read_failure_maps_to_persistence_error(self):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("no connection"))
        with pytest.raises(PersistenceError):
            AppointmentStore.find_scheduled_overlaps(db, 1, at(TUESDAY, 9), at(TUESDAY, 10))
