"""
Identity lookup

Narrow contract between the booking core and the user directory: maps an
authenticated principal to its client/staff record and back to the identity
strings used as realtime channel keys.
"""

from typing import Optional

from sqlalchemy.orm import Session

from .auth import Principal
from .exceptions import AuthorizationError
from .models import Appointment, User


def resolve_client_id(db: Session, principal: Principal) -> int:
    client_id = db.query(User.client_id).filter(User.id == principal.user_id).scalar()
    if client_id is None:
        raise AuthorizationError("Authenticated user is not linked to a client profile")
    return client_id


def resolve_staff_id(db: Session, principal: Principal) -> Optional[int]:
    return db.query(User.staff_id).filter(User.id == principal.user_id).scalar()


def identity_for_client(db: Session, client_id: int) -> Optional[str]:
    return db.query(User.id).filter(User.client_id == client_id).scalar()


def identity_for_staff(db: Session, staff_id: int) -> Optional[str]:
    return db.query(User.id).filter(User.staff_id == staff_id).scalar()


def recipients_for(db: Session, appointment: Appointment) -> set[str]:
    """Identities of the appointment's client and staff member (either may be missing)"""
    recipients = {
        identity_for_client(db, appointment.client_id),
        identity_for_staff(db, appointment.staff_id),
    }
    recipients.discard(None)
    return recipients
