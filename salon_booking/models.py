from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .domain.scheduling.status import AppointmentStatus

# System roles
ADMIN_ROLE = "Admin"
STAFF_ROLE = "Staff"
CLIENT_ROLE = "Client"


class User(Base):
    """Authenticated identity, linked to at most one client or staff record"""

    __tablename__ = "users"

    # Stable identity claim ("sub" of the bearer token); also the realtime channel key
    id = Column(String(255), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=CLIENT_ROLE)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True, unique=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=True, unique=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="user")
    staff = relationship("Staff", back_populates="user")


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="client", uselist=False)
    appointments = relationship("Appointment", back_populates="client")


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    designation = Column(String(100), nullable=False)  # e.g., Stylist, Barber, Manager
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="staff", uselist=False)
    appointments = relationship("Appointment", back_populates="staff")


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(18, 2), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    appointments = relationship("Appointment", back_populates="service")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_appointments_window"),
        Index("ix_appointments_staff_status_window", "staff_id", "status", "start_time", "end_time"),
    )

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)

    # Naive timestamps in SERVICE_TIMEZONE
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    # Stored as the enum value ("Scheduled", "Completed", "Cancelled")
    status = Column(
        Enum(
            AppointmentStatus,
            values_callable=lambda statuses: [s.value for s in statuses],
            native_enum=False,
            length=20,
        ),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
    )

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="appointments")
    staff = relationship("Staff", back_populates="appointments")
    service = relationship("Service", back_populates="appointments")
