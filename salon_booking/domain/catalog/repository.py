"""Catalog repository - Database operations for staff and services"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import STAFF_ROLE, Service, Staff, User


class CatalogRepository:
    """Repository for staff and service listings"""

    @staticmethod
    def list_services(
        db: Session, search: Optional[str], page: int, page_size: int
    ) -> tuple[list[Service], int]:
        query = db.query(Service)
        if search:
            query = query.filter(Service.name.ilike(f"%{search}%"))

        total = query.count()
        services = (
            query.order_by(Service.name, Service.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return services, total

    @staticmethod
    def list_staff(
        db: Session, search: Optional[str], page: int, page_size: int
    ) -> tuple[list[tuple[Staff, Optional[User]]], int]:
        """Active staff with their linked user (if any)"""
        query = (
            db.query(Staff, User)
            .outerjoin(User, User.staff_id == Staff.id)
            .filter(Staff.is_active.is_(True))
        )
        if search:
            term = f"%{search}%"
            query = query.filter(
                or_(
                    Staff.designation.ilike(term),
                    User.first_name.ilike(term),
                    User.last_name.ilike(term),
                    User.email.ilike(term),
                )
            )

        total = query.count()
        rows = (
            query.order_by(User.first_name, Staff.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return rows, total

    @staticmethod
    def create_service(db: Session, **service_data) -> Service:
        service = Service(**service_data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def create_staff(db: Session, designation: str, user: Optional[User] = None) -> Staff:
        staff = Staff(designation=designation)
        db.add(staff)
        db.flush()
        if user is not None:
            user.staff_id = staff.id
            user.role = STAFF_ROLE
        db.commit()
        db.refresh(staff)
        return staff
