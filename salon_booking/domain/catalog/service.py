"""Catalog service - cached staff and service listings"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...cache import CatalogCache
from ...exceptions import NotFoundError, PersistenceError, ValidationError
from .repository import CatalogRepository
from .schemas import ServiceCreate, ServiceResponse, StaffCreate, StaffResponse

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _check_paging(page: int, page_size: int) -> None:
    if page < 1:
        raise ValidationError("page must be 1 or greater")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationError(f"pageSize must be between 1 and {MAX_PAGE_SIZE}")


class CatalogService:
    def __init__(self, db: Session, services_cache: CatalogCache, staff_cache: CatalogCache):
        self.db = db
        self.repo = CatalogRepository()
        self.services_cache = services_cache
        self.staff_cache = staff_cache

    def list_services(self, search: Optional[str], page: int, page_size: int) -> dict:
        _check_paging(page, page_size)
        cached = self.services_cache.get(search, page, page_size)
        if cached is not None:
            return cached

        services, total = self.repo.list_services(self.db, search, page, page_size)
        result = {
            "data": [
                ServiceResponse(
                    id=s.id, name=s.name, durationMinutes=s.duration_minutes, price=float(s.price)
                ).model_dump()
                for s in services
            ],
            "page": page,
            "pageSize": page_size,
            "totalCount": total,
        }
        self.services_cache.set(search, page, page_size, result)
        return result

    def list_staff(self, search: Optional[str], page: int, page_size: int) -> dict:
        _check_paging(page, page_size)
        cached = self.staff_cache.get(search, page, page_size)
        if cached is not None:
            return cached

        rows, total = self.repo.list_staff(self.db, search, page, page_size)
        result = {
            "data": [
                StaffResponse(
                    id=staff.id,
                    designation=staff.designation,
                    firstName=user.first_name if user else None,
                    lastName=user.last_name if user else None,
                    email=user.email if user else None,
                ).model_dump()
                for staff, user in rows
            ],
            "page": page,
            "pageSize": page_size,
            "totalCount": total,
        }
        self.staff_cache.set(search, page, page_size, result)
        return result

    def create_service(self, data: ServiceCreate) -> ServiceResponse:
        try:
            service = self.repo.create_service(
                self.db, name=data.name, duration_minutes=data.durationMinutes, price=data.price
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create service: {e}")
            raise PersistenceError("Failed to create service") from e

        self.services_cache.invalidate()
        logger.info(f"✅ Service {service.id} created: {service.name}")
        return ServiceResponse(
            id=service.id,
            name=service.name,
            durationMinutes=service.duration_minutes,
            price=float(service.price),
        )

    def create_staff(self, data: StaffCreate) -> StaffResponse:
        user = None
        if data.userId:
            user = self.repo.get_user(self.db, data.userId)
            if not user:
                raise NotFoundError("User not found")
            if user.client_id is not None or user.staff_id is not None:
                raise ValidationError("User is already linked to a client or staff profile")

        try:
            staff = self.repo.create_staff(self.db, data.designation, user)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create staff: {e}")
            raise PersistenceError("Failed to create staff member") from e

        self.staff_cache.invalidate()
        logger.info(f"✅ Staff {staff.id} created ({staff.designation})")
        return StaffResponse(
            id=staff.id,
            designation=staff.designation,
            firstName=user.first_name if user else None,
            lastName=user.last_name if user else None,
            email=user.email if user else None,
        )
