"""Catalog router - staff and service listings"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import Principal, get_current_principal, require_roles
from ...database import get_db
from ...models import ADMIN_ROLE
from .schemas import Page, ServiceCreate, ServiceResponse, StaffCreate, StaffResponse
from .service import CatalogService

router = APIRouter(tags=["Catalog"])


def get_catalog_service(request: Request, db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db, request.app.state.services_cache, request.app.state.staff_cache)


@router.get("/services", response_model=Page[ServiceResponse])
def list_services(
    search: Optional[str] = Query(None),
    page: int = Query(1),
    pageSize: int = Query(10),
    _principal: Principal = Depends(get_current_principal),
    service: CatalogService = Depends(get_catalog_service),
):
    """Paginated service listing with optional name search"""
    return service.list_services(search, page, pageSize)


@router.post("/services", response_model=ServiceResponse, status_code=201)
def create_service(
    data: ServiceCreate,
    _principal: Principal = Depends(require_roles(ADMIN_ROLE)),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.create_service(data)


@router.get("/staff", response_model=Page[StaffResponse])
def list_staff(
    search: Optional[str] = Query(None),
    page: int = Query(1),
    pageSize: int = Query(10),
    _principal: Principal = Depends(get_current_principal),
    service: CatalogService = Depends(get_catalog_service),
):
    """Paginated active staff listing, searchable by name, email or designation"""
    return service.list_staff(search, page, pageSize)


@router.post("/staff", response_model=StaffResponse, status_code=201)
def create_staff(
    data: StaffCreate,
    _principal: Principal = Depends(require_roles(ADMIN_ROLE)),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.create_staff(data)
