"""Catalog schemas - staff and service listings"""

from decimal import Decimal
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, field_validator

T = TypeVar("T")


class ServiceCreate(BaseModel):
    name: str
    durationMinutes: int
    price: Decimal

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Service name is required")
        return v

    @field_validator("durationMinutes")
    @classmethod
    def validate_duration(cls, v):
        if v <= 0:
            raise ValueError("Duration must be greater than 0")
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        if v < 0:
            raise ValueError("Price cannot be negative")
        return v


class ServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    durationMinutes: int
    price: float


class StaffCreate(BaseModel):
    designation: str
    userId: Optional[str] = None


class StaffResponse(BaseModel):
    id: int
    designation: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None


class Page(BaseModel, Generic[T]):
    data: list[T]
    page: int
    pageSize: int
    totalCount: int
