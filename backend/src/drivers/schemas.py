"""Pydantic schemas for driver endpoints"""

import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class DriverCreate(BaseModel):
    """Schema for creating a driver"""
    first_name: str = Field(..., min_length=1, max_length=100, alias="firstName")
    last_name: str = Field(..., min_length=1, max_length=100, alias="lastName")
    email: str = Field(..., max_length=320)
    phone: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=200)
    employee_id: Optional[str] = Field(None, max_length=100, alias="employeeId")

    class Config:
        populate_by_name = True

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email format")
        return v.lower()

    @field_validator('phone', 'location', 'employee_id')
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class FailedRow(BaseModel):
    """A CSV row that was not created"""
    row_number: int = Field(..., alias="rowNumber")
    data: dict[str, Any]
    reason: Literal["LIMIT_REACHED", "ERROR"]
    error: Optional[str] = None

    class Config:
        populate_by_name = True


class ImportResult(BaseModel):
    """Outcome of a bulk driver import"""
    successful: list[dict[str, Any]] = Field(default_factory=list)
    failed: list[FailedRow] = Field(default_factory=list)
    limit_reached: bool = Field(False, alias="limitReached")

    class Config:
        populate_by_name = True
