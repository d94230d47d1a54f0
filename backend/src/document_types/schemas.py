"""Pydantic schemas for document type settings"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from domain.document_types.field_schema import EXTRACTION_MODES, parse_schema


def _check_fields(fields: Optional[list[dict[str, Any]]]) -> Optional[list[dict[str, Any]]]:
    if not fields:
        return fields
    # parse_schema raises ValueError, which pydantic reports as a 422
    return [spec.to_dict() for spec in parse_schema(fields)]


def _check_mode(mode: Optional[str]) -> Optional[str]:
    if mode is not None and mode not in EXTRACTION_MODES:
        raise ValueError(f"extractionMode must be one of: {', '.join(EXTRACTION_MODES)}")
    return mode


class DocumentTypeCreate(BaseModel):
    """Schema for creating a document type"""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    fields: list[dict[str, Any]] = Field(default_factory=list)
    is_active: bool = Field(True, alias="isActive")
    ai_enabled: bool = Field(True, alias="aiEnabled")
    extraction_mode: str = Field("fields", alias="extractionMode")

    class Config:
        populate_by_name = True

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()

    @field_validator('fields')
    @classmethod
    def validate_fields(cls, v):
        return _check_fields(v)

    @field_validator('extraction_mode')
    @classmethod
    def validate_mode(cls, v):
        return _check_mode(v)


class DocumentTypeUpdate(BaseModel):
    """Schema for updating a document type (all fields optional)"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    fields: Optional[list[dict[str, Any]]] = None
    ai_enabled: Optional[bool] = Field(None, alias="aiEnabled")
    extraction_mode: Optional[str] = Field(None, alias="extractionMode")
    position: Optional[int] = Field(None, ge=0)

    class Config:
        populate_by_name = True

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip() if v else v

    @field_validator('fields')
    @classmethod
    def validate_fields(cls, v):
        return _check_fields(v)

    @field_validator('extraction_mode')
    @classmethod
    def validate_mode(cls, v):
        return _check_mode(v)
