"""Pydantic schemas for document endpoints

Wire names are camelCase; Python attributes are snake_case.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class FileDescriptor(BaseModel):
    """One file a client wants to upload"""
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: Optional[str] = Field(None, alias="contentType")
    size: Optional[int] = Field(None, ge=0)

    class Config:
        populate_by_name = True


class PresignedUrlRequest(BaseModel):
    files: list[FileDescriptor] = Field(..., min_length=1)


class CreateDocumentRequest(BaseModel):
    """Record a file that was PUT to object storage"""
    key: str = Field(..., min_length=1)
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: Optional[str] = Field(None, alias="contentType")
    size: int = Field(0, ge=0)

    class Config:
        populate_by_name = True


class BulkScanRequest(BaseModel):
    document_ids: list[str] = Field(..., min_length=1, alias="documentIds")

    class Config:
        populate_by_name = True

    @field_validator('document_ids')
    @classmethod
    def validate_unique(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("documentIds must not contain duplicates")
        return v

