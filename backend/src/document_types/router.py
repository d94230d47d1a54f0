"""Document type settings endpoints (reads for VIEWER, writes for ADMIN)"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from auth.dependencies import IdentityContext, require_admin, require_viewer
from database import get_db
from domain.document_types.field_schema import field_types_catalog
from .schemas import DocumentTypeCreate, DocumentTypeUpdate
from .service import DocumentTypeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


def ok(data) -> dict:
    return {"success": True, "data": data}


@router.get("/document-types")
async def list_document_types(
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_viewer),
):
    service = DocumentTypeService(db, identity.company_id)
    return ok([t.to_dict() for t in service.list_types()])


@router.post("/document-types", status_code=status.HTTP_201_CREATED)
async def create_document_type(
    data: DocumentTypeCreate,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_admin),
):
    service = DocumentTypeService(db, identity.company_id)
    return ok(service.create_type(data).to_dict())


@router.put("/document-types/{name}")
async def update_document_type(
    name: str,
    data: DocumentTypeUpdate,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_admin),
):
    service = DocumentTypeService(db, identity.company_id)
    return ok(service.update_type(name, data).to_dict())


@router.delete("/document-types/{name}")
async def delete_document_type(
    name: str,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_admin),
):
    """Delete a type. Documents keep their type text."""
    service = DocumentTypeService(db, identity.company_id)
    service.delete_type(name)
    return ok({"name": name, "deleted": True})


@router.patch("/document-types/{name}/toggle-active")
async def toggle_document_type(
    name: str,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_admin),
):
    service = DocumentTypeService(db, identity.company_id)
    return ok(service.toggle_active(name).to_dict())


@router.get("/field-types")
async def list_field_types(identity: IdentityContext = Depends(require_viewer)):
    """Field types a document type schema may use"""
    return ok(field_types_catalog())
