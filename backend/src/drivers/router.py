"""Driver management API endpoints"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from auth.dependencies import IdentityContext, require_manager, require_viewer
from database import get_db
from dependencies import get_storage
from domain.documents.document_status import utc_today
from domain.documents.ports.object_storage_port import ObjectStoragePort
from domain.errors import StorageError
from .import_service import csv_template
from .schemas import DriverCreate
from .service import DriverService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/drivers", tags=["drivers"])


def ok(data) -> dict:
    return {"success": True, "data": data}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_driver(
    driver_data: DriverCreate,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_manager),
):
    """
    Create a driver (MANAGER or above).

    Raises:
        403 DRIVER_LIMIT_REACHED: The plan's max_drivers is already used up
        409 duplicate: employeeId already taken
    """
    service = DriverService(db, identity.company_id)
    driver = service.create_driver(driver_data)
    return ok(service.driver_detail(driver.id, utc_today()))


@router.get("")
async def list_drivers(
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_viewer),
):
    """All drivers with compliance score, tier and per-type document status"""
    service = DriverService(db, identity.company_id)
    return ok(service.list_drivers(utc_today()))


@router.get("/import/template", response_class=PlainTextResponse)
async def import_template(identity: IdentityContext = Depends(require_viewer)):
    """CSV template for bulk driver import"""
    return PlainTextResponse(
        csv_template(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="drivers-template.csv"'},
    )


@router.get("/{driver_id}")
async def get_driver(
    driver_id: UUID,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_viewer),
):
    service = DriverService(db, identity.company_id)
    return ok(service.driver_detail(driver_id, utc_today()))


@router.delete("/{driver_id}")
async def delete_driver(
    driver_id: UUID,
    db: Session = Depends(get_db),
    identity: IdentityContext = Depends(require_manager),
    storage: ObjectStoragePort = Depends(get_storage),
):
    """Delete a driver, its documents and their stored files"""
    service = DriverService(db, identity.company_id)
    keys = service.delete_driver(driver_id)
    for key in keys:
        try:
            await storage.delete_file(key)
        except StorageError as e:
            logger.warning(f"Stored object left behind: key={key}, error={e.message}")
    return ok({"id": str(driver_id), "deleted": True, "documentsDeleted": len(keys)})
