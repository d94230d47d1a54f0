"""Operational endpoints: Prometheus scrape, health and readiness.

Mounted at the application root, outside /api/v1 and without auth.
"""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_storage
from domain.documents.ports.object_storage_port import ObjectStoragePort
from .health import HealthReport, HealthStatus, check_database_health, check_object_storage_health

router = APIRouter(tags=["Observability"])


@router.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health", summary="Database and object storage health")
async def health_check(
    db: Session = Depends(get_db),
    storage: ObjectStoragePort = Depends(get_storage),
):
    """503 when any component is unhealthy, 200 otherwise."""
    report = HealthReport({
        "database": check_database_health(db),
        "object_storage": await check_object_storage_health(storage.health_check),
    })
    return JSONResponse(content=report.to_dict(), status_code=report.http_status)


@router.get("/ready", summary="Readiness probe")
def readiness_check(db: Session = Depends(get_db)):
    """Ready once the database answers; storage problems only show in /health."""
    database = check_database_health(db)
    if database.status != HealthStatus.HEALTHY:
        return JSONResponse(content={"status": "not_ready", "message": database.message}, status_code=503)
    return {"status": "ready", "message": "Accepting document traffic"}
