"""Health and readiness probes for the database and the document bucket."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None

    def to_dict(self) -> dict:
        return {"status": self.status.value, "message": self.message, "latency_ms": self.latency_ms}


@dataclass
class HealthReport:
    """Aggregated component results; any UNHEALTHY component fails the report."""
    components: Dict[str, ComponentHealth] = field(default_factory=dict)

    @property
    def status(self) -> HealthStatus:
        statuses = [c.status for c in self.components.values()]
        if all(s == HealthStatus.HEALTHY for s in statuses):
            return HealthStatus.HEALTHY
        if HealthStatus.UNHEALTHY in statuses:
            return HealthStatus.UNHEALTHY
        return HealthStatus.DEGRADED

    @property
    def http_status(self) -> int:
        return 503 if self.status == HealthStatus.UNHEALTHY else 200

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "components": {name: c.to_dict() for name, c in self.components.items()},
        }


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def check_database_health(db: Session) -> ComponentHealth:
    start = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(HealthStatus.UNHEALTHY, f"Database error: {str(e)}")
    return ComponentHealth(HealthStatus.HEALTHY, "Database connection OK", _elapsed_ms(start))


async def check_object_storage_health(probe: Callable[[], Awaitable[bool]]) -> ComponentHealth:
    """Run the storage adapter's bucket probe.

    Args:
        probe: The adapter's health_check coroutine function

    A probe that returns False means the bucket is missing or not readable
    with the configured credentials.
    """
    start = time.perf_counter()
    try:
        reachable = await probe()
    except Exception as e:
        logger.error(f"Object storage health check failed: {e}", exc_info=True)
        return ComponentHealth(HealthStatus.UNHEALTHY, f"Object storage error: {str(e)}")

    if not reachable:
        logger.warning("Document bucket not accessible")
        return ComponentHealth(HealthStatus.UNHEALTHY, "Bucket not accessible")
    return ComponentHealth(HealthStatus.HEALTHY, "Object storage connection OK", _elapsed_ms(start))
