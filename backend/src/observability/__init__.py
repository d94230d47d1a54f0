"""Observability for DriverDocs: structured logging, metrics, health checks."""

from .logging_config import configure_logging, get_logger
from .metrics import (
    ai_scans_total,
    credit_debits_refused_total,
    credits_debited_total,
    documents_created_total,
    driver_limit_reached_total,
    drivers_created_total,
    extraction_duration_seconds,
    upload_grants_total,
)
from .request_id import request_id_var, get_request_id, set_request_id, generate_request_id, resolve_request_id
from .health import HealthStatus, ComponentHealth, HealthReport
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "ai_scans_total",
    "credit_debits_refused_total",
    "credits_debited_total",
    "documents_created_total",
    "driver_limit_reached_total",
    "drivers_created_total",
    "extraction_duration_seconds",
    "upload_grants_total",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "resolve_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    "HealthReport",
    # Middleware
    "RequestIDMiddleware",
]
