"""Prometheus metrics for DriverDocs.

Defines the operational counters for the document pipeline. Exposed at
/metrics by observability.router.
"""

from prometheus_client import Counter, Histogram

# Upload protocol metrics
upload_grants_total = Counter(
    "driverdocs_upload_grants_total",
    "Total presigned upload grants issued",
)

documents_created_total = Counter(
    "driverdocs_documents_created_total",
    "Total document records created after a confirmed upload",
)

# Extraction metrics
ai_scans_total = Counter(
    "driverdocs_ai_scans_total",
    "Total per-document AI extraction attempts",
    ["status"]  # status: success|failed|unavailable
)

extraction_duration_seconds = Histogram(
    "driverdocs_extraction_duration_seconds",
    "Time spent on one extraction call in seconds",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

# Credit metrics
credits_debited_total = Counter(
    "driverdocs_credits_debited_total",
    "Credits consumed by successful extractions",
)

credit_debits_refused_total = Counter(
    "driverdocs_credit_debits_refused_total",
    "Debit attempts refused for insufficient balance",
)

# Driver metrics
drivers_created_total = Counter(
    "driverdocs_drivers_created_total",
    "Total drivers created",
)

driver_limit_reached_total = Counter(
    "driverdocs_driver_limit_reached_total",
    "Driver creations refused by the plan driver limit",
)
