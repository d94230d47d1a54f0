"""Compliance scoring"""

from .scorer import (
    compliance_score,
    compliance_tier,
    counts_as_active,
    satisfied_types,
    type_column_statuses,
    driver_compliance_status,
)

__all__ = [
    "compliance_score",
    "compliance_tier",
    "counts_as_active",
    "satisfied_types",
    "type_column_statuses",
    "driver_compliance_status",
]
