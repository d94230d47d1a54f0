"""Credit-metered AI extraction of document metadata"""

from .orchestrator import BulkScanResult, ExtractionOrchestrator, ScanResult
from .ports import (
    DocumentTypeHint,
    ExtractedDocument,
    ExtractionError,
    ExtractionFailed,
    ExtractionProviderPort,
    ExtractionRequest,
    ExtractionServiceUnavailable,
)

__all__ = [
    "BulkScanResult",
    "DocumentTypeHint",
    "ExtractedDocument",
    "ExtractionError",
    "ExtractionFailed",
    "ExtractionOrchestrator",
    "ExtractionProviderPort",
    "ExtractionRequest",
    "ExtractionServiceUnavailable",
    "ScanResult",
]
