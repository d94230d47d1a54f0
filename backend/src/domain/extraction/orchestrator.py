"""
Extraction Orchestrator - credit-metered AI scanning of stored documents.

Credits follow reserve-then-refund:

1. Reserve N credits for N requested documents with one atomic debit.
   If the balance cannot cover N, nothing is called.
2. Call the extraction service for every document concurrently.
3. Refund N - K, where K is the number of successful extractions.

The amount finally debited always equals the number of successes, and two
concurrent batches can never both spend the same credits. When the service
is unreachable for every document the whole reservation is refunded and
ExtractionUnavailableError is raised so the caller can retry or fall back
to manual entry.

Extracted values are returned only. They are persisted through the normal
document update once a person has reviewed them.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from domain.credits.ledger import CreditLedger
from domain.documents.ports.object_storage_port import ObjectStoragePort
from domain.errors import ExtractionUnavailableError, InsufficientCreditsError, TransportError
from models.credit import CreditTransactionReason
from models.document import Document
from models.document_type import DocumentType
from observability.metrics import (
    ai_scans_total,
    credit_debits_refused_total,
    credits_debited_total,
    extraction_duration_seconds,
)

from .ports import (
    DocumentTypeHint,
    ExtractionFailed,
    ExtractionProviderPort,
    ExtractionRequest,
    ExtractionServiceUnavailable,
)

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Outcome of scanning one document.

    Attributes:
        document_id: Scanned document
        success: True if the service returned a result
        document_type: Detected type name, when successful
        extracted_data: Extracted field values, when successful
        error: Failure reason, when not successful
    """
    document_id: str
    success: bool
    document_type: Optional[str] = None
    extracted_data: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    service_unavailable: bool = field(default=False, repr=False)

    def to_dict(self) -> dict:
        return {
            "documentId": self.document_id,
            "success": self.success,
            "documentType": self.document_type,
            "extractedData": self.extracted_data,
            "error": self.error,
        }


@dataclass
class BulkScanResult:
    """Results aligned to the requested document order"""
    results: list[ScanResult]
    total_credits_used: int
    credits_remaining: int

    def to_dict(self) -> dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "totalCreditsUsed": self.total_credits_used,
            "creditsRemaining": self.credits_remaining,
        }


@dataclass
class _ScanTarget:
    document_id: str
    storage_key: Optional[str] = None
    filename: str = ""
    content_type: Optional[str] = None


class ExtractionOrchestrator:
    """
    Sends stored documents to the extraction service and settles credits.

    Example:
        orchestrator = ExtractionOrchestrator(session_factory, ledger, provider, storage)
        bulk = await orchestrator.scan_many(company_id, [doc_a, doc_b, doc_c])
        bulk.total_credits_used  # == number of successful results
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        ledger: CreditLedger,
        provider: ExtractionProviderPort,
        storage: ObjectStoragePort,
        image_url_expires_seconds: int = 3600,
    ):
        self._session_factory = session_factory
        self._ledger = ledger
        self._provider = provider
        self._storage = storage
        self._image_url_expires_seconds = image_url_expires_seconds

    async def scan_one(self, company_id: UUID, document_id: str) -> tuple[ScanResult, int]:
        """Scan a single document.

        Returns:
            (ScanResult, credits_remaining)

        Raises:
            InsufficientCreditsError: Balance below 1
            ExtractionUnavailableError: Service unreachable (no credit used)
        """
        bulk = await self.scan_many(company_id, [document_id])
        return bulk.results[0], bulk.credits_remaining

    async def scan_many(self, company_id: UUID, document_ids: Iterable[str]) -> BulkScanResult:
        """Scan documents concurrently; one ScanResult per id, in input order.

        Raises:
            InsufficientCreditsError: Balance cannot cover every requested id
            ExtractionUnavailableError: Service unreachable for every document
        """
        ids = [str(d) for d in document_ids]
        if not ids:
            return BulkScanResult(results=[], total_credits_used=0,
                                  credits_remaining=self._ledger.get_balance(company_id))

        targets, hints = self._load(company_id, ids)
        requested = len(ids)
        reference = ",".join(ids)

        reservation = self._ledger.try_debit(
            company_id, requested, CreditTransactionReason.AI_SCAN, reference
        )
        if not reservation.ok:
            credit_debits_refused_total.inc()
            logger.info(f"Scan refused: company_id={company_id}, required={requested}, available={reservation.new_balance}")
            raise InsufficientCreditsError(required=requested, available=reservation.new_balance)

        try:
            outcomes = await asyncio.gather(
                *(self._scan(target, hints) for target in targets), return_exceptions=True
            )
        except BaseException:
            self._ledger.credit(company_id, requested, CreditTransactionReason.AI_SCAN_REFUND, reference)
            raise

        errors = [o for o in outcomes if isinstance(o, BaseException)]
        if errors:
            # Unexpected failure: every task has finished, give back the whole reservation
            self._ledger.credit(company_id, requested, CreditTransactionReason.AI_SCAN_REFUND, reference)
            raise errors[0]
        results = list(outcomes)

        succeeded = sum(1 for r in results if r.success)
        unused = requested - succeeded
        balance = reservation.new_balance
        if unused:
            balance = self._ledger.credit(
                company_id, unused, CreditTransactionReason.AI_SCAN_REFUND, reference
            )

        attempted = [r for r, t in zip(results, targets) if t.storage_key is not None]
        if succeeded == 0 and attempted and all(r.service_unavailable for r in attempted):
            logger.warning(
                f"Extraction service unavailable: company_id={company_id}, documents={requested}"
            )
            raise ExtractionUnavailableError(
                "The extraction service is unavailable. Retry later or enter the details manually."
            )

        credits_debited_total.inc(succeeded)
        logger.info(
            f"Bulk scan finished: company_id={company_id}, requested={requested}, "
            f"succeeded={succeeded}, credits_remaining={balance}"
        )
        return BulkScanResult(
            results=list(results),
            total_credits_used=succeeded,
            credits_remaining=balance,
        )

    def _load(self, company_id: UUID, ids: list[str]) -> tuple[list[_ScanTarget], list[DocumentTypeHint]]:
        """Resolve ids to scan targets (company scoped) and load type hints"""
        uuids = {}
        for raw in ids:
            try:
                uuids[raw] = UUID(raw)
            except ValueError:
                continue

        with self._session_factory() as session:
            documents = session.execute(
                select(Document).where(
                    Document.company_id == company_id,
                    Document.id.in_(list(uuids.values())),
                )
            ).scalars().all() if uuids else []
            by_id = {str(doc.id): doc for doc in documents}

            targets = []
            for raw in ids:
                doc = by_id.get(str(uuids[raw])) if raw in uuids else None
                if doc is None:
                    targets.append(_ScanTarget(document_id=raw))
                else:
                    targets.append(_ScanTarget(
                        document_id=raw,
                        storage_key=doc.storage_key,
                        filename=doc.filename,
                        content_type=doc.content_type,
                    ))

            types = session.execute(
                select(DocumentType)
                .where(DocumentType.company_id == company_id, DocumentType.is_active.is_(True))
                .order_by(DocumentType.position)
            ).scalars().all()
            hints = [
                DocumentTypeHint(
                    name=t.name,
                    fields=[f for f in (t.fields_json or []) if f.get("aiExtractable", True)],
                    classification_only=t.extraction_mode == "classification-only",
                )
                for t in types if t.ai_enabled
            ]

        return targets, hints

    async def _scan(self, target: _ScanTarget, hints: list[DocumentTypeHint]) -> ScanResult:
        if target.storage_key is None:
            ai_scans_total.labels(status="failed").inc()
            return ScanResult(document_id=target.document_id, success=False, error="Document not found")

        start = time.perf_counter()
        try:
            image_url = await self._storage.generate_presigned_download_url(
                target.storage_key, self._image_url_expires_seconds
            )
            extracted = await self._provider.extract_document(ExtractionRequest(
                document_id=target.document_id,
                image_url=image_url,
                filename=target.filename,
                content_type=target.content_type,
                document_types=hints,
            ))
        except ExtractionServiceUnavailable as e:
            ai_scans_total.labels(status="unavailable").inc()
            logger.warning(f"Extraction unavailable: document_id={target.document_id}, error={e}")
            return ScanResult(
                document_id=target.document_id,
                success=False,
                error=str(e) or "Extraction service unavailable",
                service_unavailable=True,
            )
        except TransportError as e:
            ai_scans_total.labels(status="unavailable").inc()
            logger.warning(f"Storage unavailable: document_id={target.document_id}, error={e}")
            return ScanResult(
                document_id=target.document_id,
                success=False,
                error=str(e) or "Document storage unavailable",
                service_unavailable=True,
            )
        except (ExtractionFailed, FileNotFoundError) as e:
            ai_scans_total.labels(status="failed").inc()
            logger.warning(f"Extraction failed: document_id={target.document_id}, error={e}")
            return ScanResult(document_id=target.document_id, success=False, error=str(e) or "Extraction failed")
        finally:
            extraction_duration_seconds.observe(time.perf_counter() - start)

        ai_scans_total.labels(status="success").inc()
        return ScanResult(
            document_id=target.document_id,
            success=True,
            document_type=extracted.document_type,
            extracted_data=dict(extracted.fields),
        )
