"""Verification workflow for one driver onboarding session.

    CHOOSING_METHOD -> SCANNING -> SCAN_DONE -> VERIFYING -> COMPLETE
                          |  ^
                          v  | retry
                       SCAN_FAILED -> MANUAL_ENTRY -> COMPLETE
    CHOOSING_METHOD -> MANUAL_ENTRY -> COMPLETE

The AI branch needs at least one credit per uploaded document. In VERIFYING
every document must be saved explicitly and COMPLETE is reached only by
calling complete() once all are verified. In MANUAL_ENTRY saving is the
verification and the session completes after the last document is saved.

Session state is held in memory only; reloading starts a new session.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional

from domain.document_types.field_schema import DEFAULT_FIELDS, FieldSpec, empty_form, parse_schema, validate_required_fields
from domain.errors import (
    DocumentValidationError,
    InsufficientCreditsError,
    QuotaError,
    TransportError,
    WorkflowStateError,
)
from domain.extraction.orchestrator import BulkScanResult, ScanResult

logger = logging.getLogger(__name__)

ScanFn = Callable[[list[str]], Awaitable[BulkScanResult]]
UpdateFn = Callable[[str, dict], Awaitable[Any]]


class WorkflowState(str, Enum):
    CHOOSING_METHOD = "CHOOSING_METHOD"
    SCANNING = "SCANNING"
    SCAN_DONE = "SCAN_DONE"
    SCAN_FAILED = "SCAN_FAILED"
    VERIFYING = "VERIFYING"
    MANUAL_ENTRY = "MANUAL_ENTRY"
    COMPLETE = "COMPLETE"


@dataclass
class SessionDocument:
    """An uploaded document taking part in the session"""
    id: str
    filename: str = ""


def _require(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


class VerificationWorkflow:
    """
    State machine for one onboarding session.

    Args:
        documents: Uploaded documents, in display order
        available_credits: Company credit balance when the session started
        scan: Coroutine running a bulk scan for document ids
        update_document: Coroutine persisting reviewed details for one document
        document_types: Company document types ({"name", "fields"} mappings)
            used for required-field checks
    """

    def __init__(
        self,
        documents: list[SessionDocument],
        available_credits: int,
        scan: ScanFn,
        update_document: UpdateFn,
        document_types: Optional[list[Mapping[str, Any]]] = None,
    ):
        self.documents = list(documents)
        self.available_credits = available_credits
        self._scan = scan
        self._update_document = update_document
        self._schemas = {
            t["name"]: parse_schema(t.get("fields"))
            for t in (document_types or [])
        }

        self.state = WorkflowState.CHOOSING_METHOD
        self.current_index = 0
        self.verified_ids: set[str] = set()
        self.scan_results: dict[str, ScanResult] = {}
        self.scan_error: Optional[str] = None
        self.credits_used = 0

    # --- method selection -------------------------------------------------

    @property
    def document_count(self) -> int:
        return len(self.documents)

    @property
    def can_use_ai(self) -> bool:
        return self.document_count > 0 and self.available_credits >= self.document_count

    def choose_ai(self) -> None:
        """Select AI scanning.

        Raises:
            InsufficientCreditsError: Fewer credits than uploaded documents
        """
        self._expect(WorkflowState.CHOOSING_METHOD)
        if not self.can_use_ai:
            raise InsufficientCreditsError(required=self.document_count, available=self.available_credits)
        self.state = WorkflowState.SCANNING

    def choose_manual(self) -> None:
        """Select manual entry (also the fallback after a failed scan)"""
        self._expect(WorkflowState.CHOOSING_METHOD, WorkflowState.SCAN_FAILED)
        self.state = WorkflowState.MANUAL_ENTRY
        self.current_index = 0

    # --- scanning -----------------------------------------------------------

    async def run_scan(self) -> None:
        """Scan every session document once.

        On success the results are attached and the state is SCAN_DONE.
        Transport and quota failures move to SCAN_FAILED with scan_error set.
        """
        self._expect(WorkflowState.SCANNING)
        ids = [doc.id for doc in self.documents]
        try:
            bulk = await self._scan(ids)
        except (TransportError, QuotaError) as e:
            self.scan_error = e.message
            self.state = WorkflowState.SCAN_FAILED
            logger.warning(f"Onboarding scan failed: documents={len(ids)}, error={e.message}")
            return

        self.scan_results = {r.document_id: r for r in bulk.results}
        self.credits_used += bulk.total_credits_used
        self.available_credits = bulk.credits_remaining
        self.scan_error = None
        self.state = WorkflowState.SCAN_DONE

    async def retry_scan(self) -> None:
        self._expect(WorkflowState.SCAN_FAILED)
        self.state = WorkflowState.SCANNING
        await self.run_scan()

    def begin_verification(self) -> None:
        self._expect(WorkflowState.SCAN_DONE)
        self.state = WorkflowState.VERIFYING
        self.current_index = 0

    # --- per-document review ------------------------------------------------

    @property
    def current_document(self) -> Optional[SessionDocument]:
        if 0 <= self.current_index < len(self.documents):
            return self.documents[self.current_index]
        return None

    def go_to(self, index: int) -> None:
        self._expect(WorkflowState.VERIFYING, WorkflowState.MANUAL_ENTRY)
        if not 0 <= index < len(self.documents):
            raise IndexError(f"No document at position {index}")
        self.current_index = index

    def next_document(self) -> None:
        """Navigate forward; never completes the session"""
        if self.current_index < len(self.documents) - 1:
            self.go_to(self.current_index + 1)

    def previous_document(self) -> None:
        if self.current_index > 0:
            self.go_to(self.current_index - 1)

    def schema_for(self, type_name: Optional[str]) -> list[FieldSpec]:
        return self._schemas.get(type_name or "", list(DEFAULT_FIELDS))

    def form_for(self, document_id: str) -> dict[str, Any]:
        """Initial form values for a document.

        In VERIFYING a successful ScanResult pre-fills the detected type and
        every non-empty extracted value. Otherwise the form is blank.
        """
        result = self.scan_results.get(document_id)
        if self.state == WorkflowState.VERIFYING and result is not None and result.success:
            form = empty_form(self.schema_for(result.document_type))
            form["type"] = result.document_type or ""
            for key, value in (result.extracted_data or {}).items():
                if value is not None and value != "":
                    form[key] = value
            return form

        form = empty_form(DEFAULT_FIELDS)
        form["type"] = ""
        return form

    def validate(self, details: Mapping[str, Any]) -> None:
        """Check required fields before anything is sent.

        Raises:
            DocumentValidationError: type, expiryDate or a required schema field is blank
        """
        missing = []
        if not _require(details.get("type")):
            missing.append("Document Type")
        for label in validate_required_fields(details, self.schema_for(details.get("type"))):
            if label not in missing:
                missing.append(label)
        if not _require(details.get("expiryDate")) and "Expiry Date" not in missing:
            missing.append("Expiry Date")
        if missing:
            raise DocumentValidationError(
                f"Please fill in required fields: {', '.join(missing)}",
                missing_fields=missing,
            )

    async def save(self, document_id: str, details: Mapping[str, Any]) -> Any:
        """Validate, persist and mark one document verified.

        Returns:
            Whatever update_document returned (the updated document)

        Raises:
            DocumentValidationError: Required fields missing (nothing sent)
            WorkflowStateError: Not reviewing, or unknown document
        """
        self._expect(WorkflowState.VERIFYING, WorkflowState.MANUAL_ENTRY)
        index = self._index_of(document_id)
        self.validate(details)

        updated = await self._update_document(document_id, dict(details))
        self.verified_ids.add(document_id)
        logger.info(
            f"Onboarding document verified: document_id={document_id}, "
            f"verified={len(self.verified_ids)}/{self.document_count}"
        )

        if self.state == WorkflowState.MANUAL_ENTRY:
            if self.all_verified:
                self.state = WorkflowState.COMPLETE
            elif index < len(self.documents) - 1:
                self.current_index = index + 1
        else:
            pending = self._next_unverified(after=index)
            if pending is not None:
                self.current_index = pending
        return updated

    @property
    def all_verified(self) -> bool:
        return bool(self.documents) and all(doc.id in self.verified_ids for doc in self.documents)

    def complete(self) -> None:
        """Finish a VERIFYING session.

        Raises:
            WorkflowStateError: Some document has not been verified
        """
        self._expect(WorkflowState.VERIFYING)
        if not self.all_verified:
            remaining = self.document_count - len(self.verified_ids)
            raise WorkflowStateError(
                f"{remaining} document(s) still need to be verified",
                details={"unverified": [d.id for d in self.documents if d.id not in self.verified_ids]},
            )
        self.state = WorkflowState.COMPLETE

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "currentIndex": self.current_index,
            "canUseAi": self.can_use_ai,
            "availableCredits": self.available_credits,
            "creditsUsed": self.credits_used,
            "verifiedDocuments": [d.id for d in self.documents if d.id in self.verified_ids],
            "allDocumentsVerified": self.all_verified,
            "scanError": self.scan_error,
        }

    # --- helpers --------------------------------------------------------------

    def _expect(self, *states: WorkflowState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise WorkflowStateError(
                f"Not allowed in state {self.state.value} (expected {allowed})"
            )

    def _index_of(self, document_id: str) -> int:
        for i, doc in enumerate(self.documents):
            if doc.id == document_id:
                return i
        raise WorkflowStateError(f"Document {document_id} is not part of this session")

    def _next_unverified(self, after: int) -> Optional[int]:
        order = list(range(after + 1, len(self.documents))) + list(range(0, after))
        for i in order:
            if self.documents[i].id not in self.verified_ids:
                return i
        return None
