"""
Extraction provider port (Hexagonal Architecture).

The DriverDocs backend never runs OCR or inference itself. An external
vision model reads the document image and returns the document type plus
field values; adapters in infrastructure/ai implement this port.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class DocumentTypeHint:
    """A company document type offered to the model for classification.

    Attributes:
        name: DocumentType name the model must answer with
        fields: Field names the model should extract for this type
        classification_only: True if only the type should be detected
    """
    name: str
    fields: list[dict] = field(default_factory=list)
    classification_only: bool = False


@dataclass
class ExtractionRequest:
    """Everything the provider needs for one document.

    Attributes:
        document_id: Document being scanned (for logging)
        image_url: Presigned download URL of the stored image
        filename: Original filename
        content_type: MIME type of the image
        document_types: Company document types to classify against
    """
    document_id: str
    image_url: str
    filename: str
    content_type: Optional[str]
    document_types: list[DocumentTypeHint] = field(default_factory=list)


@dataclass
class ExtractedDocument:
    """Model output for one document.

    Attributes:
        document_type: Detected DocumentType name (None if not recognized)
        fields: Extracted field values keyed by field name
        confidence: Model-reported confidence 0.0-1.0, if any
    """
    document_type: Optional[str]
    fields: dict[str, Any] = field(default_factory=dict)
    confidence: Optional[float] = None


class ExtractionProviderPort(ABC):
    """Async interface for document extraction services."""

    @abstractmethod
    async def extract_document(self, request: ExtractionRequest) -> ExtractedDocument:
        """
        Extract the document type and fields from one image.

        Raises:
            ExtractionServiceUnavailable: Service unreachable, timed out,
                rate limited or rejected our credentials
            ExtractionFailed: Service answered but could not read this document
        """
        pass


class ExtractionError(Exception):
    """Base exception for extraction provider errors"""
    pass


class ExtractionServiceUnavailable(ExtractionError):
    """The extraction service could not be reached or refused the call"""
    pass


class ExtractionFailed(ExtractionError):
    """The service responded but produced no usable result for the document"""
    pass
