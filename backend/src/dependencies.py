"""Global FastAPI dependencies for shared adapters and services.

Adapters are process-wide singletons built lazily from settings. Tests swap
them with app.dependency_overrides.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status

from config import get_settings
from database import get_session_factory
from domain.credits.ledger import CreditLedger
from domain.documents.ports.object_storage_port import ObjectStoragePort
from domain.extraction.orchestrator import ExtractionOrchestrator
from domain.extraction.ports import ExtractionProviderPort
from infrastructure.ai.openai_provider import OpenAIExtractionProvider
from infrastructure.storage.s3_storage_adapter import S3StorageAdapter
from infrastructure.storage.storage_config import load_storage_config

logger = logging.getLogger(__name__)

_storage_adapter: Optional[ObjectStoragePort] = None
_extraction_provider: Optional[ExtractionProviderPort] = None


def get_storage() -> ObjectStoragePort:
    """Get or create the storage adapter singleton.

    Raises:
        HTTPException: If storage configuration is invalid
    """
    global _storage_adapter

    if _storage_adapter is None:
        try:
            config = load_storage_config(get_settings())
            _storage_adapter = S3StorageAdapter(
                endpoint_url=config.endpoint_url,
                access_key=config.access_key,
                secret_key=config.secret_key,
                bucket_name=config.bucket_name,
                region=config.region,
            )
        except Exception as e:
            logger.error(f"Failed to initialize storage adapter: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Storage configuration error: {str(e)}",
            )

    return _storage_adapter


def get_extraction_provider() -> ExtractionProviderPort:
    """Get or create the extraction provider singleton.

    Raises:
        HTTPException 503: If no OpenAI API key is configured
    """
    global _extraction_provider

    if _extraction_provider is None:
        settings = get_settings()
        if not settings.OPENAI_API_KEY:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="AI extraction is not configured",
            )
        _extraction_provider = OpenAIExtractionProvider(
            api_key=settings.OPENAI_API_KEY,
            model=settings.EXTRACTION_MODEL,
            timeout_seconds=settings.EXTRACTION_TIMEOUT_SECONDS,
        )

    return _extraction_provider


def get_credit_ledger() -> CreditLedger:
    return CreditLedger(get_session_factory())


def get_extraction_orchestrator(
    ledger: CreditLedger = Depends(get_credit_ledger),
    provider: ExtractionProviderPort = Depends(get_extraction_provider),
    storage: ObjectStoragePort = Depends(get_storage),
) -> ExtractionOrchestrator:
    return ExtractionOrchestrator(
        session_factory=get_session_factory(),
        ledger=ledger,
        provider=provider,
        storage=storage,
        image_url_expires_seconds=get_settings().DOWNLOAD_URL_EXPIRE_SECONDS,
    )
