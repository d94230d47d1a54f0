"""Pytest fixtures for DriverDocs tests.

Provides reusable test fixtures for:
- A file-backed SQLite database shared by request sessions and the credit ledger
- A test company with plan limits
- In-memory object storage and extraction provider fakes
- Authenticated test clients for ADMIN, MANAGER and VIEWER roles

Usage:
    def test_list_drivers(manager_client):
        response = manager_client.get("/api/v1/drivers")
        assert response.status_code == 200
"""

import os
import sys
from pathlib import Path

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("DATABASE_URL", "sqlite:///./driverdocs-test.db")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("OPENAI_API_KEY", "")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from datetime import date, timedelta
from typing import Generator, Optional
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

import database
from auth.jwt import create_access_token
from dependencies import get_extraction_provider, get_storage
from domain.credits.ledger import CreditLedger
from domain.documents.ports.object_storage_port import ObjectStoragePort, StoredObject
from domain.extraction.ports import (
    ExtractedDocument,
    ExtractionProviderPort,
    ExtractionRequest,
)
from models import Base, Company, Document, DocumentStatus, DocumentType, Driver


class FakeStorage(ObjectStoragePort):
    """In-memory object storage; URLs point at storage.test"""

    def __init__(self):
        self.objects: dict[str, tuple[bytes, Optional[str]]] = {}
        self.signed_uploads: list[str] = []
        self.deleted: list[str] = []

    def put(self, key: str, content: bytes = b"\xff\xd8\xff", content_type: Optional[str] = "image/jpeg"):
        self.objects[key] = (content, content_type)

    async def generate_presigned_upload_url(self, storage_key, content_type, expires_in_seconds):
        self.signed_uploads.append(storage_key)
        return f"https://storage.test/{storage_key}?X-Amz-Expires={expires_in_seconds}&method=PUT"

    async def generate_presigned_download_url(self, storage_key, expires_in_seconds=3600):
        if storage_key not in self.objects:
            raise FileNotFoundError(f"File not found: {storage_key}")
        return f"https://storage.test/{storage_key}?X-Amz-Expires={expires_in_seconds}"

    async def head_object(self, storage_key):
        if storage_key not in self.objects:
            return None
        content, content_type = self.objects[storage_key]
        return StoredObject(storage_key=storage_key, size_bytes=len(content), content_type=content_type)

    async def delete_file(self, storage_key):
        self.deleted.append(storage_key)
        return self.objects.pop(storage_key, None) is not None

    async def health_check(self):
        return True


class FakeExtractionProvider(ExtractionProviderPort):
    """Returns a configured outcome per document id.

    An outcome is an ExtractedDocument or an exception instance to raise.
    Unconfigured documents come back as an unrecognized type.
    """

    def __init__(self, outcomes: Optional[dict] = None):
        self.outcomes = outcomes or {}
        self.requests: list[ExtractionRequest] = []

    async def extract_document(self, request: ExtractionRequest) -> ExtractedDocument:
        self.requests.append(request)
        outcome = self.outcomes.get(request.document_id, ExtractedDocument(document_type=None))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture(scope="function")
def engine(tmp_path):
    """File-backed SQLite engine, installed as the application engine.

    A file (not :memory:) so that concurrent threads share one database.
    """
    test_engine = database.build_engine(f"sqlite:///{tmp_path / 'driverdocs.db'}")
    Base.metadata.create_all(bind=test_engine)

    database._engine = test_engine
    database._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

    yield test_engine

    database._engine = None
    database._session_factory = None
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return database.get_session_factory()


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def ledger(session_factory) -> CreditLedger:
    return CreditLedger(session_factory)


@pytest.fixture(scope="function")
def company(db_session: Session) -> Company:
    """Company on a plan with 5 drivers and 10 documents per driver"""
    company = Company(
        name="Northwind Haulage",
        settings_json={
            "plan": {"max_drivers": 5, "max_documents_per_driver": 10},
            "reminders": {"days": ["30d", "14d", "7d"]},
        },
    )
    db_session.add(company)
    db_session.commit()
    db_session.refresh(company)
    return company


@pytest.fixture(scope="function")
def document_types(db_session: Session, company: Company) -> list[DocumentType]:
    """Active License and Medical types"""
    types = [
        DocumentType(
            company_id=company.id,
            name="License",
            fields_json=[
                {"name": "licenseClass", "label": "License Class", "type": "select",
                 "options": ["A", "B", "C"], "required": True},
                {"name": "expiryDate", "label": "Expiry Date", "type": "date", "required": True},
            ],
            position=0,
        ),
        DocumentType(company_id=company.id, name="Medical", fields_json=[], position=1),
    ]
    db_session.add_all(types)
    db_session.commit()
    return types


@pytest.fixture(scope="function")
def driver(db_session: Session, company: Company) -> Driver:
    driver = Driver(
        company_id=company.id,
        first_name="Ana",
        last_name="Silva",
        email="ana.silva@example.com",
        phone="+1 555 0101",
        location="Depot North",
        employee_id="EMP-001",
    )
    db_session.add(driver)
    db_session.commit()
    db_session.refresh(driver)
    return driver


@pytest.fixture
def make_document(db_session: Session, company: Company, storage: "FakeStorage"):
    """Create a stored document for a driver (object placed in fake storage)"""

    def _make(
        driver: Driver,
        doc_type: Optional[str] = None,
        status: DocumentStatus = DocumentStatus.PENDING,
        expiry_date: Optional[date] = None,
        stored: bool = True,
    ) -> Document:
        key = f"drivers/{driver.id}/{uuid4().hex}-scan.jpg"
        if stored:
            storage.put(key)
        document = Document(
            driver_id=driver.id,
            company_id=company.id,
            type=doc_type,
            storage_key=key,
            filename="scan.jpg",
            content_type="image/jpeg",
            size_bytes=3,
            status=status,
            expiry_date=expiry_date,
            fields_json={},
        )
        db_session.add(document)
        db_session.commit()
        db_session.refresh(document)
        return document

    return _make


@pytest.fixture
def future_date() -> date:
    return date.today() + timedelta(days=365)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def extraction_provider() -> FakeExtractionProvider:
    return FakeExtractionProvider()


@pytest.fixture(scope="function")
def app(engine, storage, extraction_provider):
    """FastAPI app bound to the test database and fakes"""
    from main import app

    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_extraction_provider] = lambda: extraction_provider
    yield app
    app.dependency_overrides.clear()


def _client_for(app, company: Company, role: str) -> TestClient:
    token = create_access_token(
        user_id=f"user_{role.lower()}",
        company_id=company.id,
        role=role,
        email=f"{role.lower()}@northwind.test",
    )
    client = TestClient(app)
    client.headers.update({"Authorization": f"Bearer {token}"})
    return client


@pytest.fixture(scope="function")
def admin_client(app, company) -> TestClient:
    return _client_for(app, company, "ADMIN")


@pytest.fixture(scope="function")
def manager_client(app, company) -> TestClient:
    return _client_for(app, company, "MANAGER")


@pytest.fixture(scope="function")
def viewer_client(app, company) -> TestClient:
    return _client_for(app, company, "VIEWER")


@pytest.fixture(scope="function")
def client(app) -> TestClient:
    """Unauthenticated test client"""
    return TestClient(app)
