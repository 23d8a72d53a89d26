"""Pytest configuration and fixtures."""

import os

# Must be set before the application (and its cached settings) is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = ""
os.environ.pop("IDENTITY_URL", None)

import asyncio
from types import SimpleNamespace
from typing import Any, Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.tms import models_db  # noqa: F401
from app.tms.database import Base, get_db
from app.tms.deps import get_current_user
from app.tms.main import app
from app.tms.models import ContractVersion
from app.tms.services.extraction import RateConfExtractor, get_extractor
from app.tms.services.extraction.documents import DocumentService
from app.tms.services.identity import AuthenticatedUser

SAMPLE_CSV_RESPONSE = (
    "CSV LINE:\n"
    "LD100,2025-11-21,2025-11-24,Acme Brokers,Jane Doe,555-1212,,jane@acme.com,"
    "Johnston SC,Dallas TX,R,800,0,2000,Acme Shipper,Acme Receiver\n"
    "\n"
    "INVOICE EMAIL:\n"
    "billing@acme.com"
)


class FakeCompletions:
    """Stands in for ``client.chat.completions`` of the OpenAI SDK."""

    def __init__(self, content: str | None = "", error: Exception | None = None, delay: float = 0.0):
        self.content = content
        self.error = error
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAIClient:
    """Minimal async OpenAI client double."""

    def __init__(self, **kwargs: Any):
        self.completions = FakeCompletions(**kwargs)
        self.chat = SimpleNamespace(completions=self.completions)


class FixedPageDocumentService(DocumentService):
    """Document service that does not shell out to poppler."""

    def get_page_count(self, pdf_bytes: bytes) -> int | None:
        return 1


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """
    Create a minimal valid PDF for testing.

    This is a minimal PDF structure that should be recognized as a valid PDF.
    """
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>
endobj
trailer
<< /Size 4 /Root 1 0 R >>
%%EOF"""


@pytest.fixture
def sample_csv_response() -> str:
    """A well-formed csv-v2 model response."""
    return SAMPLE_CSV_RESPONSE


@pytest.fixture
def make_extractor() -> Callable[..., RateConfExtractor]:
    """
    Factory for extractors backed by a fake OpenAI client.

    Usage: ``make_extractor(content="...", error=..., delay=..., contract=..., timeout=...)``
    """

    def _make(
        content: str | None = SAMPLE_CSV_RESPONSE,
        error: Exception | None = None,
        delay: float = 0.0,
        contract: ContractVersion = ContractVersion.CSV_V2,
        timeout: float = 5.0,
    ) -> RateConfExtractor:
        return RateConfExtractor(
            api_key="test-key",
            model="gpt-4.1",
            contract_version=contract,
            timeout=timeout,
            client=FakeOpenAIClient(content=content, error=error, delay=delay),
            document_service=FixedPageDocumentService(),
        )

    return _make


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """An isolated in-memory database session."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def test_user() -> AuthenticatedUser:
    return AuthenticatedUser(id="user-1", email="dispatch@example.com")


@pytest.fixture
def extractor(make_extractor: Callable[..., RateConfExtractor]) -> RateConfExtractor:
    """Default extractor returning the sample csv response."""
    return make_extractor()


@pytest.fixture
def client(
    db_session: Session,
    test_user: AuthenticatedUser,
    extractor: RateConfExtractor,
) -> Generator[TestClient, None, None]:
    """Create a test client with database, identity and model dependencies overridden."""
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_current_user] = lambda: test_user
    app.dependency_overrides[get_extractor] = lambda: extractor
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def document_service() -> DocumentService:
    """Document service with a fixed page count."""
    return FixedPageDocumentService()
