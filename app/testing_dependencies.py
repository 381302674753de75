import logging
from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .core.db import Base, get_db
from .contracts.artifacts import ContractArtifacts
from .contracts.models import Contract
from .contracts.router import get_artifact_fetcher
from .contracts.schemas import ContractStatus
from .main import contracts_app as fast_api_app

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

# One shared in-memory connection so the TestClient thread sees the same data
DATABASE_URL = "sqlite://"

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestSessionLocal()
    try:
        yield db
        logger.info("Committing Test DB Transaction")
        db.commit()
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


class FakeArtifactFetcher:
    """Stands in for the UCanSign-backed fetcher and records each call."""

    def __init__(self, signed_pdf_url: Optional[str] = None, audit_trail_url: Optional[str] = None):
        self.signed_pdf_url = signed_pdf_url
        self.audit_trail_url = audit_trail_url
        self.calls: List[Optional[str]] = []
        self.requested: List[Tuple[bool, bool]] = []

    async def fetch(
        self, document_id: Optional[str], signed_pdf: bool = True, audit_trail: bool = True
    ) -> ContractArtifacts:
        self.calls.append(document_id)
        self.requested.append((signed_pdf, audit_trail))
        return ContractArtifacts(
            signed_pdf_url=self.signed_pdf_url if signed_pdf else None,
            audit_trail_url=self.audit_trail_url if audit_trail else None,
        )


@pytest.fixture
def artifact_fetcher():
    return FakeArtifactFetcher(
        signed_pdf_url="https://files.ucansign.test/D1/signed.pdf",
        audit_trail_url="https://files.ucansign.test/D1/audit.pdf",
    )


@pytest.fixture
def client(db_session, artifact_fetcher):

    # Override FastAPI's dependencies to use the test database and fake provider
    def override_get_db():
        yield db_session

    fast_api_app.dependency_overrides[get_db] = override_get_db
    fast_api_app.dependency_overrides[get_artifact_fetcher] = lambda: artifact_fetcher
    yield TestClient(fast_api_app)
    fast_api_app.dependency_overrides.clear()


def make_contract(db, **fields) -> Contract:
    """Insert a contract with sensible defaults and return it."""
    values = {
        "title": "Employment contract",
        "status": ContractStatus.SENT,
        "contract_data": {},
    }
    values.update(fields)
    contract = Contract(**values)
    db.add(contract)
    db.commit()
    db.refresh(contract)
    return contract
