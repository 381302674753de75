import asyncio

from app.contracts.artifacts import ArtifactFetcher, ContractArtifacts
from app.utils.ucansign_utils import UCanSignAPIError, UCanSignAuthError


class FakeUCanSignClient:
    def __init__(self, signed=None, audit=None, signed_error=None, audit_error=None):
        self.signed = signed
        self.audit = audit
        self.signed_error = signed_error
        self.audit_error = audit_error
        self.calls = []

    async def get_signed_document_url(self, document_id):
        self.calls.append(("file", document_id))
        if self.signed_error:
            raise self.signed_error
        return self.signed

    async def get_audit_trail_url(self, document_id):
        self.calls.append(("audit-trail", document_id))
        if self.audit_error:
            raise self.audit_error
        return self.audit


def test_fetches_both_artifacts_once():
    client = FakeUCanSignClient(signed="https://files/signed.pdf", audit="https://files/audit.pdf")
    artifacts = asyncio.run(ArtifactFetcher(client).fetch("D1"))

    assert artifacts == ContractArtifacts("https://files/signed.pdf", "https://files/audit.pdf")
    assert sorted(client.calls) == [("audit-trail", "D1"), ("file", "D1")]


def test_one_failure_does_not_block_the_other():
    client = FakeUCanSignClient(
        signed="https://files/signed.pdf",
        audit_error=UCanSignAPIError("audit trail not ready", 404),
    )
    artifacts = asyncio.run(ArtifactFetcher(client).fetch("D1"))

    assert artifacts.signed_pdf_url == "https://files/signed.pdf"
    assert artifacts.audit_trail_url is None
    assert artifacts.as_updates() == {"signed_pdf_url": "https://files/signed.pdf"}
    assert len(client.calls) == 2


def test_token_failure_only_fails_that_retrieval():
    client = FakeUCanSignClient(
        signed_error=UCanSignAuthError("UCANSIGN_API_KEY is not configured"),
        audit="https://files/audit.pdf",
    )
    artifacts = asyncio.run(ArtifactFetcher(client).fetch("D1"))

    assert artifacts.as_updates() == {"audit_trail_url": "https://files/audit.pdf"}


def test_unexpected_errors_are_contained():
    client = FakeUCanSignClient(signed_error=asyncio.TimeoutError(), audit_error=RuntimeError("boom"))
    artifacts = asyncio.run(ArtifactFetcher(client).fetch("D1"))

    assert artifacts.as_updates() == {}


def test_missing_document_id_skips_provider():
    client = FakeUCanSignClient(signed="https://files/signed.pdf")
    artifacts = asyncio.run(ArtifactFetcher(client).fetch(None))

    assert artifacts == ContractArtifacts()
    assert client.calls == []


def test_audit_trail_only():
    client = FakeUCanSignClient(signed="https://files/signed.pdf", audit="https://files/audit.pdf")
    artifacts = asyncio.run(ArtifactFetcher(client).fetch("D1", signed_pdf=False))

    assert artifacts == ContractArtifacts(audit_trail_url="https://files/audit.pdf")
    assert client.calls == [("audit-trail", "D1")]
