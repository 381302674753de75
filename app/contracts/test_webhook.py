from datetime import datetime

from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.contracts.models import Contract
from app.contracts.repository import ContractRepository
from app.contracts.schemas import ContractStatus
from app.contracts.services import NO_MATCH_MESSAGE
from app.testing_dependencies import artifact_fetcher, client, db_session, make_contract

WEBHOOK_URL = "/contracts/webhook"


def reload(db_session, contract_id) -> Contract:
    db_session.expire_all()
    return db_session.get(Contract, contract_id)


def test_completion_fetches_artifacts_and_keeps_signed_at(client, db_session, artifact_fetcher):
    signed_at = datetime(2026, 1, 5, 10, 0)
    contract = make_contract(
        db_session, status=ContractStatus.SIGNED, ucansign_document_id="D1", signed_at=signed_at
    )

    response = client.post(WEBHOOK_URL, json={"event": "signing_completed_all", "documentId": "D1"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["newStatus"] == "completed"
    assert body["contractId"] == contract.id

    stored = reload(db_session, contract.id)
    assert stored.status == ContractStatus.COMPLETED
    assert stored.completed_at is not None
    assert stored.signed_at == signed_at
    assert stored.ucansign_status == "signing_completed_all"
    assert stored.signed_pdf_url == "https://files.ucansign.test/D1/signed.pdf"
    assert stored.audit_trail_url == "https://files.ucansign.test/D1/audit.pdf"
    assert artifact_fetcher.calls == ["D1"]


def test_duplicate_completion_is_a_no_op(client, db_session, artifact_fetcher):
    contract = make_contract(db_session, status=ContractStatus.SIGNED, ucansign_document_id="D1")
    payload = {"event": "signing_completed_all", "documentId": "D1"}

    client.post(WEBHOOK_URL, json=payload)
    first = reload(db_session, contract.id)
    completed_at, signed_pdf_url = first.completed_at, first.signed_pdf_url

    response = client.post(WEBHOOK_URL, json=payload)

    assert response.json()["newStatus"] == "completed"
    stored = reload(db_session, contract.id)
    assert stored.completed_at == completed_at
    assert stored.signed_pdf_url == signed_pdf_url
    assert artifact_fetcher.calls == ["D1"]


def test_stale_signer_event_after_completion(client, db_session):
    contract = make_contract(db_session, status=ContractStatus.SIGNED, ucansign_document_id="D1")
    client.post(WEBHOOK_URL, json={"event": "signing_completed_all", "documentId": "D1"})
    before = reload(db_session, contract.id)
    snapshot = (before.completed_at, before.signed_pdf_url, before.audit_trail_url)

    response = client.post(WEBHOOK_URL, json={"event": "signing_completed", "documentId": "D1"})

    assert response.json()["newStatus"] == "completed"
    stored = reload(db_session, contract.id)
    assert stored.status == ContractStatus.COMPLETED
    assert (stored.completed_at, stored.signed_pdf_url, stored.audit_trail_url) == snapshot
    assert stored.ucansign_status == "signing_completed"


def test_partial_artifact_failure_still_completes(client, db_session, artifact_fetcher):
    artifact_fetcher.audit_trail_url = None
    contract = make_contract(db_session, status=ContractStatus.VIEWED, ucansign_document_id="D1")

    response = client.post(WEBHOOK_URL, json={"event": "completed", "documentId": "D1"})

    assert response.json()["success"] is True
    stored = reload(db_session, contract.id)
    assert stored.status == ContractStatus.COMPLETED
    assert stored.signed_pdf_url is not None
    assert stored.audit_trail_url is None


def test_cancel_status_records_reason(client, db_session):
    contract = make_contract(
        db_session, status=ContractStatus.SENT, ucansign_document_id="D2",
        contract_data={"template_id": "T-7"},
    )

    response = client.post(
        WEBHOOK_URL, json={"status": "canceled", "documentId": "D2", "reason": "user request"}
    )

    assert response.json()["newStatus"] == "rejected"
    stored = reload(db_session, contract.id)
    assert stored.status == ContractStatus.REJECTED
    assert stored.contract_data["cancel_reason"] == "user request"
    assert stored.contract_data["template_id"] == "T-7"
    assert "cancelled_at" in stored.contract_data
    assert stored.ucansign_status == "canceled"


def test_unmatched_contract_is_acknowledged_and_ignored(client, db_session):
    contract = make_contract(db_session, status=ContractStatus.SENT, ucansign_document_id="D1")

    response = client.post(WEBHOOK_URL, json={"event": "signing_completed_all", "documentId": "NOPE"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": NO_MATCH_MESSAGE}
    stored = reload(db_session, contract.id)
    assert stored.status == ContractStatus.SENT
    assert stored.ucansign_status is None


def test_unknown_event_only_updates_mirror(client, db_session):
    contract = make_contract(db_session, status=ContractStatus.VIEWED, ucansign_document_id="D3")

    response = client.post(WEBHOOK_URL, json={"event": "foo_bar", "documentId": "D3"})

    assert response.json()["success"] is True
    assert response.json()["newStatus"] == "viewed"
    stored = reload(db_session, contract.id)
    assert stored.status == ContractStatus.VIEWED
    assert stored.ucansign_status == "foo_bar"


def test_request_id_lookup_from_nested_result(client, db_session):
    contract = make_contract(db_session, status=ContractStatus.DRAFT, ucansign_request_id="R1")

    response = client.post(WEBHOOK_URL, json={"type": "sign_creating", "result": {"requestId": "R1"}})

    assert response.json()["newStatus"] == "sent"
    stored = reload(db_session, contract.id)
    assert stored.status == ContractStatus.SENT
    assert stored.sent_at is not None


def test_invalid_json_is_acknowledged_with_error(client):
    response = client.post(
        WEBHOOK_URL, content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert "Invalid webhook payload" in body["error"]


def test_persistence_failure_is_acknowledged_with_error(client, db_session, monkeypatch):
    contract = make_contract(db_session, status=ContractStatus.SENT, ucansign_document_id="D1")

    def failing_update(self, contract_id, values):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(ContractRepository, "update_fields", failing_update)

    response = client.post(WEBHOOK_URL, json={"event": "opened", "documentId": "D1"})

    assert response.status_code == 200
    assert response.json() == {"success": False, "error": "database unavailable"}
    assert reload(db_session, contract.id).status == ContractStatus.SENT


def test_wrong_method_is_client_error(client):
    response = client.get(WEBHOOK_URL)

    assert response.status_code == 405
    assert response.json()["success"] is False


def test_preflight(client):
    response = client.options(WEBHOOK_URL)

    assert response.status_code == 204
    assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"


def test_browser_preflight_reaches_the_webhook(client):
    response = client.options(
        WEBHOOK_URL,
        headers={"Origin": "https://app.ucansign.com", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == settings.webhook_allowed_origin
    assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"


def test_contract_status_endpoint(client, db_session):
    contract = make_contract(db_session, status=ContractStatus.SIGNED, ucansign_document_id="D1")

    response = client.get(f"/contracts/{contract.id}/status")

    assert response.status_code == 200
    assert response.json()["status"] == "signed"
    assert response.json()["ucansign_document_id"] == "D1"


def test_contract_status_endpoint_not_found(client):
    response = client.get("/contracts/does-not-exist/status")

    assert response.status_code == 404


def test_rollback_failure_still_acknowledges(client, db_session, monkeypatch):
    make_contract(db_session, status=ContractStatus.SENT, ucansign_document_id="D1")

    def failing_update(self, contract_id, values):
        raise RuntimeError("database unavailable")

    def failing_rollback():
        raise OperationalError("ROLLBACK", {}, Exception("connection lost"))

    monkeypatch.setattr(ContractRepository, "update_fields", failing_update)
    monkeypatch.setattr(db_session, "rollback", failing_rollback)

    response = client.post(WEBHOOK_URL, json={"event": "opened", "documentId": "D1"})

    assert response.status_code == 200
    assert response.json() == {"success": False, "error": "database unavailable"}


def test_file_endpoint_recovers_missing_artifacts(client, db_session, artifact_fetcher):
    contract = make_contract(
        db_session, status=ContractStatus.COMPLETED, ucansign_document_id="D1",
        signed_pdf_url=None, audit_trail_url=None,
    )

    response = client.get(f"/contracts/{contract.id}/file", params={"type": "all"})

    assert response.status_code == 200
    assert response.json() == {
        "contract_id": contract.id,
        "title": "Employment contract",
        "signed_pdf_url": "https://files.ucansign.test/D1/signed.pdf",
        "audit_trail_url": "https://files.ucansign.test/D1/audit.pdf",
    }
    stored = reload(db_session, contract.id)
    assert stored.signed_pdf_url == "https://files.ucansign.test/D1/signed.pdf"
    assert stored.audit_trail_url == "https://files.ucansign.test/D1/audit.pdf"
    assert stored.status == ContractStatus.COMPLETED
    assert artifact_fetcher.requested == [(True, True)]


def test_file_endpoint_defaults_to_signed_pdf(client, db_session, artifact_fetcher):
    contract = make_contract(db_session, status=ContractStatus.COMPLETED, ucansign_document_id="D1")

    response = client.get(f"/contracts/{contract.id}/file")

    assert response.status_code == 200
    assert response.json()["audit_trail_url"] is None
    assert artifact_fetcher.requested == [(True, False)]
    assert reload(db_session, contract.id).audit_trail_url is None


def test_file_endpoint_audit_only_keeps_cached_pdf(client, db_session, artifact_fetcher):
    contract = make_contract(
        db_session, status=ContractStatus.COMPLETED, ucansign_document_id="D1",
        signed_pdf_url="https://files.ucansign.test/D1/cached.pdf",
    )

    response = client.get(f"/contracts/{contract.id}/file", params={"type": "audit"})

    assert response.status_code == 200
    stored = reload(db_session, contract.id)
    assert stored.signed_pdf_url == "https://files.ucansign.test/D1/cached.pdf"
    assert stored.audit_trail_url == "https://files.ucansign.test/D1/audit.pdf"


def test_file_endpoint_not_found_when_provider_has_nothing(client, db_session, artifact_fetcher):
    artifact_fetcher.signed_pdf_url = None
    artifact_fetcher.audit_trail_url = None
    contract = make_contract(db_session, status=ContractStatus.SIGNED, ucansign_document_id="D1")

    response = client.get(f"/contracts/{contract.id}/file", params={"type": "all"})

    assert response.status_code == 404
    assert reload(db_session, contract.id).signed_pdf_url is None


def test_file_endpoint_requires_document_id(client, db_session, artifact_fetcher):
    contract = make_contract(db_session, status=ContractStatus.DRAFT)

    response = client.get(f"/contracts/{contract.id}/file")

    assert response.status_code == 400
    assert artifact_fetcher.calls == []


def test_file_endpoint_unknown_contract(client):
    assert client.get("/contracts/does-not-exist/file").status_code == 404


def test_file_endpoint_rejects_unknown_type(client, db_session):
    contract = make_contract(db_session, status=ContractStatus.COMPLETED, ucansign_document_id="D1")

    assert client.get(f"/contracts/{contract.id}/file", params={"type": "zip"}).status_code == 422
