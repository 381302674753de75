# app/contracts/services.py

"""
Business Logic Layer for the Contracts module.
"""

import json
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings, settings
from app.contracts.artifacts import ArtifactFetcher
from app.contracts.classifier import classify_event
from app.contracts.exceptions import (
    ContractArtifactsUnavailableException,
    ContractNotDispatchedException,
    ContractNotFoundException,
    InvalidWebhookPayloadException,
)
from app.contracts.locator import ContractLocator
from app.contracts.models import Contract
from app.contracts.repository import ContractRepository
from app.contracts.schemas import ArtifactType, ContractFileResponse, WebhookAck
from app.contracts.transitions import decide_transition
from app.utils.logger import get_logger

logger = get_logger(__name__)

NO_MATCH_MESSAGE = "No matching contract, ignored"


@dataclass(frozen=True)
class WebhookConfig:
    """Response headers for the webhook route, passed in at construction."""
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "WebhookConfig":
        return cls(headers={
            "Access-Control-Allow-Origin": config.webhook_allowed_origin,
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Allow-Methods": "POST, OPTIONS",
        })


@dataclass
class WebhookOutcome:
    """Result of one webhook delivery, turned into an HTTP response in one place."""
    success: bool
    message: Optional[str] = None
    contract_id: Optional[str] = None
    new_status: Optional[str] = None
    error: Optional[str] = None
    status_code: int = 200

    def to_body(self) -> Dict[str, Any]:
        ack = WebhookAck(
            success=self.success, message=self.message, contract_id=self.contract_id,
            new_status=self.new_status, error=self.error,
        )
        return ack.model_dump(by_alias=True, exclude_none=True)


def decode_payload(raw: bytes) -> Dict[str, Any]:
    """Decode a webhook body; an empty body is an empty payload."""
    if not raw or not raw.strip():
        return {}
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise InvalidWebhookPayloadException(str(e)) from e
    if not isinstance(payload, dict):
        raise InvalidWebhookPayloadException("expected a JSON object")
    return payload


class WebhookProcessor:
    """
    Applies UCanSign webhook events to local contracts.

    Every POST is acknowledged with 200, including internal failures, so the
    provider's retry policy does not loop on errors a redelivery cannot fix.
    """

    def __init__(self, db: Session, fetcher: ArtifactFetcher, config: WebhookConfig):
        self.db = db
        self.repo = ContractRepository(db)
        self.locator = ContractLocator(self.repo)
        self.fetcher = fetcher
        self.config = config

    async def handle(self, method: str, raw: bytes) -> Response:
        if method == "OPTIONS":
            return Response(status_code=204, headers=self.config.headers)
        if method != "POST":
            outcome = WebhookOutcome(success=False, error="Only POST is allowed", status_code=405)
        else:
            outcome = await self.process(raw)
        return JSONResponse(
            content=outcome.to_body(),
            status_code=outcome.status_code,
            headers=self.config.headers,
        )

    async def process(self, raw: bytes) -> WebhookOutcome:
        try:
            return await self._run_pipeline(raw)
        except Exception as e:
            logger.error("Webhook processing failed", error=str(e), exc_info=True)
            try:
                self.db.rollback()
            except SQLAlchemyError as rollback_error:
                logger.error("Rollback after webhook failure failed", error=str(rollback_error))
            return WebhookOutcome(success=False, error=str(e))

    async def _run_pipeline(self, raw: bytes) -> WebhookOutcome:
        payload = decode_payload(raw)
        logger.info("Webhook received", payload=payload)

        classification = classify_event(payload)
        contract = self.locator.locate(payload)
        if contract is None:
            return WebhookOutcome(success=True, message=NO_MATCH_MESSAGE)

        contract_id = contract.id
        previous_status = contract.status
        decision = decide_transition(
            contract,
            classification.event_type,
            payload,
            raw_status=classification.mirror_status,
        )

        updates = dict(decision.updates)
        if decision.fetch_artifacts:
            artifacts = await self.fetcher.fetch(contract.ucansign_document_id)
            updates.update(artifacts.as_updates())

        self.repo.update_fields(contract_id, updates)
        self.db.commit()

        logger.info(
            "Contract status updated",
            contract_id=contract_id,
            event_type=classification.event_type,
            previous_status=getattr(previous_status, "value", previous_status),
            new_status=decision.new_status.value,
        )
        return WebhookOutcome(
            success=True,
            message=decision.summary,
            contract_id=contract_id,
            new_status=decision.new_status.value,
        )


class ContractService:
    """Read access and on-demand artifact refresh for the contract routes."""

    def __init__(self, db: Session, fetcher: Optional[ArtifactFetcher] = None):
        self.db = db
        self.repo = ContractRepository(db)
        self.fetcher = fetcher

    def get_contract(self, contract_id: str) -> Contract:
        contract = self.repo.get_by_id(contract_id)
        if contract is None:
            raise ContractNotFoundException(contract_id)
        return contract

    async def refresh_artifacts(
        self, contract_id: str, artifact_type: ArtifactType = ArtifactType.PDF
    ) -> ContractFileResponse:
        """
        Retrieve fresh artifact links from UCanSign and cache them on the contract.

        Recovers references a failed fetch at completion left unset. The provider
        links expire quickly, so every call goes back to UCanSign.
        """
        contract = self.get_contract(contract_id)
        if not contract.ucansign_document_id:
            raise ContractNotDispatchedException(contract_id)

        artifacts = await self.fetcher.fetch(
            contract.ucansign_document_id,
            signed_pdf=artifact_type.includes_signed_pdf,
            audit_trail=artifact_type.includes_audit_trail,
        )
        updates = artifacts.as_updates()
        if not updates:
            raise ContractArtifactsUnavailableException(contract_id, artifact_type.value)

        updates["updated_at"] = datetime.now(timezone.utc)
        self.repo.update_fields(contract_id, updates)
        self.db.commit()
        logger.info(
            "Contract artifacts refreshed",
            contract_id=contract_id, artifact_type=artifact_type.value, fields=sorted(updates),
        )

        return ContractFileResponse(
            contract_id=contract_id,
            title=contract.title,
            signed_pdf_url=artifacts.signed_pdf_url,
            audit_trail_url=artifacts.audit_trail_url,
        )
