# app/contracts/router.py

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.contracts.artifacts import ArtifactFetcher
from app.contracts.exceptions import ContractBaseException, convert_to_http_exception
from app.contracts.schemas import ArtifactType, ContractFileResponse, ContractStatusResponse
from app.contracts.services import ContractService, WebhookConfig, WebhookProcessor
from app.utils.logger import get_logger
from app.utils.ucansign_utils import UCanSignClient

router = APIRouter(tags=["Contracts"], prefix="/contracts")
logger = get_logger(__name__)


def get_artifact_fetcher() -> ArtifactFetcher:
    return ArtifactFetcher(UCanSignClient.from_settings())


def get_webhook_processor(
    db: Session = Depends(get_db),
    fetcher: ArtifactFetcher = Depends(get_artifact_fetcher),
) -> WebhookProcessor:
    return WebhookProcessor(db=db, fetcher=fetcher, config=WebhookConfig.from_settings())


# Every method is routed here so the processor answers unsupported ones itself
@router.api_route(
    "/webhook",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
async def ucansign_webhook(
    request: Request,
    processor: WebhookProcessor = Depends(get_webhook_processor),
):
    """
    Receives signing status callbacks from UCanSign.
    Configure this URL as the callback in the UCanSign console.
    """
    raw = await request.body()
    return await processor.handle(request.method, raw)


@router.get("/{contract_id}/status", response_model=ContractStatusResponse)
async def get_contract_status(contract_id: str, db: Session = Depends(get_db)):
    """Check the signing state of a contract as last reported by UCanSign."""
    try:
        return ContractService(db).get_contract(contract_id)
    except ContractBaseException as e:
        logger.warning("Contract status lookup failed", contract_id=contract_id, error=e.message)
        raise convert_to_http_exception(e) from e


@router.get("/{contract_id}/file", response_model=ContractFileResponse)
async def get_contract_file(
    contract_id: str,
    artifact_type: ArtifactType = Query(ArtifactType.PDF, alias="type"),
    db: Session = Depends(get_db),
    fetcher: ArtifactFetcher = Depends(get_artifact_fetcher),
):
    """
    Fetch fresh download links for the signed PDF and/or the audit-trail
    certificate and cache them on the contract.
    """
    try:
        return await ContractService(db, fetcher).refresh_artifacts(contract_id, artifact_type)
    except ContractBaseException as e:
        logger.warning(
            "Contract file lookup failed",
            contract_id=contract_id, artifact_type=artifact_type.value, error=e.message,
        )
        raise convert_to_http_exception(e) from e
