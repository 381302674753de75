# app/contracts/artifacts.py

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from app.utils.logger import get_logger
from app.utils.ucansign_utils import UCanSignClient

logger = get_logger(__name__)


@dataclass
class ContractArtifacts:
    signed_pdf_url: Optional[str] = None
    audit_trail_url: Optional[str] = None

    def as_updates(self) -> Dict[str, str]:
        """Only the references that were actually retrieved."""
        updates = {}
        if self.signed_pdf_url:
            updates["signed_pdf_url"] = self.signed_pdf_url
        if self.audit_trail_url:
            updates["audit_trail_url"] = self.audit_trail_url
        return updates


class ArtifactFetcher:
    """
    Retrieves the signed PDF and audit-trail references for a completed contract.
    The two retrievals run concurrently and fail independently.
    """

    def __init__(self, client: UCanSignClient):
        self.client = client

    async def fetch(
        self,
        document_id: Optional[str],
        signed_pdf: bool = True,
        audit_trail: bool = True,
    ) -> ContractArtifacts:
        if not document_id:
            logger.warning("Contract has no UCanSign document id, skipping artifact fetch")
            return ContractArtifacts()

        retrievals = {}
        if signed_pdf:
            retrievals["signed_pdf_url"] = self._retrieve(
                "signed_pdf", self.client.get_signed_document_url, document_id
            )
        if audit_trail:
            retrievals["audit_trail_url"] = self._retrieve(
                "audit_trail", self.client.get_audit_trail_url, document_id
            )
        results = await asyncio.gather(*retrievals.values())
        return ContractArtifacts(**dict(zip(retrievals, results)))

    async def _retrieve(
        self,
        artifact: str,
        retrieve: Callable[[str], Awaitable[Optional[str]]],
        document_id: str,
    ) -> Optional[str]:
        try:
            url = await retrieve(document_id)
        except Exception as e:
            logger.warning(
                "Artifact retrieval failed",
                artifact=artifact, document_id=document_id, error=str(e),
            )
            return None
        if not url:
            logger.warning("Artifact not available", artifact=artifact, document_id=document_id)
        return url
