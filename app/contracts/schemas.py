# app/contracts/schemas.py

"""
Pydantic schemas and enums for the e-contract module
"""

from datetime import datetime
from typing import Optional
from enum import Enum as PyEnum

from pydantic import BaseModel, ConfigDict, Field


# === Enums ===

class ContractStatus(str, PyEnum):
    """Local contract lifecycle status."""
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    SIGNED = "signed"
    COMPLETED = "completed"
    REJECTED = "rejected"
    EXPIRED = "expired"


class EventType(str, PyEnum):
    """Canonical webhook event types produced by the classifier."""
    SIGNING_COMPLETED_ALL = "signing_completed_all"
    SIGNING_COMPLETED = "signing_completed"
    SIGNING_CANCELED = "signing_canceled"
    SIGN_CREATING = "sign_creating"
    EXPIRED = "expired"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


class ArtifactType(str, PyEnum):
    """Which provider artifacts to refresh on demand."""
    PDF = "pdf"
    AUDIT = "audit"
    ALL = "all"

    @property
    def includes_signed_pdf(self) -> bool:
        return self in (ArtifactType.PDF, ArtifactType.ALL)

    @property
    def includes_audit_trail(self) -> bool:
        return self in (ArtifactType.AUDIT, ArtifactType.ALL)


# === Webhook Schemas ===

class WebhookAck(BaseModel):
    """Body returned to the provider for every webhook delivery."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: Optional[str] = None
    contract_id: Optional[str] = Field(None, alias="contractId")
    new_status: Optional[str] = Field(None, alias="newStatus")
    error: Optional[str] = None


# === Contract Schemas ===

class ContractStatusResponse(BaseModel):
    """Diagnostic view of a contract's signing state."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: Optional[str] = None
    status: ContractStatus
    ucansign_status: Optional[str] = None
    ucansign_document_id: Optional[str] = None
    ucansign_request_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    signed_pdf_url: Optional[str] = None
    audit_trail_url: Optional[str] = None
    updated_at: Optional[datetime] = None


class ContractFileResponse(BaseModel):
    """Freshly retrieved artifact links; provider URLs expire after a few minutes."""
    contract_id: str
    title: Optional[str] = None
    signed_pdf_url: Optional[str] = None
    audit_trail_url: Optional[str] = None
