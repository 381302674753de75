# app/contracts/models.py

"""
SQLAlchemy 2.x models for the e-contract module
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON, DateTime, String, Text, func,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base
from app.contracts.schemas import ContractStatus

UCANSIGN_STATUS_LENGTH = 100


class Contract(Base):
    """
    Model for an employment contract sent out for e-signature through UCanSign.
    Status changes after dispatch are driven by provider webhooks only.
    """
    __tablename__ = "contracts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    company_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True, index=True, comment="Owning company"
    )
    employee_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True, index=True, comment="Employee who signs the contract"
    )

    contract_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="employment"
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)

    # Identifiers issued by UCanSign on dispatch
    ucansign_document_id: Mapped[Optional[str]] = mapped_column(
        String(200), unique=True, nullable=True, index=True,
        comment="UCanSign document ID"
    )
    ucansign_request_id: Mapped[Optional[str]] = mapped_column(
        String(200), unique=True, nullable=True, index=True,
        comment="UCanSign signing request ID"
    )
    ucansign_status: Mapped[Optional[str]] = mapped_column(
        String(UCANSIGN_STATUS_LENGTH), nullable=True,
        comment="Last raw status reported by UCanSign, diagnostic only"
    )

    signer_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    signer_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    signer_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    status: Mapped[ContractStatus] = mapped_column(
        SQLEnum(
            ContractStatus, native_enum=False, length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False, default=ContractStatus.DRAFT, index=True,
    )

    signed_pdf_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    audit_trail_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    contract_data: Mapped[Optional[dict]] = mapped_column(
        JSON, nullable=True, default=dict,
        comment="Open audit facts (signers, cancellation)"
    )

    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    viewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Contract(id={self.id}, status={self.status}, document_id={self.ucansign_document_id})>"
