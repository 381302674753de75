"""Create contracts table

Revision ID: 7f3c2a9d1b4e
Revises:
Create Date: 2026-02-16 11:04:12.381920

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7f3c2a9d1b4e"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "contracts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=36), nullable=True, comment="Owning company"),
        sa.Column("employee_id", sa.String(length=36), nullable=True, comment="Employee who signs the contract"),
        sa.Column("contract_type", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("ucansign_document_id", sa.String(length=200), nullable=True, comment="UCanSign document ID"),
        sa.Column("ucansign_request_id", sa.String(length=200), nullable=True, comment="UCanSign signing request ID"),
        sa.Column(
            "ucansign_status", sa.String(length=100), nullable=True,
            comment="Last raw status reported by UCanSign, diagnostic only",
        ),
        sa.Column("signer_name", sa.String(length=100), nullable=True),
        sa.Column("signer_email", sa.String(length=200), nullable=True),
        sa.Column("signer_phone", sa.String(length=20), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "draft", "sent", "viewed", "signed", "completed", "rejected", "expired",
                name="contractstatus", native_enum=False, length=20,
            ),
            nullable=False,
        ),
        sa.Column("signed_pdf_url", sa.Text(), nullable=True),
        sa.Column("audit_trail_url", sa.Text(), nullable=True),
        sa.Column("contract_data", sa.JSON(), nullable=True, comment="Open audit facts (signers, cancellation)"),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contracts_company_id", "contracts", ["company_id"])
    op.create_index("ix_contracts_employee_id", "contracts", ["employee_id"])
    op.create_index("ix_contracts_status", "contracts", ["status"])
    op.create_index("ix_contracts_ucansign_document_id", "contracts", ["ucansign_document_id"], unique=True)
    op.create_index("ix_contracts_ucansign_request_id", "contracts", ["ucansign_request_id"], unique=True)


def downgrade():
    op.drop_index("ix_contracts_ucansign_request_id", table_name="contracts")
    op.drop_index("ix_contracts_ucansign_document_id", table_name="contracts")
    op.drop_index("ix_contracts_status", table_name="contracts")
    op.drop_index("ix_contracts_employee_id", table_name="contracts")
    op.drop_index("ix_contracts_company_id", table_name="contracts")
    op.drop_table("contracts")
