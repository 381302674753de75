# app/contracts/repository.py

"""
Data Access Layer for the Contracts module.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.contracts.exceptions import ContractPersistenceException
from app.contracts.models import Contract
from app.utils.logger import get_logger

logger = get_logger(__name__)


class ContractRepository:
    """
    Repository for Contract data access.
    Lookups return None when no row matches and let storage errors propagate,
    so callers can tell the two apart.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, contract_id: str) -> Optional[Contract]:
        """Get contract by primary id."""
        stmt = select(Contract).where(Contract.id == contract_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_document_id(self, document_id: str) -> Optional[Contract]:
        """Get contract by UCanSign document id."""
        stmt = select(Contract).where(Contract.ucansign_document_id == document_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_request_id(self, request_id: str) -> Optional[Contract]:
        """Get contract by UCanSign signing request id."""
        stmt = select(Contract).where(Contract.ucansign_request_id == request_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def update_fields(self, contract_id: str, values: Dict[str, Any]) -> int:
        """
        Apply a partial update to one contract by primary id.
        Columns not present in `values` are left untouched.
        No commit here; the caller owns the transaction.
        """
        stmt = (
            update(Contract)
            .where(Contract.id == contract_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Contract update failed", contract_id=contract_id, error=str(e))
            raise ContractPersistenceException(contract_id, str(e)) from e

        if result.rowcount == 0:
            raise ContractPersistenceException(contract_id, "no rows updated")
        return result.rowcount
