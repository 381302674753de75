# app/contracts/exceptions.py

"""
Custom exceptions for the Contracts module.
"""

from typing import Optional
from fastapi import HTTPException, status


class ContractBaseException(Exception):
    """Base exception for all Contract-related errors."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ContractNotFoundException(ContractBaseException):
    """Raised when a contract is not found by its primary id."""
    def __init__(self, contract_id: str):
        super().__init__(f"Contract with ID {contract_id} not found", {"contract_id": contract_id})


class InvalidWebhookPayloadException(ContractBaseException):
    """Raised when a webhook body cannot be decoded into a JSON object."""
    def __init__(self, reason: str):
        super().__init__(f"Invalid webhook payload: {reason}", {"reason": reason})


class ContractPersistenceException(ContractBaseException):
    """Raised when a contract update cannot be written."""
    def __init__(self, contract_id: str, reason: str):
        super().__init__(
            f"Failed to update contract {contract_id}: {reason}",
            {"contract_id": contract_id, "reason": reason}
        )


class ContractNotDispatchedException(ContractBaseException):
    """Raised when a contract has no UCanSign document yet."""
    def __init__(self, contract_id: str):
        super().__init__(
            f"Contract {contract_id} has no UCanSign document id; send it for signing first",
            {"contract_id": contract_id}
        )


class ContractArtifactsUnavailableException(ContractBaseException):
    """Raised when UCanSign returned none of the requested artifacts."""
    def __init__(self, contract_id: str, artifact_type: str):
        super().__init__(
            f"No {artifact_type} file available for contract {contract_id}; check the signing progress",
            {"contract_id": contract_id, "type": artifact_type}
        )


def convert_to_http_exception(exc: ContractBaseException) -> HTTPException:
    """
    Convert a ContractBaseException to an HTTPException with appropriate status code.
    """
    if isinstance(exc, (ContractNotFoundException, ContractArtifactsUnavailableException)):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": exc.message, "details": exc.details}
        )
    if isinstance(exc, ContractNotDispatchedException):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": exc.message, "details": exc.details}
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"message": exc.message, "details": exc.details}
    )
