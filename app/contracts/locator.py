# app/contracts/locator.py

"""
Resolves a webhook payload to the locally owned contract it refers to.
"""

from typing import Any, Callable, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from app.contracts.models import Contract
from app.contracts.repository import ContractRepository
from app.utils.logger import get_logger

logger = get_logger(__name__)

IdentifierStrategy = Callable[[Mapping[str, Any]], Optional[str]]

DOCUMENT_ID_KEYS = ("documentId", "document_id", "id")
REQUEST_ID_KEYS = ("requestId", "request_id", "signRequestId")


def _pick(source: Any, keys: Sequence[str]) -> Optional[str]:
    if not isinstance(source, Mapping):
        return None
    for key in keys:
        value = source.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def top_level(*keys: str) -> IdentifierStrategy:
    """Strategy reading the identifier from the payload root."""
    return lambda payload: _pick(payload, keys)


def nested(wrapper: str, *keys: str) -> IdentifierStrategy:
    """Strategy reading the identifier from a wrapper object such as `result`."""
    return lambda payload: _pick(payload.get(wrapper), keys)


# Tried in order, first hit wins
DOCUMENT_ID_STRATEGIES: Sequence[IdentifierStrategy] = (
    top_level(*DOCUMENT_ID_KEYS),
    nested("result", *DOCUMENT_ID_KEYS),
    nested("data", *DOCUMENT_ID_KEYS),
)

REQUEST_ID_STRATEGIES: Sequence[IdentifierStrategy] = (
    top_level(*REQUEST_ID_KEYS),
    nested("result", *REQUEST_ID_KEYS),
    nested("data", *REQUEST_ID_KEYS),
)


def extract_identifier(
    payload: Mapping[str, Any], strategies: Sequence[IdentifierStrategy]
) -> Optional[str]:
    for strategy in strategies:
        identifier = strategy(payload)
        if identifier:
            return identifier
    return None


def extract_document_id(payload: Mapping[str, Any]) -> Optional[str]:
    return extract_identifier(payload, DOCUMENT_ID_STRATEGIES)


def extract_request_id(payload: Mapping[str, Any]) -> Optional[str]:
    return extract_identifier(payload, REQUEST_ID_STRATEGIES)


class ContractLocator:
    """
    Looks a contract up by document id first and falls back to the request id.
    A storage error on one lookup counts as no match for that key.
    """

    def __init__(self, repository: ContractRepository):
        self.repository = repository

    def locate(self, payload: Mapping[str, Any]) -> Optional[Contract]:
        document_id = extract_document_id(payload)
        request_id = extract_request_id(payload)

        contract = self._lookup("document_id", self.repository.get_by_document_id, document_id)
        if contract is None:
            contract = self._lookup("request_id", self.repository.get_by_request_id, request_id)

        if contract is None:
            logger.warning(
                "No contract matched webhook payload",
                document_id=document_id,
                request_id=request_id,
            )
        return contract

    def _lookup(
        self,
        key: str,
        lookup: Callable[[str], Optional[Contract]],
        identifier: Optional[str],
    ) -> Optional[Contract]:
        if not identifier:
            return None
        try:
            return lookup(identifier)
        except SQLAlchemyError as e:
            logger.warning(
                "Contract lookup failed, treating as no match",
                key=key, identifier=identifier, error=str(e),
            )
            self.repository.db.rollback()
            return None
