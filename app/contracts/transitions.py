# app/contracts/transitions.py

"""
Contract lifecycle state machine driven by UCanSign webhook events.

Valid transitions:
- draft → sent (sign_creating / created)
- sent → viewed (opened / viewed)
- draft, sent, viewed → signed (signing_completed / signed)
- draft, sent, viewed, signed → completed (signing_completed_all / completed)
- draft, sent, viewed, signed → rejected (canceled, rejected, declined)
- draft, sent, viewed, signed → expired
- completed, rejected, expired → (no transitions)

Every decision also records the raw provider status and an update timestamp,
including events that do not move the contract.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from app.contracts.models import UCANSIGN_STATUS_LENGTH, Contract
from app.contracts.schemas import ContractStatus

COMPLETED_EVENTS = frozenset({"signing_completed_all", "completed"})
SIGNED_EVENTS = frozenset({"signing_completed", "signed"})
CANCELED_EVENTS = frozenset({"signing_canceled", "cancelled", "canceled"})
CREATED_EVENTS = frozenset({"sign_creating", "created"})
VIEWED_EVENTS = frozenset({"opened", "viewed"})
EXPIRED_EVENTS = frozenset({"expired"})
REJECTED_EVENTS = frozenset({"rejected", "declined"})

TERMINAL_STATUSES = frozenset({
    ContractStatus.COMPLETED, ContractStatus.REJECTED, ContractStatus.EXPIRED,
})


@dataclass
class TransitionDecision:
    """Outcome of applying one event to one contract."""
    new_status: ContractStatus
    summary: str
    updates: Dict[str, Any] = field(default_factory=dict)
    fetch_artifacts: bool = False


def _first_value(payload: Mapping[str, Any], *keys: str) -> Any:
    """Look a key up at the payload root, then under `result` and `data`."""
    for source in (payload, payload.get("result"), payload.get("data")):
        if not isinstance(source, Mapping):
            continue
        for key in keys:
            value = source.get(key)
            if value not in (None, ""):
                return value
    return None


def _existing_contract_data(contract: Contract) -> Dict[str, Any]:
    data = contract.contract_data
    if isinstance(data, str):
        data = json.loads(data) if data.strip() else {}
    return dict(data or {})


def signer_facts(payload: Mapping[str, Any], now: datetime) -> Optional[Dict[str, Any]]:
    """Audit facts about the participant who just signed, if the payload names one."""
    signer = _first_value(payload, "signer", "participant", "signerName", "signerEmail")
    if signer is None:
        return None
    if isinstance(signer, Mapping):
        signer = {
            key: signer[key]
            for key in ("name", "email", "phone", "id")
            if signer.get(key) not in (None, "")
        } or dict(signer)

    facts = {
        "last_signer": signer,
        "last_signed_at": _first_value(payload, "signedAt", "signed_at") or now.isoformat(),
    }
    order = _first_value(payload, "signingOrder", "signing_order", "order")
    if order is not None:
        facts["last_signing_order"] = order
    return facts


def cancellation_facts(payload: Mapping[str, Any], now: datetime) -> Optional[Dict[str, Any]]:
    """Cancellation reason and timestamp, if the payload carries a reason."""
    reason = _first_value(payload, "reason", "cancelReason", "cancel_reason")
    if reason is None:
        return None
    return {"cancel_reason": reason, "cancelled_at": now.isoformat()}


def decide_transition(
    contract: Contract,
    event_type: str,
    payload: Mapping[str, Any],
    raw_status: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TransitionDecision:
    """
    Compute the field updates for one event. Pure: reads the contract, never mutates it.

    Args:
        contract: The located contract in its current state
        event_type: Canonical event type from the classifier
        payload: Decoded webhook payload, used for audit facts
        raw_status: Raw provider event/status string for the mirror column
        now: Timestamp for the transition, defaults to the current UTC time

    Returns:
        TransitionDecision with the updates to persist and whether to fetch artifacts
    """
    now = now or datetime.now(timezone.utc)
    current = ContractStatus(contract.status)
    updates: Dict[str, Any] = {
        "updated_at": now,
        "ucansign_status": (raw_status or event_type)[:UCANSIGN_STATUS_LENGTH],
    }

    def stay(summary: str) -> TransitionDecision:
        return TransitionDecision(new_status=current, summary=summary, updates=updates)

    def move(
        status: ContractStatus,
        summary: str,
        timestamp_field: Optional[str] = None,
        fetch_artifacts: bool = False,
    ) -> TransitionDecision:
        updates["status"] = status
        if timestamp_field and getattr(contract, timestamp_field) is None:
            updates[timestamp_field] = now
        return TransitionDecision(
            new_status=status, summary=summary, updates=updates,
            fetch_artifacts=fetch_artifacts,
        )

    def append_facts(facts: Optional[Dict[str, Any]]) -> None:
        if facts:
            data = _existing_contract_data(contract)
            data.update(facts)
            updates["contract_data"] = data

    if event_type in COMPLETED_EVENTS:
        if current == ContractStatus.COMPLETED:
            return stay("Contract already completed, duplicate completion ignored")
        if current in TERMINAL_STATUSES:
            return stay(f"Contract is {current.value}, completion ignored")
        if contract.signed_at is None:
            updates["signed_at"] = now
        return move(
            ContractStatus.COMPLETED, "All parties signed, contract completed",
            timestamp_field="completed_at", fetch_artifacts=True,
        )

    if event_type in SIGNED_EVENTS:
        if current == ContractStatus.COMPLETED:
            return stay("Contract already completed, stale signer event ignored")
        if current in TERMINAL_STATUSES:
            return stay(f"Contract is {current.value}, signer event ignored")
        append_facts(signer_facts(payload, now))
        return move(ContractStatus.SIGNED, "Signer completed signing", timestamp_field="signed_at")

    if event_type in CANCELED_EVENTS:
        if current in TERMINAL_STATUSES:
            return stay(f"Contract is {current.value}, cancellation ignored")
        append_facts(cancellation_facts(payload, now))
        return move(ContractStatus.REJECTED, "Signing canceled")

    if event_type in CREATED_EVENTS:
        if current != ContractStatus.DRAFT:
            return stay(f"Contract is {current.value}, creation event recorded only")
        return move(ContractStatus.SENT, "Signing request sent", timestamp_field="sent_at")

    if event_type in VIEWED_EVENTS:
        if current != ContractStatus.SENT:
            return stay(f"Contract is {current.value}, view event recorded only")
        return move(ContractStatus.VIEWED, "Signer opened the document", timestamp_field="viewed_at")

    if event_type in EXPIRED_EVENTS:
        if current in TERMINAL_STATUSES:
            return stay(f"Contract is {current.value}, expiry ignored")
        return move(ContractStatus.EXPIRED, "Signing request expired")

    if event_type in REJECTED_EVENTS:
        if current in TERMINAL_STATUSES:
            return stay(f"Contract is {current.value}, rejection ignored")
        return move(ContractStatus.REJECTED, "Signer rejected the contract")

    return stay(f"Unhandled event '{event_type}' recorded")
