# app/contracts/classifier.py

"""
Normalizes UCanSign webhook payloads into one canonical event type.

The provider has shipped several payload shapes across event versions, so the
event tag is looked up under a list of alternative field names first and, when
none is present, derived from the `status` field.
"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Tuple

from app.contracts.schemas import EventType

EVENT_TAG_FIELDS = ("event", "type", "eventType", "webhookType", "action")


@dataclass(frozen=True)
class EventClassification:
    """Canonical event type plus the raw string it was derived from."""
    event_type: str
    raw_value: Optional[str] = None

    @property
    def mirror_status(self) -> str:
        """Value stored in the provider-mirrored status column."""
        return self.raw_value if self.raw_value else self.event_type


def _exact(*values: str) -> Callable[[str], bool]:
    return lambda status: status in values


def _contains(fragment: str) -> Callable[[str], bool]:
    return lambda status: fragment in status


# Order matters: first matching rule wins
STATUS_RULES: Tuple[Tuple[Callable[[str], bool], EventType], ...] = (
    (_exact("completed", "signing_completed_all"), EventType.SIGNING_COMPLETED_ALL),
    (_exact("signed", "signing_completed"), EventType.SIGNING_COMPLETED),
    (_contains("cancel"), EventType.SIGNING_CANCELED),
    (_exact("created", "sent"), EventType.SIGN_CREATING),
    (_exact("expired"), EventType.EXPIRED),
    (_exact("rejected", "declined"), EventType.REJECTED),
)


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def find_event_tag(payload: Mapping[str, Any]) -> Optional[str]:
    """Return the first non-empty event tag, as received."""
    for field in EVENT_TAG_FIELDS:
        tag = _as_text(payload.get(field))
        if tag:
            return tag
    return None


def classify_status(status: Optional[str]) -> str:
    """Map a raw provider status onto a canonical event type."""
    if not status:
        return EventType.UNKNOWN.value
    normalized = status.lower()
    for matches, event_type in STATUS_RULES:
        if matches(normalized):
            return event_type.value
    return EventType.UNKNOWN.value


def classify_event(payload: Mapping[str, Any]) -> EventClassification:
    """
    Classify a decoded webhook payload.

    A direct event tag always wins over `status` and is returned lower-cased
    as is; it is not checked against the known event types.
    """
    tag = find_event_tag(payload)
    if tag:
        return EventClassification(event_type=tag.lower(), raw_value=tag)

    status = _as_text(payload.get("status"))
    return EventClassification(event_type=classify_status(status), raw_value=status)
