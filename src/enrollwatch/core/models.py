import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

PayloadValue = str | int | float | bool | None


class EventSeverity(str, Enum):
    """Severity levels reported by the device agent."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class EnrollmentPhase(str, Enum):
    """Named stages of the enrollment process."""

    START = "start"
    DEVICE_PREPARATION = "device_preparation"
    DEVICE_SETUP = "device_setup"
    APPS_DEVICE = "apps_device"
    ACCOUNT_SETUP = "account_setup"
    APPS_USER = "apps_user"
    COMPLETE = "complete"
    FAILED = "failed"
    UNKNOWN = "unknown"


def _compact(value: str) -> str:
    """Reduce a label to lowercase alphanumerics ("Apps (Device)" -> "appsdevice")."""
    return "".join(ch for ch in value.lower() if ch.isalnum())


_PHASE_LOOKUP = {_compact(phase.value): phase for phase in EnrollmentPhase}
_SEVERITY_LOOKUP = {severity.value: severity for severity in EventSeverity}


def normalize_payload(data: dict[str, Any] | None) -> dict[str, Any]:
    """
    Normalize a raw telemetry payload to the closed scalar value set.

    Nested mappings are kept (so dot-path lookups work); any other
    non-scalar value is reduced to its string form.
    """
    if not data:
        return {}

    normalized: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            normalized[str(key)] = normalize_payload(value)
        elif value is None or isinstance(value, str | int | float | bool):
            normalized[str(key)] = value
        else:
            normalized[str(key)] = str(value)
    return normalized


def stringify_value(value: Any) -> str | None:
    """Render a payload value the way rule operators compare it."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _lookup_key(mapping: dict[str, Any], key: str) -> tuple[bool, Any]:
    if key in mapping:
        return True, mapping[key]
    lowered = key.lower()
    for candidate, value in mapping.items():
        if candidate.lower() == lowered:
            return True, value
    return False, None


class Event(BaseModel):
    """
    One telemetry record emitted by a device during an enrollment session.

    Events are immutable once stored. Canonical order within a session is
    (timestamp, sequence) ascending.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str = ""
    tenant_id: str = ""
    event_type: str
    timestamp: datetime
    sequence: int = 0
    phase: EnrollmentPhase = EnrollmentPhase.UNKNOWN
    severity: EventSeverity = EventSeverity.INFO
    source: str = ""
    message: str = ""
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @field_validator("phase", mode="before")
    @classmethod
    def _parse_phase(cls, value: Any) -> EnrollmentPhase:
        if isinstance(value, EnrollmentPhase):
            return value
        if value is None:
            return EnrollmentPhase.UNKNOWN
        return _PHASE_LOOKUP.get(_compact(str(value)), EnrollmentPhase.UNKNOWN)

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, value: Any) -> EventSeverity:
        if isinstance(value, EventSeverity):
            return value
        if value is None:
            return EventSeverity.INFO
        return _SEVERITY_LOOKUP.get(str(value).strip().lower(), EventSeverity.INFO)

    @field_validator("data", mode="before")
    @classmethod
    def _normalize_data(cls, value: Any) -> dict[str, Any]:
        return normalize_payload(value)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Event":
        """Build an event from a telemetry record in either camelCase or snake_case."""
        return cls.model_validate(payload)

    def get_field(self, field: str | None) -> str | None:
        """
        Look up a payload field as a string.

        Supports the "message" pseudo-field, case-insensitive keys and
        dot-separated paths into nested payload mappings. Returns None when
        the field is absent.
        """
        if not field:
            return None

        if field.lower() == "message":
            return self.message

        found, value = _lookup_key(self.data, field)
        if found:
            return stringify_value(value)

        if "." not in field:
            return None

        current: Any = self.data
        for segment in field.split("."):
            if not isinstance(current, dict):
                return None
            found, current = _lookup_key(current, segment)
            if not found:
                return None
        return stringify_value(current)

    def reference(self) -> dict[str, Any]:
        """Compact evidence reference to this event."""
        return {
            "eventId": self.event_id,
            "sequence": self.sequence,
            "timestamp": self.timestamp,
            "eventType": self.event_type,
        }


def sort_events(events: list[Event]) -> list[Event]:
    """Return a new list of events in canonical (timestamp, sequence) order."""
    return sorted(events, key=lambda e: (e.timestamp, e.sequence))
