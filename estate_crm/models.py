"""Data models shared by the CRM services, importer and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


# --- Remote relation and procedure names ---

class Tables:
    """Names of the remote relations this client reads and writes."""

    LEADS = "leads"
    CONTACTS = "contacts"
    CONTACT_PROPERTIES = "contact_properties"
    CONTACT_STATUS_CHANGES = "contact_status_changes"
    LEAD_STATUS_CHANGES = "lead_status_changes"
    PROPERTY_STATUS_CHANGES = "property_status_changes"
    ACTIVITIES = "activities"
    CONTACT_FILES = "contact_files"
    CALENDAR_EVENTS = "calendar_events"
    NOTIFICATIONS = "notifications"
    COMMUNICATIONS = "communications"
    PROPERTIES = "properties"
    TRANSACTIONS = "transactions"
    USER_ROLES = "user_roles"
    AUTOMATION_WORKFLOWS = "automation_workflows"
    AUTOMATION_EXECUTIONS = "automation_executions"
    SECURITY_AUDIT = "security_audit"


class Procedures:
    """Remote procedure names; their internals live in the backend."""

    RECOMPUTE_CONTACT_STATUS = "recompute_contact_status"
    LOG_CALL_OUTCOME = "log_call_outcome"
    REASSIGN_OVERDUE_LEADS = "reassign_overdue_leads"
    LOG_SECURITY_EVENT = "log_security_event"
    IS_ADMIN = "is_admin"
    CALENDAR_EVENTS_WITH_DETAILS = "get_calendar_events_with_details"


class Functions:
    """Serverless function endpoints."""

    CONTACT_DOCS_SIGNED_URL = "contact-docs-signed-url"
    DOCS_SIGNED_URL = "docs-signed-url"
    SLA_MONITOR = "sla-monitor"
    SEND_LEAD_NOTIFICATION = "send-lead-notification"
    TRIGGER_AUTOMATION = "trigger-automation"
    AI_ASSISTANT = "ai-assistant"


# --- Enumerations ---

STATUS_MODES = ("auto", "manual")
STATUS_VALUES = ("active", "past")
PROPERTY_ROLES = ("owner", "buyer_interest", "tenant", "investor")
FILE_TAGS = ("id", "poa", "listing_agreement", "tenancy", "mou", "other")
EVENT_TYPES = ("property_viewing", "lead_call", "contact_meeting", "follow_up", "general")
EVENT_STATUSES = ("scheduled", "completed", "cancelled", "rescheduled")
TIMELINE_TYPES = ("status_change", "lead_change", "property_change", "activity", "file_upload")


def require_choice(value: str, choices: tuple, label: str) -> str:
    """Return ``value`` if it is one of ``choices``; raise :class:`ValueError` otherwise."""

    if value not in choices:
        raise ValueError(f"Unsupported {label} '{value}'. Expected one of: {', '.join(choices)}")
    return value


# --- Contacts ---

@dataclass(slots=True)
class ContactRecord:
    """A row of the ``leads`` relation viewed as a contact."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status_mode: str = "auto"
    status_manual: Optional[str] = None
    status_effective: Optional[str] = None
    contact_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ContactRecord":
        return cls(
            id=str(row["id"]),
            name=row.get("name") or row.get("full_name"),
            email=row.get("email"),
            phone=row.get("phone"),
            status_mode=row.get("status_mode") or "auto",
            status_manual=row.get("status_manual"),
            status_effective=row.get("status_effective"),
            contact_id=row.get("contact_id"),
            raw=dict(row),
        )

    @property
    def is_manual(self) -> bool:
        return self.status_mode == "manual"

    def display_name(self) -> str:
        return self.name or self.email or self.phone or "(Unnamed Contact)"


@dataclass(slots=True)
class ContactPropertyLink:
    """A (contact, property, role) triple; unique per triple."""

    contact_id: str
    property_id: str
    role: str
    id: Optional[str] = None
    property: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        require_choice(self.role, PROPERTY_ROLES, "property role")

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ContactPropertyLink":
        return cls(
            contact_id=str(row["contact_id"]),
            property_id=str(row["property_id"]),
            role=row["role"],
            id=row.get("id"),
            property=dict(row.get("properties") or {}),
        )

    def as_row(self) -> Dict[str, Any]:
        return {"contact_id": self.contact_id, "property_id": self.property_id, "role": self.role}


@dataclass(slots=True)
class StatusChangeResult:
    """Outcome of a manual status write."""

    contact: ContactRecord
    old_status: Optional[str]
    new_status: str
    audit_recorded: bool


@dataclass(slots=True)
class StatusModeResult:
    """Outcome of a status mode switch; ``recomputed`` is False when the
    follow-up recompute was not run or did not succeed."""

    contact: ContactRecord
    mode: str
    recomputed: bool = False


# --- Timeline ---

@dataclass(slots=True)
class TimelineItem:
    """One display-ready historical event drawn from any timeline source."""

    id: str
    type: str
    timestamp: str
    title: str
    subtitle: str = ""
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.type}:{self.id}"

    def as_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "timestamp": self.timestamp,
            "title": self.title,
            "subtitle": self.subtitle,
        }


# --- Calendar ---

@dataclass
class CalendarEvent:
    """A scheduled viewing, meeting, call or follow-up."""

    id: str
    title: str
    event_type: str
    start_date: str
    status: str = "scheduled"
    end_date: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    lead_id: Optional[str] = None
    property_id: Optional[str] = None
    contact_id: Optional[str] = None
    deal_id: Optional[str] = None
    agent_id: Optional[str] = None
    reminder_minutes: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        "end_date",
        "description",
        "location",
        "notes",
        "lead_id",
        "property_id",
        "contact_id",
        "deal_id",
        "agent_id",
        "reminder_minutes",
    )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CalendarEvent":
        known = {"id", "title", "event_type", "start_date", "status", *cls._FIELDS}
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            event_type=row.get("event_type") or "general",
            start_date=row.get("start_date") or "",
            status=row.get("status") or "scheduled",
            **{name: row.get(name) for name in cls._FIELDS},
            extra={key: value for key, value in row.items() if key not in known},
        )


__all__ = [
    "CalendarEvent",
    "ContactPropertyLink",
    "ContactRecord",
    "EVENT_STATUSES",
    "EVENT_TYPES",
    "FILE_TAGS",
    "Functions",
    "PROPERTY_ROLES",
    "Procedures",
    "STATUS_MODES",
    "STATUS_VALUES",
    "StatusChangeResult",
    "StatusModeResult",
    "TIMELINE_TYPES",
    "Tables",
    "TimelineItem",
    "require_choice",
]
