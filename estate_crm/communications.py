"""Log of emails, calls, messages and meetings with leads and contacts."""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional

from .client import DataService, eq
from .events import EventBus, Topic, publish
from .models import Tables, require_choice
from .session import AuthSession

LOGGER = logging.getLogger(__name__)

COMMUNICATION_TYPES = ("email", "whatsapp", "call", "sms", "meeting")
COMMUNICATION_STATUSES = ("sent", "delivered", "read", "failed")
DIRECTIONS = ("inbound", "outbound")

_FILTER_COLUMNS = {
    "lead_id": "lead_id",
    "contact_id": "contact_id",
    "agent_id": "agent_id",
    "type": "type",
    "status": "status",
}
_COLUMNS = "*, leads(name, email), contacts(full_name, email), profiles:agent_id(name, email)"


class CommunicationsService:
    def __init__(self, service: DataService, session: AuthSession, events: Optional[EventBus] = None) -> None:
        self._service = service
        self._session = session
        self._events = events

    def fetch_communications(self, filters: Optional[Mapping[str, Optional[str]]] = None) -> List[Dict[str, Any]]:
        """Newest first. Empty values and the ``all`` sentinel leave a filter off."""

        applied = []
        for key, value in (filters or {}).items():
            column = _FILTER_COLUMNS.get(key)
            if column is None:
                raise ValueError(f"Unknown communications filter '{key}'")
            if value and value != "all":
                applied.append(eq(column, value))
        return self._service.select(
            Tables.COMMUNICATIONS, columns=_COLUMNS, filters=applied, order="created_at", descending=True
        )

    def create_communication(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        user_id = self._session.require_user()
        kind = require_choice(data.get("type") or "", COMMUNICATION_TYPES, "communication type")
        message = data.get("message") or ""

        row = dict(data)
        row.update(
            agent_id=user_id,
            created_by=user_id,
            status=require_choice(data.get("status") or "sent", COMMUNICATION_STATUSES, "communication status"),
            direction=require_choice(data.get("direction") or "outbound", DIRECTIONS, "direction"),
        )
        created = self._service.insert(Tables.COMMUNICATIONS, row)[0]

        lead_id = data.get("lead_id")
        if lead_id:
            self._service.insert(
                Tables.ACTIVITIES,
                {
                    "type": f"communication_{kind}",
                    "description": f"{kind.upper()}: {data.get('subject') or message[:100]}",
                    "lead_id": lead_id,
                    "created_by": user_id,
                },
            )
            publish(self._events, Topic.ACTIVITIES, "created", lead_id, communication_id=created.get("id"))
        return created

    def update_communication_status(self, communication_id: str, status: str) -> None:
        require_choice(status, COMMUNICATION_STATUSES, "communication status")
        self._service.update(Tables.COMMUNICATIONS, {"status": status}, filters=[eq("id", communication_id)])

    def communication_stats(self) -> Dict[str, int]:
        """Counts of the current agent's communications by type and status."""

        user_id = self._session.require_user()
        rows = self._service.select(Tables.COMMUNICATIONS, columns="type, status", filters=[eq("agent_id", user_id)])
        counts = Counter(row.get("type") for row in rows) + Counter(row.get("status") for row in rows)
        stats = {"total": len(rows)}
        for key in ("email", "whatsapp", "call", "sms", *COMMUNICATION_STATUSES):
            stats[key] = counts.get(key, 0)
        return stats


__all__ = ["COMMUNICATION_STATUSES", "COMMUNICATION_TYPES", "CommunicationsService", "DIRECTIONS"]
