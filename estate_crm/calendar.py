"""Calendar events and the in-app notifications shown alongside them."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from .client import DataService, eq
from .errors import DataServiceError
from .events import EventBus, Topic, publish
from .models import EVENT_STATUSES, EVENT_TYPES, CalendarEvent, Procedures, Tables, require_choice
from .session import AuthSession

LOGGER = logging.getLogger(__name__)


class CalendarService:
    """Create, reschedule and list calendar events for the signed-in agent."""

    def __init__(self, service: DataService, session: AuthSession, events: Optional[EventBus] = None) -> None:
        self._service = service
        self._session = session
        self._events = events

    def list_events(self, start: Optional[str] = None, end: Optional[str] = None) -> List[CalendarEvent]:
        """Events with joined agent/lead/property/deal details between ``start`` and ``end``."""

        rows = self._service.rpc(
            Procedures.CALENDAR_EVENTS_WITH_DETAILS,
            {"start_date_param": start or None, "end_date_param": end or None},
        )
        return [CalendarEvent.from_row(row) for row in rows or []]

    def create_event(self, payload: Mapping[str, Any]) -> CalendarEvent:
        values = self._clean(payload)
        for required in ("title", "event_type", "start_date"):
            if not values.get(required):
                raise ValueError(f"Calendar event requires '{required}'")
        values["agent_id"] = values.get("agent_id") or self._session.user_id
        values["created_by"] = self._session.user_id

        rows = self._service.insert(Tables.CALENDAR_EVENTS, values)
        event = CalendarEvent.from_row(rows[0])
        publish(self._events, Topic.CALENDAR, "created", event.id, event_type=event.event_type)
        return event

    def update_event(self, event_id: str, payload: Mapping[str, Any]) -> CalendarEvent:
        values = self._clean(payload)
        rows = self._service.update(Tables.CALENDAR_EVENTS, values, filters=[eq("id", event_id)])
        if not rows:
            raise DataServiceError(f"Calendar event '{event_id}' was not found", code="NOT_FOUND", status=404)
        event = CalendarEvent.from_row(rows[0])
        publish(self._events, Topic.CALENDAR, "updated", event.id)
        return event

    def set_status(self, event_id: str, status: str) -> CalendarEvent:
        # Any status may follow any other.
        return self.update_event(event_id, {"status": status})

    def delete_event(self, event_id: str) -> None:
        self._service.delete(Tables.CALENDAR_EVENTS, filters=[eq("id", event_id)])
        publish(self._events, Topic.CALENDAR, "deleted", event_id)

    # --- convenience creators used by other modules ---

    def create_property_viewing_event(self, property_id: str, lead_id: str, scheduled_date: str) -> CalendarEvent:
        prop = self._lookup(Tables.PROPERTIES, property_id, "title, address")
        lead = self._lookup(Tables.LEADS, lead_id, "name, email")
        return self.create_event(
            {
                "title": f"Property Viewing: {prop.get('title') or 'Property'}",
                "description": f"Property viewing appointment with {lead.get('name') or 'Lead'}",
                "event_type": "property_viewing",
                "start_date": scheduled_date,
                "location": prop.get("address"),
                "property_id": property_id,
                "lead_id": lead_id,
                "contact_id": lead_id,
            }
        )

    def create_lead_call_event(self, lead_id: str, scheduled_date: str, notes: Optional[str] = None) -> CalendarEvent:
        lead = self._lookup(Tables.LEADS, lead_id, "name, email")
        return self.create_event(
            {
                "title": f"Call: {lead.get('name') or 'Lead'}",
                "description": "Follow-up call with lead",
                "event_type": "lead_call",
                "start_date": scheduled_date,
                "lead_id": lead_id,
                "contact_id": lead_id,
                "notes": notes,
            }
        )

    def create_contact_meeting_event(
        self,
        contact_id: str,
        scheduled_date: str,
        location: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> CalendarEvent:
        contact = self._lookup(Tables.LEADS, contact_id, "name, email")
        return self.create_event(
            {
                "title": f"Meeting: {contact.get('name') or 'Contact'}",
                "description": "Client meeting",
                "event_type": "contact_meeting",
                "start_date": scheduled_date,
                "location": location,
                "lead_id": contact_id,
                "contact_id": contact_id,
                "notes": notes,
            }
        )

    # --- notifications ---

    def list_notifications(self, *, unread_only: bool = False) -> List[Dict[str, Any]]:
        filters = [eq("is_read", False)] if unread_only else []
        return self._service.select(Tables.NOTIFICATIONS, filters=filters, order="created_at", descending=True)

    def mark_notification_read(self, notification_id: str) -> None:
        self._service.update(Tables.NOTIFICATIONS, {"is_read": True}, filters=[eq("id", notification_id)])

    def _lookup(self, table: str, row_id: str, columns: str) -> Dict[str, Any]:
        try:
            return dict(self._service.select_one(table, columns=columns, filters=[eq("id", row_id)]) or {})
        except DataServiceError:
            LOGGER.warning("Could not load %s %s for event title", table, row_id, exc_info=True)
            return {}

    @staticmethod
    def _clean(payload: Mapping[str, Any]) -> Dict[str, Any]:
        values = {key: value for key, value in payload.items() if value is not None}
        if "event_type" in values:
            require_choice(values["event_type"], EVENT_TYPES, "event type")
        if "status" in values:
            require_choice(values["status"], EVENT_STATUSES, "event status")
        return values


__all__ = ["CalendarService"]
