"""Lead notifications (via the notification function) and in-app notifications."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .client import DataService
from .errors import CrmError
from .models import Functions, Tables

LOGGER = logging.getLogger(__name__)

NOTIFICATION_KINDS = ("assignment", "reassignment", "update")
NOTIFICATION_TYPES = ("info", "warning", "error", "success")
NOTIFICATION_PRIORITIES = ("low", "medium", "high")


@dataclass(slots=True)
class NotificationOutcome:
    ok: bool
    data: Any = None
    error: Optional[str] = None


def send_lead_notification(service: DataService, params: Mapping[str, Any]) -> NotificationOutcome:
    """Ask the backend to notify an agent about a lead.

    ``params`` carries ``agentId``, ``leadId``, ``leadName`` and
    ``notificationType``; contact details are optional. A failure is logged
    and returned, not raised, so callers can fall back to
    :func:`create_in_app_notification`.
    """

    LOGGER.info("Sending %s notification for lead %s", params.get("notificationType"), params.get("leadId"))
    try:
        data = service.invoke(Functions.SEND_LEAD_NOTIFICATION, dict(params))
    except CrmError as exc:
        LOGGER.error("Failed to send lead notification: %s", exc)
        return NotificationOutcome(ok=False, error=str(exc))
    return NotificationOutcome(ok=True, data=data)


def create_in_app_notification(
    service: DataService,
    *,
    user_id: str,
    title: str,
    message: str,
    type: str = "info",
    priority: str = "medium",
    lead_id: Optional[str] = None,
    property_id: Optional[str] = None,
    deal_id: Optional[str] = None,
) -> NotificationOutcome:
    row = {
        "user_id": user_id,
        "title": title,
        "message": message,
        "type": type or "info",
        "priority": priority or "medium",
        "lead_id": lead_id,
        "property_id": property_id,
        "deal_id": deal_id,
    }
    try:
        service.insert(Tables.NOTIFICATIONS, row)
    except CrmError as exc:
        LOGGER.error("Failed to create in-app notification: %s", exc)
        return NotificationOutcome(ok=False, error=str(exc))
    return NotificationOutcome(ok=True)


__all__ = [
    "NOTIFICATION_KINDS",
    "NOTIFICATION_PRIORITIES",
    "NOTIFICATION_TYPES",
    "NotificationOutcome",
    "create_in_app_notification",
    "send_lead_notification",
]
