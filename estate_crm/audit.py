"""Security audit trail."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .client import DataService, eq
from .models import Procedures, Tables

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AuditEvent:
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    old_values: Optional[Mapping[str, Any]] = None
    new_values: Optional[Mapping[str, Any]] = None


def log_security_event(service: DataService, event: AuditEvent) -> bool:
    """Record ``event``. Never raises; returns whether the write went through."""

    try:
        service.rpc(
            Procedures.LOG_SECURITY_EVENT,
            {
                "p_action": event.action,
                "p_resource_type": event.resource_type,
                "p_resource_id": event.resource_id,
                "p_old_values": json.dumps(event.old_values) if event.old_values else None,
                "p_new_values": json.dumps(event.new_values) if event.new_values else None,
            },
        )
    except Exception:
        LOGGER.exception("Failed to log security event %s on %s", event.action, event.resource_type)
        return False
    return True


def get_audit_logs(service: DataService, limit: int = 100) -> List[Dict[str, Any]]:
    return _audit(service, [], limit)


def get_resource_audit_logs(
    service: DataService, resource_type: str, resource_id: str, limit: int = 50
) -> List[Dict[str, Any]]:
    return _audit(service, [eq("resource_type", resource_type), eq("resource_id", resource_id)], limit)


def get_user_audit_logs(service: DataService, user_id: str, limit: int = 100) -> List[Dict[str, Any]]:
    return _audit(service, [eq("user_id", user_id)], limit)


def _audit(service: DataService, filters: list, limit: int) -> List[Dict[str, Any]]:
    return service.select(Tables.SECURITY_AUDIT, filters=filters, order="created_at", descending=True, limit=limit)


__all__ = ["AuditEvent", "get_audit_logs", "get_resource_audit_logs", "get_user_audit_logs", "log_security_event"]
