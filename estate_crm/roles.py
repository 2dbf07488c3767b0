"""User roles kept in the ``user_roles`` table."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from .audit import AuditEvent, log_security_event
from .client import DataService, eq
from .errors import AuthorizationError, DataServiceError
from .models import Procedures, Tables, require_choice
from .session import AuthSession

LOGGER = logging.getLogger(__name__)

ROLES = ("admin", "agent", "user", "superadmin")
ADMIN_ROLES = frozenset({"admin", "superadmin"})
DEFAULT_ROLE = "agent"


def get_current_user_role(service: DataService, session: AuthSession) -> str:
    """Role of the signed-in user; ``agent`` when none is stored or it cannot be read."""

    if not session.user_id:
        return DEFAULT_ROLE
    try:
        row = service.select_one(Tables.USER_ROLES, columns="role", filters=[eq("user_id", session.user_id)])
    except DataServiceError:
        LOGGER.warning("Error fetching role for %s", session.user_id, exc_info=True)
        return DEFAULT_ROLE
    return (row or {}).get("role") or DEFAULT_ROLE


def is_admin(service: DataService) -> bool:
    return bool(service.rpc(Procedures.IS_ADMIN))


def list_user_roles(service: DataService) -> List[Dict[str, Any]]:
    return service.select(Tables.USER_ROLES, order="assigned_at", descending=True)


def assign_user_role(service: DataService, session: AuthSession, user_id: str, role: str) -> Dict[str, Any]:
    require_choice(role, ROLES, "role")
    if get_current_user_role(service, session) not in ADMIN_ROLES:
        raise AuthorizationError("Only administrators can assign roles")
    assigned_by = session.require_user()

    new_values = {"role": role, "assigned_by": assigned_by}
    log_security_event(service, AuditEvent("role_assignment_attempt", Tables.USER_ROLES, user_id, new_values=new_values))

    rows = service.upsert(
        Tables.USER_ROLES,
        {
            "user_id": user_id,
            "role": role,
            "assigned_by": assigned_by,
            "assigned_at": datetime.now(timezone.utc).isoformat(),
        },
    )

    log_security_event(service, AuditEvent("role_assigned", Tables.USER_ROLES, user_id, new_values=new_values))
    return rows[0] if rows else {}


__all__ = [
    "ADMIN_ROLES",
    "DEFAULT_ROLE",
    "ROLES",
    "assign_user_role",
    "get_current_user_role",
    "is_admin",
    "list_user_roles",
]
