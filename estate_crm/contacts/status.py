"""Contact status: automatic vs. manually pinned, with an audit trail of overrides."""
from __future__ import annotations

import logging
from typing import Any, Optional

from ..client import DataService, eq
from ..errors import DataServiceError
from ..events import EventBus, Topic, publish
from ..models import (
    STATUS_MODES,
    STATUS_VALUES,
    ContactRecord,
    Procedures,
    StatusChangeResult,
    StatusModeResult,
    Tables,
    require_choice,
)
from ..session import AuthSession

LOGGER = logging.getLogger(__name__)

MANUAL_OVERRIDE_REASON = "manual override"


class ContactStatusEngine:
    """Switches status modes and records manual overrides.

    In ``auto`` mode the backend procedure ``recompute_contact_status`` owns
    ``status_effective``. In ``manual`` mode it is pinned to ``status_manual``.
    The audit insert is not transactional with the status write: it runs
    after the write succeeds and a failure is logged and reported through
    :attr:`StatusChangeResult.audit_recorded`, never raised.
    Likewise a failed recompute after switching to ``auto`` leaves the mode
    written and shows up as :attr:`StatusModeResult.recomputed` being False.
    """

    def __init__(self, service: DataService, session: AuthSession, events: Optional[EventBus] = None) -> None:
        self._service = service
        self._session = session
        self._events = events

    def set_status_mode(self, contact_id: str, mode: str) -> StatusModeResult:
        require_choice(mode, STATUS_MODES, "status mode")
        contact = self._write(contact_id, {"status_mode": mode})
        recomputed = False
        if mode == "auto":
            try:
                self.recompute_status(contact_id)
                recomputed = True
            except DataServiceError:
                LOGGER.exception("Status mode of %s set to auto but the recompute failed", contact_id)
        publish(self._events, Topic.CONTACTS, "updated", contact_id, status_mode=mode)
        return StatusModeResult(contact=contact, mode=mode, recomputed=recomputed)

    def set_manual_status(self, contact_id: str, status: str) -> StatusChangeResult:
        require_choice(status, STATUS_VALUES, "contact status")
        old_status = self._current_status(contact_id)

        contact = self._write(
            contact_id,
            {"status_manual": status, "status_effective": status, "status_mode": "manual"},
        )
        audit_recorded = self._record_change(contact_id, old_status, status)
        publish(self._events, Topic.CONTACTS, "updated", contact_id, status_effective=status)
        return StatusChangeResult(
            contact=contact, old_status=old_status, new_status=status, audit_recorded=audit_recorded
        )

    def recompute_status(self, contact_id: str, reason: str = "manual_trigger") -> Any:
        LOGGER.info("Recomputing status for contact %s (%s)", contact_id, reason)
        return self._service.rpc(
            Procedures.RECOMPUTE_CONTACT_STATUS, {"p_contact_id": contact_id, "p_reason": reason}
        )

    def _write(self, contact_id: str, values: dict) -> ContactRecord:
        rows = self._service.update(Tables.LEADS, values, filters=[eq("id", contact_id)])
        if not rows:
            raise DataServiceError(f"Contact '{contact_id}' was not found", code="NOT_FOUND", status=404)
        return ContactRecord.from_row(rows[0])

    def _current_status(self, contact_id: str) -> Optional[str]:
        try:
            row = self._service.select_one(Tables.LEADS, columns="status_effective", filters=[eq("id", contact_id)])
        except DataServiceError:
            LOGGER.warning("Could not read prior status of %s; audit will record none", contact_id, exc_info=True)
            return None
        return (row or {}).get("status_effective")

    def _record_change(self, contact_id: str, old_status: Optional[str], new_status: str) -> bool:
        try:
            self._service.insert(
                Tables.CONTACT_STATUS_CHANGES,
                {
                    "contact_id": contact_id,
                    "old_status": old_status,
                    "new_status": new_status,
                    "reason": MANUAL_OVERRIDE_REASON,
                    "changed_by": self._session.user_id,
                },
            )
        except DataServiceError:
            LOGGER.exception("Status of %s changed but the audit entry was not written", contact_id)
            return False
        return True


__all__ = ["ContactStatusEngine", "MANUAL_OVERRIDE_REASON"]
