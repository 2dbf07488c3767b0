"""First-response SLA: sweeps that reassign overdue leads, and call outcomes."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from .client import DataService, eq
from .errors import CrmValidationError
from .models import Functions, Procedures, Tables, require_choice
from .session import AuthSession
from .timezone import parse_timestamp

LOGGER = logging.getLogger(__name__)

DEFAULT_SLA_MINUTES = 30

CALL_OUTCOME_LABELS = {
    "interested": "Interested",
    "callback": "Callback Requested",
    "no_answer": "No Answer",
    "busy": "Number Busy",
    "not_interested": "Not Interested",
    "invalid": "Invalid/Spam",
    "other": "Other",
}
CALL_OUTCOMES = tuple(CALL_OUTCOME_LABELS)

BUSINESS_OUTCOME_STATUS = {
    "interested": "qualified",
    "meeting_scheduled": "qualified",
    "under_offer": "negotiating",
    "deal_won": "won",
    "deal_lost": "lost",
}


@dataclass(frozen=True)
class SlaStatus:
    is_overdue: bool
    remaining_ms: int
    remaining_minutes: int
    elapsed_minutes: int
    sla_minutes: int


def run_sla_sweep(service: DataService, minutes: int = DEFAULT_SLA_MINUTES) -> int:
    """Reassign leads with no outcome within ``minutes``; return how many moved."""

    if minutes <= 0:
        raise CrmValidationError("SLA minutes must be positive")
    reassigned = service.rpc(Procedures.REASSIGN_OVERDUE_LEADS, {"p_minutes": minutes})
    count = int(reassigned or 0)
    LOGGER.info("SLA sweep (%d min) reassigned %d leads", minutes, count)
    return count


def trigger_sla_sweep(service: DataService, session: AuthSession, secret: Optional[str] = None) -> Any:
    """Run the sweep through the scheduled monitor function."""

    headers = session.bearer_headers()
    if secret:
        headers["x-function-secret"] = secret
    return service.invoke(Functions.SLA_MONITOR, {}, headers=headers)


def log_call_outcome(
    service: DataService,
    session: AuthSession,
    lead_id: str,
    outcome: str,
    notes: Optional[str] = None,
    callback_at: Optional[str] = None,
) -> Optional[str]:
    """Record a call attempt; return the lead status it moved to, if any.

    ``notes`` may be a JSON object with ``business_outcome`` and ``note``;
    a recognised business outcome moves the lead's pipeline status before the
    call is logged. Anything else is kept as plain notes.
    """

    agent_id = session.require_user()
    require_choice(outcome, CALL_OUTCOMES, "call outcome")

    business_outcome, parsed_notes = _split_notes(notes)
    new_status = BUSINESS_OUTCOME_STATUS.get(business_outcome or "")
    if new_status:
        service.update(Tables.LEADS, {"status": new_status}, filters=[eq("id", lead_id)])

    service.rpc(
        Procedures.LOG_CALL_OUTCOME,
        {
            "p_lead_id": lead_id,
            "p_agent_id": agent_id,
            "p_outcome": outcome,
            "p_notes": parsed_notes,
            "p_callback_at": callback_at or None,
        },
    )
    return new_status


def _split_notes(notes: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    if not notes or not notes.startswith("{"):
        return None, notes
    try:
        parsed = json.loads(notes)
    except ValueError:
        return None, notes
    if not isinstance(parsed, dict):
        return None, notes
    return parsed.get("business_outcome"), parsed.get("note") or None


def calculate_sla_status(
    lead: Mapping[str, Any],
    now: Optional[datetime] = None,
    sla_minutes: int = DEFAULT_SLA_MINUTES,
) -> Optional[SlaStatus]:
    """SLA countdown for an assigned lead; ``None`` once an outcome is logged."""

    if not lead.get("assigned_at") or lead.get("first_outcome_at"):
        return None

    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    elapsed_ms = int((current - parse_timestamp(lead["assigned_at"])).total_seconds() * 1000)
    remaining_ms = sla_minutes * 60_000 - elapsed_ms

    return SlaStatus(
        is_overdue=remaining_ms <= 0,
        remaining_ms=remaining_ms,
        remaining_minutes=max(0, remaining_ms // 60_000),
        elapsed_minutes=elapsed_ms // 60_000,
        sla_minutes=sla_minutes,
    )


def format_call_outcome(outcome: str) -> str:
    return CALL_OUTCOME_LABELS.get(outcome, outcome)


__all__ = [
    "BUSINESS_OUTCOME_STATUS",
    "CALL_OUTCOMES",
    "DEFAULT_SLA_MINUTES",
    "SlaStatus",
    "calculate_sla_status",
    "format_call_outcome",
    "log_call_outcome",
    "run_sla_sweep",
    "trigger_sla_sweep",
]
