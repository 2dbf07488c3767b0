from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from estate_crm.errors import AuthorizationError, CrmValidationError
from estate_crm.session import AuthSession
from estate_crm.sla import (
    calculate_sla_status,
    format_call_outcome,
    log_call_outcome,
    run_sla_sweep,
    trigger_sla_sweep,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_sla_sweep_returns_reassigned_count(service) -> None:
    service.rpc_results["reassign_overdue_leads"] = 4

    assert run_sla_sweep(service, 15) == 4
    assert service.calls_to("rpc", "reassign_overdue_leads") == [{"p_minutes": 15}]


def test_sla_sweep_rejects_non_positive_window(service) -> None:
    with pytest.raises(CrmValidationError):
        run_sla_sweep(service, 0)


def test_trigger_sends_secret_and_bearer(service, session) -> None:
    trigger_sla_sweep(service, session, "s3cret")

    (call,) = service.calls_to("invoke", "sla-monitor")
    assert call["headers"] == {"Authorization": "Bearer token-1", "x-function-secret": "s3cret"}


def test_business_outcome_moves_lead_status(service, session) -> None:
    service.seed("leads", {"id": "lead-1", "status": "contacted"})
    notes = json.dumps({"business_outcome": "under_offer", "note": "Offer at 2.1M"})

    assert log_call_outcome(service, session, "lead-1", "interested", notes) == "negotiating"

    assert service.rows("leads")[0]["status"] == "negotiating"
    assert service.calls_to("rpc", "log_call_outcome") == [
        {
            "p_lead_id": "lead-1",
            "p_agent_id": "agent-1",
            "p_outcome": "interested",
            "p_notes": "Offer at 2.1M",
            "p_callback_at": None,
        }
    ]


def test_plain_notes_leave_status_alone(service, session) -> None:
    service.seed("leads", {"id": "lead-1", "status": "contacted"})

    assert log_call_outcome(service, session, "lead-1", "callback", "{not json", "2024-03-02T10:00:00Z") is None

    assert service.rows("leads")[0]["status"] == "contacted"
    (params,) = service.calls_to("rpc", "log_call_outcome")
    assert params["p_notes"] == "{not json"
    assert params["p_callback_at"] == "2024-03-02T10:00:00Z"


def test_call_outcome_requires_user(service) -> None:
    with pytest.raises(AuthorizationError):
        log_call_outcome(service, AuthSession(), "lead-1", "busy")


def test_sla_status_counts_down() -> None:
    status = calculate_sla_status({"assigned_at": "2024-03-01T11:50:30Z"}, now=NOW)

    assert not status.is_overdue
    assert status.elapsed_minutes == 9
    assert status.remaining_minutes == 20
    assert status.remaining_ms == 20 * 60_000 + 30_000
    assert status.sla_minutes == 30


def test_sla_status_overdue() -> None:
    status = calculate_sla_status({"assigned_at": "2024-03-01T11:00:00Z"}, now=NOW)

    assert status.is_overdue
    assert status.remaining_minutes == 0
    assert status.elapsed_minutes == 60


def test_no_sla_without_assignment_or_after_outcome() -> None:
    assert calculate_sla_status({}, now=NOW) is None
    assert calculate_sla_status(
        {"assigned_at": "2024-03-01T11:00:00Z", "first_outcome_at": "2024-03-01T11:05:00Z"}, now=NOW
    ) is None


def test_format_call_outcome() -> None:
    assert format_call_outcome("busy") == "Number Busy"
    assert format_call_outcome("invalid") == "Invalid/Spam"
    assert format_call_outcome("voicemail") == "voicemail"
