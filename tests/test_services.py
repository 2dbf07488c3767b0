"""Notifications, communications, automation and assistant clients."""
from __future__ import annotations

import pytest

from estate_crm.assistant import ask_assistant
from estate_crm.automation import AutomationService
from estate_crm.communications import CommunicationsService
from estate_crm.errors import AuthorizationError, DataServiceError
from estate_crm.notifications import create_in_app_notification, send_lead_notification
from estate_crm.session import AuthSession


def test_lead_notification_failure_is_returned(service) -> None:
    service.function_results["send-lead-notification"] = DataServiceError("smtp down")

    outcome = send_lead_notification(service, {"agentId": "a", "leadId": "l", "notificationType": "assignment"})

    assert not outcome.ok
    assert "smtp down" in outcome.error


def test_in_app_notification_defaults(service) -> None:
    assert create_in_app_notification(service, user_id="agent-1", title="New lead", message="Ada").ok

    row = service.rows("notifications")[0]
    assert (row["type"], row["priority"]) == ("info", "medium")


def test_communication_defaults_and_activity(service, session) -> None:
    comms = CommunicationsService(service, session)

    created = comms.create_communication({"lead_id": "lead-1", "type": "email", "message": "Hello " * 40})

    assert (created["status"], created["direction"], created["agent_id"]) == ("sent", "outbound", "agent-1")
    (activity,) = service.rows("activities")
    assert activity["type"] == "communication_email"
    assert activity["description"] == "EMAIL: " + ("Hello " * 40)[:100]


def test_communication_requires_user(service) -> None:
    with pytest.raises(AuthorizationError):
        CommunicationsService(service, AuthSession()).create_communication({"type": "sms", "message": "hi"})


def test_all_filter_values_are_ignored(service, session) -> None:
    service.seed(
        "communications",
        {"id": "1", "type": "call", "status": "sent", "lead_id": "lead-1", "created_at": "2024-03-01"},
        {"id": "2", "type": "email", "status": "read", "lead_id": "lead-1", "created_at": "2024-03-02"},
        {"id": "3", "type": "email", "status": "sent", "lead_id": "lead-2", "created_at": "2024-03-03"},
    )
    comms = CommunicationsService(service, session)

    assert [row["id"] for row in comms.fetch_communications({"type": "all", "status": "all"})] == ["3", "2", "1"]
    assert [row["id"] for row in comms.fetch_communications({"lead_id": "lead-1", "type": "email"})] == ["2"]
    with pytest.raises(ValueError):
        comms.fetch_communications({"channel": "email"})


def test_communication_stats(service, session) -> None:
    service.seed(
        "communications",
        {"id": "1", "type": "call", "status": "sent", "agent_id": "agent-1"},
        {"id": "2", "type": "email", "status": "read", "agent_id": "agent-1"},
        {"id": "3", "type": "email", "status": "sent", "agent_id": "agent-2"},
    )

    stats = CommunicationsService(service, session).communication_stats()

    assert stats["total"] == 2
    assert (stats["call"], stats["email"], stats["sent"], stats["read"], stats["failed"]) == (1, 1, 1, 1, 0)


def test_automation_workflows(service, session) -> None:
    automation = AutomationService(service, session)
    workflow = automation.create_workflow({"name": "SLA Monitor", "trigger_type": "scheduled", "is_active": True})

    assert workflow["created_by"] == "agent-1"
    assert automation.toggle_workflow(workflow["id"], False)["is_active"] is False

    service.seed(
        "automation_executions",
        *[{"id": str(i), "workflow_id": workflow["id"], "executed_at": f"2024-01-01T00:{i % 60:02d}:{i // 60:02d}"}
          for i in range(120)],
    )
    assert len(automation.list_executions(workflow["id"])) == 100

    automation.trigger_workflow("lead_created", {"lead_id": "lead-1"})
    (call,) = service.calls_to("invoke", "trigger-automation")
    assert call["body"] == {"triggerType": "lead_created", "data": {"lead_id": "lead-1"}, "workflowId": None}


def test_assistant_reply_text(service) -> None:
    service.function_results["ai-assistant"] = {"choices": [{"message": {"content": "Three viewings today."}}]}

    assert ask_assistant(service, "What is on today?", conversation_id="conv-1") == "Three viewings today."
    (call,) = service.calls_to("invoke", "ai-assistant")
    assert call["body"]["conversationId"] == "conv-1"
    assert call["body"]["stream"] is False


def test_assistant_error_and_empty_message(service) -> None:
    service.function_results["ai-assistant"] = {"error": "Unauthorized"}

    with pytest.raises(DataServiceError, match="Unauthorized"):
        ask_assistant(service, "hi")
    with pytest.raises(ValueError):
        ask_assistant(service, "   ")
