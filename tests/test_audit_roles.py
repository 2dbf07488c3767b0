from __future__ import annotations

import json

import pytest

from estate_crm.audit import AuditEvent, get_resource_audit_logs, log_security_event
from estate_crm.errors import AuthorizationError, DataServiceError
from estate_crm.roles import assign_user_role, get_current_user_role, is_admin
from estate_crm.session import AuthSession


def test_audit_values_are_json_encoded(service) -> None:
    assert log_security_event(
        service, AuditEvent("update", "leads", "lead-1", old_values={"a": 1}, new_values={"a": 2})
    )

    (params,) = service.calls_to("rpc", "log_security_event")
    assert json.loads(params["p_old_values"]) == {"a": 1}
    assert json.loads(params["p_new_values"]) == {"a": 2}


def test_audit_failure_never_raises(service) -> None:
    service.rpc_results["log_security_event"] = DataServiceError("audit table locked")

    assert log_security_event(service, AuditEvent("delete", "leads")) is False


def test_resource_audit_logs_filter_and_limit(service) -> None:
    service.seed(
        "security_audit",
        *[
            {"id": str(index), "resource_type": "leads", "resource_id": "lead-1",
             "created_at": f"2024-03-{index:02d}T00:00:00Z"}
            for index in range(1, 5)
        ],
        {"id": "x", "resource_type": "leads", "resource_id": "lead-2", "created_at": "2024-03-09T00:00:00Z"},
    )

    rows = get_resource_audit_logs(service, "leads", "lead-1", limit=2)

    assert [row["id"] for row in rows] == ["4", "3"]


def test_role_defaults_to_agent(service, session) -> None:
    assert get_current_user_role(service, session) == "agent"
    assert get_current_user_role(service, AuthSession()) == "agent"


def test_only_admins_assign_roles(service, session) -> None:
    with pytest.raises(AuthorizationError, match="Only administrators can assign roles"):
        assign_user_role(service, session, "agent-9", "admin")
    assert service.rows("user_roles") == []


def test_admin_assigns_role_with_audit_trail(service, session) -> None:
    service.seed("user_roles", {"user_id": "agent-1", "role": "superadmin"}, {"user_id": "agent-9", "role": "agent"})

    row = assign_user_role(service, session, "agent-9", "admin")

    assert row["role"] == "admin"
    assert row["assigned_by"] == "agent-1"
    assert len(service.rows("user_roles")) == 2
    actions = [params["p_action"] for params in service.calls_to("rpc", "log_security_event")]
    assert actions == ["role_assignment_attempt", "role_assigned"]


def test_unknown_role_is_rejected(service, session) -> None:
    with pytest.raises(ValueError):
        assign_user_role(service, session, "agent-9", "owner")


def test_is_admin_uses_procedure(service) -> None:
    service.rpc_results["is_admin"] = True

    assert is_admin(service) is True
