"""Automation workflows and their execution history."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from .client import DataService, eq
from .errors import DataServiceError
from .models import Functions, Tables
from .session import AuthSession

LOGGER = logging.getLogger(__name__)

EXECUTION_LIMIT = 100


class AutomationService:
    def __init__(self, service: DataService, session: AuthSession) -> None:
        self._service = service
        self._session = session

    def list_workflows(self) -> List[Dict[str, Any]]:
        return self._service.select(Tables.AUTOMATION_WORKFLOWS, order="created_at", descending=True)

    def create_workflow(self, workflow: Mapping[str, Any]) -> Dict[str, Any]:
        if not workflow.get("name"):
            raise ValueError("Workflow requires a name")
        row = dict(workflow)
        row["created_by"] = self._session.user_id or ""
        return self._service.insert(Tables.AUTOMATION_WORKFLOWS, row)[0]

    def update_workflow(self, workflow_id: str, updates: Mapping[str, Any]) -> Dict[str, Any]:
        rows = self._service.update(Tables.AUTOMATION_WORKFLOWS, dict(updates), filters=[eq("id", workflow_id)])
        if not rows:
            raise DataServiceError(f"Workflow '{workflow_id}' was not found", code="NOT_FOUND", status=404)
        return rows[0]

    def delete_workflow(self, workflow_id: str) -> None:
        self._service.delete(Tables.AUTOMATION_WORKFLOWS, filters=[eq("id", workflow_id)])

    def toggle_workflow(self, workflow_id: str, is_active: bool) -> Dict[str, Any]:
        return self.update_workflow(workflow_id, {"is_active": is_active})

    def list_executions(self, workflow_id: Optional[str] = None) -> List[Dict[str, Any]]:
        filters = [eq("workflow_id", workflow_id)] if workflow_id else []
        return self._service.select(
            Tables.AUTOMATION_EXECUTIONS,
            columns="*, automation_workflows!inner(name, trigger_type)",
            filters=filters,
            order="executed_at",
            descending=True,
            limit=EXECUTION_LIMIT,
        )

    def trigger_workflow(
        self, trigger_type: str, data: Mapping[str, Any], workflow_id: Optional[str] = None
    ) -> Any:
        LOGGER.info("Triggering %s automation (workflow %s)", trigger_type, workflow_id or "any")
        return self._service.invoke(
            Functions.TRIGGER_AUTOMATION,
            {"triggerType": trigger_type, "data": dict(data), "workflowId": workflow_id},
        )


__all__ = ["AutomationService", "EXECUTION_LIMIT"]
