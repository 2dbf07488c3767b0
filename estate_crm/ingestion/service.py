"""Commit imported leads to the backend."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..client import DataService
from ..errors import DataServiceError
from ..events import EventBus, Topic, publish
from ..models import Tables
from ..session import AuthSession
from .models import CommitResult, ImportedLead, ImportRow
from .validation import build_import_report

LOGGER = logging.getLogger(__name__)


class LeadImportService:
    """Inserts imported leads one by one so a bad row cannot sink the batch.

    Agent assignment happens in the backend on insert.
    """

    def __init__(self, service: DataService, session: AuthSession, events: Optional[EventBus] = None) -> None:
        self._service = service
        self._session = session
        self._events = events

    def commit(self, leads: Iterable[ImportedLead], *, skip_invalid: bool = True) -> CommitResult:
        report = build_import_report(leads)
        result = CommitResult()

        for index, row in enumerate(report.rows):
            if skip_invalid and not row.valid:
                result.skipped.append(row)
                continue
            try:
                inserted = self._service.insert(Tables.LEADS, self._lead_row(row))
            except DataServiceError as exc:
                LOGGER.warning("Lead %r (row %s) was not imported: %s", row.lead.name, row.lead.row_number, exc)
                result.failed[row.lead.row_number or index] = str(exc)
                continue
            result.inserted.extend(inserted)

        LOGGER.info("Lead import finished: %s", result.counts())
        if result.inserted:
            publish(self._events, Topic.LEADS, "created", None, count=len(result.inserted))
        return result

    def _lead_row(self, row: ImportRow) -> dict:
        values = row.lead.as_row()
        if self._session.user_id:
            values.setdefault("created_by", self._session.user_id)
        return values


__all__ = ["LeadImportService"]
