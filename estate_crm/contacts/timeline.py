"""Timeline aggregation: several history sources merged into one newest-first list."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from ..client import DataService, Filter, eq, in_
from ..models import Tables, TimelineItem
from ..timezone import parse_timestamp
from .identity import resolve_related_contact_ids
from .properties import linked_property_ids

LOGGER = logging.getLogger(__name__)


class TimelineSource(Protocol):
    """A single kind of history record that can be mapped onto timeline items."""

    name: str

    def fetch(self, service: DataService, contact_ids: Sequence[str]) -> List[TimelineItem]:  # pragma: no cover
        """Return items for the given contact identifiers."""


def _keyed(column: str, ids: Sequence[str]) -> Filter:
    return eq(column, ids[0]) if len(ids) == 1 else in_(column, ids)


@dataclass
class TableSource:
    """Rows of one relation keyed by a contact/lead column, mapped by ``to_item``."""

    name: str
    table: str
    key_column: str
    to_item: Callable[[Mapping[str, Any]], TimelineItem]

    def fetch(self, service: DataService, contact_ids: Sequence[str]) -> List[TimelineItem]:
        rows = service.select(self.table, filters=[_keyed(self.key_column, contact_ids)])
        return [self.to_item(row) for row in rows]


@dataclass
class PropertyChangeSource:
    """Status changes of every property linked to the contact (two-step lookup)."""

    name: str = "property_status_changes"

    def fetch(self, service: DataService, contact_ids: Sequence[str]) -> List[TimelineItem]:
        property_ids = linked_property_ids(service, contact_ids)
        if not property_ids:
            return []
        rows = service.select(Tables.PROPERTY_STATUS_CHANGES, filters=[in_("property_id", property_ids)])
        return [_property_change(row) for row in rows]


def _from(old_status: Any) -> str:
    return f"from {old_status}" if old_status else ""


def _contact_status_change(row: Mapping[str, Any]) -> TimelineItem:
    return TimelineItem(
        id=str(row["id"]),
        type="status_change",
        timestamp=row["created_at"],
        title=f"Contact status changed to {row.get('new_status')}",
        subtitle=row.get("reason") or "",
        data=dict(row),
    )


def _lead_status_change(row: Mapping[str, Any]) -> TimelineItem:
    return TimelineItem(
        id=str(row["id"]),
        type="lead_change",
        timestamp=row["created_at"],
        title=f"Lead status changed to {row.get('new_status') or ''}",
        subtitle=_from(row.get("old_status")),
        data=dict(row),
    )


def _property_change(row: Mapping[str, Any]) -> TimelineItem:
    return TimelineItem(
        id=str(row["id"]),
        type="property_change",
        timestamp=row["created_at"],
        title=f"Property status changed to {row.get('new_status') or ''}",
        subtitle=_from(row.get("old_status")),
        data=dict(row),
    )


def _activity(row: Mapping[str, Any]) -> TimelineItem:
    return TimelineItem(
        id=str(row["id"]),
        type="activity",
        timestamp=row["created_at"],
        title=row.get("description") or "",
        subtitle=row.get("type") or "",
        data=dict(row),
    )


def _file_upload(row: Mapping[str, Any]) -> TimelineItem:
    return TimelineItem(
        id=str(row["id"]),
        type="file_upload",
        timestamp=row["created_at"],
        title=f"Uploaded {row.get('name') or 'document'}",
        subtitle=row.get("tag") or "document",
        data=dict(row),
    )


def default_sources() -> List[TimelineSource]:
    return [
        TableSource("contact_status_changes", Tables.CONTACT_STATUS_CHANGES, "contact_id", _contact_status_change),
        TableSource("lead_status_changes", Tables.LEAD_STATUS_CHANGES, "lead_id", _lead_status_change),
        PropertyChangeSource(),
        TableSource("activities", Tables.ACTIVITIES, "lead_id", _activity),
        TableSource("contact_files", Tables.CONTACT_FILES, "contact_id", _file_upload),
    ]


@dataclass
class Timeline:
    """Merged timeline plus the sources that could not be read."""

    contact_id: str
    items: List[TimelineItem] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    skipped: Dict[str, int] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failures


class TimelineAggregator:
    """Fetches every source for a contact and merges the results newest first.

    A failing source is logged and listed in :attr:`Timeline.failures`; the
    remaining sources are still returned unless ``raise_on_error`` is set.
    Items whose timestamp cannot be parsed are dropped and counted per source
    in :attr:`Timeline.skipped`. Items with equal timestamps keep source
    order, then the order the backend returned them in.
    """

    def __init__(
        self,
        service: DataService,
        *,
        sources: Optional[Sequence[TimelineSource]] = None,
        concurrent: bool = False,
        max_workers: Optional[int] = None,
        raise_on_error: bool = False,
        resolve_aliases: bool = False,
    ) -> None:
        self._service = service
        self._sources = list(sources) if sources is not None else default_sources()
        self._concurrent = concurrent
        self._max_workers = max_workers
        self._raise_on_error = raise_on_error
        self._resolve_aliases = resolve_aliases

    @property
    def sources(self) -> List[TimelineSource]:
        return list(self._sources)

    def build(self, contact_id: str) -> Timeline:
        contact_ids = [contact_id]
        if self._resolve_aliases:
            contact_ids = sorted(resolve_related_contact_ids(self._service, contact_id))

        timeline = Timeline(contact_id=contact_id)
        collected = self._run_sources(contact_ids, timeline)
        timeline.items = sort_newest_first(item for items in collected for item in items)
        return timeline

    def _run_sources(self, contact_ids: List[str], timeline: Timeline) -> List[List[TimelineItem]]:
        if not self._concurrent or len(self._sources) <= 1:
            return [self._execute_source(source, contact_ids, timeline) for source in self._sources]

        results: Dict[int, List[TimelineItem]] = {}
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures = {
                executor.submit(self._execute_source, source, contact_ids, timeline): index
                for index, source in enumerate(self._sources)
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        return [results[index] for index in range(len(self._sources))]

    def _execute_source(
        self, source: TimelineSource, contact_ids: List[str], timeline: Timeline
    ) -> List[TimelineItem]:
        try:
            LOGGER.debug("Fetching timeline source %s for %s", source.name, contact_ids)
            items = source.fetch(self._service, contact_ids)
        except Exception as exc:
            LOGGER.exception("Timeline source %s failed for %s", source.name, contact_ids)
            if self._raise_on_error:
                raise
            timeline.failures[source.name] = str(exc)
            return []
        return _dated_items(source.name, items, timeline)


def _dated_items(source_name: str, items: List[TimelineItem], timeline: Timeline) -> List[TimelineItem]:
    kept = []
    for item in items:
        try:
            parse_timestamp(item.timestamp)
        except (TypeError, ValueError, OverflowError):
            LOGGER.warning("Dropping %s item %s: unreadable timestamp %r", source_name, item.key, item.timestamp)
            timeline.skipped[source_name] = timeline.skipped.get(source_name, 0) + 1
            continue
        kept.append(item)
    return kept


def sort_newest_first(items) -> List[TimelineItem]:
    """Stable sort by timestamp, descending."""

    return sorted(items, key=_sort_key, reverse=True)


def _sort_key(item: TimelineItem) -> datetime:
    return parse_timestamp(item.timestamp)


def get_contact_timeline(service: DataService, contact_id: str, **options: Any) -> Timeline:
    return TimelineAggregator(service, **options).build(contact_id)


__all__ = [
    "PropertyChangeSource",
    "TableSource",
    "Timeline",
    "TimelineAggregator",
    "TimelineSource",
    "default_sources",
    "get_contact_timeline",
    "sort_newest_first",
]
