"""Links between contacts and properties."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from ..client import DataService, eq, in_
from ..errors import DataServiceError
from ..events import EventBus, Topic, publish
from ..models import ContactPropertyLink, Tables

LOGGER = logging.getLogger(__name__)


def _triple_filters(link: ContactPropertyLink):
    return [eq("contact_id", link.contact_id), eq("property_id", link.property_id), eq("role", link.role)]


def link_property(
    service: DataService,
    contact_id: str,
    property_id: str,
    role: str,
    *,
    events: Optional[EventBus] = None,
) -> ContactPropertyLink:
    """Link a property to a contact; linking an existing triple again is a no-op."""

    link = ContactPropertyLink(contact_id=contact_id, property_id=property_id, role=role)
    try:
        rows = service.insert(Tables.CONTACT_PROPERTIES, link.as_row())
    except DataServiceError as exc:
        if not exc.is_unique_violation:
            raise
        LOGGER.info("Property %s already linked to %s as %s", property_id, contact_id, role)
        existing = service.select_one(Tables.CONTACT_PROPERTIES, filters=_triple_filters(link))
        return ContactPropertyLink.from_row(existing) if existing else link

    publish(events, Topic.PROPERTIES, "linked", property_id, contact_id=contact_id, role=role)
    return ContactPropertyLink.from_row(rows[0]) if rows else link


def unlink_property(
    service: DataService,
    contact_id: str,
    property_id: str,
    role: str,
    *,
    events: Optional[EventBus] = None,
) -> int:
    """Remove the link; returns how many rows were deleted."""

    link = ContactPropertyLink(contact_id=contact_id, property_id=property_id, role=role)
    removed = service.delete(Tables.CONTACT_PROPERTIES, filters=_triple_filters(link))
    if removed:
        publish(events, Topic.PROPERTIES, "unlinked", property_id, contact_id=contact_id, role=role)
    return len(removed)


def contact_properties(
    service: DataService,
    contact_id: str,
    *,
    related_ids: Optional[Iterable[str]] = None,
) -> List[ContactPropertyLink]:
    """Links for ``contact_id`` (or for every id in ``related_ids``) with the property embedded."""

    ids = sorted(set(related_ids or ()) | {contact_id})
    contact_filter = eq("contact_id", contact_id) if len(ids) == 1 else in_("contact_id", ids)
    rows = service.select(Tables.CONTACT_PROPERTIES, columns="*, properties!inner(*)", filters=[contact_filter])
    return [ContactPropertyLink.from_row(row) for row in rows]


def linked_property_ids(service: DataService, contact_ids: Iterable[str]) -> List[str]:
    ids = sorted(set(contact_ids))
    if not ids:
        return []
    contact_filter = eq("contact_id", ids[0]) if len(ids) == 1 else in_("contact_id", ids)
    rows = service.select(Tables.CONTACT_PROPERTIES, columns="property_id", filters=[contact_filter])
    seen: List[str] = []
    for row in rows:
        property_id = str(row["property_id"])
        if property_id not in seen:
            seen.append(property_id)
    return seen


__all__ = ["contact_properties", "link_property", "linked_property_ids", "unlink_property"]
