"""Contact identity helpers: alias resolution, duplicate grouping and merging.

A real-world person can appear as several rows of the ``leads`` relation
(each pointing at a canonical record through ``contact_id``) and, separately,
as a row of the ``contacts`` relation. :func:`resolve_related_contact_ids`
widens a single identifier to every alias so downstream queries see data
linked under any of them.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Set

from ..client import DataService, eq, in_, or_, quote_filter_value
from ..models import Tables

LOGGER = logging.getLogger(__name__)


def resolve_related_contact_ids(service: DataService, contact_id: str) -> Set[str]:
    """Return ``contact_id`` plus every identifier that denotes the same contact.

    Unknown identifiers resolve to the singleton set; nothing is raised for them.
    """

    related: Set[str] = {contact_id}

    lead = service.select_one(Tables.LEADS, columns="id, contact_id", filters=[eq("id", contact_id)])
    if lead and lead.get("contact_id"):
        related.add(str(lead["contact_id"]))

    for row in service.select(Tables.LEADS, columns="id", filters=[eq("contact_id", contact_id)]):
        related.add(str(row["id"]))

    if service.select_one(Tables.CONTACTS, columns="id", filters=[eq("id", contact_id)]):
        related.add(contact_id)

    LOGGER.debug("Resolved %s to %d related ids", contact_id, len(related))
    return related


def contact_leads(service: DataService, contact_id: str) -> List[Dict[str, Any]]:
    """All lead rows that are, or point at, ``contact_id`` (newest first)."""

    quoted = quote_filter_value(contact_id)
    return service.select(
        Tables.LEADS,
        filters=[or_(f"id.eq.{quoted},contact_id.eq.{quoted}")],
        order="created_at",
        descending=True,
    )


def normalize_phone(value: Any) -> str:
    return "".join(char for char in str(value or "") if char.isdigit())


def _email_key(row: Mapping[str, Any]) -> str:
    return str(row.get("email") or "").strip().lower()


def find_potential_duplicates(rows: Iterable[Mapping[str, Any]]) -> List[List[Mapping[str, Any]]]:
    """Group rows sharing an email address or a phone number of at least 10 digits.

    A row can appear in two groups (one for its email, one for its phone).
    Only groups with more than one member are returned, in first-seen order.
    """

    groups: Dict[str, List[Mapping[str, Any]]] = {}
    for row in rows:
        email = _email_key(row)
        if email:
            groups.setdefault(f"email:{email}", []).append(row)
        phone = normalize_phone(row.get("phone"))
        if len(phone) >= 10:
            groups.setdefault(f"phone:{phone}", []).append(row)
    return [members for members in groups.values() if len(members) > 1]


def dedupe_key(row: Mapping[str, Any]) -> str:
    """Best available identity key: email, then phone digits, then id."""

    return _email_key(row) or normalize_phone(row.get("phone")) or str(row.get("id", ""))


def merge_contacts(service: DataService, primary_id: str, duplicate_ids: Sequence[str]) -> List[Dict[str, Any]]:
    """Point every duplicate at ``primary_id`` through ``merged_into_id``."""

    duplicates = [item for item in duplicate_ids if item != primary_id]
    if not duplicates:
        return []
    LOGGER.info("Merging %d contacts into %s", len(duplicates), primary_id)
    return service.update(Tables.LEADS, {"merged_into_id": primary_id}, filters=[in_("id", duplicates)])


__all__ = [
    "contact_leads",
    "dedupe_key",
    "find_potential_duplicates",
    "merge_contacts",
    "normalize_phone",
    "resolve_related_contact_ids",
]
