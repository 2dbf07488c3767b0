"""Contact-centric services: identity, status, property links and timeline."""

from .identity import (
    contact_leads,
    find_potential_duplicates,
    merge_contacts,
    normalize_phone,
    resolve_related_contact_ids,
)
from .properties import contact_properties, link_property, unlink_property
from .status import ContactStatusEngine
from .timeline import Timeline, TimelineAggregator, get_contact_timeline

__all__ = [
    "ContactStatusEngine",
    "Timeline",
    "TimelineAggregator",
    "contact_leads",
    "contact_properties",
    "find_potential_duplicates",
    "get_contact_timeline",
    "link_property",
    "merge_contacts",
    "normalize_phone",
    "resolve_related_contact_ids",
    "unlink_property",
]
