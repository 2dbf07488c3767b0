"""Client library and tools for the real-estate CRM backend."""

from . import models  # noqa: F401
from .client import DataService, Filter, RestDataService
from .config import ConfigurationError, Settings, load_settings
from .contacts import (
    ContactStatusEngine,
    Timeline,
    TimelineAggregator,
    get_contact_timeline,
    resolve_related_contact_ids,
)
from .errors import AuthorizationError, CrmError, DataServiceError, format_error_for_user
from .events import EntityChanged, EventBus, Topic
from .factory import build_context, build_data_service
from .models import CalendarEvent, ContactPropertyLink, ContactRecord, TimelineItem
from .session import AuthSession, CrmContext

__all__ = [
    "AuthSession",
    "AuthorizationError",
    "CalendarEvent",
    "ConfigurationError",
    "ContactPropertyLink",
    "ContactRecord",
    "ContactStatusEngine",
    "CrmContext",
    "CrmError",
    "DataService",
    "DataServiceError",
    "EntityChanged",
    "EventBus",
    "Filter",
    "RestDataService",
    "Settings",
    "Timeline",
    "TimelineAggregator",
    "TimelineItem",
    "Topic",
    "build_context",
    "build_data_service",
    "format_error_for_user",
    "get_contact_timeline",
    "load_settings",
    "resolve_related_contact_ids",
]
