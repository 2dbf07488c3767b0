"""Factory helpers for constructing the data service and CRM context from settings."""
from __future__ import annotations

from typing import Optional

import httpx

from .client import RestDataService
from .config import Settings
from .events import EventBus
from .session import AuthSession, CrmContext


def build_data_service(settings: Settings, *, transport: Optional[httpx.BaseTransport] = None) -> RestDataService:
    """Instantiate the REST data service described by ``settings``."""

    settings.require_connection()
    return RestDataService(
        settings.api_url,
        settings.api_key,
        access_token=settings.access_token,
        timeout=settings.http_timeout,
        transport=transport,
    )


def build_context(
    settings: Settings,
    *,
    transport: Optional[httpx.BaseTransport] = None,
    events: Optional[EventBus] = None,
) -> CrmContext:
    """Bundle a data service, the configured session and an event bus."""

    session = AuthSession(user_id=settings.user_id or None, access_token=settings.access_token or None)
    return CrmContext(
        service=build_data_service(settings, transport=transport),
        session=session,
        events=events or EventBus(),
        settings=settings,
    )


__all__ = ["build_context", "build_data_service"]
