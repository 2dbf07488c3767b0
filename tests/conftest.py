from __future__ import annotations

import pytest

from estate_crm.events import EventBus, Topic
from estate_crm.session import AuthSession
from fakes import InMemoryDataService


@pytest.fixture()
def service() -> InMemoryDataService:
    return InMemoryDataService()


@pytest.fixture()
def session() -> AuthSession:
    return AuthSession(user_id="agent-1", access_token="token-1", email="agent@example.com")


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def published(bus: EventBus):
    """Every event delivered on ``bus``, in order."""

    received = []
    for topic in Topic:
        bus.subscribe(topic, received.append)
    return received
