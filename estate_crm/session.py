"""Explicit authentication session and the service bundle handed to consumers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .client import DataService
from .config import Settings
from .errors import AuthorizationError
from .events import EventBus


@dataclass(frozen=True)
class AuthSession:
    """The signed-in identity on whose behalf requests are made."""

    user_id: Optional[str] = None
    access_token: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    def require_user(self) -> str:
        if not self.user_id:
            raise AuthorizationError("User not authenticated")
        return self.user_id

    def bearer_headers(self) -> dict:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}


@dataclass
class CrmContext:
    """Everything a CRM service may depend on, passed explicitly."""

    service: DataService
    session: AuthSession = field(default_factory=AuthSession)
    events: EventBus = field(default_factory=EventBus)
    settings: Settings = field(default_factory=Settings)


__all__ = ["AuthSession", "CrmContext"]
