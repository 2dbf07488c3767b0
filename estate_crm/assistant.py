"""Client for the AI assistant function (a chat-completion proxy)."""
from __future__ import annotations

from typing import Any, Mapping, Optional

from .client import DataService
from .errors import DataServiceError
from .models import Functions


def ask_assistant(
    service: DataService,
    message: str,
    conversation_id: Optional[str] = None,
    context: Optional[Mapping[str, Any]] = None,
) -> str:
    if not message or not message.strip():
        raise ValueError("Message must not be empty")

    body = {"message": message, "stream": False, "context": dict(context or {})}
    if conversation_id:
        body["conversationId"] = conversation_id

    data = service.invoke(Functions.AI_ASSISTANT, body)
    reply = _reply_text(data)
    if reply is None:
        raise DataServiceError("Assistant returned no reply", code="EMPTY_REPLY", details={"response": data})
    return reply


def _reply_text(data: Any) -> Optional[str]:
    if isinstance(data, str):
        return data
    if not isinstance(data, dict):
        return None
    if data.get("error"):
        raise DataServiceError(str(data["error"]), code="ASSISTANT_ERROR", details=data)
    choices = data.get("choices") or []
    if choices:
        return ((choices[0] or {}).get("message") or {}).get("content")
    return data.get("reply") or data.get("content")


__all__ = ["ask_assistant"]
