"""Data models for provider session handles and persisted session records."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Session handles
# ---------------------------------------------------------------------------


class SessionHandle(BaseModel):
    """
    Provider-specific handle returned by `create_session`.

    Assistant-style providers fill `assistant_id` + `thread_id`; response-style
    providers fill `conversation_id` + `instructions`.
    """

    assistant_id: str | None = None
    thread_id: str | None = None
    conversation_id: str | None = None
    instructions: str | None = None

    @classmethod
    def from_session_data(cls, data: dict[str, Any]) -> SessionHandle:
        """Accept either snake_case handle dumps or the camelCase session hash."""

        def pick(snake: str, camel: str) -> str | None:
            return data.get(snake) or data.get(camel) or None

        return cls(
            assistant_id=pick("assistant_id", "assistantId"),
            thread_id=pick("thread_id", "threadId"),
            conversation_id=pick("conversation_id", "conversationId"),
            instructions=pick("instructions", "instructions"),
        )

    @property
    def is_thread(self) -> bool:
        return bool(self.assistant_id and self.thread_id)

    @property
    def is_conversation(self) -> bool:
        return bool(self.conversation_id)


class SessionRecord(BaseModel):
    """Session hash stored under `session:<id>`."""

    session_id: str
    model_name: str
    handle: SessionHandle = Field(default_factory=SessionHandle)
    created_at: int = Field(default_factory=lambda: int(time.time() * 1000))

    def to_hash(self) -> dict[str, str]:
        """Flatten to the wire field names; absent handle fields are stored as ''."""
        return {
            "sessionId": self.session_id,
            "modelName": self.model_name,
            "assistantId": self.handle.assistant_id or "",
            "threadId": self.handle.thread_id or "",
            "conversationId": self.handle.conversation_id or "",
            "instructions": self.handle.instructions or "",
            "createdAt": str(self.created_at),
        }

    @classmethod
    def from_hash(cls, data: dict[str, str]) -> SessionRecord:
        created = data.get("createdAt") or "0"
        return cls(
            session_id=data.get("sessionId", ""),
            model_name=data.get("modelName", ""),
            handle=SessionHandle(
                assistant_id=data.get("assistantId") or None,
                thread_id=data.get("threadId") or None,
                conversation_id=data.get("conversationId") or None,
                instructions=data.get("instructions") or None,
            ),
            created_at=int(created) if created.isascii() and created.isdigit() else 0,
        )


# ---------------------------------------------------------------------------
# Registry results
# ---------------------------------------------------------------------------


@dataclass
class SmokeTestResult:
    """Outcome of a provider self-test."""

    success: bool = True
    errors: list[str] = field(default_factory=list)

    def fail(self, error: str) -> None:
        self.success = False
        self.errors.append(error)

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True}
        return {"success": False, "errors": list(self.errors)}
