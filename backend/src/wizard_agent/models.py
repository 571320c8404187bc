"""Data models for wizard conversations, tool calls and progress events."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

ARTIFACT_SLOTS = ("persona", "problem", "behaviour")

ArtifactSlot = Literal["persona", "problem", "behaviour"]


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    """One function call requested by the chat backend."""

    id: str = ""
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """A single message in a wizard conversation."""

    role: str  # "system" | "user" | "assistant" | "tool"
    content: str = ""
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class Conversation(BaseModel):
    """
    Wizard state stored under `wizard:<id>`.

    `completed` always mirrors whether all three artifacts are present; it is
    recomputed on load and on every artifact write.
    """

    model_config = ConfigDict(populate_by_name=True)

    messages: list[Message] = Field(default_factory=list)
    persona: dict[str, Any] | None = None
    problem: dict[str, Any] | None = None
    behaviour: dict[str, Any] | None = None
    completed: bool = False
    user_token: str | None = Field(default=None, alias="userToken")

    @model_validator(mode="after")
    def _sync_completed(self) -> Conversation:
        self.completed = self.has_all_artifacts()
        return self

    def has_all_artifacts(self) -> bool:
        return all(getattr(self, slot) is not None for slot in ARTIFACT_SLOTS)

    def set_artifact(self, slot: ArtifactSlot, value: dict[str, Any]) -> None:
        if slot not in ARTIFACT_SLOTS:
            raise ValueError(f"Unknown artifact slot: {slot}")
        setattr(self, slot, value)
        self.completed = self.has_all_artifacts()

    def artifacts(self) -> dict[str, Any]:
        return {slot: getattr(self, slot) for slot in ARTIFACT_SLOTS}

    def append(self, message: Message) -> None:
        self.messages.append(message)

    def to_store(self) -> dict[str, Any]:
        """Serialize with wire field names (`userToken`)."""
        return self.model_dump(by_alias=True, exclude_none=False)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@dataclass
class ToolResult:
    """Result of a single tool execution."""

    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"success": self.success, **self.data}
        if self.error is not None:
            out["error"] = self.error
        return out

    @classmethod
    def failure(cls, error: str) -> ToolResult:
        return cls(success=False, error=error)


@dataclass
class ToolDef:
    """Tool definition for the orchestrator and the chat backend."""

    name: str
    description: str
    parameters: dict[str, Any]  # JSON Schema

    def to_tool_schema(self) -> dict[str, Any]:
        """OpenAI-style function-calling schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


def make_event(type_: str, **fields: Any) -> dict[str, Any]:
    """Progress event as sent over the stream: `{"type": ..., ...}`."""
    return {"type": type_, **fields}
