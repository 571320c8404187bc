"""Chat backend for the wizard: tool-calling completions and structured generation."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from main_config import OPENAI_API_KEY

from ..errors import ProviderError, ToolExecutionError
from .config import STRUCTURED_MODEL, WIZARD_CHAT_MODEL
from .models import Message, ToolCall

logger = logging.getLogger(__name__)


class ChatClient(ABC):
    """
    Abstract chat backend. The orchestrator and the generation tools only
    depend on this interface.
    """

    @abstractmethod
    async def chat(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        tools: list[dict[str, Any]] | None = None,
    ) -> tuple[str, list[ToolCall]]:
        """Non-streaming chat. Returns (content, tool_calls)."""
        ...

    @abstractmethod
    async def structured(
        self,
        *,
        system: str,
        prompt: str,
        response_format: dict[str, Any],
        model: str | None = None,
    ) -> dict[str, Any]:
        """Single completion constrained to a JSON schema; returns the parsed object."""
        ...


class OpenAIChatClient(ChatClient):
    """OpenAI-backed chat client using the Chat Completions API."""

    def __init__(
        self,
        default_model: str = WIZARD_CHAT_MODEL,
        structured_model: str = STRUCTURED_MODEL,
        api_key: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.default_model = default_model
        self.structured_model = structured_model
        self.api_key = api_key or OPENAI_API_KEY
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    @staticmethod
    def _to_openai_messages(messages: list[Message]) -> list[dict[str, Any]]:
        """Convert wizard messages into OpenAI chat message dicts."""
        out: list[dict[str, Any]] = []
        for m in messages:
            base: dict[str, Any] = {"role": m.role, "content": m.content or ""}
            if m.role == "assistant" and m.tool_calls:
                base["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                    }
                    for tc in m.tool_calls
                ]
            if m.role == "tool" and m.tool_call_id:
                base["tool_call_id"] = m.tool_call_id
            out.append(base)
        return out

    @staticmethod
    def _parse_tool_calls(choice_message: Any) -> list[ToolCall]:
        """Map OpenAI tool_calls into ToolCall models; unparsable arguments become {}."""
        tool_calls: list[ToolCall] = []
        for tc in getattr(choice_message, "tool_calls", None) or []:
            fn = getattr(tc, "function", None)
            name = getattr(fn, "name", "") if fn is not None else ""
            raw_args = getattr(fn, "arguments", None) if fn is not None else None
            if isinstance(raw_args, str) and raw_args:
                try:
                    params = json.loads(raw_args)
                except json.JSONDecodeError:
                    logger.warning("Tool call %s has unparsable arguments", name)
                    params = {}
            elif isinstance(raw_args, dict):
                params = raw_args
            else:
                params = {}
            if not isinstance(params, dict):
                params = {}
            tool_calls.append(ToolCall(id=getattr(tc, "id", "") or "", name=name or "", arguments=params))
        return tool_calls

    async def chat(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        tools: list[dict[str, Any]] | None = None,
    ) -> tuple[str, list[ToolCall]]:
        params: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": self._to_openai_messages(messages),
        }
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"

        try:
            resp = await self._get_client().chat.completions.create(**params)
        except OpenAIError as e:
            logger.error("Wizard chat completion failed: %s", e)
            raise ProviderError(f"OpenAI chat request failed: {e}") from e
        if not resp.choices:
            return "", []

        choice = resp.choices[0].message
        return choice.content or "", self._parse_tool_calls(choice)

    async def structured(
        self,
        *,
        system: str,
        prompt: str,
        response_format: dict[str, Any],
        model: str | None = None,
    ) -> dict[str, Any]:
        try:
            resp = await self._get_client().chat.completions.create(
                model=model or self.structured_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                response_format=response_format,
            )
        except OpenAIError as e:
            raise ProviderError(f"OpenAI structured generation failed: {e}") from e
        if not resp.choices:
            raise ToolExecutionError("Structured generation returned no choices")
        raw = resp.choices[0].message.content or ""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ToolExecutionError(f"Structured generation returned invalid JSON: {e.msg}") from e
        if not isinstance(data, dict):
            raise ToolExecutionError("Structured generation did not return an object")
        return data
