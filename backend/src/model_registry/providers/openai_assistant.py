"""OpenAI Assistants API provider: one assistant + thread per session."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from main_config import OPENAI_API_KEY, OPENAI_EVALUATION_MODEL, OPENAI_MODEL

from ...errors import ProviderError
from ..models import SessionHandle
from .base import ModelProvider
from .evaluation import build_evaluation_messages, parse_evaluation

logger = logging.getLogger(__name__)

_PENDING_RUN_STATUSES = ("queued", "in_progress")


class OpenAIAssistantProvider(ModelProvider):
    """Provider backed by OpenAI assistants and threads."""

    name = "openai-assistant"

    def __init__(
        self,
        model: str = OPENAI_MODEL,
        evaluation_model: str = OPENAI_EVALUATION_MODEL,
        api_key: str | None = None,
        poll_interval: float = 1.0,
        client: Any | None = None,
    ) -> None:
        self.model = model
        self.evaluation_model = evaluation_model
        self.api_key = api_key or OPENAI_API_KEY
        self.poll_interval = poll_interval
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def create_session(self, *, instructions: str, session_id: str | None = None) -> dict[str, Any]:
        client = self._get_client()
        try:
            assistant = await client.beta.assistants.create(
                name="LEIA Assistant",
                instructions=instructions or "You are a helpful assistant.",
                tools=[],
                model=self.model,
            )
            thread = await client.beta.threads.create()
        except OpenAIError as e:
            logger.error("Error creating OpenAI assistant session: %s", e)
            raise ProviderError(f"OpenAI assistant session failed: {e}") from e
        return SessionHandle(assistant_id=assistant.id, thread_id=thread.id).model_dump()

    async def send_message(
        self,
        *,
        message: str | None,
        session_data: dict[str, Any],
        session_id: str | None = None,
    ) -> dict[str, Any]:
        handle = SessionHandle.from_session_data(session_data)
        if not handle.is_thread:
            raise ProviderError("Session data has no assistant/thread handle")

        client = self._get_client()
        try:
            await client.beta.threads.messages.create(
                thread_id=handle.thread_id,
                role="user",
                content=message or "",
            )
            run = await client.beta.threads.runs.create(
                thread_id=handle.thread_id,
                assistant_id=handle.assistant_id,
            )
            run = await client.beta.threads.runs.retrieve(run.id, thread_id=handle.thread_id)
            while run.status in _PENDING_RUN_STATUSES:
                await asyncio.sleep(self.poll_interval)
                run = await client.beta.threads.runs.retrieve(run.id, thread_id=handle.thread_id)

            if run.status != "completed":
                raise ProviderError(f"Assistant run finished with status: {run.status}")

            messages = await client.beta.threads.messages.list(thread_id=handle.thread_id)
        except OpenAIError as e:
            logger.error("Error sending message to OpenAI assistant: %s", e)
            raise ProviderError(f"OpenAI assistant request failed: {e}") from e

        # Newest first: the first assistant entry is the reply to this run
        for msg in messages.data:
            if msg.role != "assistant" or not msg.content:
                continue
            text = getattr(msg.content[0], "text", None)
            if text is not None and text.value:
                return {"message": text.value}
        raise ProviderError("No assistant reply found in thread")

    async def evaluate_solution(self, *, leia_meta: dict[str, str], result: str) -> dict[str, Any]:
        client = self._get_client()
        try:
            resp = await client.chat.completions.create(
                model=self.evaluation_model,
                messages=build_evaluation_messages(leia_meta, result),
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise ProviderError(f"OpenAI evaluation failed: {e}") from e
        if not resp.choices:
            raise ProviderError("OpenAI evaluation returned no choices")
        return parse_evaluation(resp.choices[0].message.content or "")
