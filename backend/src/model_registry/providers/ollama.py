"""Ollama provider: local model, history kept in process memory per thread."""

from __future__ import annotations

import logging
import uuid
from typing import Any

import httpx
from ollama import AsyncClient, ResponseError

from main_config import OLLAMA_HOST, OLLAMA_MODEL

from ...errors import ProviderError
from ..models import SessionHandle
from .base import ModelProvider
from .evaluation import build_evaluation_messages, parse_evaluation

logger = logging.getLogger(__name__)

_OLLAMA_ERRORS = (ResponseError, ConnectionError, httpx.HTTPError)


class OllamaProvider(ModelProvider):
    """
    Ollama-backed provider.

    Threads are not persisted: after a restart a known thread id starts again
    from an empty history.
    """

    name = "ollama"

    def __init__(
        self,
        model: str = OLLAMA_MODEL,
        base_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model
        self.base_url = base_url or OLLAMA_HOST
        self._client = client
        self.threads: dict[str, list[dict[str, str]]] = {}

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = AsyncClient(host=self.base_url)
        return self._client

    async def create_session(self, *, instructions: str, session_id: str | None = None) -> dict[str, Any]:
        thread_id = session_id or str(uuid.uuid4())
        self.threads[thread_id] = [{"role": "system", "content": instructions or ""}]
        return SessionHandle(assistant_id=thread_id, thread_id=thread_id).model_dump()

    async def _chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        try:
            response = await self._get_client().chat(model=self.model, messages=messages, **kwargs)
        except _OLLAMA_ERRORS as e:
            logger.error("Ollama chat failed: %s", e)
            raise ProviderError(f"Ollama request failed: {e}") from e
        msg = getattr(response, "message", None)
        return (getattr(msg, "content", None) or "") if msg is not None else ""

    async def send_message(
        self,
        *,
        message: str | None,
        session_data: dict[str, Any],
        session_id: str | None = None,
    ) -> dict[str, Any]:
        handle = SessionHandle.from_session_data(session_data)
        thread_id = handle.thread_id or session_id
        if not thread_id:
            raise ProviderError("Session data has no thread handle")

        thread = self.threads.setdefault(thread_id, [])
        thread.append({"role": "user", "content": message or ""})
        content = await self._chat(list(thread))
        thread.append({"role": "assistant", "content": content})
        return {"message": content}

    async def evaluate_solution(self, *, leia_meta: dict[str, str], result: str) -> dict[str, Any]:
        content = await self._chat(build_evaluation_messages(leia_meta, result), format="json")
        return parse_evaluation(content)
