"""OpenAI Responses API provider: server-side conversation per session."""

from __future__ import annotations

import logging
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from main_config import (
    OPENAI_API_KEY,
    OPENAI_EVALUATION_MODEL,
    OPENAI_PROMPT_ID,
    OPENAI_RESPONSES_MODEL,
)

from ...errors import ProviderError
from ..models import SessionHandle
from .base import ModelProvider
from .evaluation import build_evaluation_messages, parse_evaluation

logger = logging.getLogger(__name__)


class OpenAIResponsesProvider(ModelProvider):
    """
    Provider backed by the Responses API.

    History lives in an OpenAI conversation object; instructions travel with
    every request unless a dashboard prompt id is configured, which wins.
    """

    name = "openai-responses"

    def __init__(
        self,
        model: str = OPENAI_RESPONSES_MODEL,
        evaluation_model: str = OPENAI_EVALUATION_MODEL,
        prompt_id: str | None = OPENAI_PROMPT_ID,
        api_key: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model
        self.evaluation_model = evaluation_model
        self.prompt_id = prompt_id
        self.api_key = api_key or OPENAI_API_KEY
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def create_session(self, *, instructions: str, session_id: str | None = None) -> dict[str, Any]:
        try:
            conversation = await self._get_client().conversations.create()
        except OpenAIError as e:
            logger.error("Error creating Responses API conversation: %s", e)
            raise ProviderError(f"OpenAI conversation creation failed: {e}") from e
        return SessionHandle(conversation_id=conversation.id, instructions=instructions or "").model_dump()

    def _build_request(self, handle: SessionHandle, message: str) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": self.model,
            "conversation": handle.conversation_id,
            "input": [
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": message}],
                }
            ],
        }
        if self.prompt_id:
            params["prompt"] = {"id": self.prompt_id}
        elif handle.instructions:
            params["instructions"] = handle.instructions
        else:
            raise ProviderError("Either OPENAI_PROMPT_ID or session instructions must be provided")
        return params

    @staticmethod
    def _check_status(response: Any) -> None:
        status = getattr(response, "status", None)
        if status == "error" or status == "failed":
            err = getattr(response, "error", None)
            code = getattr(err, "code", None) or "unknown"
            msg = getattr(err, "message", None) or "Unknown error"
            raise ProviderError(f"Response API error ({code}): {msg}")
        if status == "incomplete":
            details = getattr(response, "incomplete_details", None)
            reason = getattr(details, "reason", None) or "unknown"
            raise ProviderError(f"Response incomplete ({reason})")
        if status != "completed":
            raise ProviderError(f"Response failed with status: {status}")

    @staticmethod
    def _extract_text(response: Any) -> str:
        for item in getattr(response, "output", None) or []:
            if getattr(item, "type", None) != "message" or getattr(item, "role", None) != "assistant":
                continue
            for part in getattr(item, "content", None) or []:
                if getattr(part, "type", None) == "output_text" and getattr(part, "text", None):
                    return part.text
            raise ProviderError("No text content found in assistant message")
        raise ProviderError("No assistant message found in response output")

    async def send_message(
        self,
        *,
        message: str | None,
        session_data: dict[str, Any],
        session_id: str | None = None,
    ) -> dict[str, Any]:
        handle = SessionHandle.from_session_data(session_data)
        if not handle.is_conversation:
            raise ProviderError("conversationId is required in session data")

        params = self._build_request(handle, message or "")
        try:
            response = await self._get_client().responses.create(**params)
        except OpenAIError as e:
            logger.error("Error sending message to Responses API: %s", e)
            raise ProviderError(f"OpenAI Responses request failed: {e}") from e

        self._check_status(response)
        return {"message": self._extract_text(response)}

    async def evaluate_solution(self, *, leia_meta: dict[str, str], result: str) -> dict[str, Any]:
        try:
            resp = await self._get_client().chat.completions.create(
                model=self.evaluation_model,
                messages=build_evaluation_messages(leia_meta, result),
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise ProviderError(f"OpenAI evaluation failed: {e}") from e
        if not resp.choices:
            raise ProviderError("OpenAI evaluation returned no choices")
        return parse_evaluation(resp.choices[0].message.content or "")
