"""Wizard endpoints: create a LEIA-building conversation and stream its turns over SSE."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from src.errors import LeiaRunnerError, NotFoundError, ProviderError
from src.model_registry.providers.wizard import WizardProvider
from src.model_registry.registry import ProviderRegistry
from src.wizard_agent.conversations import ConversationRepository
from src.wizard_agent.models import make_event

from .deps import get_conversations, get_registry, require_runner_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wizard", tags=["wizard"], dependencies=[Depends(require_runner_key)])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
_TERMINAL_EVENTS = frozenset({"error", "complete"})


class CreateWizardSessionRequest(BaseModel):
    """Request body for POST /wizard/sessions."""

    model_config = ConfigDict(populate_by_name=True)

    user_prompt: str = Field(..., alias="userPrompt", min_length=1)
    user_token: str | None = Field(None, alias="userToken", description="Designer user token for catalog search")


class WizardMessageRequest(BaseModel):
    message: str = Field(..., min_length=1)


def _sse(event: dict[str, Any]) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False, default=str)}\n\n"


def _wizard_provider(registry: ProviderRegistry) -> WizardProvider:
    provider = registry.get_model("wizard")
    if not isinstance(provider, WizardProvider):
        raise ProviderError("The 'wizard' provider does not support streaming")
    return provider


async def _wizard_events(
    session_id: str,
    registry: ProviderRegistry,
    conversations: ConversationRepository,
) -> AsyncIterator[str]:
    """
    One wizard turn as SSE frames.

    `connected` comes first; the stream stops after the first `error` or
    `complete` event and ends with `stream_end` once the conversation
    has been saved. A client that disconnects cancels the turn.
    """
    try:
        conversation = await conversations.load(session_id)
    except NotFoundError as e:
        yield _sse(make_event("error", message=e.message))
        return
    except LeiaRunnerError as e:
        logger.error("Wizard session %s could not be loaded: %s", session_id, e)
        yield _sse(make_event("error", message=e.message, code=e.error))
        return

    yield _sse(make_event("connected", sessionId=session_id))

    cancel = asyncio.Event()
    try:
        provider = _wizard_provider(registry)
        async with contextlib.aclosing(provider.stream(conversation, cancel=cancel)) as events:
            async for event in events:
                yield _sse(event)
                if event["type"] in _TERMINAL_EVENTS:
                    break
        await conversations.save(session_id, conversation)
    except LeiaRunnerError as e:
        logger.error("Wizard stream for %s failed: %s", session_id, e)
        yield _sse(make_event("error", message=e.message, code=e.error))
        return
    finally:
        cancel.set()

    yield _sse(make_event("stream_end"))


@router.post("/sessions")
async def create_wizard_session(
    request: CreateWizardSessionRequest,
    conversations: ConversationRepository = Depends(get_conversations),
) -> dict[str, Any]:
    session_id, _ = await conversations.create(request.user_prompt, request.user_token)
    return {"sessionId": session_id, "message": "Wizard session created"}


@router.get("/sessions/{session_id}/stream")
async def stream_wizard_session(
    session_id: str,
    registry: ProviderRegistry = Depends(get_registry),
    conversations: ConversationRepository = Depends(get_conversations),
) -> StreamingResponse:
    """Run the next wizard turn and stream its progress as server-sent events."""
    return StreamingResponse(
        _wizard_events(session_id, registry, conversations),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/sessions/{session_id}/message")
async def add_wizard_message(
    session_id: str,
    request: WizardMessageRequest,
    conversations: ConversationRepository = Depends(get_conversations),
) -> dict[str, Any]:
    """Queue user feedback; the next stream request runs the turn."""
    await conversations.append_user_message(session_id, request.message)
    return {"success": True, "message": "Message added to conversation"}


@router.get("/sessions/{session_id}")
async def get_wizard_session(
    session_id: str,
    conversations: ConversationRepository = Depends(get_conversations),
) -> dict[str, Any]:
    conversation = await conversations.load(session_id)
    return {"sessionId": session_id, **conversation.model_dump(include={"completed", "persona", "problem", "behaviour"})}


@router.delete("/sessions/{session_id}")
async def delete_wizard_session(
    session_id: str,
    conversations: ConversationRepository = Depends(get_conversations),
) -> dict[str, Any]:
    deleted = await conversations.delete(session_id)
    if not deleted:
        logger.info("Wizard session %s was already gone", session_id)
    return {"success": True, "message": "Session deleted"}
