"""Wizard conversation persistence under `wizard:<id>`."""

from __future__ import annotations

import logging
import uuid

from pydantic import ValidationError as SchemaError

from ..errors import NotFoundError, PersistenceError
from ..session_store.keys import wizard_key
from ..session_store.store import SessionStore
from .config import CONVERSATION_TTL_SECONDS
from .models import Conversation, Message
from .prompts import get_wizard_system_prompt

logger = logging.getLogger(__name__)


def new_conversation(user_prompt: str, user_token: str | None = None) -> Conversation:
    """Conversation seeded with the wizard system prompt and the user's request."""
    return Conversation(
        messages=[
            Message(role="system", content=get_wizard_system_prompt()),
            Message(role="user", content=user_prompt),
        ],
        user_token=user_token,
    )


class ConversationRepository:
    """
    Load/save wizard conversations.

    Every save rewrites the whole conversation and resets its one-hour TTL.
    Concurrent writers to the same id are not coordinated: the last save wins.
    """

    def __init__(self, store: SessionStore, ttl_seconds: int = CONVERSATION_TTL_SECONDS) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def create(self, user_prompt: str, user_token: str | None = None) -> tuple[str, Conversation]:
        session_id = str(uuid.uuid4())
        conversation = new_conversation(user_prompt, user_token)
        await self.save(session_id, conversation)
        logger.info("Created wizard session %s", session_id)
        return session_id, conversation

    async def load(self, session_id: str) -> Conversation:
        data = await self.store.get_json(wizard_key(session_id))
        if data is None:
            raise NotFoundError("Session not found", details={"sessionId": session_id})
        try:
            return Conversation.model_validate(data)
        except SchemaError as e:
            raise PersistenceError(f"Stored wizard session {session_id} is corrupt") from e

    async def save(self, session_id: str, conversation: Conversation) -> None:
        await self.store.put_json(wizard_key(session_id), conversation.to_store(), self.ttl_seconds)

    async def append_user_message(self, session_id: str, message: str) -> Conversation:
        conversation = await self.load(session_id)
        conversation.append(Message(role="user", content=message))
        await self.save(session_id, conversation)
        return conversation

    async def delete(self, session_id: str) -> bool:
        return await self.store.delete(wizard_key(session_id)) > 0
