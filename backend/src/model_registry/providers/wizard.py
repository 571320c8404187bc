"""Wizard provider: one `send_message` runs one turn of the LEIA creation loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as SchemaError

from ...errors import ProviderError, ValidationError
from ...wizard_agent.catalog import CatalogClient
from ...wizard_agent.conversations import new_conversation
from ...wizard_agent.llm import ChatClient, OpenAIChatClient
from ...wizard_agent.loop import TurnOptions, run_turn, stream_turn
from ...wizard_agent.models import Conversation
from ...wizard_agent.tools import BaseTool, ToolContext, get_wizard_tools
from .base import ModelProvider

if TYPE_CHECKING:
    from ..registry import ProviderRegistry

logger = logging.getLogger(__name__)


class WizardProvider(ModelProvider):
    """
    Provider whose session data is a wizard Conversation.

    The tools ask the registry's default provider for analysis and validation,
    so the registry must be bound before the first turn.
    """

    name = "wizard"

    def __init__(
        self,
        registry: ProviderRegistry | None = None,
        chat: ChatClient | None = None,
        catalog: CatalogClient | None = None,
        options: TurnOptions | None = None,
    ) -> None:
        self.registry = registry
        self.chat = chat or OpenAIChatClient()
        self.catalog = catalog or CatalogClient()
        self.options = options or TurnOptions()

    def bind(self, registry: ProviderRegistry) -> None:
        self.registry = registry

    def tools_for(self, conversation: Conversation) -> list[BaseTool]:
        if self.registry is None:
            raise ProviderError("Wizard provider is not bound to a registry")
        context = ToolContext(
            registry=self.registry,
            catalog=self.catalog,
            chat=self.chat,
            user_token=conversation.user_token,
        )
        return get_wizard_tools(context)

    def _options(self, cancel: asyncio.Event | None) -> TurnOptions:
        return TurnOptions(
            model=self.options.model,
            max_iterations=self.options.max_iterations,
            parallel_tools=self.options.parallel_tools,
            cancel=cancel,
        )

    async def create_session(self, *, instructions: str, session_id: str | None = None) -> dict[str, Any]:
        return new_conversation(instructions).to_store()

    async def send_message(
        self,
        *,
        message: str | None,
        session_data: dict[str, Any],
        session_id: str | None = None,
    ) -> dict[str, Any]:
        """Run a full turn and return its events plus the updated conversation."""
        try:
            conversation = Conversation.model_validate(session_data)
        except SchemaError as e:
            raise ValidationError("Session data is not a wizard conversation") from e

        events = [
            event
            async for event in run_turn(
                conversation,
                message,
                chat=self.chat,
                tools=self.tools_for(conversation),
                options=self._options(None),
            )
        ]
        replies = [e["content"] for e in events if e["type"] == "message" and e.get("content")]
        if not replies:
            errors = [e["message"] for e in events if e["type"] == "error"]
            if errors:
                raise ProviderError(errors[-1])
        return {
            "message": replies[-1] if replies else "",
            "events": events,
            "session_data": conversation.to_store(),
        }

    def stream(
        self,
        conversation: Conversation,
        message: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Progress events for one turn; the conversation is updated in place."""
        return stream_turn(
            conversation,
            message,
            chat=self.chat,
            tools=self.tools_for(conversation),
            options=self._options(cancel),
        )
