"""LEIA creation wizard: tool-calling loop, tools, catalog client and conversation storage."""

from .catalog import CatalogClient
from .conversations import ConversationRepository, new_conversation
from .llm import ChatClient, OpenAIChatClient
from .loop import TurnOptions, apply_artifacts, run_turn, stream_turn
from .models import Conversation, Message, ToolCall, ToolResult
from .tools import BaseTool, ToolContext, get_wizard_tools

__all__ = [
    "BaseTool",
    "CatalogClient",
    "ChatClient",
    "Conversation",
    "ConversationRepository",
    "Message",
    "OpenAIChatClient",
    "ToolCall",
    "ToolContext",
    "ToolResult",
    "TurnOptions",
    "apply_artifacts",
    "get_wizard_tools",
    "new_conversation",
    "run_turn",
    "stream_turn",
]
