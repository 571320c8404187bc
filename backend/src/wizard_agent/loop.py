"""Bounded tool-calling loop that drives one wizard turn."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from ..errors import IterationExhaustedError, LeiaRunnerError, ToolExecutionError
from .config import CANCELLED_MESSAGE, ITERATION_LIMIT_MESSAGE, MAX_ITERATIONS, STREAM_QUEUE_SIZE
from .llm import ChatClient
from .models import ARTIFACT_SLOTS, Conversation, Message, ToolCall, ToolResult, make_event
from .tools import BaseTool

logger = logging.getLogger(__name__)

_GENERATED_SLOTS = {
    "generate_persona": "persona",
    "generate_problem": "problem",
    "generate_behaviour": "behaviour",
}

# Raised by a handler building or parsing its own I/O; the call is skipped.
_SKIPPABLE_ERRORS = (ToolExecutionError, KeyError, TypeError, ValueError, AttributeError)


@dataclass
class TurnOptions:
    """Options for one wizard turn."""

    model: str | None = None
    max_iterations: int = MAX_ITERATIONS
    parallel_tools: bool = False
    cancel: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()


def apply_artifacts(conversation: Conversation, tool_name: str, result: ToolResult) -> None:
    """Copy an artifact produced by a successful tool into its conversation slot."""
    if not result.success:
        return
    data = result.data
    if tool_name in _GENERATED_SLOTS:
        slot = _GENERATED_SLOTS[tool_name]
        if isinstance(data.get(slot), dict):
            conversation.set_artifact(slot, data[slot])
    elif tool_name == "refine_component":
        slot = data.get("componentType")
        value = data.get("component")
        if value is None:
            value = data.get("refined")
        if slot in ARTIFACT_SLOTS and isinstance(value, dict):
            conversation.set_artifact(slot, value)
    elif tool_name == "clone_and_modify_leia":
        for slot in ARTIFACT_SLOTS:
            if isinstance(data.get(slot), dict):
                conversation.set_artifact(slot, data[slot])


def _skipped_message(call: ToolCall, reason: str) -> Message:
    # Every tool call id needs a tool-role answer before the next chat request.
    payload = {"success": False, "error": reason}
    return Message(role="tool", content=json.dumps(payload), tool_call_id=call.id, name=call.name)


def _start_event(tool: BaseTool | None, call: ToolCall) -> dict[str, Any]:
    return make_event(
        "function_call_start",
        functionName=call.name,
        functionTitle=tool.title if tool else call.name,
        functionDescription=tool.describe(call.arguments) if tool else "",
        args=call.arguments,
    )


async def _execute(tool: BaseTool | None, call: ToolCall) -> ToolResult | None:
    """Run one tool; None means the call is skipped (unknown tool or a handler I/O failure)."""
    if tool is None:
        return None
    try:
        return await tool.run(call.arguments)
    except _SKIPPABLE_ERRORS:
        logger.exception("Tool %s failed building or parsing its I/O; skipping", call.name)
        return None


def _record(
    conversation: Conversation,
    call: ToolCall,
    tool: BaseTool | None,
    result: ToolResult | None,
) -> dict[str, Any] | None:
    """Append the tool-role message and update artifacts; returns the completion event."""
    if tool is None:
        conversation.append(_skipped_message(call, f"Unknown tool: {call.name}"))
        return None
    if result is None:
        conversation.append(_skipped_message(call, f"Tool {call.name} could not be executed"))
        return None
    payload = result.to_dict()
    conversation.append(
        Message(
            role="tool",
            content=json.dumps(payload, ensure_ascii=False, default=str),
            tool_call_id=call.id,
            name=call.name,
        )
    )
    apply_artifacts(conversation, call.name, result)
    return make_event("function_call_complete", functionName=call.name, result=payload)


async def _dispatch(
    conversation: Conversation,
    tool_calls: list[ToolCall],
    tool_map: dict[str, BaseTool],
    opts: TurnOptions,
) -> AsyncIterator[dict[str, Any]]:
    """Run the tool calls of one response; results are appended in request order."""
    pending: list[tuple[ToolCall, BaseTool | None]] = []
    for index, call in enumerate(tool_calls):
        if opts.cancelled:
            for skipped in [c for c, _ in pending] + tool_calls[index:]:
                conversation.append(_skipped_message(skipped, CANCELLED_MESSAGE))
            yield make_event("error", message=CANCELLED_MESSAGE)
            return
        tool = tool_map.get(call.name)
        yield _start_event(tool, call)
        if tool is None:
            logger.warning("Unknown tool requested: %s", call.name)
        if opts.parallel_tools:
            pending.append((call, tool))
            continue
        event = _record(conversation, call, tool, await _execute(tool, call))
        if event is not None:
            yield event

    if pending:
        results = await asyncio.gather(*(_execute(tool, call) for call, tool in pending))
        for (call, tool), result in zip(pending, results):
            event = _record(conversation, call, tool, result)
            if event is not None:
                yield event


async def run_turn(
    conversation: Conversation,
    user_message: str | None = None,
    *,
    chat: ChatClient,
    tools: list[BaseTool],
    options: TurnOptions | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Run one wizard turn and yield progress events.

    The turn ends on a plain-text reply (with a `complete` event when all three
    artifacts are present), on a provider error, on cancellation, or after
    `max_iterations` chat round trips. The conversation is mutated in place and
    only ever appended to; saving it is the caller's job.
    """
    opts = options or TurnOptions()
    tool_map = {t.name: t for t in tools}
    tool_schemas = [t.to_tool_schema() for t in tools]

    if user_message:
        conversation.append(Message(role="user", content=user_message))

    for _ in range(opts.max_iterations):
        if opts.cancelled:
            yield make_event("error", message=CANCELLED_MESSAGE)
            return

        yield make_event("thinking")
        try:
            content, tool_calls = await chat.chat(conversation.messages, model=opts.model, tools=tool_schemas)
        except LeiaRunnerError as e:
            logger.error("Wizard chat call failed: %s", e)
            yield make_event("error", message=e.message, code=e.error)
            return

        if not tool_calls:
            conversation.append(Message(role="assistant", content=content))
            yield make_event("message", content=content)
            if conversation.has_all_artifacts():
                conversation.completed = True
                yield make_event("complete", leia=conversation.artifacts())
            return

        conversation.append(Message(role="assistant", content=content, tool_calls=tool_calls))
        async for event in _dispatch(conversation, tool_calls, tool_map, opts):
            yield event
            if event["type"] == "error":
                return

    logger.warning("Wizard reached max iterations (%d)", opts.max_iterations)
    exhausted = IterationExhaustedError(ITERATION_LIMIT_MESSAGE)
    yield make_event("error", message=exhausted.message, code=exhausted.error)


async def stream_turn(
    conversation: Conversation,
    user_message: str | None = None,
    *,
    chat: ChatClient,
    tools: list[BaseTool],
    options: TurnOptions | None = None,
    queue_size: int = STREAM_QUEUE_SIZE,
) -> AsyncIterator[dict[str, Any]]:
    """
    Run `run_turn` in a background task feeding a bounded queue.

    Closing this generator early cancels the producer, so an abandoned client
    stops the turn at its next await.
    """
    queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=queue_size)
    done = object()

    async def produce() -> None:
        try:
            async for event in run_turn(conversation, user_message, chat=chat, tools=tools, options=options):
                await queue.put(event)
        except Exception as e:
            await queue.put(e)
            return
        await queue.put(done)

    task = asyncio.create_task(produce())
    try:
        while True:
            item = await queue.get()
            if item is done:
                break
            if isinstance(item, Exception):
                raise item
            yield item
    finally:
        if not task.done():
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
