# Conversation loop
# Drives the model through as many turns as it needs within one chat request:
# request a turn, dispatch its text and tool invocations in order, feed the
# tool results back, and stop once the model is done.

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Sequence

from ad_pilot.core.errors import ProviderError
from ad_pilot.models.schemas import (
    END_TURN,
    Conversation,
    DataBearingResult,
    ErrorEvent,
    Message,
    StreamEvent,
    TextBlock,
    TextEvent,
    ToolDefinition,
    ToolResult,
    ToolResultBlock,
    ToolUseBlock,
    Turn,
    WidgetEvent,
    encode_tool_result,
)
from ad_pilot.services.tool_executor import ToolExecutor

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = "Sorry, I encountered an error processing your request."

CompletionFn = Callable[[Conversation, Sequence[ToolDefinition], str], Awaitable[Turn]]
DisconnectCheck = Callable[[], Awaitable[bool]]


def result_events(result: ToolResult) -> List[StreamEvent]:
    """Stream events for one tool result: widget, then text, then error text"""
    events: List[StreamEvent] = []
    if result.widget is not None:
        events.append(WidgetEvent(widget=result.widget))
    if isinstance(result, DataBearingResult):
        if result.text:
            events.append(TextEvent(content=result.text))
        if result.error:
            events.append(ErrorEvent(message=result.error))
    return events


def append_turn(conversation: Conversation, turn: Turn, results: Sequence[ToolResultBlock]) -> Conversation:
    """New conversation with the assistant turn and its tool results appended"""
    return conversation + (
        Message(role="assistant", content=list(turn.content)),
        Message(role="user", content=list(results)),
    )


class ConversationLoop:
    """
    Turn driver for one chat request

    `run` is an async generator of stream events. The conversation passed in
    is never mutated; every iteration works on a new tuple.
    """

    def __init__(
        self,
        complete: CompletionFn,
        executor: ToolExecutor,
        system_prompt: str,
        max_tool_rounds: int = 8,
        parallel_tools: bool = False,
    ):
        self.complete = complete
        self.executor = executor
        self.system_prompt = system_prompt
        self.max_tool_rounds = max_tool_rounds
        self.parallel_tools = parallel_tools

    async def run(
        self,
        conversation: Conversation,
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> AsyncIterator[StreamEvent]:
        tools = self.executor.list_tools()
        rounds = 0

        while True:
            if is_disconnected is not None and await is_disconnected():
                logger.info(f"[LOOP] Caller disconnected after {rounds} tool rounds, stopping")
                return

            try:
                turn = await self.complete(conversation, tools, self.system_prompt)
            except ProviderError as e:
                logger.error(f"[LOOP] Provider failure on round {rounds + 1}: {e}")
                yield ErrorEvent(message=APOLOGY_MESSAGE)
                return

            results: List[ToolResultBlock] = []
            async for event in self.dispatch(turn, results):
                yield event

            if not results or turn.stop_reason == END_TURN:
                logger.info(f"[LOOP] Done after {rounds + 1} model turns")
                return

            rounds += 1
            if rounds >= self.max_tool_rounds:
                logger.warning(f"[LOOP] Tool round limit ({self.max_tool_rounds}) reached, stopping")
                yield ErrorEvent(
                    message=f"I had to stop after {self.max_tool_rounds} tool steps. Please ask again to continue."
                )
                return

            conversation = append_turn(conversation, turn, results)

    async def dispatch(self, turn: Turn, results: List[ToolResultBlock]) -> AsyncIterator[StreamEvent]:
        """
        Emit a turn's blocks in model order

        Tool results are collected into `results` in invocation order. With
        parallel tools every invocation starts up front, but each result is
        still emitted at its own position.
        """
        # Indexed by position; invocation ids may repeat within a turn
        pending: List[asyncio.Future] = []
        if self.parallel_tools:
            pending = [
                asyncio.ensure_future(self.executor.execute(call.name, call.input))
                for call in turn.tool_invocations
            ]

        position = 0
        for block in turn.content:
            if isinstance(block, TextBlock):
                if block.text:
                    yield TextEvent(content=block.text)
            elif isinstance(block, ToolUseBlock):
                if pending:
                    result = await pending[position]
                else:
                    result = await self.executor.execute(block.name, block.input)
                position += 1
                logger.info(f"[LOOP] Tool {block.name} ({block.id}) finished")
                for event in result_events(result):
                    yield event
                results.append(ToolResultBlock(
                    tool_use_id=block.id,
                    name=block.name,
                    content=encode_tool_result(result),
                ))
