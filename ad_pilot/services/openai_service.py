# OpenAI service wrapper
# This module handles all interactions with the OpenAI API: one chat completion
# per loop iteration, with the tool catalog advertised as function tools

import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Sequence

import openai
from openai import AsyncOpenAI

from ad_pilot.core.config import get_settings
from ad_pilot.core.errors import ProviderError
from ad_pilot.models.schemas import (
    END_TURN,
    MAX_TOKENS,
    TOOL_USE,
    Conversation,
    TextBlock,
    ToolDefinition,
    ToolResultBlock,
    ToolUseBlock,
    Turn,
)

logger = logging.getLogger(__name__)

FINISH_REASONS = {
    "stop": END_TURN,
    "tool_calls": TOOL_USE,
    "function_call": TOOL_USE,
    "length": MAX_TOKENS,
}


@lru_cache()
def get_client() -> AsyncOpenAI:
    return AsyncOpenAI(api_key=get_settings().openai_api_key)


def to_openai_tools(tools: Sequence[ToolDefinition]) -> List[Dict[str, Any]]:
    """Define the function schemas the model may call"""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema,
            },
        }
        for tool in tools
    ]


def to_openai_messages(conversation: Conversation, system_prompt: str) -> List[Dict[str, Any]]:
    """Convert the conversation log into chat completion messages"""
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for message in conversation:
        if isinstance(message.content, str):
            messages.append({"role": message.role, "content": message.content})
            continue

        texts = [block.text for block in message.content if isinstance(block, TextBlock)]
        calls = [block for block in message.content if isinstance(block, ToolUseBlock)]
        results = [block for block in message.content if isinstance(block, ToolResultBlock)]

        if message.role == "assistant":
            entry: Dict[str, Any] = {"role": "assistant", "content": "\n".join(texts) or None}
            if calls:
                entry["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.input)},
                    }
                    for call in calls
                ]
            messages.append(entry)
        else:
            # Tool results travel as one "tool" message per call
            for result in results:
                messages.append({"role": "tool", "tool_call_id": result.tool_use_id, "content": result.content})
            if texts:
                messages.append({"role": "user", "content": "\n".join(texts)})
    return messages


def parse_completion(response) -> Turn:
    """Normalise a chat completion into a Turn"""
    try:
        choice = response.choices[0]
    except (AttributeError, IndexError, TypeError) as e:
        raise ProviderError("OpenAI response has no choices") from e

    message = choice.message
    blocks: List[Any] = []
    if message.content:
        blocks.append(TextBlock(text=message.content))
    for call in message.tool_calls or []:
        try:
            arguments = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError as e:
            raise ProviderError(f"Malformed arguments for tool call {call.function.name}") from e
        if not isinstance(arguments, dict):
            raise ProviderError(f"Tool call {call.function.name} arguments are not an object")
        blocks.append(ToolUseBlock(id=call.id, name=call.function.name, input=arguments))

    stop_reason = FINISH_REASONS.get(choice.finish_reason, END_TURN)
    if stop_reason == END_TURN and any(isinstance(b, ToolUseBlock) for b in blocks):
        # Some gateways report "stop" even when tools were called
        stop_reason = TOOL_USE
    return Turn(content=blocks, stop_reason=stop_reason)


async def chat_completion(conversation: Conversation, tools: Sequence[ToolDefinition], system_prompt: str) -> Turn:
    """
    Ask the model for its next turn

    Args:
        conversation: Running conversation, user/assistant messages only
        tools: Tool definitions advertised to the model
        system_prompt: Static system instructions

    Returns:
        The normalised turn

    Raises:
        ProviderError: on any API, network or response-format failure
    """
    settings = get_settings()
    kwargs: Dict[str, Any] = {
        "model": settings.openai_model,
        "messages": to_openai_messages(conversation, system_prompt),
        "max_tokens": settings.max_output_tokens,
    }
    if tools:
        kwargs["tools"] = to_openai_tools(tools)
        kwargs["tool_choice"] = "auto"

    try:
        resp = await get_client().chat.completions.create(**kwargs)
    except openai.OpenAIError as e:
        logger.error(f"[OPENAI] Chat completion failed: {e}")
        raise ProviderError(str(e)) from e

    turn = parse_completion(resp)
    logger.info(f"[OPENAI] Chat response - Tool calls: {len(turn.tool_invocations)}, Stop: {turn.stop_reason}, Messages: {len(conversation)}")
    return turn
