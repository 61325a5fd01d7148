# Gemini service wrapper
# Same contract as the OpenAI wrapper: conversation + tools in, normalised Turn out
import json
import logging
import uuid
from functools import lru_cache
from typing import Any, Dict, List, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

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


@lru_cache()
def get_client() -> genai.Client:
    return genai.Client(api_key=get_settings().gemini_api_key)


def to_function_declarations(tools: Sequence[ToolDefinition]) -> List[Dict[str, Any]]:
    """Define the function declarations for the tool catalog"""
    declarations = []
    for tool in tools:
        declaration: Dict[str, Any] = {"name": tool.name, "description": tool.description}
        # Gemini rejects OBJECT schemas without properties
        if tool.properties:
            declaration["parameters"] = tool.input_schema
        declarations.append(declaration)
    return declarations


def _decode_result(content: str) -> Dict[str, Any]:
    try:
        decoded = json.loads(content)
    except json.JSONDecodeError:
        return {"result": content}
    return decoded if isinstance(decoded, dict) else {"result": decoded}


def to_gemini_contents(conversation: Conversation) -> List[types.Content]:
    """Build the conversation history in Gemini's user/model format"""
    contents = []
    for message in conversation:
        role = "model" if message.role == "assistant" else "user"
        if isinstance(message.content, str):
            contents.append(types.Content(role=role, parts=[types.Part.from_text(text=message.content)]))
            continue

        parts = []
        for block in message.content:
            if isinstance(block, TextBlock):
                parts.append(types.Part.from_text(text=block.text))
            elif isinstance(block, ToolUseBlock):
                parts.append(types.Part(function_call=types.FunctionCall(id=block.id, name=block.name, args=block.input)))
            elif isinstance(block, ToolResultBlock):
                parts.append(types.Part(function_response=types.FunctionResponse(
                    id=block.tool_use_id, name=block.name, response=_decode_result(block.content),
                )))
        contents.append(types.Content(role=role, parts=parts))
    return contents


def parse_response(response) -> Turn:
    """Convert a Gemini response into a Turn"""
    if not getattr(response, "candidates", None):
        raise ProviderError("Gemini response has no candidates")
    candidate = response.candidates[0]
    parts = candidate.content.parts if candidate.content and candidate.content.parts else []

    blocks: List[Any] = []
    for part in parts:
        if part.function_call:
            call = part.function_call
            blocks.append(ToolUseBlock(
                id=call.id or f"call_{uuid.uuid4().hex[:12]}",
                name=call.name,
                input=dict(call.args or {}),
            ))
        elif part.text:
            blocks.append(TextBlock(text=part.text))

    if any(isinstance(b, ToolUseBlock) for b in blocks):
        stop_reason = TOOL_USE
    elif candidate.finish_reason == types.FinishReason.MAX_TOKENS:
        stop_reason = MAX_TOKENS
    else:
        stop_reason = END_TURN
    return Turn(content=blocks, stop_reason=stop_reason)


async def chat_completion(conversation: Conversation, tools: Sequence[ToolDefinition], system_prompt: str) -> Turn:
    """
    Ask Gemini for the next turn

    Args:
        conversation: Running conversation, user/assistant messages only
        tools: Tool definitions advertised to the model
        system_prompt: Static system instructions

    Returns:
        The normalised turn
    """
    settings = get_settings()
    config = types.GenerateContentConfig(
        system_instruction=system_prompt,
        max_output_tokens=settings.max_output_tokens,
        tools=[types.Tool(function_declarations=to_function_declarations(tools))] if tools else None,
        # The conversation loop runs the tools itself
        automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
    )
    try:
        response = await get_client().aio.models.generate_content(
            model=settings.gemini_model,
            contents=to_gemini_contents(conversation),
            config=config,
        )
    except (genai_errors.APIError, httpx.HTTPError, ValueError) as e:
        logger.error(f"[GEMINI] Generate content failed: {e}")
        raise ProviderError(str(e)) from e

    turn = parse_response(response)
    logger.info(f"[GEMINI] Chat response - Tool calls: {len(turn.tool_invocations)}, Stop: {turn.stop_reason}, Messages: {len(conversation)}")
    return turn
