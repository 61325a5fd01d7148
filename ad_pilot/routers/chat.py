# Chat Router Module
# This module handles the streaming chat endpoint: it validates the request,
# picks the AI provider and relays the conversation loop as server-sent events

import logging
from typing import Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse

from ad_pilot.core.config import Settings, get_settings
from ad_pilot.core.errors import MalformedRequestError
from ad_pilot.core.prompts import get_system_prompt
from ad_pilot.models.schemas import ChatRequest
from ad_pilot.services.conversation_service import CompletionFn, ConversationLoop
from ad_pilot.services.flow_service import FlowStateStore, describe_flow, get_flow_store
from ad_pilot.services.gemini_service import chat_completion as gemini_chat_completion
from ad_pilot.services.openai_service import chat_completion as openai_chat_completion
from ad_pilot.services.stream_service import SSE_HEADERS, StreamEmitter
from ad_pilot.services.tool_executor import ToolExecutor, get_tool_executor

logger = logging.getLogger(__name__)

router = APIRouter()

PROVIDERS: Dict[str, CompletionFn] = {
    "openai": openai_chat_completion,
    "gemini": gemini_chat_completion,
}


def get_providers() -> Dict[str, CompletionFn]:
    return PROVIDERS


def _error_response() -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": "Failed to process request"})


@router.post("/api/chat")
async def chat(
    request: Request,
    settings: Settings = Depends(get_settings),
    executor: ToolExecutor = Depends(get_tool_executor),
    providers: Dict[str, CompletionFn] = Depends(get_providers),
    flow_store: FlowStateStore = Depends(get_flow_store),
):
    """
    Stream the assistant's reply to a conversation

    Only user and assistant messages are forwarded to the model. Errors
    before streaming starts produce a JSON 500; errors during the loop are
    reported inside the stream.
    """
    try:
        req = ChatRequest.model_validate(await request.json())
        conversation = req.conversation()
        if not conversation:
            raise MalformedRequestError("No user or assistant messages to answer")

        provider = (req.ai_provider or settings.ai_provider).lower()
        if provider not in providers:
            raise MalformedRequestError(f"Unknown AI provider: {provider}")

        flow_context = None
        if req.session_id:
            state, _ = await flow_store.load(req.session_id)
            flow_context = describe_flow(state, req.has_educational_content, executor.registry.has_tool)

        system_prompt = get_system_prompt(
            executor.registry.catalog.value,
            client_name=settings.client_name,
            flow_context=flow_context,
        )
        loop = ConversationLoop(
            providers[provider],
            executor,
            system_prompt,
            max_tool_rounds=settings.max_tool_rounds,
            parallel_tools=settings.parallel_tool_calls,
        )
    except (ValueError, MalformedRequestError) as e:
        # json.JSONDecodeError and pydantic.ValidationError are ValueErrors
        logger.warning(f"[CHAT] Malformed request: {e}")
        return _error_response()
    except Exception:
        logger.exception("[CHAT] Failed to set up conversation")
        return _error_response()

    dropped = len(req.messages) - len(conversation)
    logger.info(f"[CHAT] Provider: {provider}, Messages: {len(conversation)}, Dropped: {dropped}, Session: {req.session_id}")

    emitter = StreamEmitter()
    events = loop.run(conversation, is_disconnected=request.is_disconnected)
    return StreamingResponse(emitter.relay(events), media_type="text/event-stream", headers=SSE_HEADERS)
