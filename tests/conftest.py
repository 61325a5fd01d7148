"""
Shared test fixtures: a scripted fake LLM provider, executors for both tool
catalogs and a FastAPI test client wired to them
"""
import json
from typing import Any, Dict, List

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ad_pilot.core.config import Settings, get_settings
from ad_pilot.models.schemas import END_TURN, TOOL_USE, TextBlock, ToolUseBlock, Turn
from ad_pilot.routers import chat, flow
from ad_pilot.services.flow_service import FlowStateStore, get_flow_store
from ad_pilot.services.tool_executor import ToolExecutor, create_tool_executor, get_tool_executor


class ScriptedCompletion:
    """Fake provider: returns prepared turns in order and records every request"""

    def __init__(self, turns=None):
        self.turns = list(turns or [])
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, conversation, tools, system_prompt):
        self.calls.append({
            "conversation": conversation,
            "tools": list(tools),
            "system_prompt": system_prompt,
        })
        if not self.turns:
            raise AssertionError("provider called more often than scripted")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        return turn


class SpyExecutor(ToolExecutor):
    """Executor that records every execute call"""

    def __init__(self, registry):
        super().__init__(registry)
        self.executed: List[str] = []

    async def execute(self, name, arguments=None):
        self.executed.append(name)
        return await super().execute(name, arguments)


def text_turn(text: str, stop_reason: str = END_TURN) -> Turn:
    return Turn(content=[TextBlock(text=text)], stop_reason=stop_reason)


def tool_turn(*calls, text: str = None, stop_reason: str = TOOL_USE) -> Turn:
    """Turn with tool invocations; `calls` are (id, name) or (id, name, input) tuples"""
    blocks: List[Any] = [TextBlock(text=text)] if text else []
    for call in calls:
        call_id, name = call[0], call[1]
        arguments = call[2] if len(call) > 2 else {}
        blocks.append(ToolUseBlock(id=call_id, name=name, input=arguments))
    return Turn(content=blocks, stop_reason=stop_reason)


def parse_sse(body: str) -> List[Any]:
    """Decode an event-stream body into JSON payloads and the [DONE] marker"""
    events = []
    for frame in body.split("\n\n"):
        if not frame.strip():
            continue
        assert frame.startswith("data: "), frame
        data = frame[len("data: "):]
        events.append(data if data == "[DONE]" else json.loads(data))
    return events


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def widget_executor(settings):
    return SpyExecutor(create_tool_executor(settings.model_copy(update={"tool_catalog": "widgets"})).registry)


@pytest.fixture
def data_executor(settings):
    return SpyExecutor(create_tool_executor(settings.model_copy(update={"tool_catalog": "data"})).registry)


@pytest.fixture
def provider():
    return ScriptedCompletion()


@pytest.fixture
def flow_store():
    return FlowStateStore()


@pytest.fixture
def client(settings, widget_executor, provider, flow_store):
    """FastAPI test client with the fake provider behind both provider names"""
    test_app = FastAPI()
    test_app.include_router(chat.router)
    test_app.include_router(flow.router)

    test_app.dependency_overrides[get_settings] = lambda: settings
    test_app.dependency_overrides[get_tool_executor] = lambda: widget_executor
    test_app.dependency_overrides[chat.get_providers] = lambda: {"openai": provider, "gemini": provider}
    test_app.dependency_overrides[get_flow_store] = lambda: flow_store

    with TestClient(test_app) as client:
        yield client

    test_app.dependency_overrides.clear()
