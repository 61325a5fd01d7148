"""
OpenAI adapter tests: message conversion and completion parsing, no network
"""
import json
from types import SimpleNamespace

import httpx
import openai
import pytest
from openai.types.chat import ChatCompletion

from ad_pilot.core.errors import ProviderError
from ad_pilot.core.tools import DATA_TOOL_DEFINITIONS, WIDGET_TOOL_DEFINITIONS
from ad_pilot.models.schemas import (
    END_TURN,
    MAX_TOKENS,
    TOOL_USE,
    Message,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from ad_pilot.services import openai_service
from ad_pilot.services.openai_service import parse_completion, to_openai_messages, to_openai_tools


def completion(content=None, tool_calls=None, finish_reason="stop"):
    message = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = [
            {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}
            for call_id, name, arguments in tool_calls
        ]
    return ChatCompletion.model_validate({
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1760000000,
        "model": "gpt-4o",
        "choices": [{"index": 0, "finish_reason": finish_reason, "message": message}],
    })


class FakeCompletions:

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


@pytest.mark.unit
class TestConversion:

    def test_tools_become_functions(self):
        tools = to_openai_tools(DATA_TOOL_DEFINITIONS)
        assert [t["function"]["name"] for t in tools] == [d.name for d in DATA_TOOL_DEFINITIONS]
        assert all(t["type"] == "function" for t in tools)
        assert tools[1]["function"]["parameters"]["properties"]["sort_by"]["enum"] == ["daysOnLot", "price", "newest"]

    def test_system_prompt_comes_first(self):
        messages = to_openai_messages((Message(role="user", content="Hi"),), "Be helpful")
        assert messages == [
            {"role": "system", "content": "Be helpful"},
            {"role": "user", "content": "Hi"},
        ]

    def test_tool_turn_and_results(self):
        conversation = (
            Message(role="user", content="Show my bill"),
            Message(role="assistant", content=[
                TextBlock(text="Sure."),
                ToolUseBlock(id="call_1", name="show_billing", input={}),
            ]),
            Message(role="user", content=[
                ToolResultBlock(tool_use_id="call_1", name="show_billing", content='{"widget": {"type": "billing"}}'),
            ]),
        )
        messages = to_openai_messages(conversation, "prompt")
        assert messages[2] == {
            "role": "assistant",
            "content": "Sure.",
            "tool_calls": [{
                "id": "call_1",
                "type": "function",
                "function": {"name": "show_billing", "arguments": "{}"},
            }],
        }
        assert messages[3] == {"role": "tool", "tool_call_id": "call_1", "content": '{"widget": {"type": "billing"}}'}

    def test_assistant_tool_turn_without_text(self):
        conversation = (Message(role="assistant", content=[ToolUseBlock(id="c", name="show_ad_plan")]),)
        assert to_openai_messages(conversation, "p")[1]["content"] is None


@pytest.mark.unit
class TestParseCompletion:

    def test_plain_text(self):
        turn = parse_completion(completion(content="All set."))
        assert turn.content == [TextBlock(text="All set.")]
        assert turn.stop_reason == END_TURN
        assert turn.tool_invocations == []

    def test_tool_calls_keep_order(self):
        turn = parse_completion(completion(
            content="One moment.",
            tool_calls=[("a", "get_inventory", '{"max_results": 3}'), ("b", "get_content_calendar", "")],
            finish_reason="tool_calls",
        ))
        assert turn.stop_reason == TOOL_USE
        assert isinstance(turn.content[0], TextBlock)
        assert [(c.id, c.name, c.input) for c in turn.tool_invocations] == [
            ("a", "get_inventory", {"max_results": 3}),
            ("b", "get_content_calendar", {}),
        ]

    def test_stop_with_tool_calls_is_tool_use(self):
        turn = parse_completion(completion(tool_calls=[("a", "show_billing", "{}")], finish_reason="stop"))
        assert turn.stop_reason == TOOL_USE

    def test_length_is_max_tokens(self):
        assert parse_completion(completion(content="cut", finish_reason="length")).stop_reason == MAX_TOKENS

    @pytest.mark.parametrize("arguments", ["{not json", "[1, 2]"])
    def test_bad_arguments(self, arguments):
        with pytest.raises(ProviderError):
            parse_completion(completion(tool_calls=[("a", "get_inventory", arguments)], finish_reason="tool_calls"))

    def test_no_choices(self):
        with pytest.raises(ProviderError):
            parse_completion(SimpleNamespace(choices=[]))


@pytest.mark.unit
class TestChatCompletion:

    async def test_request_shape(self, monkeypatch):
        completions = FakeCompletions(response=completion(content="Hi there"))
        monkeypatch.setattr(openai_service, "get_client", lambda: fake_client(completions))

        conversation = (Message(role="user", content="Hello"),)
        turn = await openai_service.chat_completion(conversation, WIDGET_TOOL_DEFINITIONS, "prompt")

        assert turn.content == [TextBlock(text="Hi there")]
        assert completions.kwargs["tool_choice"] == "auto"
        assert len(completions.kwargs["tools"]) == len(WIDGET_TOOL_DEFINITIONS)
        assert completions.kwargs["messages"][0] == {"role": "system", "content": "prompt"}
        assert json.dumps(completions.kwargs["messages"])

    async def test_api_failure_becomes_provider_error(self, monkeypatch):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        completions = FakeCompletions(error=openai.APIConnectionError(request=request))
        monkeypatch.setattr(openai_service, "get_client", lambda: fake_client(completions))

        with pytest.raises(ProviderError):
            await openai_service.chat_completion((Message(role="user", content="Hello"),), [], "prompt")
        assert "tools" not in completions.kwargs
