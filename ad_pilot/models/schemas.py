# Pydantic models for the chat loop
# Messages, content blocks, tool definitions/results and stream events

import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Stop reasons a provider turn is normalised to
END_TURN = "end_turn"
TOOL_USE = "tool_use"
MAX_TOKENS = "max_tokens"

CONVERSATION_ROLES = ("user", "assistant")


class TextBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """A tool invocation emitted by the model"""
    model_config = ConfigDict(frozen=True)

    type: Literal["tool_use"] = "tool_use"
    # Invocation id, used to key the matching result
    id: str
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    # Tool name, some providers need it next to the result
    name: str
    # JSON encoding of the tool result
    content: str


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


class Message(BaseModel):
    """A single conversation message, never edited once sent"""
    model_config = ConfigDict(frozen=True)

    # 'user' or 'assistant'; inbound payloads may carry other roles which are dropped
    role: str
    # Plain text, or content blocks for tool turns
    content: Union[str, List[ContentBlock]]


# Append-only conversation log
Conversation = Tuple[Message, ...]


class ChatRequest(BaseModel):
    """Request model for the chat endpoint"""
    # Raw entries; only user and assistant messages are validated as Message
    messages: List[Dict[str, Any]]
    # "openai" or "gemini"; falls back to the configured provider
    ai_provider: Optional[str] = None
    # Session whose guided flow state should be shared with the model
    session_id: Optional[str] = None
    # Whether this week's plan includes educational videos (topic step)
    has_educational_content: bool = True

    def conversation(self) -> Conversation:
        """
        Messages that are forwarded to the model

        Entries with any other role are dropped without looking at their content.
        Raises pydantic.ValidationError when a kept entry is malformed.
        """
        return tuple(
            Message.model_validate(m) for m in self.messages if m.get("role") in CONVERSATION_ROLES
        )


class ToolDefinition(BaseModel):
    """A named capability advertised to the model"""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    input_schema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    @property
    def required(self) -> List[str]:
        return list(self.input_schema.get("required", []))

    @property
    def properties(self) -> Dict[str, Any]:
        return dict(self.input_schema.get("properties", {}))


class WidgetPayload(BaseModel):
    """Which widget to render; the data is opaque to the loop"""
    type: str
    data: Optional[Dict[str, Any]] = None


class DataBearingResult(BaseModel):
    """Result of a tool that ran business logic (legacy catalog)"""
    kind: Literal["data"] = "data"
    widget: Optional[WidgetPayload] = None
    text: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _has_payload(self):
        if self.widget is None and self.text is None and self.error is None:
            raise ValueError("tool result needs a widget, text or error")
        return self


class SignalOnlyResult(BaseModel):
    """Result of a tool that only names the widget to show"""
    kind: Literal["signal"] = "signal"
    widget: WidgetPayload


ToolResult = Union[DataBearingResult, SignalOnlyResult]


def error_result(message: str) -> DataBearingResult:
    return DataBearingResult(error=message)


def encode_tool_result(result: ToolResult) -> str:
    """JSON sent back to the model as the tool result content"""
    return json.dumps(result.model_dump(exclude_none=True, exclude={"kind"}), ensure_ascii=False)


class Turn(BaseModel):
    """One model response within a request"""
    content: List[ContentBlock] = Field(default_factory=list)
    stop_reason: str = END_TURN

    @property
    def tool_invocations(self) -> List[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]


class TextEvent(BaseModel):
    kind: Literal["text"] = "text"
    content: str


class WidgetEvent(BaseModel):
    kind: Literal["widget"] = "widget"
    widget: WidgetPayload


class ErrorEvent(BaseModel):
    kind: Literal["error"] = "error"
    message: str


StreamEvent = Union[TextEvent, WidgetEvent, ErrorEvent]
