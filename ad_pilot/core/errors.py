# Exception types shared across the chat backend
# Tool failures are recovered locally, provider failures end the current
# request, flow errors are mapped to HTTP 409 by the flow router


class AdPilotError(Exception):
    """Base class for all Ad Pilot errors"""


class UnknownToolError(AdPilotError):
    """The model asked for a tool that is not in the active catalog"""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolBackendError(AdPilotError):
    """An outbound call made by a tool handler failed"""


class ProviderError(AdPilotError):
    """The LLM provider call failed or returned something unusable"""


class MalformedRequestError(AdPilotError):
    """The caller payload could not be parsed or validated"""


class FlowTransitionError(AdPilotError):
    """A guided flow transition is not legal from the current state"""


class InvalidFlowStepError(FlowTransitionError):
    pass


class NestedDetourError(FlowTransitionError):
    pass


class EmptyDetourStackError(FlowTransitionError):
    pass


class ConcurrentUpdateError(AdPilotError):
    """The stored flow state changed since it was read"""


class StreamClosedError(AdPilotError):
    """An event was emitted after the stream sentinel"""
