# Guided flow state machine
# Pure transitions over FlowState plus a small versioned session store

import asyncio
import logging
from typing import Callable, Dict, Optional, Tuple

from ad_pilot.core.errors import (
    ConcurrentUpdateError,
    FlowTransitionError,
    InvalidFlowStepError,
    NestedDetourError,
)
from ad_pilot.models.flow_state import (
    DetourStep,
    FlowSelections,
    FlowState,
    GOLDEN_PATH_STEPS,
    GoldenPathStep,
    is_detour_step,
    is_golden_path_step,
    parse_step,
)

logger = logging.getLogger(__name__)


def golden_path(has_educational_content: bool = True) -> Tuple[GoldenPathStep, ...]:
    """Effective step order for a week's plan"""
    if has_educational_content:
        return GOLDEN_PATH_STEPS
    return tuple(step for step in GOLDEN_PATH_STEPS if step is not GoldenPathStep.TOPIC_SELECTOR)


def advance(current, has_educational_content: bool = True) -> GoldenPathStep:
    """
    Next golden path step after `current`

    Unknown values, detour steps and the last step all lead to wrap_up.
    """
    order = golden_path(has_educational_content)
    if not is_golden_path_step(current):
        return GoldenPathStep.WRAP_UP
    step = GoldenPathStep(parse_step(current).value)
    if step not in order:
        # topic_selector while the plan has no educational content
        step = GoldenPathStep.THEME_SELECTOR
    index = order.index(step)
    if index == len(order) - 1:
        return GoldenPathStep.WRAP_UP
    return order[index + 1]


def initial_flow_state() -> FlowState:
    return FlowState()


def enter_detour(state: FlowState, detour_step) -> FlowState:
    """Pause the current golden path step and switch to a detour"""
    if not is_detour_step(detour_step):
        raise InvalidFlowStepError(f"{getattr(detour_step, 'value', detour_step)} is not a detour step")
    if state.in_detour:
        raise NestedDetourError(
            f"Already in detour {state.current_step.value}; resume before starting another"
        )
    stack = state.detour_stack.push(state.current_step)
    logger.info(f"[FLOW] Detour {state.current_step.value} -> {parse_step(detour_step).value}")
    return state.model_copy(update={"current_step": DetourStep(parse_step(detour_step).value), "detour_stack": stack})


def exit_detour(state: FlowState) -> FlowState:
    """Resume the golden path step the last detour interrupted"""
    resumed, stack = state.detour_stack.pop()
    logger.info(f"[FLOW] Resume {resumed.value} after {state.current_step.value}")
    return state.model_copy(update={"current_step": resumed, "detour_stack": stack})


def merge_selections(current: FlowSelections, update: Optional[FlowSelections]) -> FlowSelections:
    """Overlay the fields explicitly set in `update`"""
    if update is None:
        return current
    changes = {name: getattr(update, name) for name in update.model_fields_set}
    return current.model_copy(update=changes)


def complete_step(
    state: FlowState,
    has_educational_content: bool = True,
    selections: Optional[FlowSelections] = None,
) -> FlowState:
    """Mark the current golden path step done and move to the next one"""
    if not is_golden_path_step(state.current_step):
        raise FlowTransitionError(
            f"Cannot complete detour {state.current_step.value}; resume the golden path first"
        )
    step = state.current_step
    completed = state.completed_steps
    if step not in completed:
        completed = completed + (step,)
    next_step = advance(step, has_educational_content)
    logger.info(f"[FLOW] Completed {step.value}, next {next_step.value}")
    return state.model_copy(update={
        "current_step": next_step,
        "completed_steps": completed,
        "selections": merge_selections(state.selections, selections),
    })


WRAP_UP_HINT = "All golden path steps are done; wrap up the week."


def _step_tool(step, has_tool: Optional[Callable[[str], bool]]) -> Optional[str]:
    """Widget tool that shows `step`, when the active catalog has one"""
    if step is GoldenPathStep.WRAP_UP:
        return None
    name = f"show_{step.value}"
    if has_tool is not None and not has_tool(name):
        return None
    return name


def describe_flow(
    state: FlowState,
    has_educational_content: bool = True,
    has_tool: Optional[Callable[[str], bool]] = None,
) -> str:
    """
    Short description of the session's position, shared with the model

    `has_tool` tells which tool names the active catalog offers; only those
    are named. Without it every step's widget tool is assumed available.
    """
    lines = [f"Guided flow: current step is `{state.current_step.value}`."]
    if state.in_detour:
        paused = state.detour_stack.peek()
        tool = _step_tool(paused, has_tool)
        if paused is GoldenPathStep.WRAP_UP:
            lines.append(f"This is a detour; once it is handled, return to wrap-up. {WRAP_UP_HINT}")
        elif tool:
            lines.append(f"This is a detour; once it is handled, return to `{paused.value}` by calling `{tool}`.")
        else:
            lines.append(f"This is a detour; once it is handled, return to `{paused.value}`.")
    elif state.current_step is not GoldenPathStep.WRAP_UP:
        tool = _step_tool(state.current_step, has_tool)
        expected = f"Expected widget: `{tool}`. " if tool else ""
        lines.append(
            f"{expected}After this step is completed the next step is "
            f"`{advance(state.current_step, has_educational_content).value}`."
        )
    else:
        lines.append(WRAP_UP_HINT)
    if state.completed_steps:
        lines.append("Completed: " + ", ".join(step.value for step in state.completed_steps) + ".")
    chosen = state.selections.model_dump(exclude_none=True, by_alias=True)
    if chosen:
        lines.append(f"Selections so far: {chosen}")
    return "\n".join(lines)


class FlowStateStore:
    """
    In-memory stand-in for the external key-value store holding flow states

    States are stored serialized and versioned; `save` is a compare-and-swap
    on the version read by `load`.
    """

    def __init__(self):
        self._states: Dict[str, Tuple[str, int]] = {}
        self._lock = asyncio.Lock()

    async def load(self, session_id: str) -> Tuple[FlowState, int]:
        async with self._lock:
            stored = self._states.get(session_id)
        if stored is None:
            return initial_flow_state(), 0
        raw, version = stored
        return FlowState.model_validate_json(raw), version

    async def save(self, session_id: str, state: FlowState, expected_version: int) -> int:
        async with self._lock:
            _, version = self._states.get(session_id, (None, 0))
            if version != expected_version:
                raise ConcurrentUpdateError(
                    f"Flow state for {session_id} is at version {version}, expected {expected_version}"
                )
            self._states[session_id] = (state.model_dump_json(by_alias=True), version + 1)
            return version + 1

    async def reset(self, session_id: str) -> None:
        async with self._lock:
            self._states.pop(session_id, None)


_flow_store = FlowStateStore()


def get_flow_store() -> FlowStateStore:
    return _flow_store
