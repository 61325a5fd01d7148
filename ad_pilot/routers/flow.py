# Flow Router Module
# Read and move a session's guided flow state. The browser reports step
# completions and detours here; the chat endpoint reads the same state.

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ad_pilot.core.errors import ConcurrentUpdateError, FlowTransitionError
from ad_pilot.models.flow_state import FlowSelections, FlowState, FlowStep, GoldenPathStep
from ad_pilot.services.flow_service import (
    FlowStateStore,
    advance,
    complete_step,
    enter_detour,
    exit_detour,
    get_flow_store,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/flow")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FlowStateResponse(_CamelModel):
    session_id: str
    version: int
    # Step that follows the current one; the paused step while in a detour
    next_step: GoldenPathStep
    state: FlowState


class CompleteStepRequest(_CamelModel):
    has_educational_content: bool = True
    selections: Optional[FlowSelections] = None
    # Version read by the caller; omitted means "whatever is stored now"
    version: Optional[int] = None


class DetourRequest(_CamelModel):
    step: FlowStep
    version: Optional[int] = None


class ResumeRequest(_CamelModel):
    version: Optional[int] = None


def _response(session_id: str, state: FlowState, version: int, has_educational_content: bool = True) -> FlowStateResponse:
    # A detour hands back to the step it paused
    if state.in_detour:
        next_step = state.detour_stack.peek()
    else:
        next_step = advance(state.current_step, has_educational_content)
    return FlowStateResponse(
        session_id=session_id,
        version=version,
        next_step=next_step,
        state=state,
    )


async def _transition(store: FlowStateStore, session_id: str, expected: Optional[int], change, has_educational_content: bool = True):
    state, version = await store.load(session_id)
    if expected is not None and expected != version:
        raise HTTPException(status_code=409, detail=f"Flow state is at version {version}, not {expected}")
    try:
        new_state = change(state)
        new_version = await store.save(session_id, new_state, version)
    except (FlowTransitionError, ConcurrentUpdateError) as e:
        logger.info(f"[FLOW] Rejected transition for {session_id}: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    return _response(session_id, new_state, new_version, has_educational_content)


@router.get("/{session_id}", response_model=FlowStateResponse, response_model_by_alias=True)
async def get_flow(session_id: str, has_educational_content: bool = True,
                   store: FlowStateStore = Depends(get_flow_store)):
    state, version = await store.load(session_id)
    return _response(session_id, state, version, has_educational_content)


@router.post("/{session_id}/complete", response_model=FlowStateResponse, response_model_by_alias=True)
async def complete(session_id: str, req: CompleteStepRequest, store: FlowStateStore = Depends(get_flow_store)):
    return await _transition(
        store, session_id, req.version,
        lambda state: complete_step(state, req.has_educational_content, req.selections),
        req.has_educational_content,
    )


@router.post("/{session_id}/detour", response_model=FlowStateResponse, response_model_by_alias=True)
async def detour(session_id: str, req: DetourRequest, store: FlowStateStore = Depends(get_flow_store)):
    return await _transition(store, session_id, req.version, lambda state: enter_detour(state, req.step))


@router.post("/{session_id}/resume", response_model=FlowStateResponse, response_model_by_alias=True)
async def resume(session_id: str, req: Optional[ResumeRequest] = None, store: FlowStateStore = Depends(get_flow_store)):
    version = req.version if req else None
    return await _transition(store, session_id, version, exit_detour)


@router.delete("/{session_id}", status_code=204)
async def reset(session_id: str, store: FlowStateStore = Depends(get_flow_store)):
    await store.reset(session_id)
    logger.info(f"[FLOW] Reset flow state for {session_id}")
