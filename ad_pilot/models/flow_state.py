# Guided flow types
# The golden path is the ordered sequence of weekly planning steps;
# detours interrupt it and always resume the interrupted golden path step

from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel
from pydantic.alias_generators import to_camel

from ad_pilot.core.errors import EmptyDetourStackError, InvalidFlowStepError


class GoldenPathStep(str, Enum):
    PERFORMANCE_DASHBOARD = "performance_dashboard"
    THEME_SELECTOR = "theme_selector"
    TOPIC_SELECTOR = "topic_selector"
    AD_PLAN = "ad_plan"
    VEHICLE_SELECTOR = "vehicle_selector"
    SCRIPT_APPROVAL = "script_approval"
    GENERATION_PROGRESS = "generation_progress"
    PUBLISH_WIDGET = "publish_widget"
    WRAP_UP = "wrap_up"


class DetourStep(str, Enum):
    RECOMMENDATIONS = "recommendations"
    GUIDANCE_RULES = "guidance_rules"
    AVATAR_PHOTO = "avatar_photo"
    BILLING = "billing"


FlowStep = Union[GoldenPathStep, DetourStep]

# Declaration order is the golden path order
GOLDEN_PATH_STEPS: Tuple[GoldenPathStep, ...] = tuple(GoldenPathStep)
DETOUR_STEPS: Tuple[DetourStep, ...] = tuple(DetourStep)

_GOLDEN_VALUES = {step.value for step in GOLDEN_PATH_STEPS}
_DETOUR_VALUES = {step.value for step in DETOUR_STEPS}


def _value(step) -> str:
    return step.value if isinstance(step, Enum) else str(step)


def is_golden_path_step(step) -> bool:
    return _value(step) in _GOLDEN_VALUES


def is_detour_step(step) -> bool:
    return _value(step) in _DETOUR_VALUES


def parse_step(value) -> FlowStep:
    """Turn a raw step name into its enum member"""
    raw = _value(value)
    if raw in _GOLDEN_VALUES:
        return GoldenPathStep(raw)
    if raw in _DETOUR_VALUES:
        return DetourStep(raw)
    raise InvalidFlowStepError(f"Unknown flow step: {raw}")


class DetourStack(RootModel[Tuple[GoldenPathStep, ...]]):
    """Golden path steps paused by detours, most recent last

    The element type only admits golden path steps, so a detour can never be
    paused underneath another one.
    """
    model_config = ConfigDict(frozen=True)

    root: Tuple[GoldenPathStep, ...] = ()

    def push(self, step: GoldenPathStep) -> "DetourStack":
        if not isinstance(step, GoldenPathStep):
            raise InvalidFlowStepError(f"Only golden path steps can be paused, got {_value(step)}")
        return DetourStack(self.root + (step,))

    def pop(self) -> Tuple[GoldenPathStep, "DetourStack"]:
        if not self.root:
            raise EmptyDetourStackError("No interrupted step to resume")
        return self.root[-1], DetourStack(self.root[:-1])

    def peek(self) -> Optional[GoldenPathStep]:
        return self.root[-1] if self.root else None

    def __len__(self) -> int:
        return len(self.root)

    def __iter__(self):
        return iter(self.root)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class AdPlanEntry(_CamelModel):
    id: str
    theme: str
    template: str
    vehicles: int
    avatar: str
    length: str
    spend: float
    platform: str


class FlowSelections(_CamelModel):
    """Choices the user made along the golden path"""
    theme: Optional[str] = None
    topics: Optional[List[str]] = None
    ad_plan: Optional[List[AdPlanEntry]] = None
    # Ad id -> VINs assigned to that ad
    vehicle_assignments: Optional[Dict[str, List[str]]] = None
    vehicle_count: Optional[int] = None
    approved_scripts: Optional[List[str]] = None
    approved_videos: Optional[List[str]] = None


class FlowState(_CamelModel):
    current_step: FlowStep = GoldenPathStep.PERFORMANCE_DASHBOARD
    completed_steps: Tuple[GoldenPathStep, ...] = ()
    selections: FlowSelections = Field(default_factory=FlowSelections)
    detour_stack: DetourStack = Field(default_factory=DetourStack)

    @property
    def in_detour(self) -> bool:
        return is_detour_step(self.current_step)
