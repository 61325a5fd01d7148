"""
Guided flow state machine tests
"""
import pytest
from pydantic import ValidationError

from ad_pilot.core.errors import (
    ConcurrentUpdateError,
    EmptyDetourStackError,
    FlowTransitionError,
    InvalidFlowStepError,
    NestedDetourError,
)
from ad_pilot.models.flow_state import (
    DETOUR_STEPS,
    GOLDEN_PATH_STEPS,
    DetourStack,
    DetourStep,
    FlowSelections,
    FlowState,
    GoldenPathStep,
    is_detour_step,
    is_golden_path_step,
    parse_step,
)
from ad_pilot.services.flow_service import (
    FlowStateStore,
    advance,
    complete_step,
    describe_flow,
    enter_detour,
    exit_detour,
    golden_path,
    initial_flow_state,
)

PREDECESSORS = [step for step in GOLDEN_PATH_STEPS if step is not GoldenPathStep.WRAP_UP]


@pytest.mark.unit
class TestAdvance:
    """Golden path ordering"""

    def test_full_path_with_educational_content(self):
        step = GoldenPathStep.PERFORMANCE_DASHBOARD
        visited = [step]
        while step is not GoldenPathStep.WRAP_UP:
            step = advance(step, True)
            visited.append(step)
        assert visited == list(GOLDEN_PATH_STEPS)

    def test_path_without_educational_content_skips_topics(self):
        assert golden_path(False) == (
            GoldenPathStep.PERFORMANCE_DASHBOARD,
            GoldenPathStep.THEME_SELECTOR,
            GoldenPathStep.AD_PLAN,
            GoldenPathStep.VEHICLE_SELECTOR,
            GoldenPathStep.SCRIPT_APPROVAL,
            GoldenPathStep.GENERATION_PROGRESS,
            GoldenPathStep.PUBLISH_WIDGET,
            GoldenPathStep.WRAP_UP,
        )

    @pytest.mark.parametrize("step", PREDECESSORS)
    def test_educational_flag_controls_topic_selector(self, step):
        if step is GoldenPathStep.THEME_SELECTOR:
            assert advance(step, True) is GoldenPathStep.TOPIC_SELECTOR
        assert advance(step, False) is not GoldenPathStep.TOPIC_SELECTOR

    def test_theme_goes_straight_to_ad_plan_without_education(self):
        assert advance(GoldenPathStep.THEME_SELECTOR, False) is GoldenPathStep.AD_PLAN

    def test_topic_selector_without_education_moves_on(self):
        assert advance(GoldenPathStep.TOPIC_SELECTOR, False) is GoldenPathStep.AD_PLAN

    @pytest.mark.parametrize("flag", [True, False])
    def test_wrap_up_is_terminal(self, flag):
        assert advance(GoldenPathStep.WRAP_UP, flag) is GoldenPathStep.WRAP_UP
        assert advance(advance(GoldenPathStep.WRAP_UP, flag), flag) is GoldenPathStep.WRAP_UP

    @pytest.mark.parametrize("value", ["billing", "not_a_step", "", DetourStep.RECOMMENDATIONS])
    def test_unrecognised_steps_lead_to_wrap_up(self, value):
        assert advance(value) is GoldenPathStep.WRAP_UP

    def test_accepts_raw_strings(self):
        assert advance("ad_plan") is GoldenPathStep.VEHICLE_SELECTOR


@pytest.mark.unit
class TestClassification:
    """Golden path and detour steps partition every flow step"""

    def test_sets_are_disjoint(self):
        golden = {step.value for step in GOLDEN_PATH_STEPS}
        detours = {step.value for step in DETOUR_STEPS}
        assert golden.isdisjoint(detours)

    @pytest.mark.parametrize("step", list(GOLDEN_PATH_STEPS) + list(DETOUR_STEPS))
    def test_each_step_in_exactly_one_set(self, step):
        assert is_golden_path_step(step) != is_detour_step(step)
        assert is_golden_path_step(step.value) == is_golden_path_step(step)

    def test_unknown_value_is_in_neither_set(self):
        assert not is_golden_path_step("lunch")
        assert not is_detour_step("lunch")

    def test_parse_step(self):
        assert parse_step("billing") is DetourStep.BILLING
        assert parse_step("ad_plan") is GoldenPathStep.AD_PLAN
        with pytest.raises(InvalidFlowStepError):
            parse_step("lunch")


@pytest.mark.unit
class TestDetours:
    """Detour stack push/pop protocol"""

    def test_initial_state(self):
        state = initial_flow_state()
        assert state.current_step is GoldenPathStep.PERFORMANCE_DASHBOARD
        assert state.completed_steps == ()
        assert len(state.detour_stack) == 0
        assert state.selections == FlowSelections()

    @pytest.mark.parametrize("detour", list(DETOUR_STEPS))
    def test_enter_then_exit_restores_state(self, detour):
        state = FlowState(current_step=GoldenPathStep.AD_PLAN, completed_steps=(GoldenPathStep.PERFORMANCE_DASHBOARD,))
        inside = enter_detour(state, detour)
        assert inside.current_step is detour
        assert inside.detour_stack.peek() is GoldenPathStep.AD_PLAN

        back = exit_detour(inside)
        assert back.current_step is GoldenPathStep.AD_PLAN
        assert back.detour_stack == state.detour_stack
        assert back == state

    def test_enter_detour_accepts_string(self):
        state = enter_detour(initial_flow_state(), "billing")
        assert state.current_step is DetourStep.BILLING

    def test_nested_detour_is_rejected(self):
        state = enter_detour(initial_flow_state(), DetourStep.BILLING)
        with pytest.raises(NestedDetourError):
            enter_detour(state, DetourStep.GUIDANCE_RULES)

    def test_golden_step_is_not_a_detour_target(self):
        with pytest.raises(InvalidFlowStepError):
            enter_detour(initial_flow_state(), GoldenPathStep.AD_PLAN)

    def test_exit_with_empty_stack_raises(self):
        with pytest.raises(EmptyDetourStackError):
            exit_detour(initial_flow_state())

    def test_stack_only_holds_golden_path_steps(self):
        with pytest.raises(InvalidFlowStepError):
            DetourStack().push(DetourStep.BILLING)

    def test_serialized_stack_with_detour_is_rejected(self):
        with pytest.raises(ValidationError):
            FlowState.model_validate({"currentStep": "billing", "detourStack": ["recommendations"]})

    def test_completed_steps_reject_detours(self):
        with pytest.raises(ValidationError):
            FlowState.model_validate({"completedSteps": ["billing"]})

    def test_transitions_do_not_mutate_input(self):
        state = initial_flow_state()
        enter_detour(state, DetourStep.AVATAR_PHOTO)
        assert state.current_step is GoldenPathStep.PERFORMANCE_DASHBOARD
        assert len(state.detour_stack) == 0


@pytest.mark.unit
class TestCompleteStep:
    """Completing golden path steps"""

    def test_records_and_advances(self):
        state = complete_step(initial_flow_state(), True)
        assert state.completed_steps == (GoldenPathStep.PERFORMANCE_DASHBOARD,)
        assert state.current_step is GoldenPathStep.THEME_SELECTOR

    def test_merges_selections(self):
        state = FlowState(current_step=GoldenPathStep.THEME_SELECTOR)
        state = complete_step(state, False, FlowSelections(theme="Fall Savings"))
        assert state.current_step is GoldenPathStep.AD_PLAN
        state = complete_step(state, False, FlowSelections(vehicle_count=3))
        assert state.selections.theme == "Fall Savings"
        assert state.selections.vehicle_count == 3

    def test_detour_steps_cannot_be_completed(self):
        state = enter_detour(initial_flow_state(), DetourStep.RECOMMENDATIONS)
        with pytest.raises(FlowTransitionError):
            complete_step(state)

    def test_wrap_up_completion_is_idempotent(self):
        state = FlowState(current_step=GoldenPathStep.WRAP_UP)
        once = complete_step(state)
        twice = complete_step(once)
        assert once.current_step is GoldenPathStep.WRAP_UP
        assert twice.completed_steps == (GoldenPathStep.WRAP_UP,)

    def test_selection_aliases_round_trip(self):
        selections = FlowSelections.model_validate({
            "vehicleAssignments": {"ad-1": ["1HGCM82633A004352"]},
            "approvedScripts": ["s1"],
        })
        dumped = selections.model_dump(by_alias=True, exclude_none=True)
        assert dumped == {"vehicleAssignments": {"ad-1": ["1HGCM82633A004352"]}, "approvedScripts": ["s1"]}


@pytest.mark.unit
class TestDescribeFlow:

    def test_golden_step_names_expected_widget(self):
        text = describe_flow(initial_flow_state(), True)
        assert "performance_dashboard" in text
        assert "show_performance_dashboard" in text
        assert "theme_selector" in text

    def test_detour_names_step_to_return_to(self):
        state = enter_detour(FlowState(current_step=GoldenPathStep.AD_PLAN), DetourStep.BILLING)
        text = describe_flow(state)
        assert "detour" in text
        assert "show_ad_plan" in text

    def test_detour_from_wrap_up_has_no_widget_to_return_to(self):
        state = enter_detour(FlowState(current_step=GoldenPathStep.WRAP_UP), DetourStep.RECOMMENDATIONS)
        text = describe_flow(state)
        assert "show_wrap_up" not in text
        assert "wrap up the week" in text

    def test_wrap_up_names_no_widget(self):
        text = describe_flow(FlowState(current_step=GoldenPathStep.WRAP_UP))
        assert "show_" not in text

    @pytest.mark.parametrize("state", [
        FlowState(),
        FlowState(current_step=GoldenPathStep.AD_PLAN),
        enter_detour(FlowState(current_step=GoldenPathStep.THEME_SELECTOR), DetourStep.GUIDANCE_RULES),
    ])
    def test_only_tools_in_the_catalog_are_named(self, data_executor, state):
        text = describe_flow(state, True, data_executor.registry.has_tool)
        assert "show_" not in text
        assert state.current_step.value in text


@pytest.mark.unit
class TestFlowStateStore:

    async def test_load_missing_session_gives_initial_state(self):
        store = FlowStateStore()
        state, version = await store.load("s1")
        assert state == initial_flow_state()
        assert version == 0

    async def test_save_and_load_round_trip(self):
        store = FlowStateStore()
        state = enter_detour(complete_step(initial_flow_state()), DetourStep.GUIDANCE_RULES)
        version = await store.save("s1", state, 0)
        loaded, loaded_version = await store.load("s1")
        assert loaded == state
        assert loaded_version == version == 1

    async def test_stale_version_is_rejected(self):
        store = FlowStateStore()
        await store.save("s1", initial_flow_state(), 0)
        with pytest.raises(ConcurrentUpdateError):
            await store.save("s1", complete_step(initial_flow_state()), 0)

    async def test_reset(self):
        store = FlowStateStore()
        await store.save("s1", complete_step(initial_flow_state()), 0)
        await store.reset("s1")
        state, version = await store.load("s1")
        assert version == 0
        assert state.current_step is GoldenPathStep.PERFORMANCE_DASHBOARD
