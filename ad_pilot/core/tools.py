# Tool catalogs
# Each catalog is a closed set of tool names advertised to the model on every
# turn. The "widgets" catalog only signals which widget the UI should show;
# the "data" catalog runs business logic and returns the widget data itself.

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Type

from ad_pilot.core.errors import UnknownToolError
from ad_pilot.models.schemas import ToolDefinition, ToolResult

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[ToolResult]]


class ToolCatalog(str, Enum):
    WIDGETS = "widgets"
    DATA = "data"


class WidgetType(str, Enum):
    # Guided flow widgets
    PERFORMANCE_DASHBOARD = "performance_dashboard"
    THEME_SELECTOR = "theme_selector"
    TOPIC_SELECTOR = "topic_selector"
    AD_PLAN = "ad_plan"
    VEHICLE_SELECTOR = "vehicle_selector"
    SCRIPT_APPROVAL = "script_approval"
    GENERATION_PROGRESS = "generation_progress"
    PUBLISH_WIDGET = "publish_widget"
    RECOMMENDATIONS = "recommendations"
    GUIDANCE_RULES = "guidance_rules"
    AVATAR_PHOTO = "avatar_photo"
    BILLING = "billing"
    # Data catalog widgets
    INVENTORY = "inventory"
    VIDEO_PREVIEW = "video_preview"
    CONTENT_CALENDAR = "content_calendar"


class WidgetTool(str, Enum):
    SHOW_PERFORMANCE_DASHBOARD = "show_performance_dashboard"
    SHOW_THEME_SELECTOR = "show_theme_selector"
    SHOW_TOPIC_SELECTOR = "show_topic_selector"
    SHOW_AD_PLAN = "show_ad_plan"
    SHOW_VEHICLE_SELECTOR = "show_vehicle_selector"
    SHOW_SCRIPT_APPROVAL = "show_script_approval"
    SHOW_GENERATION_PROGRESS = "show_generation_progress"
    SHOW_PUBLISH_WIDGET = "show_publish_widget"
    SHOW_RECOMMENDATIONS = "show_recommendations"
    SHOW_GUIDANCE_RULES = "show_guidance_rules"
    SHOW_AVATAR_PHOTO = "show_avatar_photo"
    SHOW_BILLING = "show_billing"


class DataTool(str, Enum):
    GET_GUIDANCE_RULES = "get_guidance_rules"
    GET_INVENTORY = "get_inventory"
    SHOW_VIDEO_PREVIEW = "show_video_preview"
    GET_CONTENT_CALENDAR = "get_content_calendar"


# Widget each signal tool asks the UI to render
WIDGET_TOOL_WIDGETS: Dict[WidgetTool, WidgetType] = {
    tool: WidgetType(tool.value[len("show_"):]) for tool in WidgetTool
}

DATA_TOOL_WIDGETS: Dict[DataTool, WidgetType] = {
    DataTool.GET_GUIDANCE_RULES: WidgetType.GUIDANCE_RULES,
    DataTool.GET_INVENTORY: WidgetType.INVENTORY,
    DataTool.SHOW_VIDEO_PREVIEW: WidgetType.VIDEO_PREVIEW,
    DataTool.GET_CONTENT_CALENDAR: WidgetType.CONTENT_CALENDAR,
}


def _no_params() -> Dict[str, Any]:
    return {"type": "object", "properties": {}, "required": []}


WIDGET_TOOL_DEFINITIONS: List[ToolDefinition] = [
    ToolDefinition(
        name=WidgetTool.SHOW_PERFORMANCE_DASHBOARD.value,
        description="Show last week's performance metrics. Use this first when user opens chat, or when they ask about how ads are doing, performance, analytics, or metrics.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=WidgetTool.SHOW_THEME_SELECTOR.value,
        description="Show the theme picker for this week's ads. Use when starting to plan, or when user wants to set/change the weekly theme. Has 3 options: Choose for me, I have something specific, Inspire me.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=WidgetTool.SHOW_TOPIC_SELECTOR.value,
        description="Show the topic picker for educational videos. Use after theme is selected, only if plan includes educational content. User picks 2 topics.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=WidgetTool.SHOW_AD_PLAN.value,
        description="Show the weekly content plan table. Use after theme/topics are selected, or when user wants to see/edit their ad plan. Shows all ads by platform with edit capability.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=WidgetTool.SHOW_VEHICLE_SELECTOR.value,
        description="Show the vehicle assignment interface. Use after ad plan is confirmed, when user needs to pick which vehicles to feature in their ads.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=WidgetTool.SHOW_SCRIPT_APPROVAL.value,
        description="Show generated scripts for review. Use after vehicles are assigned, or when user asks to see/approve scripts. Allows approve, edit, or regenerate per script.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=WidgetTool.SHOW_GENERATION_PROGRESS.value,
        description="Show video generation progress. Use when videos are being generated, or when user asks about generation status.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=WidgetTool.SHOW_PUBLISH_WIDGET.value,
        description="Show video preview and publish approval. Use when videos are ready, or when user wants to preview/publish a video.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=WidgetTool.SHOW_RECOMMENDATIONS.value,
        description="Show AI recommendations based on performance. Use when user asks for suggestions, ideas, what to improve, or recommendations.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=WidgetTool.SHOW_GUIDANCE_RULES.value,
        description="Show content guidance rules. Use when user asks about their rules, preferences, guidelines, or wants to edit them.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=WidgetTool.SHOW_AVATAR_PHOTO.value,
        description="Show avatar photo capture interface. Use when user wants to add a new avatar look or update their avatar.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=WidgetTool.SHOW_BILLING.value,
        description="Show invoice and billing information. Use when user asks about their bill, invoice, payment, or billing.",
        input_schema=_no_params(),
    ),
]

DATA_TOOL_DEFINITIONS: List[ToolDefinition] = [
    ToolDefinition(
        name=DataTool.GET_GUIDANCE_RULES.value,
        description="Get the guidance rules and preferences for this client's video creation. Call this when the user asks about their preferences, rules, or how videos should be created.",
        input_schema=_no_params(),
    ),
    ToolDefinition(
        name=DataTool.GET_INVENTORY.value,
        description="Get vehicles currently on the lot so the user can pick which ones to feature. Call this when the user asks about inventory or which cars to advertise.",
        input_schema={
            "type": "object",
            "properties": {
                "max_results": {
                    "type": "integer",
                    "description": "Maximum number of vehicles to return",
                    "minimum": 1,
                },
                "sort_by": {
                    "type": "string",
                    "enum": ["daysOnLot", "price", "newest"],
                    "description": "daysOnLot lists the longest-sitting vehicles first",
                },
            },
            "required": [],
        },
    ),
    ToolDefinition(
        name=DataTool.SHOW_VIDEO_PREVIEW.value,
        description="Show a preview card for a video ad with its title, opening hook and optional script.",
        input_schema={
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Video title"},
                "hook": {"type": "string", "description": "Opening line of the video"},
                "script": {"type": "string", "description": "Full script, if written"},
                "duration": {"type": "string", "description": "Approximate length, e.g. 30s"},
                "status": {"type": "string", "enum": ["preview", "generating", "ready"]},
            },
            "required": ["title", "hook"],
        },
    ),
    ToolDefinition(
        name=DataTool.GET_CONTENT_CALENDAR.value,
        description="Get the scheduled and published posts for the content calendar. Call this when the user asks what is scheduled or posted.",
        input_schema={
            "type": "object",
            "properties": {
                "platform": {
                    "type": "string",
                    "enum": ["facebook", "tiktok", "instagram", "youtube"],
                    "description": "Only show posts for this platform",
                },
            },
            "required": [],
        },
    ),
]

CATALOG_TOOLS: Dict[ToolCatalog, Type[Enum]] = {
    ToolCatalog.WIDGETS: WidgetTool,
    ToolCatalog.DATA: DataTool,
}

CATALOG_DEFINITIONS: Dict[ToolCatalog, List[ToolDefinition]] = {
    ToolCatalog.WIDGETS: WIDGET_TOOL_DEFINITIONS,
    ToolCatalog.DATA: DATA_TOOL_DEFINITIONS,
}


class ToolRegistry:
    """
    Static catalog of tools for one deployment

    Every tool name of the catalog must be bound to exactly one handler and
    described by exactly one definition; anything else is a startup error.
    """

    def __init__(self, catalog: ToolCatalog, handlers: Dict[str, ToolHandler]):
        self.catalog = ToolCatalog(catalog)
        names = [tool.value for tool in CATALOG_TOOLS[self.catalog]]
        definitions = CATALOG_DEFINITIONS[self.catalog]
        defined = [d.name for d in definitions]

        if sorted(defined) != sorted(names):
            raise ValueError(f"Definitions of the {self.catalog.value} catalog do not match its tool names")
        missing = set(names) - set(handlers)
        extra = set(handlers) - set(names)
        if missing or extra:
            raise ValueError(
                f"Handler mismatch in {self.catalog.value} catalog: missing={sorted(missing)} extra={sorted(extra)}"
            )

        self._definitions = tuple(definitions)
        self._by_name = {d.name: d for d in definitions}
        self._handlers = dict(handlers)
        logger.info(f"[TOOLS] Registered {len(self._definitions)} tools for catalog '{self.catalog.value}'")

    def list_tools(self) -> List[ToolDefinition]:
        return list(self._definitions)

    def has_tool(self, name: str) -> bool:
        return name in self._by_name

    def definition(self, name: str) -> ToolDefinition:
        if name not in self._by_name:
            raise UnknownToolError(name)
        return self._by_name[name]

    def resolve(self, name: str) -> ToolHandler:
        if name not in self._handlers:
            raise UnknownToolError(name)
        return self._handlers[name]

    def widget_types(self) -> List[str]:
        """Widget identifiers this catalog can produce"""
        if self.catalog is ToolCatalog.WIDGETS:
            return [WIDGET_TOOL_WIDGETS[tool].value for tool in WidgetTool]
        return [DATA_TOOL_WIDGETS[tool].value for tool in DataTool]
