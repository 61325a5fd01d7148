# Tool executor
# Runs the handler bound to a tool name and always answers with a ToolResult:
# unknown tools, bad arguments and backend failures become visible error results
# so the conversation loop can keep going.

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

import httpx

from ad_pilot.core.config import Settings, get_settings
from ad_pilot.core.errors import ToolBackendError, UnknownToolError
from ad_pilot.core.tools import (
    DATA_TOOL_WIDGETS,
    WIDGET_TOOL_WIDGETS,
    DataTool,
    ToolCatalog,
    ToolHandler,
    ToolRegistry,
    WidgetType,
)
from ad_pilot.models.schemas import (
    DataBearingResult,
    SignalOnlyResult,
    ToolResult,
    WidgetPayload,
    error_result,
)
from ad_pilot.services import demo_data

logger = logging.getLogger(__name__)

SORT_KEYS = {
    "daysOnLot": lambda v: (-v.get("daysOnLot", 0), v["id"]),
    "price": lambda v: (v.get("price", 0), v["id"]),
    "newest": lambda v: (-v.get("year", 0), v["id"]),
}


def signal_handler(widget_type: WidgetType) -> ToolHandler:
    """Handler that only names the widget; the UI loads its own data"""
    async def handler(arguments: Dict[str, Any]) -> ToolResult:
        return SignalOnlyResult(widget=WidgetPayload(type=widget_type.value))
    return handler


class DataToolHandlers:
    """
    Handlers of the data catalog

    Outbound calls go to the workflow-automation webhooks under
    `webhook_base_url`. Without a configured backend the handlers serve the
    fixed demo data.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client_name = settings.client_name
        self.base_url = settings.webhook_base_url
        self.timeout = settings.webhook_timeout
        self.transport = transport

    def as_handlers(self) -> Dict[str, ToolHandler]:
        return {
            DataTool.GET_GUIDANCE_RULES.value: self.get_guidance_rules,
            DataTool.GET_INVENTORY.value: self.get_inventory,
            DataTool.SHOW_VIDEO_PREVIEW.value: self.show_video_preview,
            DataTool.GET_CONTENT_CALENDAR.value: self.get_content_calendar,
        }

    async def _fetch_json(self, path: str) -> Any:
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(path, headers={"Content-Type": "application/json"})
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ToolBackendError(str(e) or e.__class__.__name__) from e

    async def get_guidance_rules(self, arguments: Dict[str, Any]) -> ToolResult:
        if not self.base_url:
            return self._guidance_result(demo_data.DEMO_BASE_RULES, demo_data.DEMO_CUSTOM_RULES)
        try:
            data = await self._fetch_json("/guidance-rules")
            if isinstance(data, list):
                return self._guidance_result(None, data)
            if isinstance(data, dict) and isinstance(data.get("rules"), list):
                return self._guidance_result(data.get("baseRules"), data["rules"])
            raise ToolBackendError("unexpected response format")
        except ToolBackendError as e:
            logger.warning(f"[TOOLS] Guidance rules backend failed: {e}")
            return error_result(f"Failed to fetch guidance rules: {e}")

    def _guidance_result(self, base_rules, rules) -> ToolResult:
        data = {"clientName": self.client_name, "rules": rules}
        if base_rules:
            data["baseRules"] = base_rules
        active = sum(1 for rule in rules if isinstance(rule, dict) and rule.get("active", True))
        return DataBearingResult(
            widget=WidgetPayload(type=DATA_TOOL_WIDGETS[DataTool.GET_GUIDANCE_RULES].value, data=data),
            text=f"{self.client_name} has {active} active custom guidance rules.",
        )

    async def get_inventory(self, arguments: Dict[str, Any]) -> ToolResult:
        vehicles = demo_data.DEMO_VEHICLES
        if self.base_url:
            try:
                data = await self._fetch_json("/inventory")
                if isinstance(data, dict) and isinstance(data.get("vehicles"), list):
                    vehicles = data["vehicles"]
                elif isinstance(data, list):
                    vehicles = data
                else:
                    logger.info("[TOOLS] Inventory response had no vehicles, using demo inventory")
            except ToolBackendError as e:
                logger.warning(f"[TOOLS] Inventory backend failed, using demo inventory: {e}")

        sort_by = arguments.get("sort_by") or "daysOnLot"
        if sort_by not in SORT_KEYS:
            return error_result(f"sort_by must be one of {', '.join(SORT_KEYS)}")
        try:
            ordered = sorted(vehicles, key=SORT_KEYS[sort_by])
        except (AttributeError, KeyError, TypeError) as e:
            return error_result(f"Inventory data is malformed: {e}")

        max_results = arguments.get("max_results")
        if max_results is not None:
            try:
                max_results = int(max_results)
            except (TypeError, ValueError):
                return error_result("max_results must be a whole number")
            if max_results < 1:
                return error_result("max_results must be at least 1")
            ordered = ordered[:max_results]

        return DataBearingResult(
            widget=WidgetPayload(type=DATA_TOOL_WIDGETS[DataTool.GET_INVENTORY].value, data={"vehicles": ordered}),
        )

    async def show_video_preview(self, arguments: Dict[str, Any]) -> ToolResult:
        status = arguments.get("status") or "preview"
        if status not in ("preview", "generating", "ready"):
            return error_result(f"Unknown video status: {status}")
        data = {
            "title": str(arguments["title"]),
            "hook": str(arguments["hook"]),
            "duration": str(arguments.get("duration") or "30s"),
            "status": status,
        }
        if arguments.get("script"):
            data["script"] = str(arguments["script"])
        return DataBearingResult(
            widget=WidgetPayload(type=DATA_TOOL_WIDGETS[DataTool.SHOW_VIDEO_PREVIEW].value, data=data),
        )

    async def get_content_calendar(self, arguments: Dict[str, Any]) -> ToolResult:
        platform = arguments.get("platform")
        posts: List[Dict[str, Any]] = demo_data.DEMO_SCHEDULED_POSTS
        if platform:
            posts = [post for post in posts if post["platform"] == platform]
        scheduled = sum(1 for post in posts if post["status"] == "scheduled")
        return DataBearingResult(
            widget=WidgetPayload(type=DATA_TOOL_WIDGETS[DataTool.GET_CONTENT_CALENDAR].value, data={"posts": posts}),
            text=f"{scheduled} posts are scheduled." if posts else "Nothing is on the calendar for that platform yet.",
        )


def build_registry(catalog, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> ToolRegistry:
    catalog = ToolCatalog(catalog)
    if catalog is ToolCatalog.WIDGETS:
        handlers = {tool.value: signal_handler(widget) for tool, widget in WIDGET_TOOL_WIDGETS.items()}
    else:
        handlers = DataToolHandlers(settings, transport=transport).as_handlers()
    return ToolRegistry(catalog, handlers)


class ToolExecutor:
    """Invokes tool handlers and normalises every outcome into a ToolResult"""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def list_tools(self):
        return self.registry.list_tools()

    async def execute(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        try:
            definition = self.registry.definition(name)
            handler = self.registry.resolve(name)
        except UnknownToolError as e:
            logger.warning(f"[TOOLS] {e}")
            return error_result(str(e))

        arguments = arguments or {}
        missing = [param for param in definition.required if arguments.get(param) in (None, "")]
        if missing:
            logger.warning(f"[TOOLS] {name} called without {missing}")
            return error_result(f"Missing required argument(s) for {name}: {', '.join(missing)}")

        logger.info(f"[TOOLS] Executing {name} with {arguments}")
        try:
            return await handler(arguments)
        except Exception as e:
            logger.exception(f"[TOOLS] {name} raised")
            return error_result(f"Tool {name} failed: {e}")


def create_tool_executor(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> ToolExecutor:
    return ToolExecutor(build_registry(settings.tool_catalog, settings, transport=transport))


@lru_cache()
def get_tool_executor() -> ToolExecutor:
    return create_tool_executor(get_settings())
