"""
Chart Control Agent — Chart manipulation through the chart bridge.

Responsibility:
- Translate agent actions into primitive ChartActions
- Validate values against the chart catalogue
- Read back chart state

Prohibitions:
- No direct access to chart internals (bridge only)
"""

from __future__ import annotations

import logging
from typing import Any

from agents.base import BaseAgent, capability, fail, ok, param
from domains.chart.bridge import ChartAction, ChartBridge
from domains.chart.catalog import CatalogProvider, StaticCatalogProvider
from domains.chart.config import NAVIGATION_DIRECTIONS
from shared.models import AgentContext, AgentResponse, ErrorKind

logger = logging.getLogger(__name__)


class ChartControlAgent(BaseAgent):
    name = "chart-control"
    label = "Chart control"
    description = "Controls chart manipulation, indicators, and visual elements"

    CAPABILITIES = (
        capability(
            "setup-chart",
            "Setup chart with basic configuration",
            symbol=param("string"),
            timeframe=param("string"),
            chart_type=param("string", optional=True),
        ),
        capability(
            "add-indicator",
            "Add technical indicator to chart",
            indicator=param("string"),
            options=param("object", optional=True),
        ),
        capability("remove-indicator", "Remove indicator from chart", indicator=param("string")),
        capability("change-timeframe", "Change chart timeframe", timeframe=param("string")),
        capability("change-chart-type", "Change chart display type", chart_type=param("string")),
        capability(
            "navigate-chart",
            "Pan or zoom chart view",
            direction=param("string", enum=list(NAVIGATION_DIRECTIONS)),
            bars=param("number", optional=True),
        ),
        capability(
            "toggle-display-option",
            "Toggle chart display options",
            option=param("string"),
            enabled=param("boolean"),
        ),
        capability("capture-screenshot", "Capture chart screenshot"),
        capability("get-chart-state", "Get current chart state and configuration"),
        capability("save-preset", "Save current layout as a named preset", name=param("string")),
        capability("load-preset", "Apply a saved layout preset", name=param("string")),
        capability(
            "add-favorite",
            "Add a timeframe or chart type to favorites",
            kind=param("string", enum=["timeframes", "types"]),
            value=param("string"),
        ),
        capability(
            "add-drawing",
            "Add a drawing (trendline, label, ...) to the chart",
            tool=param("string"),
            points=param("array", optional=True, items="object"),
            style=param("object", optional=True),
            text=param("string", optional=True),
        ),
        capability("remove-drawing", "Remove a drawing by id", id=param("string")),
        capability("undo", "Undo chart changes", steps=param("number", optional=True, default=1)),
        capability("redo", "Redo chart changes", steps=param("number", optional=True, default=1)),
    )

    def __init__(self, bridge: ChartBridge, catalog_provider: CatalogProvider | None = None):
        self._bridge = bridge
        self._catalog_provider = catalog_provider or StaticCatalogProvider()
        super().__init__()

    def handlers(self):
        return {
            "setup-chart": self._setup_chart,
            "add-indicator": self._add_indicator,
            "remove-indicator": self._remove_indicator,
            "change-timeframe": self._change_timeframe,
            "change-chart-type": self._change_chart_type,
            "navigate-chart": self._navigate,
            "toggle-display-option": self._toggle_display_option,
            "capture-screenshot": self._capture_screenshot,
            "get-chart-state": self._get_chart_state,
            "save-preset": self._save_preset,
            "load-preset": self._load_preset,
            "add-favorite": self._add_favorite,
            "add-drawing": self._add_drawing,
            "remove-drawing": self._remove_drawing,
            "undo": self._undo,
            "redo": self._redo,
        }

    async def _apply(self, *actions: ChartAction) -> list[dict[str, Any]]:
        for action in actions:
            await self._bridge.perform(action)
        return [a.model_dump() for a in actions]

    async def _setup_chart(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        catalog = self._catalog_provider.get_catalog()
        symbol = params.get("symbol") or context.symbol
        timeframe = params.get("timeframe") or context.timeframe or "1D"
        chart_type = params.get("chart_type") or params.get("chartType")

        if not catalog.is_valid_timeframe(timeframe):
            return fail(f"Invalid timeframe: {timeframe}", ErrorKind.VALIDATION)
        if chart_type and not catalog.is_valid_chart_type(chart_type):
            return fail(f"Invalid chart type: {chart_type}", ErrorKind.VALIDATION)

        actions = [ChartAction(type="set_timeframe", payload={"timeframe": timeframe})]
        if chart_type:
            actions.append(ChartAction(type="set_chart_type", payload={"chart_type": chart_type}))
        applied = await self._apply(*actions)

        data = {"symbol": symbol, "timeframe": timeframe, "chart_actions": applied}
        if chart_type:
            data["chart_type"] = chart_type
        return ok(data, f"Chart setup completed for {symbol}")

    async def _add_indicator(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        catalog = self._catalog_provider.get_catalog()
        raw_name = str(params.get("indicator") or "").strip()
        if not raw_name:
            return fail("Indicator name is required", ErrorKind.VALIDATION)

        options = dict(params.get("options") or {})
        meta = catalog.get_indicator(raw_name)
        # Entry/exit markers are chart annotations, not catalogue indicators.
        if meta is None and raw_name.lower() not in ("entry", "exit"):
            return fail(f"Unknown indicator: {raw_name}", ErrorKind.VALIDATION)

        indicator = meta.name if meta else raw_name.lower()
        if meta and not options.get("calcParams") and meta.default_params:
            options["calcParams"] = list(meta.default_params)

        applied = await self._apply(
            ChartAction(type="add_indicator", payload={"indicator": indicator, "options": options})
        )
        return ok(
            {"indicator": indicator, "options": options, "chart_actions": applied},
            f"Indicator {indicator} added successfully",
        )

    async def _remove_indicator(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        catalog = self._catalog_provider.get_catalog()
        raw_name = str(params.get("indicator") or "").strip()
        if not raw_name:
            return fail("Indicator name is required", ErrorKind.VALIDATION)
        meta = catalog.get_indicator(raw_name)
        indicator = meta.name if meta else raw_name

        applied = await self._apply(ChartAction(type="remove_indicator", payload={"indicator": indicator}))
        return ok({"removed_indicator": indicator, "chart_actions": applied}, f"Indicator {indicator} removed")

    async def _change_timeframe(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        catalog = self._catalog_provider.get_catalog()
        timeframe = params.get("timeframe")
        if not catalog.is_valid_timeframe(timeframe):
            return fail(f"Invalid timeframe: {timeframe}", ErrorKind.VALIDATION)
        applied = await self._apply(ChartAction(type="set_timeframe", payload={"timeframe": timeframe}))
        return ok({"timeframe": timeframe, "chart_actions": applied}, f"Timeframe changed to {timeframe}")

    async def _change_chart_type(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        catalog = self._catalog_provider.get_catalog()
        chart_type = params.get("chart_type") or params.get("chartType")
        if not catalog.is_valid_chart_type(chart_type):
            return fail(f"Invalid chart type: {chart_type}", ErrorKind.VALIDATION)
        applied = await self._apply(ChartAction(type="set_chart_type", payload={"chart_type": chart_type}))
        return ok({"chart_type": chart_type, "chart_actions": applied}, f"Chart type changed to {chart_type}")

    async def _navigate(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        direction = params.get("direction")
        if direction not in NAVIGATION_DIRECTIONS:
            return fail(f"Unknown navigation direction: {direction}", ErrorKind.VALIDATION)
        payload: dict[str, Any] = {"direction": direction}
        if params.get("bars"):
            payload["bars"] = int(params["bars"])
        applied = await self._apply(ChartAction(type="navigate", payload=payload))
        return ok({"direction": direction, "chart_actions": applied}, f"Chart navigated {direction}")

    async def _toggle_display_option(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        option = params.get("option")
        if not option:
            return fail("Display option is required", ErrorKind.VALIDATION)
        enabled = bool(params.get("enabled", True))
        applied = await self._apply(
            ChartAction(type="toggle_display_option", payload={"option": option, "enabled": enabled})
        )
        state = "enabled" if enabled else "disabled"
        return ok({"option": option, "enabled": enabled, "chart_actions": applied}, f"Display option {option} {state}")

    async def _capture_screenshot(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        screenshot = await self._bridge.screenshot()
        return ok({"screenshot": screenshot}, "Screenshot captured successfully")

    def _get_chart_state(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        state = self._bridge.snapshot()
        return ok(
            {
                "symbol": context.symbol,
                "timeframe": state.timeframe,
                "chart_type": state.chart_type,
                "indicators": state.indicators,
                "drawings": state.drawings,
                "favorites": state.favorites,
                "display_options": state.display_options,
            },
            "Chart state retrieved successfully",
        )

    async def _save_preset(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        name = str(params.get("name") or "").strip()
        if not name:
            return fail("Preset name is required", ErrorKind.VALIDATION)
        await self._apply(ChartAction(type="save_preset", payload={"name": name}))
        return ok({"preset": name}, f"Preset {name} saved")

    async def _load_preset(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        name = str(params.get("name") or "").strip()
        if not name:
            return fail("Preset name is required", ErrorKind.VALIDATION)
        await self._apply(ChartAction(type="load_preset", payload={"name": name}))
        return ok({"preset": name}, f"Preset {name} loaded")

    async def _add_favorite(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        catalog = self._catalog_provider.get_catalog()
        kind = params.get("kind")
        value = params.get("value")
        if kind == "timeframes" and not catalog.is_valid_timeframe(value):
            return fail(f"Invalid timeframe: {value}", ErrorKind.VALIDATION)
        if kind == "types" and not catalog.is_valid_chart_type(value):
            return fail(f"Invalid chart type: {value}", ErrorKind.VALIDATION)
        if kind not in ("timeframes", "types"):
            return fail(f"Unknown favorite kind: {kind}", ErrorKind.VALIDATION)
        await self._apply(ChartAction(type="add_favorite", payload={"kind": kind, "value": value}))
        return ok({"favorite": {"kind": kind, "value": value}}, f"{value} added to favorites")

    async def _add_drawing(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        tool = params.get("tool")
        if not tool:
            return fail("Drawing tool is required", ErrorKind.VALIDATION)
        payload = {
            "tool": tool,
            "points": list(params.get("points") or []),
            "style": dict(params.get("style") or {}),
        }
        if params.get("text"):
            payload["text"] = params["text"]
        await self._apply(ChartAction(type="add_drawing", payload=payload))
        drawings = self._bridge.snapshot().drawings
        drawing_id = drawings[-1]["id"] if drawings else None
        return ok({"drawing_id": drawing_id, "tool": tool}, f"Drawing {tool} added")

    async def _remove_drawing(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        drawing_id = params.get("id")
        if not drawing_id:
            return fail("Drawing id is required", ErrorKind.VALIDATION)
        await self._apply(ChartAction(type="remove_drawing", payload={"id": drawing_id}))
        return ok({"removed_drawing": drawing_id}, f"Drawing {drawing_id} removed")

    async def _undo(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        steps = int(params.get("steps") or 1)
        await self._apply(ChartAction(type="undo", payload={"steps": steps}))
        return ok({"undone": steps}, f"Undid {steps} change(s)")

    async def _redo(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        steps = int(params.get("steps") or 1)
        await self._apply(ChartAction(type="redo", payload={"steps": steps}))
        return ok({"redone": steps}, f"Redid {steps} change(s)")
