"""
Chart Sequence Agent — Ordered, cancelable chart-control sequences.

Responsibility:
- Validate a whole sequence against the catalogue before touching the chart
- Apply each step through the chart bridge, in order
- Collect screenshots and narration messages along the way

A sequence stops between steps as soon as the cancel hook returns True.
Narration is returned as data; showing it is the caller's concern.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agents.base import BaseAgent, capability, fail, ok, param
from domains.chart.bridge import ChartAction, ChartBridge
from domains.chart.catalog import CatalogProvider, ChartCatalog, StaticCatalogProvider
from domains.chart.config import INDICATOR_PROFILES, LAYOUT_PRESETS, NAVIGATION_DIRECTIONS
from execution.engine import CancelHook
from shared.models import AgentContext, AgentResponse, ErrorKind
from shared.workflow_contracts import format_validation_error

logger = logging.getLogger(__name__)

Profile = Literal["day_trade", "swing_trade"]


class SequenceStep(BaseModel):
    """One step of a chart sequence. Fields unused by `kind` are ignored."""
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    kind: Literal[
        "timeframe",
        "chartType",
        "indicator",
        "navigate",
        "toggleOption",
        "line",
        "label",
        "screenshot",
        "delay",
        "layout",
    ]
    message: str | None = None
    timeframe: str | None = None
    chart_type: str | None = Field(default=None, alias="chartType")
    indicator: str | None = None
    options: dict[str, Any] | None = None
    profile: Profile | None = None
    direction: str | None = None
    option: str | None = None
    enabled: bool = True
    ms: int = Field(default=0, ge=0)
    layout_id: str | None = Field(default=None, alias="layoutId")
    screenshot_after: bool = Field(default=False, alias="screenshotAfter")
    points: list[dict[str, Any]] | None = None


def _check_step(step: SequenceStep, catalog: ChartCatalog) -> str | None:
    """Catalogue problem with a step, or None when it can run."""
    if step.kind == "timeframe" and not catalog.is_valid_timeframe(step.timeframe):
        return f"invalid timeframe {step.timeframe}"
    if step.kind == "chartType" and not catalog.is_valid_chart_type(step.chart_type):
        return f"invalid chart type {step.chart_type}"
    if step.kind == "indicator" and catalog.get_indicator(step.indicator or "") is None:
        return f"unknown indicator {step.indicator}"
    if step.kind == "navigate" and step.direction not in NAVIGATION_DIRECTIONS:
        return f"unknown navigation direction {step.direction}"
    if step.kind == "toggleOption" and not step.option:
        return "display option is required"
    if step.kind == "layout":
        if step.layout_id not in LAYOUT_PRESETS:
            return f"unknown layout {step.layout_id}"
        if step.timeframe and not catalog.is_valid_timeframe(step.timeframe):
            return f"invalid timeframe {step.timeframe}"
    return None


class ChartSequenceAgent(BaseAgent):
    name = "chart-sequence"
    label = "Chart sequence"
    description = "Executes narrated, cancelable chart-control sequences"

    CAPABILITIES = (
        capability(
            "run-sequence",
            "Run a chart control sequence",
            steps=param("array", items="object"),
            profile=param("string", optional=True, enum=list(INDICATOR_PROFILES)),
            narrate=param("boolean", optional=True, default=True),
            layoutId=param("string", optional=True),
            timeframe=param("string", optional=True),
        ),
    )

    def __init__(
        self,
        bridge: ChartBridge,
        catalog_provider: CatalogProvider | None = None,
        should_cancel: CancelHook | None = None,
    ):
        self._bridge = bridge
        self._catalog_provider = catalog_provider or StaticCatalogProvider()
        self._should_cancel = should_cancel
        super().__init__()

    def handlers(self):
        return {"run-sequence": self._run_sequence}

    def required_context(self) -> list[str]:
        return []

    async def _run_sequence(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        raw_steps = list(params.get("steps") or [])
        if params.get("layoutId"):
            # A top-level layout runs first, before the explicit steps.
            raw_steps.insert(
                0,
                {"kind": "layout", "layoutId": params["layoutId"], "timeframe": params.get("timeframe")},
            )
        if not raw_steps:
            return fail("Sequence has no steps", ErrorKind.VALIDATION)

        catalog = self._catalog_provider.get_catalog()
        steps: list[SequenceStep] = []
        problems: list[str] = []
        for index, raw in enumerate(raw_steps, start=1):
            try:
                step = SequenceStep.model_validate(raw)
            except ValidationError as exc:
                problems.append(f"step {index}: {format_validation_error(exc)}")
                continue
            problem = _check_step(step, catalog)
            if problem:
                problems.append(f"step {index}: {problem}")
            steps.append(step)
        if problems:
            return fail(f"Invalid sequence: {'; '.join(problems)}", ErrorKind.VALIDATION)

        profile = params.get("profile")
        narrate = params.get("narrate", True)
        screenshots: list[str] = []
        narration: list[str] = []
        completed = 0
        cancelled = False

        for step in steps:
            if self._should_cancel is not None and self._should_cancel():
                cancelled = True
                break
            if narrate and step.message:
                narration.append(step.message)
            await self._run_step(step, profile, catalog, screenshots)
            completed += 1

        data = {
            "screenshots": screenshots,
            "cancelled": cancelled,
            "steps_completed": completed,
            "narration": narration,
        }
        if cancelled:
            logger.info("Chart sequence cancelled after %d of %d steps", completed, len(steps))
            return fail("Sequence cancelled", ErrorKind.DOMAIN, data)
        return ok(data, "Sequence completed")

    async def _run_step(
        self,
        step: SequenceStep,
        profile: str | None,
        catalog: ChartCatalog,
        screenshots: list[str],
    ) -> None:
        kind = step.kind
        if kind == "timeframe":
            await self._bridge.perform(ChartAction(type="set_timeframe", payload={"timeframe": step.timeframe}))
        elif kind == "chartType":
            await self._bridge.perform(ChartAction(type="set_chart_type", payload={"chart_type": step.chart_type}))
        elif kind == "indicator":
            await self._add_indicator(step.indicator or "", step.options or {}, step.profile or profile, catalog)
        elif kind == "navigate":
            await self._bridge.perform(ChartAction(type="navigate", payload={"direction": step.direction}))
        elif kind == "toggleOption":
            await self._bridge.perform(
                ChartAction(type="toggle_display_option", payload={"option": step.option, "enabled": step.enabled})
            )
        elif kind == "line":
            await self._bridge.perform(
                ChartAction(type="add_drawing", payload={"tool": "trendline", "points": step.points or [], "style": {}})
            )
        elif kind == "label":
            payload = {"tool": "label", "points": step.points or [], "style": {}, "text": step.message or "Label"}
            await self._bridge.perform(ChartAction(type="add_drawing", payload=payload))
        elif kind == "screenshot":
            screenshots.append(await self._bridge.screenshot())
        elif kind == "delay":
            await asyncio.sleep(step.ms / 1000)
        elif kind == "layout":
            preset = LAYOUT_PRESETS[step.layout_id or ""]
            timeframe = step.timeframe or preset["timeframes"][0]
            await self._bridge.perform(ChartAction(type="set_timeframe", payload={"timeframe": timeframe}))
            for pane, (indicator, calc_params) in enumerate(preset["indicators"]):
                options = {"calcParams": list(calc_params), "overlay": pane == 0}
                await self._add_indicator(indicator, options, step.profile or preset["profile"], catalog)
            if step.screenshot_after:
                screenshots.append(await self._bridge.screenshot())

    async def _add_indicator(
        self,
        name: str,
        options: dict[str, Any],
        profile: str | None,
        catalog: ChartCatalog,
    ) -> None:
        meta = catalog.get_indicator(name)
        indicator = meta.name if meta else name
        resolved = dict(options or {})
        if not resolved.get("calcParams"):
            preferred = INDICATOR_PROFILES.get(profile or "", {}).get(indicator)
            defaults = preferred if preferred else (meta.default_params if meta else [])
            if defaults:
                resolved["calcParams"] = list(defaults)
        await self._bridge.perform(ChartAction(type="add_indicator", payload={"indicator": indicator, "options": resolved}))
