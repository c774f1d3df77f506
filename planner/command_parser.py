"""
Command Parser — Free text → ActionPlan.

Pure and synchronous. Runs the extractor pipeline over lowercased text and
assembles the fragments in a fixed order:

  context fetch, timeframe, chart type, navigation, indicators,
  presets, favorites, drawings, history, screenshot, analysis

The context fetch is only emitted when at least one other step exists, so
non-actionable text produces an empty plan. Analysis is never implied: it
needs an explicit trigger word.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from domains.chart import config
from domains.chart.catalog import CatalogProvider, ChartCatalog, StaticCatalogProvider
from planner import extractors
from planner.extractors import Fragment, IndicatorIntent
from shared.models import ActionPlan, ToolCall

logger = logging.getLogger(__name__)


class CommandParser:
    """Deterministic natural-language router for chart commands."""

    def __init__(self, catalog_provider: CatalogProvider | None = None):
        self._catalog_provider = catalog_provider or StaticCatalogProvider()

    def parse(self, text: str, session_id: str | None = None, plan_id: str | None = None) -> ActionPlan:
        # Catalogue is read on every call; providers may change between calls.
        catalog = self._catalog_provider.get_catalog()
        lowered = (text or "").lower()

        claimed = extractors.extract_presets(lowered)
        masked = extractors.mask(lowered, _spans(claimed))
        favorites = extractors.extract_favorites(masked)
        masked = extractors.mask(masked, _spans(favorites))
        drawings = extractors.extract_drawings(masked)
        masked = extractors.mask(masked, _spans(drawings))
        history = extractors.extract_history(masked)

        timeframe = extractors.extract_timeframe(masked)
        if timeframe:
            masked = extractors.mask(masked, timeframe.spans)
        navigation = extractors.extract_navigation(masked)
        if navigation:
            masked = extractors.mask(masked, navigation.spans)
        chart_type = extractors.extract_chart_type(masked, catalog)

        intents = extractors.merge_indicator_intents(extractors.extract_indicators(masked, catalog))
        style = extractors.extract_style(masked, catalog, config.LINE_THICKNESS)

        steps: list[ToolCall] = []
        if timeframe:
            steps.append(ToolCall(tool="chart.control.set_timeframe", args={"timeframe": timeframe.value}))
        if chart_type:
            steps.append(ToolCall(tool="chart.control.set_type", args={"type": chart_type}))
        if navigation:
            nav_args: dict[str, Any] = {"direction": navigation.direction}
            if navigation.bars:
                nav_args["bars"] = navigation.bars
            steps.append(ToolCall(tool="chart.control.navigate", args=nav_args))

        for intent in intents:
            steps.append(self._indicator_call(intent, catalog, style))

        for fragment in claimed + favorites + drawings + history:
            steps.append(ToolCall(tool=fragment.tool, args=fragment.args))

        if extractors.wants_screenshot(masked):
            steps.append(ToolCall(tool="chart.screenshot", args={}))

        added = [i.name for i in intents if not i.remove]
        if extractors.wants_chart_analysis(masked):
            steps.append(ToolCall(tool="analysis.chart", args={"indicators": added}))
        if extractors.wants_entry_exit(masked):
            steps.append(ToolCall(tool="analysis.entry_exit", args={"indicators": added}))

        if steps:
            steps.insert(0, ToolCall(tool="chart.context.get", args={}))

        plan = ActionPlan(session_id=session_id, plan_id=plan_id, steps=steps)
        logger.debug("Parsed %r into %s", text, plan.tools())
        return plan

    def _indicator_call(self, intent: IndicatorIntent, catalog: ChartCatalog, style: dict[str, Any]) -> ToolCall:
        if intent.remove:
            return ToolCall(tool="indicators.remove", args={"type": intent.name})

        params = intent.params or catalog.default_params(intent.name)
        overlay = intent.overlay if intent.overlay is not None else catalog.is_overlay(intent.name)
        args: dict[str, Any] = {
            "type": intent.name,
            "placement": {"pane": "price" if overlay else "new", "overlay": overlay},
            "id_hint": "_".join([intent.name.lower(), *(str(p) for p in params)]),
        }
        if params:
            args["params"] = {"calcParams": list(params)}
        if style:
            args["styles"] = dict(style)
        return ToolCall(tool="indicators.add", args=args)


def _spans(fragments: list[Fragment]) -> list[extractors.Span]:
    return [span for fragment in fragments for span in fragment.spans]


# ─── Canonical description ─────────────────────────────────────────────────────

_TIMEFRAME_TOKEN_RE = re.compile(r"^(\d+)([mhDWM])$")
_NAVIGATION_PHRASES = {"left": "pan left", "right": "pan right", "zoom-in": "zoom in", "zoom-out": "zoom out"}
_CHART_TYPE_PHRASES = {"candle": "candles", "line": "line chart", "area": "area chart"}


def describe_timeframe(value: str) -> str:
    match = _TIMEFRAME_TOKEN_RE.match(value or "")
    if not match:
        return value
    return f"{match.group(1)} {extractors.TIMEFRAME_UNIT_WORDS[match.group(2)]}"


def _number(value: Any) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def describe_plan(plan: ActionPlan) -> str:
    """Render a plan as a command that parses back to the same chart changes.

    Units are spelled out ("5 minute", "1 month") because bare suffixes like
    "1M" and "1m" collapse once lowercased.
    """
    clauses: list[str] = []
    style: dict[str, Any] = {}

    for step in plan.steps:
        args = step.args
        if step.tool == "chart.control.set_timeframe":
            clauses.append(f"switch to {describe_timeframe(args['timeframe'])}")
        elif step.tool == "chart.control.set_type":
            clauses.append(f"show {_CHART_TYPE_PHRASES.get(args['type'], args['type'])}")
        elif step.tool == "chart.control.navigate":
            phrase = _NAVIGATION_PHRASES[args["direction"]]
            if args.get("bars"):
                phrase += f" {args['bars']} bars"
            clauses.append(phrase)
        elif step.tool == "indicators.add":
            parts = ["add", args["type"].lower()]
            parts += [_number(p) for p in (args.get("params") or {}).get("calcParams") or []]
            placement = args.get("placement") or {}
            if placement.get("overlay") is True:
                parts.append("overlay")
            elif placement.get("overlay") is False:
                parts.append("separate panel")
            clauses.append(" ".join(parts))
            style = args.get("styles") or style
        elif step.tool == "indicators.remove":
            clauses.append(f"remove {(args.get('type') or args.get('id') or '').lower()}")
        elif step.tool == "presets.save":
            clauses.append(f"save layout as {args['name']}")
        elif step.tool == "presets.load":
            clauses.append(f"load layout {args['name']}")
        elif step.tool == "favorites.add_timeframe":
            clauses.append(f"add {describe_timeframe(args['timeframe'])} to favorites")
        elif step.tool == "favorites.add_type":
            clauses.append(f"add {_CHART_TYPE_PHRASES.get(args['type'], args['type']).split()[0]} to favorites")
        elif step.tool == "draw.add" and args.get("tool") == "trendline":
            clauses.append("add a trendline")
        elif step.tool == "draw.add" and args.get("tool") == "label":
            points = args.get("points") or [{}]
            clauses.append(f"label at {_number(points[0].get('value', 0))}")
        elif step.tool == "history.undo":
            clauses.append("undo")
        elif step.tool == "history.redo":
            clauses.append("redo")
        elif step.tool == "chart.screenshot":
            clauses.append("take a screenshot")
        elif step.tool == "analysis.chart":
            clauses.append("analyze the chart")
        elif step.tool == "analysis.entry_exit":
            clauses.append("show entry and exit signals")

    style_words = [style[key] for key in ("style",) if style.get(key)]
    if style.get("size"):
        style_words += [word for word, size in config.LINE_THICKNESS.items() if size == style["size"]][:1]
    if style.get("color"):
        style_words.append(str(style["color"]).lower())
    if style_words and clauses:
        clauses[-1] += " " + " ".join(style_words)
    return " and ".join(clauses)
