"""
Plan Dispatcher — executes an ActionPlan through the agent contract.

This is the single place where plan tool identifiers are translated into
agent actions. `TOOL_ROUTES` is the whole vocabulary: every entry names the
agent, the action and the argument translator (plus an optional response
check, used by `state.verify`).

Per tool call:
  unknown tool      → "Step N: Unknown tool <tool>"
  invalid arguments → "Step N: Invalid arguments for <tool>: <details>"
  otherwise         → one agent action, context propagated as in sequential
                      workflows
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from domains.chart.catalog import CatalogProvider, ChartCatalog, StaticCatalogProvider
from execution.engine import CancelHook, WorkflowExecutor, propagate
from execution.result_combiner import ResultCombiner
from observability.logger import Observability
from registry.agent_registry import AgentRegistry
from shared.models import (
    ActionPlan,
    AgentContext,
    AgentFailure,
    AgentResponse,
    AgentSuccess,
    ErrorKind,
    PlanResult,
    StepOutcome,
    ToolCall,
    WorkflowStep,
)
from shared import workflow_contracts as contracts
from shared.workflow_contracts import format_validation_error, validate_tool_args

logger = logging.getLogger(__name__)

Translator = Callable[[Any, AgentContext, ChartCatalog], dict[str, Any]]
ResponseCheck = Callable[[Any, AgentResponse], AgentResponse]


class ToolArgumentError(ValueError):
    """Arguments passed schema validation but cannot be translated."""


@dataclass(frozen=True)
class ToolRoute:
    agent: str
    action: str
    translate: Translator
    check: ResponseCheck | None = None


# ─── Translators ─────────────────────────────────────────────────────────────


def _no_args(args: BaseModel, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return {}


def _timeframe(args: contracts.SetTimeframeArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return {"timeframe": args.timeframe}


def _chart_type(args: contracts.SetTypeArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return {"chart_type": args.type}


def _navigate(args: contracts.NavigateArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    params: dict[str, Any] = {"direction": args.direction}
    if args.bars:
        params["bars"] = args.bars
    return params


def _toggle(args: contracts.ToggleOptionArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return {"option": args.option, "enabled": args.enabled}


def _indicator_add(args: contracts.IndicatorsAddArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if args.params and args.params.calcParams:
        options["calcParams"] = [int(v) if float(v).is_integer() else v for v in args.params.calcParams]
    if args.placement:
        overlay = args.placement.overlay if args.placement.overlay is not None else args.placement.pane == "price"
        options["overlay"] = overlay
        options["pane"] = "price" if overlay else "new"
    if args.id_hint:
        options["id"] = args.id_hint
    if args.styles:
        styles = args.styles.model_dump(exclude_none=True)
        if "color" in styles:
            resolved = catalog.resolve_color(styles["color"])
            if resolved is None:
                raise ToolArgumentError(f"unknown color '{styles['color']}'")
            styles["color"] = resolved
        if styles:
            options["styles"] = styles
    return {"indicator": args.type, "options": options}


def _indicator_remove(args: contracts.IndicatorsRemoveArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return {"indicator": args.type or args.id}


def _preset(args: contracts.PresetArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return {"name": args.name}


def _favorite_timeframe(args: contracts.FavoritesAddTimeframeArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return {"kind": "timeframes", "value": args.timeframe}


def _favorite_type(args: contracts.FavoritesAddTypeArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return {"kind": "types", "value": args.type}


def _draw_add(args: contracts.DrawAddArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return args.model_dump(exclude_none=True)


def _draw_remove(args: contracts.DrawRemoveArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return {"id": args.id}


def _history(args: contracts.HistoryArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return {"steps": args.steps}


def _analysis(args: contracts.AnalysisArgs, context: AgentContext, catalog: ChartCatalog) -> dict[str, Any]:
    return {"symbol": args.symbol or context.symbol, "indicators": list(args.indicators)}


# ─── state.verify ─────────────────────────────────────────────────────────────


def chart_state_mismatches(expected: contracts.StateVerifyArgs, state: dict[str, Any]) -> list[dict[str, Any]]:
    """Field-by-field comparison; only fields present in `expected` are checked."""
    mismatches: list[dict[str, Any]] = []
    for field in ("timeframe", "chart_type"):
        wanted = getattr(expected, field)
        if wanted is not None and state.get(field) != wanted:
            mismatches.append({"field": field, "expected": wanted, "actual": state.get(field)})

    if expected.indicators is not None:
        present = {str(entry.get("indicator", "")).upper() for entry in state.get("indicators") or []}
        for indicator in expected.indicators:
            if indicator.type.upper() not in present:
                mismatches.append({"field": f"indicators.{indicator.type.upper()}", "expected": "present", "actual": "missing"})
    return mismatches


def _verify_state(args: contracts.StateVerifyArgs, response: AgentResponse) -> AgentResponse:
    if not isinstance(response, AgentSuccess):
        return response
    mismatches = chart_state_mismatches(args, dict(response.data or {}))
    if mismatches:
        names = ", ".join(m["field"] for m in mismatches)
        return AgentFailure(
            error=f"Chart state mismatch: {names}",
            error_kind=ErrorKind.DOMAIN,
            data={"mismatches": mismatches},
        )
    return AgentSuccess(data={"verified": True, "mismatches": []}, message="Chart state verified")


TOOL_ROUTES: dict[str, ToolRoute] = {
    "chart.context.get": ToolRoute("chart-context", "get-chart-context", _no_args),
    "chart.control.set_timeframe": ToolRoute("chart-control", "change-timeframe", _timeframe),
    "chart.control.set_type": ToolRoute("chart-control", "change-chart-type", _chart_type),
    "chart.control.navigate": ToolRoute("chart-control", "navigate-chart", _navigate),
    "chart.control.toggle_option": ToolRoute("chart-control", "toggle-display-option", _toggle),
    "chart.screenshot": ToolRoute("chart-control", "capture-screenshot", _no_args),
    "indicators.add": ToolRoute("chart-control", "add-indicator", _indicator_add),
    "indicators.remove": ToolRoute("chart-control", "remove-indicator", _indicator_remove),
    "presets.save": ToolRoute("chart-control", "save-preset", _preset),
    "presets.load": ToolRoute("chart-control", "load-preset", _preset),
    "favorites.add_timeframe": ToolRoute("chart-control", "add-favorite", _favorite_timeframe),
    "favorites.add_type": ToolRoute("chart-control", "add-favorite", _favorite_type),
    "draw.add": ToolRoute("chart-control", "add-drawing", _draw_add),
    "draw.remove": ToolRoute("chart-control", "remove-drawing", _draw_remove),
    "history.undo": ToolRoute("chart-control", "undo", _history),
    "history.redo": ToolRoute("chart-control", "redo", _history),
    "analysis.chart": ToolRoute("analysis", "analyze-chart", _analysis),
    "analysis.entry_exit": ToolRoute("analysis", "entry-exit-analysis", _analysis),
    "state.verify": ToolRoute("chart-control", "get-chart-state", _no_args, _verify_state),
}


class PlanDispatcher:
    """Runs action plans step by step with partial-failure semantics."""

    def __init__(
        self,
        registry: AgentRegistry,
        catalog_provider: CatalogProvider | None = None,
        executor: WorkflowExecutor | None = None,
        combiner: ResultCombiner | None = None,
    ):
        self.registry = registry
        self.catalog_provider = catalog_provider or StaticCatalogProvider()
        self.executor = executor or WorkflowExecutor(registry)
        self.combiner = combiner or ResultCombiner()

    async def dispatch(
        self,
        context: AgentContext,
        plan: ActionPlan | dict[str, Any],
        should_cancel: CancelHook | None = None,
        observability: Observability | None = None,
    ) -> PlanResult:
        obs = observability or Observability(context.session_id)
        try:
            action_plan = plan if isinstance(plan, ActionPlan) else ActionPlan.model_validate(plan)
        except ValidationError as exc:
            error = f"Invalid plan: {format_validation_error(exc)}"
            obs.log_event("plan_rejected", {"error": error}, level="WARNING")
            return PlanResult(success=False, errors=[error], message=error)

        obs = obs.bind(plan_id=action_plan.plan_id)
        catalog = self.catalog_provider.get_catalog()
        results: list[AgentSuccess] = []
        errors: list[str] = []
        outcomes: list[StepOutcome] = []
        current = context

        with obs.measure("plan_dispatch", {"steps": len(action_plan.steps)}) as metric:
            for index, call in enumerate(action_plan.steps, start=1):
                if should_cancel is not None and should_cancel():
                    for remaining, pending in enumerate(action_plan.steps[index - 1:], start=index):
                        errors.append(f"Step {remaining}: cancelled")
                        outcomes.append(_outcome(remaining, pending.tool, f"Step {remaining}: cancelled", ErrorKind.INTERNAL))
                    break

                response, error, kind = await self._run_call(index, call, current, catalog)
                if error is None and isinstance(response, AgentSuccess):
                    results.append(response)
                    current = propagate(current, response)
                    outcomes.append(_outcome(index, call.tool))
                else:
                    errors.append(error or f"Step {index}: unknown error")
                    outcomes.append(_outcome(index, call.tool, error, kind))
                    obs.log_event("plan_step_failed", {"step": index, "tool": call.tool, "error": error}, level="WARNING")
            metric.update({"results": len(results), "errors": len(errors)})

        return self.combiner.combine_plan(results, errors, outcomes)

    async def _run_call(
        self,
        index: int,
        call: ToolCall,
        context: AgentContext,
        catalog: ChartCatalog,
    ) -> tuple[AgentResponse | None, str | None, ErrorKind | None]:
        route = TOOL_ROUTES.get(call.tool)
        if route is None or call.tool not in contracts.TOOL_SCHEMAS:
            return None, f"Step {index}: Unknown tool {call.tool}", ErrorKind.UNKNOWN_TOOL

        try:
            args = validate_tool_args(call.tool, call.args)
            params = route.translate(args, context, catalog)
        except ValidationError as exc:
            return None, f"Step {index}: Invalid arguments for {call.tool}: {format_validation_error(exc)}", ErrorKind.VALIDATION
        except ToolArgumentError as exc:
            return None, f"Step {index}: Invalid arguments for {call.tool}: {exc}", ErrorKind.VALIDATION

        run = await self.executor.run_step(index, WorkflowStep(agent=route.agent, action=route.action, params=params), context)
        if run.error is not None:
            return run.response, run.error, run.error_kind

        response = run.response
        if route.check is not None:
            response = route.check(args, response)
            if isinstance(response, AgentFailure):
                return response, f"Step {index}: {response.error}", response.error_kind
        return response, None, None


def _outcome(index: int, tool: str, error: str | None = None, kind: ErrorKind | None = None) -> StepOutcome:
    return StepOutcome(
        index=index,
        tool=tool,
        status="failure" if error else "success",
        error=error,
        error_kind=kind,
    )
