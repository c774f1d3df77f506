"""
Orchestrator Agent — Named call surface over the workflow executor.

Responsibility:
- Build canned workflows (analysis, trading plan, chart setup, entry/exit)
- Run caller-supplied workflows and action plans
- Turn free-text chart commands into plans and dispatch them

Prohibitions:
- No chart mutation of its own (everything goes through registered agents)
- No analysis logic
"""

from __future__ import annotations

import logging
from typing import Any

from agents.base import BaseAgent, capability, fail, ok, param
from domains.chart.config import RISK_LEVELS, TRADING_STRATEGIES
from execution.engine import WorkflowExecutor
from execution.plan_dispatcher import PlanDispatcher
from planner.command_parser import CommandParser
from registry.agent_registry import AgentRegistry
from shared.models import ActionPlan, AgentContext, AgentResponse, ErrorKind, PlanResult

logger = logging.getLogger(__name__)

ANALYSIS_TYPES = ("technical", "fundamental", "comprehensive")


def _step(agent: str, action: str, **params: Any) -> dict[str, Any]:
    return {"agent": agent, "action": action, "params": params}


def _indicator_steps(indicators: list[Any]) -> tuple[list[dict[str, Any]], list[str]]:
    steps: list[dict[str, Any]] = []
    names: list[str] = []
    for item in indicators or []:
        definition = item if isinstance(item, dict) else {"indicator": item}
        name = definition.get("indicator")
        if not name:
            continue
        names.append(name)
        steps.append(_step("chart-control", "add-indicator", indicator=name, options=definition.get("options") or {}))
    return steps, names


class OrchestratorAgent(BaseAgent):
    name = "orchestrator"
    label = "Orchestrator"
    description = "Coordinates and orchestrates other agents to execute complex tasks"

    CAPABILITIES = (
        capability(
            "execute-workflow",
            "Execute a multi-step workflow using multiple agents",
            workflow=param("array", items="object"),
            parallel=param("boolean", optional=True, default=False),
        ),
        capability(
            "execute-plan",
            "Dispatch an action plan (tool calls) to the matching agents",
            plan=param("object"),
        ),
        capability(
            "coordinate-analysis",
            "Coordinate comprehensive market analysis using multiple agents",
            symbol=param("string"),
            analysisType=param("string", enum=list(ANALYSIS_TYPES)),
        ),
        capability(
            "execute-trading-plan",
            "Execute a complete trading plan with analysis, chart setup, and execution",
            symbol=param("string"),
            strategy=param("string", enum=list(TRADING_STRATEGIES)),
            riskLevel=param("string", enum=list(RISK_LEVELS)),
        ),
        capability(
            "setup-chart-analysis",
            "Setup chart with indicators and perform analysis",
            symbol=param("string"),
            timeframe=param("string"),
            indicators=param("array", items="object"),
        ),
        capability(
            "determine-entry-exit",
            "Setup chart and determine entry/exit points",
            symbol=param("string"),
            timeframe=param("string", optional=True),
            indicators=param("array", optional=True, items="object"),
        ),
        capability(
            "process-chart-command",
            "Interpret natural language chart commands and execute the appropriate actions",
            command=param("string"),
        ),
        capability("get-agent-status", "Get status and capabilities of all registered agents"),
    )

    def __init__(
        self,
        registry: AgentRegistry,
        executor: WorkflowExecutor | None = None,
        dispatcher: PlanDispatcher | None = None,
        parser: CommandParser | None = None,
    ):
        self.registry = registry
        self.executor = executor or WorkflowExecutor(registry)
        self.dispatcher = dispatcher or PlanDispatcher(registry, executor=self.executor)
        self.parser = parser or CommandParser()
        super().__init__()

    def handlers(self):
        return {
            "execute-workflow": self._execute_workflow,
            "execute-plan": self._execute_plan,
            "coordinate-analysis": self._coordinate_analysis,
            "execute-trading-plan": self._execute_trading_plan,
            "setup-chart-analysis": self._setup_chart_analysis,
            "determine-entry-exit": self._determine_entry_exit,
            "process-chart-command": self._process_chart_command,
            "get-agent-status": self._get_agent_status,
        }

    async def _run(self, context: AgentContext, workflow: list[dict[str, Any]], parallel: bool = False) -> AgentResponse:
        result = await self.executor.execute(context, workflow, parallel=parallel)
        return result.to_response()

    # ─── Handlers ─────────────────────────────────────────────

    async def _execute_workflow(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        return await self._run(context, params.get("workflow"), bool(params.get("parallel", False)))

    async def _execute_plan(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        result = await self.dispatcher.dispatch(context, params.get("plan") or {})
        return result.to_response()

    async def _coordinate_analysis(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        analysis_type = params.get("analysisType") or params.get("analysis_type")
        if analysis_type not in ANALYSIS_TYPES:
            return fail(f"Unknown analysis type: {analysis_type}", ErrorKind.VALIDATION)

        workflow = [
            _step("chart-context", "get-chart-context"),
            _step("chart-control", "setup-chart", symbol=symbol, timeframe=context.timeframe or "1D"),
        ]
        if analysis_type in ("technical", "comprehensive"):
            workflow.append(_step("analysis", "technical-analysis", symbol=symbol))
        if analysis_type in ("fundamental", "comprehensive"):
            workflow.append(_step("analysis", "fundamental-analysis", symbol=symbol))
        return await self._run(context, workflow, parallel=analysis_type == "comprehensive")

    async def _execute_trading_plan(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        strategy = params.get("strategy")
        risk_level = params.get("riskLevel") or params.get("risk_level") or "moderate"
        workflow = [
            _step("chart-context", "get-chart-context"),
            _step("chart-control", "setup-chart", symbol=symbol, timeframe=context.timeframe or "1D"),
            _step("analysis", "comprehensive-analysis", symbol=symbol),
            _step("strategy", "generate-strategy", symbol=symbol, strategyType=strategy, riskLevel=risk_level),
            _step("trading", "generate-trade-signal", symbol=symbol, strategy=strategy, riskLevel=risk_level),
            # Side comes from the signal merged into context by the previous step.
            _step("trading", "execute-trade", symbol=symbol),
        ]
        return await self._run(context, workflow)

    async def _setup_chart_analysis(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        indicator_steps, names = _indicator_steps(params.get("indicators") or [])
        workflow = [
            _step("chart-context", "get-chart-context"),
            _step("chart-control", "setup-chart", symbol=symbol, timeframe=params.get("timeframe") or "1D"),
            *indicator_steps,
            _step("analysis", "analyze-chart", symbol=symbol, indicators=names),
        ]
        return await self._run(context, workflow)

    async def _determine_entry_exit(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        symbol = params.get("symbol") or context.symbol
        indicator_steps, names = _indicator_steps(params.get("indicators") or [])
        workflow = [
            _step("chart-context", "get-chart-context"),
            _step("chart-control", "setup-chart", symbol=symbol, timeframe=params.get("timeframe") or "1D"),
            *indicator_steps,
            _step("analysis", "entry-exit-analysis", symbol=symbol, indicators=names),
        ]
        return await self._run(context, workflow)

    async def _process_chart_command(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        command = params.get("command")
        if not isinstance(command, str) or not command.strip():
            return fail("Command is required", ErrorKind.VALIDATION)

        plan = self.parser.parse(command, session_id=context.session_id)
        if not plan.steps:
            return ok({"plan": plan.model_dump(), "results": [], "errors": [], "steps": []}, "No chart actions recognised")

        result = await self.dispatcher.dispatch(context, plan)
        entry_exit = _entry_exit_levels(result)
        if entry_exit is not None and result.success:
            await self._mark_entry_exit(context, *entry_exit)

        response = result.to_response()
        data = dict(response.data or {})
        data["plan"] = plan.model_dump()
        message = _command_summary(plan, entry_exit) or response.message
        return response.model_copy(update={"data": data, "message": message})

    async def _mark_entry_exit(self, context: AgentContext, entry: float, exit_: float) -> None:
        chart = self.registry.get_agent("chart-control")
        if chart is None:
            logger.warning("chart-control not registered; entry/exit markers skipped")
            return
        for marker, price in (("entry", entry), ("exit", exit_)):
            response = await chart.execute(context, "add-indicator", {"indicator": marker, "options": {"price": price}})
            if not response.success:
                logger.warning("Failed to mark %s on chart: %s", marker, response.error)

    def _get_agent_status(self, context: AgentContext, params: dict[str, Any]) -> AgentResponse:
        agents = [
            {
                "name": agent.name,
                "description": agent.description,
                "capabilities": [cap.name for cap in agent.capabilities],
            }
            for agent in self.registry.all_agents()
        ]
        return ok({"agents": agents, "total": len(agents)}, f"Status of {len(agents)} registered agents")


def _entry_exit_levels(result: PlanResult) -> tuple[float, float] | None:
    for response in result.results:
        analysis = (response.data or {}).get("analysis") if isinstance(response.data, dict) else None
        if isinstance(analysis, dict) and "entry" in analysis and "exit" in analysis:
            return float(analysis["entry"]), float(analysis["exit"])
    return None


def _command_summary(plan: ActionPlan, entry_exit: tuple[float, float] | None) -> str:
    messages: list[str] = []
    tools = plan.tools()
    for call in plan.steps:
        if call.tool == "chart.control.set_timeframe":
            messages.append(f"Timeframe set to {call.args['timeframe']}")
        elif call.tool == "chart.control.set_type":
            messages.append(f"Chart type set to {call.args['type']}")
    added = [c.args["type"] for c in plan.steps if c.tool == "indicators.add"]
    removed = [c.args.get("type") or c.args.get("id") for c in plan.steps if c.tool == "indicators.remove"]
    if added:
        messages.append(f"Added indicators: {', '.join(added)}")
    if removed:
        messages.append(f"Removed indicators: {', '.join(removed)}")
    if entry_exit is not None:
        messages.append(f"Entry at {entry_exit[0]:.2f}, exit at {entry_exit[1]:.2f}")
    elif "analysis.entry_exit" in tools:
        messages.append("Entry/exit analysis completed")
    elif "analysis.chart" in tools:
        messages.append("Analysis completed")
    return ". ".join(messages)
