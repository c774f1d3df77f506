"""Workflow Executor.

Runs workflow steps across registered agents.

Modes:
- sequential: strict order; each successful step's mapping data is merged
  into the context seen by later steps.
- parallel: every step runs concurrently against the starting context.

Step problems (unknown agent, unsupported action, agent failure) are
recorded as "Step N: ..." errors and never stop the remaining steps. The only
whole-workflow abort is pre-flight validation of the step list.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import ValidationError

from execution.result_combiner import ResultCombiner
from observability.logger import Observability
from registry.agent_registry import AgentRegistry
from shared.models import AgentContext, AgentFailure, AgentResponse, AgentSuccess, ErrorKind, WorkflowResult, WorkflowStep
from shared.workflow_contracts import WorkflowValidationError, validate_workflow

logger = logging.getLogger(__name__)

CancelHook = Callable[[], bool]


@dataclass
class StepRun:
    index: int
    response: AgentResponse | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and isinstance(self.response, AgentSuccess)


def propagate(context: AgentContext, response: AgentResponse) -> AgentContext:
    """Merge mapping data from a successful response into a new context."""
    if not isinstance(response, AgentSuccess) or not isinstance(response.data, dict):
        return context
    try:
        return context.merged(response.data)
    except ValidationError as exc:
        rejected = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
        logger.warning("Step data keys not merged into context: %s", sorted(rejected))
    kept = {key: value for key, value in response.data.items() if str(key) not in rejected}
    try:
        return context.merged(kept)
    except ValidationError:
        return context


class WorkflowExecutor:
    """Executes workflows against an injected agent registry."""

    def __init__(self, registry: AgentRegistry, combiner: ResultCombiner | None = None):
        self.registry = registry
        self.combiner = combiner or ResultCombiner()

    async def execute(
        self,
        context: AgentContext,
        workflow: Any,
        parallel: bool = False,
        should_cancel: CancelHook | None = None,
        observability: Observability | None = None,
    ) -> WorkflowResult:
        obs = observability or Observability(context.session_id)
        try:
            steps = validate_workflow(workflow)
        except WorkflowValidationError as exc:
            obs.log_event("workflow_rejected", {"error": str(exc)}, level="WARNING")
            return self.combiner.invalid(str(exc))

        obs.log_event("workflow_started", {"steps": len(steps), "parallel": parallel})
        if parallel:
            outcomes = await self._run_parallel(context, steps, should_cancel)
        else:
            outcomes = await self._run_sequential(context, steps, should_cancel)

        results: list[AgentSuccess] = []
        errors: list[str] = []
        for outcome in outcomes:
            if outcome.succeeded:
                results.append(outcome.response)  # type: ignore[arg-type]
            else:
                errors.append(outcome.error or f"Step {outcome.index}: unknown error")
                obs.log_event(
                    "workflow_step_failed",
                    {"step": outcome.index, "error": outcome.error, "error_kind": _kind(outcome.error_kind)},
                    level="WARNING",
                )

        result = self.combiner.combine(results, errors)
        obs.log_event("workflow_completed", {"success": result.success, "results": len(results), "errors": len(errors)})
        return result

    async def _run_sequential(
        self,
        context: AgentContext,
        steps: list[WorkflowStep],
        should_cancel: CancelHook | None,
    ) -> list[StepRun]:
        outcomes: list[StepRun] = []
        current = context
        for index, step in enumerate(steps, start=1):
            if should_cancel is not None and should_cancel():
                logger.info("Workflow cancelled before step %d", index)
                outcomes.extend(_cancelled(range(index, len(steps) + 1)))
                break
            outcome = await self.run_step(index, step, current)
            if outcome.succeeded:
                current = propagate(current, outcome.response)  # type: ignore[arg-type]
            outcomes.append(outcome)
        return outcomes

    async def _run_parallel(
        self,
        context: AgentContext,
        steps: list[WorkflowStep],
        should_cancel: CancelHook | None,
    ) -> list[StepRun]:
        if should_cancel is not None and should_cancel():
            logger.info("Workflow cancelled before dispatch")
            return _cancelled(range(1, len(steps) + 1))
        # Context is frozen, so every step can share the same snapshot.
        return list(
            await asyncio.gather(*(self.run_step(index, step, context) for index, step in enumerate(steps, start=1)))
        )

    async def run_step(self, index: int, step: WorkflowStep, context: AgentContext) -> StepRun:
        """Resolve the agent and run one step; never raises."""
        agent = self.registry.get_agent(step.agent)
        if agent is None:
            return StepRun(index, error=f"Step {index}: Agent {step.agent} not found", error_kind=ErrorKind.RESOLUTION)
        if not agent.can_handle(step.action):
            return StepRun(
                index,
                error=f"Step {index}: Agent {step.agent} cannot handle {step.action}",
                error_kind=ErrorKind.RESOLUTION,
            )

        try:
            response = await agent.execute(context, step.action, dict(step.params))
        except Exception as exc:
            # Agents outside BaseAgent may still raise; record it as a step defect.
            logger.exception("Agent %s raised on %s", step.agent, step.action)
            return StepRun(index, error=f"Step {index}: {exc}", error_kind=ErrorKind.INTERNAL)

        if isinstance(response, AgentFailure):
            return StepRun(index, response=response, error=f"Step {index}: {response.error}", error_kind=response.error_kind)
        if not isinstance(response, AgentSuccess):
            return StepRun(
                index,
                error=f"Step {index}: invalid response type {type(response).__name__}",
                error_kind=ErrorKind.INTERNAL,
            )
        return StepRun(index, response=response)


def _cancelled(indices: range) -> list[StepRun]:
    return [StepRun(i, error=f"Step {i}: cancelled", error_kind=ErrorKind.INTERNAL) for i in indices]


def _kind(kind: ErrorKind | None) -> str | None:
    return kind.value if kind else None
