"""Folds per-step outcomes into one WorkflowResult."""

from __future__ import annotations

from shared.models import AgentSuccess, PlanResult, StepOutcome, WorkflowResult


class ResultCombiner:
    """Builds the aggregate envelope for workflows and plans."""

    def combine(self, results: list[AgentSuccess], errors: list[str]) -> WorkflowResult:
        return WorkflowResult(
            success=not errors,
            results=list(results),
            errors=list(errors),
            message=self.summary(results, errors),
        )

    def combine_plan(
        self,
        results: list[AgentSuccess],
        errors: list[str],
        outcomes: list[StepOutcome],
    ) -> PlanResult:
        return PlanResult(
            success=not errors,
            results=list(results),
            errors=list(errors),
            message=self.summary(results, errors),
            step_outcomes=sorted(outcomes, key=lambda o: o.index),
        )

    def invalid(self, details: str) -> WorkflowResult:
        """Pre-flight rejection: nothing ran."""
        error = f"Invalid workflow: {details}"
        return WorkflowResult(success=False, results=[], errors=[error], message=error)

    @staticmethod
    def summary(results: list[AgentSuccess], errors: list[str]) -> str:
        return f"Workflow executed with {len(results)} successful steps and {len(errors)} errors"
