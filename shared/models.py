"""
Shared Pydantic models for all layers.
Contracts are immutable (frozen) after creation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# ─── Entry Layer ───────────────────────────────────────────────

class EntryRequest(BaseModel):
    """Normalized input from any entry adapter."""
    model_config = {"frozen": True}

    session_id: str
    input_text: str
    metadata: dict[str, Any] = Field(default_factory=dict)


# ─── Capabilities ──────────────────────────────────────────────

class ParameterSpec(BaseModel):
    """Declared shape of a single capability parameter."""
    model_config = {"frozen": True}

    type: str = Field(..., description="Primitive type: string, number, boolean, object, array")
    optional: bool = Field(default=False)
    enum: list[str] | None = Field(default=None, description="Allowed values, when restricted")
    default: Any = Field(default=None)
    items: str | None = Field(default=None, description="Element type for arrays")


class AgentCapability(BaseModel):
    """A named operation an agent supports, with its parameter shape."""
    model_config = {"frozen": True}

    name: str
    description: str = ""
    parameters: dict[str, ParameterSpec] = Field(default_factory=dict)


# ─── Execution Context ─────────────────────────────────────────

class AgentContext(BaseModel):
    """Session-scoped state threaded through workflow steps.

    Frozen: a step never changes the caller's context. `merged()` returns a
    new context with step data layered on top (extra keys are kept).
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    symbol: str = ""
    timeframe: str | None = None
    chart_type: str | None = None
    indicators: list[Any] = Field(default_factory=list)
    current_price: float | None = None
    session_id: str | None = None

    def merged(self, data: dict[str, Any] | None) -> "AgentContext":
        """Shallow merge: keys in `data` overwrite keys of the same name."""
        if not data:
            return self
        payload = self.model_dump()
        payload.update(data)
        return AgentContext(**payload)

    def get(self, key: str, default: Any = None) -> Any:
        return self.model_dump().get(key, default)


# ─── Responses ─────────────────────────────────────────────────

class ErrorKind(str, Enum):
    """Classification of step-level failures."""
    VALIDATION = "validation"
    RESOLUTION = "resolution"
    DOMAIN = "domain"
    UNKNOWN_TOOL = "unknown_tool"
    INTERNAL = "internal"


class AgentSuccess(BaseModel):
    """Successful agent response."""
    model_config = {"frozen": True}

    kind: Literal["success"] = "success"
    data: Any = None
    message: str = ""

    @property
    def success(self) -> bool:
        return True


class AgentFailure(BaseModel):
    """Failed agent response. `error` is the human-readable reason."""
    model_config = {"frozen": True}

    kind: Literal["failure"] = "failure"
    error: str
    error_kind: ErrorKind = ErrorKind.DOMAIN
    message: str = ""
    data: Any = None

    @property
    def success(self) -> bool:
        return False


AgentResponse = Union[AgentSuccess, AgentFailure]


# ─── Workflows ─────────────────────────────────────────────────

class WorkflowStep(BaseModel):
    """Atomic unit of a programmatic workflow: one agent action."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    agent: str = Field(..., min_length=1, description="Target agent name")
    action: str = Field(..., min_length=1, description="Action (capability) name")
    params: dict[str, Any] = Field(default_factory=dict)


class WorkflowResult(BaseModel):
    """Aggregate of a workflow run. success is true iff errors is empty."""
    model_config = {"frozen": True}

    success: bool
    results: list[AgentSuccess] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    message: str = ""

    def to_response(self) -> AgentResponse:
        data = {
            "results": [r.model_dump(mode="json") for r in self.results],
            "errors": list(self.errors),
        }
        if self.success:
            return AgentSuccess(data=data, message=self.message)
        return AgentFailure(
            error="; ".join(self.errors) or self.message,
            error_kind=ErrorKind.DOMAIN,
            message=self.message,
            data=data,
        )


# ─── Action Plans ──────────────────────────────────────────────

class ToolCall(BaseModel):
    """Atomic unit of an action plan: a declarative tool identifier + args."""
    model_config = {"frozen": True}

    tool: str = Field(..., min_length=1)
    args: dict[str, Any] = Field(default_factory=dict)


class ActionPlan(BaseModel):
    """Versioned, ordered list of tool calls produced by the command parser."""
    model_config = {"frozen": True}

    version: str = "1.0"
    session_id: str | None = None
    plan_id: str | None = None
    steps: list[ToolCall] = Field(default_factory=list)

    def tools(self) -> list[str]:
        return [step.tool for step in self.steps]


class StepOutcome(BaseModel):
    """Per tool-call outcome recorded by plan dispatch."""
    model_config = {"frozen": True}

    index: int
    tool: str
    status: Literal["success", "failure"]
    error: str | None = None
    error_kind: ErrorKind | None = None


class PlanResult(WorkflowResult):
    """Workflow result plus per tool-call outcomes."""

    step_outcomes: list[StepOutcome] = Field(default_factory=list)

    def to_response(self) -> AgentResponse:
        response = super().to_response()
        data = dict(response.data or {})
        data["steps"] = [o.model_dump(mode="json") for o in self.step_outcomes]
        return response.model_copy(update={"data": data})
