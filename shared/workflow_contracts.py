"""Workflow and tool-call contracts.

Two schema layers live here:
- the workflow step list accepted by the executor (`validate_workflow`),
- the per-tool argument schemas accepted by plan dispatch (`TOOL_SCHEMAS`).

Both are plain Pydantic models so validation errors are deterministic and
can be rendered into step-level error strings.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from shared.models import WorkflowStep


class WorkflowValidationError(ValueError):
    """Raised when a raw workflow does not match the step schema."""


def format_validation_error(exc: ValidationError) -> str:
    """Render pydantic issues as a single '; '-joined line."""
    parts: list[str] = []
    for issue in exc.errors():
        location = ".".join(str(item) for item in issue.get("loc", ()))
        message = issue.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def validate_workflow(raw_steps: Any) -> list[WorkflowStep]:
    """Validate a whole step list before anything runs.

    Accepts already-built `WorkflowStep` objects or plain dicts.
    """
    if not isinstance(raw_steps, (list, tuple)):
        raise WorkflowValidationError("workflow must be a list of steps")

    steps: list[WorkflowStep] = []
    problems: list[str] = []
    for index, raw in enumerate(raw_steps, start=1):
        if isinstance(raw, WorkflowStep):
            steps.append(raw)
            continue
        if not isinstance(raw, dict):
            problems.append(f"step {index}: expected an object")
            continue
        payload = dict(raw)
        if payload.get("params") is None:
            payload.pop("params", None)
        try:
            steps.append(WorkflowStep(**payload))
        except ValidationError as exc:
            problems.append(f"step {index}: {format_validation_error(exc)}")

    if problems:
        raise WorkflowValidationError("; ".join(problems))
    return steps


# ─── Tool argument schemas ─────────────────────────────────────

ChartTypeName = Literal["candle", "line", "area"]
Direction = Literal["left", "right", "zoom-in", "zoom-out"]


class _ToolArgs(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ContextGetArgs(_ToolArgs):
    pass


class SetTimeframeArgs(_ToolArgs):
    timeframe: str = Field(..., min_length=1)


class SetTypeArgs(_ToolArgs):
    type: ChartTypeName


class NavigateArgs(_ToolArgs):
    direction: Direction
    bars: int | None = Field(default=None, gt=0)


class ToggleOptionArgs(_ToolArgs):
    option: str = Field(..., min_length=1)
    enabled: bool = True


class IndicatorParams(_ToolArgs):
    calcParams: list[float] | None = None


class IndicatorPlacement(_ToolArgs):
    pane: Literal["price", "new"] = "new"
    overlay: bool | None = None


class IndicatorStyles(_ToolArgs):
    color: str | None = None
    style: Literal["solid", "dashed", "dotted"] | None = None
    size: int | None = Field(default=None, ge=1, le=4)


class IndicatorsAddArgs(_ToolArgs):
    type: str = Field(..., min_length=1)
    params: IndicatorParams | None = None
    placement: IndicatorPlacement | None = None
    id_hint: str | None = None
    styles: IndicatorStyles | None = None


class IndicatorsRemoveArgs(_ToolArgs):
    type: str | None = None
    id: str | None = None

    @model_validator(mode="after")
    def require_target(self) -> "IndicatorsRemoveArgs":
        if not (self.type or self.id):
            raise ValueError("Provide type or id")
        return self


class FavoritesAddTimeframeArgs(_ToolArgs):
    timeframe: str = Field(..., min_length=1)


class FavoritesAddTypeArgs(_ToolArgs):
    type: ChartTypeName


class PresetArgs(_ToolArgs):
    name: str = Field(..., min_length=1)


class DrawAddArgs(_ToolArgs):
    tool: str = Field(..., min_length=1)
    points: list[Any] = Field(default_factory=list)
    style: dict[str, Any] | None = None
    text: str | None = None


class DrawRemoveArgs(_ToolArgs):
    id: str = Field(..., min_length=1)


class HistoryArgs(_ToolArgs):
    steps: int = Field(default=1, gt=0)


class ScreenshotArgs(_ToolArgs):
    pass


class AnalysisArgs(_ToolArgs):
    symbol: str | None = None
    indicators: list[str] = Field(default_factory=list)


class ExpectedIndicator(_ToolArgs):
    type: str = Field(..., min_length=1)


class StateVerifyArgs(_ToolArgs):
    timeframe: str | None = None
    chart_type: str | None = None
    indicators: list[ExpectedIndicator] | None = None


TOOL_SCHEMAS: dict[str, type[_ToolArgs]] = {
    "chart.context.get": ContextGetArgs,
    "chart.control.set_timeframe": SetTimeframeArgs,
    "chart.control.set_type": SetTypeArgs,
    "chart.control.navigate": NavigateArgs,
    "chart.control.toggle_option": ToggleOptionArgs,
    "chart.screenshot": ScreenshotArgs,
    "indicators.add": IndicatorsAddArgs,
    "indicators.remove": IndicatorsRemoveArgs,
    "favorites.add_timeframe": FavoritesAddTimeframeArgs,
    "favorites.add_type": FavoritesAddTypeArgs,
    "presets.save": PresetArgs,
    "presets.load": PresetArgs,
    "draw.add": DrawAddArgs,
    "draw.remove": DrawRemoveArgs,
    "history.undo": HistoryArgs,
    "history.redo": HistoryArgs,
    "analysis.chart": AnalysisArgs,
    "analysis.entry_exit": AnalysisArgs,
    "state.verify": StateVerifyArgs,
}


def validate_tool_args(tool: str, args: dict[str, Any]) -> _ToolArgs:
    """Validate tool arguments; raises KeyError for unknown tools and
    ValidationError for malformed arguments."""
    schema = TOOL_SCHEMAS[tool]
    return schema(**(args or {}))
