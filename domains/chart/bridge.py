"""
Chart Domain — Mutation Bridge.

Responsibility:
- Define the primitive chart actions agents may request
- Apply them to a chart surface through a single `ChartBridge` boundary
- Expose screenshot capture and a state read-back

Agents never touch chart internals directly: every mutation is a
`ChartAction` passed to `ChartBridge.perform`.
"""

from __future__ import annotations

import base64
import copy
import logging
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ChartActionType = Literal[
    "set_timeframe",
    "set_chart_type",
    "add_indicator",
    "remove_indicator",
    "navigate",
    "toggle_display_option",
    "save_preset",
    "load_preset",
    "add_favorite",
    "add_drawing",
    "remove_drawing",
    "undo",
    "redo",
]


class ChartAction(BaseModel):
    """A primitive chart mutation."""
    model_config = {"frozen": True}

    type: ChartActionType
    payload: dict[str, Any] = Field(default_factory=dict)


class ChartState(BaseModel):
    """Read-back snapshot of the live chart."""

    timeframe: str | None = None
    chart_type: str | None = None
    indicators: list[dict[str, Any]] = Field(default_factory=list)
    drawings: list[dict[str, Any]] = Field(default_factory=list)
    favorites: dict[str, list[str]] = Field(default_factory=lambda: {"timeframes": [], "types": []})
    presets: list[str] = Field(default_factory=list)
    display_options: dict[str, bool] = Field(default_factory=dict)
    offset: int = 0
    zoom: int = 0


class ChartBridgeError(RuntimeError):
    """Raised by a bridge when an action cannot be applied."""


@runtime_checkable
class ChartBridge(Protocol):
    """Narrow boundary to the chart surface."""

    async def perform(self, action: ChartAction) -> None:
        ...

    async def screenshot(self) -> str:
        ...

    def snapshot(self) -> ChartState:
        ...


class InMemoryChartSurface:
    """In-process chart surface.

    Keeps the chart state, the list of applied actions and an undo/redo
    history. Used by the CLI and as the default bridge in tests.
    """

    def __init__(self, initial: ChartState | None = None):
        self._state = initial.model_copy(deep=True) if initial else ChartState()
        self._presets: dict[str, ChartState] = {}
        self._undo: list[ChartState] = []
        self._redo: list[ChartState] = []
        self._drawing_counter = 0
        self.applied: list[ChartAction] = []

    # ─── ChartBridge ──────────────────────────────────────────

    async def perform(self, action: ChartAction) -> None:
        handler = getattr(self, f"_apply_{action.type}", None)
        if handler is None:
            raise ChartBridgeError(f"Unsupported chart action: {action.type}")

        previous = self._state.model_copy(deep=True)
        handler(action.payload)
        if action.type not in ("undo", "redo", "save_preset"):
            self._undo.append(previous)
            self._redo.clear()
        self.applied.append(action)
        logger.debug("Chart action applied: %s %s", action.type, action.payload)

    async def screenshot(self) -> str:
        summary = f"{self._state.chart_type}|{self._state.timeframe}|{len(self._state.indicators)}"
        return "data:image/png;base64," + base64.b64encode(summary.encode("utf-8")).decode("ascii")

    def snapshot(self) -> ChartState:
        return self._state.model_copy(deep=True)

    # ─── Handlers ─────────────────────────────────────────────

    def _apply_set_timeframe(self, payload: dict[str, Any]) -> None:
        self._state.timeframe = payload["timeframe"]

    def _apply_set_chart_type(self, payload: dict[str, Any]) -> None:
        self._state.chart_type = payload["chart_type"]

    def _apply_add_indicator(self, payload: dict[str, Any]) -> None:
        name = payload["indicator"]
        options = copy.deepcopy(payload.get("options") or {})
        for entry in self._state.indicators:
            if entry["indicator"] == name:
                entry["options"] = options
                return
        self._state.indicators.append({"indicator": name, "options": options})

    def _apply_remove_indicator(self, payload: dict[str, Any]) -> None:
        name = payload["indicator"]
        before = len(self._state.indicators)
        self._state.indicators = [e for e in self._state.indicators if e["indicator"] != name]
        if len(self._state.indicators) == before:
            raise ChartBridgeError(f"Indicator {name} is not on the chart")

    def _apply_navigate(self, payload: dict[str, Any]) -> None:
        direction = payload["direction"]
        bars = int(payload.get("bars") or 10)
        if direction == "left":
            self._state.offset -= bars
        elif direction == "right":
            self._state.offset += bars
        elif direction == "zoom-in":
            self._state.zoom += 1
        elif direction == "zoom-out":
            self._state.zoom -= 1
        else:
            raise ChartBridgeError(f"Unknown navigation direction: {direction}")

    def _apply_toggle_display_option(self, payload: dict[str, Any]) -> None:
        self._state.display_options[payload["option"]] = bool(payload.get("enabled", True))

    def _apply_save_preset(self, payload: dict[str, Any]) -> None:
        name = payload["name"]
        self._presets[name] = self._state.model_copy(deep=True)
        if name not in self._state.presets:
            self._state.presets.append(name)

    def _apply_load_preset(self, payload: dict[str, Any]) -> None:
        name = payload["name"]
        preset = self._presets.get(name)
        if preset is None:
            raise ChartBridgeError(f"Preset {name} not found")
        presets = list(self._state.presets)
        self._state = preset.model_copy(deep=True)
        self._state.presets = presets

    def _apply_add_favorite(self, payload: dict[str, Any]) -> None:
        kind = payload["kind"]
        bucket = self._state.favorites.setdefault(kind, [])
        if payload["value"] not in bucket:
            bucket.append(payload["value"])

    def _apply_add_drawing(self, payload: dict[str, Any]) -> None:
        self._drawing_counter += 1
        drawing = {"id": payload.get("id") or f"drawing_{self._drawing_counter}", **payload}
        self._state.drawings.append(drawing)

    def _apply_remove_drawing(self, payload: dict[str, Any]) -> None:
        drawing_id = payload["id"]
        before = len(self._state.drawings)
        self._state.drawings = [d for d in self._state.drawings if d.get("id") != drawing_id]
        if len(self._state.drawings) == before:
            raise ChartBridgeError(f"Drawing {drawing_id} not found")

    def _apply_undo(self, payload: dict[str, Any]) -> None:
        self._step_history(self._undo, self._redo, int(payload.get("steps") or 1))

    def _apply_redo(self, payload: dict[str, Any]) -> None:
        self._step_history(self._redo, self._undo, int(payload.get("steps") or 1))

    def _step_history(self, source: list[ChartState], target: list[ChartState], steps: int) -> None:
        if not source:
            raise ChartBridgeError("Nothing to restore")
        for _ in range(min(steps, len(source))):
            target.append(self._state.model_copy(deep=True))
            self._state = source.pop()
