import asyncio

import pytest
from pydantic import ValidationError

from agents.chart_context import ChartContextAgent
from agents.chart_control import ChartControlAgent
from domains.chart.bridge import ChartAction, ChartBridgeError, ChartState, InMemoryChartSurface
from domains.chart.catalog import ChartCatalog, StaticCatalogProvider
from shared.models import AgentContext, ErrorKind


def _perform(surface: InMemoryChartSurface, type_: str, **payload) -> None:
    asyncio.run(surface.perform(ChartAction(type=type_, payload=payload)))


def _control(surface: InMemoryChartSurface | None = None) -> tuple[ChartControlAgent, InMemoryChartSurface]:
    surface = surface or InMemoryChartSurface(ChartState(timeframe="1D", chart_type="candle"))
    return ChartControlAgent(surface, StaticCatalogProvider()), surface


def _call(agent, action: str, params: dict | None = None, context: AgentContext | None = None):
    return asyncio.run(agent.execute(context or AgentContext(symbol="AAPL"), action, params or {}))


def test_undo_and_redo_restore_previous_states() -> None:
    surface = InMemoryChartSurface(ChartState(timeframe="1D"))
    _perform(surface, "set_timeframe", timeframe="5m")
    _perform(surface, "add_indicator", indicator="RSI", options={})

    _perform(surface, "undo", steps=1)
    assert surface.snapshot().indicators == []
    _perform(surface, "undo", steps=1)
    assert surface.snapshot().timeframe == "1D"

    _perform(surface, "redo", steps=2)
    state = surface.snapshot()
    assert state.timeframe == "5m"
    assert [e["indicator"] for e in state.indicators] == ["RSI"]


def test_new_change_clears_redo_history() -> None:
    surface = InMemoryChartSurface()
    _perform(surface, "set_timeframe", timeframe="5m")
    _perform(surface, "undo")
    _perform(surface, "set_timeframe", timeframe="1h")

    with pytest.raises(ChartBridgeError, match="Nothing to restore"):
        _perform(surface, "redo")


def test_presets_round_trip_layout() -> None:
    surface = InMemoryChartSurface()
    _perform(surface, "add_indicator", indicator="MACD", options={})
    _perform(surface, "save_preset", name="momentum")
    _perform(surface, "remove_indicator", indicator="MACD")
    _perform(surface, "load_preset", name="momentum")

    state = surface.snapshot()
    assert [e["indicator"] for e in state.indicators] == ["MACD"]
    assert state.presets == ["momentum"]


def test_snapshot_is_a_copy() -> None:
    surface = InMemoryChartSurface()
    snapshot = surface.snapshot()
    snapshot.timeframe = "1W"

    assert surface.snapshot().timeframe is None


def test_chart_control_validates_against_catalog() -> None:
    agent, surface = _control()

    bad_timeframe = _call(agent, "change-timeframe", {"timeframe": "7m"})
    bad_type = _call(agent, "change-chart-type", {"chart_type": "renko"})
    bad_indicator = _call(agent, "add-indicator", {"indicator": "ichimoku"})

    assert bad_timeframe.error == "Invalid timeframe: 7m"
    assert bad_type.error == "Invalid chart type: renko"
    assert bad_indicator.error == "Unknown indicator: ichimoku"
    assert {r.error_kind for r in (bad_timeframe, bad_type, bad_indicator)} == {ErrorKind.VALIDATION}
    assert surface.applied == []


def test_add_indicator_resolves_synonyms_and_defaults() -> None:
    agent, surface = _control()

    response = _call(agent, "add-indicator", {"indicator": "bollinger"})

    assert response.success is True
    assert response.data["indicator"] == "BOLL"
    assert response.data["options"] == {"calcParams": [20, 2]}
    assert surface.snapshot().indicators[0]["indicator"] == "BOLL"


def test_setup_chart_and_read_back_state() -> None:
    agent, _ = _control()

    setup = _call(agent, "setup-chart", {"symbol": "TSLA", "timeframe": "1h", "chart_type": "line"})
    _call(agent, "toggle-display-option", {"option": "showGrid", "enabled": False})
    _call(agent, "add-favorite", {"kind": "timeframes", "value": "1h"})
    state = _call(agent, "get-chart-state", context=AgentContext(symbol="TSLA"))

    assert setup.message == "Chart setup completed for TSLA"
    assert state.data["timeframe"] == "1h"
    assert state.data["chart_type"] == "line"
    assert state.data["display_options"] == {"showGrid": False}
    assert state.data["favorites"]["timeframes"] == ["1h"]


def test_drawings_get_ids_and_can_be_removed() -> None:
    agent, surface = _control()

    added = _call(agent, "add-drawing", {"tool": "trendline"})
    removed = _call(agent, "remove-drawing", {"id": added.data["drawing_id"]})
    missing = _call(agent, "remove-drawing", {"id": "drawing_99"})

    assert added.data["drawing_id"] == "drawing_1"
    assert removed.success is True
    assert surface.snapshot().drawings == []
    assert missing.error_kind == ErrorKind.INTERNAL


def test_navigation_moves_the_viewport() -> None:
    agent, surface = _control()

    _call(agent, "navigate-chart", {"direction": "left", "bars": 25})
    _call(agent, "navigate-chart", {"direction": "zoom-in"})
    invalid = _call(agent, "navigate-chart", {"direction": "up"})

    state = surface.snapshot()
    assert (state.offset, state.zoom) == (-25, 1)
    assert invalid.error == "Unknown navigation direction: up"


def test_screenshot_returns_data_uri() -> None:
    agent, _ = _control()

    response = _call(agent, "capture-screenshot")

    assert response.data["screenshot"].startswith("data:image/png;base64,")


def test_chart_context_agent_options_and_validation() -> None:
    agent = ChartContextAgent(StaticCatalogProvider())

    context = _call(agent, "get-chart-context")
    valid = _call(agent, "validate-chart-option", {"optionType": "timeframe", "value": "15m"})
    invalid = _call(agent, "validate-chart-option", {"optionType": "color", "value": "#123456"})
    options = _call(agent, "get-available-options", {"elementType": "chartTypes"})
    info = _call(agent, "get-indicator-info", {"indicatorName": "stochastic"})
    missing = _call(agent, "get-indicator-info", {"indicatorName": "ichimoku"})

    assert "5m" in context.data["chart_context"]["timeframes"]
    assert valid.data["is_valid"] is True
    assert invalid.data["is_valid"] is False
    assert options.data["options"] == ["candle", "line", "area"]
    assert info.data["indicator_info"]["name"] == "KDJ"
    assert missing.error == "Indicator 'ichimoku' not found"
    assert missing.error_kind == ErrorKind.RESOLUTION


def test_catalog_color_resolution() -> None:
    catalog = ChartCatalog()

    assert catalog.resolve_color("Light Blue") == "#60A5FA"
    assert catalog.resolve_color("#3b82f6") == "#3B82F6"
    assert catalog.resolve_color("chartreuse") is None
    assert catalog.get_indicator("Relative Strength Index").name == "RSI"


def test_unsupported_action_types_are_rejected() -> None:
    with pytest.raises(ValidationError):
        ChartAction(type="set_line_color", payload={"color": "#fff"})
