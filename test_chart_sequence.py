import asyncio

from agents.chart_sequence import ChartSequenceAgent
from domains.chart.bridge import ChartState, InMemoryChartSurface
from domains.chart.catalog import StaticCatalogProvider
from shared.models import AgentContext, ErrorKind


def _sequence(should_cancel=None) -> tuple[ChartSequenceAgent, InMemoryChartSurface]:
    surface = InMemoryChartSurface(ChartState(timeframe="1D", chart_type="candle"))
    return ChartSequenceAgent(surface, StaticCatalogProvider(), should_cancel=should_cancel), surface


def _run(agent: ChartSequenceAgent, params: dict):
    return asyncio.run(agent.execute(AgentContext(symbol="AAPL"), "run-sequence", params))


def test_steps_run_in_order_with_narration_and_screenshot() -> None:
    agent, surface = _sequence()
    steps = [
        {"kind": "timeframe", "timeframe": "5m", "message": "Switching to 5 minutes"},
        {"kind": "chartType", "chartType": "line"},
        {"kind": "indicator", "indicator": "rsi", "options": {"calcParams": [14]}},
        {"kind": "delay", "ms": 0},
        {"kind": "screenshot", "message": "Capturing"},
    ]

    response = _run(agent, {"steps": steps})

    assert response.success is True
    assert response.message == "Sequence completed"
    assert [a.type for a in surface.applied] == ["set_timeframe", "set_chart_type", "add_indicator"]
    state = surface.snapshot()
    assert (state.timeframe, state.chart_type) == ("5m", "line")
    assert state.indicators == [{"indicator": "RSI", "options": {"calcParams": [14]}}]
    assert response.data["steps_completed"] == 5
    assert response.data["narration"] == ["Switching to 5 minutes", "Capturing"]
    assert len(response.data["screenshots"]) == 1
    assert response.data["screenshots"][0].startswith("data:image/png;base64,")


def test_narration_can_be_turned_off() -> None:
    agent, _ = _sequence()

    response = _run(agent, {"steps": [{"kind": "timeframe", "timeframe": "1h", "message": "hi"}], "narrate": False})

    assert response.data["narration"] == []


def test_layout_preset_applies_timeframe_indicators_and_screenshot() -> None:
    agent, surface = _sequence()

    response = _run(agent, {"steps": [{"kind": "layout", "layoutId": "swing_boll_rsi_obv", "screenshotAfter": True}]})

    assert response.success is True
    state = surface.snapshot()
    assert state.timeframe == "1D"
    assert state.indicators == [
        {"indicator": "BOLL", "options": {"calcParams": [20, 2], "overlay": True}},
        {"indicator": "RSI", "options": {"calcParams": [14], "overlay": False}},
        {"indicator": "OBV", "options": {"calcParams": [30], "overlay": False}},
    ]
    assert len(response.data["screenshots"]) == 1


def test_top_level_layout_runs_before_explicit_steps() -> None:
    agent, surface = _sequence()

    response = _run(
        agent,
        {"layoutId": "day_ema_rsi_macd", "timeframe": "5m", "steps": [{"kind": "navigate", "direction": "left"}]},
    )

    assert response.success is True
    assert surface.applied[0].type == "set_timeframe"
    assert surface.applied[0].payload == {"timeframe": "5m"}
    assert surface.applied[-1].type == "navigate"
    assert response.data["steps_completed"] == 2


def test_indicator_without_params_uses_profile_then_catalog_defaults() -> None:
    agent, surface = _sequence()
    steps = [
        {"kind": "indicator", "indicator": "EMA"},
        {"kind": "indicator", "indicator": "macd", "profile": "swing_trade"},
        {"kind": "indicator", "indicator": "VWAP"},
        {"kind": "indicator", "indicator": "KDJ"},
    ]

    _run(agent, {"steps": steps, "profile": "day_trade"})

    options = {e["indicator"]: e["options"] for e in surface.snapshot().indicators}
    assert options["EMA"] == {"calcParams": [9, 21, 50]}
    assert options["MACD"] == {"calcParams": [12, 26, 9]}
    # Empty profile params and empty catalog defaults leave calcParams unset.
    assert options["VWAP"] == {}
    assert options["KDJ"] == {"calcParams": [9, 3, 3]}


def test_line_and_label_steps_become_drawings() -> None:
    agent, surface = _sequence()
    points = [{"x": 1, "y": 100.0}, {"x": 5, "y": 110.0}]

    _run(
        agent,
        {
            "steps": [
                {"kind": "line", "points": points},
                {"kind": "label", "message": "Breakout", "points": points[:1]},
                {"kind": "label"},
            ]
        },
    )

    drawings = surface.snapshot().drawings
    assert [d["tool"] for d in drawings] == ["trendline", "label", "label"]
    assert drawings[0]["points"] == points
    assert [d.get("text") for d in drawings[1:]] == ["Breakout", "Label"]


def test_cancel_hook_stops_between_steps() -> None:
    calls = iter([False, True])
    agent, surface = _sequence(should_cancel=lambda: next(calls))
    steps = [
        {"kind": "timeframe", "timeframe": "5m"},
        {"kind": "timeframe", "timeframe": "15m"},
        {"kind": "screenshot"},
    ]

    response = _run(agent, {"steps": steps})

    assert response.success is False
    assert response.error == "Sequence cancelled"
    assert response.error_kind == ErrorKind.DOMAIN
    assert response.data["cancelled"] is True
    assert response.data["steps_completed"] == 1
    assert surface.snapshot().timeframe == "5m"


def test_invalid_step_rejects_the_whole_sequence() -> None:
    agent, surface = _sequence()
    steps = [
        {"kind": "timeframe", "timeframe": "5m"},
        {"kind": "indicator", "indicator": "NOPE"},
        {"kind": "navigate", "direction": "sideways"},
        {"kind": "teleport"},
    ]

    response = _run(agent, {"steps": steps})

    assert response.success is False
    assert response.error_kind == ErrorKind.VALIDATION
    assert response.error.startswith("Invalid sequence: step 2: unknown indicator NOPE; step 3:")
    assert "step 4:" in response.error
    assert surface.applied == []


def test_unknown_layout_and_empty_sequence_are_validation_errors() -> None:
    agent, surface = _sequence()

    unknown = _run(agent, {"layoutId": "scalp_everything"})
    empty = _run(agent, {"steps": []})

    assert unknown.error == "Invalid sequence: step 1: unknown layout scalp_everything"
    assert empty.error == "Sequence has no steps"
    assert empty.error_kind == ErrorKind.VALIDATION
    assert surface.applied == []


def test_sequence_steps_ignore_unrelated_keys() -> None:
    agent, surface = _sequence()

    response = _run(agent, {"steps": [{"kind": "timeframe", "timeframe": "4h", "note": "from the ui"}]})

    assert response.success is True
    assert surface.snapshot().timeframe == "4h"
