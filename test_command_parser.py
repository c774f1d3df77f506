from domains.chart.catalog import ChartCatalog, StaticCatalogProvider
from planner import extractors
from planner.command_parser import CommandParser, describe_plan, describe_timeframe
from planner.extractors import IndicatorIntent, merge_indicator_intents


def _parse(text: str):
    return CommandParser(StaticCatalogProvider()).parse(text)


def _calls(plan, tool: str) -> list[dict]:
    return [step.args for step in plan.steps if step.tool == tool]


def test_timeframe_and_overlay_indicator_with_style() -> None:
    plan = _parse("switch to 5 minute chart and add ema 9 and 20 overlay dashed blue")

    assert plan.tools() == ["chart.context.get", "chart.control.set_timeframe", "indicators.add"]
    assert plan.steps[1].args == {"timeframe": "5m"}
    assert plan.steps[2].args == {
        "type": "EMA",
        "placement": {"pane": "price", "overlay": True},
        "id_hint": "ema_9_20",
        "params": {"calcParams": [9, 20]},
        "styles": {"color": "blue", "style": "dashed"},
    }


def test_analysis_is_never_implicit() -> None:
    plan = _parse("show me support and resistance")

    assert plan.steps == []
    assert not any(tool.startswith("analysis.") for tool in plan.tools())


def test_explicit_analysis_triggers() -> None:
    chart = _parse("analyze the chart with rsi")
    entry_exit = _parse("show entry and exit signals")

    assert chart.tools() == ["chart.context.get", "indicators.add", "analysis.chart"]
    assert _calls(chart, "analysis.chart") == [{"indicators": ["RSI"]}]
    assert entry_exit.tools() == ["chart.context.get", "analysis.entry_exit"]


def test_numeric_timeframe_beats_keyword_alias() -> None:
    assert _calls(_parse("switch to 1 hour daily chart"), "chart.control.set_timeframe") == [{"timeframe": "1h"}]
    assert _calls(_parse("weekly chart, actually 15 min"), "chart.control.set_timeframe") == [{"timeframe": "15m"}]


def test_last_match_of_same_class_wins() -> None:
    assert _calls(_parse("daily then weekly"), "chart.control.set_timeframe") == [{"timeframe": "1W"}]
    assert _calls(_parse("5m no wait 4h"), "chart.control.set_timeframe") == [{"timeframe": "4h"}]


def test_month_and_minute_units_stay_distinct() -> None:
    assert extractors.extract_timeframe("1 month").value == "1M"
    assert extractors.extract_timeframe("1 mo").value == "1M"
    assert extractors.extract_timeframe("1 min").value == "1m"
    assert extractors.extract_timeframe("nothing here") is None


def test_removal_verb_produces_indicator_remove() -> None:
    plan = _parse("add macd and remove rsi")

    assert plan.tools() == ["chart.context.get", "indicators.add", "indicators.remove"]
    assert plan.steps[1].args["type"] == "MACD"
    assert plan.steps[1].args["params"] == {"calcParams": [12, 26, 9]}
    assert plan.steps[1].args["placement"] == {"pane": "new", "overlay": False}
    assert plan.steps[2].args == {"type": "RSI"}


def test_repeated_mentions_union_parameters() -> None:
    plan = _parse("add ema 9 and ema 200")

    adds = _calls(plan, "indicators.add")
    assert len(adds) == 1
    assert adds[0]["params"] == {"calcParams": [9, 200]}


def test_numbers_are_not_reused_by_the_next_indicator() -> None:
    plan = _parse("add rsi 14 and macd")

    rsi, macd = _calls(plan, "indicators.add")
    assert rsi["params"] == {"calcParams": [14]}
    assert macd["params"] == {"calcParams": [12, 26, 9]}


def test_timeframe_numbers_are_not_indicator_params() -> None:
    plan = _parse("5 minute ema")

    assert _calls(plan, "indicators.add")[0]["params"] == {"calcParams": [6, 12, 20]}


def test_synonyms_and_multiword_aliases() -> None:
    plan = _parse("add bollinger bands 20 2 and stochastic")

    boll, kdj = _calls(plan, "indicators.add")
    assert boll["type"] == "BOLL"
    assert boll["params"] == {"calcParams": [20, 2]}
    assert kdj["type"] == "KDJ"


def test_out_of_range_params_fall_back_to_defaults() -> None:
    plan = _parse("add rsi 0 and 12000")

    assert _calls(plan, "indicators.add")[0]["params"] == {"calcParams": [6, 12, 24]}


def test_chart_type_phrases() -> None:
    assert _calls(_parse("show candles"), "chart.control.set_type") == [{"type": "candle"}]
    assert _calls(_parse("switch to line chart"), "chart.control.set_type") == [{"type": "line"}]
    assert _calls(_parse("change to area"), "chart.control.set_type") == [{"type": "area"}]
    # "on candles" is an overlay placement, not a chart type.
    plan = _parse("add ema on candles")
    assert _calls(plan, "chart.control.set_type") == []
    assert _calls(plan, "indicators.add")[0]["placement"]["overlay"] is True


def test_chart_type_must_be_in_catalog() -> None:
    catalog = ChartCatalog(chart_types=["candle"])
    plan = CommandParser(StaticCatalogProvider(catalog)).parse("switch to line chart")

    assert plan.steps == []


def test_navigation_with_bar_count() -> None:
    plan = _parse("pan left 50 bars")

    assert _calls(plan, "chart.control.navigate") == [{"direction": "left", "bars": 50}]
    assert _calls(_parse("zoom in"), "chart.control.navigate") == [{"direction": "zoom-in"}]


def test_separate_panel_and_style_directives() -> None:
    plan = _parse("add ema 20 separate panel thick light blue dotted")

    ema = _calls(plan, "indicators.add")[0]
    assert ema["placement"] == {"pane": "new", "overlay": False}
    assert ema["styles"] == {"color": "light blue", "style": "dotted", "size": 3}


def test_presets_favorites_drawings_and_history() -> None:
    assert _calls(_parse("save layout as morning"), "presets.save") == [{"name": "morning"}]
    assert _calls(_parse("load preset swing"), "presets.load") == [{"name": "swing"}]

    favorites = _parse("add 5m to favorites")
    assert favorites.tools() == ["chart.context.get", "favorites.add_timeframe"]
    assert favorites.steps[1].args == {"timeframe": "5m"}
    assert _calls(_parse("add candles to favorites"), "favorites.add_type") == [{"type": "candle"}]

    drawings = _parse("add a trendline and label at 150.5")
    assert [args["tool"] for args in _calls(drawings, "draw.add")] == ["trendline", "label"]
    assert _calls(drawings, "draw.add")[1]["points"] == [{"value": 150.5}]

    assert _parse("undo").tools() == ["chart.context.get", "history.undo"]


def test_assembly_order() -> None:
    plan = _parse("take a screenshot, add rsi, show candles, undo, switch to 4h and analyze")

    assert plan.tools() == [
        "chart.context.get",
        "chart.control.set_timeframe",
        "chart.control.set_type",
        "indicators.add",
        "history.undo",
        "chart.screenshot",
        "analysis.chart",
    ]


def test_session_and_plan_ids_are_carried() -> None:
    plan = CommandParser().parse("zoom out", session_id="s1", plan_id="p1")

    assert plan.session_id == "s1"
    assert plan.plan_id == "p1"
    assert plan.version == "1.0"


def test_merge_indicator_intents_unions_and_ors() -> None:
    merged = merge_indicator_intents(
        [
            IndicatorIntent("EMA", [200]),
            IndicatorIntent("RSI", [14]),
            IndicatorIntent("EMA", [9, 200], overlay=False, remove=True),
        ]
    )

    assert [i.name for i in merged] == ["EMA", "RSI"]
    assert merged[0].params == [9, 200]
    assert merged[0].overlay is False
    assert merged[0].remove is True
    assert merged[0].mentions == 2


def test_describe_plan_reparses_to_the_same_plan() -> None:
    plan = _parse("switch to 1 month line chart and add rsi 14 separate panel thick")
    description = describe_plan(plan)

    assert description == "switch to 1 month and show line chart and add rsi 14 separate panel thick"
    assert _parse(description).steps == plan.steps


def test_describe_timeframe_spells_out_units() -> None:
    assert describe_timeframe("5m") == "5 minute"
    assert describe_timeframe("1M") == "1 month"
    assert describe_timeframe("custom") == "custom"


def test_numbers_before_a_sentence_period_are_kept() -> None:
    assert _calls(_parse("add rsi 14."), "indicators.add")[0]["params"] == {"calcParams": [14]}
    assert _calls(_parse("add ema 9 and 20."), "indicators.add")[0]["params"] == {"calcParams": [9, 20]}
    assert _calls(_parse("add boll 20 2.5"), "indicators.add")[0]["params"] == {"calcParams": [20, 2]}
