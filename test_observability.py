import json
import logging

import pytest

from entry.cli import CLIAdapter
from observability.logger import Observability


def _events(caplog) -> list[dict]:
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == "observability"]


def test_log_event_emits_one_json_line(caplog):
    caplog.set_level(logging.INFO, logger="observability")
    obs = Observability(session_id="s-1", trace_id="t-1")

    obs.log_event("workflow_started", {"steps": 2})

    [event] = _events(caplog)
    assert event["session_id"] == "s-1"
    assert event["trace_id"] == "t-1"
    assert event["event"] == "workflow_started"
    assert event["steps"] == 2


def test_bind_keeps_trace_and_adds_fields(caplog):
    caplog.set_level(logging.INFO, logger="observability")
    obs = Observability(session_id="s-1").bind(plan_id="p-9")

    obs.log_event("plan_step_failed", {"step": 1}, level="WARNING")

    [event] = _events(caplog)
    assert event["plan_id"] == "p-9"
    assert event["level"] == "WARNING"
    assert caplog.records[-1].levelno == logging.WARNING


def test_measure_records_outcome_and_reraises(caplog):
    caplog.set_level(logging.INFO, logger="observability")
    obs = Observability()

    with obs.measure("plan_dispatch", {"steps": 3}) as metric:
        metric["errors"] = 0
    with pytest.raises(RuntimeError):
        with obs.measure("plan_dispatch"):
            raise RuntimeError("bridge down")

    ok_event, failed_event = _events(caplog)
    assert ok_event["success"] is True
    assert ok_event["steps"] == 3
    assert ok_event["errors"] == 0
    assert ok_event["duration_ms"] >= 0
    assert failed_event["success"] is False
    assert failed_event["error"] == "bridge down"


def test_cli_adapter_normalizes_input_and_context():
    cli = CLIAdapter(session_id="abc", symbol="AAPL", timeframe="1D", chart_type="candle")

    request = cli.read_input("  add rsi  ")
    context = cli.context_for(request)

    assert request.input_text == "add rsi"
    assert request.metadata == {"source": "cli", "symbol": "AAPL"}
    assert (context.symbol, context.timeframe, context.chart_type, context.session_id) == ("AAPL", "1D", "candle", "abc")
    assert cli.is_exit(cli.read_input("QUIT"))
    assert not cli.is_exit(request)


def test_cli_context_follows_remembered_chart_state():
    cli = CLIAdapter(session_id="abc", symbol="AAPL", timeframe="1D", chart_type="candle")
    indicators = [{"indicator": "RSI", "options": {"calcParams": [14]}}]

    cli.remember("5m", "line", indicators)
    indicators.clear()
    context = cli.context_for(cli.read_input("add macd"))

    assert (context.timeframe, context.chart_type) == ("5m", "line")
    assert context.indicators == [{"indicator": "RSI", "options": {"calcParams": [14]}}]

    cli.remember(None, None, None)
    context = cli.context_for(cli.read_input("add macd"))

    assert (context.timeframe, context.chart_type) == ("5m", "line")
    assert len(context.indicators) == 1
